"""Index listings, per-index rates and timings, and their rendering."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from escope.formatting import format_table
from escope.lucene import LuceneStats
from escope.stats import ElasticClient, get_indexing_data, get_segments_data, parse_index_stats_data
from escope.util import DASH_STRING, EMPTY_STRING, EscopeError, format_bytes, get_string_field

CALCULATING_STRING = "calculating..."
THOUSAND_DIVISOR = 1000.0

TIME_FORMAT_MS = "{:.2f}ms"
RATE_FORMAT_K = "{:.1f}k/s"
RATE_FORMAT = "{:.1f}/s"
RATE_FORMAT_SMALL = "{:.2f}/s"

# (nested block key, attribute prefix) for the per-part segment memory.
_MEMORY_PARTS = (
    ("terms", "terms"),
    ("stored", "stored"),
    ("doc_values", "doc_values"),
    ("points", "points"),
    ("norms", "norms"),
    ("fixed_bit_set", "fixed_bit_set"),
    ("version_map", "version_map"),
)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


@dataclass
class IndexInfo:
    """One row of the index listing."""

    alias: str = EMPTY_STRING
    name: str = EMPTY_STRING
    health: str = EMPTY_STRING
    status: str = EMPTY_STRING
    docs_count: str = EMPTY_STRING
    store_size: str = EMPTY_STRING
    primary: str = EMPTY_STRING
    replica: str = EMPTY_STRING


@dataclass
class IndexStatsSnapshot:
    """Search and indexing totals of an index at one moment."""

    index_name: str
    query_total: int = 0
    query_time: int = 0
    index_total: int = 0
    index_time: int = 0
    timestamp: float = 0.0


@dataclass
class IndexDetailInfo:
    """Rates and average timings of one index, ready for display."""

    name: str
    search_rate: str = EMPTY_STRING
    index_rate: str = EMPTY_STRING
    avg_query_time: str = EMPTY_STRING
    avg_index_time: str = EMPTY_STRING
    check_count: int = 0


def format_rate(rate: float) -> str:
    """Render an operations-per-second rate."""
    if rate >= THOUSAND_DIVISOR:
        return RATE_FORMAT_K.format(rate / THOUSAND_DIVISOR)
    if rate >= 1:
        return RATE_FORMAT.format(rate)
    return RATE_FORMAT_SMALL.format(rate)


def format_index_detail(info: IndexDetailInfo) -> str:
    """Render the rates and timings of one index as a one-column table."""
    header = f"{info.name} | Check {info.check_count}" if info.check_count > 0 else info.name
    rows = [
        [f"Search Rate: {info.search_rate}"],
        [f"Index Rate: {info.index_rate}"],
        [f"Query Time: {info.avg_query_time}"],
        [f"Index Time: {info.avg_index_time}"],
    ]
    return format_table([header], rows)


def _parse_lucene_stats(
    index_name: str, segments: Mapping[str, Any], indexing: Mapping[str, Any]
) -> LuceneStats:
    stats = LuceneStats(index_name=index_name)

    count = _number(segments.get("count"))
    if count is not None:
        stats.segment_count = int(count)

    memory = _dict(segments.get("memory"))
    if memory is not None:
        total = _number(memory.get("total_in_bytes"))
        if total is not None:
            stats.segment_memory_bytes = int(total)
            stats.segment_memory = format_bytes(int(total))

    for key, prefix in _MEMORY_PARTS:
        block = _dict(segments.get(key))
        if block is None:
            continue
        part = _number(block.get("memory_in_bytes"))
        if part is not None:
            setattr(stats, f"{prefix}_memory_bytes", int(part))
            setattr(stats, f"{prefix}_memory", format_bytes(int(part)))

    timestamp = _number(segments.get("max_unsafe_auto_id_timestamp"))
    if timestamp is not None:
        stats.max_unsafe_auto_id_timestamp = int(timestamp)

    index_memory = _dict(indexing.get("index_memory"))
    if index_memory is not None:
        total = _number(index_memory.get("total_in_bytes"))
        if total is not None:
            stats.index_memory_bytes = int(total)
            stats.index_memory = format_bytes(int(total))

    return stats


def _average(total_time: int, total_count: int) -> str:
    return TIME_FORMAT_MS.format(total_time / total_count)


class IndexService:
    """Reads index listings and statistics, remembering totals between calls."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client
        self._snapshots: dict[str, IndexStatsSnapshot] = {}

    def get_all_index_infos(self) -> list[IndexInfo]:
        """Return every index row."""
        try:
            rows = self.client.get_indices()
        except Exception as exc:
            raise EscopeError(f"indices request failed: {exc}") from exc
        if not isinstance(rows, list):
            return []
        return [
            IndexInfo(
                alias=get_string_field(row, "alias"),
                name=get_string_field(row, "index"),
                health=get_string_field(row, "health"),
                status=get_string_field(row, "status"),
                docs_count=get_string_field(row, "docs.count"),
                store_size=get_string_field(row, "store.size"),
                primary=get_string_field(row, "pri"),
                replica=get_string_field(row, "rep"),
            )
            for row in rows
            if isinstance(row, dict)
        ]

    def get_lucene_stats(self) -> list[LuceneStats]:
        """Return memory statistics for each index reporting segments and indexing."""
        try:
            stats_data = self.client.get_index_stats(EMPTY_STRING)
        except Exception as exc:
            raise EscopeError(f"index stats request failed: {exc}") from exc

        result = []
        for index_name, total in parse_index_stats_data(stats_data).items():
            segments = get_segments_data(total)
            indexing = get_indexing_data(total)
            if segments is not None and indexing is not None:
                result.append(_parse_lucene_stats(index_name, segments, indexing))
        return result

    def get_index_detail_info(self, index_name: str) -> IndexDetailInfo:
        """Return rates since the previous call and average timings of an index."""
        try:
            stats_data = self.client.get_index_stats(index_name)
        except Exception as exc:
            raise EscopeError(f"index stats request failed: {exc}") from exc

        info = IndexDetailInfo(name=index_name)
        now = time.time()

        indices = _dict(stats_data.get("indices"))
        index_data = _dict(indices.get(index_name)) if indices else None
        total = _dict(index_data.get("total")) if index_data else None
        if total is None:
            return info

        query_total = query_time = index_total = index_time = 0
        search = _dict(total.get("search"))
        if search is not None:
            query_total = int(_number(search.get("query_total")) or 0)
            query_time = int(_number(search.get("query_time_in_millis")) or 0)
        indexing = _dict(total.get("indexing"))
        if indexing is not None:
            index_total = int(_number(indexing.get("index_total")) or 0)
            index_time = int(_number(indexing.get("index_time_in_millis")) or 0)

        previous = self._snapshots.get(index_name)
        if previous is None:
            info.search_rate = CALCULATING_STRING
            info.index_rate = CALCULATING_STRING
            fill_averages = True
        else:
            elapsed = now - previous.timestamp
            fill_averages = elapsed > 0
            if fill_averages:
                query_delta = query_total - previous.query_total
                info.search_rate = (
                    format_rate(query_delta / elapsed) if query_delta > 0 else DASH_STRING
                )
                index_delta = index_total - previous.index_total
                info.index_rate = (
                    format_rate(index_delta / elapsed) if index_delta > 0 else DASH_STRING
                )

        if fill_averages:
            if query_total > 0:
                info.avg_query_time = _average(query_time, query_total)
            if index_total > 0:
                info.avg_index_time = _average(index_time, index_total)

        self._snapshots[index_name] = IndexStatsSnapshot(
            index_name=index_name,
            query_total=query_total,
            query_time=query_time,
            index_total=index_total,
            index_time=index_time,
            timestamp=now,
        )
        return info