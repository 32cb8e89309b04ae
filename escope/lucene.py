"""Lucene-level memory statistics per index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from escope.stats import ElasticClient, get_indexing_data, get_segments_data, parse_index_stats_data
from escope.util import EMPTY_STRING, ZERO_BYTE_STRING, EscopeError, format_bytes

COUNT_FIELD = "count"
MEMORY_IN_BYTES_FIELD = "memory_in_bytes"
MAX_UNSAFE_AUTO_ID_TIMESTAMP_FIELD = "max_unsafe_auto_id_timestamp"
INDEX_MEMORY_FIELD = "index_memory"
TOTAL_IN_BYTES_FIELD = "total_in_bytes"

# (flat key, nested block key or None, attribute prefix)
_MEMORY_PARTS = (
    ("terms_memory_in_bytes", "terms", "terms"),
    ("stored_fields_memory_in_bytes", "stored_fields", "stored"),
    ("doc_values_memory_in_bytes", "doc_values", "doc_values"),
    ("points_memory_in_bytes", "points", "points"),
    ("norms_memory_in_bytes", "norms", "norms"),
    ("fixed_bit_set_memory_in_bytes", None, "fixed_bit_set"),
    ("version_map_memory_in_bytes", None, "version_map"),
)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


@dataclass
class LuceneStats:
    """Segment and memory statistics of one index."""

    index_name: str
    segment_count: int = 0
    segment_memory_bytes: int = 0
    segment_memory: str = EMPTY_STRING
    terms_memory_bytes: int = 0
    terms_memory: str = EMPTY_STRING
    stored_memory_bytes: int = 0
    stored_memory: str = EMPTY_STRING
    doc_values_memory_bytes: int = 0
    doc_values_memory: str = EMPTY_STRING
    points_memory_bytes: int = 0
    points_memory: str = EMPTY_STRING
    norms_memory_bytes: int = 0
    norms_memory: str = EMPTY_STRING
    fixed_bit_set_memory_bytes: int = 0
    fixed_bit_set_memory: str = EMPTY_STRING
    version_map_memory_bytes: int = 0
    version_map_memory: str = EMPTY_STRING
    max_unsafe_auto_id_timestamp: int = 0
    index_memory_bytes: int = 0
    index_memory: str = EMPTY_STRING


def _part_bytes(segments: Mapping[str, Any], flat_key: str, nested_key: Optional[str]) -> Optional[int]:
    flat = _number(segments.get(flat_key))
    if flat is not None:
        return int(flat)
    if nested_key is None:
        return None
    block = segments.get(nested_key)
    if isinstance(block, dict):
        nested = _number(block.get(MEMORY_IN_BYTES_FIELD))
        if nested is not None:
            return int(nested)
    return None


def _parse_lucene_stats(
    index_name: str, segments: Mapping[str, Any], indexing: Mapping[str, Any]
) -> LuceneStats:
    stats = LuceneStats(index_name=index_name)
    calculated_total = 0

    count = _number(segments.get(COUNT_FIELD))
    if count is not None:
        stats.segment_count = int(count)

    memory = _number(segments.get(MEMORY_IN_BYTES_FIELD))
    if memory is not None:
        stats.segment_memory_bytes = int(memory)
        stats.segment_memory = format_bytes(int(memory))

    for flat_key, nested_key, prefix in _MEMORY_PARTS:
        part = _part_bytes(segments, flat_key, nested_key)
        if part is not None:
            setattr(stats, f"{prefix}_memory_bytes", part)
            setattr(stats, f"{prefix}_memory", format_bytes(part))
            calculated_total += part

    timestamp = _number(segments.get(MAX_UNSAFE_AUTO_ID_TIMESTAMP_FIELD))
    if timestamp is not None:
        stats.max_unsafe_auto_id_timestamp = int(timestamp)

    index_memory = indexing.get(INDEX_MEMORY_FIELD)
    if isinstance(index_memory, dict):
        total = _number(index_memory.get(TOTAL_IN_BYTES_FIELD))
        if total is not None:
            stats.index_memory_bytes = int(total)
            stats.index_memory = format_bytes(int(total))

    for _, _, prefix in _MEMORY_PARTS:
        attribute = f"{prefix}_memory"
        if getattr(stats, attribute) == EMPTY_STRING:
            setattr(stats, attribute, ZERO_BYTE_STRING)

    if stats.segment_memory_bytes == 0 and calculated_total > 0:
        stats.segment_memory_bytes = calculated_total
        stats.segment_memory = format_bytes(calculated_total)

    return stats


class LuceneService:
    """Reads Lucene memory statistics for every index."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_lucene_stats(self) -> list[LuceneStats]:
        """Return statistics for each index reporting segments and indexing."""
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