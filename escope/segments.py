"""Segment counts and sizes per index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from escope.stats import ElasticClient, get_segments_data, parse_index_stats_data
from escope.util import EMPTY_STRING, EscopeError

COUNT_FIELD = "count"
MEMORY_IN_BYTES_FIELD = "memory_in_bytes"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


@dataclass
class SegmentInfo:
    """Segment statistics of one index."""

    index: str
    segment_count: int = 0
    size_bytes: int = 0


class SegmentsService:
    """Reads segment statistics from a cluster."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_segments_info(self) -> list[SegmentInfo]:
        """Return segment statistics for every index that reports them."""
        try:
            stats_data = self.client.get_index_stats(EMPTY_STRING)
        except Exception as exc:
            raise EscopeError(f"index stats request failed: {exc}") from exc

        segments = []
        for index_name, total in parse_index_stats_data(stats_data).items():
            data = get_segments_data(total)
            if data is None:
                continue
            info = SegmentInfo(index=index_name)
            count = _number(data.get(COUNT_FIELD))
            if count is not None:
                info.segment_count = int(count)
            size = _number(data.get(MEMORY_IN_BYTES_FIELD))
            if size is not None:
                info.size_bytes = int(size)
            segments.append(info)
        return segments