"""Point-in-time health checks of a cluster, used by the check report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from escope.cluster import ClusterInfo
from escope.nodes import NodeBreakdown, NodeService
from escope.segments import SegmentsService
from escope.shards import SHARD_STATE_STARTED, ShardWarnings, build_shard_warnings
from escope.stats import ElasticClient
from escope.util import DASH_STRING, EMPTY_STRING, EscopeError, get_string_field, is_system_index

SHARD_STATE_INITIALIZING = "INITIALIZING"
SHARD_STATE_RELOCATING = "RELOCATING"
SHARD_STATE_UNASSIGNED = "UNASSIGNED"

HIGH_SEGMENT_THRESHOLD = 50
SMALL_SEGMENT_THRESHOLD = 1024 * 1024
LARGE_SEGMENT_THRESHOLD = 1024 * 1024 * 1024

_HEALTH_INT_FIELDS = (
    "number_of_nodes",
    "active_primary_shards",
    "active_shards",
    "unassigned_shards",
    "relocating_shards",
    "initializing_shards",
)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _path(data: Any, *keys: str) -> Any:
    for key in keys:
        data = _dict(data)
        if data is None:
            return None
        data = data.get(key)
    return data


@dataclass
class CheckNodeHealth:
    """CPU and heap usage of one node at one moment."""

    node_id: str
    name: str = EMPTY_STRING
    cpu_usage: float = 0.0
    heap_usage: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ShardHealth:
    """Shard counts per state."""

    started_shards: int = 0
    initializing_shards: int = 0
    relocating_shards: int = 0
    unassigned_shards: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class IndexHealth:
    """Health row of one index."""

    name: str = EMPTY_STRING
    health: str = EMPTY_STRING
    status: str = EMPTY_STRING
    docs: str = EMPTY_STRING
    size: str = EMPTY_STRING
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ResourceUsage:
    """Average CPU and heap usage and summed disk space over all nodes."""

    cpu_usage: float = 0.0
    heap_usage: float = 0.0
    disk_total: int = 0
    disk_available: int = 0
    node_count: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Performance:
    """Cluster-wide indexing and search totals."""

    index_total: int = 0
    index_time_in_millis: int = 0
    query_total: int = 0
    query_time_in_millis: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SegmentWarnings:
    """Number of user indices with segment counts or sizes out of range."""

    high_segment_indices: int = 0
    small_segment_indices: int = 0
    large_segment_indices: int = 0


def _parse_node_health(node_id: str, node: dict) -> CheckNodeHealth:
    health = CheckNodeHealth(node_id=node_id)
    name = node.get("name")
    if isinstance(name, str):
        health.name = name
    cpu = _number(_path(node, "os", "cpu", "percent"))
    if cpu is not None:
        health.cpu_usage = float(cpu)
    heap = _number(_path(node, "jvm", "mem", "heap_used_percent"))
    if heap is not None:
        health.heap_usage = float(heap)
    return health


def _rows(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


class CheckService:
    """Collects the pieces of a cluster health check."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client
        self.node_service = NodeService(client)
        self.segments_service = SegmentsService(client)

    def _nodes_stats(self) -> dict:
        try:
            data = self.client.get_nodes_stats()
        except Exception as exc:
            raise EscopeError(f"nodes stats request failed: {exc}") from exc
        return _dict(data.get("nodes")) or {}

    def get_cluster_health_check(self) -> ClusterInfo:
        """Return the cluster health with the time it was taken."""
        try:
            data = self.client.get_cluster_health()
        except Exception as exc:
            raise EscopeError(f"cluster health request failed: {exc}") from exc
        info = ClusterInfo(timestamp=datetime.now())
        for key in ("cluster_name", "status"):
            value = data.get(key)
            if isinstance(value, str):
                setattr(info, key, value)
        for key in _HEALTH_INT_FIELDS:
            value = _number(data.get(key))
            if value is not None:
                setattr(info, key, int(value))
        return info

    def get_node_health_check(self) -> list[CheckNodeHealth]:
        """Return CPU and heap usage of every node."""
        return [
            _parse_node_health(node_id, node)
            for node_id, node in self._nodes_stats().items()
            if isinstance(node, dict)
        ]

    def get_shard_health_check(self) -> ShardHealth:
        """Count shards per state."""
        try:
            rows = self.client.get_shards()
        except Exception as exc:
            raise EscopeError(f"shards request failed: {exc}") from exc
        health = ShardHealth()
        counters = {
            SHARD_STATE_STARTED: "started_shards",
            SHARD_STATE_INITIALIZING: "initializing_shards",
            SHARD_STATE_RELOCATING: "relocating_shards",
            SHARD_STATE_UNASSIGNED: "unassigned_shards",
        }
        for row in _rows(rows):
            attribute = counters.get(get_string_field(row, "state"))
            if attribute is not None:
                setattr(health, attribute, getattr(health, attribute) + 1)
        return health

    def get_shard_warnings_check(self) -> ShardWarnings:
        """Judge shard states and how evenly started shards are spread."""
        try:
            rows = self.client.get_shards()
        except Exception as exc:
            raise EscopeError(f"failed to get shard info: {exc}") from exc

        unassigned = relocating = initializing = 0
        node_counts: dict[str, int] = {}
        unknown = (EMPTY_STRING, DASH_STRING)
        for row in _rows(rows):
            state = get_string_field(row, "state")
            if state == SHARD_STATE_UNASSIGNED:
                unassigned += 1
            elif state == SHARD_STATE_RELOCATING:
                relocating += 1
            elif state == SHARD_STATE_INITIALIZING:
                initializing += 1
            elif state == SHARD_STATE_STARTED:
                node = get_string_field(row, "node")
                ip = get_string_field(row, "ip")
                holder = node if node not in unknown else ip if ip not in unknown else None
                if holder is not None:
                    node_counts[holder] = node_counts.get(holder, 0) + 1
        return build_shard_warnings(unassigned, relocating, initializing, node_counts)

    def get_index_health_check(self) -> list[IndexHealth]:
        """Return the health row of every index."""
        try:
            rows = self.client.get_indices()
        except Exception as exc:
            raise EscopeError(f"indices request failed: {exc}") from exc
        return [
            IndexHealth(
                name=get_string_field(row, "index"),
                health=get_string_field(row, "health"),
                status=get_string_field(row, "status"),
                docs=get_string_field(row, "docs.count"),
                size=get_string_field(row, "store.size"),
            )
            for row in _rows(rows)
        ]

    def get_resource_usage_check(self) -> ResourceUsage:
        """Average CPU and heap over nodes and sum their disk space."""
        usage = ResourceUsage()
        for node in self._nodes_stats().values():
            if not isinstance(node, dict):
                continue
            cpu = _number(_path(node, "os", "cpu", "percent"))
            if cpu is not None:
                usage.cpu_usage += cpu
            heap = _number(_path(node, "jvm", "mem", "heap_used_percent"))
            if heap is not None:
                usage.heap_usage += heap
            total = _dict(_path(node, "fs", "total"))
            if total is not None:
                total_bytes = _number(total.get("total_in_bytes"))
                if total_bytes is not None:
                    usage.disk_total += int(total_bytes)
                available = _number(total.get("available_in_bytes"))
                if available is not None:
                    usage.disk_available += int(available)
            usage.node_count += 1

        if usage.node_count > 0:
            usage.cpu_usage /= usage.node_count
            usage.heap_usage /= usage.node_count
        return usage

    def get_performance_check(self) -> Performance:
        """Return cluster-wide indexing and search totals."""
        try:
            data = self.client.get_cluster_stats()
        except Exception as exc:
            raise EscopeError(f"cluster stats request failed: {exc}") from exc
        performance = Performance()
        indices = _dict(data.get("indices"))
        if indices is None:
            return performance
        fields = (
            ("indexing", "index_total", "index_total"),
            ("indexing", "index_time_in_millis", "index_time_in_millis"),
            ("search", "query_total", "query_total"),
            ("search", "query_time_in_millis", "query_time_in_millis"),
        )
        for block, key, attribute in fields:
            value = _number(_path(indices, block, key))
            if value is not None:
                setattr(performance, attribute, int(value))
        return performance

    def get_node_breakdown(self) -> NodeBreakdown:
        """Count nodes per role."""
        return self.node_service.get_node_breakdown()

    def get_segment_warnings_check(self) -> SegmentWarnings:
        """Count user indices with many, small or large segments."""
        try:
            segments = self.segments_service.get_segments_info()
        except Exception as exc:
            raise EscopeError(f"failed to get segments info: {exc}") from exc

        warnings = SegmentWarnings()
        for segment in segments:
            if is_system_index(segment.index):
                continue
            if segment.segment_count > HIGH_SEGMENT_THRESHOLD:
                warnings.high_segment_indices += 1
            average = segment.size_bytes // segment.segment_count if segment.segment_count > 0 else 0
            if average < SMALL_SEGMENT_THRESHOLD:
                warnings.small_segment_indices += 1
            if average > LARGE_SEGMENT_THRESHOLD:
                warnings.large_segment_indices += 1
        return warnings