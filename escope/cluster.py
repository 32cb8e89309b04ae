"""Cluster health, cluster-wide statistics and their text rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from escope.formatting import format_table
from escope.stats import ElasticClient
from escope.util import (
    EMPTY_STRING,
    EscopeError,
    calculate_percentage,
    format_bytes,
    format_docs_count,
)

NODES_FIELD = "nodes"
COUNT_FIELD = "count"
TOTAL_FIELD = "total"
JVM_FIELD = "jvm"
BYTES_IN_GB = 1024 * 1024 * 1024

_HEALTH_INT_FIELDS = (
    "number_of_nodes",
    "active_primary_shards",
    "active_shards",
    "unassigned_shards",
    "relocating_shards",
    "initializing_shards",
    "delayed_unassigned_shards",
    "number_of_pending_tasks",
    "number_of_in_flight_fetch",
    "task_max_waiting_in_queue_millis",
)

_NODE_ROLE_COUNTS = (
    ("data", "data_nodes"),
    ("master", "master_nodes"),
    ("ingest", "ingest_nodes"),
    ("coordinating_only", "coordinating_nodes"),
)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


@dataclass
class ClusterInfo:
    """Cluster health as reported by the cluster."""

    cluster_name: str = EMPTY_STRING
    status: str = EMPTY_STRING
    number_of_nodes: int = 0
    active_primary_shards: int = 0
    active_shards: int = 0
    unassigned_shards: int = 0
    relocating_shards: int = 0
    initializing_shards: int = 0
    delayed_unassigned_shards: int = 0
    number_of_pending_tasks: int = 0
    number_of_in_flight_fetch: int = 0
    task_max_waiting_in_queue_millis: int = 0
    active_shards_percent_as_number: float = 0.0
    timed_out: bool = False
    timestamp: Optional[datetime] = None


@dataclass
class ClusterStats:
    """Cluster-wide counts and resource usage."""

    cluster_name: str = EMPTY_STRING
    status: str = EMPTY_STRING
    total_nodes: int = 0
    data_nodes: int = 0
    master_nodes: int = 0
    ingest_nodes: int = 0
    coordinating_nodes: int = 0
    jvm_versions: list[str] = field(default_factory=list)
    es_version: str = EMPTY_STRING
    total_indices: int = 0
    total_documents: int = 0
    total_shards: int = 0
    primary_shards: int = 0
    used_disk_bytes: int = 0
    avg_shard_size_gb: float = 0.0
    used_heap_bytes: int = 0
    total_heap_bytes: int = 0
    used_memory_bytes: int = 0
    total_memory_bytes: int = 0
    total_disk_bytes: int = 0
    available_disk_bytes: int = 0
    heap_usage_percent: float = 0.0
    memory_usage_percent: float = 0.0
    disk_usage_percent: float = 0.0

    def node_breakdown(self) -> str:
        """Describe how many nodes hold each role."""
        return (
            f"{self.data_nodes} data, {self.master_nodes} master, "
            f"{self.ingest_nodes} ingest, {self.coordinating_nodes} coordinating"
        )


def _parse_health(health_data: Mapping[str, Any]) -> ClusterInfo:
    info = ClusterInfo()
    for key in ("cluster_name", "status"):
        value = health_data.get(key)
        if isinstance(value, str):
            setattr(info, key, value)
    for key in _HEALTH_INT_FIELDS:
        value = _number(health_data.get(key))
        if value is not None:
            setattr(info, key, int(value))
    percent = _number(health_data.get("active_shards_percent_as_number"))
    if percent is not None:
        info.active_shards_percent_as_number = float(percent)
    timed_out = health_data.get("timed_out")
    if isinstance(timed_out, bool):
        info.timed_out = timed_out
    return info


class ClusterService:
    """Reads cluster health and statistics."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_cluster_health(self) -> ClusterInfo:
        """Return the current cluster health."""
        try:
            health_data = self.client.get_cluster_health()
        except Exception as exc:
            raise EscopeError(f"cluster health request failed: {exc}") from exc
        return _parse_health(health_data)

    def get_cluster_stats(self) -> ClusterStats:
        """Combine cluster stats, health and node stats into one summary."""
        try:
            cluster_stats = self.client.get_cluster_stats()
        except Exception as exc:
            raise EscopeError(f"cluster stats request failed: {exc}") from exc
        try:
            health_data = self.client.get_cluster_health()
        except Exception as exc:
            raise EscopeError(f"cluster health request failed: {exc}") from exc
        try:
            nodes_stats = self.client.get_nodes_stats()
        except Exception as exc:
            raise EscopeError(f"node stats request failed: {exc}") from exc

        stats = ClusterStats()
        _parse_basic_info(health_data, stats)
        _parse_node_info(cluster_stats, stats)
        _parse_indices_data(cluster_stats, stats)
        _parse_version_info(cluster_stats, stats)
        _parse_resource_usage(nodes_stats, stats)

        stats.heap_usage_percent = calculate_percentage(stats.used_heap_bytes, stats.total_heap_bytes)
        stats.memory_usage_percent = calculate_percentage(
            stats.used_memory_bytes, stats.total_memory_bytes
        )
        used_disk = stats.total_disk_bytes - stats.available_disk_bytes
        stats.disk_usage_percent = calculate_percentage(used_disk, stats.total_disk_bytes)
        return stats


def _parse_basic_info(health_data: Mapping[str, Any], stats: ClusterStats) -> None:
    for key in ("cluster_name", "status"):
        value = health_data.get(key)
        if isinstance(value, str):
            setattr(stats, key, value)


def _parse_node_info(cluster_stats: Mapping[str, Any], stats: ClusterStats) -> None:
    nodes = _dict(cluster_stats.get(NODES_FIELD))
    if nodes is None:
        return

    count = _dict(nodes.get(COUNT_FIELD))
    if count is not None:
        total = _number(count.get(TOTAL_FIELD))
        if total is not None:
            stats.total_nodes = int(total)
        for key, attribute in _NODE_ROLE_COUNTS:
            value = _number(count.get(key))
            if value is not None:
                setattr(stats, attribute, int(value))

    jvm = _dict(nodes.get(JVM_FIELD))
    versions = jvm.get("versions") if jvm else None
    if isinstance(versions, list):
        stats.jvm_versions.extend(
            entry["version"]
            for entry in versions
            if isinstance(entry, dict) and isinstance(entry.get("version"), str)
        )


def _parse_indices_data(cluster_stats: Mapping[str, Any], stats: ClusterStats) -> None:
    indices = _dict(cluster_stats.get("indices"))
    if indices is None:
        return

    count = _number(indices.get("count"))
    if count is not None:
        stats.total_indices = int(count)

    docs = _dict(indices.get("docs"))
    if docs is not None:
        doc_count = _number(docs.get("count"))
        if doc_count is not None:
            stats.total_documents = int(doc_count)

    shards = _dict(indices.get("shards"))
    if shards is not None:
        total = _number(shards.get("total"))
        if total is not None:
            stats.total_shards = int(total)
        primaries = _number(shards.get("primaries"))
        if primaries is not None:
            stats.primary_shards = int(primaries)

    store = _dict(indices.get("store"))
    if store is not None:
        size = _number(store.get("size_in_bytes"))
        if size is not None:
            stats.used_disk_bytes = int(size)
            if stats.total_shards > 0:
                stats.avg_shard_size_gb = size / stats.total_shards / BYTES_IN_GB


def _parse_version_info(cluster_stats: Mapping[str, Any], stats: ClusterStats) -> None:
    nodes = _dict(cluster_stats.get("nodes"))
    versions = nodes.get("versions") if nodes else None
    if isinstance(versions, list) and versions and isinstance(versions[0], str):
        stats.es_version = versions[0]


def _add(stats: ClusterStats, attribute: str, value: Any) -> None:
    number = _number(value)
    if number is not None:
        setattr(stats, attribute, getattr(stats, attribute) + int(number))


def _parse_resource_usage(nodes_stats: Mapping[str, Any], stats: ClusterStats) -> None:
    nodes = _dict(nodes_stats.get("nodes"))
    if nodes is None:
        return

    for node in nodes.values():
        if not isinstance(node, dict):
            continue

        jvm = _dict(node.get("jvm"))
        heap = _dict(jvm.get("mem")) if jvm else None
        if heap is not None:
            _add(stats, "used_heap_bytes", heap.get("heap_used_in_bytes"))
            _add(stats, "total_heap_bytes", heap.get("heap_max_in_bytes"))

        os_block = _dict(node.get("os"))
        memory = _dict(os_block.get("mem")) if os_block else None
        if memory is not None:
            _add(stats, "total_memory_bytes", memory.get("total_in_bytes"))
            _add(stats, "used_memory_bytes", memory.get("used_in_bytes"))

        fs = _dict(node.get("fs"))
        disk = _dict(fs.get("total")) if fs else None
        if disk is not None:
            _add(stats, "total_disk_bytes", disk.get("total_in_bytes"))
            _add(stats, "available_disk_bytes", disk.get("available_in_bytes"))


def format_cluster_stats(stats: ClusterStats) -> str:
    """Render cluster statistics as a header and three tables."""
    used_disk = stats.total_disk_bytes - stats.available_disk_bytes
    resource_rows = [
        [
            "Storage",
            format_bytes(used_disk),
            format_bytes(stats.total_disk_bytes),
            f"{stats.disk_usage_percent:.1f}%",
        ],
        [
            "Heap Memory",
            format_bytes(stats.used_heap_bytes),
            format_bytes(stats.total_heap_bytes),
            f"{stats.heap_usage_percent:.1f}%",
        ],
        [
            "System Memory",
            format_bytes(stats.used_memory_bytes),
            format_bytes(stats.total_memory_bytes),
            f"{stats.memory_usage_percent:.1f}%",
        ],
    ]
    cluster_rows = [
        ["Nodes", f"{stats.total_nodes} ({stats.node_breakdown()})"],
        ["Indices", str(stats.total_indices)],
        ["Documents", format_docs_count(stats.total_documents)],
        ["Primary Shards", str(stats.primary_shards)],
        ["Total Shards", str(stats.total_shards)],
        ["Avg Shard Size", f"{stats.avg_shard_size_gb:.2f} GB"],
    ]
    jvm_versions = ", ".join(stats.jvm_versions) if stats.jvm_versions else "N/A"
    system_rows = [
        ["ES Version", stats.es_version],
        ["JVM Versions", jvm_versions],
    ]

    return "".join(
        [
            f"Cluster: {stats.cluster_name} ({stats.status})\n\n",
            format_table(["Resource", "Used", "Total", "Usage %"], resource_rows),
            "\n",
            format_table(["Metric", "Value"], cluster_rows),
            "\n",
            format_table(["System Info", "Value"], system_rows),
        ]
    )