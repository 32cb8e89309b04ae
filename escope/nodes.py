"""Node information, shard load per node, role breakdown and node health."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from escope.shards import BALANCE_RATIO_THRESHOLD, MSG_CONSIDER_REBALANCING, SHARD_STATE_STARTED
from escope.stats import ElasticClient
from escope.util import (
    DASH_STRING,
    EMPTY_STRING,
    HUNDRED_MULTIPLIER,
    PRIMARY_SHORT_STRING,
    EscopeError,
    calculate_percentage,
    format_bytes,
    parse_percent_string,
    parse_size,
)

ZERO_PERCENT_STRING = "0%"
HEALTHY_STRING = "Healthy"
WARNING_STRING = "Warning"

NODE_ROLE_DATA = "data"
NODE_ROLE_MASTER = "master"
NODE_ROLE_INGEST = "ingest"

HIGH_CPU_THRESHOLD = 80.0
HIGH_MEMORY_THRESHOLD = 85.0
HIGH_HEAP_THRESHOLD = 85.0
HIGH_DISK_THRESHOLD = 85.0

MSG_NO_NODES_FOUND = "No nodes found"
MSG_NODE_BALANCE_GOOD = "Node balance is good"
MSG_HIGH_CPU_USAGE = "High CPU usage"
MSG_HIGH_MEMORY_USAGE = "High memory usage"
MSG_HIGH_HEAP_USAGE = "High heap usage"
MSG_HIGH_DISK_USAGE = "High disk usage"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _percent(value: float) -> str:
    return f"{value:.1f}%"


@dataclass
class NodeInfo:
    """Identity and resource usage of one node, ready for display."""

    name: str = EMPTY_STRING
    ip: str = EMPTY_STRING
    roles: list[str] = field(default_factory=list)
    cpu_percent: str = ZERO_PERCENT_STRING
    mem_percent: str = ZERO_PERCENT_STRING
    heap_percent: str = ZERO_PERCENT_STRING
    disk_avail: str = DASH_STRING
    disk_total: str = DASH_STRING
    disk_percent: str = EMPTY_STRING
    documents: int = 0
    heap_used: str = DASH_STRING
    heap_max: str = DASH_STRING


@dataclass
class NodeStat:
    """Started shards held by one node."""

    node_ip: str
    primary_shards: int = 0
    replica_shards: int = 0
    total_shards: int = 0
    total_size: int = 0
    index_count: int = 0


@dataclass
class NodeBreakdown:
    """Number of nodes holding each role."""

    data_nodes: int = 0
    master_nodes: int = 0
    ingest_nodes: int = 0
    coordinating_nodes: int = 0


@dataclass
class BalanceAnalysis:
    """How evenly shards are spread over nodes."""

    most_loaded_node: str = EMPTY_STRING
    least_loaded_node: str = EMPTY_STRING
    max_shards: int = 0
    min_shards: int = 0
    balance_ratio: float = 0.0
    is_balanced: bool = False
    recommendation: str = EMPTY_STRING


@dataclass
class NodeHealth:
    """Resource usage of a node judged against thresholds."""

    node_name: str
    status: str = HEALTHY_STRING
    is_healthy: bool = True
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    heap_usage: float = 0.0
    disk_usage: float = 0.0
    issues: list[str] = field(default_factory=list)


@dataclass
class _NodeLoad:
    primary_shards: int = 0
    replica_shards: int = 0
    total_shards: int = 0
    total_size: int = 0
    indices: set[str] = field(default_factory=set)


def _build_node_info(node: Mapping[str, Any], stats: Optional[Mapping[str, Any]]) -> NodeInfo:
    name = node.get("name")
    ip = node.get("ip")
    roles = node.get("roles")
    info = NodeInfo(
        name=name if isinstance(name, str) else EMPTY_STRING,
        ip=ip if isinstance(ip, str) else EMPTY_STRING,
        roles=[role for role in roles if isinstance(role, str)] if isinstance(roles, list) else [],
    )
    if stats is None:
        return info

    jvm = _dict(stats.get("jvm"))
    heap = _dict(jvm.get("mem")) if jvm else None
    if heap is not None:
        used = _number(heap.get("heap_used_in_bytes"))
        if used is not None:
            info.heap_used = format_bytes(int(used))
        heap_max = _number(heap.get("heap_max_in_bytes"))
        if heap_max is not None:
            info.heap_max = format_bytes(int(heap_max))
        heap_percent = _number(heap.get("heap_used_percent"))
        if heap_percent is not None:
            info.heap_percent = _percent(heap_percent)

    fs = _dict(stats.get("fs"))
    disk = _dict(fs.get("total")) if fs else None
    if disk is not None:
        total = _number(disk.get("total_in_bytes"))
        if total is not None:
            info.disk_total = format_bytes(int(total))
        available = _number(disk.get("available_in_bytes"))
        if available is not None:
            info.disk_avail = format_bytes(int(available))
            if total is not None:
                used_bytes = int(total - available)
                info.disk_percent = _percent(calculate_percentage(used_bytes, int(total)))

    process = _dict(stats.get("process"))
    cpu = _dict(process.get("cpu")) if process else None
    if cpu is not None:
        cpu_percent = _number(cpu.get("percent"))
        if cpu_percent is not None:
            info.cpu_percent = _percent(cpu_percent)

    os_block = _dict(stats.get("os"))
    memory = _dict(os_block.get("mem")) if os_block else None
    if memory is not None:
        used_percent = _number(memory.get("used_percent"))
        if used_percent is not None:
            info.mem_percent = _percent(used_percent)

    indices = _dict(stats.get("indices"))
    docs = _dict(indices.get("docs")) if indices else None
    if docs is not None:
        count = _number(docs.get("count"))
        if count is not None:
            info.documents = int(count)

    return info


def _percent_value(text: str) -> Optional[float]:
    if text in (EMPTY_STRING, ZERO_PERCENT_STRING):
        return None
    try:
        return parse_percent_string(text)
    except ValueError:
        return None


def _judge(node: NodeInfo) -> NodeHealth:
    health = NodeHealth(node_name=node.name)

    def flag(message: str) -> None:
        health.is_healthy = False
        health.issues.append(message)

    cpu = _percent_value(node.cpu_percent)
    if cpu is not None:
        health.cpu_usage = cpu
        if cpu > HIGH_CPU_THRESHOLD:
            flag(MSG_HIGH_CPU_USAGE)

    memory = _percent_value(node.mem_percent)
    if memory is not None:
        health.memory_usage = memory
        if memory > HIGH_MEMORY_THRESHOLD:
            flag(MSG_HIGH_MEMORY_USAGE)

    heap = _percent_value(node.heap_percent)
    if heap is not None:
        health.heap_usage = heap
        if heap > HIGH_HEAP_THRESHOLD:
            flag(MSG_HIGH_HEAP_USAGE)

    unknown = (EMPTY_STRING, DASH_STRING)
    if node.disk_avail not in unknown and node.disk_total not in unknown:
        available = parse_size(node.disk_avail)
        total = parse_size(node.disk_total)
        if total > 0:
            health.disk_usage = (total - available) / total * HUNDRED_MULTIPLIER
            if health.disk_usage > HIGH_DISK_THRESHOLD:
                flag(MSG_HIGH_DISK_USAGE)

    if not health.is_healthy:
        health.status = WARNING_STRING
    return health


class NodeService:
    """Reads node information and derives load, roles and health."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_nodes_info(self) -> list[NodeInfo]:
        """Return every node with its resource usage."""
        try:
            info_data = self.client.get_nodes_info()
        except Exception as exc:
            raise EscopeError(f"node info request failed: {exc}") from exc
        try:
            stats_data = self.client.get_nodes_stats()
        except Exception as exc:
            raise EscopeError(f"node stats request failed: {exc}") from exc

        nodes = _dict(info_data.get("nodes"))
        if nodes is None:
            return []
        stats_nodes = _dict(stats_data.get("nodes")) or {}
        return [
            _build_node_info(node, _dict(stats_nodes.get(node_id)))
            for node_id, node in nodes.items()
            if isinstance(node, dict)
        ]

    def get_node_stats(self) -> list[NodeStat]:
        """Count started shards per node, largest total size first."""
        try:
            rows = self.client.get_shards()
        except Exception as exc:
            raise EscopeError(f"shard info request failed: {exc}") from exc

        loads: dict[str, _NodeLoad] = {}
        for row in rows if isinstance(rows, list) else []:
            if not isinstance(row, dict):
                continue
            values = {
                key: row.get(key) if isinstance(row.get(key), str) else EMPTY_STRING
                for key in ("index", "prirep", "state", "node", "store")
            }
            node = values["node"]
            if values["state"] != SHARD_STATE_STARTED or node == DASH_STRING:
                continue
            load = loads.setdefault(node, _NodeLoad())
            if values["prirep"] == PRIMARY_SHORT_STRING:
                load.primary_shards += 1
            else:
                load.replica_shards += 1
            load.total_shards += 1
            load.indices.add(values["index"])
            load.total_size += parse_size(values["store"])

        stats = [
            NodeStat(
                node_ip=node,
                primary_shards=load.primary_shards,
                replica_shards=load.replica_shards,
                total_shards=load.total_shards,
                total_size=load.total_size,
                index_count=len(load.indices),
            )
            for node, load in loads.items()
        ]
        stats.sort(key=lambda stat: stat.total_size, reverse=True)
        return stats

    def analyze_node_balance(self) -> BalanceAnalysis:
        """Compare the most and least loaded nodes by shard count."""
        try:
            stats = self.get_node_stats()
        except EscopeError as exc:
            raise EscopeError(f"failed to get node stats: {exc}") from exc

        if not stats:
            return BalanceAnalysis(is_balanced=True, recommendation=MSG_NO_NODES_FOUND)

        stats.sort(key=lambda stat: stat.total_shards, reverse=True)
        most, least = stats[0], stats[-1]
        ratio = least.total_shards / most.total_shards
        balanced = ratio >= BALANCE_RATIO_THRESHOLD
        return BalanceAnalysis(
            most_loaded_node=most.node_ip,
            least_loaded_node=least.node_ip,
            max_shards=most.total_shards,
            min_shards=least.total_shards,
            balance_ratio=ratio,
            is_balanced=balanced,
            recommendation=MSG_NODE_BALANCE_GOOD if balanced else MSG_CONSIDER_REBALANCING,
        )

    def get_node_breakdown(self) -> NodeBreakdown:
        """Count nodes per role; nodes with none of them are coordinating."""
        try:
            nodes = self.get_nodes_info()
        except EscopeError as exc:
            raise EscopeError(f"failed to get node info: {exc}") from exc

        breakdown = NodeBreakdown()
        for node in nodes:
            has_role = False
            for role in node.roles:
                if role == NODE_ROLE_DATA:
                    breakdown.data_nodes += 1
                elif role == NODE_ROLE_MASTER:
                    breakdown.master_nodes += 1
                elif role == NODE_ROLE_INGEST:
                    breakdown.ingest_nodes += 1
                else:
                    continue
                has_role = True
            if not has_role:
                breakdown.coordinating_nodes += 1
        return breakdown

    def get_node_health(self) -> list[NodeHealth]:
        """Judge each node's CPU, memory, heap and disk usage."""
        try:
            nodes = self.get_nodes_info()
        except EscopeError as exc:
            raise EscopeError(f"failed to get node info: {exc}") from exc
        return [_judge(node) for node in nodes]