"""JVM heap and garbage collection statistics per node, and their rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from escope.formatting import format_table
from escope.stats import ElasticClient
from escope.util import (
    DASH_STRING,
    EMPTY_STRING,
    HUNDRED_MULTIPLIER,
    EscopeError,
    calculate_percentage,
    format_bytes,
    format_docs_count,
)

NODES_FIELD = "nodes"
NAME_FIELD = "name"
JVM_FIELD = "jvm"
MEM_FIELD = "mem"
GC_FIELD = "gc"
POOLS_FIELD = "pools"
COLLECTORS_FIELD = "collectors"
HEAP_USED_IN_BYTES_FIELD = "heap_used_in_bytes"
HEAP_MAX_IN_BYTES_FIELD = "heap_max_in_bytes"
USED_IN_BYTES_FIELD = "used_in_bytes"
COLLECTION_COUNT_FIELD = "collection_count"
COLLECTION_TIME_IN_MILLIS_FIELD = "collection_time_in_millis"

GC_YOUNG = "young"
GC_SURVIVOR = "survivor"
GC_OLD = "old"
GC_G1_CONCURRENT = "G1 Concurrent GC"

MILLISECONDS_TO_SECONDS = 1000
UPTIME_SECONDS = 3600.0

LOW_MEMORY_PRESSURE = 60.0
MEDIUM_MEMORY_PRESSURE = 80.0
MEMORY_PRESSURE_LOW = "Low"
MEMORY_PRESSURE_MEDIUM = "Medium"
MEMORY_PRESSURE_HIGH = "High"

HIGH_USAGE_PERCENT = 80
MEDIUM_USAGE_PERCENT = 60

NO_GC_INFO_MESSAGE = "No GC information found\n"
ZERO_GC_METRICS = "0 count / 0ms total (0ms avg)"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


@dataclass
class MemorySpace:
    """Used and maximum bytes of one heap region."""

    used: int = 0
    max: int = 0
    percent: float = 0.0
    used_str: str = EMPTY_STRING
    max_str: str = EMPTY_STRING


@dataclass
class GCMetrics:
    """Collection count and time of one collector."""

    count: int = 0
    total_time: int = 0
    avg_time: float = 0.0
    count_str: str = EMPTY_STRING
    total_time_str: str = EMPTY_STRING
    avg_time_str: str = EMPTY_STRING


@dataclass
class GCPerformance:
    """Derived collection frequency, throughput and memory pressure."""

    frequency: float = 0.0
    frequency_str: str = EMPTY_STRING
    throughput: float = 0.0
    throughput_str: str = EMPTY_STRING
    memory_pressure: str = EMPTY_STRING


@dataclass
class GCInfo:
    """Heap regions and collectors of one node."""

    node_name: str
    eden_space: MemorySpace = field(default_factory=MemorySpace)
    survivor_space: MemorySpace = field(default_factory=MemorySpace)
    old_generation: MemorySpace = field(default_factory=MemorySpace)
    total_heap: MemorySpace = field(default_factory=MemorySpace)
    young_gc: GCMetrics = field(default_factory=GCMetrics)
    old_gc: GCMetrics = field(default_factory=GCMetrics)
    full_gc: GCMetrics = field(default_factory=GCMetrics)
    performance: GCPerformance = field(default_factory=GCPerformance)


def format_duration(milliseconds: int) -> str:
    """Render milliseconds, switching to seconds from one second up."""
    if milliseconds < MILLISECONDS_TO_SECONDS:
        return f"{milliseconds}ms"
    return f"{milliseconds / MILLISECONDS_TO_SECONDS:.1f}s"


def calculate_memory_pressure(heap_percent: float) -> str:
    """Classify heap usage as low, medium or high pressure."""
    if heap_percent < LOW_MEMORY_PRESSURE:
        return MEMORY_PRESSURE_LOW
    if heap_percent < MEDIUM_MEMORY_PRESSURE:
        return MEMORY_PRESSURE_MEDIUM
    return MEMORY_PRESSURE_HIGH


def _parse_pool(space: MemorySpace, pool: Mapping[str, Any]) -> None:
    used = _number(pool.get(USED_IN_BYTES_FIELD))
    if used is not None:
        space.used = int(used)
        space.used_str = format_bytes(int(used))
    maximum = _number(pool.get(HEAP_MAX_IN_BYTES_FIELD))
    if maximum is not None:
        space.max = int(maximum)
        space.max_str = format_bytes(int(maximum))
    if space.max > 0:
        space.percent = calculate_percentage(space.used, space.max)


def _parse_memory(info: GCInfo, mem: Mapping[str, Any]) -> None:
    heap = info.total_heap
    used = _number(mem.get(HEAP_USED_IN_BYTES_FIELD))
    if used is not None:
        heap.used = int(used)
        heap.used_str = format_bytes(int(used))
    else:
        heap.used_str = DASH_STRING
    maximum = _number(mem.get(HEAP_MAX_IN_BYTES_FIELD))
    if maximum is not None:
        heap.max = int(maximum)
        heap.max_str = format_bytes(int(maximum))
    else:
        heap.max_str = DASH_STRING
    if heap.max > 0:
        heap.percent = calculate_percentage(heap.used, heap.max)

    pools = _dict(mem.get(POOLS_FIELD))
    if pools is None:
        for space in (info.eden_space, info.survivor_space, info.old_generation):
            space.used_str = DASH_STRING
            space.max_str = DASH_STRING
        return

    spaces = {
        GC_YOUNG: info.eden_space,
        GC_SURVIVOR: info.survivor_space,
        GC_OLD: info.old_generation,
    }
    for pool_name, pool in pools.items():
        space = spaces.get(pool_name)
        if space is not None and isinstance(pool, dict):
            _parse_pool(space, pool)


def _parse_collector(metrics: GCMetrics, collector: Mapping[str, Any]) -> None:
    count = _number(collector.get(COLLECTION_COUNT_FIELD))
    if count is not None:
        metrics.count = int(count)
        metrics.count_str = format_docs_count(int(count))
    total = _number(collector.get(COLLECTION_TIME_IN_MILLIS_FIELD))
    if total is not None:
        metrics.total_time = int(total)
        metrics.total_time_str = format_duration(int(total))
    if metrics.count > 0:
        metrics.avg_time = metrics.total_time / metrics.count
        metrics.avg_time_str = format_duration(int(metrics.avg_time))


def _parse_gc(info: GCInfo, gc: Mapping[str, Any]) -> None:
    collectors = _dict(gc.get(COLLECTORS_FIELD))
    if collectors is not None:
        targets = {
            GC_YOUNG: info.young_gc,
            GC_OLD: info.old_gc,
            GC_G1_CONCURRENT: info.full_gc,
        }
        for name, collector in collectors.items():
            metrics = targets.get(name)
            if metrics is not None and isinstance(collector, dict):
                _parse_collector(metrics, collector)

    for metrics in (info.young_gc, info.old_gc, info.full_gc):
        if metrics.count_str == EMPTY_STRING:
            metrics.count_str = DASH_STRING
            metrics.total_time_str = DASH_STRING


def _calculate_performance(info: GCInfo) -> None:
    perf = info.performance
    collectors = (info.young_gc, info.old_gc, info.full_gc)
    total_count = sum(metrics.count for metrics in collectors)
    total_time = sum(metrics.total_time for metrics in collectors)

    perf.frequency = total_count / UPTIME_SECONDS
    perf.frequency_str = f"{perf.frequency:.2f}/s"

    throughput = (
        (UPTIME_SECONDS - total_time / MILLISECONDS_TO_SECONDS) / UPTIME_SECONDS * HUNDRED_MULTIPLIER
    )
    perf.throughput = max(throughput, 0.0)
    perf.throughput_str = f"{perf.throughput:.1f}%"

    perf.memory_pressure = calculate_memory_pressure(info.total_heap.percent)


def _parse_node(node_id: str, node: Mapping[str, Any]) -> GCInfo:
    name = node.get(NAME_FIELD)
    info = GCInfo(node_name=name if isinstance(name, str) else node_id)
    jvm = _dict(node.get(JVM_FIELD))
    if jvm is not None:
        mem = _dict(jvm.get(MEM_FIELD))
        if mem is not None:
            _parse_memory(info, mem)
        gc = _dict(jvm.get(GC_FIELD))
        if gc is not None:
            _parse_gc(info, gc)
    _calculate_performance(info)
    return info


class GCService:
    """Reads heap and garbage collection statistics of nodes."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def _nodes(self) -> dict:
        try:
            stats_data = self.client.get_nodes_stats()
        except Exception as exc:
            raise EscopeError(f"failed to get node stats: {exc}") from exc
        return _dict(stats_data.get(NODES_FIELD)) or {}

    def get_gc_info(self) -> list[GCInfo]:
        """Return GC statistics for every node."""
        return [
            _parse_node(node_id, node)
            for node_id, node in self._nodes().items()
            if isinstance(node, dict)
        ]

    def get_gc_info_for_node(self, node_name: str) -> GCInfo:
        """Return GC statistics of the node with the given name."""
        for node_id, node in self._nodes().items():
            if isinstance(node, dict) and node.get(NAME_FIELD) == node_name:
                return _parse_node(node_id, node)
        raise EscopeError(f"node not found: {node_name}")


def format_gc_table(gc_infos: Sequence[GCInfo]) -> str:
    """Render heap usage per node, highest first, with a usage summary."""
    if not gc_infos:
        return NO_GC_INFO_MESSAGE

    ordered = sorted(gc_infos, key=lambda info: info.total_heap.percent, reverse=True)
    high = sum(1 for info in ordered if info.total_heap.percent >= HIGH_USAGE_PERCENT)
    medium = sum(
        1
        for info in ordered
        if MEDIUM_USAGE_PERCENT <= info.total_heap.percent < HIGH_USAGE_PERCENT
    )
    total = len(ordered)
    low = total - high - medium

    rows = [
        [f"{info.total_heap.percent:.1f}%", info.performance.memory_pressure, info.node_name]
        for info in ordered
    ]
    parts = [
        format_table(["Heap Usage %", "Memory Pressure", "Name"], rows),
        f"Total Nodes: {total}\n",
        f"High Usage (≥80%): {high} ({high / total * 100:.1f}%)\n",
        f"Medium Usage (60-79%): {medium} ({medium / total * 100:.1f}%)\n",
        f"Low Usage (<60%): {low} ({low / total * 100:.1f}%)\n",
        "\nUse '--name=<node_name>' for detailed information about a specific node.\n",
    ]
    return "".join(parts)


def _format_space(space: MemorySpace) -> str:
    return f"{space.used_str} / {space.max_str}"


def _format_metrics(metrics: GCMetrics) -> str:
    if metrics.count == 0:
        return ZERO_GC_METRICS
    return f"{metrics.count_str} count / {metrics.total_time_str} total ({metrics.avg_time_str} avg)"


def format_gc_details(gc_info: GCInfo) -> str:
    """Render the heap regions, collectors and performance of one node."""
    perf = gc_info.performance
    return "".join(
        [
            "Heap Memory:\n",
            f"  Eden Space:     {_format_space(gc_info.eden_space)}\n",
            f"  Survivor Space: {_format_space(gc_info.survivor_space)}\n",
            f"  Old Generation: {_format_space(gc_info.old_generation)}\n",
            f"  Total Heap:     {_format_space(gc_info.total_heap)}\n\n",
            "GC Statistics:\n",
            f"  Young GC:       {_format_metrics(gc_info.young_gc)}\n",
            f"  Old GC:         {_format_metrics(gc_info.old_gc)}\n",
            f"  Full GC:        {_format_metrics(gc_info.full_gc)}\n\n",
            "Performance:\n",
            f"  GC Frequency:   {perf.frequency_str}\n",
            f"  GC Throughput:  {perf.throughput_str}\n",
            f"  Memory Pressure: {perf.memory_pressure}\n",
        ]
    )