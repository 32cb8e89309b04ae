"""The cluster check report: issues, metrics and recommendations."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from escope.formatting import ReportSection, format_report

REPORT_TITLE = "ESCOPE CLUSTER CHECK ANALYSIS"
HEAP_WARNING_PERCENT = 75
DISK_CRITICAL_PERCENT = 85
TASK_WAIT_WARNING_MILLIS = 1000
YELLOW = "yellow"

_CATEGORY_TITLES = (
    ("SHARD", "SHARD:"),
    ("INDEX", "INDEX:"),
    ("NODE", "NODE:"),
    ("GENERAL", "GENERAL"),
)


def _disk_percent(resource_usage: Any) -> Optional[float]:
    if resource_usage is None or resource_usage.disk_total <= 0:
        return None
    used = resource_usage.disk_total - resource_usage.disk_available
    return used * 100 / resource_usage.disk_total


def _yellow_count(index_healths: Sequence[Any]) -> int:
    return sum(1 for index in index_healths if index.health == YELLOW)


def _critical_issues(cluster, shard_health, shard_warnings, resource_usage) -> list[str]:
    issues = []
    if cluster.unassigned_shards > 0:
        issues.append(f"Unassigned Shards: {cluster.unassigned_shards}")
    if shard_health.unassigned_shards > 0:
        issues.append(f"Unassigned Shards: {shard_health.unassigned_shards}")
    if cluster.delayed_unassigned_shards > 0:
        issues.append(f"Delayed Unassigned Shards: {cluster.delayed_unassigned_shards}")
    disk = _disk_percent(resource_usage)
    if disk is not None and disk > DISK_CRITICAL_PERCENT:
        issues.append(f"High Disk Usage: {disk:.1f}%")
    if cluster.timed_out:
        issues.append("Cluster health check timed out")
    if shard_warnings is not None:
        issues.extend(shard_warnings.critical_issues)
    return issues


def _warning_issues(
    cluster, shard_health, shard_warnings, index_healths, node_healths, resource_usage, segment_warnings
) -> list[str]:
    issues = []
    if cluster.relocating_shards > 0:
        issues.append(f"Relocating Shards: {cluster.relocating_shards}")
    if cluster.initializing_shards > 0:
        issues.append(f"Initializing Shards: {cluster.initializing_shards}")
    if shard_health.relocating_shards > 0:
        issues.append(f"Relocating Shards: {shard_health.relocating_shards}")
    if cluster.number_of_pending_tasks > 0:
        issues.append(f"Pending Tasks: {cluster.number_of_pending_tasks}")
    if cluster.number_of_in_flight_fetch > 0:
        issues.append(f"In Flight Fetch: {cluster.number_of_in_flight_fetch}")
    if cluster.task_max_waiting_in_queue_millis > TASK_WAIT_WARNING_MILLIS:
        issues.append(f"Task Max Waiting: {cluster.task_max_waiting_in_queue_millis}ms")
    if cluster.active_shards_percent_as_number < 100.0:
        issues.append(f"Active Shards Percent: {cluster.active_shards_percent_as_number:.1f}%")

    yellow = _yellow_count(index_healths)
    if yellow > 0:
        issues.append(f"Yellow Indices: {yellow}")

    issues.extend(
        f"High Heap Usage: {node.name} ({node.heap_usage:.1f}%)"
        for node in node_healths
        if node.heap_usage > HEAP_WARNING_PERCENT
    )
    if resource_usage is not None and resource_usage.heap_usage > HEAP_WARNING_PERCENT:
        issues.append(f"High Heap Usage: {resource_usage.heap_usage:.1f}%")

    if shard_warnings is not None:
        issues.extend(shard_warnings.warning_issues)

    if segment_warnings is not None:
        if segment_warnings.high_segment_indices > 0:
            issues.append(
                f"High Segment Count: {segment_warnings.high_segment_indices} "
                "indices with >50 segments"
            )
        if segment_warnings.small_segment_indices > 0:
            issues.append(
                f"Small Segments: {segment_warnings.small_segment_indices} "
                "indices with avg segment size <1MB"
            )
    return issues


def _recommendations(
    cluster, shard_warnings, index_healths, node_healths, resource_usage, segment_warnings
) -> dict[str, list[str]]:
    shard: list[str] = []
    index: list[str] = []
    node: list[str] = []
    general: list[str] = []

    if cluster.unassigned_shards > 0:
        shard.append(
            f"Investigate unassigned shards ({cluster.unassigned_shards}) - "
            "check cluster allocation settings"
        )
    if cluster.relocating_shards > 0:
        shard.append(
            f"Monitor shard relocation progress ({cluster.relocating_shards}) - ensure completion"
        )

    yellow = _yellow_count(index_healths)
    if yellow > 0:
        index.append(
            f"Review yellow indices ({yellow}) - check replica settings and node availability"
        )
    disk = _disk_percent(resource_usage)
    if disk is not None and disk > DISK_CRITICAL_PERCENT:
        index.append("Consider index lifecycle management for disk usage optimization")

    if segment_warnings is not None:
        if segment_warnings.high_segment_indices > 0:
            index.append(
                f"Consider force merge for {segment_warnings.high_segment_indices} "
                "indices with high segment counts (>50 segments)"
            )
        if segment_warnings.small_segment_indices > 0:
            index.append(
                f"Run force merge on {segment_warnings.small_segment_indices} indices with "
                "small segments (<1MB avg) to improve query performance"
            )
        if segment_warnings.large_segment_indices > 0:
            index.append(
                f"{segment_warnings.large_segment_indices} indices have large segments "
                "(>1GB) - good for performance"
            )

    node.extend(
        f"Consider heap tuning for {health.name} - current usage "
        f"{health.heap_usage:.1f}% (threshold: 75%)"
        for health in node_healths
        if health.heap_usage > HEAP_WARNING_PERCENT
    )
    if resource_usage is not None and resource_usage.heap_usage > HEAP_WARNING_PERCENT:
        node.append(
            f"Monitor cluster heap usage - current {resource_usage.heap_usage:.1f}% "
            "(threshold: 75%)"
        )

    general.append("Performance metrics are within acceptable ranges.")
    general.append("Consider implementing monitoring alerts for thresholds.")
    if shard_warnings is not None:
        general.extend(shard_warnings.recommendations)

    return {"SHARD": shard, "INDEX": index, "NODE": node, "GENERAL": general}


def format_check_report(
    cluster_health,
    node_healths,
    shard_health,
    shard_warnings,
    index_healths,
    resource_usage,
    performance,
    node_breakdown,
    segment_warnings,
) -> str:
    """Render the full cluster check report as a boxed text report."""
    node_healths = list(node_healths or [])
    index_healths = list(index_healths or [])
    sections: list[ReportSection] = []

    critical = _critical_issues(cluster_health, shard_health, shard_warnings, resource_usage)
    if critical:
        sections.append(ReportSection(f"CRITICAL ISSUES: {len(critical)}", critical))

    warnings = _warning_issues(
        cluster_health,
        shard_health,
        shard_warnings,
        index_healths,
        node_healths,
        resource_usage,
        segment_warnings,
    )
    if warnings:
        sections.append(ReportSection(f"WARNING ISSUES: {len(warnings)}", warnings))

    metrics = []
    if performance is not None and performance.index_total > 0:
        average = performance.index_time_in_millis / performance.index_total
        metrics.append(f"Average Index Time: {average:.1f}ms")
    if performance is not None and performance.query_total > 0:
        average = performance.query_time_in_millis / performance.query_total
        metrics.append(f"Average Query Time: {average:.1f}ms")
    if resource_usage is not None:
        metrics.append(f"CPU Usage: {resource_usage.cpu_usage:.1f}%")
        metrics.append(f"Memory Usage: {resource_usage.heap_usage:.1f}%")
    if metrics:
        sections.append(ReportSection("PERFORMANCE METRICS", metrics))

    recommendations = _recommendations(
        cluster_health, shard_warnings, index_healths, node_healths, resource_usage, segment_warnings
    )
    for key, title in _CATEGORY_TITLES:
        if recommendations[key]:
            sections.append(ReportSection(title, recommendations[key]))

    return format_report(REPORT_TITLE, sections)