from types import SimpleNamespace

import pytest

from escope.cluster import ClusterInfo
from escope.report import REPORT_TITLE, format_check_report
from escope.shards import ShardWarnings, build_shard_warnings


def shard_health(unassigned=0, relocating=0):
    return SimpleNamespace(unassigned_shards=unassigned, relocating_shards=relocating)


def resources(cpu=10.0, heap=20.0, disk_total=1000, disk_available=900):
    return SimpleNamespace(
        cpu_usage=cpu, heap_usage=heap, disk_total=disk_total, disk_available=disk_available
    )


def segment_warnings(high=0, small=0, large=0):
    return SimpleNamespace(
        high_segment_indices=high, small_segment_indices=small, large_segment_indices=large
    )


def report(**overrides):
    args = dict(
        cluster_health=ClusterInfo(status="green", active_shards_percent_as_number=100.0),
        node_healths=[],
        shard_health=shard_health(),
        shard_warnings=None,
        index_healths=[],
        resource_usage=None,
        performance=None,
        node_breakdown=None,
        segment_warnings=None,
    )
    args.update(overrides)
    return format_check_report(**args)


def test_healthy_cluster_has_only_general_section():
    output = report()
    assert REPORT_TITLE in output
    assert "GENERAL" in output
    assert "Performance metrics are within acceptable ranges." in output
    assert "CRITICAL ISSUES" not in output
    assert "WARNING ISSUES" not in output


def test_report_is_framed_by_borders():
    lines = report().splitlines()
    assert lines[0].startswith("+") and lines[0].endswith("+")
    assert lines[-1] == lines[0]


def test_unassigned_shards_are_critical():
    cluster = ClusterInfo(unassigned_shards=3, active_shards_percent_as_number=100.0)
    output = report(cluster_health=cluster)
    assert "CRITICAL ISSUES: 1" in output
    assert "Unassigned Shards: 3" in output
    assert "SHARD:" in output
    assert "Investigate unassigned shards (3)" in output


def test_timed_out_is_critical():
    cluster = ClusterInfo(timed_out=True, active_shards_percent_as_number=100.0)
    assert "Cluster health check timed out" in report(cluster_health=cluster)


def test_high_disk_usage_is_critical_and_recommends_ilm():
    output = report(resource_usage=resources(disk_total=1000, disk_available=50))
    assert "High Disk Usage" in output
    assert "Consider index lifecycle management" in output


def test_active_shards_percent_below_hundred_warns():
    cluster = ClusterInfo(active_shards_percent_as_number=50.0)
    output = report(cluster_health=cluster)
    assert "WARNING ISSUES: 1" in output
    assert "Active Shards Percent: 50.0%" in output


def test_yellow_indices_and_heavy_heap_node():
    indices = [SimpleNamespace(health="yellow"), SimpleNamespace(health="green")]
    nodes = [SimpleNamespace(name="node-a", heap_usage=90.0)]
    output = report(index_healths=indices, node_healths=nodes)
    assert "Yellow Indices: 1" in output
    assert "High Heap Usage: node-a (90.0%)" in output
    assert "Consider heap tuning for node-a" in output
    assert "NODE:" in output


def test_segment_warnings_appear():
    output = report(segment_warnings=segment_warnings(high=2, small=1, large=4))
    assert "High Segment Count: 2 indices with >50 segments" in output
    assert "Small Segments: 1 indices with avg segment size <1MB" in output
    assert "4 indices have large segments (>1GB) - good for performance" in output


def test_performance_metrics_section():
    perf = SimpleNamespace(
        index_total=10, index_time_in_millis=20, query_total=0, query_time_in_millis=0
    )
    output = report(performance=perf, resource_usage=resources(cpu=12.5, heap=30.0))
    assert "PERFORMANCE METRICS" in output
    assert "Average Index Time: 2.0ms" in output
    assert "Average Query Time" not in output
    assert "CPU Usage: 12.5%" in output


def test_shard_warnings_are_merged():
    warnings = build_shard_warnings(2, 0, 0, {})
    output = report(shard_warnings=warnings)
    for issue in warnings.critical_issues + warnings.recommendations:
        assert issue in output


def test_empty_shard_warnings_changes_nothing():
    assert report(shard_warnings=ShardWarnings()) == report()


@pytest.mark.parametrize("order", [0, 1])
def test_sections_follow_fixed_order(order):
    cluster = ClusterInfo(unassigned_shards=1, active_shards_percent_as_number=90.0)
    nodes = [SimpleNamespace(name="n", heap_usage=80.0)] if order else []
    output = report(cluster_health=cluster, node_healths=nodes)
    positions = [output.index(title) for title in ("CRITICAL ISSUES", "WARNING ISSUES", "SHARD:", "GENERAL")]
    assert positions == sorted(positions)