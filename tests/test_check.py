import pytest

from escope.check import (
    HIGH_SEGMENT_THRESHOLD,
    LARGE_SEGMENT_THRESHOLD,
    SMALL_SEGMENT_THRESHOLD,
    CheckService,
)
from escope.shards import BALANCE_RATIO_THRESHOLD
from escope.util import EscopeError


class FakeClient:
    def __init__(self, **responses):
        self.responses = responses

    def _get(self, name):
        value = self.responses.get(name)
        if isinstance(value, Exception):
            raise value
        return value

    def get_cluster_health(self):
        return self._get("health")

    def get_cluster_stats(self):
        return self._get("cluster_stats")

    def get_nodes_info(self):
        return self._get("nodes_info")

    def get_nodes_stats(self):
        return self._get("nodes_stats")

    def get_indices(self):
        return self._get("indices")

    def get_shards(self):
        return self._get("shards")

    def get_index_stats(self, index_name):
        return self._get("index_stats")

    def get_termvectors(self, index_name, document_id, fields):
        return self._get("termvectors")


NODES_STATS = {
    "nodes": {
        "n1": {
            "name": "alpha",
            "os": {"cpu": {"percent": 40}},
            "jvm": {"mem": {"heap_used_percent": 70}},
            "fs": {"total": {"total_in_bytes": 1000, "available_in_bytes": 400}},
        },
        "n2": {
            "name": "beta",
            "os": {"cpu": {"percent": 60}},
            "jvm": {"mem": {"heap_used_percent": 90}},
            "fs": {"total": {"total_in_bytes": 3000, "available_in_bytes": 600}},
        },
    }
}


def test_cluster_health_check_reads_fields():
    client = FakeClient(
        health={
            "cluster_name": "prod",
            "status": "yellow",
            "number_of_nodes": 3,
            "unassigned_shards": 2,
            "delayed_unassigned_shards": 5,
        }
    )
    info = CheckService(client).get_cluster_health_check()
    assert info.cluster_name == "prod"
    assert info.status == "yellow"
    assert info.number_of_nodes == 3
    assert info.unassigned_shards == 2
    assert info.delayed_unassigned_shards == 0
    assert info.timestamp is not None and info.timestamp.year >= 2000


def test_cluster_health_check_error():
    client = FakeClient(health=RuntimeError("down"))
    with pytest.raises(EscopeError):
        CheckService(client).get_cluster_health_check()


def test_node_health_check():
    healths = CheckService(FakeClient(nodes_stats=NODES_STATS)).get_node_health_check()
    by_id = {health.node_id: health for health in healths}
    assert set(by_id) == {"n1", "n2"}
    assert by_id["n1"].name == "alpha"
    assert by_id["n1"].cpu_usage == 40
    assert by_id["n2"].heap_usage == 90


def test_shard_health_check_counts_states():
    shards = [
        {"state": "STARTED"},
        {"state": "STARTED"},
        {"state": "UNASSIGNED"},
        {"state": "RELOCATING"},
        {"state": "INITIALIZING"},
        {"state": "OTHER"},
    ]
    health = CheckService(FakeClient(shards=shards)).get_shard_health_check()
    assert health.started_shards == 2
    assert health.unassigned_shards == 1
    assert health.relocating_shards == 1
    assert health.initializing_shards == 1


def test_shard_warnings_check_counts_and_balance():
    shards = [
        {"state": "STARTED", "node": "a", "ip": "10.0.0.1"},
        {"state": "STARTED", "node": "a", "ip": "10.0.0.1"},
        {"state": "STARTED", "node": "a", "ip": "10.0.0.1"},
        {"state": "STARTED", "node": "-", "ip": "10.0.0.2"},
        {"state": "UNASSIGNED", "node": "", "ip": ""},
    ]
    warnings = CheckService(FakeClient(shards=shards)).get_shard_warnings_check()
    assert warnings.unassigned_shards == 1
    assert warnings.relocating_shards == 0
    assert warnings.unbalanced_ratio == pytest.approx(1 / 3)
    assert warnings.unbalanced_shards == (1 / 3 < BALANCE_RATIO_THRESHOLD)
    assert len(warnings.critical_issues) == 1


def test_shard_warnings_check_error():
    with pytest.raises(EscopeError):
        CheckService(FakeClient(shards=ValueError("x"))).get_shard_warnings_check()


def test_index_health_check():
    rows = [
        {"index": "logs", "health": "green", "status": "open", "docs.count": "10", "store.size": "1kb"}
    ]
    healths = CheckService(FakeClient(indices=rows)).get_index_health_check()
    assert [(h.name, h.health, h.status, h.docs, h.size) for h in healths] == [
        ("logs", "green", "open", "10", "1kb")
    ]


def test_resource_usage_check_averages_and_sums():
    usage = CheckService(FakeClient(nodes_stats=NODES_STATS)).get_resource_usage_check()
    assert usage.node_count == 2
    assert usage.cpu_usage == pytest.approx(50)
    assert usage.heap_usage == pytest.approx(80)
    assert usage.disk_total == 1000 + 3000
    assert usage.disk_available == 400 + 600


def test_resource_usage_check_without_nodes():
    usage = CheckService(FakeClient(nodes_stats={})).get_resource_usage_check()
    assert (usage.node_count, usage.cpu_usage, usage.disk_total) == (0, 0.0, 0)


def test_performance_check():
    stats = {
        "indices": {
            "indexing": {"index_total": 100, "index_time_in_millis": 250},
            "search": {"query_total": 40, "query_time_in_millis": 80},
        }
    }
    perf = CheckService(FakeClient(cluster_stats=stats)).get_performance_check()
    assert perf.index_total == 100
    assert perf.index_time_in_millis == 250
    assert perf.query_total == 40
    assert perf.query_time_in_millis == 80


def test_node_breakdown_delegates_to_node_service():
    info = {
        "nodes": {
            "a": {"name": "a", "roles": ["data", "master"]},
            "b": {"name": "b", "roles": []},
        }
    }
    service = CheckService(FakeClient(nodes_info=info, nodes_stats={"nodes": {}}))
    breakdown = service.get_node_breakdown()
    assert breakdown.data_nodes == 1
    assert breakdown.master_nodes == 1
    assert breakdown.coordinating_nodes == 1


def test_segment_warnings_check():
    many = HIGH_SEGMENT_THRESHOLD + 10
    stats = {
        "indices": {
            "logs": {"total": {"segments": {"count": many, "memory_in_bytes": many * 10}}},
            ".kibana": {"total": {"segments": {"count": many, "memory_in_bytes": 0}}},
            "big": {
                "total": {"segments": {"count": 1, "memory_in_bytes": LARGE_SEGMENT_THRESHOLD * 2}}
            },
            "mid": {
                "total": {"segments": {"count": 1, "memory_in_bytes": SMALL_SEGMENT_THRESHOLD * 2}}
            },
        }
    }
    warnings = CheckService(FakeClient(index_stats=stats)).get_segment_warnings_check()
    assert warnings.high_segment_indices == 1
    assert warnings.small_segment_indices == 1
    assert warnings.large_segment_indices == 1


def test_segment_warnings_check_error():
    with pytest.raises(EscopeError):
        CheckService(FakeClient(index_stats=RuntimeError("x"))).get_segment_warnings_check()