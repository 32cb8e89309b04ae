import pytest

from escope.shards import (
    BALANCE_RATIO_THRESHOLD,
    MSG_CONSIDER_REBALANCING,
    MSG_INITIALIZING_SHARDS,
    MSG_INVESTIGATE_UNASSIGNED,
    MSG_RELOCATING_SHARDS,
    MSG_SHARD_HEALTHY,
    MSG_UNASSIGNED_SHARDS,
    ShardInfo,
    ShardService,
    build_shard_warnings,
)
from escope.util import EscopeError


class FakeClient:
    def __init__(self, rows=None, fail=False):
        self.rows = rows if rows is not None else []
        self.fail = fail

    def get_shards(self):
        if self.fail:
            raise RuntimeError("down")
        return self.rows


def row(index, prirep, state, ip, shard="0", node="node-a"):
    return {
        "index": index,
        "shard": shard,
        "prirep": prirep,
        "state": state,
        "docs.count": "10",
        "store": "1kb",
        "ip": ip,
        "node": node,
    }


def test_get_all_shard_infos_maps_fields():
    service = ShardService(FakeClient([row("logs", "p", "STARTED", "10.0.0.1", shard="3"), "junk"]))
    shards = service.get_all_shard_infos()
    assert shards == [
        ShardInfo(
            index="logs",
            shard="3",
            prirep="p",
            state="STARTED",
            docs="10",
            store="1kb",
            ip="10.0.0.1",
            node="node-a",
        )
    ]


def test_get_all_shard_infos_error_is_wrapped():
    with pytest.raises(EscopeError, match="shards request failed"):
        ShardService(FakeClient(fail=True)).get_all_shard_infos()


def test_distribution_counts_started_shards_only():
    rows = [
        row("logs", "p", "STARTED", "10.0.0.1"),
        row("logs", "r", "STARTED", "10.0.0.2"),
        row("logs", "r", "UNASSIGNED", "-"),
        row("users", "p", "STARTED", "10.0.0.1"),
        row("users", "r", "STARTED", "-"),
    ]
    distribution = ShardService(FakeClient(rows)).get_shard_distribution()
    assert distribution.node_distribution == {"10.0.0.1": 2, "10.0.0.2": 1}
    logs = distribution.index_distribution["logs"]
    assert (logs.primary_shards, logs.replica_shards, logs.total_shards) == (1, 1, 2)
    assert logs.nodes == {"10.0.0.1", "10.0.0.2"}
    users = distribution.index_distribution["users"]
    assert users.total_shards == 2
    assert users.nodes == {"10.0.0.1"}


def test_distribution_propagates_errors():
    with pytest.raises(EscopeError):
        ShardService(FakeClient(fail=True)).get_shard_distribution()


def test_warnings_error_is_wrapped():
    with pytest.raises(EscopeError, match="failed to get shard info"):
        ShardService(FakeClient(fail=True)).get_shard_warnings()


def test_warnings_for_healthy_balanced_cluster():
    rows = [
        row("a", "p", "STARTED", "10.0.0.1"),
        row("a", "r", "STARTED", "10.0.0.2"),
    ]
    warnings = ShardService(FakeClient(rows)).get_shard_warnings()
    assert warnings.critical_issues == []
    assert warnings.warning_issues == []
    assert warnings.recommendations == [MSG_SHARD_HEALTHY]
    assert warnings.unbalanced_ratio == 1.0
    assert warnings.unbalanced_shards is False


def test_warnings_count_problem_states():
    rows = [
        row("a", "p", "UNASSIGNED", "-"),
        row("a", "r", "UNASSIGNED", "-"),
        row("b", "p", "RELOCATING", "10.0.0.1"),
        row("c", "p", "INITIALIZING", "10.0.0.2"),
    ]
    warnings = ShardService(FakeClient(rows)).get_shard_warnings()
    assert (warnings.unassigned_shards, warnings.relocating_shards) == (2, 1)
    assert warnings.initializing_shards == 1
    assert warnings.critical_issues == [MSG_UNASSIGNED_SHARDS.format(2)]
    assert warnings.warning_issues == [
        MSG_RELOCATING_SHARDS.format(1),
        MSG_INITIALIZING_SHARDS.format(1),
    ]
    assert warnings.recommendations == [MSG_INVESTIGATE_UNASSIGNED.format(2)]


def test_build_warnings_detects_imbalance():
    warnings = build_shard_warnings(0, 0, 0, {"n1": 1, "n2": 10})
    assert warnings.unbalanced_ratio == pytest.approx(0.1)
    assert warnings.unbalanced_ratio < BALANCE_RATIO_THRESHOLD
    assert warnings.unbalanced_shards is True
    assert len(warnings.warning_issues) == 1
    assert warnings.recommendations == [MSG_CONSIDER_REBALANCING]


def test_build_warnings_single_node_skips_balance_check():
    warnings = build_shard_warnings(0, 0, 0, {"n1": 50})
    assert warnings.unbalanced_ratio == 0.0
    assert warnings.unbalanced_shards is False
    assert warnings.recommendations == [MSG_SHARD_HEALTHY]


def test_build_warnings_ratio_never_exceeds_one():
    warnings = build_shard_warnings(0, 0, 0, {"n1": 7, "n2": 3, "n3": 5})
    assert 0.0 < warnings.unbalanced_ratio <= 1.0
    assert warnings.unbalanced_shards == (warnings.unbalanced_ratio < BALANCE_RATIO_THRESHOLD)