"""Shard listings, distribution across nodes and shard health warnings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from escope.stats import ElasticClient
from escope.util import DASH_STRING, PRIMARY_SHORT_STRING, EscopeError, get_string_field

SHARD_STATE_STARTED = "STARTED"
SHARD_STATE_INITIALIZING = "INITIALIZING"
SHARD_STATE_RELOCATING = "RELOCATING"
SHARD_STATE_UNASSIGNED = "UNASSIGNED"

BALANCE_RATIO_THRESHOLD = 0.8

MSG_UNASSIGNED_SHARDS = "Unassigned shards: {}"
MSG_INVESTIGATE_UNASSIGNED = "Investigate {} unassigned shards - check allocation settings"
MSG_RELOCATING_SHARDS = "Relocating shards: {}"
MSG_INITIALIZING_SHARDS = "Initializing shards: {}"
MSG_SHARD_UNBALANCED = "Shard distribution is unbalanced (ratio: {:.2f})"
MSG_CONSIDER_REBALANCING = "Consider rebalancing shards across nodes"
MSG_SHARD_HEALTHY = "Shard allocation looks healthy"


@dataclass
class ShardInfo:
    """One row of the shard listing."""

    index: str = ""
    shard: str = ""
    prirep: str = ""
    state: str = ""
    docs: str = ""
    store: str = ""
    ip: str = ""
    node: str = ""


@dataclass
class ShardStat:
    """Started shards of one index and the nodes holding them."""

    index_name: str
    primary_shards: int = 0
    replica_shards: int = 0
    total_shards: int = 0
    nodes: set[str] = field(default_factory=set)


@dataclass
class ShardDistribution:
    """Started shards counted per node and per index."""

    node_distribution: dict[str, int] = field(default_factory=dict)
    index_distribution: dict[str, ShardStat] = field(default_factory=dict)


@dataclass
class ShardWarnings:
    """Shard problems found and what to do about them."""

    unassigned_shards: int = 0
    relocating_shards: int = 0
    initializing_shards: int = 0
    unbalanced_shards: bool = False
    unbalanced_ratio: float = 0.0
    recommendations: list[str] = field(default_factory=list)
    critical_issues: list[str] = field(default_factory=list)
    warning_issues: list[str] = field(default_factory=list)


def build_shard_warnings(
    unassigned: int,
    relocating: int,
    initializing: int,
    node_shard_counts: Mapping[str, int],
) -> ShardWarnings:
    """Turn shard state counts and per-node counts into warnings."""
    warnings = ShardWarnings(
        unassigned_shards=unassigned,
        relocating_shards=relocating,
        initializing_shards=initializing,
    )

    if unassigned > 0:
        warnings.critical_issues.append(MSG_UNASSIGNED_SHARDS.format(unassigned))
        warnings.recommendations.append(MSG_INVESTIGATE_UNASSIGNED.format(unassigned))
    if relocating > 0:
        warnings.warning_issues.append(MSG_RELOCATING_SHARDS.format(relocating))
    if initializing > 0:
        warnings.warning_issues.append(MSG_INITIALIZING_SHARDS.format(initializing))

    if len(node_shard_counts) > 1:
        counts = node_shard_counts.values()
        min_shards, max_shards = min(counts), max(counts)
        if max_shards > 0:
            warnings.unbalanced_ratio = min_shards / max_shards
            if warnings.unbalanced_ratio < BALANCE_RATIO_THRESHOLD:
                warnings.unbalanced_shards = True
                warnings.warning_issues.append(
                    MSG_SHARD_UNBALANCED.format(warnings.unbalanced_ratio)
                )
                warnings.recommendations.append(MSG_CONSIDER_REBALANCING)

    if not warnings.critical_issues and not warnings.warning_issues:
        warnings.recommendations.append(MSG_SHARD_HEALTHY)
    return warnings


class ShardService:
    """Reads shard placement and state from a cluster."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_all_shard_infos(self) -> list[ShardInfo]:
        """Return every shard row."""
        try:
            rows = self.client.get_shards()
        except Exception as exc:
            raise EscopeError(f"shards request failed: {exc}") from exc
        if not isinstance(rows, list):
            return []
        return [
            ShardInfo(
                index=get_string_field(row, "index"),
                shard=get_string_field(row, "shard"),
                prirep=get_string_field(row, "prirep"),
                state=get_string_field(row, "state"),
                docs=get_string_field(row, "docs.count"),
                store=get_string_field(row, "store"),
                ip=get_string_field(row, "ip"),
                node=get_string_field(row, "node"),
            )
            for row in rows
            if isinstance(row, dict)
        ]

    def get_shard_distribution(self) -> ShardDistribution:
        """Count started shards per node address and per index."""
        distribution = ShardDistribution()
        for shard in self.get_all_shard_infos():
            if shard.state != SHARD_STATE_STARTED:
                continue
            if shard.ip != DASH_STRING:
                distribution.node_distribution[shard.ip] = (
                    distribution.node_distribution.get(shard.ip, 0) + 1
                )
            stat = distribution.index_distribution.setdefault(
                shard.index, ShardStat(index_name=shard.index)
            )
            if shard.prirep == PRIMARY_SHORT_STRING:
                stat.primary_shards += 1
            else:
                stat.replica_shards += 1
            stat.total_shards += 1
            if shard.ip != DASH_STRING:
                stat.nodes.add(shard.ip)
        return distribution

    def get_shard_warnings(self) -> ShardWarnings:
        """Report unassigned, moving and unevenly spread shards."""
        try:
            shards = self.get_all_shard_infos()
        except EscopeError as exc:
            raise EscopeError(f"failed to get shard info: {exc}") from exc

        unassigned = relocating = initializing = 0
        node_counts: dict[str, int] = {}
        for shard in shards:
            if shard.state == SHARD_STATE_UNASSIGNED:
                unassigned += 1
            elif shard.state == SHARD_STATE_RELOCATING:
                relocating += 1
            elif shard.state == SHARD_STATE_INITIALIZING:
                initializing += 1
            elif shard.state == SHARD_STATE_STARTED and shard.ip != DASH_STRING:
                node_counts[shard.ip] = node_counts.get(shard.ip, 0) + 1

        return build_shard_warnings(unassigned, relocating, initializing, node_counts)