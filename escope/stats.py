"""Client protocol and helpers for reading index statistics responses."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

INDICES_FIELD = "indices"
TOTAL_FIELD = "total"
SEGMENTS_FIELD = "segments"
INDEXING_FIELD = "indexing"


@runtime_checkable
class ElasticClient(Protocol):
    """What the services need from a cluster client.

    Every method returns decoded JSON; ``get_indices`` and ``get_shards``
    return the rows of the corresponding cat API as a list of dicts.
    """

    def get_cluster_health(self) -> dict[str, Any]:
        """Return the cluster health document."""

    def get_cluster_stats(self) -> dict[str, Any]:
        """Return the cluster stats document."""

    def get_nodes_info(self) -> dict[str, Any]:
        """Return the nodes info document."""

    def get_nodes_stats(self) -> dict[str, Any]:
        """Return the nodes stats document."""

    def get_indices(self) -> list[dict[str, Any]]:
        """Return one row per index."""

    def get_shards(self) -> list[dict[str, Any]]:
        """Return one row per shard."""

    def get_index_stats(self, index_name: str) -> dict[str, Any]:
        """Return index stats; an empty name means all indices."""

    def get_termvectors(
        self, index_name: str, document_id: str, fields: Sequence[str]
    ) -> dict[str, Any]:
        """Return the term vectors of one document."""


def parse_index_stats_data(stats_data: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Map each index name to its ``total`` stats block."""
    indices = stats_data.get(INDICES_FIELD)
    if not isinstance(indices, dict):
        return {}
    return {
        name: data[TOTAL_FIELD]
        for name, data in indices.items()
        if isinstance(data, dict) and isinstance(data.get(TOTAL_FIELD), dict)
    }


def get_segments_data(total: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    """Return the ``segments`` block of a total, or None."""
    segments = total.get(SEGMENTS_FIELD)
    return segments if isinstance(segments, dict) else None


def get_indexing_data(total: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    """Return the ``indexing`` block of a total, or None."""
    indexing = total.get(INDEXING_FIELD)
    return indexing if isinstance(indexing, dict) else None