"""Listings of all indices and shards, used for system index views."""

from __future__ import annotations

from typing import Any

from escope.indices import IndexInfo
from escope.shards import ShardInfo
from escope.stats import ElasticClient
from escope.util import EscopeError, get_string_field


def _rows(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


class SystemService:
    """Reads the raw index and shard listings."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_system_indices(self) -> list[IndexInfo]:
        """Return every index row."""
        try:
            rows = self.client.get_indices()
        except Exception as exc:
            raise EscopeError(f"indices request failed: {exc}") from exc
        return [
            IndexInfo(
                alias=get_string_field(row, "alias"),
                name=get_string_field(row, "index"),
                health=get_string_field(row, "health"),
                status=get_string_field(row, "status"),
                docs_count=get_string_field(row, "docs.count"),
                store_size=get_string_field(row, "store.size"),
                primary=get_string_field(row, "pri"),
                replica=get_string_field(row, "rep"),
            )
            for row in _rows(rows)
        ]

    def get_system_shards(self) -> list[ShardInfo]:
        """Return every shard row."""
        try:
            rows = self.client.get_shards()
        except Exception as exc:
            raise EscopeError(f"shards request failed: {exc}") from exc
        return [
            ShardInfo(
                index=get_string_field(row, "index"),
                shard=get_string_field(row, "shard"),
                prirep=get_string_field(row, "prirep"),
                state=get_string_field(row, "state"),
                docs=get_string_field(row, "docs"),
                store=get_string_field(row, "store"),
                ip=get_string_field(row, "ip"),
                node=get_string_field(row, "node"),
            )
            for row in _rows(rows)
        ]