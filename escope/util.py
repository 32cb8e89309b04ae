"""Shared helpers: byte and count formatting, field access, sorting."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, MutableSequence

EMPTY_STRING = ""
DASH_STRING = "-"

ZERO_BYTE_STRING = "0b"
BYTE_SUFFIX = "b"
KILO_SUFFIX = "kb"
MEGA_SUFFIX = "mb"
GIGA_SUFFIX = "gb"
TERA_SUFFIX = "tb"
PETA_SUFFIX = "pb"

BYTES_IN_KB = 1024
BYTES_IN_MB = BYTES_IN_KB * 1024
BYTES_IN_GB = BYTES_IN_MB * 1024
BYTES_IN_TB = BYTES_IN_GB * 1024
BYTES_IN_PB = BYTES_IN_TB * 1024

TEN_THRESHOLD = 10
HUNDRED_MULTIPLIER = 100.0
DOCS_COUNT_SEPARATOR = 3

PRIMARY_SHORT_STRING = "p"
REPLICA_SHORT_STRING = "r"
PRIMARY_STRING = "primary"
REPLICA_STRING = "replica"

MAX_NAME_LENGTH = 20
NAME_PREFIX_LEN = 8
TRUNCATE_SUFFIX = "..."

SYSTEM_INDEX_PREFIXES = (
    ".",
    "kibana",
    "apm-",
    "security-",
    "monitoring-",
    "watcher",
    "ilm-",
    "slm-",
    "transform-",
)

_UNIT_SIZES = {
    BYTE_SUFFIX: 1,
    KILO_SUFFIX: BYTES_IN_KB,
    MEGA_SUFFIX: BYTES_IN_MB,
    GIGA_SUFFIX: BYTES_IN_GB,
    TERA_SUFFIX: BYTES_IN_TB,
    PETA_SUFFIX: BYTES_IN_PB,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d*\.?\d+)\s*([kmgtp]?b)?\s*$", re.IGNORECASE)


class EscopeError(Exception):
    """Raised when a cluster request or an operation on its data fails."""


class SortDirection(Enum):
    """Direction of a sort."""

    ASCENDING = 0
    DESCENDING = 1

    def __str__(self) -> str:
        return "desc" if self is SortDirection.DESCENDING else "asc"


def format_bytes(num_bytes: int) -> str:
    """Render a byte count with a short binary unit suffix."""
    if num_bytes == 0:
        return ZERO_BYTE_STRING
    if num_bytes < BYTES_IN_KB:
        return f"{num_bytes}{BYTE_SUFFIX}"

    if num_bytes >= BYTES_IN_TB:
        divisor, suffix = BYTES_IN_TB, TERA_SUFFIX
    elif num_bytes >= BYTES_IN_GB:
        divisor, suffix = BYTES_IN_GB, GIGA_SUFFIX
    elif num_bytes >= BYTES_IN_MB:
        divisor, suffix = BYTES_IN_MB, MEGA_SUFFIX
    else:
        divisor, suffix = BYTES_IN_KB, KILO_SUFFIX

    size = num_bytes / divisor
    if size < TEN_THRESHOLD:
        return f"{size:.1f}{suffix}"
    return f"{size:.0f}{suffix}"


def parse_size(size: str) -> int:
    """Parse a size such as ``1.5gb`` into bytes; unreadable input gives 0."""
    match = _SIZE_PATTERN.match(size or EMPTY_STRING)
    if match is None:
        return 0
    value = float(match.group(1))
    unit = (match.group(2) or BYTE_SUFFIX).lower()
    return int(value * _UNIT_SIZES[unit])


def is_system_index(name: str) -> bool:
    """Tell whether an index name belongs to a system or internal index."""
    return name.startswith(SYSTEM_INDEX_PREFIXES)


def convert_shard_name(prirep: str) -> str:
    """Expand the short primary/replica marker of a shard."""
    return PRIMARY_STRING if prirep == PRIMARY_SHORT_STRING else REPLICA_STRING


def format_docs_count(count: int) -> str:
    """Render a document count with dots between groups of three digits."""
    if count == 0:
        return DASH_STRING
    text = str(count)
    for position in range(len(text) - DOCS_COUNT_SEPARATOR, 0, -DOCS_COUNT_SEPARATOR):
        text = f"{text[:position]}.{text[position:]}"
    return text


def get_string_field(data: Mapping[str, Any], key: str) -> str:
    """Return ``data[key]`` when it is a string, otherwise an empty string."""
    value = data.get(key)
    return value if isinstance(value, str) else EMPTY_STRING


def format_node_name(name: str) -> str:
    """Shorten a long node name, keeping its start and end."""
    if name == EMPTY_STRING:
        return DASH_STRING
    if len(name) > MAX_NAME_LENGTH:
        return name[:NAME_PREFIX_LEN] + TRUNCATE_SUFFIX + name[-NAME_PREFIX_LEN:]
    return name


def sort_shards_by_type_and_index(shards: MutableSequence[Any]) -> None:
    """Sort shards in place: primaries before replicas, then by index name."""
    shards.sort(key=lambda shard: (shard.prirep != PRIMARY_SHORT_STRING, shard.index))


def calculate_percentage(used: int, total: int) -> float:
    """Return ``used`` as a percentage of ``total``; 0 when total is 0."""
    if total == 0:
        return 0.0
    return used * HUNDRED_MULTIPLIER / total


def parse_percent_string(text: str) -> float:
    """Parse ``"12.5%"`` into 12.5; raises ValueError on malformed input."""
    clean = text.strip()
    if clean.endswith("%"):
        clean = clean[:-1]
    return float(clean)


def sort_strings(values: MutableSequence[str], direction: SortDirection) -> None:
    """Sort strings in place in the given direction."""
    values.sort(reverse=direction is SortDirection.DESCENDING)