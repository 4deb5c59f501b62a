"""Shared definitions for MapReduce applications and workers."""

from __future__ import annotations

import os
from dataclasses import dataclass

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193

SOCKET_PREFIX = "/var/tmp/5840-mr-"


@dataclass(frozen=True)
class KeyValue:
    """One key/value pair emitted by a map function."""

    key: str
    value: str


def ihash(key: str) -> int:
    """Hash a key to a non-negative 31-bit integer.

    Use ``ihash(key) % n_reduce`` to choose the reduce task for a key.
    """
    h = _FNV32_OFFSET
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h & 0x7FFFFFFF


def coordinator_sock() -> str:
    """Return a per-user UNIX-domain socket name for the coordinator."""
    return SOCKET_PREFIX + str(os.getuid())