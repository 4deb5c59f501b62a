"""Sequential model of a versioned key/value store for linearizability checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

OP_GET = 0
OP_PUT = 1


@dataclass(frozen=True)
class KvInput:
    op: int = OP_GET
    key: str = ""
    value: str = ""
    version: int = 0


@dataclass(frozen=True)
class KvOutput:
    value: str = ""
    version: int = 0
    err: str = ""


@dataclass(frozen=True)
class KvState:
    value: str = ""
    version: int = 0


@dataclass(frozen=True)
class Operation:
    """One client call with its invocation and return timestamps."""

    input: Any
    output: Any
    call: int
    return_: int
    client_id: int = 0


def kv_partition(history: list[Operation]) -> list[list[Operation]]:
    """Split a history into per-key histories, ordered by key."""
    by_key: dict[str, list[Operation]] = {}
    for op in history:
        by_key.setdefault(op.input.key, []).append(op)
    return [by_key[key] for key in sorted(by_key)]


def kv_init() -> KvState:
    """The state of a single key before any operation."""
    return KvState("", 0)


def kv_step(state: KvState, input: KvInput, output: KvOutput) -> tuple[bool, Any]:
    """Apply one operation; return whether the output is legal and the new state."""
    if input.op == OP_GET:
        return output.value == state.value, state
    if input.op == OP_PUT:
        if state.version == input.version:
            ok = output.err in ("OK", "ErrMaybe")
            return ok, KvState(input.value, state.version + 1)
        return output.err in ("ErrVersion", "ErrMaybe"), state
    return False, "<invalid>"


def kv_describe_operation(input: KvInput, output: KvOutput) -> str:
    """Render an operation for a history visualization."""
    if input.op == OP_GET:
        return (
            f"get('{input.key}') -> "
            f"('{output.value}', '{output.version}', '{output.err}')"
        )
    if input.op == OP_PUT:
        return (
            f"put('{input.key}', '{input.value}', '{input.version}') -> "
            f"('{output.err}')"
        )
    return "<invalid>"