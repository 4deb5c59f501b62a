"""Helpers for exercising key/value clerks and checking what they report.

A clerk offers ``get(key) -> (value, version, err)`` and
``put(key, value, version) -> err``. The logged variants record each call,
with monotonic invocation and return timestamps, into an OpLog so the history
can later be checked against the sequential model in ``distlab.models``.
Checks that find an inconsistency raise CheckError.
"""

from __future__ import annotations

import random
import string
import threading
import time
from dataclasses import dataclass
from typing import Protocol

from distlab.kvrpc import Err
from distlab.models import OP_GET, OP_PUT, KvInput, KvOutput, Operation

# The tester generously allows elections to complete within one second.
ELECTION_TIMEOUT = 1.0

_LETTERS = string.ascii_lowercase + string.ascii_uppercase


class CheckError(AssertionError):
    """A clerk or server produced a result that the checks do not allow."""


class KVClerk(Protocol):
    """The interface of a key/value clerk."""

    def get(self, key: str) -> tuple[str, int, str]: ...

    def put(self, key: str, value: str, version: int) -> str: ...


class OpLog:
    """A thread-safe record of client operations."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._operations: list[Operation] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._operations)

    def append(self, op: Operation) -> None:
        with self._lock:
            self._operations.append(op)

    def read(self) -> list[Operation]:
        """Return a copy of the operations recorded so far."""
        with self._lock:
            return list(self._operations)


@dataclass
class ClntRes:
    """How many of a client's puts surely and maybe happened."""

    nok: int = 0
    nmaybe: int = 0

    def __add__(self, other: ClntRes) -> ClntRes:
        return ClntRes(self.nok + other.nok, self.nmaybe + other.nmaybe)


@dataclass
class EntryV:
    id: int = 0
    v: int = 0


@dataclass
class EntryN:
    id: int = 0
    n: int = 0


def _err_text(err: object) -> str:
    if isinstance(err, Err):
        return err.value
    return str(err)


def rand_value(n: int) -> str:
    """Return a random string of n ASCII letters."""
    return "".join(random.choice(_LETTERS) for _ in range(n))


def make_keys(n: int) -> list[str]:
    """Return the keys "k0", "k1", ... of which there are n."""
    return [f"k{i}" for i in range(n)]


def logged_get(
    ck: KVClerk, key: str, log: OpLog | None = None, cli: int = 0
) -> tuple[str, int, str]:
    """Call ck.get and record the operation in log, if one is given."""
    start = time.monotonic_ns()
    value, version, err = ck.get(key)
    end = time.monotonic_ns()
    if log is not None:
        log.append(
            Operation(
                input=KvInput(op=OP_GET, key=key),
                output=KvOutput(value=value, version=version, err=_err_text(err)),
                call=start,
                return_=end,
                client_id=cli,
            )
        )
    return value, version, err


def logged_put(
    ck: KVClerk,
    key: str,
    value: str,
    version: int,
    log: OpLog | None = None,
    cli: int = 0,
) -> str:
    """Call ck.put and record the operation in log, if one is given."""
    start = time.monotonic_ns()
    err = ck.put(key, value, version)
    end = time.monotonic_ns()
    if log is not None:
        log.append(
            Operation(
                input=KvInput(op=OP_PUT, key=key, value=value, version=version),
                output=KvOutput(err=_err_text(err)),
                call=start,
                return_=end,
                client_id=cli,
            )
        )
    return err


def put_at_least_once(
    ck: KVClerk,
    key: str,
    value: str,
    ver: int,
    me: int = -1,
    log: OpLog | None = None,
) -> int:
    """Keep putting until a put succeeds; return the key's version after it.

    Assumes different clerks put to different keys.
    """
    while True:
        err = logged_put(ck, key, value, ver, log, me)
        if err == Err.OK:
            return ver + 1
        if err in (Err.ERR_MAYBE, Err.ERR_VERSION):
            ver += 1
        elif ver != 0:
            # a failure is only retried as is when the version is 0
            raise CheckError(f"Put {key} ver {ver} err {_err_text(err)}")


def check_put_concurrent(
    ver0: int, rs: list[ClntRes], reliable: bool
) -> ClntRes:
    """Check a key's server version against the clients' counts of puts.

    Returns the summed counts.
    """
    total = ClntRes()
    for r in rs:
        total = total + r
    if reliable:
        if ver0 != total.nok:
            raise CheckError(
                f"Reliable: Wrong number of puts: server {ver0} clnts {total}"
            )
    elif ver0 > total.nok + total.nmaybe:
        raise CheckError(
            f"Unreliable: Wrong number of puts: server {ver0} clnts {total}"
        )
    return total


def check_appends(
    es: list[EntryN], nclnt: int, rs: list[ClntRes], ver: int
) -> None:
    """Check that appended entries are consistent with each client's counts."""
    expect: dict[int, int] = {i: 0 for i in range(nclnt)}
    skipped: dict[int, int] = {i: 0 for i in range(nclnt)}
    for e in es:
        want = expect.get(e.id, 0)
        if want > e.n:
            raise CheckError(f"{e.id}: wrong expecting {want} but got {e.n}")
        if want == e.n:
            expect[e.id] = want + 1
        else:
            # entries missing because of failed puts
            expect[e.id] = e.n + 1
            skipped[e.id] = skipped.get(e.id, 0) + (e.n - want)
    if len(es) + 1 != ver:
        raise CheckError(f"{len(es)} appends in val != puts on server {ver}")
    for c, n in expect.items():
        r = rs[c]
        if skipped.get(c, 0) > r.nmaybe:
            raise CheckError(
                f"{c}: skipped puts {skipped.get(c, 0)} on server > {r.nmaybe} maybe"
            )
        if n > r.nok + r.nmaybe:
            raise CheckError(
                f"{c}: {n} puts on server > ok+maybe {r.nok + r.nmaybe}"
            )