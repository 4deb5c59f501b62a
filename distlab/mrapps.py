"""MapReduce applications: word count, indexer and fault/timing probes."""

from __future__ import annotations

import itertools
import os
import random
import re
import secrets
import string
import time
from pathlib import Path
from typing import Callable

from distlab.mapreduce import KeyValue

MapFunc = Callable[[str, str], list[KeyValue]]
ReduceFunc = Callable[[str, list[str]], str]


def _words(text: str) -> list[str]:
    """Split text into maximal runs of letters."""
    words: list[str] = []
    current: list[str] = []
    for ch in text:
        if ch.isalpha():
            current.append(ch)
        elif current:
            words.append("".join(current))
            current = []
    if current:
        words.append("".join(current))
    return words


def _byte_len(s: str) -> int:
    return len(s.encode("utf-8"))


def _sorted_join(values: list[str]) -> str:
    return " ".join(sorted(values))


def _file_facts(filename: str, contents: str) -> list[KeyValue]:
    return [
        KeyValue("a", filename),
        KeyValue("b", str(_byte_len(filename))),
        KeyValue("c", str(_byte_len(contents))),
        KeyValue("d", "xyzzy"),
    ]


# word count


def wc_map(filename: str, contents: str) -> list[KeyValue]:
    """Emit (word, "1") for every word in the contents."""
    return [KeyValue(w, "1") for w in _words(contents)]


def wc_reduce(key: str, values: list[str]) -> str:
    """Return the number of occurrences of a word."""
    return str(len(values))


# indexer


def indexer_map(document: str, value: str) -> list[KeyValue]:
    """Emit (word, document) once for every distinct word in the document."""
    return [KeyValue(w, document) for w in dict.fromkeys(_words(value))]


def indexer_reduce(key: str, values: list[str]) -> str:
    """Return the count and the sorted, comma-separated list of documents."""
    docs = sorted(values)
    return f"{len(docs)} {','.join(docs)}"


# crash: sometimes exits, sometimes stalls


def _maybe_crash() -> None:
    rr = secrets.randbelow(1000)
    if rr < 330:
        os._exit(1)
    elif rr < 660:
        ms = secrets.randbelow(10 * 1000)
        time.sleep(ms / 1000)


def crash_map(filename: str, contents: str) -> list[KeyValue]:
    _maybe_crash()
    return _file_facts(filename, contents)


def crash_reduce(key: str, values: list[str]) -> str:
    _maybe_crash()
    return _sorted_join(values)


# nocrash: the same output as crash, without failures


def nocrash_map(filename: str, contents: str) -> list[KeyValue]:
    return _file_facts(filename, contents)


def nocrash_reduce(key: str, values: list[str]) -> str:
    return _sorted_join(values)


# early_exit: some reduce tasks take a long time


def early_exit_map(filename: str, contents: str) -> list[KeyValue]:
    """Emit (filename, "1") once per file."""
    return [KeyValue(filename, "1")]


def early_exit_reduce(key: str, values: list[str]) -> str:
    # a long pause checks that a worker does not exit early
    if "sherlock" in key or "tom" in key:
        time.sleep(3)
    return str(len(values))


# jobcount: counts how many map tasks ran

_JOBCOUNT_PREFIX = "mr-worker-jobcount"
_job_counter = itertools.count()


def jobcount_map(filename: str, contents: str) -> list[KeyValue]:
    """Leave a marker file for this invocation, then pause for a while."""
    marker = f"{_JOBCOUNT_PREFIX}-{os.getpid()}-{next(_job_counter)}"
    Path(marker).write_text("x")
    time.sleep((2000 + random.randrange(3000)) / 1000)
    return [KeyValue("a", "x")]


def jobcount_reduce(key: str, values: list[str]) -> str:
    """Return how many map invocations left a marker in the current directory."""
    return str(sum(1 for name in os.listdir(".") if name.startswith(_JOBCOUNT_PREFIX)))


# timing probes: how many workers run a phase at the same time


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def _nparallel(phase: str) -> int:
    """Count the live workers currently in the given phase, this one included."""
    marker = Path(f"mr-worker-{phase}-{os.getpid()}")
    marker.write_text("x")

    pattern = re.compile(rf"mr-worker-{re.escape(phase)}-([+-]?\d+)")
    alive = 0
    for name in os.listdir("."):
        match = pattern.match(name)
        if match and _is_alive(int(match.group(1))):
            alive += 1

    time.sleep(1)
    marker.unlink()
    return alive


def mtiming_map(filename: str, contents: str) -> list[KeyValue]:
    ts = time.time()
    pid = os.getpid()
    n = _nparallel("map")
    return [
        KeyValue(f"times-{pid}", f"{ts:.1f}"),
        KeyValue(f"parallel-{pid}", str(n)),
    ]


def mtiming_reduce(key: str, values: list[str]) -> str:
    return _sorted_join(values)


def rtiming_map(filename: str, contents: str) -> list[KeyValue]:
    return [KeyValue(letter, "1") for letter in string.ascii_lowercase[:10]]


def rtiming_reduce(key: str, values: list[str]) -> str:
    return str(_nparallel("reduce"))


_APPS: dict[str, tuple[MapFunc, ReduceFunc]] = {
    "wc": (wc_map, wc_reduce),
    "indexer": (indexer_map, indexer_reduce),
    "crash": (crash_map, crash_reduce),
    "nocrash": (nocrash_map, nocrash_reduce),
    "early_exit": (early_exit_map, early_exit_reduce),
    "jobcount": (jobcount_map, jobcount_reduce),
    "mtiming": (mtiming_map, mtiming_reduce),
    "rtiming": (rtiming_map, rtiming_reduce),
}


def load_app(name: str) -> tuple[MapFunc, ReduceFunc]:
    """Return the map and reduce functions of an application.

    The name may be given as a path such as "../mrapps/wc.so"; only its stem
    is used.
    """
    app = _APPS.get(Path(name).stem)
    if app is None:
        raise ValueError(f"cannot load plugin {name}")
    return app