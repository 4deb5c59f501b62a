"""A simple sequential MapReduce run over a set of input files."""

from __future__ import annotations

import os
import sys
from itertools import groupby
from operator import attrgetter
from typing import Iterable, Sequence

from distlab.mapreduce import KeyValue
from distlab.mrapps import MapFunc, ReduceFunc, load_app

DEFAULT_OUTPUT = "mr-out-0"


def run_sequential(
    mapf: MapFunc,
    reducef: ReduceFunc,
    filenames: Iterable[str | os.PathLike[str]],
    output: str | os.PathLike[str] = DEFAULT_OUTPUT,
) -> None:
    """Map every input file, reduce each distinct key, write "key result" lines.

    Raises OSError if an input file cannot be read.
    """
    intermediate: list[KeyValue] = []
    for filename in filenames:
        with open(filename, encoding="utf-8", errors="replace", newline="") as f:
            content = f.read()
        intermediate.extend(mapf(os.fspath(filename), content))

    intermediate.sort(key=attrgetter("key"))

    with open(output, "w", encoding="utf-8", newline="") as out:
        for key, group in groupby(intermediate, key=attrgetter("key")):
            result = reducef(key, [kv.value for kv in group])
            out.write(f"{key} {result}\n")


def main(argv: Sequence[str] | None = None) -> int:
    """Run an application over input files, writing mr-out-0."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Usage: mrsequential xxx.so inputfiles...", file=sys.stderr)
        return 1
    try:
        mapf, reducef = load_app(args[0])
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        run_sequential(mapf, reducef, args[1:], DEFAULT_OUTPUT)
    except OSError as exc:
        print(f"cannot open {exc.filename}", file=sys.stderr)
        return 1
    return 0