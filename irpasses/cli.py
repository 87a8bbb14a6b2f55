"""Command line entry point: runs the analyses on an IR file under every scheduler."""

from __future__ import annotations

import sys
import time
from typing import Sequence

from .ir import IRParseError, parse_file
from .liveness import LivenessAnalysis
from .passbase import FuncPass, PassManager
from .points2 import Points2Analysis
from .scheduler import (
    ConcurrentFuncs,
    ConcurrentPasses,
    ConcurrentTasks,
    Scheduler,
    Sequential,
)
from .slicing import Slicing
from .zerocfa import ZeroCFAnalysis


def default_passes() -> list[FuncPass]:
    """The analyses run by the command, in order."""
    return [LivenessAnalysis(), Points2Analysis(), ZeroCFAnalysis(), Slicing()]


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.stderr.write("Expect IR filename\n")
        return 1
    filename = args[0]

    try:
        module = parse_file(filename)
    except (IRParseError, OSError, UnicodeDecodeError) as exc:
        sys.stdout.write("Cannot parse IR file\n")
        sys.stdout.write(f"{filename}: error: {exc}\n")
        return 1

    manager = PassManager()
    manager.set_passes(default_passes())

    runs: list[tuple[str, Scheduler]] = [
        ("Sequential", Sequential()),
        ("Passes concurrently", ConcurrentPasses()),
        ("Funcs concurrently", ConcurrentFuncs()),
        ("Tasks concurrently", ConcurrentTasks()),
    ]
    for title, scheduler in runs:
        sys.stdout.write(f"{title}: {module.identifier}\n")
        start = time.perf_counter_ns()
        scheduler.run(manager.passes, module)
        elapsed_us = (time.perf_counter_ns() - start) // 1000
        sys.stdout.write(f"Analysis time: {elapsed_us} us\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())