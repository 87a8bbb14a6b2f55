"""Strategies for running a list of function passes over every function of a module."""

from __future__ import annotations

import abc
import heapq
import itertools
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence, TextIO

from .ir import Function, Module
from .passbase import FuncPass

Results = dict[tuple[str, str], object]

_OUTPUT_LOCK = threading.Lock()


def _now_us() -> int:
    return time.perf_counter_ns() // 1000


class Scheduler(abc.ABC):
    """Runs passes over the defined functions of a module.

    ``run`` returns the result of every (pass name, function name) pair.
    """

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out

    def _stream(self) -> TextIO:
        return self.out if self.out is not None else sys.stdout

    def _report(self, func_pass: FuncPass, elapsed_us: int) -> None:
        with _OUTPUT_LOCK:
            self._stream().write(f"\t{func_pass.name}: {elapsed_us} us\n")

    @abc.abstractmethod
    def run(self, passes: Sequence[FuncPass], module: Module) -> Results:
        """Run ``passes`` over ``module`` and return the collected results."""


class Sequential(Scheduler):
    """Runs one pass at a time over all functions, timing each pass."""

    def run(self, passes: Sequence[FuncPass], module: Module) -> Results:
        results: Results = {}
        for func_pass in passes:
            start = _now_us()
            for func in module.defined_functions():
                results[(func_pass.name, func.name)] = func_pass.run(func)
            self._report(func_pass, _now_us() - start)
        return results


class ConcurrentPasses(Scheduler):
    """Runs every pass in its own thread, each over all functions."""

    def _pass_thread(self, func_pass: FuncPass, module: Module) -> Results:
        start = _now_us()
        results: Results = {}
        for func in module.defined_functions():
            results[(func_pass.name, func.name)] = func_pass.run(func)
        self._report(func_pass, _now_us() - start)
        return results

    def run(self, passes: Sequence[FuncPass], module: Module) -> Results:
        if not passes:
            return {}
        results: Results = {}
        with ThreadPoolExecutor(max_workers=len(passes)) as pool:
            futures = [pool.submit(self._pass_thread, p, module) for p in passes]
            for future in futures:
                results.update(future.result())
        return results


class _WorkerPool(Scheduler):
    """A fixed number of workers draining a shared largest-first queue."""

    def __init__(self, nthreads: int = 4, out: TextIO | None = None) -> None:
        super().__init__(out)
        if nthreads < 1:
            raise ValueError(f"nthreads must be at least 1, got {nthreads}")
        self.nthreads = nthreads

    def _drain(self, queue: list, process) -> None:
        queue_lock = threading.Lock()

        def worker() -> None:
            while True:
                with queue_lock:
                    if not queue:
                        return
                    entry = heapq.heappop(queue)
                process(entry)

        with ThreadPoolExecutor(max_workers=self.nthreads) as pool:
            futures = [pool.submit(worker) for _ in range(self.nthreads)]
            for future in futures:
                future.result()


class ConcurrentFuncs(_WorkerPool):
    """Workers take whole functions, largest first, and run every pass on each."""

    def run(self, passes: Sequence[FuncPass], module: Module) -> Results:
        counter = itertools.count()
        queue: list[tuple[int, int, Function]] = [
            (-len(func.blocks), next(counter), func)
            for func in module.defined_functions()
        ]
        heapq.heapify(queue)
        results: Results = {}
        results_lock = threading.Lock()

        def process(entry: tuple[int, int, Function]) -> None:
            func = entry[2]
            for func_pass in passes:
                outcome = func_pass.run(func)
                with results_lock:
                    results[(func_pass.name, func.name)] = outcome

        self._drain(queue, process)
        return results


class ConcurrentTasks(_WorkerPool):
    """Workers take single (pass, function) tasks, largest function first."""

    def run(self, passes: Sequence[FuncPass], module: Module) -> Results:
        counter = itertools.count()
        queue: list[tuple[int, int, int, Function]] = [
            (-len(func.blocks), next(counter), index, func)
            for func in module.defined_functions()
            for index, _ in enumerate(passes)
        ]
        heapq.heapify(queue)
        results: Results = {}
        results_lock = threading.Lock()

        def process(entry: tuple[int, int, int, Function]) -> None:
            _, _, index, func = entry
            func_pass = passes[index]
            outcome = func_pass.run(func)
            with results_lock:
                results[(func_pass.name, func.name)] = outcome

        self._drain(queue, process)
        return results