"""The function-pass interface and the pass manager holding a pass list."""

from __future__ import annotations

import abc
from typing import Iterable

from .ir import Function


class FuncPass(abc.ABC):
    """An analysis that runs over one function at a time."""

    name: str = ""

    @abc.abstractmethod
    def run(self, func: Function) -> object:
        """Analyse one function."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PassManager:
    """Holds the ordered list of passes to run."""

    def __init__(self, passes: Iterable[FuncPass] = ()) -> None:
        self._passes: tuple[FuncPass, ...] = tuple(passes)

    def set_passes(self, passes: Iterable[FuncPass]) -> None:
        self._passes = tuple(passes)

    @property
    def passes(self) -> tuple[FuncPass, ...]:
        return self._passes