"""Flow-insensitive, intraprocedural points-to analysis over a pointer flow graph."""

from __future__ import annotations

from collections import deque

from .ir import Argument, Function, Instruction, Opcode, Value
from .passbase import FuncPass

PointsTo = dict[Value, set[Value]]


def _is_local(value: Value) -> bool:
    return isinstance(value, (Instruction, Argument))


class PointsToSolver:
    """Worklist solver propagating points-to sets along flow-graph edges."""

    def __init__(self) -> None:
        self.pt: PointsTo = {}
        self.pfg: dict[Value, set[Value]] = {}
        self.worklist: deque[tuple[Value, set[Value]]] = deque()

    def add_edge(self, source: Value, target: Value) -> None:
        """Add ``source -> target`` and queue source's current set for target."""
        targets = self.pfg.setdefault(source, set())
        if target in targets:
            return
        targets.add(target)
        current = self.pt.get(source)
        if current:
            self.worklist.append((target, set(current)))

    def propagate(self, node: Value, pts: set[Value]) -> None:
        """Merge ``pts`` into node's set and forward it to node's successors."""
        if not pts:
            return
        self.pt.setdefault(node, set()).update(pts)
        for succ in self.pfg.get(node, ()):
            self.worklist.append((succ, pts))

    def initialize(self, func: Function) -> None:
        """Seed allocation sites and copy edges from the instructions of ``func``."""
        for inst in func.instructions():
            if inst.opcode in (Opcode.ALLOCA, Opcode.GETELEMENTPTR):
                self.worklist.append((inst, {inst}))
            elif inst.opcode is Opcode.PHI:
                for value, _ in inst.incoming():
                    if _is_local(value):
                        self.add_edge(value, inst)
            elif inst.opcode is Opcode.SELECT:
                for value in (inst.true_value, inst.false_value):
                    if _is_local(value):
                        self.add_edge(value, inst)
            elif inst.is_cast():
                self.add_edge(inst.operands[0], inst)

    def solve(self) -> PointsTo:
        """Run the worklist to a fixed point and return the points-to map."""
        while self.worklist:
            node, pts = self.worklist.popleft()
            delta = pts - self.pt.get(node, set())
            self.propagate(node, delta)

            for user in node.users:
                if not isinstance(user, Instruction):
                    continue
                if user.opcode is Opcode.STORE and user.pointer_operand is node:
                    stored = user.value_operand
                    if _is_local(stored):
                        for obj in delta:
                            self.add_edge(stored, obj)
                elif user.opcode is Opcode.LOAD and user.pointer_operand is node:
                    for obj in delta:
                        self.add_edge(obj, user)
        return self.pt


class Points2Analysis(FuncPass):
    """Computes, per function, the set of allocation sites each value may point to."""

    name = "points-to"

    def run(self, func: Function) -> PointsTo:
        solver = PointsToSolver()
        solver.initialize(func)
        return solver.solve()