"""Intraprocedural 0-CFA: resolves the possible targets of every call site."""

from __future__ import annotations

from .ir import Argument, Function, GlobalVariable, Instruction, Opcode, Value
from .passbase import FuncPass

CallMap = dict[Instruction, set[Value]]


class CallTargetAnalyzer:
    """Demand-driven value-flow analysis of the operands that calls go through."""

    def __init__(self) -> None:
        self.call_map: CallMap = {}
        self.points2: dict[Value, set[Value]] = {}
        self._visited: set[Value] = set()

    def _pts(self, value: Value) -> set[Value]:
        return self.points2.setdefault(value, set())

    def _merge(self, target: Value, source: Value) -> None:
        extra = set(self._pts(source))
        self._pts(target).update(extra)

    def analyze_ptr(self, value: Value) -> set[Value]:
        """Compute what ``value`` may refer to; each value is analysed once."""
        if value in self._visited:
            return self._pts(value)
        self._visited.add(value)

        if isinstance(value, (Function, Argument)):
            self.points2[value] = {value}
        elif isinstance(value, GlobalVariable):
            self._analyze_global(value)
        elif isinstance(value, Instruction):
            self._analyze_instruction(value)
        else:
            self.points2[value] = {value}
        return self._pts(value)

    def _analyze_global(self, var: GlobalVariable) -> None:
        self.points2[var] = {var}
        if var.initializer is not None:
            self.analyze_ptr(var.initializer)
            self._merge(var, var.initializer)
        for user in var.users:
            if (isinstance(user, Instruction) and user.opcode is Opcode.STORE
                    and user.pointer_operand is var):
                stored = user.value_operand
                self.analyze_ptr(stored)
                self._merge(var, stored)

    def _analyze_instruction(self, inst: Instruction) -> None:
        if inst.is_cast():
            source = inst.operands[0]
            self.analyze_ptr(source)
            self.points2[inst] = set(self._pts(source))
        elif inst.opcode is Opcode.PHI:
            for value, _ in inst.incoming():
                self.analyze_ptr(value)
                self._merge(inst, value)
        elif inst.opcode is Opcode.SELECT:
            for value in (inst.true_value, inst.false_value):
                self.analyze_ptr(value)
                self._merge(inst, value)
        elif inst.opcode is Opcode.LOAD:
            pointer = inst.pointer_operand
            self.analyze_ptr(pointer)
            self.points2[inst] = set(self._pts(pointer))
            for user in pointer.users:
                if (isinstance(user, Instruction) and user.opcode is Opcode.STORE
                        and user.pointer_operand is pointer):
                    stored = user.value_operand
                    self.analyze_ptr(stored)
                    self._merge(inst, stored)
        elif inst.opcode is Opcode.GETELEMENTPTR:
            base = inst.pointer_operand
            self.analyze_ptr(base)
            self.points2[inst] = set(self._pts(base))
        else:
            self.points2[inst] = {inst}

    def analyze_function(self, func: Function) -> CallMap:
        """Resolve the called operand of every call in ``func``."""
        for inst in func.instructions():
            if inst.opcode is Opcode.CALL:
                callee = inst.called_operand
                self.analyze_ptr(callee)
                self.call_map[inst] = set(self._pts(callee))
        return self.call_map


class ZeroCFAnalysis(FuncPass):
    """Maps each call instruction to the values it may call."""

    name = "0-CFA"

    def run(self, func: Function) -> CallMap:
        return CallTargetAnalyzer().analyze_function(func)