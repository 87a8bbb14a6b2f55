"""Backward and forward program slicing over SSA def-use and control edges."""

from __future__ import annotations

from collections import deque

from .ir import Function, Instruction, Opcode, Value
from .passbase import FuncPass


def _adder(slice_set: set[Value], worklist: deque[Value]):
    def add(value: Value | None) -> None:
        if value is not None and value not in slice_set:
            slice_set.add(value)
            worklist.append(value)
    return add


def backward_slice(root: Value, slice_set: set[Value] | None = None) -> set[Value]:
    """Add to ``slice_set`` everything ``root`` depends on; return the set."""
    slice_set = set() if slice_set is None else slice_set
    worklist: deque[Value] = deque()
    add = _adder(slice_set, worklist)
    slice_set.add(root)
    worklist.append(root)

    while worklist:
        value = worklist.popleft()
        if not isinstance(value, Instruction):
            continue

        if value.opcode is Opcode.PHI:
            for incoming, block in value.incoming():
                if isinstance(incoming, Instruction):
                    add(incoming)
                add(block.terminator())
            continue
        if value.opcode is Opcode.SELECT:
            for operand in (value.true_value, value.false_value):
                if isinstance(operand, Instruction):
                    add(operand)
        elif value.is_cast():
            source = value.operands[0]
            if isinstance(source, Instruction):
                add(source)
        else:
            for operand in value.operands:
                if isinstance(operand, Instruction):
                    add(operand)

        if value.parent is not None:
            for pred in value.parent.predecessors():
                add(pred.terminator())
    return slice_set


def forward_slice(root: Value, slice_set: set[Value] | None = None) -> set[Value]:
    """Add to ``slice_set`` everything that transitively uses ``root``; return the set."""
    slice_set = set() if slice_set is None else slice_set
    worklist: deque[Value] = deque()
    add = _adder(slice_set, worklist)
    slice_set.add(root)
    worklist.append(root)

    while worklist:
        for user in worklist.popleft().users:
            add(user)
    return slice_set


def slice_function(func: Function) -> dict[Value, set[Value]]:
    """Slice around every address computation, allocation and argument of ``func``."""
    slices: dict[Value, set[Value]] = {}
    for inst in func.instructions():
        if inst.opcode is Opcode.GETELEMENTPTR:
            slice_set = backward_slice(inst)
            slices[inst] = forward_slice(inst, slice_set)
        elif inst.opcode is Opcode.ALLOCA:
            slices[inst] = forward_slice(inst)
    for arg in func.arguments:
        slices[arg] = forward_slice(arg)
    return slices


class Slicing(FuncPass):
    """Computes slices for the pointer-related values of a function."""

    name = "slicing"

    def run(self, func: Function) -> dict[Value, set[Value]]:
        return slice_function(func)