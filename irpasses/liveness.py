"""Backward live-variable analysis over SSA values, with phi-aware block equations."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from .ir import Argument, BasicBlock, Function, Instruction, Opcode, Value
from .passbase import FuncPass

BlockSets = dict[BasicBlock, set[Value]]


def _is_local(value: Value) -> bool:
    return isinstance(value, (Instruction, Argument))


@dataclass
class LivenessResult:
    """Live-in and live-out sets for every block the solver visited."""

    live_in: BlockSets = field(default_factory=dict)
    live_out: BlockSets = field(default_factory=dict)


def find_uses_defs(func: Function) -> tuple[BlockSets, BlockSets, BlockSets, BlockSets]:
    """Return (uses, defs, phi_uses, phi_defs) for each block of ``func``.

    ``phi_defs[B]`` holds the phis at the head of B; ``phi_uses[B]`` holds the
    values that phis in B's successors receive along the edge from B.
    """
    uses: BlockSets = {block: set() for block in func.blocks}
    defs: BlockSets = {block: set() for block in func.blocks}
    phi_uses: BlockSets = {block: set() for block in func.blocks}
    phi_defs: BlockSets = {block: set() for block in func.blocks}

    for block in func.blocks:
        block_uses, block_defs = uses[block], defs[block]
        leading = True
        for inst in block:
            if leading and inst.opcode is Opcode.PHI:
                phi_defs[block].add(inst)
                for value, incoming_block in inst.incoming():
                    if _is_local(value):
                        phi_uses.setdefault(incoming_block, set()).add(value)
                continue
            leading = False
            for operand in inst.operands:
                if _is_local(operand) and operand not in block_defs:
                    block_uses.add(operand)
            if inst.has_result:
                block_defs.add(inst)
    return uses, defs, phi_uses, phi_defs


def find_live_vars(func: Function) -> LivenessResult:
    """Solve liveness for ``func`` with a worklist seeded in reverse post-order."""
    result = LivenessResult()
    if func.is_declaration():
        return result

    uses, defs, phi_uses, phi_defs = find_uses_defs(func)
    worklist: deque[BasicBlock] = deque()
    queued: set[BasicBlock] = set()
    for block in func.reverse_post_order():
        if block not in queued:
            queued.add(block)
            worklist.append(block)

    live_in, live_out = result.live_in, result.live_out
    while worklist:
        block = worklist.popleft()
        queued.discard(block)

        new_out = set(phi_uses.get(block, ()))
        for succ in block.successors():
            new_out |= live_in.get(succ, set()) - phi_defs.get(succ, set())
        changed = live_out.get(block, set()) != new_out
        live_out[block] = new_out

        new_in = (set(phi_defs.get(block, ()))
                  | (new_out - defs.get(block, set()))
                  | uses.get(block, set()))
        changed |= live_in.get(block, set()) != new_in
        live_in[block] = new_in

        if changed:
            for pred in block.predecessors():
                if pred not in queued:
                    queued.add(pred)
                    worklist.append(pred)
    return result


class LivenessAnalysis(FuncPass):
    """Computes live-in and live-out value sets per basic block."""

    name = "liveness"

    def run(self, func: Function) -> LivenessResult:
        return find_live_vars(func)