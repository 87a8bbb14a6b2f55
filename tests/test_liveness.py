import pytest

from irpasses.ir import parse_module
from irpasses.liveness import LivenessAnalysis, LivenessResult, find_live_vars, find_uses_defs

DIAMOND = """
define i32 @f(i32 %a, i1 %c) {
entry:
  %x = add i32 %a, 1
  br i1 %c, label %then, label %else
then:
  %y = mul i32 %x, 2
  br label %merge
else:
  br label %merge
merge:
  %p = phi i32 [ %y, %then ], [ %a, %else ]
  %r = add i32 %p, %x
  ret i32 %r
}
"""

LOOP = """
define void @g(i32 %n) {
entry:
  br label %loop
loop:
  %i = phi i32 [ 0, %entry ], [ %next, %loop ]
  %next = add i32 %i, 1
  %done = icmp eq i32 %next, %n
  br i1 %done, label %exit, label %loop
exit:
  ret void
}
"""


def _func(text, name):
    return parse_module(text).functions[name]


def _blocks(func):
    return {b.name: b for b in func.blocks}


def _names(values):
    return {v.name for v in values}


@pytest.fixture
def diamond():
    return _func(DIAMOND, "f")


@pytest.fixture
def loop():
    return _func(LOOP, "g")


def test_uses_and_defs_of_merge_block(diamond):
    uses, defs, phi_uses, phi_defs = find_uses_defs(diamond)
    blocks = _blocks(diamond)
    merge = blocks["merge"]
    assert _names(phi_defs[merge]) == {"p"}
    assert _names(uses[merge]) == {"p", "x"}
    assert _names(defs[merge]) == {"r"}


def test_phi_uses_are_attributed_to_incoming_blocks(diamond):
    _, _, phi_uses, _ = find_uses_defs(diamond)
    blocks = _blocks(diamond)
    assert _names(phi_uses[blocks["then"]]) == {"y"}
    assert _names(phi_uses[blocks["else"]]) == {"a"}
    assert phi_uses[blocks["entry"]] == set()


def test_constants_are_not_phi_uses(loop):
    _, _, phi_uses, _ = find_uses_defs(loop)
    blocks = _blocks(loop)
    assert phi_uses[blocks["entry"]] == set()
    assert _names(phi_uses[blocks["loop"]]) == {"next"}


def test_entry_live_in_of_diamond_is_the_arguments(diamond):
    result = find_live_vars(diamond)
    entry = _blocks(diamond)["entry"]
    assert result.live_in[entry] == set(diamond.arguments)


def test_value_used_after_branch_is_live_through_both_arms(diamond):
    result = find_live_vars(diamond)
    blocks = _blocks(diamond)
    x = next(i for i in diamond.instructions() if i.name == "x")
    for name in ("then", "else"):
        assert x in result.live_in[blocks[name]]
        assert x in result.live_out[blocks[name]]
    assert x in result.live_out[blocks["entry"]]
    assert x not in result.live_in[blocks["entry"]]


def test_nothing_live_after_return(diamond):
    result = find_live_vars(diamond)
    assert result.live_out[_blocks(diamond)["merge"]] == set()


def test_loop_carries_bound_around_back_edge(loop):
    result = find_live_vars(loop)
    blocks = _blocks(loop)
    n = loop.arguments[0]
    assert n in result.live_out[blocks["loop"]]
    assert n in result.live_in[blocks["loop"]]
    assert result.live_in[blocks["entry"]] == {n}


@pytest.mark.parametrize("text,name", [(DIAMOND, "f"), (LOOP, "g")])
def test_fixed_point_invariants(text, name):
    func = _func(text, name)
    uses, defs, phi_uses, phi_defs = find_uses_defs(func)
    result = find_live_vars(func)
    assert set(result.live_in) == set(func.blocks)
    for block in func.blocks:
        assert uses[block] <= result.live_in[block]
        assert phi_defs[block] <= result.live_in[block]
        assert phi_uses[block] <= result.live_out[block]
        for succ in block.successors():
            assert result.live_in[succ] - phi_defs[succ] <= result.live_out[block]


def test_declaration_has_no_liveness():
    module = parse_module("declare void @ext(ptr)\n")
    result = find_live_vars(module.functions["ext"])
    assert result == LivenessResult()


def test_pass_runs_the_analysis(diamond):
    analysis = LivenessAnalysis()
    assert analysis.name == "liveness"
    assert analysis.run(diamond) == find_live_vars(diamond)