from irpasses.ir import parse_module
from irpasses.slicing import Slicing, backward_slice, forward_slice, slice_function

IR = """
define i32 @f(i1 %c, i32 %x) {
entry:
  %a = alloca i32
  br i1 %c, label %then, label %else
then:
  %y = add i32 %x, 1
  br label %join
else:
  %z = mul i32 %x, 2
  br label %join
join:
  %p = phi i32 [ %y, %then ], [ %z, %else ]
  %g = getelementptr i32, ptr %a, i64 0
  store i32 %p, ptr %g
  %v = load i32, ptr %g
  ret i32 %v
}

define i64 @h(i32 %x) {
entry:
  %k = icmp eq i32 %x, 0
  %y = add i32 %x, 1
  %s = select i1 %k, i32 %y, i32 %x
  %t = zext i32 %s to i64
  ret i64 %t
}
"""


def _setup():
    m = parse_module(IR)
    f = m.functions["f"]
    blocks = {b.name: b for b in f.blocks}
    named = {i.name: i for i in f.instructions() if i.name is not None}
    return m, f, blocks, named


def test_backward_slice_of_gep_follows_operands_and_control():
    _, _, blocks, n = _setup()
    result = backward_slice(n["g"])
    expected = {n["g"], n["a"], blocks["then"].terminator(),
                blocks["else"].terminator(), blocks["entry"].terminator()}
    assert result == expected
    assert n["p"] not in result


def test_backward_slice_of_phi():
    _, _, blocks, n = _setup()
    result = backward_slice(n["p"])
    expected = {n["p"], n["y"], n["z"], blocks["then"].terminator(),
                blocks["else"].terminator(), blocks["entry"].terminator()}
    assert result == expected


def test_backward_slice_select_skips_condition():
    m = parse_module(IR)
    n = {i.name: i for i in m.functions["h"].instructions() if i.name is not None}
    result = backward_slice(n["t"])
    assert result == {n["t"], n["s"], n["y"]}
    assert n["k"] not in result


def test_backward_slice_of_argument_is_just_root():
    _, f, _, _ = _setup()
    arg = f.arguments[1]
    assert backward_slice(arg) == {arg}


def test_forward_slice_of_alloca():
    _, f, blocks, n = _setup()
    store = blocks["join"].instructions[2]
    ret = blocks["join"].terminator()
    assert forward_slice(n["a"]) == {n["a"], n["g"], store, n["v"], ret}


def test_forward_slice_of_argument():
    _, f, blocks, n = _setup()
    x = f.arguments[1]
    store = blocks["join"].instructions[2]
    assert forward_slice(x) == {x, n["y"], n["z"], n["p"], store}


def test_slices_extend_given_set():
    _, _, _, n = _setup()
    existing = {n["v"]}
    returned = forward_slice(n["y"], existing)
    assert returned is existing
    assert n["v"] in returned
    assert n["p"] in returned


def test_slice_function_roots():
    _, f, blocks, n = _setup()
    slices = slice_function(f)
    assert set(slices) == {n["a"], n["g"], *f.arguments}
    c = f.arguments[0]
    assert slices[c] == {c, blocks["entry"].terminator()}


def test_slice_function_gep_combines_both_directions():
    _, f, _, n = _setup()
    slices = slice_function(f)
    assert slices[n["g"]] == backward_slice(n["g"]) | forward_slice(n["g"])
    assert slices[n["a"]] == forward_slice(n["a"])


def test_slicing_pass():
    m, f, _, _ = _setup()
    analysis = Slicing()
    assert analysis.name == "slicing"
    assert analysis.run(f) == slice_function(f)
    h = m.functions["h"]
    assert set(analysis.run(h)) == set(h.arguments)