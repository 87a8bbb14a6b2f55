from irpasses.ir import Opcode, parse_module
from irpasses.zerocfa import CallTargetAnalyzer, ZeroCFAnalysis

IR = """
@fp = global ptr @foo
@gp = global ptr @foo

declare void @ext()

define void @foo() {
entry:
  ret void
}

define void @bar() {
entry:
  ret void
}

define void @main(i1 %c) {
entry:
  %f = load ptr, ptr @fp
  call void %f()
  call void @foo()
  %s = select i1 %c, ptr @foo, ptr @bar
  call void %s()
  call void @ext()
  ret void
}

define void @stored() {
entry:
  store ptr @bar, ptr @gp
  %f = load ptr, ptr @gp
  call void %f()
  ret void
}

define void @pick(i1 %c) {
entry:
  br i1 %c, label %a, label %b
a:
  br label %join
b:
  br label %join
join:
  %p = phi ptr [ @foo, %a ], [ @bar, %b ]
  call void %p()
  ret void
}

define void @cb(ptr %h) {
entry:
  call void %h()
  %q = bitcast ptr %h to ptr
  call void %q()
  %g = getelementptr i8, ptr %h, i64 1
  call void %g()
  ret void
}
"""


def _module():
    return parse_module(IR)


def _calls(func):
    return [i for i in func.instructions() if i.opcode is Opcode.CALL]


def test_load_from_global_sees_global_and_initializer():
    m = _module()
    main = m.functions["main"]
    result = ZeroCFAnalysis().run(main)
    first = _calls(main)[0]
    assert result[first] == {m.globals["fp"], m.functions["foo"]}


def test_direct_and_select_calls():
    m = _module()
    main = m.functions["main"]
    result = ZeroCFAnalysis().run(main)
    _, direct, via_select, external = _calls(main)
    assert result[direct] == {m.functions["foo"]}
    assert result[via_select] == {m.functions["foo"], m.functions["bar"]}
    assert result[external] == {m.functions["ext"]}


def test_every_call_is_mapped():
    m = _module()
    main = m.functions["main"]
    result = ZeroCFAnalysis().run(main)
    assert set(result) == set(_calls(main))


def test_stores_to_global_flow_into_load():
    m = _module()
    func = m.functions["stored"]
    result = ZeroCFAnalysis().run(func)
    (call,) = _calls(func)
    assert result[call] == {m.globals["gp"], m.functions["foo"], m.functions["bar"]}


def test_phi_merges_incoming_targets():
    m = _module()
    func = m.functions["pick"]
    result = ZeroCFAnalysis().run(func)
    (call,) = _calls(func)
    assert result[call] == {m.functions["foo"], m.functions["bar"]}


def test_argument_cast_and_gep_resolve_to_argument():
    m = _module()
    func = m.functions["cb"]
    arg = func.arguments[0]
    result = ZeroCFAnalysis().run(func)
    assert [result[c] for c in _calls(func)] == [{arg}, {arg}, {arg}]


def test_declaration_has_no_calls():
    m = _module()
    assert ZeroCFAnalysis().run(m.functions["ext"]) == {}


def test_analyze_ptr_is_memoized():
    m = _module()
    analyzer = CallTargetAnalyzer()
    fp = m.globals["fp"]
    first = analyzer.analyze_ptr(fp)
    second = analyzer.analyze_ptr(fp)
    assert first is second
    assert first == {fp, m.functions["foo"]}


def test_analyze_function_populates_call_map():
    m = _module()
    analyzer = CallTargetAnalyzer()
    func = m.functions["pick"]
    returned = analyzer.analyze_function(func)
    assert returned is analyzer.call_map
    assert len(returned) == len(_calls(func))


def test_pass_name():
    analysis = ZeroCFAnalysis()
    assert analysis.name == "0-CFA"
    assert analysis.run(_module().functions["foo"]) == {}