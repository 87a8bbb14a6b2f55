"""A small in-memory model of textual SSA IR, with a parser for a practical subset."""

from __future__ import annotations

import enum
import re
from pathlib import Path
from typing import Iterator

_NAME = r'(?:[-\w.$]+|"[^"]*")'
_REF_RE = re.compile(rf"[%@]{_NAME}")
_LABEL_DEF_RE = re.compile(rf"^({_NAME}):$")
_LABEL_USE_RE = re.compile(rf"label\s+%({_NAME})")
_RESULT_RE = re.compile(rf"^%({_NAME})\s*=\s*(.*)$")
_PHI_RE = re.compile(rf"\[\s*([^\[\]]+?)\s*,\s*%({_NAME})\s*\]")
_CALLEE_RE = re.compile(rf"([%@]{_NAME})\s*\(")
_GLOBAL_RE = re.compile(rf"^@({_NAME})\s*=\s*(.*)$")
_CALL_PREFIXES = {"tail", "musttail", "notail"}


class IRParseError(ValueError):
    """Raised when IR text cannot be parsed."""


class Opcode(enum.Enum):
    """Instruction opcodes known to the analyses."""

    ALLOCA = "alloca"
    LOAD = "load"
    STORE = "store"
    GETELEMENTPTR = "getelementptr"
    PHI = "phi"
    SELECT = "select"
    CALL = "call"
    INVOKE = "invoke"
    RET = "ret"
    BR = "br"
    SWITCH = "switch"
    INDIRECTBR = "indirectbr"
    RESUME = "resume"
    UNREACHABLE = "unreachable"
    TRUNC = "trunc"
    ZEXT = "zext"
    SEXT = "sext"
    FPTRUNC = "fptrunc"
    FPEXT = "fpext"
    FPTOUI = "fptoui"
    FPTOSI = "fptosi"
    UITOFP = "uitofp"
    SITOFP = "sitofp"
    PTRTOINT = "ptrtoint"
    INTTOPTR = "inttoptr"
    BITCAST = "bitcast"
    ADDRSPACECAST = "addrspacecast"
    OTHER = "other"


_CASTS = frozenset({
    Opcode.TRUNC, Opcode.ZEXT, Opcode.SEXT, Opcode.FPTRUNC, Opcode.FPEXT,
    Opcode.FPTOUI, Opcode.FPTOSI, Opcode.UITOFP, Opcode.SITOFP,
    Opcode.PTRTOINT, Opcode.INTTOPTR, Opcode.BITCAST, Opcode.ADDRSPACECAST,
})
_TERMINATORS = frozenset({
    Opcode.RET, Opcode.BR, Opcode.SWITCH, Opcode.INDIRECTBR,
    Opcode.INVOKE, Opcode.RESUME, Opcode.UNREACHABLE,
})


class Value:
    """Anything that can be an operand; tracks the values that use it."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.users: list[Value] = []

    def add_user(self, user: Value) -> None:
        if all(existing is not user for existing in self.users):
            self.users.append(user)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class Argument(Value):
    """A formal parameter of a function."""

    def __init__(self, name: str, index: int) -> None:
        super().__init__(name)
        self.index = index
        self.parent: Function | None = None


class Constant(Value):
    """A literal or constant expression, identified by its text."""

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.text = text


class GlobalVariable(Value):
    """A module-level variable, optionally with an initializer."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.initializer: Value | None = None


class Instruction(Value):
    """One instruction inside a basic block."""

    def __init__(self, opcode: Opcode, name: str | None, text: str) -> None:
        super().__init__(name)
        self.opcode = opcode
        self.text = text
        self.operands: list[Value] = []
        self.incoming_blocks: list[BasicBlock] = []
        self.successor_blocks: list[BasicBlock] = []
        self.parent: BasicBlock | None = None
        self._specs: list[tuple[str, str]] = []
        self._incoming_names: list[str] = []
        self._successor_names: list[str] = []

    @property
    def has_result(self) -> bool:
        return self.name is not None

    def incoming(self) -> list[tuple[Value, BasicBlock]]:
        """Incoming (value, block) pairs of a phi; empty for other opcodes."""
        if self.opcode is not Opcode.PHI:
            return []
        return list(zip(self.operands, self.incoming_blocks))

    def is_cast(self) -> bool:
        return self.opcode in _CASTS

    def is_terminator(self) -> bool:
        return self.opcode in _TERMINATORS

    @property
    def pointer_operand(self) -> Value:
        if self.opcode is Opcode.STORE:
            return self.operands[1]
        if self.opcode in (Opcode.LOAD, Opcode.GETELEMENTPTR):
            return self.operands[0]
        raise AttributeError(f"{self.opcode.value} has no pointer operand")

    @property
    def value_operand(self) -> Value:
        if self.opcode is not Opcode.STORE:
            raise AttributeError(f"{self.opcode.value} has no value operand")
        return self.operands[0]

    @property
    def true_value(self) -> Value:
        if self.opcode is not Opcode.SELECT:
            raise AttributeError("only select has a true value")
        return self.operands[1]

    @property
    def false_value(self) -> Value:
        if self.opcode is not Opcode.SELECT:
            raise AttributeError("only select has a false value")
        return self.operands[2]

    @property
    def called_operand(self) -> Value:
        if self.opcode not in (Opcode.CALL, Opcode.INVOKE):
            raise AttributeError("only calls have a called operand")
        return self.operands[-1]


class BasicBlock(Value):
    """A labelled straight-line sequence of instructions."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.instructions: list[Instruction] = []
        self.parent: Function | None = None

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def terminator(self) -> Instruction | None:
        if self.instructions and self.instructions[-1].is_terminator():
            return self.instructions[-1]
        return None

    def successors(self) -> list[BasicBlock]:
        term = self.terminator()
        return list(term.successor_blocks) if term else []

    def predecessors(self) -> list[BasicBlock]:
        if self.parent is None:
            return []
        return [b for b in self.parent.blocks
                if any(s is self for s in b.successors())]


class Function(Value):
    """A function definition or declaration."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.arguments: list[Argument] = []
        self.blocks: list[BasicBlock] = []

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self.blocks)

    def is_declaration(self) -> bool:
        return not self.blocks

    def reverse_post_order(self) -> list[BasicBlock]:
        """Blocks reachable from the entry, in reverse post-order."""
        if not self.blocks:
            return []
        order: list[BasicBlock] = []
        seen = {id(self.blocks[0])}
        stack = [(self.blocks[0], iter(self.blocks[0].successors()))]
        while stack:
            block, succs = stack[-1]
            for succ in succs:
                if id(succ) not in seen:
                    seen.add(id(succ))
                    stack.append((succ, iter(succ.successors())))
                    break
            else:
                stack.pop()
                order.append(block)
        order.reverse()
        return order

    def instructions(self) -> Iterator[Instruction]:
        for block in self.blocks:
            yield from block.instructions


class Module:
    """A parsed IR module."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        self.functions: dict[str, Function] = {}
        self.globals: dict[str, GlobalVariable] = {}
        self._constants: dict[str, Constant] = {}

    def __iter__(self) -> Iterator[Function]:
        return iter(self.functions.values())

    def defined_functions(self) -> list[Function]:
        return [f for f in self.functions.values() if not f.is_declaration()]

    def _constant(self, text: str) -> Constant:
        if text not in self._constants:
            self._constants[text] = Constant(text)
        return self._constants[text]


def _unquote(name: str) -> str:
    return name[1:-1] if name.startswith('"') and name.endswith('"') else name


def _strip_comment(line: str) -> str:
    in_quote = False
    for pos, ch in enumerate(line):
        if ch == '"':
            in_quote = not in_quote
        elif ch == ";" and not in_quote:
            return line[:pos].strip()
    return line.strip()


def _split_top(text: str) -> list[str]:
    pieces: list[str] = []
    current: list[str] = []
    depth = 0
    in_quote = False
    for ch in text:
        if in_quote:
            in_quote = ch != '"'
        elif ch == '"':
            in_quote = True
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
        elif ch == "," and depth == 0:
            pieces.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        pieces.append(tail)
    return pieces


def _matching_paren(text: str, start: int) -> int:
    depth = 0
    for pos in range(start, len(text)):
        if text[pos] == "(":
            depth += 1
        elif text[pos] == ")":
            depth -= 1
            if depth == 0:
                return pos
    raise IRParseError(f"unbalanced parentheses in: {text}")


def _spec(piece: str) -> tuple[str, str]:
    tokens = piece.split()
    if not tokens:
        raise IRParseError("empty operand")
    last = tokens[-1]
    if _REF_RE.fullmatch(last):
        return ("ref", last)
    return ("const", last if len(tokens) <= 2 else piece.strip())


def _operand_pieces(pieces: list[str]) -> list[str]:
    return [p for p in pieces
            if p and p != "void"
            and not p.startswith(("align", "!", "label"))]


def _parse_instruction(line: str) -> Instruction:
    name = None
    rest = line
    match = _RESULT_RE.match(line)
    if match:
        name, rest = _unquote(match.group(1)), match.group(2)
    words = rest.split(None, 1)
    while words and words[0] in _CALL_PREFIXES:
        words = words[1].split(None, 1) if len(words) > 1 else []
    if not words:
        raise IRParseError(f"missing opcode: {line}")
    word = words[0]
    body = words[1] if len(words) > 1 else ""
    try:
        opcode = Opcode(word)
    except ValueError:
        opcode = Opcode.OTHER
    inst = Instruction(opcode, name, line)
    pieces = _split_top(body)

    if opcode is Opcode.ALLOCA:
        pass
    elif opcode is Opcode.LOAD:
        ops = _operand_pieces(pieces)
        if len(ops) < 2:
            raise IRParseError(f"malformed load: {line}")
        inst._specs = [_spec(ops[1])]
    elif opcode is Opcode.STORE:
        ops = _operand_pieces(pieces)
        if len(ops) < 2:
            raise IRParseError(f"malformed store: {line}")
        inst._specs = [_spec(ops[0]), _spec(ops[1])]
    elif opcode is Opcode.GETELEMENTPTR:
        ops = _operand_pieces(pieces)
        if len(ops) < 2:
            raise IRParseError(f"malformed getelementptr: {line}")
        inst._specs = [_spec(p) for p in ops[1:]]
    elif opcode is Opcode.PHI:
        for value_text, block_name in _PHI_RE.findall(body):
            inst._specs.append(_spec(value_text))
            inst._incoming_names.append(_unquote(block_name))
    elif opcode is Opcode.SELECT:
        ops = _operand_pieces(pieces)
        if len(ops) != 3:
            raise IRParseError(f"malformed select: {line}")
        inst._specs = [_spec(p) for p in ops]
    elif opcode in _CASTS:
        source, sep, _ = body.rpartition(" to ")
        if not sep:
            raise IRParseError(f"malformed cast: {line}")
        inst._specs = [_spec(source)]
    elif opcode in (Opcode.CALL, Opcode.INVOKE):
        callee = _CALLEE_RE.search(body)
        if callee:
            close = _matching_paren(body, callee.end() - 1)
            args = _split_top(body[callee.end():close])
            inst._specs = [_spec(a) for a in _operand_pieces(args)]
            inst._specs.append(("ref", callee.group(1)))
        else:
            inst._specs = [("const", body.strip() or word)]
    elif opcode is Opcode.SWITCH:
        inst._specs = [_spec(pieces[0])] if pieces else []
    else:
        inst._specs = [_spec(p) for p in _operand_pieces(pieces)]

    if inst.is_terminator():
        inst._successor_names = [_unquote(n) for n in _LABEL_USE_RE.findall(body)]
    return inst


def _logical_lines(lines: list[str]) -> Iterator[str]:
    pending = ""
    for raw in lines:
        line = _strip_comment(raw)
        if not line:
            continue
        pending = f"{pending} {line}".strip() if pending else line
        if pending.count("[") <= pending.count("]"):
            yield pending
            pending = ""
    if pending:
        yield pending


class _Parser:
    def __init__(self, text: str, identifier: str) -> None:
        self.module = Module(identifier)
        self.lines = text.splitlines()
        self.bodies: list[tuple[Function, list[str], int]] = []
        self.initializers: list[tuple[GlobalVariable, tuple[str, str]]] = []

    def _register(self, name: str, value: Value) -> None:
        if name in self.module.functions or name in self.module.globals:
            raise IRParseError(f"redefinition of @{name}")
        if isinstance(value, Function):
            self.module.functions[name] = value
        else:
            self.module.globals[name] = value

    def _header(self, line: str) -> tuple[Function, int]:
        match = _CALLEE_RE.search(line)
        if not match or not match.group(1).startswith("@"):
            raise IRParseError(f"malformed function header: {line}")
        func = Function(_unquote(match.group(1)[1:]))
        close = _matching_paren(line, match.end() - 1)
        counter = 0
        for piece in _split_top(line[match.end():close]):
            if piece == "...":
                continue
            last = piece.split()[-1]
            if last.startswith("%"):
                arg_name = _unquote(last[1:])
            else:
                arg_name = str(counter)
                counter += 1
            arg = Argument(arg_name, len(func.arguments))
            arg.parent = func
            func.arguments.append(arg)
        self._register(func.name, func)
        return func, counter

    def _global(self, line: str) -> None:
        match = _GLOBAL_RE.match(line)
        if not match:
            raise IRParseError(f"malformed global: {line}")
        rest = match.group(2)
        kind = re.search(r"\b(global|constant)\b", rest)
        if not kind:
            return
        var = GlobalVariable(_unquote(match.group(1)))
        self._register(var.name, var)
        prefix = rest[:kind.start()].split()
        pieces = _split_top(rest[kind.end():])
        if ("external" not in prefix and "extern_weak" not in prefix
                and pieces and len(pieces[0].split()) > 1):
            self.initializers.append((var, _spec(pieces[0])))

    def collect(self) -> None:
        lines = iter(enumerate(self.lines, 1))
        for number, raw in lines:
            line = _strip_comment(raw)
            if line.startswith("define"):
                func, counter = self._header(line)
                body: list[str] = []
                for _, inner in lines:
                    if _strip_comment(inner) == "}":
                        break
                    body.append(inner)
                else:
                    raise IRParseError(f"line {number}: unterminated function @{func.name}")
                self.bodies.append((func, body, counter))
            elif line.startswith("declare"):
                self._header(line)
            elif line.startswith("@"):
                self._global(line)

    def resolve_global(self, text: str) -> Value:
        name = _unquote(text[1:])
        value = self.module.functions.get(name) or self.module.globals.get(name)
        if value is None:
            raise IRParseError(f"undefined global @{name}")
        return value

    def resolve(self, spec: tuple[str, str], local: dict[str, Value]) -> Value:
        kind, text = spec
        if kind == "const":
            return self.module._constant(text)
        if text.startswith("@"):
            return self.resolve_global(text)
        name = _unquote(text[1:])
        if name not in local:
            raise IRParseError(f"undefined value %{name}")
        return local[name]

    def build(self, func: Function, body: list[str], counter: int) -> None:
        current: BasicBlock | None = None
        for line in _logical_lines(body):
            label = _LABEL_DEF_RE.match(line)
            if label:
                current = BasicBlock(_unquote(label.group(1)))
            elif current is None:
                current = BasicBlock(str(counter))
            else:
                inst = _parse_instruction(line)
                inst.parent = current
                current.instructions.append(inst)
                continue
            current.parent = func
            func.blocks.append(current)
            if not label:
                inst = _parse_instruction(line)
                inst.parent = current
                current.instructions.append(inst)
        local: dict[str, Value] = {a.name: a for a in func.arguments}
        for inst in func.instructions():
            if inst.name is not None:
                if inst.name in local:
                    raise IRParseError(f"redefinition of %{inst.name}")
                local[inst.name] = inst
        blocks = {b.name: b for b in func.blocks}

        def block(name: str) -> BasicBlock:
            if name not in blocks:
                raise IRParseError(f"undefined label %{name} in @{func.name}")
            return blocks[name]

        for inst in func.instructions():
            inst.operands = [self.resolve(s, local) for s in inst._specs]
            inst.incoming_blocks = [block(n) for n in inst._incoming_names]
            inst.successor_blocks = [block(n) for n in inst._successor_names]
            for operand in inst.operands:
                operand.add_user(inst)


def parse_module(text: str, identifier: str = "<string>") -> Module:
    """Parse IR text into a Module."""
    parser = _Parser(text, identifier)
    parser.collect()
    for var, spec in parser.initializers:
        var.initializer = parser.resolve(spec, {})
    for func, body, counter in parser.bodies:
        parser.build(func, body, counter)
    return parser.module


def parse_file(path: str | Path) -> Module:
    """Read and parse an IR file; the module is identified by its path."""
    text = Path(path).read_text(encoding="utf-8")
    return parse_module(text, str(path))