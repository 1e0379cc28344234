# tests/test_text.py
"""
Tests for the Bril text front-end: the PEG grammar, the tree visitor and
the pretty-printer.
"""

import textwrap

import pytest
from parsimonious.exceptions import ParseError

from brili.errors import ProgramFormatError
from brili.program import Argument, Constant, EffectOperation, Label, ValueOperation
from brili.text import BRIL_GRAMMAR, format_program, parse_program
from brili.types import PointerType, PrimitiveType
from tests.conftest import ARRAY_SUM_SRC, COUNTDOWN_SRC, FACTORIAL_SRC


class TestGrammar:

    def test_rules_present(self):
        for rule in ("program", "function", "type", "instr_line", "label_line",
                     "const_instr", "value_instr", "effect_instr", "literal"):
            assert rule in BRIL_GRAMMAR, f"Rule {rule!r} missing"

    @pytest.mark.parametrize("text", ["int", "bool", "ptr<int>", "ptr< ptr<bool> >"])
    def test_types(self, text):
        assert BRIL_GRAMMAR["type"].parse(text).text == text

    @pytest.mark.parametrize("text", ["x", "_tmp", "v0.1", "%reg"])
    def test_identifiers(self, text):
        BRIL_GRAMMAR["ident"].parse(text)

    @pytest.mark.parametrize("text", ["0", "-17", "+3", "true", "false"])
    def test_literals(self, text):
        BRIL_GRAMMAR["literal"].parse(text)

    def test_empty_program(self):
        assert BRIL_GRAMMAR.parse("") is not None

    def test_garbage_rejected(self):
        with pytest.raises(ParseError):
            BRIL_GRAMMAR.parse("main() {}")


class TestParseProgram:

    def test_signature(self):
        program = parse_program("@f(a: int, b: ptr<bool>): bool { ret; }")
        func = program.functions[0]
        assert func.name == "f"
        assert func.args == [
            Argument("a", PrimitiveType.INT),
            Argument("b", PointerType(PrimitiveType.BOOL)),
        ]
        assert func.type is PrimitiveType.BOOL

    def test_no_params_no_return(self):
        func = parse_program("@main { nop; }").functions[0]
        assert func.args == []
        assert func.type is None

    def test_empty_parens(self):
        func = parse_program("@main() { }").functions[0]
        assert func.args == []
        assert func.instrs == []

    def test_instruction_kinds(self):
        src = textwrap.dedent("""\
            @main {
              x: int = const -4;
              t: bool = const true;
              p: ptr<int> = alloc x;
              r: int = call @f x t;
            .again:
              br t .again .out;
              print x t;
              ret;
            }
        """)
        instrs = parse_program(src).functions[0].instrs
        assert instrs[0] == Constant("x", PrimitiveType.INT, -4)
        assert instrs[1] == Constant("t", PrimitiveType.BOOL, True)
        assert instrs[2] == ValueOperation("alloc", "p", PointerType(PrimitiveType.INT), args=("x",))
        assert instrs[3] == ValueOperation("call", "r", PrimitiveType.INT,
                                           args=("x", "t"), funcs=("f",))
        assert instrs[4] == Label("again")
        assert instrs[5] == EffectOperation("br", args=("t",), labels=("again", "out"))
        assert instrs[6] == EffectOperation("print", args=("x", "t"))
        assert instrs[7] == EffectOperation("ret")

    def test_comments_and_blank_lines(self):
        src = textwrap.dedent("""\
            # leading comment

            @main {   # trailing comment
              # full-line comment
              x: int = const 1;  # after an instruction

              print x;
            }
        """)
        instrs = parse_program(src).functions[0].instrs
        assert len(instrs) == 2

    def test_several_functions(self):
        program = parse_program(FACTORIAL_SRC)
        assert program.function_names() == ["fact", "main"]

    def test_const_keyword_prefix_is_an_opcode(self):
        instr = parse_program("@main { x: int = constant y; }").functions[0].instrs[0]
        assert isinstance(instr, ValueOperation)
        assert instr.op == "constant"

    @pytest.mark.parametrize("src", [
        "@main { x: int = const 1 }",
        "@main { x: float = const 1; }",
        "@main { x: int = const 1.5; }",
        "@main(n) { }",
        "@main {",
        "main { }",
    ], ids=["missing-semicolon", "bad-type", "float",
            "untyped-param", "unclosed", "no-at-sign"])
    def test_syntax_errors(self, src):
        with pytest.raises(ProgramFormatError):
            parse_program(src)

    def test_syntax_error_has_line(self):
        with pytest.raises(ProgramFormatError) as info:
            parse_program("@main {\n  nop;\n  x: int = ;\n}\n")
        assert info.value.line == 3


class TestFormatProgram:

    @pytest.mark.parametrize("src", [FACTORIAL_SRC, ARRAY_SUM_SRC, COUNTDOWN_SRC],
                             ids=["factorial", "array-sum", "countdown"])
    def test_reparses_to_same_program(self, src):
        program = parse_program(src)
        assert parse_program(format_program(program)) == program

    def test_layout(self):
        program = parse_program("@f(a: int): int { .l: ret a; }")
        assert format_program(program) == "@f(a: int): int {\n.l:\n  ret a;\n}\n"
