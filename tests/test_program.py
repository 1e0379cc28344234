# tests/test_program.py
"""
Tests for the program data model, function lookup, environments and the
interpreter configuration.
"""

import pytest

from brili import errors
from brili.config import InterpreterConfig
from brili.environment import Environment, Frame
from brili.program import Argument, Function, FunctionTable, Label, Program
from brili.values import Bool, Int
from tests.conftest import BOOL, INT, PTR_INT, const, effect, value_op


class TestFunction:

    def test_label_index_first_match(self):
        func = Function("f", instrs=[Label("a"), effect("nop"), Label("a"), Label("b")])
        assert func.find_label("a") == 0
        assert func.find_label("b") == 3

    def test_label_index_is_cached(self):
        func = Function("f", instrs=[Label("a")])
        assert func.label_index() is func.label_index()

    def test_missing_label(self):
        func = Function("f", instrs=[Label("a")])
        with pytest.raises(errors.UndefinedLabelError) as info:
            func.find_label("z")
        assert info.value.function == "f"

    def test_signature(self):
        func = Function("f", args=[Argument("a", INT), Argument("p", PTR_INT)], type=BOOL)
        assert func.signature() == "@f(a: int, p: ptr<int>): bool"
        assert Function("main").signature() == "@main()"

    def test_instruction_text(self):
        assert str(const("b", True, BOOL)) == "b: bool = const true;"
        assert str(value_op("call", "r", INT, "x", funcs=["g"])) == "r: int = call @g x;"
        assert str(effect("br", "c", labels=["t", "f"])) == "br c .t .f;"
        assert str(Label("top")) == ".top:"


class TestFunctionTable:

    def test_resolve(self):
        f = Function("f")
        table = FunctionTable.from_program(Program([f, Function("g")]))
        assert table.resolve("f") is f
        assert "g" in table
        assert len(table) == 2
        assert sorted(table.names()) == ["f", "g"]

    def test_undefined(self):
        with pytest.raises(errors.UndefinedFunctionError):
            FunctionTable([]).resolve("main")

    def test_ambiguous_only_on_lookup(self):
        table = FunctionTable([Function("f"), Function("f"), Function("g")])
        assert len(table) == 3
        table.resolve("g")
        with pytest.raises(errors.AmbiguousFunctionError):
            table.resolve("f")


class TestEnvironment:

    def test_set_get(self, env):
        env.set("x", Int(1))
        assert env.get("x") == Int(1)
        assert "x" in env
        assert len(env) == 1

    def test_overwrite_with_other_type(self, env):
        env.set("x", Int(1))
        env.set("x", Bool(False))
        assert env.get("x") == Bool(False)

    def test_undefined(self, env):
        with pytest.raises(errors.UndefinedVariableError) as info:
            env.get("nope")
        assert info.value.name == "nope"

    def test_initial_bindings_are_copied(self):
        seed = {"a": Int(1)}
        env = Environment(seed)
        env.set("b", Int(2))
        assert "b" not in seed
        assert sorted(env) == ["a", "b"]

    def test_snapshot_is_detached(self, env):
        env.set("a", Int(1))
        snap = env.snapshot()
        env.set("a", Int(2))
        assert snap == {"a": Int(1)}

    def test_repr(self, env):
        env.set("a", Int(1))
        assert repr(env) == "Environment(a=1)"

    def test_frame_defaults(self):
        frame = Frame("main")
        assert frame.pc == 0
        assert len(frame.env) == 0


class TestConfig:

    def test_defaults_are_valid(self):
        config = InterpreterConfig()
        assert config.check_leaks
        assert config.recycle_block_ids
        assert config.validate() == []

    def test_warnings(self):
        warnings = InterpreterConfig(check_leaks=False, recursion_limit=10).validate()
        assert len(warnings) == 2
        assert any("recursion_limit" in w for w in warnings)
        assert any("leak checking" in w for w in warnings)
