# tests/conftest.py
"""
Shared helpers, fixtures and sample programs for the brili test-suite.
"""

import io
import textwrap
from typing import List, Optional, Sequence, Tuple

import pytest

from brili.config import InterpreterConfig
from brili.environment import Environment
from brili.heap import Heap
from brili.instructions import ExecutionContext, InstructionInterpreter
from brili.interpreter import RunResult, run_program
from brili.program import (
    Constant,
    EffectOperation,
    Function,
    FunctionTable,
    ValueOperation,
)
from brili.text import parse_program
from brili.types import BrilType, PointerType, PrimitiveType

INT = PrimitiveType.INT
BOOL = PrimitiveType.BOOL
PTR_INT = PointerType(PrimitiveType.INT)
PTR_BOOL = PointerType(PrimitiveType.BOOL)
PTR_PTR_INT = PointerType(PointerType(PrimitiveType.INT))


# ---------------------------------------------------------------------------
# Instruction builders
# ---------------------------------------------------------------------------

def const(dest: str, value, type: BrilType = INT) -> Constant:
    return Constant(dest=dest, type=type, value=value)


def value_op(op: str, dest: str, type: Optional[BrilType], *args: str,
             funcs: Sequence[str] = (), labels: Sequence[str] = ()) -> ValueOperation:
    return ValueOperation(op=op, dest=dest, type=type, args=tuple(args),
                          funcs=tuple(funcs), labels=tuple(labels))


def effect(op: str, *args: str, funcs: Sequence[str] = (),
           labels: Sequence[str] = ()) -> EffectOperation:
    return EffectOperation(op=op, args=tuple(args), funcs=tuple(funcs),
                           labels=tuple(labels))


def make_context(functions: Sequence[Function] = (),
                 config: Optional[InterpreterConfig] = None) -> ExecutionContext:
    return ExecutionContext(
        heap=Heap(),
        functions=FunctionTable(functions),
        stdout=io.StringIO(),
        config=config or InterpreterConfig(),
    )


def output_lines(ctx: ExecutionContext) -> List[str]:
    return ctx.stdout.getvalue().splitlines()


# ---------------------------------------------------------------------------
# Whole-program helpers
# ---------------------------------------------------------------------------

def run_source(source: str, *args: str,
               config: Optional[InterpreterConfig] = None) -> Tuple[RunResult, List[str]]:
    """Parse Bril text, run it and return the result plus printed lines."""
    out = io.StringIO()
    program = parse_program(textwrap.dedent(source))
    result = run_program(program, list(args), stdout=out, config=config)
    return result, out.getvalue().splitlines()


def run_source_capturing(source: str, *args: str) -> Tuple[Optional[BaseException], List[str]]:
    """Like ``run_source`` but returns ``(exception, lines)`` instead of raising."""
    out = io.StringIO()
    program = parse_program(textwrap.dedent(source))
    try:
        run_program(program, list(args), stdout=out)
    except Exception as exc:
        return exc, out.getvalue().splitlines()
    return None, out.getvalue().splitlines()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def heap():
    return Heap()


@pytest.fixture
def env():
    return Environment()


@pytest.fixture
def ctx():
    return make_context()


@pytest.fixture
def interp():
    """Instruction interpreter with no call handler."""
    return InstructionInterpreter()


# ---------------------------------------------------------------------------
# Sample programs
# ---------------------------------------------------------------------------

IDENTITY_SRC = """\
@main(a: int): int {
  ret a;
}
"""

FACTORIAL_SRC = """\
@fact(n: int): int {
  one: int = const 1;
  base: bool = le n one;
  br base .done .recurse;
.done:
  ret one;
.recurse:
  m: int = sub n one;
  r: int = call @fact m;
  res: int = mul n r;
  ret res;
}

@main(n: int) {
  f: int = call @fact n;
  print f;
}
"""

ARRAY_SUM_SRC = """\
# fill an array with 0..n-1 and print its sum
@main(n: int) {
  arr: ptr<int> = alloc n;
  i: int = const 0;
  one: int = const 1;
  sum: int = const 0;
.fill:
  more: bool = lt i n;
  br more .store .summed;
.store:
  slot: ptr<int> = ptradd arr i;
  store slot i;
  sum: int = add sum i;
  i: int = add i one;
  jmp .fill;
.summed:
  print sum;
  free arr;
}
"""

COUNTDOWN_SRC = """\
@main(n: int, loud: bool) {
  zero: int = const 0;
  one: int = const 1;
.top:
  done: bool = le n zero;
  br done .end .body;
.body:
  br loud .say .skip;
.say:
  print n;
.skip:
  n: int = sub n one;
  jmp .top;
.end:
  print loud;
}
"""
