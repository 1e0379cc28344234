"""
brili/instructions.py
=====================

Execution of a single instruction.

``InstructionInterpreter.execute`` takes one instruction, the active
``Environment`` and the ``ExecutionContext`` (heap, function table, output
sink, configuration) and returns the control action the function driver
must take next:

    Fallthrough        continue with the next instruction
    JumpTo(label)      continue at the given label
    Return(value?)     leave the current function

Every operand is resolved in the environment and its runtime tag checked
against what the opcode expects at that position before anything happens.
Argument counts are checked before dispatch.

``call`` is the one opcode that needs the function driver; the interpreter
delegates it to the ``call_handler`` it was constructed with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TextIO, Tuple, Union

from brili import errors
from brili.config import InterpreterConfig
from brili.environment import Environment
from brili.heap import Heap
from brili.program import (
    Constant,
    EffectOperation,
    FunctionTable,
    Instruction,
    Opcode,
    Operation,
    ValueOperation,
)
from brili.types import PointerType, PrimitiveType, element_type
from brili.values import Bool, Int, Pointer, Value, format_values, from_literal, type_of

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Control actions                                                       #
# ===================================================================== #

@dataclass(frozen=True, slots=True)
class Fallthrough:
    """Proceed to the next instruction."""


@dataclass(frozen=True, slots=True)
class JumpTo:
    label: str


@dataclass(frozen=True, slots=True)
class Return:
    value: Optional[Value] = None


Action = Union[Fallthrough, JumpTo, Return]

FALLTHROUGH = Fallthrough()


# ===================================================================== #
#  Execution context                                                     #
# ===================================================================== #

@dataclass
class ExecutionContext:
    """State shared by every frame of one program run."""
    heap: Heap
    functions: FunctionTable
    stdout: TextIO
    config: InterpreterConfig = field(default_factory=InterpreterConfig)
    instructions_executed: int = 0
    call_depth: int = 0
    max_call_depth: int = 0


CallHandler = Callable[[Operation, Environment, ExecutionContext], Action]


# ===================================================================== #
#  Arity table                                                           #
# ===================================================================== #

# (args, labels, funcs); None means the handler validates the count itself.
ARITY: Dict[Opcode, Optional[Tuple[int, int, int]]] = {
    Opcode.CONST: (0, 0, 0),
    Opcode.ID: (1, 0, 0),
    Opcode.ADD: (2, 0, 0),
    Opcode.SUB: (2, 0, 0),
    Opcode.MUL: (2, 0, 0),
    Opcode.DIV: (2, 0, 0),
    Opcode.LT: (2, 0, 0),
    Opcode.LE: (2, 0, 0),
    Opcode.GT: (2, 0, 0),
    Opcode.GE: (2, 0, 0),
    Opcode.EQ: (2, 0, 0),
    Opcode.NOT: (1, 0, 0),
    Opcode.AND: (2, 0, 0),
    Opcode.OR: (2, 0, 0),
    Opcode.PRINT: None,
    Opcode.JMP: (0, 1, 0),
    Opcode.BR: (1, 2, 0),
    Opcode.RET: None,
    Opcode.NOP: (0, 0, 0),
    Opcode.CALL: None,
    Opcode.ALLOC: (1, 0, 0),
    Opcode.FREE: (1, 0, 0),
    Opcode.STORE: (2, 0, 0),
    Opcode.LOAD: (1, 0, 0),
    Opcode.PTRADD: (2, 0, 0),
}

# Opcodes that bind a destination and so must be ValueOperations.
VALUE_OPCODES = frozenset({
    Opcode.ID, Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV,
    Opcode.LT, Opcode.LE, Opcode.GT, Opcode.GE, Opcode.EQ,
    Opcode.NOT, Opcode.AND, Opcode.OR,
    Opcode.ALLOC, Opcode.LOAD, Opcode.PTRADD,
})


def check_arity(instr: Operation, opcode: Opcode) -> None:
    expected = ARITY[opcode]
    if expected is None:
        return
    n_args, n_labels, n_funcs = expected
    if len(instr.args) != n_args:
        raise errors.ArityMismatchError(instr.op, n_args, len(instr.args))
    if len(instr.labels) != n_labels:
        raise errors.ArityMismatchError(instr.op, n_labels, len(instr.labels), "label(s)")
    if len(instr.funcs) != n_funcs:
        raise errors.ArityMismatchError(instr.op, n_funcs, len(instr.funcs), "function(s)")


def _truncating_div(lhs: int, rhs: int) -> int:
    quotient = abs(lhs) // abs(rhs)
    return -quotient if (lhs < 0) != (rhs < 0) else quotient


# ===================================================================== #
#  Instruction interpreter                                               #
# ===================================================================== #

class InstructionInterpreter:
    """
    Dispatches one instruction to its opcode handler.

    Handlers are looked up in ``_DISPATCH`` by ``Opcode``; the table is
    checked against the ``Opcode`` enum when this module is imported, so a
    new opcode without a handler fails loudly at import time rather than
    at run time.
    """

    _DISPATCH: Dict[Opcode, str] = {
        Opcode.CONST: "_exec_const",
        Opcode.ID: "_exec_id",
        Opcode.ADD: "_exec_arith",
        Opcode.SUB: "_exec_arith",
        Opcode.MUL: "_exec_arith",
        Opcode.DIV: "_exec_arith",
        Opcode.LT: "_exec_compare",
        Opcode.LE: "_exec_compare",
        Opcode.GT: "_exec_compare",
        Opcode.GE: "_exec_compare",
        Opcode.EQ: "_exec_compare",
        Opcode.NOT: "_exec_not",
        Opcode.AND: "_exec_logic",
        Opcode.OR: "_exec_logic",
        Opcode.PRINT: "_exec_print",
        Opcode.JMP: "_exec_jmp",
        Opcode.BR: "_exec_br",
        Opcode.RET: "_exec_ret",
        Opcode.NOP: "_exec_nop",
        Opcode.CALL: "_exec_call",
        Opcode.ALLOC: "_exec_alloc",
        Opcode.FREE: "_exec_free",
        Opcode.STORE: "_exec_store",
        Opcode.LOAD: "_exec_load",
        Opcode.PTRADD: "_exec_ptradd",
    }

    _ARITH: Dict[Opcode, Callable[[int, int], int]] = {
        Opcode.ADD: lambda a, b: a + b,
        Opcode.SUB: lambda a, b: a - b,
        Opcode.MUL: lambda a, b: a * b,
        Opcode.DIV: _truncating_div,
    }

    _COMPARE: Dict[Opcode, Callable[[int, int], bool]] = {
        Opcode.LT: lambda a, b: a < b,
        Opcode.LE: lambda a, b: a <= b,
        Opcode.GT: lambda a, b: a > b,
        Opcode.GE: lambda a, b: a >= b,
        Opcode.EQ: lambda a, b: a == b,
    }

    def __init__(self, call_handler: Optional[CallHandler] = None) -> None:
        self._call_handler = call_handler

    # -- Entry point -----------------------------------------------------
    def execute(
        self,
        instr: Instruction,
        env: Environment,
        ctx: ExecutionContext,
    ) -> Action:
        """Execute *instr* and report what the function driver does next."""
        opcode = Opcode.lookup(instr.op)
        if opcode is None:
            raise errors.UnknownOpcodeError(instr.op)

        if isinstance(instr, Constant):
            if opcode is not Opcode.CONST:
                raise errors.InternalError(f"Constant carrying opcode {instr.op}")
        elif isinstance(instr, (ValueOperation, EffectOperation)):
            if opcode is Opcode.CONST:
                raise errors.MalformedInstructionError("const must carry a literal value")
            check_arity(instr, opcode)
            if opcode in VALUE_OPCODES and not isinstance(instr, ValueOperation):
                raise errors.MalformedInstructionError(f"{instr.op} requires a destination")
        else:
            raise errors.InternalError(f"not an instruction: {instr!r}")

        handler_name = self._DISPATCH.get(opcode)
        if handler_name is None:
            raise errors.InternalError(
                f"unhandled opcode {opcode.value}", errors.ErrorCodes.UNHANDLED_OPCODE
            )
        ctx.instructions_executed += 1
        return getattr(self, handler_name)(instr, opcode, env, ctx)

    # -- Operand access --------------------------------------------------
    def _arg(
        self,
        instr: Operation,
        env: Environment,
        index: int,
        expected: Optional[PrimitiveType] = None,
    ) -> Value:
        value = env.get(instr.args[index])
        if expected is not None and type_of(value) is not expected:
            raise errors.TypeMismatchError(
                f"{instr.op} argument {index} must be a {expected}; "
                f"{instr.args[index]} is a {type_of(value)}",
                expected=str(expected),
                actual=str(type_of(value)),
            )
        return value

    def _int(self, instr: Operation, env: Environment, index: int) -> int:
        value = self._arg(instr, env, index, PrimitiveType.INT)
        assert isinstance(value, Int)
        return value.value

    def _bool(self, instr: Operation, env: Environment, index: int) -> bool:
        value = self._arg(instr, env, index, PrimitiveType.BOOL)
        assert isinstance(value, Bool)
        return value.value

    def _ptr(self, instr: Operation, env: Environment, index: int) -> Pointer:
        value = self._arg(instr, env, index, PrimitiveType.PTR)
        assert isinstance(value, Pointer)
        return value

    # -- Handlers --------------------------------------------------------
    def _exec_const(self, instr: Constant, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        declared = instr.type
        literal = from_literal(instr.value)
        if declared not in (PrimitiveType.INT, PrimitiveType.BOOL):
            raise errors.MalformedInstructionError(
                f"const {instr.dest} must be declared int or bool, not {declared}"
            )
        if type_of(literal) is not declared:
            raise errors.TypeMismatchError(
                f"const literal {instr.value!r} does not match declared type {declared}",
                expected=str(declared),
                actual=str(type_of(literal)),
            )
        env.set(instr.dest, literal)
        return FALLTHROUGH

    def _exec_id(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                 ctx: ExecutionContext) -> Action:
        env.set(instr.dest, self._arg(instr, env, 0))
        return FALLTHROUGH

    def _exec_arith(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        lhs = self._int(instr, env, 0)
        rhs = self._int(instr, env, 1)
        if opcode is Opcode.DIV and rhs == 0:
            raise errors.DivideByZeroError()
        env.set(instr.dest, Int(self._ARITH[opcode](lhs, rhs)))
        return FALLTHROUGH

    def _exec_compare(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                      ctx: ExecutionContext) -> Action:
        lhs = self._int(instr, env, 0)
        rhs = self._int(instr, env, 1)
        env.set(instr.dest, Bool(self._COMPARE[opcode](lhs, rhs)))
        return FALLTHROUGH

    def _exec_not(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                  ctx: ExecutionContext) -> Action:
        env.set(instr.dest, Bool(not self._bool(instr, env, 0)))
        return FALLTHROUGH

    def _exec_logic(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        # Both operands are already-bound variables; both are checked.
        lhs = self._bool(instr, env, 0)
        rhs = self._bool(instr, env, 1)
        result = (lhs and rhs) if opcode is Opcode.AND else (lhs or rhs)
        env.set(instr.dest, Bool(result))
        return FALLTHROUGH

    def _exec_print(self, instr: Operation, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        values: List[Value] = [self._arg(instr, env, i) for i in range(len(instr.args))]
        ctx.stdout.write(format_values(values) + "\n")
        return FALLTHROUGH

    def _exec_jmp(self, instr: Operation, opcode: Opcode, env: Environment,
                  ctx: ExecutionContext) -> Action:
        return JumpTo(instr.labels[0])

    def _exec_br(self, instr: Operation, opcode: Opcode, env: Environment,
                 ctx: ExecutionContext) -> Action:
        if self._bool(instr, env, 0):
            return JumpTo(instr.labels[0])
        return JumpTo(instr.labels[1])

    def _exec_ret(self, instr: Operation, opcode: Opcode, env: Environment,
                  ctx: ExecutionContext) -> Action:
        if len(instr.args) == 0:
            return Return(None)
        if len(instr.args) == 1:
            return Return(self._arg(instr, env, 0))
        raise errors.ArityMismatchError("ret", "0 or 1", len(instr.args))

    def _exec_nop(self, instr: Operation, opcode: Opcode, env: Environment,
                  ctx: ExecutionContext) -> Action:
        return FALLTHROUGH

    def _exec_call(self, instr: Operation, opcode: Opcode, env: Environment,
                   ctx: ExecutionContext) -> Action:
        if len(instr.funcs) != 1:
            raise errors.ArityMismatchError("call", 1, len(instr.funcs), "function(s)")
        if self._call_handler is None:
            raise errors.InternalError("call executed without a call handler")
        return self._call_handler(instr, env, ctx)

    def _exec_alloc(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        if not isinstance(instr.type, PointerType):
            raise errors.MalformedInstructionError(
                f"alloc {instr.dest} must be declared with a pointer type, not {instr.type}"
            )
        amount = self._int(instr, env, 0)
        env.set(instr.dest, ctx.heap.alloc(element_type(instr.type), amount))
        return FALLTHROUGH

    def _exec_free(self, instr: Operation, opcode: Opcode, env: Environment,
                   ctx: ExecutionContext) -> Action:
        ctx.heap.free(self._ptr(instr, env, 0).key)
        return FALLTHROUGH

    def _exec_store(self, instr: Operation, opcode: Opcode, env: Environment,
                    ctx: ExecutionContext) -> Action:
        target = self._ptr(instr, env, 0)
        value = self._arg(instr, env, 1, target.element_type)
        ctx.heap.write(target.key, value)
        return FALLTHROUGH

    def _exec_load(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                   ctx: ExecutionContext) -> Action:
        source = self._ptr(instr, env, 0)
        env.set(instr.dest, ctx.heap.read(source.key))
        return FALLTHROUGH

    def _exec_ptradd(self, instr: ValueOperation, opcode: Opcode, env: Environment,
                     ctx: ExecutionContext) -> Action:
        base = self._ptr(instr, env, 0)
        env.set(instr.dest, base.add(self._int(instr, env, 1)))
        return FALLTHROUGH


_unhandled = [op.value for op in Opcode if op not in InstructionInterpreter._DISPATCH]
if _unhandled:
    raise errors.InternalError(f"opcodes without handlers: {', '.join(_unhandled)}")

_missing_arity = [op.value for op in Opcode if op not in ARITY]
if _missing_arity:
    raise errors.InternalError(f"opcodes without arity: {', '.join(_missing_arity)}")


__all__ = [
    "Fallthrough",
    "JumpTo",
    "Return",
    "Action",
    "FALLTHROUGH",
    "ExecutionContext",
    "CallHandler",
    "ARITY",
    "VALUE_OPCODES",
    "check_arity",
    "InstructionInterpreter",
]
