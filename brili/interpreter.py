"""
brili/interpreter.py
====================

Function interpreter, call semantics and the program driver.

    run_program ──► FunctionInterpreter.run_function(main)
                         │  per instruction
                         ▼
                    InstructionInterpreter.execute ──► Heap / Environment
                         │  Fallthrough | JumpTo | Return
                         ▼
                    pc += 1 | pc = label index | stop

A call builds a brand-new ``Environment`` for the callee holding only its
parameters and re-enters ``run_function`` recursively; the heap and the
function table travel along in the ``ExecutionContext``.  There is no depth
guard: host stack exhaustion (``RecursionError``) propagates untouched.

Return values are checked at the call site only.  A ``ret`` inside a
function is not compared with the function's own declared return type, and
nothing checks what ``main`` returns.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO

from brili import errors
from brili.config import InterpreterConfig
from brili.environment import Environment, Frame
from brili.heap import Heap
from brili.instructions import (
    FALLTHROUGH,
    Action,
    ExecutionContext,
    Fallthrough,
    InstructionInterpreter,
    JumpTo,
    Return,
)
from brili.program import (
    Argument,
    Function,
    FunctionTable,
    Label,
    Operation,
    Program,
    ValueOperation,
)
from brili.types import PrimitiveType, runtime_tag
from brili.values import Bool, Int, Value, type_of, unbounded_int_digits

logger = logging.getLogger(__name__)

ENTRY_POINT = "main"

_INT_LITERAL = re.compile(r"[+-]?[0-9]+")


class FunctionInterpreter:
    """Runs function bodies and implements ``call``."""

    def __init__(self) -> None:
        self._instructions = InstructionInterpreter(call_handler=self.eval_call)

    # -- Function driver -------------------------------------------------
    def run_function(
        self,
        func: Function,
        env: Environment,
        ctx: ExecutionContext,
    ) -> Optional[Value]:
        """Execute *func* in *env* until it returns or runs off the end."""
        frame = Frame(function_name=func.name, env=env)
        instrs = func.instrs
        try:
            while frame.pc < len(instrs):
                line = instrs[frame.pc]
                if isinstance(line, Label):
                    frame.pc += 1
                    continue
                action = self._instructions.execute(line, frame.env, ctx)
                if isinstance(action, Fallthrough):
                    frame.pc += 1
                elif isinstance(action, JumpTo):
                    frame.pc = func.find_label(action.label)
                elif isinstance(action, Return):
                    return action.value
                else:
                    raise errors.InternalError(f"unknown control action {action!r}")
        except errors.BriliError as exc:
            if exc.function is None:
                exc.function = func.name
            raise
        return None

    # -- Call semantics --------------------------------------------------
    def eval_call(
        self,
        instr: Operation,
        env: Environment,
        ctx: ExecutionContext,
    ) -> Action:
        callee = ctx.functions.resolve(instr.funcs[0])

        if len(instr.args) != len(callee.args):
            raise errors.ArityMismatchError(
                f"@{callee.name}", len(callee.args), len(instr.args)
            )

        # Every argument is resolved and checked before the callee starts.
        callee_env = Environment()
        for param, arg_name in zip(callee.args, instr.args):
            value = env.get(arg_name)
            expected = runtime_tag(param.type)
            if type_of(value) is not expected:
                raise errors.TypeMismatchError(
                    f"function argument type mismatch: @{callee.name} parameter "
                    f"{param.name} expects {param.type}, got {type_of(value)}",
                    expected=str(param.type),
                    actual=str(type_of(value)),
                )
            callee_env.set(param.name, value)

        ctx.call_depth += 1
        ctx.max_call_depth = max(ctx.max_call_depth, ctx.call_depth)
        logger.debug("call @%s depth=%d", callee.name, ctx.call_depth)
        try:
            result = self.run_function(callee, callee_env, ctx)
        finally:
            ctx.call_depth -= 1
        logger.debug("return from @%s: %s", callee.name, result)

        self._bind_result(instr, callee, result, env)
        return FALLTHROUGH

    @staticmethod
    def _bind_result(
        instr: Operation,
        callee: Function,
        result: Optional[Value],
        env: Environment,
    ) -> None:
        dest = instr.dest if isinstance(instr, ValueOperation) else None
        call_type = instr.type if isinstance(instr, ValueOperation) else None

        if not dest and call_type is None:
            if result is not None:
                raise errors.UnexpectedReturnValueError(callee.name)
            if callee.type is not None:
                raise errors.MissingReturnTypeError(
                    f"non-void function @{callee.name} (type: {callee.type}) "
                    f"called without a destination and type"
                )
            return

        if call_type is None:
            raise errors.MissingReturnTypeError(
                "function call must include a type if it has a destination"
            )
        if not dest:
            raise errors.MalformedInstructionError(
                "function call must include a destination if it has a type"
            )
        if result is None:
            declared = str(callee.type) if callee.type is not None else "void"
            raise errors.MissingReturnValueError(callee.name, declared)
        if type_of(result) is not runtime_tag(call_type):
            raise errors.TypeMismatchError(
                f"type of value returned by @{callee.name} does not match "
                f"destination type: expected {call_type}, got {type_of(result)}",
                expected=str(call_type),
                actual=str(type_of(result)),
            )
        if callee.type != call_type:
            declared = str(callee.type) if callee.type is not None else "void"
            raise errors.ReturnTypeMismatchError(declared, str(call_type))
        env.set(dest, result)


# ===================================================================== #
#  Program driver                                                        #
# ===================================================================== #

def parse_main_arguments(params: Sequence[Argument], args: Sequence[str]) -> Environment:
    """Bind ``main``'s parameters from command-line strings."""
    if len(args) != len(params):
        raise errors.ArityMismatchError("main", len(params), len(args))

    env = Environment()
    for param, text in zip(params, args):
        tag = runtime_tag(param.type)
        if tag is PrimitiveType.INT:
            if not _INT_LITERAL.fullmatch(text.strip()):
                raise errors.InvalidArgumentError(
                    f"int argument {param.name} to main must be a base-10 integer; got {text!r}"
                )
            env.set(param.name, Int(int(text.strip(), 10)))
        elif tag is PrimitiveType.BOOL:
            if text == "true":
                env.set(param.name, Bool(True))
            elif text == "false":
                env.set(param.name, Bool(False))
            else:
                raise errors.InvalidArgumentError(
                    f"boolean argument to main must be 'true'/'false'; got {text}"
                )
        else:
            raise errors.InvalidArgumentError(
                f"argument {param.name} to main has type {param.type}, which "
                f"cannot be supplied from the command line"
            )
    return env


@dataclass
class RunResult:
    """Outcome of a successful run."""
    return_value: Optional[Value]
    instructions_executed: int
    max_call_depth: int
    allocations: int


def run_program(
    program: Program,
    args: Sequence[str] = (),
    stdout: Optional[TextIO] = None,
    config: Optional[InterpreterConfig] = None,
) -> RunResult:
    """
    Run *program* from ``main`` with *args* bound to its parameters.

    Printed lines go to *stdout* (default ``sys.stdout``).  Any fault in the
    program raises a ``BriliError``; a successful run whose heap is not
    empty at the end raises ``LeakError``.
    """
    config = config or InterpreterConfig()
    for warning in config.validate():
        logger.warning("InterpreterConfig: %s", warning)

    ctx = ExecutionContext(
        heap=Heap(recycle_ids=config.recycle_block_ids),
        functions=FunctionTable.from_program(program),
        stdout=stdout if stdout is not None else sys.stdout,
        config=config,
    )

    value: Optional[Value] = None
    if ENTRY_POINT not in ctx.functions:
        logger.warning("no main function defined, doing nothing")
    else:
        main = ctx.functions.resolve(ENTRY_POINT)
        with unbounded_int_digits():
            env = parse_main_arguments(main.args, args)
            logger.info("running %s", main.signature())
            value = FunctionInterpreter().run_function(main, env, ctx)

    if config.check_leaks and not ctx.heap.is_empty():
        raise errors.LeakError(ctx.heap.live_count)

    logger.info(
        "finished: %d instruction(s), %d allocation(s), max call depth %d",
        ctx.instructions_executed, ctx.heap.alloc_count, ctx.max_call_depth,
    )
    return RunResult(
        return_value=value,
        instructions_executed=ctx.instructions_executed,
        max_call_depth=ctx.max_call_depth,
        allocations=ctx.heap.alloc_count,
    )


__all__ = [
    "ENTRY_POINT",
    "FunctionInterpreter",
    "parse_main_arguments",
    "RunResult",
    "run_program",
]
