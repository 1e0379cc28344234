"""
brili/program.py
================

In-memory program representation consumed by the interpreter.

The instruction set is a closed family of variants::

    Instruction = Constant          dest: type = const literal
                | ValueOperation    dest: type = op args... (funcs, labels)
                | EffectOperation   op args... (funcs, labels)

and a function body is a flat list of ``Instruction | Label``.  Everything
here is plain data; no behavior beyond lookup helpers lives in this module.

Opcode Table
────────────

  Opcode   Kind     Operands
  ───────  ───────  ────────────────────────────
  const    value    literal
  id       value    x
  add/sub/mul/div   value   int int
  lt/le/gt/ge/eq    value   int int → bool
  not      value    bool
  and/or   value    bool bool
  print    effect   any*
  jmp      effect   label
  br       effect   bool, label label
  ret      effect   [x]
  nop      effect
  call     either   @f args*
  alloc    value    int          (type is ptr<T>)
  free     effect   ptr
  store    effect   ptr value
  load     value    ptr
  ptradd   value    ptr int
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from brili import errors
from brili.types import BrilType


class Opcode(enum.Enum):
    """Every opcode the interpreter executes."""

    CONST = "const"
    ID = "id"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    EQ = "eq"
    NOT = "not"
    AND = "and"
    OR = "or"
    PRINT = "print"
    JMP = "jmp"
    BR = "br"
    RET = "ret"
    NOP = "nop"
    CALL = "call"
    ALLOC = "alloc"
    FREE = "free"
    STORE = "store"
    LOAD = "load"
    PTRADD = "ptradd"

    @classmethod
    def lookup(cls, name: str) -> Optional["Opcode"]:
        """Opcode named *name*, or ``None`` if there is none."""
        try:
            return cls(name)
        except ValueError:
            return None


# ===================================================================== #
#  Instructions                                                          #
# ===================================================================== #

@dataclass(frozen=True)
class Label:
    """Jump target marker inside a function body."""
    name: str

    def __str__(self) -> str:
        return f".{self.name}:"


@dataclass(frozen=True)
class Constant:
    """``dest: type = const value``"""
    dest: str
    type: BrilType
    value: Union[int, bool]
    op: str = "const"

    @property
    def args(self) -> Tuple[str, ...]:
        return ()

    def __str__(self) -> str:
        literal = str(self.value).lower() if isinstance(self.value, bool) else str(self.value)
        return f"{self.dest}: {self.type} = const {literal};"


@dataclass(frozen=True)
class ValueOperation:
    """An operation that binds ``dest``."""
    op: str
    dest: str
    type: Optional[BrilType]
    args: Tuple[str, ...] = ()
    funcs: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.dest}: {self.type} = {_operands(self)};"


@dataclass(frozen=True)
class EffectOperation:
    """An operation executed only for its effect (or control transfer)."""
    op: str
    args: Tuple[str, ...] = ()
    funcs: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{_operands(self)};"


Instruction = Union[Constant, ValueOperation, EffectOperation]
Operation = Union[ValueOperation, EffectOperation]
Code = Union[Instruction, Label]


def _operands(instr: Operation) -> str:
    parts = [instr.op]
    parts.extend(f"@{f}" for f in instr.funcs)
    parts.extend(instr.args)
    parts.extend(f".{lbl}" for lbl in instr.labels)
    return " ".join(parts)


# ===================================================================== #
#  Functions and Programs                                                #
# ===================================================================== #

@dataclass(frozen=True)
class Argument:
    """A declared function parameter."""
    name: str
    type: BrilType


@dataclass
class Function:
    """A named function: typed parameters, optional return type, body."""
    name: str
    args: List[Argument] = field(default_factory=list)
    type: Optional[BrilType] = None
    instrs: List[Code] = field(default_factory=list)
    _label_index: Optional[Dict[str, int]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def label_index(self) -> Dict[str, int]:
        """
        Label → position table, built on first use.

        The first occurrence of a duplicated label wins, matching a linear
        scan from the start of the body.
        """
        if self._label_index is None:
            table: Dict[str, int] = {}
            for i, line in enumerate(self.instrs):
                if isinstance(line, Label) and line.name not in table:
                    table[line.name] = i
            self._label_index = table
        return self._label_index

    def find_label(self, name: str) -> int:
        try:
            return self.label_index()[name]
        except KeyError:
            raise errors.UndefinedLabelError(name, function=self.name) from None

    def signature(self) -> str:
        params = ", ".join(f"{a.name}: {a.type}" for a in self.args)
        ret = f": {self.type}" if self.type is not None else ""
        return f"@{self.name}({params}){ret}"


@dataclass
class Program:
    """A complete Bril program: an unordered collection of functions."""
    functions: List[Function] = field(default_factory=list)

    def function_names(self) -> List[str]:
        return [f.name for f in self.functions]


class FunctionTable:
    """
    Flat, program-wide name → function lookup.

    Duplicate names are kept and only reported when the name is looked up,
    so a program with an unused duplicate still runs.
    """

    def __init__(self, functions: Iterable[Function]) -> None:
        self._by_name: Dict[str, List[Function]] = {}
        for func in functions:
            self._by_name.setdefault(func.name, []).append(func)

    @classmethod
    def from_program(cls, program: Program) -> "FunctionTable":
        return cls(program.functions)

    def resolve(self, name: str) -> Function:
        matches = self._by_name.get(name, [])
        if not matches:
            raise errors.UndefinedFunctionError(name)
        if len(matches) > 1:
            raise errors.AmbiguousFunctionError(name, len(matches))
        return matches[0]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_name.values())

    def names(self) -> Sequence[str]:
        return list(self._by_name)


__all__ = [
    "Opcode",
    "Label",
    "Constant",
    "ValueOperation",
    "EffectOperation",
    "Instruction",
    "Operation",
    "Code",
    "Argument",
    "Function",
    "Program",
    "FunctionTable",
]
