"""
brili/values.py
===============

Runtime values.

A value is exactly one of ``Int``, ``Bool`` or ``Pointer``.  They are frozen
dataclasses; a variable is rebound, never mutated, and only the heap holds
mutable state.

Python's ``bool`` is a subclass of ``int``; wrapping both in distinct classes
keeps ``Bool(True)`` from ever being accepted where an ``Int`` is required.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Union

from brili.errors import InternalError
from brili.types import PrimitiveType

if TYPE_CHECKING:
    from brili.heap import Key


@dataclass(frozen=True, slots=True)
class Int:
    """Arbitrary-precision integer."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class Bool:
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True, slots=True)
class Pointer:
    """
    Fat pointer: a heap key plus the type of the element it addresses.

    Meaningless without the live block it was derived from; the heap decides
    validity on every access.
    """

    key: "Key"
    element_type: PrimitiveType

    def add(self, offset: int) -> "Pointer":
        """Pointer arithmetic; never validated here."""
        return Pointer(self.key.add(offset), self.element_type)

    def __str__(self) -> str:
        return f"ptr<{self.element_type}>@{self.key}"


Value = Union[Int, Bool, Pointer]


def type_of(value: Value) -> PrimitiveType:
    """Runtime tag of *value*.  Total over ``Value``."""
    if isinstance(value, Int):
        return PrimitiveType.INT
    if isinstance(value, Bool):
        return PrimitiveType.BOOL
    if isinstance(value, Pointer):
        return PrimitiveType.PTR
    raise InternalError(f"not a Bril value: {value!r}")


def from_literal(literal: Union[int, bool]) -> Value:
    """Wrap a ``const`` literal; integer literals widen to ``Int``."""
    if isinstance(literal, bool):
        return Bool(literal)
    return Int(int(literal))


def format_values(values: List[Value]) -> str:
    """One ``print`` line: values stringified and joined by single spaces."""
    return " ".join(str(v) for v in values)


@contextmanager
def unbounded_int_digits() -> Iterator[None]:
    """
    Lift the host limit on int <-> str conversion while the block runs.

    CPython 3.11+ refuses to convert integers of more than 4300 decimal
    digits; Bril integers have no such bound.  The previous limit is
    restored on exit.
    """
    if not hasattr(sys, "set_int_max_str_digits"):
        yield
        return
    previous = sys.get_int_max_str_digits()
    sys.set_int_max_str_digits(0)
    try:
        yield
    finally:
        sys.set_int_max_str_digits(previous)


__all__ = [
    "Int",
    "Bool",
    "Pointer",
    "Value",
    "type_of",
    "from_literal",
    "format_values",
    "unbounded_int_digits",
]
