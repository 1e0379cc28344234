"""
brili/types.py
==============

Static types of the Bril IR and their mapping onto runtime tags.

Bril declares three kinds of type: ``int``, ``bool`` and ``ptr<T>`` (with
arbitrary nesting).  At runtime only three tags exist; every pointer type
collapses onto ``PrimitiveType.PTR`` and the pointee of a pointer is tracked
one level deep only (``ptr<ptr<int>>`` stores generic pointers).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class PrimitiveType(enum.Enum):
    """The three runtime tags."""

    INT = "int"
    BOOL = "bool"
    PTR = "ptr"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PointerType:
    """Declared type ``ptr<pointee>``."""

    pointee: "BrilType"

    def __str__(self) -> str:
        return f"ptr<{self.pointee}>"


# A declared (static) type as it appears on arguments, dests and functions.
BrilType = Union[PrimitiveType, PointerType]


def runtime_tag(declared: BrilType) -> PrimitiveType:
    """Runtime tag a value of the *declared* type must carry."""
    if isinstance(declared, PointerType):
        return PrimitiveType.PTR
    return declared


def element_type(declared: BrilType) -> PrimitiveType:
    """
    Element type recorded in a pointer allocated with *declared*.

    ``ptr<int>`` → ``INT``, ``ptr<bool>`` → ``BOOL``, any pointer to a pointer
    → ``PTR``.
    """
    if not isinstance(declared, PointerType):
        raise ValueError(f"not a pointer type: {declared}")
    return runtime_tag(declared.pointee)


def parse_type(text: str) -> BrilType:
    """Parse the textual spelling ``int`` / ``bool`` / ``ptr<...>``."""
    text = text.strip()
    if text.startswith("ptr<") and text.endswith(">"):
        return PointerType(parse_type(text[4:-1]))
    try:
        tag = PrimitiveType(text)
    except ValueError:
        raise ValueError(f"unknown type {text!r}") from None
    if tag is PrimitiveType.PTR:
        raise ValueError("bare 'ptr' needs an element type")
    return tag


__all__ = [
    "PrimitiveType",
    "PointerType",
    "BrilType",
    "runtime_tag",
    "element_type",
    "parse_type",
]
