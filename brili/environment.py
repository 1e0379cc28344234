"""
brili/environment.py
====================

Variable bindings of a single function activation, and the call frame that
owns them.  Environments never chain: a callee starts from an empty
environment seeded only with its parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, Optional

from brili import errors
from brili.values import Value


class Environment:
    """Mutable name → value mapping with no declare-before-use rule."""

    __slots__ = ("_values",)

    def __init__(self, bindings: Optional[Mapping[str, Value]] = None) -> None:
        self._values: Dict[str, Value] = dict(bindings or {})

    def get(self, name: str) -> Value:
        try:
            return self._values[name]
        except KeyError:
            raise errors.UndefinedVariableError(name) from None

    def set(self, name: str, value: Value) -> None:
        """Bind *name*, overwriting any previous binding."""
        self._values[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def snapshot(self) -> Dict[str, Value]:
        return dict(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._values.items())
        return f"Environment({inner})"


@dataclass
class Frame:
    """A single activation: which function, where in it, and its bindings."""
    function_name: str
    env: Environment = field(default_factory=Environment)
    pc: int = 0


__all__ = ["Environment", "Frame"]
