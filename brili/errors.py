# brili/errors.py
"""
Bril Interpreter Error Types

Every fault the interpreter detects in the program it is running is raised as
a subclass of ``BriliError``.  Errors abort the run at the point of detection;
there is no local recovery.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  BriliError (base, program-caused)                                          │
│  ├── LookupError     - undefined variable / function / label                │
│  ├── ArityError      - wrong argument counts                                │
│  ├── TypeError       - operand, return and argument type faults             │
│  ├── MemoryError     - heap faults, divide-by-zero                          │
│  └── LeakError       - live allocations at program end                      │
│                                                                             │
│  InternalError (engine defect, deliberately NOT a BriliError)               │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a code ``BRIL-NNNN``:
  - 1000-1999: lookup errors
  - 2000-2999: arity errors
  - 3000-3999: type errors
  - 4000-4999: memory errors
  - 5000-5999: leak errors
  - 9000-9999: internal errors

Example Usage:
──────────────
    from brili import errors

    try:
        run_program(program, ["5"])
    except errors.BriliError as exc:
        print(exc.category.value, exc.code.kind, exc.message)
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorCategory(Enum):
    """Coarse classification reported to callers of the interpreter."""

    LOOKUP = "LookupError"
    ARITY = "ArityError"
    TYPE = "TypeError"
    MEMORY = "MemoryError"
    LEAK = "LeakError"
    INTERNAL = "InternalError"


class ErrorCode:
    """
    Structured error code.

    ``kind`` is the stable fine-grained name (``"InvalidFree"``), ``number``
    the numeric code and ``category`` the coarse classification.
    """

    __slots__ = ("number", "kind", "category")

    def __init__(self, number: int, kind: str, category: ErrorCategory) -> None:
        self.number = number
        self.kind = kind
        self.category = category

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"BRIL-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.kind})"

    def __hash__(self) -> int:
        return hash(self.number)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.number == other.number
        if isinstance(other, str):
            return other in (self.code, self.kind)
        return False


# ───────────────────────────────────────────────────────────────────────────────
# PREDEFINED ERROR CODES
# ───────────────────────────────────────────────────────────────────────────────

class ErrorCodes:
    """Predefined error codes for the interpreter."""

    # LOOKUP (1000-1999)
    UNDEFINED_VARIABLE = ErrorCode(1000, "UndefinedVariable", ErrorCategory.LOOKUP)
    UNDEFINED_FUNCTION = ErrorCode(1001, "UndefinedFunction", ErrorCategory.LOOKUP)
    AMBIGUOUS_FUNCTION = ErrorCode(1002, "AmbiguousFunction", ErrorCategory.LOOKUP)
    UNDEFINED_LABEL = ErrorCode(1003, "UndefinedLabel", ErrorCategory.LOOKUP)

    # ARITY (2000-2999)
    ARITY_MISMATCH = ErrorCode(2000, "ArityMismatch", ErrorCategory.ARITY)

    # TYPE (3000-3999)
    TYPE_MISMATCH = ErrorCode(3000, "TypeMismatch", ErrorCategory.TYPE)
    RETURN_TYPE_MISMATCH = ErrorCode(3001, "ReturnTypeMismatch", ErrorCategory.TYPE)
    UNEXPECTED_RETURN_VALUE = ErrorCode(3002, "UnexpectedReturnValue", ErrorCategory.TYPE)
    MISSING_RETURN_TYPE = ErrorCode(3003, "MissingReturnType", ErrorCategory.TYPE)
    MISSING_RETURN_VALUE = ErrorCode(3004, "MissingReturnValue", ErrorCategory.TYPE)
    INVALID_ARGUMENT = ErrorCode(3005, "InvalidArgument", ErrorCategory.TYPE)
    MALFORMED_INSTRUCTION = ErrorCode(3006, "MalformedInstruction", ErrorCategory.TYPE)
    UNKNOWN_OPCODE = ErrorCode(3007, "UnknownOpcode", ErrorCategory.TYPE)

    # MEMORY (4000-4999)
    INVALID_ALLOCATION = ErrorCode(4000, "InvalidAllocation", ErrorCategory.MEMORY)
    INVALID_FREE = ErrorCode(4001, "InvalidFree", ErrorCategory.MEMORY)
    INVALID_ACCESS = ErrorCode(4002, "InvalidAccess", ErrorCategory.MEMORY)
    UNINITIALIZED_READ = ErrorCode(4003, "UninitializedRead", ErrorCategory.MEMORY)
    DIVIDE_BY_ZERO = ErrorCode(4004, "DivideByZero", ErrorCategory.MEMORY)

    # LEAK (5000-5999)
    MEMORY_LEAK = ErrorCode(5000, "MemoryLeak", ErrorCategory.LEAK)

    # INTERNAL (9000-9999)
    INTERNAL_ERROR = ErrorCode(9000, "InternalError", ErrorCategory.INTERNAL)
    UNHANDLED_OPCODE = ErrorCode(9001, "UnhandledOpcode", ErrorCategory.INTERNAL)


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class BriliError(Exception):
    """
    Base exception for all program-caused interpreter errors.

    Carries a structured ``ErrorCode`` and a human-readable message; the
    category is derived from the code.
    """

    default_code: ErrorCode = ErrorCodes.TYPE_MISMATCH

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        function: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.function = function

    @property
    def category(self) -> ErrorCategory:
        return self.code.category

    @property
    def kind(self) -> str:
        return self.code.kind

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable representation."""
        result: Dict[str, Any] = {
            "code": self.code.code,
            "category": self.category.value,
            "kind": self.kind,
            "message": self.message,
        }
        if self.function is not None:
            result["function"] = self.function
        return result

    def __str__(self) -> str:
        where = f" (in @{self.function})" if self.function else ""
        return (
            f"error[{self.code.code}] {self.category.value}/{self.kind}: "
            f"{self.message}{where}"
        )


# ───────────────────────────────────────────────────────────────────────────────
# LOOKUP ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class LookupError(BriliError):
    """Reference to a name that does not resolve."""

    default_code = ErrorCodes.UNDEFINED_VARIABLE


class UndefinedVariableError(LookupError):
    """Read of a variable that is not bound in the current environment."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(
            f"undefined variable {name}",
            code=ErrorCodes.UNDEFINED_VARIABLE,
            **kwargs,
        )
        self.name = name


class UndefinedFunctionError(LookupError):
    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(
            f"no function of name {name} found",
            code=ErrorCodes.UNDEFINED_FUNCTION,
            **kwargs,
        )
        self.name = name


class AmbiguousFunctionError(LookupError):
    def __init__(self, name: str, count: int, **kwargs: Any) -> None:
        super().__init__(
            f"multiple functions of name {name} found ({count})",
            code=ErrorCodes.AMBIGUOUS_FUNCTION,
            **kwargs,
        )
        self.name = name
        self.count = count


class UndefinedLabelError(LookupError):
    def __init__(self, label: str, **kwargs: Any) -> None:
        super().__init__(
            f"label {label} not found",
            code=ErrorCodes.UNDEFINED_LABEL,
            **kwargs,
        )
        self.label = label


# ───────────────────────────────────────────────────────────────────────────────
# ARITY ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ArityError(BriliError):
    """Wrong number of arguments somewhere."""

    default_code = ErrorCodes.ARITY_MISMATCH


class ArityMismatchError(ArityError):
    """Wrong number of arguments to an instruction, a call or main."""

    def __init__(
        self,
        name: str,
        expected: Any,
        actual: int,
        what: str = "argument(s)",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"{name} takes {expected} {what}; got {actual}",
            code=ErrorCodes.ARITY_MISMATCH,
            **kwargs,
        )
        self.expected_arity = expected
        self.actual_arity = actual


# ───────────────────────────────────────────────────────────────────────────────
# TYPE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class TypeError(BriliError):
    """Type-related runtime fault."""

    default_code = ErrorCodes.TYPE_MISMATCH


class TypeMismatchError(TypeError):
    """A value's runtime type disagrees with the type required of it."""

    def __init__(
        self,
        message: str,
        expected: str = "",
        actual: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, code=ErrorCodes.TYPE_MISMATCH, **kwargs)
        self.expected_type = expected
        self.actual_type = actual


class ReturnTypeMismatchError(TypeError):
    def __init__(self, declared: str, expected: str, **kwargs: Any) -> None:
        super().__init__(
            f"type of value returned by function does not match declaration: "
            f"function declares {declared}, call expects {expected}",
            code=ErrorCodes.RETURN_TYPE_MISMATCH,
            **kwargs,
        )
        self.declared_type = declared
        self.expected_type = expected


class UnexpectedReturnValueError(TypeError):
    def __init__(self, callee: str, **kwargs: Any) -> None:
        super().__init__(
            f"unexpected value returned by @{callee} without destination",
            code=ErrorCodes.UNEXPECTED_RETURN_VALUE,
            **kwargs,
        )


class MissingReturnTypeError(TypeError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.MISSING_RETURN_TYPE, **kwargs)


class MissingReturnValueError(TypeError):
    def __init__(self, callee: str, declared: str, **kwargs: Any) -> None:
        super().__init__(
            f"non-void function @{callee} (type: {declared}) doesn't return anything",
            code=ErrorCodes.MISSING_RETURN_VALUE,
            **kwargs,
        )


class InvalidArgumentError(TypeError):
    """A command-line argument for main cannot be converted."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.INVALID_ARGUMENT, **kwargs)


class MalformedInstructionError(TypeError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.MALFORMED_INSTRUCTION, **kwargs)


class UnknownOpcodeError(TypeError):
    def __init__(self, op: str, **kwargs: Any) -> None:
        super().__init__(
            f"unknown opcode {op}",
            code=ErrorCodes.UNKNOWN_OPCODE,
            **kwargs,
        )
        self.op = op


# ───────────────────────────────────────────────────────────────────────────────
# MEMORY ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class MemoryError(BriliError):
    """Heap fault or other evaluation fault (divide-by-zero)."""

    default_code = ErrorCodes.INVALID_ACCESS


class InvalidAllocationError(MemoryError):
    def __init__(self, amount: int, **kwargs: Any) -> None:
        super().__init__(
            f"must allocate a positive amount of memory: {amount} <= 0",
            code=ErrorCodes.INVALID_ALLOCATION,
            **kwargs,
        )
        self.amount = amount


class InvalidFreeError(MemoryError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.INVALID_FREE, **kwargs)


class InvalidAccessError(MemoryError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.INVALID_ACCESS, **kwargs)


class UninitializedReadError(MemoryError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCodes.UNINITIALIZED_READ, **kwargs)


class DivideByZeroError(MemoryError):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(
            "division by zero",
            code=ErrorCodes.DIVIDE_BY_ZERO,
            **kwargs,
        )


# ───────────────────────────────────────────────────────────────────────────────
# LEAK ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class LeakError(BriliError):
    """Memory still allocated when the entry function returns."""

    default_code = ErrorCodes.MEMORY_LEAK

    def __init__(self, live_blocks: int, **kwargs: Any) -> None:
        super().__init__(
            f"Some memory locations have not been freed by end of execution "
            f"({live_blocks} block(s) live)",
            code=ErrorCodes.MEMORY_LEAK,
            **kwargs,
        )
        self.live_blocks = live_blocks


# ───────────────────────────────────────────────────────────────────────────────
# ENGINE DEFECTS AND INPUT FORMAT
# ───────────────────────────────────────────────────────────────────────────────

class InternalError(Exception):
    """
    An invariant of the interpreter itself was violated.

    This is an engine bug, not a fault of the program being run, so it does
    not derive from ``BriliError``.
    """

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or ErrorCodes.INTERNAL_ERROR

    def __str__(self) -> str:
        return f"internal error[{self.code.code}]: {self.message}"


class ProgramFormatError(Exception):
    """The serialized program could not be turned into the data model."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "ErrorCodes",
    "BriliError",
    "LookupError",
    "UndefinedVariableError",
    "UndefinedFunctionError",
    "AmbiguousFunctionError",
    "UndefinedLabelError",
    "ArityError",
    "ArityMismatchError",
    "TypeError",
    "TypeMismatchError",
    "ReturnTypeMismatchError",
    "UnexpectedReturnValueError",
    "MissingReturnTypeError",
    "MissingReturnValueError",
    "InvalidArgumentError",
    "MalformedInstructionError",
    "UnknownOpcodeError",
    "MemoryError",
    "InvalidAllocationError",
    "InvalidFreeError",
    "InvalidAccessError",
    "UninitializedReadError",
    "DivideByZeroError",
    "LeakError",
    "InternalError",
    "ProgramFormatError",
]
