"""brili — reference interpreter for the Bril intermediate language.

This package executes Bril programs: typed integer/boolean/pointer values,
label-based control flow, function calls, and a checked heap that detects
invalid accesses, double frees and leaks.

Submodules
----------
errors
    ``BriliError`` hierarchy with structured ``BRIL-NNNN`` codes grouped
    into the LookupError / ArityError / TypeError / MemoryError / LeakError
    categories; ``InternalError`` for engine defects.

types, values
    Declared types (``int``, ``bool``, ``ptr<T>``) and the runtime value
    model (``Int``, ``Bool``, ``Pointer``).

heap
    Segmented heap of generation-tagged blocks addressed by fat pointers.

program, environment
    Program data model (functions, instructions, labels) and per-call
    variable bindings.

instructions, interpreter
    Per-instruction dispatch and the function/call/program drivers.

loader, text
    Front-ends for canonical Bril JSON and the Bril text form.

main
    Command-line driver (``brili`` / ``python -m brili``).

Usage
-----
Library::

    from brili import loads, run_program

    program = loads(open("prog.json").read())
    result = run_program(program, ["10"])
    print(result.instructions_executed)

Command-line::

    bril2json < prog.bril | brili 10
"""

__version__ = "0.3.0"

from brili.config import InterpreterConfig
from brili.errors import BriliError, InternalError, ProgramFormatError
from brili.interpreter import RunResult, run_program
from brili.loader import load, load_program, loads
from brili.text import parse_program

__all__ = [
    "__version__",
    "InterpreterConfig",
    "BriliError",
    "InternalError",
    "ProgramFormatError",
    "RunResult",
    "run_program",
    "load",
    "load_program",
    "loads",
    "parse_program",
]
