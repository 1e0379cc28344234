"""
brili/loader.py
===============

Canonical Bril JSON → ``brili.program`` data model.

    {"functions": [
        {"name": "main",
         "args": [{"name": "n", "type": "int"}],
         "type": "int",
         "instrs": [
            {"op": "const", "dest": "one", "type": "int", "value": 1},
            {"label": "loop"},
            {"op": "br", "args": ["c"], "labels": ["body", "done"]},
            {"op": "call", "dest": "r", "type": "int", "funcs": ["f"], "args": ["n"]},
            {"op": "alloc", "dest": "p", "type": {"ptr": "int"}, "args": ["n"]}
         ]}
    ]}

The older layout, where ``br``/``jmp`` carry their labels in ``args`` and
``call`` names its callee in ``name``, is accepted as well and normalised.

Only the *shape* of the JSON is validated here.  Opcode names, operand
counts and types are left to the interpreter, which reports them as program
errors when the offending instruction actually runs.
"""

from __future__ import annotations

import json
import logging
from typing import IO, Any, Dict, List, Mapping, Tuple, Union

from brili.errors import ProgramFormatError
from brili.program import (
    Argument,
    Code,
    Constant,
    EffectOperation,
    Function,
    Label,
    Program,
    ValueOperation,
)
from brili.types import BrilType, PointerType, parse_type

logger = logging.getLogger(__name__)


def parse_json_type(obj: Any) -> BrilType:
    """``"int"`` / ``"bool"`` / ``{"ptr": T}`` → ``BrilType``; ``"ptr<int>"`` is accepted too."""
    if isinstance(obj, str):
        try:
            return parse_type(obj)
        except ValueError as exc:
            raise ProgramFormatError(str(exc)) from None
    if isinstance(obj, dict) and set(obj) == {"ptr"}:
        return PointerType(parse_json_type(obj["ptr"]))
    raise ProgramFormatError(f"malformed type {obj!r}")


def _str_tuple(obj: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    raw = obj.get(key, [])
    if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
        raise ProgramFormatError(f"{key!r} must be a list of strings, got {raw!r}")
    return tuple(raw)


def _normalise_legacy(op: str, obj: Mapping[str, Any],
                      args: Tuple[str, ...], labels: Tuple[str, ...],
                      funcs: Tuple[str, ...]) -> Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]:
    if "labels" not in obj:
        if op == "br" and len(args) == 3:
            return args[:1], args[1:], funcs
        if op == "jmp" and len(args) == 1:
            return (), args, funcs
    if op == "call" and "funcs" not in obj and isinstance(obj.get("name"), str):
        return args, labels, (obj["name"],)
    return args, labels, funcs


def parse_instruction(obj: Any) -> Code:
    """One entry of a function's ``instrs`` list."""
    if not isinstance(obj, dict):
        raise ProgramFormatError(f"instruction must be an object, got {obj!r}")

    if "op" not in obj:
        if "label" in obj and isinstance(obj["label"], str):
            return Label(obj["label"])
        raise ProgramFormatError(f"entry is neither an instruction nor a label: {obj!r}")

    op = obj["op"]
    if not isinstance(op, str):
        raise ProgramFormatError(f"opcode must be a string, got {op!r}")

    if op == "const":
        for key in ("dest", "type", "value"):
            if key not in obj:
                raise ProgramFormatError(f"const instruction missing {key!r}: {obj!r}")
        value = obj["value"]
        if not isinstance(value, (bool, int)):
            raise ProgramFormatError(f"const literal must be an integer or boolean, got {value!r}")
        return Constant(dest=obj["dest"], type=parse_json_type(obj["type"]), value=value)

    args, labels, funcs = _normalise_legacy(
        op, obj, _str_tuple(obj, "args"), _str_tuple(obj, "labels"), _str_tuple(obj, "funcs")
    )
    # A typed call without a destination stays a ValueOperation.
    if "dest" in obj or (op == "call" and "type" in obj):
        declared = parse_json_type(obj["type"]) if "type" in obj else None
        return ValueOperation(
            op=op, dest=obj.get("dest", ""), type=declared,
            args=args, funcs=funcs, labels=labels,
        )
    return EffectOperation(op=op, args=args, funcs=funcs, labels=labels)


def parse_function(obj: Any) -> Function:
    if not isinstance(obj, dict) or not isinstance(obj.get("name"), str):
        raise ProgramFormatError(f"function must be an object with a name, got {obj!r}")

    params: List[Argument] = []
    for raw in obj.get("args", []) or []:
        if not isinstance(raw, dict) or "name" not in raw or "type" not in raw:
            raise ProgramFormatError(f"malformed argument in @{obj['name']}: {raw!r}")
        params.append(Argument(raw["name"], parse_json_type(raw["type"])))

    return_type = parse_json_type(obj["type"]) if obj.get("type") is not None else None
    instrs = [parse_instruction(i) for i in obj.get("instrs", [])]
    return Function(name=obj["name"], args=params, type=return_type, instrs=instrs)


def load_program(data: Mapping[str, Any]) -> Program:
    """Build a ``Program`` from already-decoded JSON."""
    if not isinstance(data, dict) or not isinstance(data.get("functions"), list):
        raise ProgramFormatError("program must be an object with a 'functions' list")
    program = Program(functions=[parse_function(f) for f in data["functions"]])
    logger.debug("loaded %d function(s): %s", len(program.functions),
                 ", ".join(program.function_names()))
    return program


def loads(text: Union[str, bytes]) -> Program:
    try:
        data: Dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProgramFormatError(f"invalid JSON: {exc.msg}", line=exc.lineno) from exc
    except ValueError as exc:
        # Oversized integer literals and undecodable bytes.
        raise ProgramFormatError(f"invalid JSON: {exc}") from exc
    return load_program(data)


def load(fp: IO[str]) -> Program:
    return loads(fp.read())


def dump_type(declared: BrilType) -> Any:
    """Inverse of ``parse_json_type``."""
    if isinstance(declared, PointerType):
        return {"ptr": dump_type(declared.pointee)}
    return declared.value


def dump_program(program: Program) -> Dict[str, Any]:
    """Serialise a ``Program`` back to canonical Bril JSON."""
    functions = []
    for func in program.functions:
        instrs: List[Dict[str, Any]] = []
        for line in func.instrs:
            if isinstance(line, Label):
                instrs.append({"label": line.name})
            elif isinstance(line, Constant):
                instrs.append({"op": "const", "dest": line.dest,
                               "type": dump_type(line.type), "value": line.value})
            else:
                entry: Dict[str, Any] = {"op": line.op}
                if isinstance(line, ValueOperation):
                    if line.dest:
                        entry["dest"] = line.dest
                    if line.type is not None:
                        entry["type"] = dump_type(line.type)
                for key in ("args", "funcs", "labels"):
                    if getattr(line, key):
                        entry[key] = list(getattr(line, key))
                instrs.append(entry)
        record: Dict[str, Any] = {"name": func.name, "instrs": instrs}
        if func.args:
            record["args"] = [{"name": a.name, "type": dump_type(a.type)} for a in func.args]
        if func.type is not None:
            record["type"] = dump_type(func.type)
        functions.append(record)
    return {"functions": functions}


__all__ = [
    "parse_json_type",
    "parse_instruction",
    "parse_function",
    "load_program",
    "loads",
    "load",
    "dump_type",
    "dump_program",
]
