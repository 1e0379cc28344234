"""
text.py — Bril textual form
===========================

Parses the human-readable Bril syntax into the ``brili.program`` model::

    @main(n: int): int {
      one: int = const 1;
      p: ptr<int> = alloc n;
      r: int = call @double n;
      c: bool = lt r one;
      br c .small .big;
    .small:
      print r;       # comments run to end of line
      free p;
      ret one;
    .big:
      free p;
      ret r;
    }

The grammar only fixes the surface shape (``dest: type = op operands;``,
``op operands;``, ``.label:``).  Opcode names are not checked here; an
unknown opcode is reported by the interpreter when it runs.

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import logging
from typing import Any, List, Sequence, Tuple

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from brili.errors import ProgramFormatError
from brili.program import (
    Argument,
    Constant,
    EffectOperation,
    Function,
    Label,
    Program,
    ValueOperation,
)
from brili.types import PointerType, PrimitiveType

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — GRAMMAR
# ═══════════════════════════════════════════════════════════════════

BRIL_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Functions
    # ─────────────────────────────────────────────────────────────

    program             = _ function* eof
    function            = func_name _ params? _ ret_type? _ "{" _ line* "}" _
    func_name           = "@" ident
    params              = "(" _ param_list? ")"
    param_list          = param (_ "," _ param)* _
    param               = ident _ ":" _ type
    ret_type            = ":" _ type

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type                = ptr_type / prim_type
    ptr_type            = "ptr" _ "<" _ type _ ">"
    prim_type           = "int" / "bool"

    # ─────────────────────────────────────────────────────────────
    # Body
    # ─────────────────────────────────────────────────────────────

    line                = label_line / instr_line
    label_line          = label _ ":" _
    instr_line          = instr_body _ ";" _
    instr_body          = const_instr / value_instr / effect_instr

    const_instr         = ident _ ":" _ type _ "=" _ "const" ws literal
    value_instr         = ident _ ":" _ type _ "=" _ opname operand*
    effect_instr        = opname operand*

    opname              = ident
    operand             = ws operand_atom
    operand_atom        = func_ref / label / ident
    func_ref            = "@" ident
    label               = "." ident

    # ─────────────────────────────────────────────────────────────
    # Literals, identifiers & whitespace
    # ─────────────────────────────────────────────────────────────

    literal             = bool_literal / int_literal
    bool_literal        = "true" / "false"
    int_literal         = ~r"[+-]?[0-9]+"

    ident               = ~r"[A-Za-z_%][A-Za-z0-9_%.]*"
    ws                  = ~r"(?:\s|#[^\n]*)+"
    _                   = ~r"(?:\s|#[^\n]*)*"
    eof                 = ~r"\Z"
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — VISITOR (Parse Tree → Program)
# ═══════════════════════════════════════════════════════════════════

def _items(visited: Any) -> List[Any]:
    """Results of a ``?``/``*`` node; an empty match visits to a bare Node."""
    return visited if isinstance(visited, list) else []


def _split_operands(operands: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]:
    args: List[str] = []
    funcs: List[str] = []
    labels: List[str] = []
    for text in operands:
        if text.startswith("@"):
            funcs.append(text[1:])
        elif text.startswith("."):
            labels.append(text[1:])
        else:
            args.append(text)
    return tuple(args), tuple(funcs), tuple(labels)


class BrilTextBuilder(NodeVisitor):
    """Transforms the parsimonious parse tree into a ``Program``."""

    unwrapped_exceptions = (ProgramFormatError,)

    def generic_visit(self, node: Node, visited_children: List[Any]) -> Any:
        return visited_children or node

    # -- functions ----------------------------------------------------
    def visit_program(self, node, visited_children):
        _, functions, _ = visited_children
        return Program(functions=_items(functions))

    def visit_function(self, node, visited_children):
        name, _, params, _, ret_type, _, _, _, lines, _, _ = visited_children
        params = _items(params)
        ret_type = _items(ret_type)
        return Function(
            name=name,
            args=params[0] if params else [],
            type=ret_type[0] if ret_type else None,
            instrs=_items(lines),
        )

    def visit_func_name(self, node, visited_children):
        return node.text[1:]

    def visit_params(self, node, visited_children):
        _, _, param_list, _ = visited_children
        param_list = _items(param_list)
        return param_list[0] if param_list else []

    def visit_param_list(self, node, visited_children):
        first, rest, _ = visited_children
        return [first] + [group[-1] for group in _items(rest)]

    def visit_param(self, node, visited_children):
        name, _, _, _, declared = visited_children
        return Argument(name, declared)

    def visit_ret_type(self, node, visited_children):
        return visited_children[-1]

    # -- types --------------------------------------------------------
    def visit_type(self, node, visited_children):
        return visited_children[0]

    def visit_ptr_type(self, node, visited_children):
        return PointerType(visited_children[4])

    def visit_prim_type(self, node, visited_children):
        return PrimitiveType(node.text)

    # -- body ---------------------------------------------------------
    def visit_line(self, node, visited_children):
        return visited_children[0]

    def visit_label_line(self, node, visited_children):
        return Label(visited_children[0])

    def visit_instr_line(self, node, visited_children):
        return visited_children[0]

    def visit_instr_body(self, node, visited_children):
        return visited_children[0]

    def visit_const_instr(self, node, visited_children):
        dest, declared, value = visited_children[0], visited_children[4], visited_children[10]
        return Constant(dest=dest, type=declared, value=value)

    def visit_value_instr(self, node, visited_children):
        dest, declared, op, operands = (
            visited_children[0], visited_children[4], visited_children[8], visited_children[9]
        )
        args, funcs, labels = _split_operands(_items(operands))
        return ValueOperation(op=op, dest=dest, type=declared,
                              args=args, funcs=funcs, labels=labels)

    def visit_effect_instr(self, node, visited_children):
        op, operands = visited_children
        args, funcs, labels = _split_operands(_items(operands))
        return EffectOperation(op=op, args=args, funcs=funcs, labels=labels)

    def visit_opname(self, node, visited_children):
        return node.text

    def visit_operand(self, node, visited_children):
        return node.children[1].text

    def visit_label(self, node, visited_children):
        return node.text[1:]

    # -- literals -----------------------------------------------------
    def visit_literal(self, node, visited_children):
        return visited_children[0]

    def visit_bool_literal(self, node, visited_children):
        return node.text == "true"

    def visit_int_literal(self, node, visited_children):
        return int(node.text, 10)

    def visit_ident(self, node, visited_children):
        return node.text


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def parse_program(source: str) -> Program:
    """Parse Bril text into a ``Program``; raises ``ProgramFormatError``."""
    try:
        tree = BRIL_GRAMMAR.parse(source)
    except ParseError as exc:
        raise ProgramFormatError(
            f"syntax error at column {exc.column()}: "
            f"unexpected {source[exc.pos:exc.pos + 20]!r}",
            line=exc.line(),
        ) from exc
    try:
        program = BrilTextBuilder().visit(tree)
    except VisitationError as exc:
        raise ProgramFormatError(f"could not build program: {exc}") from exc
    logger.debug("parsed %d function(s) from text", len(program.functions))
    return program


def format_function(func: Function) -> str:
    lines = [f"{func.signature()} {{"]
    for line in func.instrs:
        if isinstance(line, Label):
            lines.append(str(line))
        else:
            lines.append(f"  {line}")
    lines.append("}")
    return "\n".join(lines)


def format_program(program: Program) -> str:
    """Render *program* in the text form accepted by ``parse_program``."""
    return "\n".join(format_function(f) for f in program.functions) + "\n"


__all__ = [
    "BRIL_GRAMMAR",
    "BrilTextBuilder",
    "parse_program",
    "format_function",
    "format_program",
]
