"""Lilt AST — parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass


# ============================================================
# POSITION
# ============================================================


@dataclass(frozen=True)
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# ATOMS
# ============================================================


@dataclass(frozen=True)
class Node:
    """Base for all nodes."""

    pos: Pos


@dataclass(frozen=True)
class Identifier(Node):
    """Name, verbatim from source."""

    value: str


@dataclass(frozen=True)
class Number(Node):
    """Integer literal, always within the 32-bit signed range."""

    value: int


@dataclass(frozen=True)
class Bool(Node):
    """true or false."""

    value: bool


@dataclass(frozen=True)
class String(Node):
    """String literal, quotes stripped."""

    value: str


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(frozen=True)
class MathExpression(Node):
    """children[0] op children[1] op ..., always 2+ children."""

    operator: str
    children: tuple[Operand, ...]


@dataclass(frozen=True)
class UnaryExpression(Node):
    """op child."""

    operator: str
    child: Operand


@dataclass(frozen=True)
class FunctionCall(Node):
    """name(args)."""

    name: str
    args: tuple[Expression, ...]


Operand = MathExpression | UnaryExpression | FunctionCall | Identifier | Number | Bool | String


@dataclass(frozen=True)
class Expression(Node):
    """Wrapper around a single operand."""

    child: Operand


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True)
class VariableDefine(Node):
    """let name = value."""

    name: Identifier
    value: Expression


@dataclass(frozen=True)
class FunctionReturn(Node):
    """return value."""

    value: Expression


@dataclass(frozen=True)
class Statement(Node):
    child: VariableDefine | FunctionReturn | Expression


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass(frozen=True)
class FunctionDefine(Node):
    """fn name(params) { body }."""

    name: Identifier
    params: tuple[Identifier, ...]
    body: tuple[Statement, ...]

    @property
    def param_names(self) -> list[str]:
        return [p.value for p in self.params]


@dataclass(frozen=True)
class Program(Node):
    """Top-level program: one or more function definitions."""

    functions: tuple[FunctionDefine, ...]
