"""Lilt runtime — evaluate a parsed program.

A tree-walking evaluator. Functions are registered from the program before
anything runs; each call pushes a fresh frame that sees only its own
parameters and ``let`` bindings.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .ast import (
    Bool,
    Expression,
    FunctionCall,
    FunctionDefine,
    FunctionReturn,
    Identifier,
    MathExpression,
    Node,
    Number,
    Pos,
    Program,
    Statement,
    String,
    UnaryExpression,
    VariableDefine,
)
from .atoms import INT32_MAX, INT32_MIN

logger = logging.getLogger(__name__)

DEFAULT_ENTRY = "main"
DEFAULT_MAX_DEPTH = 100


# ============================================================
# Diagnostics
# ============================================================


class EvalError(Exception):
    """Base error for Lilt evaluation."""

    kind = "error"

    def __init__(self, msg: str, pos: Pos | None = None):
        if pos is None:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {pos.line} col {pos.col}")
        self.msg = msg
        self.pos = pos


class UndefinedVariableError(EvalError):
    kind = "undefined-variable"


class UndefinedFunctionError(EvalError):
    kind = "undefined-function"


class ArityMismatchError(EvalError):
    kind = "arity-mismatch"


class TypeMismatchError(EvalError):
    kind = "type-mismatch"


class DivisionByZeroError(EvalError):
    kind = "division-by-zero"


class IntegerOverflowError(EvalError):
    """Arithmetic result outside the 32-bit signed range."""

    kind = "integer-overflow"


class CallStackExhaustedError(EvalError):
    """Too many nested calls, usually unbounded recursion."""

    kind = "stack-exhausted"


class MissingReturnError(EvalError):
    """Function body ran to the end without a return."""

    kind = "missing-return"


class InternalError(EvalError):
    """Node the evaluator does not know; the parser never produces one."""

    kind = "internal"


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def type_name(self) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class VNumber(Value):
    value: int

    def type_name(self) -> str:
        return "number"

    def to_string(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class VBool(Value):
    value: bool

    def type_name(self) -> str:
        return "bool"

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class VString(Value):
    value: str

    def type_name(self) -> str:
        return "string"

    def to_string(self) -> str:
        return self.value


# ============================================================
# Control flow signals (internal)
# ============================================================


@dataclass
class _Return(Exception):
    value: Value


# ============================================================
# Arithmetic
# ============================================================


def _int_div_trunc(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q


def _check_int32(value: int, pos: Pos) -> VNumber:
    if value < INT32_MIN or value > INT32_MAX:
        raise IntegerOverflowError(f"integer overflow: {value}", pos)
    return VNumber(value)


def _arith(op: str, left: int, right: int, *, pos: Pos) -> VNumber:
    if op == "+":
        return _check_int32(left + right, pos)
    if op == "-":
        return _check_int32(left - right, pos)
    if op == "*":
        return _check_int32(left * right, pos)
    if op == "/":
        if right == 0:
            raise DivisionByZeroError("division by zero", pos)
        return _check_int32(_int_div_trunc(left, right), pos)
    raise InternalError(f"unknown operator '{op}'", pos)


# ============================================================
# Evaluator
# ============================================================


class Evaluator:
    """Holds the function table and call stack for one program run."""

    def __init__(self, *, entry: str = DEFAULT_ENTRY, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.entry = entry
        self.max_depth = max_depth
        self.functions: dict[str, FunctionDefine] = {}
        self.stack: list[dict[str, Value]] = []

    # ---- Registration ------------------------------------------------------

    def register(self, decl: FunctionDefine) -> None:
        name = decl.name.value
        if name in self.functions:
            logger.warning("function '%s' redefined at line %d", name, decl.pos.line)
        else:
            logger.debug("registered function '%s/%d'", name, len(decl.params))
        self.functions[name] = decl

    # ---- Running -----------------------------------------------------------

    def run(self, program: Program) -> Value:
        for decl in program.functions:
            self.register(decl)
        logger.debug("calling entry function '%s'", self.entry)
        return self.call(self.entry, [], pos=program.pos)

    def evaluate(self, node: Node) -> Value | None:
        if isinstance(node, Program):
            return self.run(node)

        if isinstance(node, FunctionDefine):
            self.register(node)
            return None

        if isinstance(node, Statement):
            return self.evaluate(node.child)
        if isinstance(node, Expression):
            return self.evaluate(node.child)

        if isinstance(node, Number):
            return VNumber(node.value)
        if isinstance(node, Bool):
            return VBool(node.value)
        if isinstance(node, String):
            return VString(node.value)

        if isinstance(node, Identifier):
            frame = self._frame()
            if frame is None or node.value not in frame:
                raise UndefinedVariableError(f"undefined variable '{node.value}'", node.pos)
            return frame[node.value]

        if isinstance(node, VariableDefine):
            value = self._eval_value(node.value)
            frame = self._frame()
            if frame is None:
                raise InternalError("no active call frame", node.pos)
            frame[node.name.value] = value
            return value

        if isinstance(node, FunctionReturn):
            raise _Return(self._eval_value(node.value))

        if isinstance(node, FunctionCall):
            return self._eval_call(node)

        if isinstance(node, MathExpression):
            return self._eval_math(node)

        if isinstance(node, UnaryExpression):
            return self._eval_unary(node)

        raise InternalError(f"cannot evaluate {type(node).__name__}", getattr(node, "pos", None))

    # ---- Functions ---------------------------------------------------------

    def call(self, name: str, args: list[Value], *, pos: Pos | None = None) -> Value:
        """Invoke a registered function with already-evaluated arguments."""
        decl = self._lookup(name, len(args), pos)
        return self._invoke(decl, args, pos)

    def _lookup(self, name: str, argc: int, pos: Pos | None) -> FunctionDefine:
        decl = self.functions.get(name)
        if decl is None:
            raise UndefinedFunctionError(f"undefined function '{name}'", pos)
        if len(decl.params) != argc:
            raise ArityMismatchError(
                f"'{name}' takes {len(decl.params)} argument(s), got {argc}", pos
            )
        return decl

    def _invoke(self, decl: FunctionDefine, args: list[Value], pos: Pos | None) -> Value:
        if len(self.stack) >= self.max_depth:
            raise CallStackExhaustedError(
                f"call stack exhausted ({self.max_depth} frames) calling '{decl.name.value}'",
                pos,
            )
        self.stack.append(dict(zip(decl.param_names, args)))
        try:
            for st in decl.body:
                self.evaluate(st)
        except _Return as r:
            return r.value
        except RecursionError:
            raise CallStackExhaustedError(
                f"call stack exhausted calling '{decl.name.value}'", pos
            ) from None
        finally:
            self.stack.pop()
        raise MissingReturnError(f"function '{decl.name.value}' ended without return", decl.pos)

    def _eval_call(self, call: FunctionCall) -> Value:
        decl = self._lookup(call.name, len(call.args), call.pos)
        args = [self._eval_value(a) for a in call.args]
        return self._invoke(decl, args, call.pos)

    # ---- Expressions -------------------------------------------------------

    def _eval_value(self, node: Node) -> Value:
        value = self.evaluate(node)
        if value is None:
            raise InternalError(f"{type(node).__name__} produced no value", node.pos)
        return value

    def _eval_number(self, node: Node, op: str) -> int:
        value = self._eval_value(node)
        if not isinstance(value, VNumber):
            raise TypeMismatchError(
                f"'{op}' expects number operands, got {value.type_name()}", node.pos
            )
        return value.value

    def _eval_math(self, expr: MathExpression) -> VNumber:
        # Left-folded chains nest on children[0]; walk that spine in a loop.
        spine = [expr]
        while spine[-1].children and isinstance(spine[-1].children[0], MathExpression):
            spine.append(spine[-1].children[0])
        acc: int | None = None
        for node in reversed(spine):
            if len(node.children) < 2:
                raise InternalError("math expression needs at least two operands", node.pos)
            if acc is None:
                acc = self._eval_number(node.children[0], node.operator)
            for child in node.children[1:]:
                right = self._eval_number(child, node.operator)
                acc = _arith(node.operator, acc, right, pos=child.pos).value
        return VNumber(acc)

    def _eval_unary(self, expr: UnaryExpression) -> Value:
        if expr.operator == "-":
            return _check_int32(-self._eval_number(expr.child, "-"), expr.pos)
        if expr.operator == "!":
            operand = self._eval_value(expr.child)
            if not isinstance(operand, VBool):
                raise TypeMismatchError(
                    f"'!' expects a bool operand, got {operand.type_name()}", expr.child.pos
                )
            return VBool(not operand.value)
        raise InternalError(f"unknown unary operator '{expr.operator}'", expr.pos)

    def _frame(self) -> dict[str, Value] | None:
        if not self.stack:
            return None
        return self.stack[-1]


def run(
    program: Program, *, entry: str = DEFAULT_ENTRY, max_depth: int = DEFAULT_MAX_DEPTH
) -> Value:
    """Register the program's functions and call the entry function."""
    return Evaluator(entry=entry, max_depth=max_depth).run(program)
