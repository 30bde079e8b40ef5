"""Lilt parser — backtracking recursive descent over raw characters.

Grammar:

```
Program    = Layout FnDef ( Layout FnDef )* Layout EOF
FnDef      = 'fn' ' '+ Ident '(' ( Ident ( ',' Ident )* )? ')' Block
Block      = '{' Stmt+ '}'
Stmt       = VarDefine | Return | Expr          ; ordered choice
VarDefine  = 'let' ' '+ Ident '=' Expr
Return     = 'return' Expr
Expr       = Sum
Sum        = Product ( ( '+' | '-' ) Product )*
Product    = Unary ( ( '*' | '/' ) Unary )*
Unary      = ( '-' | '!' ) Unary | Atom
Atom       = Call | Number | Bool | String | Ident | '(' Expr ')'   ; ordered choice
Call       = Ident '(' ( Expr ( ',' Expr )* )? ')'
```

Spaces and tabs around operators and inside lists are insignificant. Layout
(newlines, // comments) separates statements and definitions.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from .ast import (
    Expression,
    FunctionCall,
    FunctionDefine,
    FunctionReturn,
    Identifier,
    MathExpression,
    Operand,
    Pos,
    Program,
    Statement,
    UnaryExpression,
    VariableDefine,
)
from .atoms import (
    ParseError as ParseError,
    boolean,
    describe,
    error,
    identifier,
    keyword,
    line_col,
    literal,
    number,
    skip_layout,
    skip_spaces,
    string,
)

T = TypeVar("T")

SUM_OPS: tuple[str, ...] = ("+", "-")
PRODUCT_OPS: tuple[str, ...] = ("*", "/")
UNARY_OPS: tuple[str, ...] = ("-", "!")


class Parser:
    """Backtracking recursive descent parser for Lilt.

    The only mutable state is the cursor ``pos``. Nodes are immutable, so
    restoring the cursor fully undoes a failed alternative.
    """

    def __init__(self, source: str):
        self.src: str = source
        self.pos: int = 0
        self.furthest: ParseError | None = None

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> str:
        if self.pos >= len(self.src):
            return ""
        return self.src[self.pos]

    def at(self, text: str) -> bool:
        return self.src.startswith(text, self.pos)

    def at_end(self) -> bool:
        return self.pos >= len(self.src)

    def at_keyword(self, word: str) -> bool:
        try:
            keyword(self.src, self.pos, word)
        except ParseError:
            return False
        return True

    def expect(self, text: str) -> None:
        self.pos = literal(self.src, self.pos, text)

    def expect_keyword(self, word: str) -> None:
        self.pos = keyword(self.src, self.pos, word)

    def expect_spaces(self) -> None:
        """One or more spaces or tabs."""
        end = skip_spaces(self.src, self.pos)
        if end == self.pos:
            raise self.error("expected space, got " + describe(self.src, self.pos))
        self.pos = end

    def spaces(self) -> None:
        self.pos = skip_spaces(self.src, self.pos)

    def layout(self) -> None:
        self.pos = skip_layout(self.src, self.pos)

    def atom(self, recognizer: Callable[[str, int], tuple[int, T]]) -> T:
        self.pos, node = recognizer(self.src, self.pos)
        return node

    def error(self, msg: str, fatal: bool = False) -> ParseError:
        return error(self.src, self.pos, msg, fatal)

    def _pos(self) -> Pos:
        return line_col(self.src, self.pos)

    def _note(self, err: ParseError) -> None:
        """Remember the failure that got furthest, for reporting."""
        if self.furthest is None or err.offset >= self.furthest.offset:
            self.furthest = err

    # ── Ordered choice ───────────────────────────────────────

    def try_each(self, *alternatives: Callable[[], T]) -> T:
        """Return the first alternative that succeeds from the current offset.

        Every alternative starts from the same offset. When all of them fail,
        the failure that consumed the most input is raised.
        """
        if not alternatives:
            raise ValueError("try_each needs at least one alternative")
        start = self.pos
        best: ParseError | None = None
        for alternative in alternatives:
            try:
                return alternative()
            except ParseError as e:
                if e.fatal:
                    raise
                self._note(e)
                if best is None or e.offset >= best.offset:
                    best = e
                self.pos = start
        raise best

    def optional(self, alternative: Callable[[], T]) -> T | None:
        start = self.pos
        try:
            return alternative()
        except ParseError as e:
            if e.fatal:
                raise
            self._note(e)
            self.pos = start
            return None

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        try:
            return self._parse_program()
        except ParseError as e:
            if not e.fatal and self.furthest is not None and self.furthest.offset > e.offset:
                raise self.furthest from None
            raise
        except RecursionError:
            raise self.error("expression nested too deeply", fatal=True) from None

    def _parse_program(self) -> Program:
        self.layout()
        pos = self._pos()
        if not self.at_keyword("fn"):
            raise self.error("expected function definition, got " + describe(self.src, self.pos))
        functions: list[FunctionDefine] = [self.parse_function_define()]
        self.layout()
        while not self.at_end():
            if not self.at_keyword("fn"):
                raise self.error("unexpected trailing input " + describe(self.src, self.pos))
            functions.append(self.parse_function_define())
            self.layout()
        return Program(pos, tuple(functions))

    def parse_function_define(self) -> FunctionDefine:
        pos = self._pos()
        self.expect_keyword("fn")
        self.expect_spaces()
        name = self.atom(identifier)
        self.spaces()
        self.expect("(")
        params = self.parse_param_list()
        self.expect(")")
        self.layout()
        body = self.parse_block()
        return FunctionDefine(pos, name, tuple(params), tuple(body))

    def parse_param_list(self) -> list[Identifier]:
        """ParamList = ( Ident ( ',' Ident )* )?"""
        params: list[Identifier] = []
        self.spaces()
        if self.at(")"):
            return params
        params.append(self._parse_param(params))
        self.spaces()
        while self.at(","):
            self.pos += 1
            self.spaces()
            params.append(self._parse_param(params))
            self.spaces()
        return params

    def _parse_param(self, seen: list[Identifier]) -> Identifier:
        param = self.atom(identifier)
        if any(p.value == param.value for p in seen):
            raise ParseError(
                "duplicate parameter '" + param.value + "'",
                param.pos.line,
                param.pos.col,
                self.pos,
                fatal=True,
            )
        return param

    def parse_block(self) -> list[Statement]:
        self.expect("{")
        self.layout()
        if self.at("}"):
            raise self.error("function body must contain at least one statement")
        stmts: list[Statement] = [self.parse_stmt()]
        self.layout()
        while not self.at("}"):
            if self.at_end():
                raise self.error("expected '}', got end of input")
            stmts.append(self.parse_stmt())
            self.layout()
        self.expect("}")
        return stmts

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Statement:
        pos = self._pos()
        child = self.try_each(
            self.parse_variable_define,
            self.parse_function_return,
            self.parse_expr,
        )
        return Statement(pos, child)

    def parse_variable_define(self) -> VariableDefine:
        pos = self._pos()
        self.expect_keyword("let")
        self.expect_spaces()
        name = self.atom(identifier)
        self.spaces()
        self.expect("=")
        self.spaces()
        value = self.parse_expr()
        return VariableDefine(pos, name, value)

    def parse_function_return(self) -> FunctionReturn:
        pos = self._pos()
        self.expect_keyword("return")
        self.spaces()
        value = self.parse_expr()
        return FunctionReturn(pos, value)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expression:
        pos = self._pos()
        return Expression(pos, self.parse_sum())

    def parse_sum(self) -> Operand:
        """Sum = Product ( ( '+' | '-' ) Product )*"""
        left = self.parse_product()
        while True:
            tail = self.optional(lambda: self._binary_tail(SUM_OPS, self.parse_product))
            if tail is None:
                return left
            op, right = tail
            left = MathExpression(left.pos, op, (left, right))

    def parse_product(self) -> Operand:
        """Product = Unary ( ( '*' | '/' ) Unary )*"""
        left = self.parse_unary()
        while True:
            tail = self.optional(lambda: self._binary_tail(PRODUCT_OPS, self.parse_unary))
            if tail is None:
                return left
            op, right = tail
            left = MathExpression(left.pos, op, (left, right))

    def _binary_tail(
        self, operators: tuple[str, ...], operand: Callable[[], Operand]
    ) -> tuple[str, Operand]:
        self.spaces()
        op = self.current()
        if op not in operators:
            raise self.error("expected operator, got " + describe(self.src, self.pos))
        self.pos += 1
        self.spaces()
        return op, operand()

    def parse_unary(self) -> Operand:
        """Unary = ( '-' | '!' ) Unary | Atom"""
        op = self.current()
        if op in UNARY_OPS:
            pos = self._pos()
            self.pos += 1
            self.spaces()
            return UnaryExpression(pos, op, self.parse_unary())
        return self.parse_atom()

    def parse_atom(self) -> Operand:
        start = self.pos
        try:
            return self.try_each(
                self.parse_function_call,
                lambda: self.atom(number),
                lambda: self.atom(boolean),
                lambda: self.atom(string),
                lambda: self.atom(identifier),
                self.parse_parenthesized,
            )
        except ParseError as e:
            if e.fatal or e.offset > start:
                raise
            raise self.error("expected expression, got " + describe(self.src, start)) from None

    def parse_function_call(self) -> FunctionCall:
        pos = self._pos()
        name = self.atom(identifier)
        self.expect("(")
        args = self.parse_arg_list()
        self.expect(")")
        return FunctionCall(pos, name.value, tuple(args))

    def parse_arg_list(self) -> list[Expression]:
        """ArgList = ( Expr ( ',' Expr )* )?"""
        args: list[Expression] = []
        self.spaces()
        if self.at(")"):
            return args
        args.append(self.parse_expr())
        self.spaces()
        while self.at(","):
            self.pos += 1
            self.spaces()
            args.append(self.parse_expr())
            self.spaces()
        return args

    def parse_parenthesized(self) -> Operand:
        """'(' Expr ')'. The parentheses do not survive into the tree."""
        self.expect("(")
        self.spaces()
        inner = self.parse_expr()
        self.spaces()
        self.expect(")")
        return inner.child
