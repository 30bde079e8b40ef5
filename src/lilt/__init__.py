"""Lilt parser and evaluator — public API."""

from __future__ import annotations

import logging

from .ast import Program
from .parse import ParseError as ParseError, Parser
from .runtime import (
    DEFAULT_ENTRY,
    DEFAULT_MAX_DEPTH,
    ArityMismatchError as ArityMismatchError,
    CallStackExhaustedError as CallStackExhaustedError,
    DivisionByZeroError as DivisionByZeroError,
    EvalError as EvalError,
    Evaluator as Evaluator,
    IntegerOverflowError as IntegerOverflowError,
    InternalError as InternalError,
    MissingReturnError as MissingReturnError,
    TypeMismatchError as TypeMismatchError,
    UndefinedFunctionError as UndefinedFunctionError,
    UndefinedVariableError as UndefinedVariableError,
    Value as Value,
    VBool as VBool,
    VNumber as VNumber,
    VString as VString,
    run as run,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())


def parse(source: str) -> Program:
    """Parse Lilt source code into a Program AST."""
    return Parser(source).parse_program()


def evaluate(
    source: str, *, entry: str = DEFAULT_ENTRY, max_depth: int = DEFAULT_MAX_DEPTH
) -> Value:
    """Parse and run Lilt source. Returns the entry function's value."""
    return run(parse(source), entry=entry, max_depth=max_depth)
