"""Lilt lexical atoms — character-level recognizers.

Every recognizer takes the full source and an offset into it and returns
``(new_offset, node)``. Failure raises ``ParseError``; the caller's offset is
untouched, so backtracking is just retrying from the same offset.
"""

from __future__ import annotations

from .ast import Bool, Identifier, Number, Pos, String

QUOTE = '"'
COMMENT = "//"

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class ParseError(Exception):
    """Parse error with location info.

    A fatal error is one that ordered choice must not swallow: no other
    alternative could make the input valid.
    """

    def __init__(self, msg: str, line: int, col: int, offset: int = 0, fatal: bool = False):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        self.offset: int = offset
        self.fatal: bool = fatal
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def line_col(src: str, at: int) -> Pos:
    line = src.count("\n", 0, at) + 1
    col = at - (src.rfind("\n", 0, at) + 1) + 1
    return Pos(line, col)


def error(src: str, at: int, msg: str, fatal: bool = False) -> ParseError:
    pos = line_col(src, at)
    return ParseError(msg, pos.line, pos.col, at, fatal)


def describe(src: str, at: int) -> str:
    """Short quote of the input at offset, for messages."""
    if at >= len(src):
        return "end of input"
    return repr(src[at : at + 10].split("\n")[0])


# ── Layout ───────────────────────────────────────────────────


def skip_spaces(src: str, at: int) -> int:
    """Skip spaces and tabs."""
    while at < len(src) and (src[at] == " " or src[at] == "\t"):
        at += 1
    return at


def skip_layout(src: str, at: int) -> int:
    """Skip all whitespace, including newlines and // comments."""
    length = len(src)
    while at < length:
        c = src[at]
        if c == " " or c == "\t" or c == "\r" or c == "\n":
            at += 1
        elif src.startswith(COMMENT, at):
            while at < length and src[at] != "\n":
                at += 1
        else:
            break
    return at


def literal(src: str, at: int, text: str) -> int:
    """Match text exactly."""
    if not src.startswith(text, at):
        raise error(src, at, "expected '" + text + "', got " + describe(src, at))
    return at + len(text)


def keyword(src: str, at: int, word: str) -> int:
    """Match word, refusing a match that runs on into an identifier."""
    end = at + len(word)
    if not src.startswith(word, at) or (end < len(src) and _is_alnum(src[end])):
        raise error(src, at, "expected '" + word + "', got " + describe(src, at))
    return end


# ── Atoms ────────────────────────────────────────────────────


def identifier(src: str, at: int) -> tuple[int, Identifier]:
    end = at
    while end < len(src) and _is_alnum(src[end]):
        end += 1
    if end == at:
        raise error(src, at, "expected identifier, got " + describe(src, at))
    return end, Identifier(line_col(src, at), src[at:end])


def number(src: str, at: int) -> tuple[int, Number]:
    end = at
    while end < len(src) and _is_digit(src[end]):
        end += 1
    if end == at:
        raise error(src, at, "expected number, got " + describe(src, at))
    value = int(src[at:end])
    if value > INT32_MAX:
        raise error(src, at, "integer literal out of range: " + src[at:end], fatal=True)
    return end, Number(line_col(src, at), value)


def boolean(src: str, at: int) -> tuple[int, Bool]:
    for word, value in (("true", True), ("false", False)):
        try:
            end = keyword(src, at, word)
        except ParseError:
            continue
        return end, Bool(line_col(src, at), value)
    raise error(src, at, "expected boolean, got " + describe(src, at))


def string(src: str, at: int) -> tuple[int, String]:
    if not src.startswith(QUOTE, at):
        raise error(src, at, "expected string, got " + describe(src, at))
    close = src.find(QUOTE, at + 1)
    if close == -1:
        raise error(src, at, "unterminated string literal", fatal=True)
    return close + 1, String(line_col(src, at), src[at + 1 : close])
