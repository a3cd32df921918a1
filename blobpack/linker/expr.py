# linker/expr.py
"""
Arithmetic used by ORIGIN/LENGTH fields of a linker-script MEMORY block.

    terms    := term (('+'|'-') term)*
    term     := '(' terms ')' | '-' term | suffixed
    suffixed := number ('K'|'M')?
    number   := ('-'|'+') number | hex | dec

Blanks (space, tab) may surround binary operators, follow a unary '-' and
pad the inside of parentheses. Values are computed while parsing and kept
inside the signed 64-bit range.
"""

from __future__ import annotations

import string
from typing import Optional, Tuple

from ..errors import IntegerOverflow, ParseError

I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1

BLANKS = " \t"
DEC_DIGITS = frozenset(string.digits)
HEX_DIGITS = frozenset(string.hexdigits)
SUFFIXES = {"K": 1024, "M": 1024 * 1024}

# (value, position just after the match); None when nothing matches
Match = Optional[Tuple[int, int]]


def _checked(value: int, text: str, pos: int) -> int:
    if value < I64_MIN or value > I64_MAX:
        raise IntegerOverflow(
            f"value at offset {pos} of {text!r} does not fit in a signed 64-bit integer"
        )
    return value


def skip_blanks(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in BLANKS:
        pos += 1
    return pos


def _run(text: str, pos: int, allowed: frozenset) -> int:
    end = pos
    while end < len(text) and text[end] in allowed:
        end += 1
    return end


def _literal(text: str, start: int, end: int, base: int, max_digits: int) -> int:
    digits = text[start:end].lstrip("0") or "0"
    # reject before int() so huge literals never reach the conversion
    if len(digits) > max_digits:
        raise IntegerOverflow(f"literal {text[start:end]!r} is too large")
    return _checked(int(digits, base), text, start)


def _hex(text: str, pos: int) -> Match:
    if text[pos:pos + 2] not in ("0x", "0X"):
        return None
    end = _run(text, pos + 2, HEX_DIGITS)
    if end == pos + 2:
        return None
    return _literal(text, pos + 2, end, 16, 16), end


def _dec(text: str, pos: int) -> Match:
    end = _run(text, pos, DEC_DIGITS)
    if end == pos:
        return None
    return _literal(text, pos, end, 10, 20), end


def _number(text: str, pos: int) -> Match:
    if pos >= len(text):
        return None
    sign = text[pos]
    if sign in "+-":
        inner = _number(text, pos + 1)
        if inner is None:
            return None
        value, end = inner
        return (_checked(-value, text, pos) if sign == "-" else value), end
    return _hex(text, pos) or _dec(text, pos)


def _suffixed(text: str, pos: int) -> Match:
    m = _number(text, pos)
    if m is None:
        return None
    value, end = m
    if end < len(text) and text[end] in SUFFIXES:
        value = _checked(value * SUFFIXES[text[end]], text, pos)
        end += 1
    return value, end


def _term(text: str, pos: int) -> Match:
    if pos >= len(text):
        return None
    head = text[pos]
    if head == "(":
        inner = _terms(text, skip_blanks(text, pos + 1))
        if inner is None:
            return None
        value, end = inner
        end = skip_blanks(text, end)
        if end < len(text) and text[end] == ")":
            return value, end + 1
        return None
    if head == "-":
        inner = _term(text, skip_blanks(text, pos + 1))
        if inner is not None:
            value, end = inner
            return _checked(-value, text, pos), end
    return _suffixed(text, pos)


def _terms(text: str, pos: int) -> Match:
    first = _term(text, pos)
    if first is None:
        return None
    value, pos = first
    while True:
        op_pos = skip_blanks(text, pos)
        if op_pos >= len(text) or text[op_pos] not in "+-":
            break
        rhs = _term(text, skip_blanks(text, op_pos + 1))
        if rhs is None:
            # the dangling operator stays in the remainder
            break
        operand, end = rhs
        if text[op_pos] == "+":
            value = _checked(value + operand, text, op_pos)
        else:
            value = _checked(value - operand, text, op_pos)
        pos = end
    return value, pos


def _match(text: str, pos: int) -> Match:
    try:
        return _terms(text, pos)
    except RecursionError:
        raise ParseError("expression is nested too deeply", pos) from None


def match_expression(text: str, pos: int = 0) -> Match:
    """Evaluate the expression starting at `pos`, or return None if none starts there."""
    return _match(text, pos)


def parse_expression(text: str, pos: int = 0) -> Tuple[str, int]:
    """Return (unconsumed remainder, value) for the expression at `pos`."""
    m = _match(text, pos)
    if m is None:
        raise ParseError(f"expected an expression, found {text[pos:pos + 16]!r}", pos)
    value, end = m
    return text[end:], value


def evaluate(text: str) -> int:
    """Evaluate `text`, which must hold exactly one expression."""
    start = skip_blanks(text, 0)
    rest, value = parse_expression(text, start)
    if rest.strip(BLANKS):
        raise ParseError(f"unexpected {rest.strip(BLANKS)[:16]!r} after expression",
                         len(text) - len(rest))
    return value
