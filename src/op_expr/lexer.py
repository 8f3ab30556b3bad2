"""
op_expr.lexer.

Turn infix expression text into a stream of classified lexemes.

Two pure passes run in sequence:

1) `normalize`: strip whitespace, fold runs of signs (`--` -> `+`, `+-` -> `-`)
   and insert explicit parentheses around the operand that follows two
   back-to-back operators or a `^`. Grouping after `^` nests, which makes
   exponentiation right-associative (`a^b^c` -> `a^(b^(c))`).
2) `tokenize`: a character-class state machine that emits NUMBER, IDENTIFIER,
   OPERATOR and PARENTHESIS lexemes. A sign at the start of the text, or a
   sign after `(` that is not part of a number, gets an implicit `0` operand
   so the sign becomes a binary operator.

Known limitation: exponent syntax inside numbers (`1e-5`) is accepted but not
validated; a malformed exponent such as `2e` is read as a number and later
converted from its longest numeric prefix.
"""

from __future__ import annotations

from enum import Enum, StrEnum
from typing import Final, NamedTuple

from .errors import raise_leading_operator, raise_malformed_start

SPECIAL_CHARACTERS: Final[frozenset[str]] = frozenset("+-*/^()")
OPERATOR_CHARACTERS: Final[frozenset[str]] = frozenset("+-*/^")
_SIGNS: Final[frozenset[str]] = frozenset("+-")
_PARENTHESES: Final[frozenset[str]] = frozenset("()")


class LexemeKind(StrEnum):
    """Classification of a lexeme."""

    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    PARENTHESIS = "parenthesis"


class Lexeme(NamedTuple):
    """A classified piece of expression text."""

    kind: LexemeKind
    text: str


_IMPLICIT_ZERO: Final[Lexeme] = Lexeme(LexemeKind.NUMBER, "0")


# -----------------------------------------------------------------------------
# Normalization
# -----------------------------------------------------------------------------


def strip_whitespace(text: str) -> str:
    """Remove every whitespace character (spaces, tabs, newlines)."""
    return "".join(text.split())


def fold_signs(text: str) -> str:
    """Collapse adjacent signs into one.

    `--` and `++` become `+`; `-+` and `+-` become `-`. Longer runs fold
    left to right, so `---` becomes `-`.

    Args:
        text: Whitespace-free expression text.

    Returns:
        The folded text.
    """
    out: list[str] = []
    for ch in text:
        if ch in _SIGNS and out and out[-1] in _SIGNS:
            out[-1] = "+" if out[-1] == ch else "-"
        else:
            out.append(ch)
    return "".join(out)


def _is_exponent_sign(chars: list[str], j: int) -> bool:
    """True if chars[j] is the sign of an `e±digits` number suffix."""
    if chars[j] not in _SIGNS or j < 2 or chars[j - 1] != "e":
        return False
    before = chars[j - 2]
    return before.isdigit() or before == "."


def _find_group_end(chars: list[str], start: int, *, after_power: bool) -> int:
    """Index at which the closing parenthesis of a new group goes.

    The group ends at the next special character outside any bracketed
    sub-expression (function arguments included), ignoring exponent signs of
    numbers and, for a group opened after `^`, further `^` characters. An
    unmatched `)` closes the enclosing bracket, so the group ends before it.
    """
    depth = 0
    for j in range(start, len(chars)):
        ch = chars[j]
        if ch == "(":
            depth += 1
            continue
        if ch == ")":
            if depth == 0:
                return j
            depth -= 1
            continue
        if depth or ch not in SPECIAL_CHARACTERS:
            continue
        if after_power and ch == "^":
            continue
        if _is_exponent_sign(chars, j):
            continue
        return j
    return len(chars)


def group_operands(text: str) -> str:
    """Insert explicit parentheses around operands that need grouping.

    A group is opened when an operator is directly followed by a sign
    (`2*-3` -> `2*(-3)`, `2*-(x+1)` -> `2*(-(x+1))`) and when `^` is followed
    by anything other than `(` (`2^3^4` -> `2^(3^(4))`,
    `2^sin(x)` -> `2^(sin(x))`).

    Args:
        text: Sign-folded, whitespace-free expression text.

    Returns:
        The text with groups inserted.
    """
    chars = list(text)
    i = 1
    while i < len(chars):
        prev, cur = chars[i - 1], chars[i]
        if (prev in OPERATOR_CHARACTERS and cur in _SIGNS) or (
            prev == "^" and cur != "("
        ):
            chars.insert(i, "(")
            end = _find_group_end(chars, i + 2, after_power=prev == "^")
            chars.insert(end, ")")
        i += 1
    return "".join(chars)


def normalize(text: str) -> str:
    """Return the normalized form of an infix expression."""
    return group_operands(fold_signs(strip_whitespace(text)))


# -----------------------------------------------------------------------------
# Tokenization
# -----------------------------------------------------------------------------


class _ReadState(Enum):
    IDLE = "idle"
    NUMBER = "number"
    IDENTIFIER = "identifier"
    SYMBOL = "symbol"


def _starts_identifier(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _continues_number(ch: str, prev: str) -> bool:
    return ch.isdigit() or ch in ".e" or (ch in _SIGNS and prev == "e")


def _check_start(first: str) -> None:
    if first in _SIGNS or first.isdigit() or first == ".":
        return
    if _starts_identifier(first) or first == "(":
        return
    if first in OPERATOR_CHARACTERS:
        raise_leading_operator(token=first)
    raise_malformed_start(char=first)


def _finish(lexemes: list[Lexeme], state: _ReadState, pending: str) -> None:
    if state is _ReadState.NUMBER:
        lexemes.append(Lexeme(LexemeKind.NUMBER, pending))
    elif state is _ReadState.IDENTIFIER:
        lexemes.append(Lexeme(LexemeKind.IDENTIFIER, pending))


def tokenize(text: str) -> list[Lexeme]:
    """Split normalized expression text into lexemes.

    Args:
        text: Output of `normalize`.

    Returns:
        Lexemes in text order.

    Raises:
        ValueError: If the first character cannot open an expression.
    """
    if not text:
        return []
    _check_start(text[0])

    lexemes: list[Lexeme] = []
    state = _ReadState.IDLE
    pending = ""
    for i, ch in enumerate(text):
        prev = text[i - 1] if i else ""

        if state is _ReadState.NUMBER and _continues_number(ch, prev):
            pending += ch
            continue
        if state is _ReadState.IDENTIFIER and (ch.isalnum() or ch == "_"):
            pending += ch
            continue

        _finish(lexemes, state, pending)
        pending = ""

        if _starts_identifier(ch):
            state, pending = _ReadState.IDENTIFIER, ch
        elif ch.isdigit() or ch == ".":
            state, pending = _ReadState.NUMBER, ch
        elif ch in _SIGNS and (i == 0 or prev == "("):
            nxt = text[i + 1] if i + 1 < len(text) else ""
            if i and (nxt.isdigit() or nxt == "."):
                state, pending = _ReadState.NUMBER, ch
            else:
                lexemes.append(_IMPLICIT_ZERO)
                lexemes.append(Lexeme(LexemeKind.OPERATOR, ch))
                state = _ReadState.SYMBOL
        elif ch in _PARENTHESES:
            lexemes.append(Lexeme(LexemeKind.PARENTHESIS, ch))
            state = _ReadState.SYMBOL
        else:
            lexemes.append(Lexeme(LexemeKind.OPERATOR, ch))
            state = _ReadState.SYMBOL

    _finish(lexemes, state, pending)
    return lexemes


def lex(text: str) -> list[Lexeme]:
    """Normalize and tokenize raw infix text."""
    return tokenize(normalize(text))
