"""
op_expr.rpn.

Shunting-yard conversion from lexemes to Reverse-Polish (RP) tokens, plus the
space-separated text form used for display and re-injection.

The working stack keeps the nearest pending entry at the front. An incoming
operator pops every operator in front of it (up to the first `(`) whose
precedence is greater than or equal to its own; popping on equal precedence
makes `+ - * /` left-associative. Two right-associative operators of one tier
(`^`) do not pop each other; `op_expr.lexer.normalize` also groups most `^`
chains explicitly, leaving this rule for exponents such as `2^(x+1)^2`.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from .errors import raise_unmatched_parenthesis
from .lexer import LexemeKind
from .registry import DEFAULT_REGISTRY

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .lexer import Lexeme
    from .registry import Registry

_OPEN = "("
_CLOSE = ")"


def to_reverse_polish(
    lexemes: Iterable[Lexeme],
    registry: Registry = DEFAULT_REGISTRY,
) -> list[str]:
    """Convert infix lexemes to RP tokens.

    Numbers and identifiers that are not operator names go straight to the
    output. Unregistered symbols are passed through as well; building the
    symbol table rejects them.

    Args:
        lexemes: Lexemes in infix order (see `op_expr.lexer.lex`).
        registry: Operator table used for precedence lookups.

    Returns:
        RP tokens in output order.

    Raises:
        ValueError: If parentheses do not match.
    """
    output: list[str] = []
    stack: deque[str] = deque()

    for lexeme in lexemes:
        text = lexeme.text
        op = registry.get_operator(text)

        if op is not None:
            while stack and stack[0] != _OPEN:
                if not registry.operators[stack[0]].yields_to(op):
                    break
                output.append(stack.popleft())
            stack.appendleft(text)
        elif lexeme.kind is LexemeKind.PARENTHESIS and text == _OPEN:
            stack.appendleft(text)
        elif lexeme.kind is LexemeKind.PARENTHESIS and text == _CLOSE:
            while stack and stack[0] != _OPEN:
                output.append(stack.popleft())
            if not stack:
                raise_unmatched_parenthesis(
                    detail="closing ')' has no matching '('"
                )
            stack.popleft()
        else:
            output.append(text)

    for entry in stack:
        if entry == _OPEN:
            raise_unmatched_parenthesis(detail="opening '(' is never closed")
        output.append(entry)
    return output


def format_reverse_polish(tokens: Iterable[str]) -> str:
    """Join RP tokens with single spaces."""
    return " ".join(tokens)


def parse_reverse_polish(text: str) -> list[str]:
    """Split RP text on whitespace.

    Args:
        text: Space-separated RP text, e.g. "10 2 + 3 -".

    Returns:
        RP tokens; empty for blank text.
    """
    return text.split()
