"""op_expr.

Compile-once, evaluate-many scalar expression engine.

Public API (v1)
--------------
Primary user entrypoints:
- `compile_expression`: Compile infix text into a ready-to-evaluate `Expression`.
- `compile_spec`: Validate, normalize, and compile an expression specification.
- `Expression`: Stateful object exposing every compilation stage.

Core data structures:
- `ExprSpec`
- `CompiledProgram`
- `Registry`, `Operator`, `Constant`

Design guarantees:
- Expressions are parsed once; evaluation is a single sweep over generators.
- Floating point faults yield inf/NaN, never exceptions.
- Compilation errors are built-in exceptions chained from a coded `ExprError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .compile import expand_entries, validate_arity
from .errors import ErrorCode, ExprError, error_code
from .expression import CompileResult, Expression
from .lexer import lex, normalize
from .program import CompiledProgram, Generator
from .registry import (
    DEFAULT_REGISTRY,
    Constant,
    Operator,
    OperatorKind,
    Precedence,
    Registry,
)
from .rpn import to_reverse_polish
from .specs import ExprSpec, normalize_infix_spec, normalize_rpn_spec, normalize_spec
from .symbols import BindingKind, build_symbol_table

if TYPE_CHECKING:
    from collections.abc import Mapping

# -----------------------------------------------------------------------------
# Versioning & capability metadata
# -----------------------------------------------------------------------------

__version__ = "0.1.0"

SUPPORTED_SPEC_KINDS: tuple[str, ...] = ("infix", "rpn")  # noqa: RUF067

# -----------------------------------------------------------------------------
# High-level public façade
# -----------------------------------------------------------------------------


def compile_expression(  # noqa: RUF067
    text: str,
    registry: Registry = DEFAULT_REGISTRY,
    **kwargs: Any,
) -> Expression:
    """
    Compile infix text into an expanded `Expression`.

    Input that leaves unused operands (e.g. `2 x`, read as two operands with
    no operator between them) only logs a warning by default and evaluates to
    the last operand. Pass `strict=True` to reject it with a ValueError.

    Args:
        text: Infix expression text.
        registry: Operator/constant tables.
        **kwargs: Forwarded to `Expression` (`print_precision`, `strict`).

    Returns:
        Expression: Ready to evaluate.
    """
    expr = Expression(registry, **kwargs)
    expr.compile_and_expand(text)
    return expr


def compile_spec(  # noqa: RUF067
    spec: Mapping[str, Any],
    registry: Registry = DEFAULT_REGISTRY,
) -> Expression:
    """
    Validate, normalize, and compile an expression specification in one call.

    Initial variable values from the specification are bound before returning.

    Args:
        spec: Raw specification mapping (YAML/JSON friendly).
        registry: Operator/constant tables.

    Returns:
        Expression: Ready to evaluate.
    """
    normalized = normalize_spec(spec)
    expr = Expression(
        registry,
        print_precision=normalized.print_precision,
        strict=normalized.strict,
    )
    if normalized.kind == "rpn":
        expr.load_reverse_polish(normalized.source)
        expr.expand()
    else:
        expr.compile_and_expand(normalized.source)
    expr.set_variables(normalized.variables)
    return expr


# -----------------------------------------------------------------------------
# Public export surface
# -----------------------------------------------------------------------------

__all__ = [
    "DEFAULT_REGISTRY",
    "SUPPORTED_SPEC_KINDS",
    "BindingKind",
    "CompileResult",
    "CompiledProgram",
    "Constant",
    "ErrorCode",
    "ExprError",
    "ExprSpec",
    "Expression",
    "Generator",
    "Operator",
    "OperatorKind",
    "Precedence",
    "Registry",
    "__version__",
    "build_symbol_table",
    "compile_expression",
    "compile_spec",
    "error_code",
    "expand_entries",
    "lex",
    "normalize",
    "normalize_infix_spec",
    "normalize_rpn_spec",
    "normalize_spec",
    "to_reverse_polish",
    "validate_arity",
]
