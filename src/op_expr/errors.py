"""
Core error types and helpers for op_expr.

Design intent:
- Lean on built-in exception classes for ergonomics (ValueError/TypeError/etc.).
- Provide machine-readable error codes via a single lightweight base error that
  can be used as an exception cause for structured handling.
- Every failure is recoverable: compilation stops at the first error and the
  caller may compile again.

Contract:
- Public raiser helpers raise built-in exceptions and chain an ExprError as
  the cause, carrying an ErrorCode.
- Callers that want structured handling can catch built-ins and inspect
  `exc.__cause__` for an ExprError (and its `code`), or call `error_code(exc)`.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class ErrorCode(StrEnum):
    """Machine-readable classification for op_expr failures."""

    MALFORMED_START = "malformed_start"
    LEADING_OPERATOR = "leading_operator"
    DANGLING_OPERATOR = "dangling_operator"
    UNMATCHED_PARENTHESIS = "unmatched_parenthesis"
    UNKNOWN_OPERATOR = "unknown_operator"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVALID_EXPR_SPEC = "invalid_expr_spec"
    INVALID_PARAMETERS = "invalid_parameters"
    UNSUPPORTED_FEATURE = "unsupported_feature"


class ExprError(Exception):
    """Lightweight, structured error carrying an ErrorCode.

    This is intentionally not raised directly by the core APIs. Instead, core
    helpers raise built-in exceptions (ValueError/TypeError/etc.) and set an
    ExprError as the exception cause (`raise X from ExprError(...)`).
    """

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize ExprError.

        Args:
            message: Human-readable error message.
            code: Optional ErrorCode classifying the error.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return str(self)


def error_code(exc: BaseException) -> ErrorCode | None:
    """Return the ErrorCode chained to `exc`, if any.

    Args:
        exc: Exception raised by an op_expr API.

    Returns:
        The ErrorCode of the chained ExprError, or None for foreign errors.
    """
    if isinstance(exc, ExprError):
        return exc.code
    cause = exc.__cause__
    if isinstance(cause, ExprError):
        return cause.code
    return None


# -----------------------------------------------------------------------------
# Standardized message prefixes
# -----------------------------------------------------------------------------

_INVALID_EXPR_PREFIX: Final[str] = "Invalid op_expr expression."
_INVALID_RP_PREFIX: Final[str] = "Invalid op_expr reverse Polish sequence."
_INVALID_SPEC_PREFIX: Final[str] = "Invalid op_expr expression specification."
_COMPILATION_PREFIX: Final[str] = "op_expr compilation failed."
_UNSUPPORTED_PREFIX: Final[str] = "Unsupported op_expr feature."
_INVALID_PARAMS_PREFIX: Final[str] = "Invalid parameters for op_expr."


# -----------------------------------------------------------------------------
# Raiser helpers (raise built-ins; chain ExprError with code)
# -----------------------------------------------------------------------------


def raise_malformed_start(*, char: str) -> None:
    """Raise a standardized error for an invalid first character.

    Raises:
        ValueError: Always, chained from ExprError(code=MALFORMED_START).
    """
    msg = f"{_INVALID_EXPR_PREFIX} Detail: expression cannot start with {char!r}"
    raise ValueError(msg) from ExprError(msg, code=ErrorCode.MALFORMED_START)


def raise_leading_operator(*, token: str) -> None:
    """Raise a standardized error for an expression starting with an operator.

    Raises:
        ValueError: Always, chained from ExprError(code=LEADING_OPERATOR).
    """
    msg = f"{_INVALID_RP_PREFIX} Detail: sequence starts with operator {token!r}"
    raise ValueError(msg) from ExprError(msg, code=ErrorCode.LEADING_OPERATOR)


def raise_dangling_operator(*, token: str, position: int, detail: str) -> None:
    """Raise a standardized error for an operator missing operand(s).

    Raises:
        ValueError: Always, chained from ExprError(code=DANGLING_OPERATOR).
    """
    msg = (
        f"{_INVALID_RP_PREFIX} Detail: operator {token!r} at position "
        f"{position} {detail}"
    )
    raise ValueError(msg) from ExprError(msg, code=ErrorCode.DANGLING_OPERATOR)


def raise_unmatched_parenthesis(*, detail: str) -> None:
    """Raise a standardized parenthesis matching error.

    Raises:
        ValueError: Always, chained from ExprError(code=UNMATCHED_PARENTHESIS).
    """
    msg = f"{_INVALID_EXPR_PREFIX} Detail: {detail}"
    raise ValueError(msg) from ExprError(msg, code=ErrorCode.UNMATCHED_PARENTHESIS)


def raise_unknown_operator(*, token: str) -> None:
    """Raise a standardized error for an unregistered operator symbol.

    Raises:
        ValueError: Always, chained from ExprError(code=UNKNOWN_OPERATOR).
    """
    msg = (
        f"{_INVALID_EXPR_PREFIX} Detail: the operator {token!r} does not exist "
        "in the operator registry"
    )
    raise ValueError(msg) from ExprError(msg, code=ErrorCode.UNKNOWN_OPERATOR)


def raise_capacity_exceeded(*, limit: int) -> None:
    """Raise a standardized error when synthesized names run out.

    Raises:
        RuntimeError: Always, chained from ExprError(code=CAPACITY_EXCEEDED).
    """
    msg = (
        f"{_COMPILATION_PREFIX} Detail: expression needs more than {limit} "
        "literal/generated bindings"
    )
    raise RuntimeError(msg) from ExprError(msg, code=ErrorCode.CAPACITY_EXCEEDED)


def raise_invalid_expr_spec(
    *,
    missing: list[str] | None = None,
    detail: str | None = None,
) -> None:
    """Raise a standardized expression specification error.

    Raises:
        ValueError: Always, chained from ExprError(code=INVALID_EXPR_SPEC).
    """
    parts: list[str] = [_INVALID_SPEC_PREFIX]
    if missing:
        parts.append(f"Missing required field(s): {sorted(set(missing))}.")
    if detail:
        parts.append(f"Detail: {detail}")
    msg = " ".join(parts)

    raise ValueError(msg) from ExprError(msg, code=ErrorCode.INVALID_EXPR_SPEC)


def raise_parameter_error(*, detail: str) -> None:
    """Raise a standardized parameter/type error.

    Raises:
        TypeError: Always, chained from ExprError(code=INVALID_PARAMETERS).
    """
    msg = f"{_INVALID_PARAMS_PREFIX} {detail}"
    raise TypeError(msg) from ExprError(msg, code=ErrorCode.INVALID_PARAMETERS)


def raise_unsupported_feature(*, feature: str, detail: str | None = None) -> None:
    """Raise a standardized unsupported feature error.

    Raises:
        NotImplementedError: Chained from ExprError(code=UNSUPPORTED_FEATURE).
    """
    msg = f"{_UNSUPPORTED_PREFIX} Feature '{feature}' is not supported."
    if detail:
        msg = f"{msg} Detail: {detail}"
    raise NotImplementedError(msg) from ExprError(
        msg, code=ErrorCode.UNSUPPORTED_FEATURE
    )
