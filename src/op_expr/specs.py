"""op_expr.specs.

Expression specification models and normalization utilities for op_expr.

Specifications are plain YAML/JSON-friendly mappings, so an expression and its
evaluation settings can live in a configuration file.

Supported kinds
---------------
1) kind: "infix" (default)
   - `expression`: infix text, e.g. "(x + 2) * sin(pi / 4)".

2) kind: "rpn"
   - `reverse_polish`: space-separated RP text, e.g. "x 2 + pi 4 / sin *".
     The infix stages are skipped.

Common optional keys
--------------------
- `variables`: mapping of variable name -> initial numeric value.
- `print_precision`: non-negative int used by `describe_full` (default 7).
- `strict`: reject sequences that leave unused operands (default False).
- `description`, `units`: free-form, carried through in `meta`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import raise_invalid_expr_spec, raise_unsupported_feature
from .program import DEFAULT_PRINT_PRECISION
from .symbols import is_identifier

if TYPE_CHECKING:
    from collections.abc import Mapping

_META_KEYS: tuple[str, ...] = ("description", "units")


# -----------------------------------------------------------------------------
# Normalized representation
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExprSpec:
    """Validated expression specification.

    Attributes:
        kind: "infix" or "rpn".
        source: Infix text for "infix", RP text for "rpn".
        variables: Initial variable values.
        print_precision: Digits used by `describe_full`.
        strict: Reject sequences that leave unused operands.
        meta: Reserved free-form keys carried through unchanged.
    """

    kind: str
    source: str
    variables: Mapping[str, float]
    print_precision: int
    strict: bool
    meta: Mapping[str, Any]


# -----------------------------------------------------------------------------
# Field helpers
# -----------------------------------------------------------------------------


def _ensure_source(spec: Mapping[str, Any], *, key: str) -> str:
    """
    Ensure spec[key] is a non-empty string.

    Args:
        spec: Raw specification mapping.
        key: Required field name.

    Returns:
        The stripped string.
    """
    if key not in spec:
        raise_invalid_expr_spec(missing=[key])
    val = spec[key]
    if not isinstance(val, str) or not val.strip():
        raise_invalid_expr_spec(detail=f"{key} must be a non-empty string")
    return val.strip()


def _ensure_float_dict(x: object, *, name: str) -> dict[str, float]:
    """
    Ensure x is a mapping of identifier -> real number.

    Args:
        x: Input value (mapping) or None.
        name: Field name for error messages.

    Returns:
        Dict of stripped names to float values.
    """
    if x is None:
        return {}
    if not isinstance(x, dict):
        raise_invalid_expr_spec(detail=f"{name} must be a mapping of name->number")
    out: dict[str, float] = {}
    for k, v in x.items():
        if not isinstance(k, str) or not is_identifier(k.strip()):
            raise_invalid_expr_spec(detail=f"{name} keys must be identifiers")
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise_invalid_expr_spec(detail=f"{name}[{k!r}] must be a number")
        out[k.strip()] = float(v)
    return out


def _ensure_precision(x: object) -> int:
    if x is None:
        return DEFAULT_PRINT_PRECISION
    if isinstance(x, bool) or not isinstance(x, int) or x < 0:
        raise_invalid_expr_spec(detail="print_precision must be a non-negative int")
    return x


def _ensure_bool(x: object, *, name: str) -> bool:
    if x is None:
        return False
    if not isinstance(x, bool):
        raise_invalid_expr_spec(detail=f"{name} must be a boolean")
    return x


def _build_spec(kind: str, source: str, spec: Mapping[str, Any]) -> ExprSpec:
    meta = {k: spec[k] for k in _META_KEYS if k in spec}
    return ExprSpec(
        kind=kind,
        source=source,
        variables=_ensure_float_dict(spec.get("variables"), name="variables"),
        print_precision=_ensure_precision(spec.get("print_precision")),
        strict=_ensure_bool(spec.get("strict"), name="strict"),
        meta=meta,
    )


# -----------------------------------------------------------------------------
# Public normalization entrypoint
# -----------------------------------------------------------------------------


def normalize_spec(spec: Mapping[str, Any] | None) -> ExprSpec:
    """
    Normalize an expression specification mapping.

    Args:
        spec: Raw specification mapping.

    Raises:
        ValueError: If the mapping is missing or malformed.
        NotImplementedError: If an unsupported kind is specified.

    Returns:
        ExprSpec: Validated specification.
    """
    if spec is None:
        raise_invalid_expr_spec(detail="expression specification is required")
    if not isinstance(spec, dict):
        raise_invalid_expr_spec(detail="expression specification must be a mapping")

    kind = str(spec.get("kind", "infix")).strip().lower()

    if kind == "infix":
        return normalize_infix_spec(spec)

    if kind == "rpn":  # pre-converted RP text
        return normalize_rpn_spec(spec)

    raise_unsupported_feature(
        feature=f"expr.kind={kind}",
        detail="Only 'infix' and 'rpn' are supported.",
    )
    msg = "unreachable"
    raise RuntimeError(msg)  # pragma: no cover


def normalize_infix_spec(spec: Mapping[str, Any]) -> ExprSpec:
    """
    Normalize an infix expression specification.

    Args:
        spec: Raw specification mapping.

    Returns:
        ExprSpec: Validated specification with kind "infix".
    """
    return _build_spec("infix", _ensure_source(spec, key="expression"), spec)


def normalize_rpn_spec(spec: Mapping[str, Any]) -> ExprSpec:
    """
    Normalize a reverse Polish specification.

    Args:
        spec: Raw specification mapping.

    Returns:
        ExprSpec: Validated specification with kind "rpn".
    """
    return _build_spec("rpn", _ensure_source(spec, key="reverse_polish"), spec)
