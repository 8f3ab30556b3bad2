"""
op_expr.registry.

Process-wide operator and constant tables.

Operators and constants are reserved names: an expression can use them but
never redefine them. A `Registry` is immutable after construction and is
shared by reference between every compiled expression; `DEFAULT_REGISTRY`
is built once at import time.

Arithmetic is delegated to numpy float64 ufuncs so that division by zero,
overflow and domain errors produce inf/NaN instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import numpy as np

from .errors import raise_parameter_error

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping


# -----------------------------------------------------------------------------
# Operator classification
# -----------------------------------------------------------------------------


class OperatorKind(StrEnum):
    """Signature class of an operator's evaluation function."""

    UNARY_DOUBLE = "unary_double"  # f(double) -> double
    UNARY_INT = "unary_int"  # f(int) -> int
    BINARY_DOUBLE = "binary_double"  # f(double, double) -> double
    BINARY_DOUBLE_INT = "binary_double_int"  # f(double, int) -> double

    @property
    def arity(self) -> int:
        """Number of operands consumed by operators of this kind."""
        if self in (OperatorKind.UNARY_DOUBLE, OperatorKind.UNARY_INT):
            return 1
        return 2


class Precedence(IntEnum):
    """Operator precedence tiers; higher binds tighter."""

    ADDITION = 3
    MULTIPLICATION = 6
    FUNCTION = 9


def _as_int_unary(fn: Callable[[int], Any]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if not np.isfinite(x):
            return np.nan
        return np.float64(fn(int(x)))

    return apply


def _as_int_second(fn: Callable[[float, int], Any]) -> Callable[[float, float], float]:
    def apply(x: float, n: float) -> float:
        if not np.isfinite(n):
            return np.nan
        return np.float64(fn(x, int(n)))

    return apply


def _select_apply(kind: OperatorKind, fn: Callable[..., Any]) -> Callable[..., float]:
    """Pick the call adapter for an operator kind.

    Int arguments are truncated toward zero; a non-finite int argument makes
    the result NaN.

    Args:
        kind: Operator kind.
        fn: Raw evaluation function.

    Returns:
        A callable taking float operands and returning a float.
    """
    if kind in (OperatorKind.UNARY_DOUBLE, OperatorKind.BINARY_DOUBLE):
        return fn
    if kind is OperatorKind.UNARY_INT:
        return _as_int_unary(fn)
    if kind is OperatorKind.BINARY_DOUBLE_INT:
        return _as_int_second(fn)
    raise_parameter_error(detail=f"unknown operator kind {kind!r}")
    raise AssertionError("unreachable")  # pragma: no cover


# -----------------------------------------------------------------------------
# Registry entries
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operator:
    """A reserved operator or function name.

    Attributes:
        name: Reserved name, e.g. "+" or "sin".
        kind: Signature class, which also fixes the arity.
        precedence: Precedence tier used by the shunting-yard conversion.
        fn: Raw evaluation function.
        right_assoc: Binary operator that groups right to left (`a^b^c` is
            `a^(b^c)`); applies between right-associative operators of one tier.
        apply: Float-level callable selected from `kind` at construction.
    """

    name: str
    kind: OperatorKind
    precedence: Precedence
    fn: Callable[..., Any] = field(repr=False)
    right_assoc: bool = False
    apply: Callable[..., float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "apply", _select_apply(self.kind, self.fn))

    @property
    def arity(self) -> int:
        """Number of operands this operator consumes."""
        return self.kind.arity

    def yields_to(self, incoming: Operator) -> bool:
        """True if this stacked operator is output before `incoming` is pushed."""
        if self.precedence != incoming.precedence:
            return self.precedence > incoming.precedence
        return not (self.right_assoc and incoming.right_assoc)

    @classmethod
    def unary(
        cls,
        name: str,
        fn: Callable[[float], Any],
        *,
        integer: bool = False,
    ) -> Operator:
        """Build a one-argument function-tier operator."""
        kind = OperatorKind.UNARY_INT if integer else OperatorKind.UNARY_DOUBLE
        return cls(name, kind, Precedence.FUNCTION, fn)

    @classmethod
    def binary(
        cls,
        name: str,
        fn: Callable[[float, Any], Any],
        *,
        precedence: Precedence = Precedence.FUNCTION,
        integer_second: bool = False,
        right_assoc: bool = False,
    ) -> Operator:
        """Build a two-argument operator."""
        kind = (
            OperatorKind.BINARY_DOUBLE_INT
            if integer_second
            else OperatorKind.BINARY_DOUBLE
        )
        return cls(name, kind, precedence, fn, right_assoc)


@dataclass(frozen=True, slots=True)
class Constant:
    """A reserved named constant."""

    name: str
    value: float


@dataclass(frozen=True, slots=True)
class Registry:
    """Immutable operator and constant tables.

    Attributes:
        operators: Read-only mapping from name to Operator.
        constants: Read-only mapping from name to Constant.
    """

    operators: Mapping[str, Operator]
    constants: Mapping[str, Constant]

    def __post_init__(self) -> None:
        clash = sorted(set(self.operators) & set(self.constants))
        if clash:
            raise_parameter_error(
                detail=f"names registered as both operator and constant: {clash}"
            )
        object.__setattr__(self, "operators", MappingProxyType(dict(self.operators)))
        object.__setattr__(self, "constants", MappingProxyType(dict(self.constants)))

    @classmethod
    def from_entries(
        cls,
        operators: Iterable[Operator],
        constants: Iterable[Constant] = (),
    ) -> Registry:
        """Build a registry keyed by each entry's name."""
        return cls(
            operators={op.name: op for op in operators},
            constants={c.name: c for c in constants},
        )

    def get_operator(self, name: str) -> Operator | None:
        return self.operators.get(name)

    def is_operator(self, name: str) -> bool:
        return name in self.operators

    def get_constant(self, name: str) -> Constant | None:
        return self.constants.get(name)

    def is_constant(self, name: str) -> bool:
        return name in self.constants

    def extended(
        self,
        *,
        operators: Iterable[Operator] = (),
        constants: Iterable[Constant] = (),
    ) -> Registry:
        """Return a new registry with extra (or replaced) entries.

        The receiver is left untouched.
        """
        ops = dict(self.operators)
        ops.update((op.name, op) for op in operators)
        consts = dict(self.constants)
        consts.update((c.name, c) for c in constants)
        return Registry(operators=ops, constants=consts)


# -----------------------------------------------------------------------------
# Built-in tables
# -----------------------------------------------------------------------------


def _build_default_registry() -> Registry:
    operators = [
        Operator.binary("+", np.add, precedence=Precedence.ADDITION),
        Operator.binary("-", np.subtract, precedence=Precedence.ADDITION),
        Operator.binary("*", np.multiply, precedence=Precedence.MULTIPLICATION),
        Operator.binary("/", np.divide, precedence=Precedence.MULTIPLICATION),
        Operator.binary("^", np.power, right_assoc=True),
        Operator.binary("pow", np.power),
        Operator.binary("ldexp", np.ldexp, integer_second=True),
        Operator.unary("sin", np.sin),
        Operator.unary("cos", np.cos),
        Operator.unary("tan", np.tan),
        Operator.unary("sqrt", np.sqrt),
        Operator.unary("exp", np.exp),
        Operator.unary("log", np.log),
        Operator.unary("abs", np.abs),
    ]
    constants = [
        Constant("pi", np.pi),
        Constant("invPi", 1.0 / np.pi),
        # electron charge [C]
        Constant("qe", 1.6021766208e-19),
        # Boltzmann constant [J/K] and [eV/K]
        Constant("kBJ", 1.38064852e-23),
        Constant("kBeV", 8.6173303e-5),
        # 0 degC in K
        Constant("ToK", 273.15),
    ]
    return Registry.from_entries(operators, constants)


DEFAULT_REGISTRY: Registry = _build_default_registry()
