"""
op_expr.symbols.

Per-compilation symbol table.

Every operand of a compiled expression is a `Binding`: a named scalar whose
kind is one of a closed set (`BindingKind`). Literal and generated bindings
get synthesized names `#AA`, `#AB`, ..., `#ZZ` in creation order, which caps
one expression at 676 of them.

`build_symbol_table` walks RP tokens once, materializes bindings and returns
the classified sequence (`Entry` list) consumed by `op_expr.compile`.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final, NamedTuple

from .errors import raise_capacity_exceeded, raise_unknown_operator
from .registry import DEFAULT_REGISTRY

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from .registry import Operator, Registry

NAME_PREFIX: Final[str] = "#"
NAME_CAPACITY: Final[int] = len(string.ascii_uppercase) ** 2

_NUMERIC_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class BindingKind(StrEnum):
    """Closed set of binding kinds."""

    CONSTANT = "constant"
    LITERAL = "literal"
    VARIABLE = "variable"
    GENERATED_ONE_ARG = "generated_one_arg"
    GENERATED_TWO_ARGS = "generated_two_args"

    @property
    def is_generated(self) -> bool:
        return self in (BindingKind.GENERATED_ONE_ARG, BindingKind.GENERATED_TWO_ARGS)

    @property
    def is_synthesized(self) -> bool:
        """True for kinds whose names come from the `#AA` name space."""
        return self is BindingKind.LITERAL or self.is_generated


@dataclass(slots=True, eq=False)
class Binding:
    """A named scalar in a symbol table.

    Constants and literals keep their value; variables are set by the caller
    and generated bindings are rewritten on every evaluation.
    """

    name: str
    kind: BindingKind
    value: float = 0.0


class Entry(NamedTuple):
    """One item of a classified RP sequence.

    `operator` is None for operands (the name is then a symbol table key).
    """

    name: str
    operator: Operator | None = None

    @property
    def is_operator(self) -> bool:
        return self.operator is not None


# -----------------------------------------------------------------------------
# Token helpers
# -----------------------------------------------------------------------------


def synthesize_name(index: int) -> str:
    """Return the synthesized binding name for a creation index.

    Args:
        index: Zero-based creation index (0 -> "#AA", 27 -> "#BB").

    Returns:
        The synthesized name.

    Raises:
        RuntimeError: If `index` is beyond the 676-name capacity.
    """
    if not 0 <= index < NAME_CAPACITY:
        raise_capacity_exceeded(limit=NAME_CAPACITY)
    high, low = divmod(index, len(string.ascii_uppercase))
    return f"{NAME_PREFIX}{string.ascii_uppercase[high]}{string.ascii_uppercase[low]}"


def is_identifier(token: str) -> bool:
    return bool(token) and (token[0].isalpha() or token[0] == "_")


def is_number(token: str) -> bool:
    """True if `token` reads as a numeric literal.

    A single digit, or a digit/sign/`.` followed by at least one more
    character. Exponent syntax is not validated.
    """
    if not token:
        return False
    if token[0].isdigit():
        return True
    return token[0] in "+-." and len(token) > 1


def parse_literal(token: str) -> float:
    """Convert literal text from its longest numeric prefix (0.0 if none)."""
    match = _NUMERIC_PREFIX.match(token)
    if match is None:
        return 0.0
    return float(match.group(0))


# -----------------------------------------------------------------------------
# Symbol table
# -----------------------------------------------------------------------------


class SymbolTable:
    """Insertion-ordered mapping from unique names to bindings."""

    __slots__ = ("_bindings", "_registry", "_synthesized")

    def __init__(self, registry: Registry = DEFAULT_REGISTRY) -> None:
        self._bindings: dict[str, Binding] = {}
        self._registry = registry
        self._synthesized = 0

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __getitem__(self, name: str) -> Binding:
        return self._bindings[name]

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def get(self, name: str) -> Binding | None:
        return self._bindings.get(name)

    def constant(self, name: str) -> Binding:
        """Bind a registry constant; repeated calls return the same binding."""
        binding = self._bindings.get(name)
        if binding is None:
            value = self._registry.constants[name].value
            binding = self._add(Binding(name, BindingKind.CONSTANT, value))
        return binding

    def variable(self, name: str) -> Binding:
        """Bind a user variable (initially 0.0); idempotent."""
        binding = self._bindings.get(name)
        if binding is None:
            binding = self._add(Binding(name, BindingKind.VARIABLE, 0.0))
        return binding

    def literal(self, token: str) -> Binding:
        """Bind a numeric literal under a new synthesized name."""
        name = self._next_name()
        return self._add(Binding(name, BindingKind.LITERAL, parse_literal(token)))

    def generated(self, kind: BindingKind) -> Binding:
        """Create the output binding of a generator."""
        name = self._next_name()
        return self._add(Binding(name, kind, 0.0))

    def variables(self) -> list[Binding]:
        return [b for b in self._bindings.values() if b.kind is BindingKind.VARIABLE]

    def count(self, kind: BindingKind) -> int:
        return sum(1 for b in self._bindings.values() if b.kind is kind)

    def _next_name(self) -> str:
        name = synthesize_name(self._synthesized)
        self._synthesized += 1
        return name

    def _add(self, binding: Binding) -> Binding:
        self._bindings[binding.name] = binding
        return binding


def build_symbol_table(
    tokens: Sequence[str],
    registry: Registry = DEFAULT_REGISTRY,
) -> tuple[SymbolTable, list[Entry]]:
    """Materialize bindings for RP tokens.

    Operator names stay operators, registry constants and free identifiers
    become constant/variable bindings under their own name, and each numeric
    literal becomes a new literal binding whose synthesized name replaces it
    in the returned sequence.

    Args:
        tokens: RP tokens.
        registry: Operator/constant tables.

    Returns:
        The symbol table and the classified sequence.

    Raises:
        ValueError: If a symbol token is not a registered operator.
        RuntimeError: If synthesized names run out.
    """
    table = SymbolTable(registry)
    entries: list[Entry] = []
    for token in tokens:
        op = registry.get_operator(token)
        if op is not None:
            entries.append(Entry(token, op))
        elif is_identifier(token):
            if registry.is_constant(token):
                table.constant(token)
            else:
                table.variable(token)
            entries.append(Entry(token))
        elif is_number(token):
            entries.append(Entry(table.literal(token).name))
        else:
            raise_unknown_operator(token=token)
    return table, entries
