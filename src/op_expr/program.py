"""
op_expr.program.

Compiled evaluation programs.

A `CompiledProgram` is an ordered tuple of `Generator` steps over one
`SymbolTable`. Each generator reads one or two source bindings, applies its
operator and writes its own output binding. Program order is a valid
evaluation order (producers always precede consumers), so evaluation is a
single forward sweep with no dependency tracking.

Evaluation never re-parses and never allocates program structure; only
variable and generated binding values change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import numpy as np

from .symbols import BindingKind

if TYPE_CHECKING:
    from .registry import Operator
    from .symbols import Binding, Entry, SymbolTable

DEFAULT_PRINT_PRECISION: Final[int] = 7

_KIND_LABELS: Final[dict[BindingKind, str]] = {
    BindingKind.CONSTANT: "constant",
    BindingKind.LITERAL: "literal",
    BindingKind.VARIABLE: "variable",
    BindingKind.GENERATED_ONE_ARG: "generated",
    BindingKind.GENERATED_TWO_ARGS: "generated",
}


class Generator:
    """One fused operation step.

    Attributes:
        operator: Operator applied by this step.
        sources: One or two input bindings.
        target: Binding written by this step (and by no other).
    """

    __slots__ = ("operator", "sources", "target")

    def __init__(
        self,
        operator: Operator,
        sources: tuple[Binding, ...],
        target: Binding,
    ) -> None:
        self.operator = operator
        self.sources = sources
        self.target = target

    @property
    def name(self) -> str:
        return self.target.name

    @property
    def kind(self) -> BindingKind:
        return self.target.kind

    def __call__(self) -> float:
        """Recompute the output binding from the current source values."""
        if self.target.kind is BindingKind.GENERATED_ONE_ARG:
            value = self.operator.apply(self.sources[0].value)
        else:
            value = self.operator.apply(self.sources[0].value, self.sources[1].value)
        self.target.value = value
        return value

    def __repr__(self) -> str:
        args = ", ".join(s.name for s in self.sources)
        return f"Generator({self.name} = {self.operator.name}({args}))"


@dataclass(frozen=True, slots=True)
class CompiledProgram:
    """Generators plus the symbol table they read and write.

    Attributes:
        table: Symbol table owned by this program.
        entries: Classified RP sequence the program was expanded from.
        generators: Steps in evaluation order.
        trace: Expansion trace; the RP sequence followed by every rewritten
            segment, ending with the name of the result binding.
    """

    table: SymbolTable
    entries: tuple[Entry, ...]
    generators: tuple[Generator, ...]
    trace: tuple[str, ...]

    @property
    def result_name(self) -> str | None:
        """Name of the binding holding the final value."""
        if self.generators:
            return self.generators[-1].name
        if self.entries:
            return self.entries[-1].name
        return None

    def evaluate(self) -> float:
        """Run every generator in order and return the final value.

        Floating point faults (division by zero, overflow, invalid operations)
        yield inf/NaN and are propagated, not raised.

        Returns:
            The value of the last generator, or of the last operand when the
            program has no generators, or 0.0 for an empty program.
        """
        if not self.generators:
            name = self.result_name
            return 0.0 if name is None else float(self.table[name].value)

        value = 0.0
        with np.errstate(all="ignore"):
            for generator in self.generators:
                value = generator()
        return float(value)

    def describe(self) -> str:
        """Comma-separated expansion trace."""
        return ", ".join(self.trace)

    def describe_full(self, precision: int = DEFAULT_PRINT_PRECISION) -> str:
        """Expansion trace with the kind and current value of each item.

        Args:
            precision: Digits after the decimal point (scientific notation).

        Returns:
            Text such as "#AA(literal, 1.0000000e+01), +(operator), ...".
        """
        parts: list[str] = []
        for name in self.trace:
            binding = self.table.get(name)
            if binding is None:
                parts.append(f"{name}(operator)")
                continue
            label = _KIND_LABELS[binding.kind]
            parts.append(f"{name}({label}, {binding.value:.{precision}e})")
        return ", ".join(parts)
