"""
op_expr.compile.

Expand a classified RP sequence into a `CompiledProgram`.

Contract
--------
- Accepts the `Entry` list and `SymbolTable` produced by
  `op_expr.symbols.build_symbol_table` and returns a `CompiledProgram` whose
  generators are in a valid evaluation order.
- Raises built-in exceptions and chains `ExprError` as the cause via helpers
  in `op_expr.errors`.

Expansion
---------
The sequence is rewritten in passes. Each pass scans one *segment* (the RP
sequence for the first pass, the previous pass's output afterwards) keeping a
buffer of operands seen since the last operator:

- an operator with at least as many buffered operands as its arity consumes
  the newest one/two of them into a new generator; older buffered operands
  are carried over first, then the generator's output name;
- otherwise the operator is waiting on an operand that is still being
  reduced, so the buffered operands and the operator are carried over as is.

Every pass creates at least one generator, so the segment shrinks until no
operator is left. Example, `(10 + 2) - 3 + 5`::

    10 2 + 3 - 5 +     ->  a=10+2
    a 3 - 5 +          ->  b=a-3
    b 5 +              ->  c=b+5
    c
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import raise_dangling_operator, raise_leading_operator
from .program import CompiledProgram, Generator
from .symbols import BindingKind, Entry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .registry import Operator
    from .symbols import SymbolTable

_LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Arity validation
# -----------------------------------------------------------------------------


def validate_arity(entries: Sequence[Entry]) -> int:
    """Check that every operator has the operands its arity requires.

    Args:
        entries: Classified RP sequence.

    Returns:
        Number of operands left on the evaluation stack at the end (1 for a
        well-formed non-empty expression).

    Raises:
        ValueError: If the sequence starts with an operator, or an operator
            lacks operands.
    """
    depth = 0
    for position, entry in enumerate(entries):
        op = entry.operator
        if op is None:
            depth += 1
            continue
        if position == 0:
            raise_leading_operator(token=entry.name)
        if depth < op.arity:
            raise_dangling_operator(
                token=entry.name,
                position=position,
                detail=f"needs {op.arity} operand(s), found {depth}",
            )
        depth -= op.arity - 1
    return depth


# -----------------------------------------------------------------------------
# Expansion passes
# -----------------------------------------------------------------------------


def _generate(
    op: Operator,
    sources: Sequence[Entry],
    table: SymbolTable,
    generators: list[Generator],
) -> Entry:
    kind = (
        BindingKind.GENERATED_ONE_ARG
        if len(sources) == 1
        else BindingKind.GENERATED_TWO_ARGS
    )
    target = table.generated(kind)
    generators.append(Generator(op, tuple(table[s.name] for s in sources), target))
    return Entry(target.name)


def _reduce_segment(
    segment: Sequence[Entry],
    table: SymbolTable,
    generators: list[Generator],
) -> list[Entry]:
    """Run one expansion pass and return the next segment."""
    reduced: list[Entry] = []
    pending: list[Entry] = []
    for entry in segment:
        op = entry.operator
        if op is None:
            pending.append(entry)
            continue
        if len(pending) >= op.arity:
            reduced.extend(pending[: -op.arity])
            reduced.append(_generate(op, pending[-op.arity :], table, generators))
        else:
            reduced.extend(pending)
            reduced.append(entry)
        pending.clear()
    # Operands after the last operator feed nothing and are dropped.
    return reduced


def expand_entries(
    entries: Sequence[Entry],
    table: SymbolTable,
    *,
    strict: bool = False,
) -> CompiledProgram:
    """Expand a classified RP sequence into generators.

    Args:
        entries: Classified RP sequence (see `build_symbol_table`).
        table: Symbol table the entries refer to; generated bindings are
            added to it.
        strict: Reject sequences that leave unused operands instead of
            logging a warning.

    Returns:
        The compiled program.

    Raises:
        ValueError: For leading or dangling operators.
        RuntimeError: If synthesized binding names run out.
    """
    depth = validate_arity(entries)
    if depth > 1:
        if strict:
            last = len(entries) - 1
            raise_dangling_operator(
                token=entries[last].name,
                position=last,
                detail=f"leaves {depth} operands where one result is expected",
            )
        _LOGGER.warning(
            "expression leaves %d unused operand(s); only the last result is kept",
            depth - 1,
        )

    generators: list[Generator] = []
    trace: list[str] = [e.name for e in entries]
    segment: list[Entry] = list(entries)
    while any(e.is_operator for e in segment):
        created = len(generators)
        segment = _reduce_segment(segment, table, generators)
        if len(generators) == created:
            position = next(i for i, e in enumerate(segment) if e.is_operator)
            raise_dangling_operator(
                token=segment[position].name,
                position=position,
                detail="cannot be reduced",
            )
        trace.extend(e.name for e in segment)

    _LOGGER.debug(
        "expanded %d RP entries into %d generator(s)", len(entries), len(generators)
    )
    return CompiledProgram(
        table=table,
        entries=tuple(entries),
        generators=tuple(generators),
        trace=tuple(trace),
    )
