"""Unit tests for op_expr.compile and op_expr.program (pytest).

These tests cover:
- arity validation (leading and dangling operators)
- expansion into generators and the expansion trace
- generator ordering (producers before consumers) and unique names
- evaluation of expanded programs, including inf/NaN propagation
- leftover operands (warning vs strict)
- capacity limit on synthesized names
- trace rendering with kinds and values
"""

from __future__ import annotations

import logging
import math

import pytest

from op_expr.compile import expand_entries, validate_arity
from op_expr.errors import ErrorCode
from op_expr.program import CompiledProgram
from op_expr.rpn import parse_reverse_polish
from op_expr.symbols import BindingKind, build_symbol_table


def _expand(rp_text: str, *, strict: bool = False) -> CompiledProgram:
    table, entries = build_symbol_table(parse_reverse_polish(rp_text))
    return expand_entries(entries, table, strict=strict)


@pytest.fixture
def program_14() -> CompiledProgram:
    """Compiled program for `(10 + 2) - 3 + 5`.

    Returns:
        CompiledProgram instance.
    """
    return _expand("10 2 + 3 - 5 +")


# -----------------------------------------------------------------------------
# Arity validation
# -----------------------------------------------------------------------------


def test_validate_arity_returns_depth() -> None:
    """Test a well-formed sequence leaves one operand."""
    _, entries = build_symbol_table(["1", "2", "+", "sin"])
    assert validate_arity(entries) == 1


def test_validate_arity_leading_operator() -> None:
    """Test an operator in first position is rejected."""
    _, entries = build_symbol_table(["+", "1"])
    with pytest.raises(ValueError, match="starts with operator") as exc:
        validate_arity(entries)
    assert exc.value.__cause__.code == ErrorCode.LEADING_OPERATOR


@pytest.mark.parametrize("rp_text", ["1 +", "1 2 + +", "a b + +"])
def test_validate_arity_dangling_operator(rp_text: str) -> None:
    """Test an operator without enough operands is rejected."""
    with pytest.raises(ValueError, match="needs 2 operand") as exc:
        _expand(rp_text)
    assert exc.value.__cause__.code == ErrorCode.DANGLING_OPERATOR


# -----------------------------------------------------------------------------
# Expansion
# -----------------------------------------------------------------------------


def test_expansion_trace(program_14: CompiledProgram) -> None:
    """Test the trace lists the RP sequence and every rewritten segment."""
    assert program_14.describe() == (
        "#AA, #AB, +, #AC, -, #AD, +, "
        "#AE, #AC, -, #AD, +, "
        "#AF, #AD, +, "
        "#AG"
    )


def test_expansion_generators(program_14: CompiledProgram) -> None:
    """Test generator names, sources and evaluation order."""
    gens = program_14.generators
    assert [g.name for g in gens] == ["#AE", "#AF", "#AG"]
    assert [[s.name for s in g.sources] for g in gens] == [
        ["#AA", "#AB"],
        ["#AE", "#AC"],
        ["#AF", "#AD"],
    ]
    assert all(g.kind is BindingKind.GENERATED_TWO_ARGS for g in gens)
    assert program_14.result_name == "#AG"


def test_expansion_evaluates(program_14: CompiledProgram) -> None:
    """Test `(10 + 2) - 3 + 5` evaluates to 14."""
    assert program_14.evaluate() == 14.0


def test_nested_expansion_order() -> None:
    """Test `162 / (2 + 1)^4` reduces inner operations first."""
    program = _expand("162 2 1 + 4 ^ /")
    assert [g.operator.name for g in program.generators] == ["+", "^", "/"]
    assert program.evaluate() == pytest.approx(2.0)


def test_unary_generator() -> None:
    """Test unary operators create one-argument generators."""
    program = _expand("2 x sin *")
    sin_gen, mul_gen = program.generators
    assert sin_gen.kind is BindingKind.GENERATED_ONE_ARG
    assert mul_gen.kind is BindingKind.GENERATED_TWO_ARGS
    program.table["x"].value = math.pi / 2
    assert program.evaluate() == pytest.approx(2.0)


def test_producers_precede_consumers() -> None:
    """Test every generated source is written by an earlier generator."""
    program = _expand("1 2 + 3 4 - * 5 6 / 7 ^ +")
    seen: set[str] = set()
    names = [g.name for g in program.generators]
    assert len(names) == len(set(names))
    for gen in program.generators:
        for src in gen.sources:
            if src.kind.is_generated:
                assert src.name in seen
        seen.add(gen.name)


def test_evaluation_is_idempotent(program_14: CompiledProgram) -> None:
    """Test repeated evaluation gives the same result."""
    assert program_14.evaluate() == program_14.evaluate() == 14.0


def test_division_by_zero_propagates_inf() -> None:
    """Test division by zero yields inf instead of raising."""
    assert math.isinf(_expand("1 0 /").evaluate())
    assert math.isnan(_expand("0 0 /").evaluate())


def test_program_without_generators() -> None:
    """Test a single operand evaluates to its own value."""
    assert _expand("7").evaluate() == 7.0
    assert _expand("").evaluate() == 0.0


# -----------------------------------------------------------------------------
# Leftover operands and capacity
# -----------------------------------------------------------------------------


def test_leftover_operands_warn(caplog: pytest.LogCaptureFixture) -> None:
    """Test leftover operands log a warning and keep the last result."""
    with caplog.at_level(logging.WARNING, logger="op_expr.compile"):
        program = _expand("1 2 3 +")
    assert "unused operand" in caplog.text
    assert program.evaluate() == 5.0


def test_leftover_operands_strict() -> None:
    """Test strict expansion rejects leftover operands."""
    with pytest.raises(ValueError, match="leaves 2 operands") as exc:
        _expand("1 2 3 +", strict=True)
    assert exc.value.__cause__.code == ErrorCode.DANGLING_OPERATOR


def test_capacity_exceeded() -> None:
    """Test expansion fails once synthesized names run out."""
    rp_text = " ".join(["1"] + ["1", "+"] * 399)
    with pytest.raises(RuntimeError, match="676") as exc:
        _expand(rp_text)
    assert exc.value.__cause__.code == ErrorCode.CAPACITY_EXCEEDED


# -----------------------------------------------------------------------------
# Display
# -----------------------------------------------------------------------------


def test_describe_full_shows_kind_and_value() -> None:
    """Test the full trace renders kind and value in scientific notation."""
    program = _expand("2 x *")
    program.table["x"].value = 3.0
    program.evaluate()
    assert program.describe_full(precision=2) == (
        "#AA(literal, 2.00e+00), x(variable, 3.00e+00), *(operator), "
        "#AB(generated, 6.00e+00)"
    )
