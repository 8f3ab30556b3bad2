"""Unit tests for op_expr.symbols (pytest).

These tests cover:
- synthesized name sequence and capacity
- literal classification and parsing
- symbol table binding rules (constants, variables, literals, generated)
- classified RP sequences and unknown operator rejection
"""

from __future__ import annotations

import pytest

from op_expr.errors import ErrorCode
from op_expr.symbols import (
    NAME_CAPACITY,
    BindingKind,
    SymbolTable,
    build_symbol_table,
    is_number,
    parse_literal,
    synthesize_name,
)


def test_synthesize_name_sequence() -> None:
    """Test names run #AA, #AB, ... #ZZ."""
    assert synthesize_name(0) == "#AA"
    assert synthesize_name(1) == "#AB"
    assert synthesize_name(26) == "#BA"
    assert synthesize_name(NAME_CAPACITY - 1) == "#ZZ"
    assert NAME_CAPACITY == 676


def test_synthesize_name_capacity_exceeded() -> None:
    """Test the 677th name is refused."""
    with pytest.raises(RuntimeError, match="676") as exc:
        synthesize_name(NAME_CAPACITY)
    assert exc.value.__cause__.code == ErrorCode.CAPACITY_EXCEEDED


@pytest.mark.parametrize(
    ("token", "expected"),
    [("7", True), ("10", True), ("-3", True), (".5", True), ("-", False), ("", False)],
)
def test_is_number(token: str, expected: bool) -> None:  # noqa: FBT001
    """Test numeric literal classification."""
    assert is_number(token) is expected


@pytest.mark.parametrize(
    ("token", "expected"),
    [("10", 10.0), ("-1", -1.0), ("1e-3", 1e-3), (".5", 0.5), ("2e", 2.0)],
)
def test_parse_literal_longest_prefix(token: str, expected: float) -> None:
    """Test literals convert from their longest numeric prefix."""
    assert parse_literal(token) == pytest.approx(expected)


def test_parse_literal_without_numeric_prefix_is_zero() -> None:
    """Test text with no numeric prefix converts to 0.0."""
    assert parse_literal("-.") == 0.0


def test_symbol_table_binding_rules() -> None:
    """Test constants and variables are idempotent, literals are not."""
    table = SymbolTable()
    assert table.constant("pi") is table.constant("pi")
    assert table.variable("x") is table.variable("x")
    a = table.literal("2")
    b = table.literal("2")
    assert (a.name, b.name) == ("#AA", "#AB")
    assert a.value == b.value == 2.0
    g = table.generated(BindingKind.GENERATED_TWO_ARGS)
    assert g.name == "#AC"
    assert g.kind.is_generated
    assert table.count(BindingKind.LITERAL) == 2
    assert [v.name for v in table.variables()] == ["x"]
    assert len(table) == 5


def test_build_symbol_table_classifies_tokens() -> None:
    """Test operators, constants, variables and literals are classified."""
    table, entries = build_symbol_table(["x", "2", "*", "pi", "+"])
    assert [e.name for e in entries] == ["x", "#AA", "*", "pi", "+"]
    assert [e.is_operator for e in entries] == [False, False, True, False, True]
    assert table["x"].kind is BindingKind.VARIABLE
    assert table["pi"].kind is BindingKind.CONSTANT
    assert table["#AA"].kind is BindingKind.LITERAL
    assert table["#AA"].value == 2.0


def test_repeated_variable_bound_once() -> None:
    """Test a variable used twice has a single binding."""
    table, _ = build_symbol_table(["x", "x", "*"])
    assert len(table.variables()) == 1


def test_unknown_operator_rejected() -> None:
    """Test a symbol that is not a registered operator is refused."""
    with pytest.raises(ValueError, match=r"the operator '\$' does not exist") as exc:
        build_symbol_table(["2", "$", "3"])
    assert exc.value.__cause__.code == ErrorCode.UNKNOWN_OPERATOR
