"""
op_expr.expression.

Stateful compile-once, evaluate-many expression object.

An `Expression` owns the text, the RP tokens, the symbol table and the
compiled program of one expression. Each stage can be run separately
(`compile` -> `load_reverse_polish` -> `expand`) or all at once with
`compile_and_expand`. RP text may be injected directly with
`load_reverse_polish(text)`, bypassing the infix stages.

Failure handling
----------------
A failing stage discards every derived artifact (RP tokens, symbol table,
program), records the chained `ExprError` in `last_error` and re-raises the
built-in exception. The object stays usable: the next compile starts clean.

Instances are not thread-safe; use one per owner.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .compile import expand_entries
from .errors import ErrorCode, ExprError, error_code, raise_parameter_error
from .lexer import lex, normalize
from .program import DEFAULT_PRINT_PRECISION
from .registry import DEFAULT_REGISTRY
from .rpn import format_reverse_polish, parse_reverse_polish, to_reverse_polish
from .symbols import BindingKind, build_symbol_table

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .program import CompiledProgram
    from .registry import Registry
    from .symbols import Entry, SymbolTable

_LOGGER = logging.getLogger(__name__)

_COMPILE_ERRORS = (ValueError, TypeError, RuntimeError, NotImplementedError)


@dataclass(frozen=True, slots=True)
class CompileResult:
    """Outcome of `Expression.try_compile_and_expand`.

    Attributes:
        ok: True if every stage succeeded.
        code: Error code of the failure, None on success.
        message: Error message of the failure, empty on success.
    """

    ok: bool
    code: ErrorCode | None = None
    message: str = ""


def _check_precision(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise_parameter_error(
            detail=f"print_precision must be a non-negative int, got {value!r}"
        )
    return value


class Expression:
    """A compiled scalar expression with settable variables.

    Stage methods raise built-in exceptions (with the coded `ExprError` as
    `__cause__`) instead of returning a status value. Use
    `try_compile_and_expand` for a non-raising `CompileResult`, or read
    `last_error` after a failure.

    Example:
        >>> expr = Expression()
        >>> _ = expr.compile_and_expand("x * 2 + 1")
        >>> expr(x=3.0)
        7.0
    """

    def __init__(
        self,
        registry: Registry = DEFAULT_REGISTRY,
        *,
        print_precision: int = DEFAULT_PRINT_PRECISION,
        strict: bool = False,
    ) -> None:
        """
        Initialize an empty expression.

        Args:
            registry: Operator/constant tables shared with other expressions.
            print_precision: Digits used by `describe_full`.
            strict: Reject sequences that leave unused operands.
        """
        self._registry = registry
        self._print_precision = _check_precision(print_precision)
        self._strict = bool(strict)
        self._text = ""
        self._rp: list[str] | None = None
        self._table: SymbolTable | None = None
        self._entries: list[Entry] | None = None
        self._program: CompiledProgram | None = None
        self._last_error: ExprError | None = None

    def __repr__(self) -> str:
        return f"Expression({self._text!r})"

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def expression(self) -> str:
        """Infix text as given to `set_expression`."""
        return self._text

    @property
    def normalized_expression(self) -> str:
        """Infix text after whitespace removal, sign folding and grouping."""
        return normalize(self._text)

    @property
    def reverse_polish(self) -> str:
        """Current RP text, empty if none has been produced."""
        return format_reverse_polish(self._rp or ())

    @property
    def program(self) -> CompiledProgram | None:
        return self._program

    @property
    def last_error(self) -> ExprError | None:
        """Error of the last failed stage, None if nothing failed since reset."""
        return self._last_error

    @property
    def print_precision(self) -> int:
        return self._print_precision

    @print_precision.setter
    def print_precision(self, value: int) -> None:
        self._print_precision = _check_precision(value)

    @property
    def variable_count(self) -> int:
        return 0 if self._table is None else len(self._table.variables())

    @property
    def variable_names(self) -> tuple[str, ...]:
        """Variable names in first-appearance order."""
        if self._table is None:
            return ()
        return tuple(b.name for b in self._table.variables())

    # -------------------------------------------------------------------------
    # Compilation stages
    # -------------------------------------------------------------------------

    def set_expression(self, text: str) -> None:
        """Replace the infix text and drop every derived artifact."""
        if not isinstance(text, str):
            raise_parameter_error(
                detail=f"expression must be a str, got {type(text).__name__}"
            )
        self._discard()
        self._text = text
        self._last_error = None

    def to_reverse_polish(self) -> str:
        """Convert the current infix text to RP.

        Returns:
            Space-separated RP text.

        Raises:
            ValueError: For malformed infix text.
        """
        with self._failure_guard("reverse Polish conversion"):
            self._rp = to_reverse_polish(lex(self._text), self._registry)
            self._table = self._entries = self._program = None
        _LOGGER.debug("converted %r to RP %r", self._text, self.reverse_polish)
        return self.reverse_polish

    def compile(self, text: str) -> str:
        """Set the infix text and convert it to RP."""
        self.set_expression(text)
        return self.to_reverse_polish()

    def load_reverse_polish(self, rp_text: str | None = None) -> None:
        """Build the symbol table from RP tokens.

        Args:
            rp_text: RP text to inject. If None, the tokens produced by the
                last `to_reverse_polish` are used.

        Raises:
            ValueError: For unknown operator symbols.
            RuntimeError: If synthesized binding names run out.
            TypeError: If there is no RP sequence to load.
        """
        with self._failure_guard("symbol table construction"):
            if rp_text is not None:
                self._rp = parse_reverse_polish(rp_text)
            if self._rp is None:
                raise_parameter_error(
                    detail="no reverse Polish sequence; compile an expression first"
                )
            self._table, self._entries = build_symbol_table(self._rp, self._registry)
            self._program = None
        _LOGGER.debug("built symbol table with %d binding(s)", len(self._table))

    def expand(self) -> CompiledProgram:
        """Expand the loaded RP sequence into a compiled program.

        The symbol table is built first if it has not been loaded yet, and
        rebuilt from the RP tokens when a program already exists, so a
        re-expansion starts from a clean table (variable values reset to 0.0).

        Returns:
            The compiled program.

        Raises:
            ValueError: For leading or dangling operators.
            RuntimeError: If synthesized binding names run out.
        """
        if self._entries is None or self._program is not None:
            self.load_reverse_polish()
        with self._failure_guard("expansion"):
            self._program = expand_entries(
                self._entries, self._table, strict=self._strict
            )
        return self._program

    def compile_and_expand(self, text: str) -> CompiledProgram:
        """Run every stage on `text`."""
        self.compile(text)
        self.load_reverse_polish()
        return self.expand()

    def try_compile_and_expand(self, text: str) -> CompileResult:
        """Run every stage on `text`, reporting failure instead of raising.

        Returns:
            A `CompileResult`; on failure `code` and `message` describe the
            first error.
        """
        try:
            self.compile_and_expand(text)
        except _COMPILE_ERRORS as exc:
            return CompileResult(ok=False, code=error_code(exc), message=str(exc))
        return CompileResult(ok=True)

    def reset(self) -> None:
        """Forget the text, every derived artifact and the last error."""
        self._discard()
        self._text = ""
        self._last_error = None

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def set_variable(self, name: str, value: float) -> None:
        """Set a variable's value.

        Names the expression does not use are ignored.

        Raises:
            TypeError: If `name` is bound to a constant, literal or generated
                value.
        """
        binding = None if self._table is None else self._table.get(name)
        if binding is None:
            _LOGGER.debug("ignoring value for unused variable %r", name)
            return
        if binding.kind is not BindingKind.VARIABLE:
            raise_parameter_error(
                detail=f"{name!r} is a {binding.kind} binding, not a variable"
            )
        binding.value = float(value)

    def set_variables(self, values: Mapping[str, float]) -> None:
        for name, value in values.items():
            self.set_variable(name, value)

    def evaluate(self) -> float:
        """Evaluate the compiled program; 0.0 if nothing has been expanded."""
        if self._program is None:
            return 0.0
        return self._program.evaluate()

    def __call__(self, **values: float) -> float:
        """Set variables from keywords, then evaluate."""
        self.set_variables(values)
        return self.evaluate()

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def describe(self) -> str:
        """Expansion trace, empty before `expand`."""
        return "" if self._program is None else self._program.describe()

    def describe_full(self) -> str:
        """Expansion trace with binding kinds and current values."""
        if self._program is None:
            return ""
        return self._program.describe_full(self._print_precision)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _discard(self) -> None:
        self._rp = None
        self._table = None
        self._entries = None
        self._program = None

    @contextmanager
    def _failure_guard(self, stage: str) -> Iterator[None]:
        try:
            yield
        except _COMPILE_ERRORS as exc:
            self._discard()
            cause = exc.__cause__
            self._last_error = (
                cause if isinstance(cause, ExprError) else ExprError(str(exc))
            )
            _LOGGER.debug("%s failed: %s", stage, exc)
            raise
