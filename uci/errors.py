"""
Error taxonomy for the UCI protocol layer.

Every malformed or contradictory input line raises one of the exceptions
below. Each carries a ``kind`` so the caller can tell a structural problem
(grammar) from contradictory input (semantic) or a bad number (numeric)
without parsing the message text.

Errors raised by the option store (``engine.options.OptionError``) and the
controller (``engine.controller.EngineError``) are NOT wrapped here: they
propagate out of ``UciLoop.process_line`` unchanged, and the loop reports
them as "delegated" failures.
"""

import enum


class ErrorKind(enum.Enum):
    """Which stage of line processing rejected the input."""

    GRAMMAR = "grammar"
    SEMANTIC = "semantic"
    NUMERIC = "numeric"
    DELEGATED = "delegated"


class UciError(Exception):
    """Base class for input the protocol layer refuses to process."""

    kind: ErrorKind = ErrorKind.GRAMMAR


class GrammarError(UciError):
    """Unknown command, unexpected token, or a missing/empty sub-field."""

    kind = ErrorKind.GRAMMAR


class SemanticError(UciError):
    """Structurally valid input whose parts contradict each other."""

    kind = ErrorKind.SEMANTIC


class NumericValueError(UciError):
    """Missing, non-numeric or out-of-range value for a numeric keyword."""

    kind = ErrorKind.NUMERIC
