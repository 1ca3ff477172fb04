"""Error types raised by the engine.

Most calculations return neutral values (0, empty lists) for degenerate
numeric input.  :class:`InvalidInputs` is reserved for configurations that
would otherwise produce a meaningless number, such as a Gordon-growth
terminal value with ``discount_rate <= terminal_growth_rate``.
"""

from __future__ import annotations


class InvalidInputs(ValueError):
    """Raised when inputs cannot produce a finite, meaningful result.

    Subclasses :class:`ValueError` so callers that already guard numeric
    parsing with ``except ValueError`` keep working.

    Attributes:
        field: Name of the offending argument, when a single one is to blame.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
