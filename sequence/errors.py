"""
sequence/errors.py

Typed failures raised while extracting directives and parsing a
sequence diagram.  Every error carries an optional 1-based source
position so front ends can point the user at the offending text.
"""

from __future__ import annotations

from typing import Optional


class SequenceError(ValueError):
    """Base class for all sequence diagram input errors.

    Attributes:
        message: Human-readable description without position info.
        line: 1-based source line, or ``None`` when unknown.
        column: 1-based source column, or ``None`` when unknown.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(message)

    def locate(self, line: int, column: Optional[int] = None) -> None:
        """Attach a source position unless one is already recorded."""
        if self.line is None:
            self.line = line
            self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


class DiagramSyntaxError(SequenceError):
    """Input does not match any recognised statement form."""


class ActivationMismatchError(SequenceError):
    """A deactivation targets an actor with no open activation.

    Attributes:
        actor: Identifier of the actor that was deactivated.
    """

    def __init__(
        self,
        actor: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.actor = actor
        super().__init__(
            f"cannot deactivate '{actor}': it has no open activation",
            line,
            column,
        )


class ConfigParseError(SequenceError):
    """A directive payload is not valid structured configuration."""
