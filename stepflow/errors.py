"""Error types for stepflow with source location context."""

from __future__ import annotations


class StepflowError(Exception):
    """Base error with optional source location."""

    def __init__(
        self,
        message: str,
        offset: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        loc = ""
        if line is not None:
            loc = f" (line {line}"
            if column is not None:
                loc += f", col {column}"
            loc += ")"
        elif offset is not None:
            loc = f" at position {offset}"
        super().__init__(f"{message}{loc}")


class ParseError(StepflowError):
    """Raised when source code cannot be turned into an AST."""


class LexicalError(ParseError):
    """Raised when the tokenizer meets a character it cannot scan."""

    def __init__(self, message: str, char: str | None = None, **location):
        self.char = char
        super().__init__(message, **location)


class DSLSyntaxError(ParseError):
    """Raised on the first grammar violation."""

    def __init__(self, message: str, token=None, **location):
        self.token = token
        super().__init__(message, **location)


class ValidationError(StepflowError):
    """Raised when a program fails semantic validation."""


class GenerationError(StepflowError):
    """Raised when a program cannot be projected to a graph."""


class ConversionError(StepflowError):
    """Raised when a graph model cannot be converted back to source."""
