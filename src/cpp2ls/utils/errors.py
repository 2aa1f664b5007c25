"""
Error types and source position tracking for the cpp2 language server.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class SourcePos:
    """
    A position as reported by cppfront.

    Attributes:
        lineno: 1-indexed line number
        colno: 1-indexed column number
    """

    lineno: int
    colno: int

    def __str__(self) -> str:
        return f"{self.lineno}:{self.colno}"


@dataclass(frozen=True, slots=True)
class SourceRange:
    """A 1-indexed range of source, inclusive at both ends."""

    start: SourcePos
    end: SourcePos

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class Cpp2LSError(Exception):
    """Base exception for all cpp2ls errors."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.message = message
        self.path = path
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.path:
            return f"[{self.path}] {self.message}"
        return self.message


class ReportFormatError(Cpp2LSError):
    """Raised when tool output does not have the expected structure."""

    pass


class ToolchainError(Cpp2LSError):
    """Raised when an external tool cannot be found, started, or finished in time."""

    pass
