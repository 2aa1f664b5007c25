"""
Shared utilities for cpp2ls.
"""

from cpp2ls.utils.errors import (
    Cpp2LSError,
    ReportFormatError,
    SourcePos,
    SourceRange,
    ToolchainError,
)

__all__ = [
    "Cpp2LSError",
    "ReportFormatError",
    "SourcePos",
    "SourceRange",
    "ToolchainError",
]
