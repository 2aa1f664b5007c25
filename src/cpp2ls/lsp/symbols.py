"""
Symbol model and scope index for cpp2ls.

This module holds the typed form of a cppfront analysis (symbols, scopes
and errors from both the translator and the C++ compiler) and answers
"which symbols are visible at this cursor position" queries against the
scope ranges cppfront reports.
"""

from dataclasses import dataclass, field
from enum import Enum

from lsprotocol import types

from cpp2ls.utils.errors import SourcePos, SourceRange


class SymbolKind(Enum):
    """Kind of symbol as classified by cppfront."""

    FUNCTION = "function"
    VARIABLE = "var"
    TYPE = "type"
    NAMESPACE = "namespace"
    OTHER = "other"

    @classmethod
    def from_report(cls, value: str) -> "SymbolKind":
        """Map a cppfront kind string, tolerating kinds added by newer cppfront releases."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


# Map cppfront symbol kinds to LSP completion kinds
SYMBOL_KIND_TO_LSP: dict[SymbolKind, types.CompletionItemKind] = {
    SymbolKind.FUNCTION: types.CompletionItemKind.Function,
    SymbolKind.VARIABLE: types.CompletionItemKind.Variable,
    SymbolKind.NAMESPACE: types.CompletionItemKind.Module,
    SymbolKind.TYPE: types.CompletionItemKind.TypeParameter,
}


class ErrorOrigin(Enum):
    """Which tool an error came from."""

    CPPFRONT = "cppfront"
    CPP_COMPILER = "cpp"


@dataclass(frozen=True)
class Symbol:
    """
    A symbol declared in the cpp2 source.

    Attributes:
        name: The symbol's identifier
        kind: The kind of symbol
        scope: Scope id the symbol is declared in ("" for global)
        position: 1-indexed declaration position
    """

    name: str
    kind: SymbolKind
    scope: str
    position: SourcePos

    @property
    def is_global(self) -> bool:
        return self.scope == ""

    def to_lsp_kind(self) -> types.CompletionItemKind:
        """Get the LSP completion kind."""
        return SYMBOL_KIND_TO_LSP.get(self.kind, types.CompletionItemKind.Text)

    def to_lsp_range(self) -> types.Range:
        """Convert the declaration to a 0-indexed LSP range covering the name."""
        # Reports may carry 0 for an unknown position
        line = max(self.position.lineno - 1, 0)
        character = max(self.position.colno - 1, 0)
        return types.Range(
            start=types.Position(line=line, character=character),
            end=types.Position(line=line, character=character + len(self.name)),
        )


@dataclass(frozen=True)
class ReportedError:
    """
    An error reported against the cpp2 source.

    Attributes:
        file: File the error was reported for
        message: Human readable message
        symbol: Identifier the error is anchored to (may be empty)
        position: 1-indexed position of the error
        origin: The tool that reported it
    """

    file: str
    message: str
    symbol: str
    position: SourcePos
    origin: ErrorOrigin = ErrorOrigin.CPPFRONT


@dataclass
class AnalysisResult:
    """
    Combined analysis of one document.

    Errors from cppfront and from the C++ compiler are kept in separate
    lists and only flattened for presentation.
    """

    symbols: list[Symbol] = field(default_factory=list)
    errors: list[ReportedError] = field(default_factory=list)
    cpp_errors: list[ReportedError] = field(default_factory=list)
    scopes: dict[str, SourceRange] = field(default_factory=dict)

    @property
    def all_errors(self) -> list[ReportedError]:
        """cppfront errors followed by C++ compiler errors."""
        return [*self.errors, *self.cpp_errors]

    def is_empty(self) -> bool:
        return not (self.symbols or self.errors or self.cpp_errors or self.scopes)


def in_scope(line: int, character: int, scope: SourceRange) -> bool:
    """
    Check whether a cursor position falls inside a scope range.

    The cursor line is 0-indexed and converted once here. The column is
    compared raw against the scope's start and end columns, inclusive on
    both boundary lines.

    Args:
        line: 0-indexed line number
        character: 0-indexed character position
        scope: 1-indexed scope range

    Returns:
        True if the position is inside the scope
    """
    lineno = line + 1

    return (
        scope.start.lineno < lineno < scope.end.lineno
        or (lineno == scope.start.lineno and character >= scope.start.colno)
        or (lineno == scope.end.lineno and character <= scope.end.colno)
    )


def scopes_at(result: AnalysisResult, line: int, character: int) -> set[str]:
    """Get the ids of every scope containing a position."""
    return {
        name for name, range_ in result.scopes.items() if in_scope(line, character, range_)
    }


def visible_symbols(result: AnalysisResult, line: int, character: int) -> list[Symbol]:
    """
    Get all symbols visible at a position.

    A symbol is visible when it is global or its scope contains the
    position. Symbols naming a scope that was never reported are not
    visible. Order follows the report.

    Args:
        result: The document's analysis
        line: 0-indexed line number
        character: 0-indexed character position

    Returns:
        List of visible symbols
    """
    scopes = scopes_at(result, line, character)
    return [s for s in result.symbols if s.is_global or s.scope in scopes]


def find_symbol(symbols: list[Symbol], name: str) -> Symbol | None:
    """Return the first symbol with an exactly matching name."""
    return next((s for s in symbols if s.name == name), None)
