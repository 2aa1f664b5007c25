"""
Document analysis index for cpp2ls.

This module owns the per-document analysis cache and answers the
position-based queries the language server exposes:

- Visible symbols / completions at a position
- Go-to-definition
- The flattened error list for diagnostics

Entries are created the first time a document is analyzed, updated by
every later analysis run and evicted when the document is closed.
Queries always read the most recently stored entry.

Reports and the tokenizer count columns in code points. Positions
exchanged with the client are in the client's units (UTF-16 unless
negotiated otherwise) and are converted at this boundary.
"""

import logging

from lsprotocol import types
from pygls.workspace import PositionCodec

from cpp2ls.lsp.completions import CompletionProvider
from cpp2ls.lsp.diagnostics import get_diagnostics_for_result, merge_cached, merge_sarif_findings
from cpp2ls.lsp.reports import parse_cppfront_report, parse_sarif_log
from cpp2ls.lsp.symbols import AnalysisResult, Symbol, find_symbol, visible_symbols
from cpp2ls.lsp.tokenizer import resolve_token, split_lines

logger = logging.getLogger(__name__)


class SemanticIndex:
    """
    Cache of analysis results keyed by document URI.

    Each entry belongs to a single document; there is no sharing between
    documents.
    """

    def __init__(self, position_codec: PositionCodec | None = None) -> None:
        """Initialize an empty index."""
        self._results: dict[str, AnalysisResult] = {}
        self._completion_provider = CompletionProvider()
        self.position_codec = position_codec or PositionCodec()

    def __contains__(self, uri: str) -> bool:
        return uri in self._results

    def get(self, uri: str) -> AnalysisResult | None:
        """Get the cached analysis for a document."""
        return self._results.get(uri)

    def record(self, uri: str, incoming: AnalysisResult) -> AnalysisResult:
        """
        Merge a fresh analysis into the document's entry.

        Args:
            uri: The document URI
            incoming: The new analysis

        Returns:
            The stored analysis
        """
        merged = merge_cached(incoming, self._results.get(uri))
        self._results[uri] = merged
        return merged

    def update(
        self,
        uri: str,
        source: str,
        source_file: str,
        report_text: str | None,
        sarif_text: str | None = None,
    ) -> AnalysisResult | None:
        """
        Parse raw tool output and fold it into the document's entry.

        When cppfront produced no report at all the entry is left as it
        is, since that means the tool did not run rather than that the
        document is empty.

        Args:
            uri: The document URI
            source: The cpp2 source that was analyzed
            source_file: Path of the source, used as the origin of C++ findings
            report_text: Raw cppfront diagnostics report
            sarif_text: Raw SARIF log from the C++ compiler

        Returns:
            The stored analysis
        """
        if report_text is None:
            logger.warning("No cppfront report for %s; keeping previous analysis", uri)
            return self._results.get(uri)

        result = parse_cppfront_report(report_text)
        log = parse_sarif_log(sarif_text) if sarif_text is not None else None
        result = merge_sarif_findings(result, log, source, source_file)

        return self.record(uri, result)

    def evict(self, uri: str) -> None:
        """Forget a document's analysis."""
        self._results.pop(uri, None)

    def clear(self) -> None:
        """Forget every document's analysis."""
        self._results.clear()

    # =========================================================================
    # Client position units
    # =========================================================================

    def from_client(self, line: int, character: int, text: str) -> tuple[int, int]:
        """
        Convert a client position in ``text`` to a code point column.

        Columns past the end of the line keep their distance from it.
        """
        lines = split_lines(text)
        if character < 0 or not 0 <= line < len(lines):
            return line, character

        line_text = lines[line]
        line_units = self.position_codec.client_num_units(line_text)
        if character >= line_units:
            return line, len(line_text) + character - line_units

        position = self.position_codec.position_from_client_units(
            lines, types.Position(line=line, character=character)
        )
        return position.line, position.character

    def _position_to_client(self, lines: list[str], position: types.Position) -> types.Position:
        if not 0 <= position.line < len(lines):
            return position
        line_text = lines[position.line]
        overflow = max(position.character - len(line_text), 0)
        return types.Position(
            line=position.line,
            character=self.position_codec.client_num_units(line_text[: position.character])
            + overflow,
        )

    def to_client(self, range_: types.Range, text: str) -> types.Range:
        """Convert a code point range in ``text`` to client units."""
        lines = split_lines(text)
        return types.Range(
            start=self._position_to_client(lines, range_.start),
            end=self._position_to_client(lines, range_.end),
        )

    # =========================================================================
    # Position-based queries
    # =========================================================================

    def visible_symbols(self, uri: str, line: int, character: int) -> list[Symbol]:
        """
        Get all symbols visible at a position.

        Args:
            uri: The document URI
            line: 0-indexed line number
            character: 0-indexed code point column

        Returns:
            List of visible symbols, empty for unknown documents
        """
        result = self._results.get(uri)
        if result is None:
            return []
        return visible_symbols(result, line, character)

    def get_completions(
        self, uri: str, line: int, character: int, text: str | None = None
    ) -> list[types.CompletionItem]:
        """
        Get completion items at a position.

        Args:
            uri: The document URI
            line: 0-indexed line number
            character: 0-indexed character position, in client units when
                ``text`` is given and in code points otherwise
            text: The current document text

        Returns:
            List of completion items
        """
        if text is not None:
            line, character = self.from_client(line, character, text)
        symbols = self.visible_symbols(uri, line, character)
        return self._completion_provider.get_symbol_completions(symbols)

    def find_definition(self, uri: str, line: int, character: int, text: str) -> Symbol | None:
        """Find the visible symbol named by the token under a code point position."""
        match = resolve_token(line, character, text)
        if not match:
            return None
        return find_symbol(self.visible_symbols(uri, line, character), match.token)

    def get_definition(
        self, uri: str, line: int, character: int, text: str
    ) -> types.Location | None:
        """
        Get the declaration location for the symbol at a position.

        Args:
            uri: The document URI
            line: 0-indexed line number
            character: 0-indexed character position in client units
            text: The current document text

        Returns:
            Declaration location in client units, or None
        """
        line, character = self.from_client(line, character, text)
        symbol = self.find_definition(uri, line, character, text)
        if symbol is None:
            return None
        return types.Location(uri=uri, range=self.to_client(symbol.to_lsp_range(), text))

    def get_diagnostics(
        self, uri: str, max_problems: int | None = None, text: str | None = None
    ) -> list[types.Diagnostic]:
        """
        Get LSP diagnostics for a document's cppfront and C++ errors.

        Ranges are converted to client units when ``text``, the analyzed
        source, is given.
        """
        diagnostics = get_diagnostics_for_result(self._results.get(uri), max_problems)
        if text is not None:
            for diagnostic in diagnostics:
                diagnostic.range = self.to_client(diagnostic.range, text)
        return diagnostics
