"""
Diagnostic merging for cpp2ls.

This module folds the C++ compiler's SARIF findings into the cppfront
analysis, keeps the per-document cache from losing symbols while the
source is temporarily broken, and converts the combined errors into
LSP diagnostics for display.
"""

import dataclasses
import logging

from lsprotocol import types

from cpp2ls.lsp.reports import SarifLog
from cpp2ls.lsp.symbols import AnalysisResult, ErrorOrigin, ReportedError
from cpp2ls.lsp.tokenizer import resolve_token
from cpp2ls.utils.errors import SourcePos

logger = logging.getLogger(__name__)


def merge_sarif_findings(
    result: AnalysisResult,
    log: SarifLog | None,
    source: str,
    source_file: str,
) -> AnalysisResult:
    """
    Add the C++ compiler's findings to a cppfront analysis.

    The compiler reports positions in the generated C++, which drift from
    the cpp2 source. Each finding is re-anchored onto the identifier at the
    same position in the original source; when there is none the reported
    column is kept.

    Args:
        result: The cppfront analysis
        log: Parsed SARIF log, or None if the compiler did not run
        source: The original cpp2 source text
        source_file: Path reported as the origin of each finding

    Returns:
        The analysis with its C++ errors replaced by the log's findings
    """
    if log is None:
        return result

    cpp_errors: list[ReportedError] = []

    for finding in log.results():
        region = finding.region
        if region is None or not region.start_line or not region.start_column:
            logger.debug("Skipping SARIF result without a position: %s", finding.message.display)
            continue

        line = region.start_line
        column = region.start_column
        match = resolve_token(max(0, line - 1), column, source)

        cpp_errors.append(
            ReportedError(
                file=source_file,
                message=finding.message.display,
                symbol=match.token,
                position=SourcePos(
                    lineno=line,
                    colno=column if match.start == -1 else match.start + 1,
                ),
                origin=ErrorOrigin.CPP_COMPILER,
            )
        )

    result.cpp_errors = cpp_errors
    return result


def merge_cached(incoming: AnalysisResult, cached: AnalysisResult | None) -> AnalysisResult:
    """
    Merge a fresh analysis into the cached one.

    Errors always come from the fresh analysis. Symbols and scopes are
    only replaced when cppfront reported no errors, so a half-typed edit
    does not wipe out completion and go-to-definition data.

    Args:
        incoming: The freshly generated analysis
        cached: The previous analysis, if any

    Returns:
        The analysis to cache
    """
    if cached is None:
        return incoming

    if incoming.errors:
        return dataclasses.replace(
            cached,
            errors=list(incoming.errors),
            cpp_errors=list(incoming.cpp_errors),
        )

    return dataclasses.replace(
        cached,
        symbols=list(incoming.symbols),
        errors=list(incoming.errors),
        cpp_errors=list(incoming.cpp_errors),
        scopes=dict(incoming.scopes),
    )


# =============================================================================
# LSP conversion
# =============================================================================


def error_to_diagnostic(error: ReportedError) -> types.Diagnostic:
    """
    Convert a reported error to an LSP diagnostic.

    The range starts at the error position and spans the anchored symbol,
    or one character when there is none.
    """
    line = max(error.position.lineno - 1, 0)
    character = max(error.position.colno - 1, 0)
    length = max(len(error.symbol), 1)

    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=line, character=character),
            end=types.Position(line=line, character=character + length),
        ),
        message=error.message,
        severity=types.DiagnosticSeverity.Error,
        source=error.file or error.origin.value,
    )


def get_diagnostics_for_result(
    result: AnalysisResult | None, max_problems: int | None = None
) -> list[types.Diagnostic]:
    """
    Get LSP diagnostics for an analysis.

    Args:
        result: The document's analysis
        max_problems: Maximum number of diagnostics to return

    Returns:
        cppfront diagnostics followed by C++ compiler diagnostics
    """
    if result is None:
        return []

    errors = result.all_errors
    if max_problems is not None:
        errors = errors[: max(max_problems, 0)]

    return [error_to_diagnostic(e) for e in errors]
