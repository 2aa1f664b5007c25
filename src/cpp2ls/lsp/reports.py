"""
Parsers for external tool output.

Two formats are read here:

- the cppfront diagnostics report (``-di`` output), a JSON object with
  ``symbols``, ``errors`` and ``scopes``. cppfront emits trailing commas
  before closing brackets, which are stripped before decoding.
- the SARIF log written by the C++ compiler.

Both parsers are total: structurally invalid input is logged and turned
into the empty value for its format, never raised to the caller.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from cpp2ls.lsp.symbols import AnalysisResult, ErrorOrigin, ReportedError, Symbol, SymbolKind
from cpp2ls.utils.errors import ReportFormatError, SourcePos, SourceRange

logger = logging.getLogger(__name__)

# Either a complete JSON string (kept as is) or a comma followed by a closing bracket
_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[\]}])')


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing ``]`` or ``}``, outside strings."""
    return _TRAILING_COMMA.sub(lambda m: m.group(1) or m.group(2), text)


# =============================================================================
# Field helpers
# =============================================================================


def _require(data: Any, key: str, kind: type | tuple[type, ...]) -> Any:
    if not isinstance(data, dict):
        raise ReportFormatError(f"expected an object, got {type(data).__name__}")
    if key not in data:
        raise ReportFormatError(f"missing field '{key}'")
    value = data[key]
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ReportFormatError(f"field '{key}' has unexpected type {type(value).__name__}")
    return value


def _optional(data: Any, key: str, kind: type | tuple[type, ...], default: Any) -> Any:
    if not isinstance(data, dict):
        raise ReportFormatError(f"expected an object, got {type(data).__name__}")
    if data.get(key) is None:
        return default
    return _require(data, key, kind)


def _pos(data: Any) -> SourcePos:
    return SourcePos(lineno=_require(data, "lineno", int), colno=_require(data, "colno", int))


# =============================================================================
# cppfront report
# =============================================================================


def _symbol_from_json(data: Any) -> Symbol:
    return Symbol(
        name=_require(data, "symbol", str),
        kind=SymbolKind.from_report(_require(data, "kind", str)),
        scope=_optional(data, "scope", str, ""),
        position=_pos(data),
    )


def _error_from_json(data: Any) -> ReportedError:
    return ReportedError(
        file=_optional(data, "file", str, ""),
        message=_require(data, "msg", str),
        symbol=_optional(data, "symbol", str, ""),
        position=_pos(data),
        origin=ErrorOrigin.CPPFRONT,
    )


def _scope_from_json(data: Any) -> SourceRange:
    return SourceRange(start=_pos(_require(data, "start", dict)), end=_pos(_require(data, "end", dict)))


def _decode(text: str | bytes) -> str:
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return text


def load_cppfront_report(text: str | bytes) -> AnalysisResult:
    """
    Decode a cppfront diagnostics report.

    Missing top-level collections are treated as empty.

    Raises:
        ReportFormatError: If the text is not a well-formed report
    """
    try:
        data = json.loads(strip_trailing_commas(_decode(text)))
    except (ValueError, RecursionError) as e:
        raise ReportFormatError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ReportFormatError("report is not a JSON object")

    symbols = _optional(data, "symbols", list, [])
    errors = _optional(data, "errors", list, [])
    scopes = _optional(data, "scopes", dict, {})

    return AnalysisResult(
        symbols=[_symbol_from_json(s) for s in symbols],
        errors=[_error_from_json(e) for e in errors],
        cpp_errors=[],
        scopes={name: _scope_from_json(r) for name, r in scopes.items()},
    )


def parse_cppfront_report(text: str | bytes) -> AnalysisResult:
    """
    Parse a cppfront diagnostics report.

    Args:
        text: Raw report text

    Returns:
        The parsed analysis, or an empty AnalysisResult if the report is malformed
    """
    try:
        return load_cppfront_report(text)
    except ReportFormatError as e:
        logger.debug("Ignoring malformed cppfront report: %s", e)
        return AnalysisResult()


# =============================================================================
# SARIF log
# =============================================================================


@dataclass
class SarifMessage:
    text: Optional[str] = None
    markdown: Optional[str] = None

    @property
    def display(self) -> str:
        """Preferred rendering: markdown, then plain text."""
        if self.markdown is not None:
            return self.markdown
        return self.text or ""


@dataclass
class SarifRegion:
    start_line: Optional[int] = None
    start_column: Optional[int] = None


@dataclass
class SarifResult:
    message: SarifMessage
    region: Optional[SarifRegion] = None
    level: Optional[str] = None
    rule_id: Optional[str] = None


@dataclass
class SarifRun:
    results: list[SarifResult] = field(default_factory=list)


@dataclass
class SarifLog:
    runs: list[SarifRun] = field(default_factory=list)
    version: Optional[str] = None

    def results(self) -> list[SarifResult]:
        """All results across every run, in order."""
        return [r for run in self.runs for r in run.results]


def _sarif_region(data: Any) -> Optional[SarifRegion]:
    locations = _optional(data, "locations", list, [])
    if not locations:
        return None
    physical = _optional(locations[0], "physicalLocation", dict, None)
    if physical is None:
        return None
    region = _optional(physical, "region", dict, None)
    if region is None:
        return None
    return SarifRegion(
        start_line=_optional(region, "startLine", int, None),
        start_column=_optional(region, "startColumn", int, None),
    )


def _sarif_result(data: Any) -> SarifResult:
    message = _require(data, "message", dict)
    return SarifResult(
        message=SarifMessage(
            text=_optional(message, "text", str, None),
            markdown=_optional(message, "markdown", str, None),
        ),
        region=_sarif_region(data),
        level=_optional(data, "level", str, None),
        rule_id=_optional(data, "ruleId", str, None),
    )


def _sarif_run(data: Any) -> SarifRun:
    if not isinstance(data, dict):
        raise ReportFormatError("SARIF run is not an object")
    return SarifRun(results=[_sarif_result(r) for r in _optional(data, "results", list, [])])


def load_sarif_log(text: str | bytes) -> SarifLog:
    """
    Decode a SARIF log.

    Raises:
        ReportFormatError: If the text is not a well-formed SARIF log
    """
    try:
        data = json.loads(_decode(text))
    except (ValueError, RecursionError) as e:
        raise ReportFormatError(f"invalid JSON: {e}") from e

    runs = _require(data, "runs", list)
    return SarifLog(
        runs=[_sarif_run(r) for r in runs],
        version=_optional(data, "version", str, None),
    )


def parse_sarif_log(text: str | bytes) -> SarifLog | None:
    """
    Parse a SARIF log from the C++ compiler.

    Args:
        text: Raw SARIF text

    Returns:
        The parsed log, or None if it is malformed
    """
    try:
        return load_sarif_log(text)
    except ReportFormatError as e:
        logger.debug("Ignoring malformed SARIF log: %s", e)
        return None
