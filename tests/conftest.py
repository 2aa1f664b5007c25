"""
Pytest configuration and shared fixtures for cpp2ls tests.
"""

import json

import pytest

from cpp2ls.lsp.analyzer import SemanticIndex
from cpp2ls.lsp.symbols import Symbol, SymbolKind
from cpp2ls.utils.errors import SourcePos


@pytest.fixture
def report_factory():
    """Factory fixture for cppfront diagnostics reports."""

    def _report(
        symbols: list[dict] | None = None,
        errors: list[dict] | None = None,
        scopes: dict | None = None,
        trailing_commas: bool = False,
    ) -> str:
        text = json.dumps(
            {
                "symbols": symbols or [],
                "errors": errors or [],
                "scopes": scopes or {},
            }
        )
        if trailing_commas:
            # Mimic cppfront: a comma after the last element of every non-empty collection
            text = text.replace("}]", "},]").replace("}}", "},}")
        return text

    return _report


@pytest.fixture
def sarif_factory():
    """Factory fixture for SARIF logs with one result per (line, column, message)."""

    def _sarif(*findings: tuple[int, int, str]) -> str:
        results = [
            {
                "ruleId": "error",
                "level": "error",
                "message": {"text": message},
                "locations": [
                    {
                        "physicalLocation": {
                            "artifactLocation": {"uri": "generated.cpp"},
                            "region": {"startLine": line, "startColumn": column},
                        }
                    }
                ],
            }
            for line, column, message in findings
        ]
        return json.dumps({"version": "2.1.0", "runs": [{"results": results}]})

    return _sarif


@pytest.fixture
def symbol_factory():
    """Factory fixture for symbols."""

    def _symbol(
        name: str,
        scope: str = "",
        lineno: int = 1,
        colno: int = 1,
        kind: SymbolKind = SymbolKind.VARIABLE,
    ) -> Symbol:
        return Symbol(name=name, kind=kind, scope=scope, position=SourcePos(lineno, colno))

    return _symbol


@pytest.fixture
def index() -> SemanticIndex:
    """An empty semantic index."""
    return SemanticIndex()
