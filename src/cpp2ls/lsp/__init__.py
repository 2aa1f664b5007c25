"""
cpp2ls Language Server Protocol (LSP) implementation.

This package turns cppfront's diagnostics report and the C++ compiler's
SARIF log into a per-document semantic index, enabling:
- Error diagnostics from both tools
- Completion of symbols visible at the cursor
- Go-to-definition

Usage:
    # Start the LSP server (stdio mode)
    cpp2ls

    # Or run as a module
    python -m cpp2ls.lsp
"""

from cpp2ls.lsp.analyzer import SemanticIndex
from cpp2ls.lsp.server import Cpp2LanguageServer, main

__all__ = [
    "Cpp2LanguageServer",
    "SemanticIndex",
    "main",
]
