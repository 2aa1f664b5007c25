"""
cpp2ls - A language server for cppfront (cpp2) sources.

cpp2ls runs cppfront, and optionally a C++ compiler, over open documents
and indexes their output to provide diagnostics, completion of symbols in
scope, and go-to-definition.
"""

__version__ = "0.1.0"
__all__ = [
    "__version__",
]
