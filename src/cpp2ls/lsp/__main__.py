"""
Entry point for running the cpp2 LSP server as a module.

Usage:
    python -m cpp2ls.lsp
    python -m cpp2ls.lsp --tcp --port 2087
"""

from cpp2ls.lsp.server import main

if __name__ == "__main__":
    main()
