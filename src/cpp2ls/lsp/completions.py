"""
Completion items for cpp2ls.

Completions are the symbols cppfront reported as visible at the cursor,
translated into LSP completion items.
"""

from lsprotocol import types

from cpp2ls.lsp.symbols import Symbol


class CompletionProvider:
    """Builds LSP completion items from visible symbols."""

    def symbol_to_completion(self, symbol: Symbol) -> types.CompletionItem:
        """
        Create a completion item for a symbol.

        Args:
            symbol: The symbol to complete

        Returns:
            The completion item
        """
        detail = f"({symbol.kind.value}) {symbol.scope}" if symbol.scope else f"({symbol.kind.value})"
        return types.CompletionItem(
            label=symbol.name,
            kind=symbol.to_lsp_kind(),
            detail=detail,
        )

    def get_symbol_completions(self, symbols: list[Symbol]) -> list[types.CompletionItem]:
        """Create completion items for symbols, keeping their order."""
        return [self.symbol_to_completion(s) for s in symbols]
