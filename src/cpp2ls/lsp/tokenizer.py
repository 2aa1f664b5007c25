"""
Cursor tokenizer for cpp2ls.

Recovers the identifier under an editor cursor straight from the raw
document text, without running a parser. Used by go-to-definition and
to re-anchor compiler findings onto the original cpp2 source.
"""

import re
from dataclasses import dataclass

_LINE_BREAK = re.compile(r"\r?\n")

# A word run that ends exactly at the end of the searched slice
_TRAILING_WORD = re.compile(r"\b\w+$", re.ASCII)
_NON_WORD = re.compile(r"\W", re.ASCII)


@dataclass(frozen=True)
class TokenMatch:
    """
    Result of a token lookup.

    Attributes:
        token: The identifier text, or "" when no identifier is under the cursor
        start: 0-indexed column where the token starts, -1 when not found
    """

    token: str
    start: int

    def __bool__(self) -> bool:
        return bool(self.token)


NO_TOKEN = TokenMatch(token="", start=-1)


def split_lines(text: str) -> list[str]:
    """Split document text into lines the way editors number them."""
    return _LINE_BREAK.split(text)


def resolve_token(line: int, character: int, text: str) -> TokenMatch:
    """
    Find the identifier at a cursor position.

    The search looks one character past the cursor so a cursor resting on
    the first character of a word still finds it. A cursor on the
    delimiter directly after a word does not resolve to that word.

    Args:
        line: 0-indexed line number
        character: 0-indexed character position
        text: The full document text

    Returns:
        The matched token, or NO_TOKEN
    """
    if line < 0 or character < 0:
        return NO_TOKEN

    lines = split_lines(text)
    if line >= len(lines):
        return NO_TOKEN

    line_text = lines[line]
    if not line_text:
        return NO_TOKEN

    head = _TRAILING_WORD.search(line_text[: character + 1])
    if head is None:
        return NO_TOKEN

    start = head.start()
    tail = _NON_WORD.search(line_text, character)
    end = tail.start() if tail else len(line_text)

    return TokenMatch(token=line_text[start:end], start=start)
