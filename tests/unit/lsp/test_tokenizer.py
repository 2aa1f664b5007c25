"""Tests for the cpp2ls cursor tokenizer."""

from cpp2ls.lsp.tokenizer import NO_TOKEN, TokenMatch, resolve_token


class TestResolveToken:
    """Test suite for resolve_token."""

    def test_token_at_start_of_text(self) -> None:
        """Test finding a one-letter token at the very first character."""
        text = "x is the best\nWe are hello\nfreddie is cool\nWasa wasa?"

        match = resolve_token(0, 0, text)
        assert match == TokenMatch(token="x", start=0)

    def test_token_not_at_column_zero(self) -> None:
        """Test finding a token in the middle of a line."""
        text = "this x is the best\nWe are hello\nfreddie is cool\nWasa wasa?"

        match = resolve_token(0, 5, text)
        assert match.token == "x"
        assert match.start == 5

    def test_cursor_inside_token(self) -> None:
        """Test that a cursor in the middle of a word resolves the whole word."""
        text = "We are hello\nfreddie is cool\nWasa wasa?"

        match = resolve_token(1, 4, text)
        assert match.token == "freddie"
        assert match.start == 0

    def test_cursor_on_last_character(self) -> None:
        """Test that the last character of a word still resolves it."""
        text = "We are hello\nfreddie is cool\nWasa wasa?"

        assert resolve_token(1, 6, text).token == "freddie"

    def test_cursor_one_past_the_end(self) -> None:
        """Test that the delimiter after a word does not resolve to the word."""
        text = "We are hello\nfreddie is cool\nWasa wasa?"

        match = resolve_token(1, 7, text)
        assert match == NO_TOKEN
        assert match.start == -1
        assert not match

    def test_cursor_on_punctuation_before_word(self) -> None:
        """Test tokens separated by punctuation."""
        text = "foo(bar)"

        assert resolve_token(0, 3, text) == NO_TOKEN
        assert resolve_token(0, 4, text) == TokenMatch(token="bar", start=4)
        assert resolve_token(0, 0, text) == TokenMatch(token="foo", start=0)

    def test_underscores_and_digits_are_word_characters(self) -> None:
        """Test identifier characters."""
        text = "    my_var2 := 0;"

        assert resolve_token(0, 7, text) == TokenMatch(token="my_var2", start=4)

    def test_crlf_line_endings(self) -> None:
        """Test that \\r\\n and \\n split lines the same way."""
        text = "main: () = {\r\n    total := 1;\r\n}"

        assert resolve_token(1, 6, text) == TokenMatch(token="total", start=4)
        assert resolve_token(1, 6, text.replace("\r\n", "\n")) == TokenMatch(
            token="total", start=4
        )

    def test_line_out_of_range(self) -> None:
        """Test that a line past the end returns no token."""
        assert resolve_token(10, 0, "x is the best") == NO_TOKEN

    def test_negative_position(self) -> None:
        """Test that negative positions return no token."""
        assert resolve_token(-1, 0, "x") == NO_TOKEN
        assert resolve_token(0, -1, "x") == NO_TOKEN

    def test_empty_line(self) -> None:
        """Test that an empty line returns no token."""
        assert resolve_token(1, 0, "x\n\ny") == NO_TOKEN

    def test_empty_text(self) -> None:
        """Test that empty text returns no token."""
        assert resolve_token(0, 0, "") == NO_TOKEN
