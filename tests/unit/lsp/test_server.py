"""Tests for the cpp2ls language server wiring."""

import asyncio
from pathlib import Path

import pytest
from lsprotocol import types
from pygls.workspace import Workspace

from cpp2ls.config import ServerSettings
from cpp2ls.lsp import server as server_module
from cpp2ls.lsp.server import Cpp2LanguageServer, build_parser, create_server, settings_from_args
from cpp2ls.toolchain import diagnostics_file

URI = "file:///work/demo.cpp2"

# "x" is code point 6 but UTF-16 column 7
EMOJI_TEXT = "/*\U0001F600*/ x y"


@pytest.fixture
def server() -> Cpp2LanguageServer:
    """A server with the in-memory UTF-16 workspace initialize would create."""
    server = create_server()
    server.protocol._workspace = Workspace(None)
    return server


def open_document(
    server: Cpp2LanguageServer, uri: str, text: str, source_file: str = "/work/demo.cpp2"
) -> None:
    """Track a document as open without going through the client."""
    server.workspace.put_text_document(
        types.TextDocumentItem(uri=uri, language_id="cpp2", version=1, text=text)
    )
    server._open_documents[uri] = source_file


class TestCommandLine:
    """Test suite for command-line handling."""

    def test_defaults(self) -> None:
        """Test that no flags gives the default settings."""
        args = build_parser().parse_args([])

        assert args.tcp is False
        assert args.port == 2087
        assert settings_from_args(args) == ServerSettings()

    def test_tool_flags(self) -> None:
        """Test the toolchain flags."""
        args = build_parser().parse_args(
            [
                "--cppfront-path",
                "/opt/cppfront/bin/cppfront",
                "--cppfront-include-path",
                "/opt/cppfront/include",
                "--cpp-compiler",
                "clang++",
                "--max-problems",
                "50",
                "--log-level",
                "debug",
            ]
        )

        settings = settings_from_args(args)
        assert settings.cppfront_path == "/opt/cppfront/bin/cppfront"
        assert settings.cppfront_include_path == "/opt/cppfront/include"
        assert settings.cpp_compiler_path == "clang++"
        assert settings.max_number_of_problems == 50
        assert settings.compiler_enabled

    def test_invalid_log_level(self) -> None:
        """Test that unknown log levels are rejected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "loud"])


class TestServer:
    """Test suite for the language server."""

    def test_create_server(self) -> None:
        """Test that the server carries its settings and an empty index."""
        settings = ServerSettings(cpp_compiler_path="g++")
        server = create_server(settings)

        assert isinstance(server, Cpp2LanguageServer)
        assert server.settings is settings
        assert "file:///a.cpp2" not in server.index

    def test_completion_reads_index(self, server: Cpp2LanguageServer, report_factory) -> None:
        """Test that completion answers from the stored analysis."""
        uri = URI
        open_document(server, uri, "answer := 42;")
        report = report_factory(
            symbols=[{"symbol": "answer", "kind": "var", "scope": "", "lineno": 1, "colno": 1}]
        )
        server.index.update(uri, "answer := 42;", "/work/demo.cpp2", report)

        result = server._on_completion(
            types.CompletionParams(
                text_document=types.TextDocumentIdentifier(uri=uri),
                position=types.Position(line=0, character=0),
            )
        )

        assert result.is_incomplete is False
        assert [i.label for i in result.items] == ["answer"]

    def test_completion_for_unknown_document(self) -> None:
        """Test completion before any analysis has finished."""
        server = create_server()

        result = server._on_completion(
            types.CompletionParams(
                text_document=types.TextDocumentIdentifier(uri="file:///new.cpp2"),
                position=types.Position(line=0, character=0),
            )
        )

        assert result.items == []

    def test_clean_up_removes_artifacts(self, tmp_path, report_factory) -> None:
        """Test that shutting down deletes tool output and analyses."""
        source_file = str(tmp_path / "demo.cpp2")
        report = tmp_path / "demo.cpp2-diagnostics.json"
        report.write_text(report_factory())
        uri = "file:///demo.cpp2"

        server = create_server()
        server._open_documents[uri] = source_file
        server.index.update(uri, "", source_file, report.read_text())

        server.clean_up()

        assert not report.exists()
        assert uri not in server.index

    def test_definition_in_client_units(self, server: Cpp2LanguageServer, report_factory) -> None:
        """Test that definition positions are UTF-16 columns in both directions."""
        open_document(server, URI, EMOJI_TEXT)
        report = report_factory(
            symbols=[{"symbol": "x", "kind": "var", "scope": "", "lineno": 1, "colno": 7}]
        )
        server.index.update(URI, EMOJI_TEXT, "/work/demo.cpp2", report)

        location = server._on_definition(
            types.DefinitionParams(
                text_document=types.TextDocumentIdentifier(uri=URI),
                position=types.Position(line=0, character=7),
            )
        )

        assert location is not None
        assert (location.range.start.line, location.range.start.character) == (0, 7)
        assert (location.range.end.line, location.range.end.character) == (0, 8)


class TestAnalyzeDocument:
    """Test suite for analysis runs."""

    def test_diagnostics_published_in_client_units(
        self, server: Cpp2LanguageServer, tmp_path, monkeypatch, report_factory
    ) -> None:
        """Test that published diagnostics use UTF-16 columns."""
        source_file = str(tmp_path / "demo.cpp2")
        open_document(server, URI, EMOJI_TEXT, source_file)
        report = report_factory(
            errors=[{"file": "demo.cpp2", "msg": "bad", "symbol": "x", "lineno": 1, "colno": 7}]
        )

        def fake_analysis(settings, path, text):
            Path(diagnostics_file(path)).write_text(report)

        published = []
        monkeypatch.setattr(server_module, "run_analysis", fake_analysis)
        monkeypatch.setattr(
            server, "_publish_diagnostics", lambda uri, diagnostics: published.append(diagnostics)
        )

        asyncio.run(server.analyze_document(URI, EMOJI_TEXT))

        [diagnostics] = published
        assert [d.message for d in diagnostics] == ["bad"]
        assert diagnostics[0].range.start.character == 7
        assert diagnostics[0].range.end.character == 8

    def test_closed_document_not_analyzed(
        self, server: Cpp2LanguageServer, monkeypatch
    ) -> None:
        """Test that a run waiting on a closed document does nothing."""
        calls = []
        monkeypatch.setattr(server_module, "run_analysis", lambda *args: calls.append(args))

        asyncio.run(server.analyze_document("file:///closed.cpp2", "x := 1;"))

        assert calls == []
        assert "file:///closed.cpp2" not in server.index

    def test_close_keeps_lock_of_running_analysis(
        self, server: Cpp2LanguageServer, monkeypatch
    ) -> None:
        """Test that closing a document mid-run does not hand out a second lock."""
        published = []
        monkeypatch.setattr(
            server, "_publish_diagnostics", lambda uri, diagnostics: published.append(uri)
        )
        params = types.DidCloseTextDocumentParams(
            text_document=types.TextDocumentIdentifier(uri=URI)
        )

        async def close_during_run() -> None:
            lock = server._locks.setdefault(URI, asyncio.Lock())
            async with lock:
                server._on_did_close(params)
                assert server._locks[URI] is lock

            server._on_did_close(params)
            assert URI not in server._locks

        asyncio.run(close_during_run())

        assert published == [URI, URI]
