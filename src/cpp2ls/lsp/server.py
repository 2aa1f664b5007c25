"""
cpp2ls Language Server Protocol (LSP) Server.

This module implements an LSP server for cppfront (cpp2) sources using
pygls. Each time a document is opened, changed or saved it is run through
cppfront, and optionally through a C++ compiler, and the results are
indexed to provide:

- Diagnostics from cppfront and the C++ compiler
- Completion of symbols visible at the cursor
- Go-to-definition

Usage:
    # Start the server in stdio mode (for IDE integration)
    cpp2ls

    # Start in TCP mode (for debugging)
    cpp2ls --tcp --port 2087
"""

import argparse
import asyncio
import logging

from lsprotocol import types
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path, uri_scheme

from cpp2ls import __version__
from cpp2ls.config import ServerSettings
from cpp2ls.lsp.analyzer import SemanticIndex
from cpp2ls.toolchain import clean_artifacts, read_artifacts, run_analysis
from cpp2ls.utils.errors import ToolchainError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("cpp2ls")


class Cpp2LanguageServer(LanguageServer):
    """
    Language Server Protocol implementation for cpp2.

    Analysis runs happen off the event loop; queries read whatever
    analysis was stored last and never wait for a run in progress.
    """

    def __init__(self, settings: ServerSettings | None = None) -> None:
        """Initialize the cpp2 language server."""
        super().__init__(
            name="cpp2ls",
            version=f"v{__version__}",
        )

        self.settings = settings or ServerSettings()
        self.index = SemanticIndex()

        # Documents currently open in the client (uri -> source file)
        self._open_documents: dict[str, str] = {}

        # One analysis run at a time per document
        self._locks: dict[str, asyncio.Lock] = {}

        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register all LSP request and notification handlers."""
        # Document synchronization
        self.feature(types.TEXT_DOCUMENT_DID_OPEN)(self._on_did_open)
        self.feature(types.TEXT_DOCUMENT_DID_CHANGE)(self._on_did_change)
        self.feature(types.TEXT_DOCUMENT_DID_SAVE)(self._on_did_save)
        self.feature(types.TEXT_DOCUMENT_DID_CLOSE)(self._on_did_close)

        # Configuration
        self.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)(self._on_did_change_configuration)

        # Completion
        self.feature(
            types.TEXT_DOCUMENT_COMPLETION,
            types.CompletionOptions(resolve_provider=False),
        )(self._on_completion)

        # Go to definition
        self.feature(types.TEXT_DOCUMENT_DEFINITION)(self._on_definition)

    def _publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None:
        """Publish diagnostics to the client."""
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def _document_text(self, uri: str) -> str | None:
        if uri not in self._open_documents:
            return None
        return self.workspace.get_text_document(uri).source

    async def analyze_document(self, uri: str, text: str) -> None:
        """
        Run the toolchain on a document, index the output and publish diagnostics.

        Tool failures are logged; whatever output exists is still indexed.
        """
        lock = self._locks.setdefault(uri, asyncio.Lock())
        async with lock:
            source_file = self._open_documents.get(uri)
            if source_file is None:
                return

            settings = self.settings
            try:
                await asyncio.to_thread(run_analysis, settings, source_file, text)
            except ToolchainError as e:
                logger.warning(f"Analysis of {uri} incomplete: {e}")

            if uri not in self._open_documents:
                # Closed while the tools were running
                clean_artifacts(source_file)
                return

            report_text, sarif_text = read_artifacts(source_file)
            self.index.update(uri, text, source_file, report_text, sarif_text)

        self._publish_diagnostics(
            uri, self.index.get_diagnostics(uri, settings.max_number_of_problems, text)
        )

    def clean_up(self) -> None:
        """Delete tool output for every open document and drop all analyses."""
        for source_file in self._open_documents.values():
            clean_artifacts(source_file)
        self._open_documents.clear()
        self.index.clear()

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    async def _on_did_open(self, params: types.DidOpenTextDocumentParams) -> None:
        """Handle document open notification."""
        document = params.text_document
        logger.info(f"Document opened: {document.uri}")

        source_file = to_fs_path(document.uri) if uri_scheme(document.uri) == "file" else None
        if source_file is None:
            logger.info(f"Not a local file, skipping analysis: {document.uri}")
            return

        self._open_documents[document.uri] = source_file
        await self.analyze_document(document.uri, document.text)

    async def _on_did_change(self, params: types.DidChangeTextDocumentParams) -> None:
        """Handle document change notification."""
        uri = params.text_document.uri

        text = self._document_text(uri)
        if text is None:
            return

        logger.debug(f"Document changed: {uri}")
        await self.analyze_document(uri, text)

    async def _on_did_save(self, params: types.DidSaveTextDocumentParams) -> None:
        """Handle document save notification."""
        uri = params.text_document.uri
        logger.info(f"Document saved: {uri}")

        text = self._document_text(uri)
        if text is not None:
            await self.analyze_document(uri, text)

    def _on_did_close(self, params: types.DidCloseTextDocumentParams) -> None:
        """Handle document close notification."""
        uri = params.text_document.uri
        logger.info(f"Document closed: {uri}")

        source_file = self._open_documents.pop(uri, None)
        if source_file is not None:
            clean_artifacts(source_file)

        self.index.evict(uri)

        # A run still holding the lock keeps it until it finishes
        lock = self._locks.get(uri)
        if lock is not None and not lock.locked():
            del self._locks[uri]

        # Clear diagnostics
        self._publish_diagnostics(uri, [])

    async def _on_did_change_configuration(
        self, params: types.DidChangeConfigurationParams
    ) -> None:
        """Handle configuration changes by re-analyzing open documents."""
        self.settings = self.settings.with_client_settings(params.settings)
        logger.info(f"Settings changed: {self.settings}")

        for uri in list(self._open_documents):
            text = self._document_text(uri)
            if text is not None:
                await self.analyze_document(uri, text)

    # =========================================================================
    # Completion
    # =========================================================================

    def _on_completion(self, params: types.CompletionParams) -> types.CompletionList:
        """Handle completion request."""
        uri = params.text_document.uri
        position = params.position
        items = self.index.get_completions(
            uri, position.line, position.character, self._document_text(uri)
        )

        return types.CompletionList(
            is_incomplete=False,
            items=items,
        )

    # =========================================================================
    # Go to Definition
    # =========================================================================

    def _on_definition(self, params: types.DefinitionParams) -> types.Location | None:
        """Handle go-to-definition request."""
        uri = params.text_document.uri
        position = params.position

        text = self._document_text(uri)
        if text is None:
            return None

        return self.index.get_definition(uri, position.line, position.character, text)


# =============================================================================
# Server Creation and Main Entry Point
# =============================================================================


def create_server(settings: ServerSettings | None = None) -> Cpp2LanguageServer:
    """Create and configure a cpp2 language server instance."""
    server = Cpp2LanguageServer(settings)

    @server.feature(types.INITIALIZE)
    def on_initialize(params: types.InitializeParams) -> None:
        """Apply settings sent with the initialize request."""
        logger.info("Initializing cpp2 Language Server")
        server.settings = server.settings.with_client_settings(params.initialization_options)
        server.index.position_codec = server.workspace.position_codec

    @server.feature(types.INITIALIZED)
    def on_initialized(
        params: types.InitializedParams,  # noqa: ARG001
    ) -> None:
        """Handle initialized notification."""
        logger.info(f"cpp2 Language Server initialized with {server.settings}")

    @server.feature(types.SHUTDOWN)
    def on_shutdown(
        params: None,  # noqa: ARG001
    ) -> None:
        """Handle shutdown request."""
        logger.info("Shutting down cpp2 Language Server")
        server.clean_up()

    return server


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="cppfront (cpp2) Language Server",
        prog="cpp2ls",
    )
    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Start server in TCP mode instead of stdio",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to in TCP mode (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=2087,
        help="Port to listen on in TCP mode (default: 2087)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "--cppfront-path",
        default=ServerSettings.cppfront_path,
        help="cppfront binary (default: cppfront)",
    )
    parser.add_argument(
        "--cppfront-include-path",
        default=None,
        help="cppfront include directory (default: next to the cppfront binary)",
    )
    parser.add_argument(
        "--cpp-compiler",
        default=ServerSettings.cpp_compiler_path,
        help="C++ compiler used for extra diagnostics (clang, gcc or cl; default: none)",
    )
    parser.add_argument(
        "--max-problems",
        type=int,
        default=ServerSettings.max_number_of_problems,
        help="Maximum diagnostics per document (default: 1000)",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ServerSettings:
    """Build server settings from parsed command-line arguments."""
    return ServerSettings(
        cppfront_path=args.cppfront_path,
        cppfront_include_path=args.cppfront_include_path or None,
        cpp_compiler_path=args.cpp_compiler,
        max_number_of_problems=args.max_problems,
    )


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the cpp2 language server.

    Starts the server in stdio mode for IDE integration.
    """
    args = build_parser().parse_args(argv)

    # Configure logging level
    log_level = getattr(logging, args.log_level.upper())
    logging.getLogger("cpp2ls").setLevel(log_level)

    server = create_server(settings_from_args(args))

    if args.tcp:
        logger.info(f"Starting cpp2 LSP in TCP mode on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting cpp2 LSP in stdio mode")
        server.start_io()


if __name__ == "__main__":
    main()
