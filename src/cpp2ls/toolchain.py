"""
External tool invocation for cpp2ls.

cppfront translates the cpp2 source and writes its diagnostics report
next to the source file. The generated C++ is then optionally compiled
with clang, gcc or MSVC to collect a SARIF log of further errors. Both
artifacts are read back by the language server and removed when the
document is closed.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from cpp2ls.config import ServerSettings
from cpp2ls.utils.errors import ToolchainError

logger = logging.getLogger(__name__)

GENERATED_SOURCE_NAME = "generated.cpp"


def diagnostics_file(source_file: str) -> str:
    """Path of the cppfront diagnostics report for a source file."""
    return f"{source_file}-diagnostics.json"


def sarif_file(source_file: str) -> str:
    """Path of the C++ compiler's SARIF log for a source file."""
    return f"{diagnostics_file(source_file)}.sarif"


def compiler_flavor(compiler_path: str) -> Optional[str]:
    """
    Work out which compiler family a binary belongs to.

    Returns:
        "clang", "gcc", "msvc", or None if unrecognised
    """
    name = os.path.basename(compiler_path).lower()
    if "clang" in name:
        return "clang"
    if "gcc" in name or "g++" in name:
        return "gcc"
    if "cl" in name:
        return "msvc"
    return None


def compiler_args(
    sarif: str, compiler_path: str, include_path: str, source: str
) -> list[str]:
    """
    Build the argument list for compiling generated C++ with SARIF output.

    clang writes SARIF to stdout; gcc and MSVC write it to ``sarif``.

    Args:
        sarif: Path the SARIF log should be written to
        compiler_path: The compiler binary
        include_path: cppfront's include directory
        source: The C++ file to compile

    Returns:
        The compiler arguments, empty for unrecognised compilers
    """
    flavor = compiler_flavor(compiler_path)

    if flavor == "clang":
        return ["-std=c++20", f"-I{include_path}", "-fdiagnostics-format=sarif", source]
    if flavor == "gcc":
        return [
            "-std=c++20",
            f"-I{include_path}",
            "-fdiagnostics-format=sarif-file",
            sarif,
            source,
        ]
    if flavor == "msvc":
        return ["-EHsc", "-std:c++20", f"-I{include_path}", "-experimental:log", sarif, source]

    return []


def find_cppfront_include(cppfront_path: str) -> str:
    """
    Locate cppfront's include directory from its binary.

    The binary is expected in ``<root>/<bin dir>/cppfront`` with headers
    in ``<root>/include``.

    Raises:
        ToolchainError: If the binary cannot be found on PATH
    """
    binary = shutil.which(cppfront_path)
    if binary is None:
        raise ToolchainError("cppfront binary not found", cppfront_path)
    return str(Path(binary).parent.parent / "include")


def _run(
    args: list[str], timeout: float, input: Optional[str] = None, cwd: Optional[str] = None
) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            args,
            input=input,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolchainError(f"timed out after {timeout}s", args[0]) from e
    except OSError as e:
        raise ToolchainError(f"could not start: {e}", args[0]) from e


def run_cppfront(settings: ServerSettings, source_file: str, source: str) -> str:
    """
    Translate cpp2 source with cppfront.

    The diagnostics report is written next to ``source_file``. A non-zero
    exit status only means the source has errors.

    Returns:
        The generated C++
    """
    args = [settings.cppfront_path, "-di", diagnostics_file(source_file), "stdin", "-o", "stdout"]
    completed = _run(args, settings.tool_timeout, input=source)
    if completed.returncode != 0:
        logger.debug("cppfront exited with %d: %s", completed.returncode, completed.stderr.strip())
    return completed.stdout


def run_cpp_compiler(settings: ServerSettings, source_file: str, cpp: str) -> None:
    """
    Compile generated C++ and write its SARIF log.

    The C++ is compiled from a temporary directory, which also serves as
    the compiler's working directory so its by-products are removed with it.

    Raises:
        ToolchainError: If the compiler or cppfront include directory is unavailable
    """
    compiler = settings.cpp_compiler_path
    include_path = settings.cppfront_include_path or find_cppfront_include(settings.cppfront_path)
    sarif = sarif_file(source_file)

    with tempfile.TemporaryDirectory(prefix="cpp2ls-") as workdir:
        temp_source = os.path.join(workdir, GENERATED_SOURCE_NAME)
        Path(temp_source).write_text(cpp, encoding="utf-8")

        args = compiler_args(sarif, compiler, include_path, temp_source)
        if not args:
            logger.warning("Unrecognised C++ compiler %s; skipping C++ diagnostics", compiler)
            return

        completed = _run([compiler, *args], settings.tool_timeout, cwd=workdir)

    if compiler_flavor(compiler) == "clang":
        Path(sarif).write_text(completed.stdout, encoding="utf-8")


def run_analysis(settings: ServerSettings, source_file: str, source: str) -> None:
    """
    Run cppfront and, if configured, the C++ compiler on a document.

    Output from a previous run is removed first so a tool that fails
    leaves no report behind to be mistaken for a new one.

    Raises:
        ToolchainError: If a tool cannot be run
    """
    _unlink(diagnostics_file(source_file))
    _unlink(sarif_file(source_file))

    cpp = run_cppfront(settings, source_file, source)
    if not cpp or not settings.compiler_enabled:
        return

    run_cpp_compiler(settings, source_file, cpp)


def _read(path: str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def read_artifacts(source_file: str) -> tuple[Optional[str], Optional[str]]:
    """
    Read the tool output for a source file.

    Returns:
        The cppfront report and SARIF log text, each None if missing
    """
    return _read(diagnostics_file(source_file)), _read(sarif_file(source_file))


def _unlink(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)


def clean_artifacts(source_file: str) -> None:
    """Delete the tool output for a source file."""
    _unlink(diagnostics_file(source_file))
    _unlink(sarif_file(source_file))
