"""
Server settings for cpp2ls.

Settings start from the defaults below, are overridden by command-line
flags and then by whatever the client sends in ``initializationOptions``
or the ``cppfront`` section of ``workspace/didChangeConfiguration``.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Client setting name -> (field name, accepted types)
_CLIENT_KEYS: dict[str, tuple[str, tuple[type, ...]]] = {
    "cppfrontPath": ("cppfront_path", (str,)),
    "cppfrontIncludePath": ("cppfront_include_path", (str, type(None))),
    "cppCompilerPath": ("cpp_compiler_path", (str,)),
    "maxNumberOfProblems": ("max_number_of_problems", (int,)),
    "toolTimeout": ("tool_timeout", (int, float)),
}


@dataclass(frozen=True)
class ServerSettings:
    """
    Settings controlling the external tools.

    Attributes:
        cppfront_path: The cppfront binary
        cppfront_include_path: Include directory for compiling generated C++,
            discovered from the cppfront binary when unset
        cpp_compiler_path: C++ compiler used for extra diagnostics; empty disables it
        max_number_of_problems: Cap on diagnostics published per document
        tool_timeout: Seconds allowed for each tool invocation
    """

    cppfront_path: str = "cppfront"
    cppfront_include_path: Optional[str] = None
    cpp_compiler_path: str = ""
    max_number_of_problems: int = 1000
    tool_timeout: float = 30.0

    @property
    def compiler_enabled(self) -> bool:
        return bool(self.cpp_compiler_path.strip())

    def with_client_settings(self, options: Any) -> "ServerSettings":
        """
        Apply settings sent by the client.

        Accepts either the settings object itself or one wrapping it under
        a ``cppfront`` key. Unknown keys are ignored; values of the wrong
        type are ignored with a warning.

        Args:
            options: Client supplied settings

        Returns:
            The updated settings
        """
        if not isinstance(options, dict):
            return self

        section = options.get("cppfront", options)
        if not isinstance(section, dict):
            return self

        changes: dict[str, Any] = {}
        for key, value in section.items():
            if key not in _CLIENT_KEYS:
                continue
            name, accepted = _CLIENT_KEYS[key]
            if isinstance(value, bool) or not isinstance(value, accepted):
                logger.warning("Ignoring setting %s=%r: unexpected type", key, value)
                continue
            changes[name] = value

        if "cppfront_include_path" in changes and not changes["cppfront_include_path"]:
            changes["cppfront_include_path"] = None

        return dataclasses.replace(self, **changes)
