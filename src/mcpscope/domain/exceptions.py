"""
Exception hierarchy for mcpscope.

All exceptions inherit from McpScopeError for easy catching. Only input
validation is fatal; everything that happens against the remote server is
reported as diagnostics instead of being raised.
"""

from __future__ import annotations

from typing import Any


class McpScopeError(Exception):
    """Base exception for all mcpscope errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InputValidationError(McpScopeError):
    """Raised when `start` or `compare` receive malformed input (VAL-* codes)."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__(", ".join(messages), {"messages": list(messages)})
        self.messages = list(messages)


class ConfigError(McpScopeError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, config_key: str | None = None) -> None:
        super().__init__(message, {"config_key": config_key})
        self.config_key = config_key


class SnapshotLoadError(McpScopeError):
    """Raised when a snapshot file cannot be read or parsed."""

    def __init__(self, message: str, source: str | None = None, line: int | None = None) -> None:
        super().__init__(message, {"source": source, "line": line})
        self.source = source
        self.line = line


class ToolCallError(McpScopeError):
    """
    Raised by the MCP session adapter when a tool call fails with a
    JSON-RPC error.

    `code` and `data` mirror the JSON-RPC error object so the probe engine
    can recognise payment-required (402 / -32402) responses.
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        data: Any = None,
        tool_name: str | None = None,
    ) -> None:
        super().__init__(message, {"code": code, "tool_name": tool_name})
        self.code = code
        self.data = data
        self.tool_name = tool_name
