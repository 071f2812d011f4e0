"""
Adapters layer for mcpscope.

Contains all infrastructure implementations: HTTP and the MCP session.
"""

from mcpscope.adapters.http import HttpAdapter
from mcpscope.adapters.mcp_session import McpClientProtocol, McpSessionClient

__all__ = [
    "HttpAdapter",
    "McpClientProtocol",
    "McpSessionClient",
]
