"""
Renderers for mcpscope.

Output formatters for audit and comparison reports: terminal and JSON.
"""

from mcpscope.renderers.terminal import TerminalRenderer
from mcpscope.renderers.json_renderer import JsonRenderer

__all__ = [
    "TerminalRenderer",
    "JsonRenderer",
]
