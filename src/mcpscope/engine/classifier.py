"""
Capability classifier.

Turns discovery lists and the raw capability map into boolean categories.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mcpscope.domain.models import ServerInfo


def classify_capabilities(
    tools: Any,
    resources: Any,
    prompts: Any,
    capabilities: Any,
    server_info: ServerInfo | None = None,
) -> dict[str, bool]:
    """
    Derive the capability categories of a server.

    Returns a mapping keyed by DerivedCategories field names.
    """
    caps = capabilities if isinstance(capabilities, Mapping) else {}

    return {
        "has_tools": _non_empty(tools),
        "has_resources": _non_empty(resources),
        "has_prompts": _non_empty(prompts),
        "has_instructions": bool(server_info and server_info.instructions),
        "supports_logging": _present(caps, "logging"),
        "supports_completions": _present(caps, "completions"),
        "supports_tasks": _present(caps, "tasks"),
        "supports_mcp_apps": _present(caps, "mcpApps"),
        "supports_resource_subscriptions": _flag(caps, "resources", "subscribe"),
        "supports_tools_list_changed": _flag(caps, "tools", "listChanged"),
        "supports_resources_list_changed": _flag(caps, "resources", "listChanged"),
        "supports_prompts_list_changed": _flag(caps, "prompts", "listChanged"),
    }


def _non_empty(items: Any) -> bool:
    return isinstance(items, list) and len(items) > 0


def _present(capabilities: Mapping[str, Any], key: str) -> bool:
    return capabilities.get(key) is not None


def _flag(capabilities: Mapping[str, Any], section: str, key: str) -> bool:
    block = capabilities.get(section)
    return isinstance(block, Mapping) and block.get(key) is True
