"""
Tool probe engine.

Calls every declared tool once with minimal arguments and records which
ones answer with an x402 payment requirement.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import anyio

from mcpscope.adapters.mcp_session import McpClientProtocol
from mcpscope.domain.models import RestrictedCall, diagnostic
from mcpscope.domain.report import ProbeResult

logger = logging.getLogger(__name__)

# JSON-RPC / HTTP codes that signal "payment required"
PAYMENT_REQUIRED_CODES = frozenset({402, -32402})

_PLACEHOLDERS: dict[str, Any] = {
    "string": "test",
    "number": 0,
    "integer": 0,
    "boolean": False,
}


async def probe_tools(
    client: McpClientProtocol,
    tools: Any,
    timeout_ms: float = 10000,
) -> ProbeResult:
    """
    Probe tools for payment requirements.

    Args:
        client: A connected MCP client.
        tools: Tool definitions as returned by ``tools/list``.
        timeout_ms: Per-call timeout in milliseconds.

    Returns:
        ProbeResult with restricted calls and the raw payment options.
    """
    return await ToolProbeEngine().probe(client, tools, timeout_ms)


class ToolProbeEngine:
    """
    Probes tools one at a time.

    A tool is restricted when its call fails with a payment-required code.
    Every other outcome, including a timeout, counts as open; the engine
    itself never raises for a single misbehaving tool.
    """

    async def probe(
        self,
        client: McpClientProtocol,
        tools: Any,
        timeout_ms: float = 10000,
    ) -> ProbeResult:
        if not isinstance(tools, list) or not tools:
            return ProbeResult(
                status=False,
                messages=[diagnostic("PRB-005", "probe", "No tools available to probe")],
            )

        timeout = timeout_ms / 1000
        messages: list[str] = []
        restricted_calls: list[RestrictedCall] = []
        payment_options: list[Any] = []

        for tool in tools:
            name = tool.get("name") if isinstance(tool, Mapping) else None
            try:
                restricted, payment_required = await self._probe_tool(client, tool, timeout)
            except anyio.get_cancelled_exc_class():
                raise
            except Exception as e:
                logger.debug("Probe of tool %s failed unexpectedly: %s", name, e)
                messages.append(diagnostic("PRB-004", f"probe({name})", "Unexpected exception"))
                continue

            if not restricted:
                continue

            if payment_required is None:
                logger.debug("Tool %s is restricted but sent no decodable requirement", name)
                continue

            restricted_calls.append(RestrictedCall(tool_name=str(name), payment_required=payment_required))
            accepts = payment_required.get("accepts")
            if isinstance(accepts, list):
                payment_options.extend(accepts)

        return ProbeResult(
            status=True,
            messages=messages,
            restricted_calls=restricted_calls,
            payment_options=payment_options,
        )

    async def _probe_tool(
        self,
        client: McpClientProtocol,
        tool: Mapping[str, Any],
        timeout: float,
    ) -> tuple[bool, dict[str, Any] | None]:
        name = tool["name"]
        arguments = build_minimal_arguments(tool)

        try:
            with anyio.fail_after(timeout):
                await client.call_tool(name, arguments, timeout=timeout)
        except TimeoutError:
            logger.debug("Tool %s timed out after %.1fs", name, timeout)
            return False, None
        except Exception as e:
            return classify_error(e)

        logger.debug("Tool %s answered without payment", name)
        return False, None


def build_minimal_arguments(tool: Mapping[str, Any]) -> dict[str, Any]:
    """
    Synthesize placeholder values for a tool's required arguments.

    Unknown or undeclared types fall back to an empty string.
    """
    schema = tool.get("inputSchema")
    if not isinstance(schema, Mapping):
        return {}

    properties = schema.get("properties") or {}
    required = schema.get("required") or []

    arguments: dict[str, Any] = {}
    for key in required:
        prop = properties.get(key) if isinstance(properties, Mapping) else None
        kind = prop.get("type") if isinstance(prop, Mapping) else None
        if kind == "array":
            arguments[key] = []
        elif kind == "object":
            arguments[key] = {}
        else:
            arguments[key] = _PLACEHOLDERS.get(kind, "") if isinstance(kind, str) else ""
    return arguments


def classify_error(error: BaseException) -> tuple[bool, dict[str, Any] | None]:
    """
    Decide whether a tool-call failure is a payment requirement.

    Returns:
        (restricted, payment_required). The requirement is only returned
        when the error data is a plain mapping.
    """
    code = _error_code(error)
    if code not in PAYMENT_REQUIRED_CODES:
        return False, None

    data = getattr(error, "data", None)
    if data is None:
        wrapped = getattr(error, "error", None)
        data = getattr(wrapped, "data", None)

    if isinstance(data, Mapping):
        return True, dict(data)
    return True, None


def _error_code(error: BaseException) -> Any:
    for attribute in ("code", "status_code", "statusCode"):
        value = getattr(error, attribute, None)
        if value is not None:
            return value

    wrapped = getattr(error, "error", None)
    return getattr(wrapped, "code", None)
