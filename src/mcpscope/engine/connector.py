"""
MCP connector.

Opens a session to the audited server (streamable HTTP first, then SSE),
lists what it exposes and times a couple of round trips.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import anyio

from mcpscope.adapters.http import HttpAdapter
from mcpscope.adapters.mcp_session import TRANSPORTS, McpClientProtocol, McpSessionClient
from mcpscope.domain.models import Latency, ServerInfo, diagnostic

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, float], McpClientProtocol]


def default_client_factory(endpoint: str, timeout: float) -> McpClientProtocol:
    return McpSessionClient(endpoint, timeout=timeout)


@dataclass
class ConnectResult:
    status: bool
    messages: list[str] = field(default_factory=list)
    client: McpClientProtocol | None = None
    server_info: ServerInfo | None = None
    transport: str | None = None


@dataclass
class DiscoveryResult:
    messages: list[str] = field(default_factory=list)
    tools: list[dict[str, Any]] = field(default_factory=list)
    resources: list[dict[str, Any]] = field(default_factory=list)
    prompts: list[dict[str, Any]] = field(default_factory=list)
    capabilities: dict[str, Any] = field(default_factory=dict)


class McpConnector:
    """
    Connection lifecycle for one audit.

    Timeouts passed to the connector are in milliseconds; the adapters
    underneath work in seconds.
    """

    def __init__(
        self,
        http: HttpAdapter,
        client_factory: ClientFactory = default_client_factory,
    ) -> None:
        self.http = http
        self.client_factory = client_factory

    async def connect(self, endpoint: str, timeout_ms: float = 10000) -> ConnectResult:
        timeout = timeout_ms / 1000

        if not await self.http.is_reachable(endpoint, timeout=timeout):
            return ConnectResult(
                status=False,
                messages=[diagnostic("CON-001", "endpoint", "Server is not reachable")],
            )

        last_error = "no transport available"
        for transport in TRANSPORTS:
            client = self.client_factory(endpoint, timeout)
            try:
                await client.connect(transport)
            except anyio.get_cancelled_exc_class():
                raise
            except Exception as e:
                last_error = str(e) or type(e).__name__
                logger.debug("Connecting to %s over %s failed: %s", endpoint, transport, last_error)
                continue

            logger.info("Connected to %s over %s", endpoint, transport)
            return ConnectResult(
                status=True,
                client=client,
                server_info=extract_server_info(client),
                transport=transport,
            )

        return ConnectResult(
            status=False,
            messages=[diagnostic("CON-004", "mcp", f"Initialize handshake failed: {last_error}")],
        )

    async def discover(self, client: McpClientProtocol) -> DiscoveryResult:
        result = DiscoveryResult()

        try:
            tools = await client.list_tools()
        except Exception as e:
            logger.debug("tools/list failed: %s", e)
            result.messages.append(diagnostic("CON-008", "tools/list", "Request failed"))
        else:
            if isinstance(tools, list):
                result.tools = tools
            else:
                result.messages.append(diagnostic("CON-009", "tools/list", "Invalid response format"))

        try:
            result.resources = list(await client.list_resources())
        except Exception as e:
            logger.debug("resources/list failed: %s", e)
            result.messages.append(diagnostic("CON-010", "resources/list", "Request failed"))

        try:
            result.prompts = list(await client.list_prompts())
        except Exception as e:
            logger.debug("prompts/list failed: %s", e)
            result.messages.append(diagnostic("CON-011", "prompts/list", "Request failed"))

        try:
            result.capabilities = client.get_server_capabilities() or {}
        except Exception as e:
            logger.debug("Reading server capabilities failed: %s", e)

        return result

    async def measure_latency(self, client: McpClientProtocol) -> Latency:
        return Latency(
            ping=await _timed(client.ping),
            list_tools=await _timed(client.list_tools),
        )

    async def disconnect(self, client: McpClientProtocol | None) -> None:
        if client is None:
            return
        try:
            await client.close()
        except Exception as e:
            logger.debug("Ignoring error while disconnecting: %s", e)


def extract_server_info(client: McpClientProtocol) -> ServerInfo:
    """Read the identity the server reported during initialize."""
    try:
        version = client.get_server_version() or {}
        return ServerInfo(
            name=version.get("name") or None,
            version=version.get("version") or None,
            description=version.get("description") or None,
            protocol_version=client.get_protocol_version() or None,
            instructions=client.get_instructions() or None,
        )
    except Exception as e:
        logger.debug("Reading server info failed: %s", e)
        return ServerInfo()


async def _timed(call: Callable[[], Any]) -> int | None:
    start = time.perf_counter()
    try:
        await call()
    except Exception as e:
        logger.debug("Latency probe %s failed: %s", getattr(call, "__name__", call), e)
        return None
    return round((time.perf_counter() - start) * 1000)
