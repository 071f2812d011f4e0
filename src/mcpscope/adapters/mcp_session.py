"""
MCP session adapter for mcpscope.

Wraps the official `mcp` SDK client session behind a small protocol so the
probing engines never touch transports or SDK types directly.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any, Protocol

import anyio
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import Implementation, InitializeResult

from mcpscope.domain.exceptions import ToolCallError

logger = logging.getLogger(__name__)

CLIENT_NAME = "mcpscope"

STREAMABLE_HTTP = "streamable-http"
SSE = "sse"
TRANSPORTS = (STREAMABLE_HTTP, SSE)


class McpClientProtocol(Protocol):
    """Protocol for MCP client objects used by the engines. Timeouts are in seconds."""

    async def connect(self, transport: str = STREAMABLE_HTTP) -> None:
        """Open the transport and run the initialize handshake."""
        ...

    async def list_tools(self) -> list[dict[str, Any]]:
        ...

    async def list_resources(self) -> list[dict[str, Any]]:
        ...

    async def list_prompts(self) -> list[dict[str, Any]]:
        ...

    async def ping(self) -> None:
        ...

    async def call_tool(
        self, name: str, arguments: dict[str, Any], timeout: float | None = None
    ) -> Any:
        """Call a tool on the MCP server."""
        ...

    def get_server_capabilities(self) -> dict[str, Any]:
        ...

    def get_instructions(self) -> str | None:
        ...

    def get_server_version(self) -> dict[str, Any]:
        ...

    def get_protocol_version(self) -> str | None:
        ...

    async def close(self) -> None:
        ...


class McpSessionClient:
    """
    MCP client backed by ``mcp.ClientSession``.

    The transport and session contexts are held open on an exit stack
    between ``connect`` and ``close``, so both must run in the same task.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoint: MCP server URL.
            timeout: Handshake and request timeout in seconds.
            headers: Extra HTTP headers sent on every request.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.headers = headers or {}
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._init: InitializeResult | None = None

    async def connect(self, transport: str = STREAMABLE_HTTP) -> None:
        from mcpscope import __version__

        stack = AsyncExitStack()
        try:
            if transport == STREAMABLE_HTTP:
                read, write, _ = await stack.enter_async_context(
                    streamablehttp_client(self.endpoint, headers=self.headers, timeout=self.timeout)
                )
            elif transport == SSE:
                read, write = await stack.enter_async_context(
                    sse_client(self.endpoint, headers=self.headers, timeout=self.timeout)
                )
            else:
                raise ValueError(f"Unknown transport: {transport}")

            session = await stack.enter_async_context(
                ClientSession(
                    read,
                    write,
                    read_timeout_seconds=timedelta(seconds=self.timeout),
                    client_info=Implementation(name=CLIENT_NAME, version=__version__),
                )
            )
            with anyio.fail_after(self.timeout):
                self._init = await session.initialize()
        except BaseException:
            await self._close_stack(stack)
            raise

        self._stack = stack
        self._session = session
        logger.debug("Connected to %s over %s", self.endpoint, transport)

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("MCP session is not connected")
        return self._session

    async def list_tools(self) -> list[dict[str, Any]]:
        result = await self._require_session().list_tools()
        return [tool.model_dump(mode="json", by_alias=True, exclude_none=True) for tool in result.tools]

    async def list_resources(self) -> list[dict[str, Any]]:
        result = await self._require_session().list_resources()
        return [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in result.resources]

    async def list_prompts(self) -> list[dict[str, Any]]:
        result = await self._require_session().list_prompts()
        return [p.model_dump(mode="json", by_alias=True, exclude_none=True) for p in result.prompts]

    async def ping(self) -> None:
        await self._require_session().send_ping()

    async def call_tool(
        self, name: str, arguments: dict[str, Any], timeout: float | None = None
    ) -> Any:
        """
        Call a tool.

        Raises:
            ToolCallError: If the server answers with a JSON-RPC error.
        """
        read_timeout = timedelta(seconds=timeout) if timeout is not None else None
        try:
            return await self._require_session().call_tool(
                name, arguments, read_timeout_seconds=read_timeout
            )
        except McpError as e:
            raise ToolCallError(
                e.error.message,
                code=e.error.code,
                data=e.error.data,
                tool_name=name,
            ) from e

    def get_server_capabilities(self) -> dict[str, Any]:
        if self._init is None:
            return {}
        return self._init.capabilities.model_dump(by_alias=True, exclude_none=True)

    def get_instructions(self) -> str | None:
        return self._init.instructions if self._init else None

    def get_server_version(self) -> dict[str, Any]:
        if self._init is None:
            return {}
        return self._init.serverInfo.model_dump(exclude_none=True)

    def get_protocol_version(self) -> str | None:
        return str(self._init.protocolVersion) if self._init else None

    async def close(self) -> None:
        if self._stack is None:
            return
        stack, self._stack = self._stack, None
        self._session = None
        await stack.aclose()

    async def _close_stack(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as e:
            logger.debug("Error while tearing down failed %s connection: %s", self.endpoint, e)
