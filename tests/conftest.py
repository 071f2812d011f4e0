"""
Pytest configuration and shared fixtures for mcpscope tests.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from mcpscope.adapters.http import HttpAdapter
from mcpscope.domain.exceptions import ToolCallError
from mcpscope.domain.models import AuditSnapshot

VALID_PAY_TO = "0x7B4d4C1E3bD0C6e3c8e1E5dA1f3a0E7c9B2D4F6A"
VALID_ASSET = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
ENDPOINT = "https://mcp.example.com/mcp"


# --- Markers ---

def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# --- Fixtures: Payment data ---

@pytest.fixture
def valid_option() -> dict[str, Any]:
    """A payment option that passes every rule."""
    return {
        "scheme": "exact",
        "network": "eip155:84532",
        "amount": "100000",
        "asset": VALID_ASSET,
        "payTo": VALID_PAY_TO,
        "maxTimeoutSeconds": 300,
        "extra": {"name": "USDC", "version": "2"},
    }


@pytest.fixture
def valid_payment_required(valid_option: dict[str, Any]) -> dict[str, Any]:
    """A complete x402 v2 payment requirement."""
    return {
        "x402Version": 2,
        "resource": {"url": "https://mcp.example.com/tools/premium"},
        "accepts": [valid_option],
    }


# --- Fixtures: Tools ---

@pytest.fixture
def sample_tools() -> list[dict[str, Any]]:
    """One free tool and one paid tool."""
    return [
        {
            "name": "get_weather",
            "description": "Get current weather for a city.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "city": {"type": "string", "description": "City name"},
                    "days": {"type": "integer", "minimum": 1, "maximum": 7},
                },
                "required": ["city"],
            },
        },
        {
            "name": "premium_forecast",
            "description": "Ten day forecast.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "city": {"type": "string"},
                    "detailed": {"type": "boolean"},
                },
                "required": ["city", "detailed"],
            },
        },
    ]


# --- Fake MCP client ---

class FakeMcpClient:
    """
    In-memory stand-in for McpSessionClient.

    ``tool_errors`` maps a tool name to the exception its call raises;
    tools not listed answer successfully.
    """

    def __init__(
        self,
        tools: Any = None,
        tool_errors: dict[str, BaseException] | None = None,
        capabilities: dict[str, Any] | None = None,
        server_version: dict[str, Any] | None = None,
        instructions: str | None = None,
        protocol_version: str | None = "2025-06-18",
        failing_transports: tuple[str, ...] = (),
        failing_lists: tuple[str, ...] = (),
    ) -> None:
        self.tools = tools if tools is not None else []
        self.tool_errors = tool_errors or {}
        self.capabilities = capabilities if capabilities is not None else {"tools": {"listChanged": True}}
        self.server_version = server_version if server_version is not None else {"name": "demo", "version": "1.0.0"}
        self.instructions = instructions
        self.protocol_version = protocol_version
        self.failing_transports = failing_transports
        self.failing_lists = failing_lists
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.connected_transport: str | None = None
        self.closed = False

    async def connect(self, transport: str = "streamable-http") -> None:
        if transport in self.failing_transports:
            raise ConnectionError(f"{transport} refused")
        self.connected_transport = transport

    async def list_tools(self) -> Any:
        if "tools" in self.failing_lists:
            raise RuntimeError("tools/list failed")
        return copy.deepcopy(self.tools)

    async def list_resources(self) -> list[dict[str, Any]]:
        if "resources" in self.failing_lists:
            raise RuntimeError("resources/list failed")
        return [{"uri": "file:///readme.md", "name": "readme"}]

    async def list_prompts(self) -> list[dict[str, Any]]:
        if "prompts" in self.failing_lists:
            raise RuntimeError("prompts/list failed")
        return []

    async def ping(self) -> None:
        return None

    async def call_tool(self, name: str, arguments: dict[str, Any], timeout: float | None = None) -> Any:
        self.calls.append((name, arguments))
        if name in self.tool_errors:
            raise self.tool_errors[name]
        return {"content": [{"type": "text", "text": "ok"}], "isError": False}

    def get_server_capabilities(self) -> dict[str, Any]:
        return self.capabilities

    def get_instructions(self) -> str | None:
        return self.instructions

    def get_server_version(self) -> dict[str, Any]:
        return self.server_version

    def get_protocol_version(self) -> str | None:
        return self.protocol_version

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_client() -> type[FakeMcpClient]:
    return FakeMcpClient


@pytest.fixture
def payment_error(valid_payment_required: dict[str, Any]) -> ToolCallError:
    """The error a paid tool raises when called without payment."""
    return ToolCallError("Payment required", code=-32402, data=valid_payment_required)


# --- Fake HTTP ---

Route = tuple[int, Any] | tuple[int, Any, str]


@pytest.fixture
def make_http() -> Callable[..., HttpAdapter]:
    """
    Build an HttpAdapter whose requests are answered from a route table.

    Routes map a full URL to ``(status, json_body)`` or
    ``(status, body, content_type)``. Unknown URLs get a 404. HEAD requests
    are answered 405 unless ``unreachable`` is set, in which case every
    request fails to connect. Requested URLs are appended to ``seen``.
    """

    def factory(
        routes: dict[str, Route] | None = None,
        unreachable: bool = False,
        seen: list[str] | None = None,
    ) -> HttpAdapter:
        table = routes or {}

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if seen is not None:
                seen.append(url)
            if unreachable:
                raise httpx.ConnectError("connection refused", request=request)
            if request.method == "HEAD":
                return httpx.Response(405)
            if url not in table:
                return httpx.Response(404)
            route = table[url]
            status, body = route[0], route[1]
            content_type = route[2] if len(route) > 2 else "application/json"
            if content_type == "application/json" and not isinstance(body, str):
                return httpx.Response(status, json=body)
            return httpx.Response(status, text=str(body), headers={"content-type": content_type})

        return HttpAdapter(timeout=1.0, transport=httpx.MockTransport(handler))

    return factory


# --- Snapshots ---

@pytest.fixture
def snapshot_data(valid_payment_required: dict[str, Any], sample_tools: list[dict[str, Any]]) -> dict[str, Any]:
    """A realistic snapshot in its on-disk camelCase shape."""
    option = valid_payment_required["accepts"][0]
    return {
        "categories": {
            "isReachable": True,
            "supportsMcp": True,
            "transport": "streamable-http",
            "hasTools": True,
            "supportsX402": True,
            "hasValidPaymentRequirements": True,
            "supportsExactScheme": True,
            "supportsEvm": True,
            "supportsOAuth": False,
        },
        "entries": {
            "endpoint": ENDPOINT,
            "serverName": "demo",
            "serverVersion": "1.0.0",
            "serverDescription": None,
            "protocolVersion": "2025-06-18",
            "instructions": None,
            "transport": "streamable-http",
            "capabilities": {"tools": {"listChanged": True}, "logging": {}},
            "tools": copy.deepcopy(sample_tools),
            "resources": [],
            "prompts": [],
            "x402": {
                "version": 2,
                "restrictedCalls": [{"toolName": "premium_forecast", "paymentRequired": valid_payment_required}],
                "paymentOptions": [option],
                "networks": ["eip155:84532"],
                "schemes": ["exact"],
                "perTool": {
                    "premium_forecast": {
                        "x402Version": 2,
                        "resource": valid_payment_required["resource"],
                        "networks": ["eip155:84532"],
                        "byNetwork": {
                            "eip155:84532": {
                                "scheme": "exact",
                                "amount": "100000",
                                "asset": VALID_ASSET,
                                "payTo": VALID_PAY_TO,
                                "maxTimeoutSeconds": 300,
                                "extra": {"name": "USDC", "version": "2"},
                            }
                        },
                    }
                },
            },
            "latency": {"ping": 120, "listTools": 250},
            "timestamp": "2026-01-10T12:00:00.000Z",
        },
    }


@pytest.fixture
def snapshot(snapshot_data: dict[str, Any]) -> AuditSnapshot:
    return AuditSnapshot.model_validate(snapshot_data)
