"""
Unit tests for the server auditor (start and compare).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

import pytest

from mcpscope.adapters.http import HttpAdapter
from mcpscope.domain.exceptions import InputValidationError, ToolCallError
from mcpscope.domain.models import AuditSnapshot, DerivedCategories
from mcpscope.engine.auditor import ServerAuditor, compare_snapshots
from mcpscope.engine.validation import validate_compare, validate_start

ENDPOINT = "https://mcp.example.com/mcp"
TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _auditor(http: HttpAdapter, client: Any) -> ServerAuditor:
    return ServerAuditor(http=http, client_factory=lambda endpoint, timeout: client)


class TestInputValidation:
    """Tests for VAL-* checks."""

    @pytest.mark.parametrize(
        ("endpoint", "expected"),
        [
            (None, "VAL-001 endpoint: Missing value"),
            (42, "VAL-002 endpoint: Must be a string"),
            ("  ", "VAL-003 endpoint: Must not be empty"),
            ("mcp.example.com", "VAL-004 endpoint: Must be a valid URL"),
        ],
    )
    def test_bad_endpoint(self, endpoint: Any, expected: str) -> None:
        assert validate_start(endpoint, 1000) == [expected]

    @pytest.mark.parametrize(
        ("timeout", "expected"),
        [
            ("fast", "VAL-005 timeout: Must be a number"),
            (True, "VAL-005 timeout: Must be a number"),
            (0, "VAL-006 timeout: Must be greater than 0"),
        ],
    )
    def test_bad_timeout(self, timeout: Any, expected: str) -> None:
        assert validate_start(ENDPOINT, timeout) == [expected]

    def test_compare_shapes(self) -> None:
        assert validate_compare() == ["VAL-010 before: Missing value", "VAL-013 after: Missing value"]
        assert validate_compare([], {"categories": {}}) == [
            "VAL-011 before: Must be an object",
            "VAL-015 after: Missing categories or entries",
        ]

    @pytest.mark.anyio
    async def test_start_raises_with_joined_messages(self, make_http: Callable[..., HttpAdapter]) -> None:
        auditor = ServerAuditor(http=make_http())

        with pytest.raises(InputValidationError) as exc_info:
            await auditor.start("", -1)

        assert str(exc_info.value) == (
            "VAL-003 endpoint: Must not be empty, VAL-006 timeout: Must be greater than 0"
        )
        assert len(exc_info.value.messages) == 2

    @pytest.mark.parametrize("bad_entries", ["oops", [1, 2], 7])
    def test_compare_rejects_non_object_sections(self, snapshot_data: dict[str, Any], bad_entries: Any) -> None:
        malformed = {**snapshot_data, "entries": bad_entries}

        assert validate_compare(malformed, snapshot_data) == ["VAL-012 before: Missing categories or entries"]
        assert validate_compare(snapshot_data, malformed) == ["VAL-015 after: Missing categories or entries"]

        with pytest.raises(InputValidationError, match="VAL-012"):
            compare_snapshots(malformed, snapshot_data)

    def test_compare_rejects_non_object_categories(self, snapshot_data: dict[str, Any]) -> None:
        with pytest.raises(InputValidationError, match="VAL-015"):
            compare_snapshots(snapshot_data, {**snapshot_data, "categories": ["isReachable"]})

    def test_compare_raises(self) -> None:
        with pytest.raises(InputValidationError, match="VAL-012"):
            compare_snapshots({"entries": {}}, {"categories": {"a": 1}, "entries": {"b": 1}})


@pytest.mark.anyio
class TestStart:
    """Tests for the full audit pipeline."""

    async def test_unreachable_server(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
    ) -> None:
        """An unreachable server yields an empty snapshot with the full shape."""
        auditor = _auditor(make_http(unreachable=True), make_client())

        report = await auditor.start(ENDPOINT, 1000)

        assert report.status is False
        assert report.messages == ["CON-001 endpoint: Server is not reachable"]
        assert report.categories == DerivedCategories()
        assert report.entries.endpoint == ENDPOINT
        assert report.entries.tools == []
        assert TIMESTAMP.match(report.entries.timestamp)

    async def test_handshake_failure_on_both_transports(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
    ) -> None:
        client = make_client(failing_transports=("streamable-http", "sse"))

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.status is False
        assert report.messages == ["CON-004 mcp: Initialize handshake failed: sse refused"]

    async def test_falls_back_to_sse(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
    ) -> None:
        client = make_client(tools=sample_tools, failing_transports=("streamable-http",))

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.entries.transport == "sse"
        assert report.categories.transport == "sse"

    async def test_free_server_passes(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
    ) -> None:
        client = make_client(tools=sample_tools, instructions="Use get_weather first.")

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.status is True
        assert report.messages == []
        assert report.categories.is_reachable is True
        assert report.categories.has_tools is True
        assert report.categories.has_resources is True
        assert report.categories.has_prompts is False
        assert report.categories.has_instructions is True
        assert report.categories.supports_tools_list_changed is True
        assert report.categories.supports_x402 is False
        assert report.entries.server_name == "demo"
        assert report.entries.protocol_version == "2025-06-18"
        assert report.entries.x402.version is None
        assert report.entries.latency.ping is not None
        assert client.closed is True

    async def test_paid_server(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
        payment_error: ToolCallError,
    ) -> None:
        client = make_client(tools=sample_tools, tool_errors={"premium_forecast": payment_error})

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.status is True
        categories = report.categories
        assert categories.supports_x402 is True
        assert categories.has_valid_payment_requirements is True
        assert categories.supports_exact_scheme is True
        assert categories.supports_evm is True
        assert categories.supports_solana is False

        x402 = report.entries.x402
        assert x402.version == 2
        assert x402.networks == ["eip155:84532"]
        assert x402.schemes == ["exact"]
        assert x402.per_tool["premium_forecast"]["networks"] == ["eip155:84532"]
        assert x402.per_tool["premium_forecast"]["byNetwork"]["eip155:84532"]["amount"] == "100000"

    async def test_invalid_payment_fails_audit(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
        valid_payment_required: dict[str, Any],
    ) -> None:
        valid_payment_required["accepts"][0]["payTo"] = valid_payment_required["accepts"][0]["payTo"].lower()
        error = ToolCallError("pay", code=402, data=valid_payment_required)
        client = make_client(tools=sample_tools, tool_errors={"premium_forecast": error})

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.status is False
        assert report.messages == ["PAY-083 restrictedCalls[0].accepts[0].payTo: Not checksummed"]
        assert report.categories.supports_x402 is True
        assert report.categories.has_valid_payment_requirements is False
        assert report.entries.x402.networks == []

    async def test_informational_oauth_messages_do_not_fail(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
    ) -> None:
        http = make_http({
            "https://mcp.example.com/.well-known/oauth-protected-resource/mcp": (
                200,
                {"authorization_servers": ["https://auth.example.com"], "scopes_supported": ["mcp"]},
            ),
            "https://auth.example.com/.well-known/oauth-authorization-server": (
                200,
                {
                    "issuer": "https://auth.example.com",
                    "authorization_endpoint": "https://auth.example.com/authorize",
                    "token_endpoint": "https://auth.example.com/token",
                    "response_types_supported": ["code"],
                    "code_challenge_methods_supported": ["S256"],
                    "registration_endpoint": "https://auth.example.com/register",
                },
            ),
        })

        report = await _auditor(http, make_client(tools=sample_tools)).start(ENDPOINT, 1000)

        assert report.status is True
        assert report.messages_with_code("AUTH") == [
            "AUTH-011 oauth: Scopes found: mcp",
            "AUTH-010 oauth: Server requires authentication",
        ]
        assert report.categories.supports_oauth is True
        assert report.categories.supports_pkce_s256 is True
        assert report.categories.supports_dynamic_registration is True
        assert report.categories.has_scopes is True
        assert report.entries.oauth.issuer == "https://auth.example.com"

    async def test_no_tools(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
    ) -> None:
        report = await _auditor(make_http(), make_client(tools=[])).start(ENDPOINT, 1000)

        assert report.status is False
        assert report.messages == ["PRB-005 probe: No tools available to probe"]

    async def test_listing_failures_are_reported(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
    ) -> None:
        client = make_client(tools=sample_tools, failing_lists=("resources", "prompts"))

        report = await _auditor(make_http(), client).start(ENDPOINT, 1000)

        assert report.messages == [
            "CON-010 resources/list: Request failed",
            "CON-011 prompts/list: Request failed",
        ]
        assert report.categories.has_tools is True

    async def test_report_round_trips_through_compare(
        self,
        make_http: Callable[..., HttpAdapter],
        make_client: Any,
        sample_tools: list[dict[str, Any]],
    ) -> None:
        report = await _auditor(make_http(), make_client(tools=sample_tools)).start(ENDPOINT, 1000)

        comparison = compare_snapshots(report.to_json(), report.snapshot)

        assert comparison.has_changes is False
        assert isinstance(report.snapshot, AuditSnapshot)
