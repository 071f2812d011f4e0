"""
Server auditor, the entry point of the library.

``start`` audits a live MCP server and returns an AuditReport; ``compare``
diffs two snapshots and returns a ComparisonReport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcpscope.adapters.http import HttpAdapter
from mcpscope.domain.models import INFORMATIONAL_CODES
from mcpscope.domain.report import AuditReport, ComparisonReport
from mcpscope.engine.classifier import classify_capabilities
from mcpscope.engine.connector import ClientFactory, McpConnector, default_client_factory
from mcpscope.engine.differ import SnapshotDiffEngine
from mcpscope.engine.oauth import OAuthDiscoveryEngine
from mcpscope.engine.payment_validator import PaymentRuleValidator
from mcpscope.engine.prober import ToolProbeEngine
from mcpscope.engine.snapshot import build_empty_snapshot, build_snapshot
from mcpscope.engine.validation import MISSING, ensure_valid, validate_compare, validate_start

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000


async def audit_server(endpoint: str, timeout: float = DEFAULT_TIMEOUT_MS) -> AuditReport:
    """
    Audit an MCP server.

    This is the primary public API.

    Args:
        endpoint: URL of the MCP server.
        timeout: Per-request timeout in milliseconds.

    Returns:
        AuditReport with the snapshot and every diagnostic collected.

    Raises:
        InputValidationError: If the endpoint or timeout is malformed.

    Example:
        >>> report = anyio.run(audit_server, "https://example.com/mcp")
        >>> if not report.status:
        ...     print("\\n".join(report.messages))
    """
    return await ServerAuditor().start(endpoint, timeout)


def compare_snapshots(before: Any, after: Any) -> ComparisonReport:
    """
    Compare two audit snapshots.

    Raises:
        InputValidationError: If either side is not a snapshot.
    """
    return ServerAuditor().compare(before, after)


class ServerAuditor:
    """
    Sequences discovery, probing and validation for one server.

    Every step after input validation reports problems as diagnostics; a
    server that half works still yields a best-effort snapshot.
    """

    def __init__(
        self,
        http: HttpAdapter | None = None,
        client_factory: ClientFactory = default_client_factory,
    ) -> None:
        self.http = http or HttpAdapter()
        self.oauth = OAuthDiscoveryEngine(self.http)
        self.connector = McpConnector(self.http, client_factory)
        self.prober = ToolProbeEngine()
        self.validator = PaymentRuleValidator()
        self.differ = SnapshotDiffEngine()

    async def start(self, endpoint: Any = MISSING, timeout: Any = DEFAULT_TIMEOUT_MS) -> AuditReport:
        ensure_valid(validate_start(endpoint, timeout))
        if timeout is None:
            timeout = DEFAULT_TIMEOUT_MS

        logger.info("Auditing %s", endpoint)

        oauth = await self.oauth.probe(endpoint, timeout)
        connection = await self.connector.connect(endpoint, timeout)

        if not connection.status or connection.client is None:
            snapshot = build_empty_snapshot(endpoint, oauth.oauth_profile, oauth.supports_oauth)
            return AuditReport(
                status=False,
                messages=[*connection.messages, *oauth.messages],
                categories=snapshot.categories,
                entries=snapshot.entries,
            )

        client = connection.client
        try:
            discovery = await self.connector.discover(client)
            capability_categories = classify_capabilities(
                discovery.tools,
                discovery.resources,
                discovery.prompts,
                discovery.capabilities,
                connection.server_info,
            )
            probe = await self.prober.probe(client, discovery.tools, timeout)
            payments = self.validator.validate(probe.restricted_calls, probe.payment_options)
            latency = await self.connector.measure_latency(client)
        finally:
            await self.connector.disconnect(client)

        snapshot = build_snapshot(
            endpoint=endpoint,
            server_info=connection.server_info,
            transport=connection.transport,
            tools=discovery.tools,
            resources=discovery.resources,
            prompts=discovery.prompts,
            capabilities=discovery.capabilities,
            capability_categories=capability_categories,
            restricted_calls=probe.restricted_calls,
            payment_options=probe.payment_options,
            valid_payment_options=payments.valid_payment_options,
            latency=latency,
            oauth_profile=oauth.oauth_profile,
            supports_oauth=oauth.supports_oauth,
        )

        messages = [
            *connection.messages,
            *oauth.messages,
            *discovery.messages,
            *probe.messages,
            *payments.messages,
        ]
        status = not any(message.split(" ", 1)[0] not in INFORMATIONAL_CODES for message in messages)

        logger.info("Audit of %s finished with %d message(s)", endpoint, len(messages))
        return AuditReport(
            status=status,
            messages=messages,
            categories=snapshot.categories,
            entries=snapshot.entries,
        )

    def compare(self, before: Any = MISSING, after: Any = MISSING) -> ComparisonReport:
        ensure_valid(validate_compare(before, after))
        return self.differ.compare(before, after)
