"""
Domain models for mcpscope.

This module contains all core data structures used throughout the library.
All models are Pydantic v2 for validation, serialization, and JSON Schema generation.

Snapshot records serialize with camelCase aliases (``model_dump(by_alias=True)``);
that JSON shape is what gets written to disk and fed back into ``compare``.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """Severity level attached to a diagnostic code."""

    CRITICAL = "CRITICAL"  # Input rejected, nothing was audited
    HIGH = "HIGH"  # Server or payment requirement is broken
    MEDIUM = "MEDIUM"  # Non-compliant but usable
    LOW = "LOW"  # Recommended practice not followed
    INFO = "INFO"  # Informational, no action needed

    def _get_order(self) -> int:
        order = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]
        return order.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self._get_order() < other._get_order()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self._get_order() <= other._get_order()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self._get_order() > other._get_order()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self._get_order() >= other._get_order()


# Codes that describe what was found rather than a problem with it
INFORMATIONAL_CODES = frozenset({"AUTH-010", "AUTH-011"})

_CATEGORY_SEVERITY = {
    "VAL": Severity.CRITICAL,
    "CON": Severity.HIGH,
    "AUTH": Severity.MEDIUM,
    "PAY": Severity.HIGH,
    "PRB": Severity.LOW,
    "CMP": Severity.MEDIUM,
}

_CODE_SEVERITY = {
    "AUTH-010": Severity.INFO,
    "AUTH-011": Severity.INFO,
    "PAY-083": Severity.LOW,
    "PAY-101": Severity.LOW,
    "PAY-102": Severity.LOW,
}

_MESSAGE_PATTERN = re.compile(r"^(?P<code>[A-Z]+-\d{3}) (?P<context>.*?): (?P<text>.*)$", re.DOTALL)


def severity_for_code(code: str) -> Severity:
    """Map a diagnostic code to its severity."""
    if code in _CODE_SEVERITY:
        return _CODE_SEVERITY[code]
    category = code.split("-", 1)[0]
    return _CATEGORY_SEVERITY.get(category, Severity.MEDIUM)


class Diagnostic(BaseModel):
    """
    A single diagnostic message.

    Diagnostics leave the library as plain strings of the form
    ``"<CODE> <context>: <text>"``; the code is the stable surface that
    downstream tooling filters on.
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(
        ...,
        description="Stable code, e.g. PAY-010",
        pattern=r"^(VAL|CON|AUTH|PAY|PRB|CMP)-\d{3}$",
    )
    context: str = Field(..., description="Where the issue was found, e.g. restrictedCalls[0].accepts")
    text: str = Field(..., description="Human-readable explanation")

    def __str__(self) -> str:
        return f"{self.code} {self.context}: {self.text}"

    @property
    def category(self) -> str:
        return self.code.split("-", 1)[0]

    @property
    def severity(self) -> Severity:
        return severity_for_code(self.code)

    @property
    def is_informational(self) -> bool:
        return self.code in INFORMATIONAL_CODES

    @classmethod
    def parse(cls, message: str) -> Diagnostic:
        """Parse a rendered diagnostic string back into its parts."""
        match = _MESSAGE_PATTERN.match(message)
        if match is None:
            raise ValueError(f"Not a diagnostic message: {message!r}")
        return cls(**match.groupdict())


def diagnostic(code: str, context: str, text: str) -> str:
    """Render a diagnostic string."""
    return str(Diagnostic(code=code, context=context, text=text))


class RuleMetadata(BaseModel):
    """Metadata about a payment validation rule."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Unique rule identifier")
    name: str = Field(..., description="Human-readable rule name")
    description: str = Field(..., description="What the rule checks")
    severity: Severity = Field(..., description="Default severity")
    codes: list[str] = Field(default_factory=list, description="Diagnostic codes the rule can emit")
    target: str = Field(default="requirement", description="'requirement' or 'option'")


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ServerInfo(_CamelModel):
    """Identity reported by the server during the initialize handshake."""

    name: str | None = None
    version: str | None = None
    description: str | None = None
    protocol_version: str | None = None
    instructions: str | None = None


class OAuthProfile(_CamelModel):
    """OAuth metadata resolved for the audited endpoint. Defaults to an empty record."""

    issuer: str | None = None
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    registration_endpoint: str | None = None
    revocation_endpoint: str | None = None
    scopes_supported: list[str] = Field(default_factory=list)
    grant_types_supported: list[str] = Field(default_factory=list)
    response_types_supported: list[str] = Field(default_factory=list)
    pkce_methods_supported: list[str] = Field(default_factory=list)
    dynamic_registration_supported: bool = False
    client_id_metadata_document_supported: bool = False
    protected_resource_metadata_url: str | None = None
    mcp_version: str | None = None


class RestrictedCall(_CamelModel):
    """A tool whose invocation failed with a decodable payment requirement."""

    tool_name: str
    payment_required: Any = None


class PaymentProfile(_CamelModel):
    """x402 section of a snapshot."""

    version: int | None = None
    restricted_calls: list[RestrictedCall] = Field(default_factory=list)
    payment_options: list[Any] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    schemes: list[str] = Field(default_factory=list)
    per_tool: dict[str, dict[str, Any]] = Field(default_factory=dict)


class Latency(_CamelModel):
    """Round-trip times in milliseconds; None when the call failed."""

    ping: int | None = None
    list_tools: int | None = None


class DerivedCategories(_CamelModel):
    """
    Flat boolean/enum classification of a server.

    Every field has a default so an unreachable server still yields a
    snapshot with the same shape as a fully audited one.
    """

    is_reachable: bool = False
    supports_mcp: bool = False
    transport: str | None = None
    has_tools: bool = False
    has_resources: bool = False
    has_prompts: bool = False
    has_instructions: bool = False
    supports_logging: bool = False
    supports_completions: bool = False
    supports_resource_subscriptions: bool = False
    supports_tools_list_changed: bool = False
    supports_resources_list_changed: bool = False
    supports_prompts_list_changed: bool = False
    supports_tasks: bool = False
    supports_mcp_apps: bool = False
    supports_x402: bool = False
    has_valid_payment_requirements: bool = False
    supports_exact_scheme: bool = False
    supports_evm: bool = False
    supports_solana: bool = False
    supports_oauth: bool = Field(default=False, alias="supportsOAuth")
    has_protected_resource_metadata: bool = False
    has_auth_server_metadata: bool = False
    supports_pkce_s256: bool = False
    supports_client_registration: bool = False
    supports_dynamic_registration: bool = False
    supports_client_id_metadata_document: bool = False
    has_scopes: bool = False


class SnapshotEntries(_CamelModel):
    """Everything observed about the server at audit time."""

    endpoint: str
    server_name: str | None = None
    server_version: str | None = None
    server_description: str | None = None
    protocol_version: str | None = None
    instructions: str | None = None
    transport: str | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)
    tools: list[dict[str, Any]] = Field(default_factory=list)
    resources: list[dict[str, Any]] = Field(default_factory=list)
    prompts: list[dict[str, Any]] = Field(default_factory=list)
    x402: PaymentProfile = Field(default_factory=PaymentProfile)
    oauth: OAuthProfile = Field(default_factory=OAuthProfile)
    latency: Latency = Field(default_factory=Latency)
    timestamp: str


class AuditSnapshot(_CamelModel):
    """A point-in-time audit of one MCP server."""

    categories: DerivedCategories = Field(default_factory=DerivedCategories)
    entries: SnapshotEntries

    def to_json(self) -> dict[str, Any]:
        """Convert to the JSON-serializable camelCase shape."""
        return self.model_dump(mode="json", by_alias=True)
