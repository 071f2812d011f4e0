"""
Snapshot builder.

Assembles the categories and entries of an AuditSnapshot from the pieces
collected during an audit. An unreachable server still gets a snapshot
with the full shape, so snapshots can always be compared.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from mcpscope.domain.models import (
    AuditSnapshot,
    DerivedCategories,
    Latency,
    OAuthProfile,
    PaymentProfile,
    RestrictedCall,
    ServerInfo,
    SnapshotEntries,
)
from mcpscope.rules.x402_option import EVM_NETWORK_PREFIX, SOLANA_NETWORK_PREFIX

X402_PROFILE_VERSION = 2


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_snapshot(
    endpoint: str,
    server_info: ServerInfo | None,
    transport: str | None,
    tools: list[dict[str, Any]],
    resources: list[dict[str, Any]],
    prompts: list[dict[str, Any]],
    capabilities: dict[str, Any],
    capability_categories: Mapping[str, bool],
    restricted_calls: Sequence[RestrictedCall],
    payment_options: Sequence[Any],
    valid_payment_options: Sequence[Any],
    latency: Latency,
    oauth_profile: OAuthProfile,
    supports_oauth: bool,
) -> AuditSnapshot:
    """Build the snapshot of a server that was reached and audited."""
    info = server_info or ServerInfo()
    valid = [option for option in valid_payment_options if isinstance(option, Mapping)]

    categories = DerivedCategories(
        is_reachable=True,
        supports_mcp=True,
        transport=transport,
        **capability_categories,
        supports_x402=len(restricted_calls) > 0,
        has_valid_payment_requirements=len(valid) > 0,
        supports_exact_scheme=any(option.get("scheme") == "exact" for option in valid),
        supports_evm=_has_network_prefix(valid, EVM_NETWORK_PREFIX),
        supports_solana=_has_network_prefix(valid, SOLANA_NETWORK_PREFIX),
        **oauth_categories(oauth_profile, supports_oauth),
    )

    entries = SnapshotEntries(
        endpoint=endpoint,
        server_name=info.name,
        server_version=info.version,
        server_description=info.description,
        protocol_version=info.protocol_version,
        instructions=info.instructions,
        transport=transport,
        capabilities=capabilities or {},
        tools=tools,
        resources=resources,
        prompts=prompts,
        x402=PaymentProfile(
            version=X402_PROFILE_VERSION if restricted_calls else None,
            restricted_calls=list(restricted_calls),
            payment_options=list(payment_options),
            networks=_unique_strings(option.get("network") for option in valid),
            schemes=_unique_strings(option.get("scheme") for option in valid),
            per_tool=build_per_tool(restricted_calls),
        ),
        oauth=oauth_profile,
        latency=latency,
        timestamp=utc_timestamp(),
    )

    return AuditSnapshot(categories=categories, entries=entries)


def build_empty_snapshot(
    endpoint: str,
    oauth_profile: OAuthProfile | None = None,
    supports_oauth: bool = False,
) -> AuditSnapshot:
    """Snapshot of a server that could not be connected to."""
    profile = oauth_profile or OAuthProfile()
    return AuditSnapshot(
        categories=DerivedCategories(**oauth_categories(profile, supports_oauth)),
        entries=SnapshotEntries(endpoint=endpoint, oauth=profile, timestamp=utc_timestamp()),
    )


def oauth_categories(profile: OAuthProfile, supports_oauth: bool) -> dict[str, bool]:
    """The OAuth half of the derived categories."""
    return {
        "supports_oauth": supports_oauth,
        "has_protected_resource_metadata": profile.protected_resource_metadata_url is not None,
        "has_auth_server_metadata": profile.authorization_endpoint is not None or profile.token_endpoint is not None,
        "supports_pkce_s256": "S256" in profile.pkce_methods_supported,
        "supports_client_registration": (
            profile.registration_endpoint is not None or profile.client_id_metadata_document_supported
        ),
        "supports_dynamic_registration": profile.dynamic_registration_supported,
        "supports_client_id_metadata_document": profile.client_id_metadata_document_supported,
        "has_scopes": len(profile.scopes_supported) > 0,
    }


def build_per_tool(restricted_calls: Sequence[RestrictedCall]) -> dict[str, dict[str, Any]]:
    """
    Index each tool's payment requirement by network.

    A later option for the same network replaces an earlier one.
    """
    per_tool: dict[str, dict[str, Any]] = {}

    for call in restricted_calls:
        requirement = call.payment_required
        if not isinstance(requirement, Mapping):
            continue

        accepts = requirement.get("accepts")
        by_network: dict[str, dict[str, Any]] = {}
        for option in accepts if isinstance(accepts, list) else []:
            if not isinstance(option, Mapping):
                continue
            network = option.get("network")
            if not isinstance(network, str) or not network:
                continue
            by_network[network] = {
                "scheme": option.get("scheme") or None,
                "amount": option.get("amount") or None,
                "asset": option.get("asset") or None,
                "payTo": option.get("payTo") or None,
                "maxTimeoutSeconds": option.get("maxTimeoutSeconds") or None,
                "extra": option.get("extra") or None,
            }

        per_tool[call.tool_name] = {
            "x402Version": requirement.get("x402Version") or None,
            "resource": requirement.get("resource") or None,
            "networks": list(by_network),
            "byNetwork": by_network,
        }

    return per_tool


def _has_network_prefix(options: Sequence[Mapping[str, Any]], prefix: str) -> bool:
    return any(
        isinstance(option.get("network"), str) and option["network"].startswith(prefix)
        for option in options
    )


def _unique_strings(values: Any) -> list[str]:
    return list(dict.fromkeys(value for value in values if isinstance(value, str)))
