"""
OAuth discovery engine.

Resolves the OAuth metadata an MCP server publishes: Protected Resource
Metadata (RFC 9728) at the endpoint's origin, then the Authorization Server
Metadata (RFC 8414, or OpenID discovery) of the first listed authorization
server. Missing documents are silent; documents that exist but are not
usable by an MCP client are flagged.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit

from mcpscope.adapters.http import HttpAdapter
from mcpscope.domain.models import OAuthProfile, diagnostic
from mcpscope.domain.report import OAuthProbeResult

logger = logging.getLogger(__name__)

PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"
AUTH_SERVER_PATH = "/.well-known/oauth-authorization-server"
OPENID_CONFIGURATION_PATH = "/.well-known/openid-configuration"

REQUIRED_AUTH_SERVER_FIELDS = ("authorization_endpoint", "token_endpoint", "response_types_supported")

CONTEXT = "oauth"


async def probe_oauth(
    endpoint: str,
    timeout_ms: float = 10000,
    http: HttpAdapter | None = None,
) -> OAuthProbeResult:
    """
    Run OAuth discovery against an MCP endpoint.

    Args:
        endpoint: The MCP server URL.
        timeout_ms: Per-request timeout in milliseconds.
        http: HTTP adapter to use. A default one is created if omitted.

    Returns:
        OAuthProbeResult with the resolved profile and diagnostics.
    """
    engine = OAuthDiscoveryEngine(http or HttpAdapter())
    return await engine.probe(endpoint, timeout_ms)


class OAuthDiscoveryEngine:
    """
    Discovers and checks the OAuth configuration of one endpoint.

    Candidate URLs are tried strictly in order and the first usable
    document wins. Compliance checks only run once Authorization Server
    Metadata has been found.
    """

    def __init__(self, http: HttpAdapter) -> None:
        self.http = http

    async def probe(self, endpoint: str, timeout_ms: float = 10000) -> OAuthProbeResult:
        timeout = timeout_ms / 1000
        messages: list[str] = []

        protected_resource, prm_url = await self._fetch_first(
            protected_resource_urls(endpoint), timeout
        )

        issuer: Any = None
        if protected_resource is not None:
            servers = protected_resource.get("authorization_servers")
            if isinstance(servers, list) and servers:
                issuer = servers[0]
            else:
                messages.append(
                    diagnostic("AUTH-004", CONTEXT, "Missing authorization_servers in Protected Resource Metadata")
                )

        auth_server: dict[str, Any] | None = None
        if issuer:
            auth_server = await self._discover_auth_server(issuer, timeout, messages)

        if auth_server is not None:
            messages.extend(_check_compliance(auth_server))

        scopes = _merged_scopes(protected_resource, auth_server)
        if scopes:
            messages.append(diagnostic("AUTH-011", CONTEXT, "Scopes found: " + ", ".join(scopes)))

        supports_oauth = protected_resource is not None or auth_server is not None
        if supports_oauth:
            messages.append(diagnostic("AUTH-010", CONTEXT, "Server requires authentication"))

        logger.debug(
            "OAuth discovery for %s: prm=%s as=%s",
            endpoint,
            prm_url,
            auth_server is not None,
        )

        return OAuthProbeResult(
            messages=messages,
            supports_oauth=supports_oauth,
            oauth_profile=build_profile(protected_resource, auth_server, prm_url),
            protected_resource=protected_resource,
            auth_server=auth_server,
        )

    async def _discover_auth_server(
        self, issuer: Any, timeout: float, messages: list[str]
    ) -> dict[str, Any] | None:
        urls = auth_server_urls(issuer)
        metadata, _ = await self._fetch_first(urls, timeout)

        if metadata is None:
            messages.append(diagnostic("AUTH-002", CONTEXT, "Authorization Server Metadata not found (RFC8414)"))
            return None

        missing = [field for field in REQUIRED_AUTH_SERVER_FIELDS if not metadata.get(field)]
        if missing:
            messages.append(
                diagnostic(
                    "AUTH-002",
                    CONTEXT,
                    "Authorization Server Metadata incomplete, missing " + ", ".join(missing),
                )
            )

        return metadata

    async def _fetch_first(
        self, urls: list[str], timeout: float
    ) -> tuple[dict[str, Any] | None, str | None]:
        for url in urls:
            metadata = await self.http.fetch_metadata(url, timeout=timeout)
            if metadata is not None:
                return metadata, url
        return None, None


def protected_resource_urls(endpoint: str) -> list[str]:
    """Path-specific then root Protected Resource Metadata URLs, deduplicated."""
    origin, path = _split_origin(endpoint)
    if origin is None:
        return []
    return _unique([
        f"{origin}{PROTECTED_RESOURCE_PATH}{path}",
        f"{origin}{PROTECTED_RESOURCE_PATH}",
    ])


def auth_server_urls(issuer: Any) -> list[str]:
    """
    Authorization Server Metadata candidates for an issuer.

    A root issuer gets the RFC 8414 and OpenID documents at its origin; an
    issuer with a path also gets the path-specific RFC 8414 document first.
    Anything that is not an absolute URL yields no candidates.
    """
    if not isinstance(issuer, str):
        return []
    origin, path = _split_origin(issuer)
    if origin is None:
        return []

    if not path:
        return [
            f"{origin}{AUTH_SERVER_PATH}",
            f"{origin}{OPENID_CONFIGURATION_PATH}",
        ]

    return _unique([
        f"{origin}{AUTH_SERVER_PATH}{path}",
        f"{origin}{AUTH_SERVER_PATH}",
        f"{origin}{OPENID_CONFIGURATION_PATH}",
    ])


def build_profile(
    protected_resource: dict[str, Any] | None,
    auth_server: dict[str, Any] | None,
    prm_url: str | None,
) -> OAuthProfile:
    """Fold the discovered documents into an OAuthProfile."""
    fields: dict[str, Any] = {"protected_resource_metadata_url": prm_url}

    if auth_server is not None:
        fields.update(
            issuer=_string(auth_server.get("issuer")),
            authorization_endpoint=_string(auth_server.get("authorization_endpoint")),
            token_endpoint=_string(auth_server.get("token_endpoint")),
            registration_endpoint=_string(auth_server.get("registration_endpoint")),
            revocation_endpoint=_string(auth_server.get("revocation_endpoint")),
            grant_types_supported=_strings(auth_server.get("grant_types_supported")),
            response_types_supported=_strings(auth_server.get("response_types_supported")),
            pkce_methods_supported=_strings(auth_server.get("code_challenge_methods_supported")),
            dynamic_registration_supported=bool(auth_server.get("registration_endpoint")),
            client_id_metadata_document_supported=auth_server.get("client_id_metadata_document_supported") is True,
            mcp_version=_string(auth_server.get("mcp_version")),
        )

    if protected_resource is not None and isinstance(protected_resource.get("scopes_supported"), list):
        fields["scopes_supported"] = _strings(protected_resource["scopes_supported"])
    elif auth_server is not None and isinstance(auth_server.get("scopes_supported"), list):
        fields["scopes_supported"] = _strings(auth_server["scopes_supported"])

    return OAuthProfile(**fields)


def _check_compliance(auth_server: dict[str, Any]) -> list[str]:
    messages: list[str] = []

    methods = auth_server.get("code_challenge_methods_supported")
    if not isinstance(methods, list) or "S256" not in methods:
        messages.append(diagnostic("AUTH-003", CONTEXT, "PKCE S256 not supported (MCP Spec MUST)"))

    has_registration = bool(auth_server.get("registration_endpoint"))
    has_cimd = auth_server.get("client_id_metadata_document_supported") is True
    if not has_registration and not has_cimd:
        messages.append(diagnostic("AUTH-005", CONTEXT, "No client registration mechanism available"))

    return messages


def _merged_scopes(
    protected_resource: dict[str, Any] | None,
    auth_server: dict[str, Any] | None,
) -> list[str]:
    scopes: list[str] = []
    for document in (protected_resource, auth_server):
        if document is not None and isinstance(document.get("scopes_supported"), list):
            scopes.extend(_strings(document["scopes_supported"]))
    return _unique(scopes)


def _split_origin(url: str) -> tuple[str | None, str]:
    try:
        parts = urlsplit(url)
    except ValueError:
        return None, ""
    if not parts.scheme or not parts.netloc:
        return None, ""
    path = "" if parts.path == "/" else parts.path
    return f"{parts.scheme}://{parts.netloc}", path


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]
