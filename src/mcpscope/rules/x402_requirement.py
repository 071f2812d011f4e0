"""
Payment requirement rules.

Structural checks on the top-level x402 PaymentRequirement object that a
server attaches to a 402 tool error.

Rules:
- x402-version: PAY-010..012
- x402-resource: PAY-020..024
- x402-accepts: PAY-030..032
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from mcpscope.domain.models import Severity
from mcpscope.rules.base import BaseRule, is_number

X402_VERSION = 2


class X402VersionRule(BaseRule):
    """The requirement must declare ``x402Version`` 2."""

    rule_id = "x402-version"
    name = "x402 protocol version"
    description = "x402Version must be present and equal to the integer 2"
    severity = Severity.HIGH
    codes = ("PAY-010", "PAY-011", "PAY-012")

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.x402Version"

        if "x402Version" not in target:
            return [self._diagnostic("PAY-010", context, "Missing required field")]

        version = target["x402Version"]
        if not is_number(version):
            return [self._diagnostic("PAY-011", context, "Must be a number")]

        if version != X402_VERSION:
            return [self._diagnostic("PAY-012", context, f"Expected {X402_VERSION}, got {version}")]

        return []


class X402ResourceRule(BaseRule):
    """
    The optional ``resource`` must be a non-empty string or a ``{url}`` object.
    """

    rule_id = "x402-resource"
    name = "x402 resource"
    description = "resource is a non-empty string or an object with a valid url and no other fields"
    severity = Severity.MEDIUM
    codes = ("PAY-020", "PAY-021", "PAY-022", "PAY-023", "PAY-024")

    KNOWN_FIELDS = frozenset({"url"})

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.resource"
        resource = target.get("resource")

        if resource is None:
            return []

        if isinstance(resource, str):
            if resource.strip() == "":
                return [self._diagnostic("PAY-021", context, "Must not be empty")]
            return []

        if not isinstance(resource, Mapping):
            return [self._diagnostic("PAY-020", context, "Must be a string or object")]

        findings: list[str] = []

        if "url" not in resource:
            findings.append(self._diagnostic("PAY-021", f"{context}.url", "Missing value"))
        elif not isinstance(resource["url"], str):
            findings.append(self._diagnostic("PAY-022", f"{context}.url", "Must be a string"))
        elif not _is_absolute_url(resource["url"]):
            findings.append(self._diagnostic("PAY-023", f"{context}.url", "Invalid URL format"))

        for key in resource:
            if key not in self.KNOWN_FIELDS:
                findings.append(self._diagnostic("PAY-024", f"{context}.{key}", "Unknown field"))

        return findings


class X402AcceptsRule(BaseRule):
    """``accepts`` must be a non-empty array of payment options."""

    rule_id = "x402-accepts"
    name = "x402 accepts list"
    description = "accepts must be present, an array, and not empty"
    severity = Severity.HIGH
    codes = ("PAY-030", "PAY-031", "PAY-032")

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.accepts"

        if "accepts" not in target:
            return [self._diagnostic("PAY-030", context, "Missing required field")]

        accepts = target["accepts"]
        if not isinstance(accepts, list):
            return [self._diagnostic("PAY-031", context, "Must be an array")]

        if not accepts:
            return [self._diagnostic("PAY-032", context, "Is empty array")]

        return []


def _is_absolute_url(value: str) -> bool:
    try:
        parsed = urlsplit(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)
