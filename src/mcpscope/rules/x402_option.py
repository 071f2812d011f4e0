"""
Payment option rules.

Field-level checks applied to every entry of a requirement's ``accepts``
list. Each rule looks at one field and never at its siblings, except the
``extra`` rule which needs the network to know whether EIP-3009 metadata is
expected.

Rules:
- x402-scheme: PAY-040..042
- x402-network: PAY-050..053
- x402-amount: PAY-060..063
- x402-asset: PAY-070..072
- x402-pay-to: PAY-080..083
- x402-max-timeout: PAY-090..092
- x402-extra: PAY-100..102
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from mcpscope.domain.models import Severity
from mcpscope.rules.base import BaseRule, is_evm_address, is_number

ALLOWED_SCHEMES = ("exact",)
EVM_NETWORK_PREFIX = "eip155:"
SOLANA_NETWORK_PREFIX = "solana:"
KNOWN_NETWORK_PREFIXES = (EVM_NETWORK_PREFIX, SOLANA_NETWORK_PREFIX)


class X402SchemeRule(BaseRule):
    rule_id = "x402-scheme"
    name = "Payment scheme"
    description = "scheme must be one of: " + ", ".join(ALLOWED_SCHEMES)
    codes = ("PAY-040", "PAY-041", "PAY-042")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.scheme"

        if "scheme" not in target:
            return [self._diagnostic("PAY-040", context, "Missing value")]

        scheme = target["scheme"]
        if not isinstance(scheme, str):
            return [self._diagnostic("PAY-041", context, "Must be a string")]

        if scheme not in ALLOWED_SCHEMES:
            allowed = ", ".join(ALLOWED_SCHEMES)
            return [self._diagnostic("PAY-042", context, f'Invalid value "{scheme}". Allowed are {allowed}')]

        return []


class X402NetworkRule(BaseRule):
    rule_id = "x402-network"
    name = "Payment network"
    description = 'network must be a CAIP-2 id starting with "eip155:" or "solana:"'
    codes = ("PAY-050", "PAY-051", "PAY-052", "PAY-053")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.network"

        if "network" not in target:
            return [self._diagnostic("PAY-050", context, "Missing value")]

        network = target["network"]
        if not isinstance(network, str):
            return [self._diagnostic("PAY-051", context, "Must be a string")]

        matched = next((p for p in KNOWN_NETWORK_PREFIXES if network.startswith(p)), None)
        if matched is None:
            return [
                self._diagnostic(
                    "PAY-052",
                    context,
                    f'Unknown prefix "{network}". Expected "eip155:*" or "solana:*"',
                )
            ]

        if network[len(matched):] == "":
            return [self._diagnostic("PAY-053", context, "Missing chain ID after prefix")]

        return []


class X402AmountRule(BaseRule):
    rule_id = "x402-amount"
    name = "Payment amount"
    description = "amount must be a string holding a positive number (atomic units)"
    codes = ("PAY-060", "PAY-061", "PAY-062", "PAY-063")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.amount"

        if "amount" not in target:
            return [self._diagnostic("PAY-060", context, "Missing value")]

        amount = target["amount"]
        if not isinstance(amount, str):
            return [self._diagnostic("PAY-061", context, "Must be a string")]

        parsed = _parse_numeric(amount)
        if parsed is None:
            return [self._diagnostic("PAY-062", context, "Must be a numeric string")]

        if parsed <= 0:
            return [self._diagnostic("PAY-063", context, "Must be positive")]

        return []


class X402AssetRule(BaseRule):
    rule_id = "x402-asset"
    name = "Payment asset"
    description = "asset must be a 0x-prefixed, 40 hex digit token contract address"
    codes = ("PAY-070", "PAY-071", "PAY-072")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.asset"

        if "asset" not in target:
            return [self._diagnostic("PAY-070", context, "Missing value")]

        asset = target["asset"]
        if not isinstance(asset, str):
            return [self._diagnostic("PAY-071", context, "Must be a string")]

        if not is_evm_address(asset):
            return [self._diagnostic("PAY-072", context, "Invalid EVM address format")]

        return []


class X402PayToRule(BaseRule):
    """
    ``payTo`` must be a well-formed EVM address in mixed case.

    The mixed-case test is a heuristic for EIP-55 checksumming; the
    checksum itself is not verified.
    """

    rule_id = "x402-pay-to"
    name = "Payment recipient"
    description = "payTo must be an EVM address and should be checksummed (mixed case)"
    codes = ("PAY-080", "PAY-081", "PAY-082", "PAY-083")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.payTo"

        if "payTo" not in target:
            return [self._diagnostic("PAY-080", context, "Missing value")]

        pay_to = target["payTo"]
        if not isinstance(pay_to, str):
            return [self._diagnostic("PAY-081", context, "Must be a string")]

        if not is_evm_address(pay_to):
            return [self._diagnostic("PAY-082", context, "Invalid EVM address format")]

        if not looks_checksummed(pay_to):
            return [self._diagnostic("PAY-083", context, "Not checksummed")]

        return []


class X402MaxTimeoutRule(BaseRule):
    rule_id = "x402-max-timeout"
    name = "Payment timeout"
    description = "maxTimeoutSeconds must be a number greater than 0"
    codes = ("PAY-090", "PAY-091", "PAY-092")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.maxTimeoutSeconds"

        if "maxTimeoutSeconds" not in target:
            return [self._diagnostic("PAY-090", context, "Missing value")]

        timeout = target["maxTimeoutSeconds"]
        if not is_number(timeout):
            return [self._diagnostic("PAY-091", context, "Must be a number")]

        if timeout <= 0:
            return [self._diagnostic("PAY-092", context, "Must be greater than 0")]

        return []


class X402ExtraRule(BaseRule):
    """
    ``extra`` is optional; when present on an EVM option it should name the
    token and its EIP-712 domain version.
    """

    rule_id = "x402-extra"
    name = "Payment extra metadata"
    description = "extra must be an object; EVM options should carry extra.name and extra.version"
    severity = Severity.LOW
    codes = ("PAY-100", "PAY-101", "PAY-102")
    target = "option"

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        context = f"{prefix}.extra"

        if "extra" not in target:
            return []

        extra = target["extra"]
        if not isinstance(extra, Mapping):
            return [self._diagnostic("PAY-100", context, "Must be an object")]

        network = target.get("network")
        if not (isinstance(network, str) and network.startswith(EVM_NETWORK_PREFIX)):
            return []

        findings: list[str] = []
        if not extra.get("name"):
            findings.append(self._diagnostic("PAY-101", f"{context}.name", "Missing (recommended for EVM)"))
        if not extra.get("version"):
            findings.append(
                self._diagnostic("PAY-102", f"{context}.version", "Missing (recommended for EIP-3009)")
            )
        return findings


def looks_checksummed(address: str) -> bool:
    """Mixed-case heuristic: an all-lower or all-upper hex body is not checksummed."""
    body = address[2:]
    return body != body.lower() and body != body.upper()


def _parse_numeric(value: str) -> float | None:
    text = value.strip()
    if text == "":
        return 0.0
    if "_" in text:
        return None
    try:
        parsed = float(text)
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed
