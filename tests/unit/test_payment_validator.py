"""
Unit tests for x402 payment requirement validation.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from mcpscope.domain.models import RestrictedCall
from mcpscope.engine.payment_validator import PaymentRuleValidator, validate_payments
from mcpscope.rules import DEFAULT_RULES, OPTION_RULES, REQUIREMENT_RULES
from mcpscope.rules.x402_option import X402PayToRule, looks_checksummed


def _call(payment_required: Any, tool_name: str = "premium_forecast") -> RestrictedCall:
    return RestrictedCall(tool_name=tool_name, payment_required=payment_required)


def _codes(messages: list[str]) -> list[str]:
    return [message.split(" ", 1)[0] for message in messages]


class TestRequirementStructure:
    """Tests for the requirement-level checks."""

    def test_valid_requirement(self, valid_payment_required: dict[str, Any]) -> None:
        """A fully valid requirement should produce no messages."""
        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == []
        assert result.valid_payment_options == valid_payment_required["accepts"]

    def test_missing_requirement(self) -> None:
        """A restricted call without data should be flagged PAY-001."""
        result = validate_payments([_call(None)])

        assert result.messages == ["PAY-001 restrictedCalls[0]: PaymentRequired data is missing"]

    def test_requirement_not_object(self) -> None:
        """A list instead of an object should be flagged PAY-002."""
        result = validate_payments([_call([1, 2])])

        assert result.messages == ["PAY-002 restrictedCalls[0]: PaymentRequired is not an object"]

    def test_missing_version(self, valid_payment_required: dict[str, Any]) -> None:
        """Missing x402Version yields PAY-010 and no valid options."""
        del valid_payment_required["x402Version"]

        result = validate_payments([_call(valid_payment_required)])

        assert "PAY-010 restrictedCalls[0].x402Version: Missing required field" in result.messages
        assert result.valid_payment_options == []

    @pytest.mark.parametrize(
        ("version", "code"),
        [
            ("2", "PAY-011"),
            (True, "PAY-011"),
            (1, "PAY-012"),
        ],
    )
    def test_bad_version(self, valid_payment_required: dict[str, Any], version: Any, code: str) -> None:
        """Versions that are not the number 2 should be rejected."""
        valid_payment_required["x402Version"] = version

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == [code]
        assert result.valid_payment_options == []

    def test_wrong_version_text(self, valid_payment_required: dict[str, Any]) -> None:
        valid_payment_required["x402Version"] = 1

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == ["PAY-012 restrictedCalls[0].x402Version: Expected 2, got 1"]

    def test_resource_string(self, valid_payment_required: dict[str, Any]) -> None:
        """A non-empty string resource is accepted."""
        valid_payment_required["resource"] = "https://mcp.example.com/tools/premium"

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == []

    def test_resource_blank_string(self, valid_payment_required: dict[str, Any]) -> None:
        valid_payment_required["resource"] = "   "

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == ["PAY-021 restrictedCalls[0].resource: Must not be empty"]
        assert result.valid_payment_options == []

    def test_resource_wrong_type(self, valid_payment_required: dict[str, Any]) -> None:
        valid_payment_required["resource"] = 42

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == ["PAY-020"]

    def test_resource_object_problems_accumulate(self, valid_payment_required: dict[str, Any]) -> None:
        """A bad URL and unknown fields are all reported."""
        valid_payment_required["resource"] = {
            "url": "not a url",
            "mimeType": "application/json",
            "description": "premium",
        }

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == [
            "PAY-023 restrictedCalls[0].resource.url: Invalid URL format",
            "PAY-024 restrictedCalls[0].resource.mimeType: Unknown field",
            "PAY-024 restrictedCalls[0].resource.description: Unknown field",
        ]

    def test_resource_object_missing_url(self, valid_payment_required: dict[str, Any]) -> None:
        valid_payment_required["resource"] = {}

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == ["PAY-021 restrictedCalls[0].resource.url: Missing value"]

    def test_resource_url_not_string(self, valid_payment_required: dict[str, Any]) -> None:
        valid_payment_required["resource"] = {"url": 7}

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == ["PAY-022"]

    def test_resource_is_optional(self, valid_payment_required: dict[str, Any]) -> None:
        del valid_payment_required["resource"]

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == []
        assert len(result.valid_payment_options) == 1

    @pytest.mark.parametrize(
        ("accepts", "message"),
        [
            (None, "PAY-030 restrictedCalls[0].accepts: Missing required field"),
            ({"scheme": "exact"}, "PAY-031 restrictedCalls[0].accepts: Must be an array"),
            ([], "PAY-032 restrictedCalls[0].accepts: Is empty array"),
        ],
    )
    def test_accepts_structure(self, valid_payment_required: dict[str, Any], accepts: Any, message: str) -> None:
        if accepts is None:
            del valid_payment_required["accepts"]
        else:
            valid_payment_required["accepts"] = accepts

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == [message]
        assert result.valid_payment_options == []

    def test_groups_accumulate_independently(self, valid_payment_required: dict[str, Any]) -> None:
        """Version, resource and option problems are reported in one pass."""
        valid_payment_required["x402Version"] = 1
        valid_payment_required["resource"] = ""
        valid_payment_required["accepts"][0]["scheme"] = "upto"

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == ["PAY-012", "PAY-021", "PAY-042"]


class TestPaymentOptions:
    """Tests for option-level rules."""

    @pytest.mark.parametrize(
        ("field", "value", "expected"),
        [
            ("scheme", 1, "PAY-041 restrictedCalls[0].accepts[0].scheme: Must be a string"),
            ("scheme", "upto", 'PAY-042 restrictedCalls[0].accepts[0].scheme: Invalid value "upto". Allowed are exact'),
            ("network", None, "PAY-051 restrictedCalls[0].accepts[0].network: Must be a string"),
            (
                "network",
                "base-sepolia",
                'PAY-052 restrictedCalls[0].accepts[0].network: Unknown prefix "base-sepolia". '
                'Expected "eip155:*" or "solana:*"',
            ),
            ("network", "eip155:", "PAY-053 restrictedCalls[0].accepts[0].network: Missing chain ID after prefix"),
            ("amount", 100000, "PAY-061 restrictedCalls[0].accepts[0].amount: Must be a string"),
            ("amount", "lots", "PAY-062 restrictedCalls[0].accepts[0].amount: Must be a numeric string"),
            ("amount", "inf", "PAY-062 restrictedCalls[0].accepts[0].amount: Must be a numeric string"),
            ("amount", "Infinity", "PAY-062 restrictedCalls[0].accepts[0].amount: Must be a numeric string"),
            ("amount", "1e999", "PAY-062 restrictedCalls[0].accepts[0].amount: Must be a numeric string"),
            ("amount", "0", "PAY-063 restrictedCalls[0].accepts[0].amount: Must be positive"),
            ("amount", "-5", "PAY-063 restrictedCalls[0].accepts[0].amount: Must be positive"),
            ("amount", "", "PAY-063 restrictedCalls[0].accepts[0].amount: Must be positive"),
            ("asset", ["0x"], "PAY-071 restrictedCalls[0].accepts[0].asset: Must be a string"),
            ("asset", "0x1234", "PAY-072 restrictedCalls[0].accepts[0].asset: Invalid EVM address format"),
            ("payTo", 5, "PAY-081 restrictedCalls[0].accepts[0].payTo: Must be a string"),
            ("payTo", "0xZZ4d4C1E3bD0C6e3c8e1E5dA1f3a0E7c9B2D4F6A", "PAY-082 restrictedCalls[0].accepts[0].payTo: Invalid EVM address format"),
            ("maxTimeoutSeconds", "300", "PAY-091 restrictedCalls[0].accepts[0].maxTimeoutSeconds: Must be a number"),
            ("maxTimeoutSeconds", 0, "PAY-092 restrictedCalls[0].accepts[0].maxTimeoutSeconds: Must be greater than 0"),
            ("extra", "USDC", "PAY-100 restrictedCalls[0].accepts[0].extra: Must be an object"),
        ],
    )
    def test_invalid_field(
        self,
        valid_payment_required: dict[str, Any],
        field: str,
        value: Any,
        expected: str,
    ) -> None:
        """Each malformed field yields exactly its own diagnostic."""
        valid_payment_required["accepts"][0][field] = value

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == [expected]
        assert result.valid_payment_options == []

    @pytest.mark.parametrize(
        ("field", "code"),
        [
            ("scheme", "PAY-040"),
            ("network", "PAY-050"),
            ("amount", "PAY-060"),
            ("asset", "PAY-070"),
            ("payTo", "PAY-080"),
            ("maxTimeoutSeconds", "PAY-090"),
        ],
    )
    def test_missing_field(self, valid_payment_required: dict[str, Any], field: str, code: str) -> None:
        del valid_payment_required["accepts"][0][field]

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == [code]
        assert result.messages[0].endswith("Missing value")

    def test_lowercase_pay_to_is_not_checksummed(self, valid_payment_required: dict[str, Any]) -> None:
        """An all-lowercase address is well formed but flagged PAY-083."""
        option = valid_payment_required["accepts"][0]
        option["payTo"] = option["payTo"].lower()

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == ["PAY-083 restrictedCalls[0].accepts[0].payTo: Not checksummed"]
        assert result.valid_payment_options == []

    def test_uppercase_pay_to_is_not_checksummed(self) -> None:
        assert looks_checksummed("0x" + "AB" * 20) is False
        assert looks_checksummed("0x" + "ab" * 20) is False
        assert looks_checksummed("0x" + "aB" * 20) is True

    def test_solana_option_needs_no_extra(self, valid_payment_required: dict[str, Any]) -> None:
        option = valid_payment_required["accepts"][0]
        option["network"] = "solana:devnet"
        del option["extra"]

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == []

    def test_evm_extra_recommendations(self, valid_payment_required: dict[str, Any]) -> None:
        """EVM options with an empty extra are flagged and not valid."""
        valid_payment_required["accepts"][0]["extra"] = {}

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == [
            "PAY-101 restrictedCalls[0].accepts[0].extra.name: Missing (recommended for EVM)",
            "PAY-102 restrictedCalls[0].accepts[0].extra.version: Missing (recommended for EIP-3009)",
        ]
        assert result.valid_payment_options == []

    def test_missing_extra_is_fine(self, valid_payment_required: dict[str, Any]) -> None:
        del valid_payment_required["accepts"][0]["extra"]

        result = validate_payments([_call(valid_payment_required)])

        assert result.messages == []

    def test_non_object_option(self, valid_payment_required: dict[str, Any]) -> None:
        """A non-object option is checked as an empty one."""
        valid_payment_required["accepts"] = ["exact"]

        result = validate_payments([_call(valid_payment_required)])

        assert _codes(result.messages) == ["PAY-040", "PAY-050", "PAY-060", "PAY-070", "PAY-080", "PAY-090"]
        assert result.valid_payment_options == []

    def test_only_valid_options_are_kept_in_order(
        self,
        valid_payment_required: dict[str, Any],
        valid_option: dict[str, Any],
    ) -> None:
        second = copy.deepcopy(valid_option)
        second["network"] = "eip155:8453"
        broken = copy.deepcopy(valid_option)
        broken["amount"] = "0"
        valid_payment_required["accepts"] = [valid_option, broken, second]

        result = validate_payments([_call(valid_payment_required)])

        assert result.valid_payment_options == [valid_option, second]
        assert result.messages == ["PAY-063 restrictedCalls[0].accepts[1].amount: Must be positive"]

    def test_options_collected_across_calls(self, valid_payment_required: dict[str, Any]) -> None:
        other = copy.deepcopy(valid_payment_required)
        other["accepts"][0]["network"] = "solana:mainnet"

        result = validate_payments([
            _call(valid_payment_required, "a"),
            _call(None, "b"),
            _call(other, "c"),
        ])

        assert [o["network"] for o in result.valid_payment_options] == ["eip155:84532", "solana:mainnet"]
        assert result.messages == ["PAY-001 restrictedCalls[1]: PaymentRequired data is missing"]

    def test_accepts_plain_mappings(self, valid_payment_required: dict[str, Any]) -> None:
        """Restricted calls loaded from JSON use the camelCase key."""
        validator = PaymentRuleValidator()

        result = validator.validate([{"toolName": "x", "paymentRequired": valid_payment_required}])

        assert result.messages == []
        assert len(result.valid_payment_options) == 1


class TestRuleMetadata:
    """Tests for the rule registry."""

    def test_rule_ids_unique(self) -> None:
        ids = [rule.rule_id for rule in DEFAULT_RULES]
        assert len(ids) == len(set(ids))

    def test_rulesets_partition(self) -> None:
        assert len(DEFAULT_RULES) == len(REQUIREMENT_RULES) + len(OPTION_RULES)
        assert all(rule.metadata.target == "option" for rule in OPTION_RULES)
        assert all(rule.metadata.target == "requirement" for rule in REQUIREMENT_RULES)

    def test_codes_are_declared(self) -> None:
        meta = X402PayToRule().metadata

        assert meta.codes == ["PAY-080", "PAY-081", "PAY-082", "PAY-083"]
        assert meta.rule_id == "x402-pay-to"
