"""
Payment requirement validator.

Runs the x402 rules against every captured payment requirement and
collects the options that passed every check.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from mcpscope.domain.models import RestrictedCall, diagnostic
from mcpscope.domain.report import PaymentValidationResult
from mcpscope.rules import OPTION_RULES, REQUIREMENT_RULES
from mcpscope.rules.base import Rule

logger = logging.getLogger(__name__)

# Requirement-level groups that taint every option of the requirement
_BLOCKING_RULES = frozenset({"x402-version", "x402-resource"})


def validate_payments(
    restricted_calls: Sequence[RestrictedCall | Mapping[str, Any]],
    collected_options: Sequence[Any] | None = None,
) -> PaymentValidationResult:
    """
    Validate captured x402 payment requirements with the default rules.

    Args:
        restricted_calls: Calls that failed with a payment requirement.
        collected_options: Raw options gathered by the prober. Accepted for
            symmetry with the probe result; validation works from the
            requirements themselves.

    Returns:
        PaymentValidationResult with diagnostics and the valid options.
    """
    return PaymentRuleValidator().validate(restricted_calls, collected_options)


class PaymentRuleValidator:
    """
    Applies requirement rules and option rules to restricted calls.

    Rules accumulate independently: a failing version check does not stop
    the accepts list from being inspected, so one pass reports everything.
    """

    def __init__(
        self,
        requirement_rules: list[Rule] | None = None,
        option_rules: list[Rule] | None = None,
    ) -> None:
        self.requirement_rules = requirement_rules if requirement_rules is not None else REQUIREMENT_RULES
        self.option_rules = option_rules if option_rules is not None else OPTION_RULES

    def validate(
        self,
        restricted_calls: Sequence[RestrictedCall | Mapping[str, Any]],
        collected_options: Sequence[Any] | None = None,
    ) -> PaymentValidationResult:
        messages: list[str] = []
        valid_options: list[Any] = []

        for index, call in enumerate(restricted_calls):
            prefix = f"restrictedCalls[{index}]"
            requirement = _payment_required(call)

            if requirement is None:
                messages.append(diagnostic("PAY-001", prefix, "PaymentRequired data is missing"))
                continue

            if not isinstance(requirement, Mapping):
                messages.append(diagnostic("PAY-002", prefix, "PaymentRequired is not an object"))
                continue

            messages.extend(self._validate_requirement(requirement, prefix, valid_options))

        logger.debug(
            "Validated %d restricted call(s): %d message(s), %d valid option(s)",
            len(restricted_calls),
            len(messages),
            len(valid_options),
        )
        return PaymentValidationResult(messages=messages, valid_payment_options=valid_options)

    def _validate_requirement(
        self,
        requirement: Mapping[str, Any],
        prefix: str,
        valid_options: list[Any],
    ) -> list[str]:
        messages: list[str] = []
        blocked = False

        for rule in self.requirement_rules:
            findings = rule.check(requirement, prefix)
            if findings and rule.rule_id in _BLOCKING_RULES:
                blocked = True
            messages.extend(findings)

        accepts = requirement.get("accepts")
        if not isinstance(accepts, list):
            return messages

        for position, option in enumerate(accepts):
            option_prefix = f"{prefix}.accepts[{position}]"
            target = option if isinstance(option, Mapping) else {}

            findings: list[str] = []
            for rule in self.option_rules:
                findings.extend(rule.check(target, option_prefix))

            messages.extend(findings)
            if not findings and not blocked:
                valid_options.append(option)

        return messages


def _payment_required(call: RestrictedCall | Mapping[str, Any]) -> Any:
    if isinstance(call, RestrictedCall):
        return call.payment_required
    if isinstance(call, Mapping):
        return call.get("paymentRequired", call.get("payment_required"))
    return None
