"""
Validation rules for mcpscope.

Each rule is an independent, testable unit that checks one part of an
x402 payment requirement.
"""

from mcpscope.rules.base import BaseRule, Rule
from mcpscope.rules.x402_option import (
    X402AmountRule,
    X402AssetRule,
    X402ExtraRule,
    X402MaxTimeoutRule,
    X402NetworkRule,
    X402PayToRule,
    X402SchemeRule,
)
from mcpscope.rules.x402_requirement import (
    X402AcceptsRule,
    X402ResourceRule,
    X402VersionRule,
)

# Applied once per PaymentRequirement, in order
REQUIREMENT_RULES: list[Rule] = [
    X402VersionRule(),
    X402ResourceRule(),
    X402AcceptsRule(),
]

# Applied to every entry of `accepts`, in order
OPTION_RULES: list[Rule] = [
    X402SchemeRule(),
    X402NetworkRule(),
    X402AmountRule(),
    X402AssetRule(),
    X402PayToRule(),
    X402MaxTimeoutRule(),
    X402ExtraRule(),
]

DEFAULT_RULES: list[Rule] = [*REQUIREMENT_RULES, *OPTION_RULES]

__all__ = [
    # Base
    "BaseRule",
    "Rule",
    # Requirement
    "X402VersionRule",
    "X402ResourceRule",
    "X402AcceptsRule",
    # Option
    "X402SchemeRule",
    "X402NetworkRule",
    "X402AmountRule",
    "X402AssetRule",
    "X402PayToRule",
    "X402MaxTimeoutRule",
    "X402ExtraRule",
    # Rulesets
    "REQUIREMENT_RULES",
    "OPTION_RULES",
    "DEFAULT_RULES",
]
