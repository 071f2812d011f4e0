"""
Base rule infrastructure.

Defines the Rule protocol and base classes for all x402 validation rules.
Rules are pure functions with no I/O.
"""

from __future__ import annotations

import re
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from mcpscope.domain.models import RuleMetadata, Severity, diagnostic

EVM_ADDRESS_PATTERN = re.compile(r"0x[0-9a-fA-F]{40}")


@runtime_checkable
class Rule(Protocol):
    """
    Protocol for all validation rules.

    Rules must be stateless and side-effect free. They receive the object
    under test and the context prefix used in messages, and return the
    diagnostics they produced.
    """

    @property
    def rule_id(self) -> str:
        """Unique rule identifier, e.g., x402-version."""
        ...

    @property
    def metadata(self) -> RuleMetadata:
        """Rule metadata including the codes it can emit."""
        ...

    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        """
        Check an object for problems.

        Args:
            target: A PaymentRequirement or a single PaymentOption.
            prefix: Context prefix for messages, e.g. restrictedCalls[0].

        Returns:
            List of diagnostic strings. Empty list if no issues found.
        """
        ...


class BaseRule:
    """
    Base class for validation rules.

    Provides common functionality for rule implementation.
    Subclasses must implement `check()` and define class attributes.
    """

    # Subclasses must override these
    rule_id: str = ""
    name: str = ""
    description: str = ""
    severity: Severity = Severity.HIGH
    codes: tuple[str, ...] = ()
    target: str = "requirement"

    @property
    def metadata(self) -> RuleMetadata:
        """Generate metadata from class attributes."""
        return RuleMetadata(
            rule_id=self.rule_id,
            name=self.name,
            description=self.description,
            severity=self.severity,
            codes=list(self.codes),
            target=self.target,
        )

    @abstractmethod
    def check(self, target: Mapping[str, Any], prefix: str) -> list[str]:
        """Check an object for problems."""
        raise NotImplementedError

    def _diagnostic(self, code: str, context: str, text: str) -> str:
        """Helper to render a diagnostic emitted by this rule."""
        return diagnostic(code, context, text)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.rule_id}>"


def is_number(value: Any) -> bool:
    """True for ints and floats, but not bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_evm_address(value: str) -> bool:
    return EVM_ADDRESS_PATTERN.fullmatch(value) is not None
