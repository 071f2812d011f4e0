"""
Result and report models.

Engines return result records carrying their accumulated diagnostics;
the orchestrator folds them into an AuditReport or a ComparisonReport.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mcpscope.domain.diff import SnapshotDiff
from mcpscope.domain.models import (
    AuditSnapshot,
    DerivedCategories,
    Diagnostic,
    OAuthProfile,
    RestrictedCall,
    Severity,
    SnapshotEntries,
)


class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    messages: list[str] = Field(default_factory=list, description="Diagnostics in emission order")

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Messages parsed back into Diagnostic records."""
        return [Diagnostic.parse(message) for message in self.messages]

    def messages_with_code(self, code: str) -> list[str]:
        """Messages whose code equals or starts with `code` (e.g. "PAY" or "PAY-010")."""
        return [m for m in self.messages if m.split(" ", 1)[0].startswith(code)]


class OAuthProbeResult(_ReportModel):
    """Outcome of OAuth discovery for one endpoint."""

    supports_oauth: bool = Field(default=False, alias="supportsOAuth")
    oauth_profile: OAuthProfile = Field(default_factory=OAuthProfile)
    protected_resource: dict[str, Any] | None = None
    auth_server: dict[str, Any] | None = None


class ProbeResult(_ReportModel):
    """Outcome of probing every declared tool for payment requirements."""

    status: bool = False
    restricted_calls: list[RestrictedCall] = Field(default_factory=list)
    payment_options: list[Any] = Field(default_factory=list)


class PaymentValidationResult(_ReportModel):
    """Outcome of validating all captured payment requirements."""

    valid_payment_options: list[Any] = Field(default_factory=list)


class AuditReport(_ReportModel):
    """
    Complete audit of one server.

    This is the primary output of ``start``: the derived categories and the
    raw entries, plus every diagnostic collected along the way.
    """

    status: bool = False
    categories: DerivedCategories = Field(default_factory=DerivedCategories)
    entries: SnapshotEntries

    @property
    def snapshot(self) -> AuditSnapshot:
        return AuditSnapshot(categories=self.categories, entries=self.entries)

    @property
    def exit_code(self) -> int:
        """Exit code for CLI (0 = passed, 1 = failed)."""
        return 0 if self.status else 1

    def messages_by_severity(self, severity: Severity) -> list[str]:
        return [str(d) for d in self.diagnostics if d.severity == severity]

    def to_json(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json", by_alias=True)


class ComparisonReport(_ReportModel):
    """Result of comparing two snapshots."""

    status: bool = True
    has_changes: bool = False
    diff: SnapshotDiff = Field(default_factory=SnapshotDiff)

    def to_json(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json", by_alias=True)
