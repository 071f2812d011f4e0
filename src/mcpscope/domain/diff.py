"""
Typed deltas produced by the snapshot diff engine.

Each section of a snapshot gets its own delta model; a delta knows whether
it carries any change so the comparison report can OR them together.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _DeltaModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ValueChange(_DeltaModel):
    """A scalar or structured value that changed."""

    before: Any = None
    after: Any = None


class FieldChange(_DeltaModel):
    """
    One change inside a tool schema or a per-tool payment entry.

    Plain value changes carry `before`/`after`. Set-like changes carry a
    `kind` ("added" or "removed") together with `keys` (schema properties)
    or `networks`; `required` changes carry `added`/`removed` members.
    """

    field: str
    before: Any = None
    after: Any = None
    kind: str | None = Field(default=None, alias="type")
    keys: list[str] | None = None
    networks: list[str] | None = None
    added: list[Any] | None = None
    removed: list[Any] | None = None


class ServerDelta(_DeltaModel):
    changed: dict[str, ValueChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


class CapabilitiesDelta(_DeltaModel):
    added: dict[str, Any] = Field(default_factory=dict)
    removed: dict[str, Any] = Field(default_factory=dict)
    modified: dict[str, ValueChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


class ToolChange(_DeltaModel):
    name: str
    changes: list[FieldChange] = Field(default_factory=list)


class ToolsDelta(_DeltaModel):
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    modified: list[ToolChange] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


class PaymentToolChange(_DeltaModel):
    tool_name: str
    changes: list[FieldChange] = Field(default_factory=list)


class PaymentDelta(_DeltaModel):
    tools_added: list[str] = Field(default_factory=list)
    tools_removed: list[str] = Field(default_factory=list)
    tools_modified: list[PaymentToolChange] = Field(default_factory=list)
    changed: dict[str, ValueChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.tools_added or self.tools_removed or self.tools_modified or self.changed)


class LatencyChange(_DeltaModel):
    before: int | float
    after: int | float
    delta: int | float


class LatencyDelta(_DeltaModel):
    changed: dict[str, LatencyChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


class CategoriesDelta(_DeltaModel):
    changed: dict[str, ValueChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


class SnapshotDiff(_DeltaModel):
    """All six section deltas of a comparison."""

    server: ServerDelta = Field(default_factory=ServerDelta)
    capabilities: CapabilitiesDelta = Field(default_factory=CapabilitiesDelta)
    tools: ToolsDelta = Field(default_factory=ToolsDelta)
    x402: PaymentDelta = Field(default_factory=PaymentDelta)
    latency: LatencyDelta = Field(default_factory=LatencyDelta)
    categories: CategoriesDelta = Field(default_factory=CategoriesDelta)

    @property
    def has_changes(self) -> bool:
        return (
            self.server.has_changes
            or self.capabilities.has_changes
            or self.tools.has_changes
            or self.x402.has_changes
            or self.latency.has_changes
            or self.categories.has_changes
        )
