"""
Snapshot diff engine.

Compares two audit snapshots section by section. Each section produces a
typed delta; the comparison has changes when any delta does.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from mcpscope.domain.diff import (
    CapabilitiesDelta,
    CategoriesDelta,
    FieldChange,
    LatencyChange,
    LatencyDelta,
    PaymentDelta,
    PaymentToolChange,
    ServerDelta,
    SnapshotDiff,
    ToolChange,
    ToolsDelta,
    ValueChange,
)
from mcpscope.domain.models import AuditSnapshot, diagnostic
from mcpscope.domain.report import AuditReport, ComparisonReport

logger = logging.getLogger(__name__)

SERVER_FIELDS = ("serverName", "serverVersion", "serverDescription", "protocolVersion", "instructions")
PAYMENT_OPTION_FIELDS = ("scheme", "amount", "asset", "payTo", "maxTimeoutSeconds", "extra")
LATENCY_FIELDS = ("ping", "listTools")

SnapshotLike = AuditSnapshot | AuditReport | Mapping[str, Any]


def diff_snapshots(before: SnapshotLike, after: SnapshotLike) -> ComparisonReport:
    """Compare two snapshots without input validation."""
    return SnapshotDiffEngine().compare(before, after)


class SnapshotDiffEngine:
    """
    Structural comparison of two snapshots.

    Both sides are normalized to their camelCase JSON shape first, so models
    and loaded JSON files compare the same way.
    """

    def compare(self, before: SnapshotLike, after: SnapshotLike) -> ComparisonReport:
        before_doc = as_document(before)
        after_doc = as_document(after)

        before_entries = _mapping(before_doc.get("entries"))
        after_entries = _mapping(after_doc.get("entries"))

        messages = check_integrity(before_entries, after_entries)

        diff = SnapshotDiff(
            server=diff_server(before_entries, after_entries),
            capabilities=diff_capabilities(
                _mapping(before_entries.get("capabilities")),
                _mapping(after_entries.get("capabilities")),
            ),
            tools=diff_tools(_list(before_entries.get("tools")), _list(after_entries.get("tools"))),
            x402=diff_payments(_mapping(before_entries.get("x402")), _mapping(after_entries.get("x402"))),
            latency=diff_latency(_mapping(before_entries.get("latency")), _mapping(after_entries.get("latency"))),
            categories=diff_categories(_mapping(before_doc.get("categories")), _mapping(after_doc.get("categories"))),
        )

        logger.debug("Comparison finished: has_changes=%s, %d message(s)", diff.has_changes, len(messages))
        return ComparisonReport(status=True, messages=messages, has_changes=diff.has_changes, diff=diff)


def as_document(snapshot: SnapshotLike) -> dict[str, Any]:
    """Return the camelCase JSON shape of a snapshot, report or mapping."""
    if isinstance(snapshot, AuditReport):
        snapshot = snapshot.snapshot
    if isinstance(snapshot, AuditSnapshot):
        return snapshot.to_json()
    return dict(snapshot)


def check_integrity(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[str]:
    messages: list[str] = []

    if before.get("endpoint") != after.get("endpoint"):
        messages.append(diagnostic("CMP-001", "compare", "Snapshots are from different servers"))

    before_ts = before.get("timestamp")
    after_ts = after.get("timestamp")

    if not before_ts:
        messages.append(diagnostic("CMP-002", "compare", "Before snapshot has no timestamp"))

    if before_ts and after_ts and str(after_ts) < str(before_ts):
        messages.append(diagnostic("CMP-003", "compare", "After snapshot is older than before"))

    return messages


def diff_server(before: Mapping[str, Any], after: Mapping[str, Any]) -> ServerDelta:
    changed: dict[str, ValueChange] = {}
    for field in SERVER_FIELDS:
        old = before.get(field) or None
        new = after.get(field) or None
        if old != new:
            changed[field] = ValueChange(before=old, after=new)
    return ServerDelta(changed=changed)


def diff_capabilities(before: Mapping[str, Any], after: Mapping[str, Any]) -> CapabilitiesDelta:
    added = {key: value for key, value in after.items() if key not in before}
    removed = {key: value for key, value in before.items() if key not in after}
    modified = {
        key: ValueChange(before=before[key], after=value)
        for key, value in after.items()
        if key in before and canonical(before[key]) != canonical(value)
    }
    return CapabilitiesDelta(added=added, removed=removed, modified=modified)


def diff_tools(before: list[Any], after: list[Any]) -> ToolsDelta:
    before_by_name = _tools_by_name(before)
    after_by_name = _tools_by_name(after)

    added = [name for name in after_by_name if name not in before_by_name]
    removed = [name for name in before_by_name if name not in after_by_name]

    modified: list[ToolChange] = []
    for name, after_tool in after_by_name.items():
        if name not in before_by_name:
            continue
        changes = diff_tool(before_by_name[name], after_tool)
        if changes:
            modified.append(ToolChange(name=name, changes=changes))

    return ToolsDelta(added=added, removed=removed, modified=modified)


def diff_tool(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[FieldChange]:
    """Field-level changes between two versions of the same tool."""
    changes: list[FieldChange] = []

    old_description = before.get("description") or None
    new_description = after.get("description") or None
    if old_description != new_description:
        changes.append(FieldChange(field="description", before=old_description, after=new_description))

    changes.extend(diff_input_schema(_mapping(before.get("inputSchema")), _mapping(after.get("inputSchema"))))
    return changes


def diff_input_schema(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[FieldChange]:
    changes: list[FieldChange] = []

    before_props = _mapping(before.get("properties"))
    after_props = _mapping(after.get("properties"))

    added_keys = [key for key in after_props if key not in before_props]
    removed_keys = [key for key in before_props if key not in after_props]

    if added_keys:
        changes.append(FieldChange(field="inputSchema.properties", kind="added", keys=added_keys))
    if removed_keys:
        changes.append(FieldChange(field="inputSchema.properties", kind="removed", keys=removed_keys))

    for key, new_prop in after_props.items():
        if key not in before_props:
            continue
        changes.extend(_diff_property(key, _mapping(before_props[key]), _mapping(new_prop)))

    before_required = _list(before.get("required"))
    after_required = _list(after.get("required"))
    added_required = [item for item in after_required if item not in before_required]
    removed_required = [item for item in before_required if item not in after_required]
    if added_required or removed_required:
        changes.append(
            FieldChange(
                field="inputSchema.required",
                before=before_required,
                after=after_required,
                added=added_required,
                removed=removed_required,
            )
        )

    return changes


def _diff_property(key: str, before: Mapping[str, Any], after: Mapping[str, Any]) -> list[FieldChange]:
    prefix = f"inputSchema.properties.{key}"
    changes: list[FieldChange] = []

    if before.get("type") != after.get("type"):
        changes.append(FieldChange(field=f"{prefix}.type", before=before.get("type"), after=after.get("type")))

    old_enum = before.get("enum") or None
    new_enum = after.get("enum") or None
    if canonical(old_enum) != canonical(new_enum):
        changes.append(FieldChange(field=f"{prefix}.enum", before=old_enum, after=new_enum))

    if canonical(before.get("default")) != canonical(after.get("default")):
        changes.append(
            FieldChange(field=f"{prefix}.default", before=before.get("default"), after=after.get("default"))
        )

    for bound in ("minimum", "maximum"):
        if before.get(bound) != after.get(bound):
            changes.append(FieldChange(field=f"{prefix}.{bound}", before=before.get(bound), after=after.get(bound)))

    old_description = before.get("description") or None
    new_description = after.get("description") or None
    if old_description != new_description:
        changes.append(FieldChange(field=f"{prefix}.description", before=old_description, after=new_description))

    return changes


def diff_payments(before: Mapping[str, Any], after: Mapping[str, Any]) -> PaymentDelta:
    before_tools = _mapping(before.get("perTool"))
    after_tools = _mapping(after.get("perTool"))

    tools_added = [name for name in after_tools if name not in before_tools]
    tools_removed = [name for name in before_tools if name not in after_tools]

    tools_modified: list[PaymentToolChange] = []
    for name, after_entry in after_tools.items():
        if name not in before_tools:
            continue
        changes = diff_tool_payment(_mapping(before_tools[name]), _mapping(after_entry))
        if changes:
            tools_modified.append(PaymentToolChange(tool_name=name, changes=changes))

    changed: dict[str, ValueChange] = {}
    for field in ("networks", "schemes"):
        if canonical(before.get(field) or [], sort_keys=False) != canonical(after.get(field) or [], sort_keys=False):
            changed[field] = ValueChange(before=before.get(field), after=after.get(field))

    return PaymentDelta(
        tools_added=tools_added,
        tools_removed=tools_removed,
        tools_modified=tools_modified,
        changed=changed,
    )


def diff_tool_payment(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[FieldChange]:
    """Changes to one tool's payment requirement, per network."""
    changes: list[FieldChange] = []

    for field in ("resource", "x402Version"):
        if canonical(before.get(field)) != canonical(after.get(field)):
            changes.append(FieldChange(field=field, before=before.get(field), after=after.get(field)))

    before_networks = [network for network in _list(before.get("networks")) if isinstance(network, str)]
    after_networks = [network for network in _list(after.get("networks")) if isinstance(network, str)]

    added = [network for network in after_networks if network not in before_networks]
    removed = [network for network in before_networks if network not in after_networks]

    if added:
        changes.append(FieldChange(field="networks", kind="added", networks=added))
    if removed:
        changes.append(FieldChange(field="networks", kind="removed", networks=removed))

    before_by_network = _mapping(before.get("byNetwork"))
    after_by_network = _mapping(after.get("byNetwork"))

    for network in after_networks:
        if network not in before_networks:
            continue
        old = _mapping(before_by_network.get(network))
        new = _mapping(after_by_network.get(network))
        for field in PAYMENT_OPTION_FIELDS:
            old_value = old.get(field) or None
            new_value = new.get(field) or None
            if canonical(old_value) != canonical(new_value):
                changes.append(FieldChange(field=f"byNetwork.{network}.{field}", before=old_value, after=new_value))

    return changes


def diff_latency(before: Mapping[str, Any], after: Mapping[str, Any]) -> LatencyDelta:
    changed: dict[str, LatencyChange] = {}
    for field in LATENCY_FIELDS:
        old = before.get(field)
        new = after.get(field)
        if not _is_number(old) or not _is_number(new) or old == new:
            continue
        changed[field] = LatencyChange(before=old, after=new, delta=new - old)
    return LatencyDelta(changed=changed)


def diff_categories(before: Mapping[str, Any], after: Mapping[str, Any]) -> CategoriesDelta:
    changed: dict[str, ValueChange] = {}
    for key in [*before, *(k for k in after if k not in before)]:
        if before.get(key) != after.get(key):
            changed[key] = ValueChange(before=before.get(key), after=after.get(key))
    return CategoriesDelta(changed=changed)


def canonical(value: Any, sort_keys: bool = True) -> str:
    """Deep-serialized form used for structural equality."""
    return json.dumps(value, sort_keys=sort_keys, default=str)


def _tools_by_name(tools: list[Any]) -> dict[str, Mapping[str, Any]]:
    return {
        tool["name"]: tool
        for tool in tools
        if isinstance(tool, Mapping) and isinstance(tool.get("name"), str)
    }


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
