"""
Input validation for the public operations.

Failures here are the only fatal errors: they are raised as
InputValidationError before any network traffic happens.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from mcpscope.domain.exceptions import InputValidationError
from mcpscope.domain.models import AuditSnapshot, diagnostic
from mcpscope.domain.report import AuditReport

# Sentinel for "argument not supplied", distinct from an explicit None
MISSING: Any = object()


def validate_start(endpoint: Any = MISSING, timeout: Any = MISSING) -> list[str]:
    """Check the arguments of ``start``. Returns VAL-001..006 messages."""
    messages: list[str] = []

    if endpoint is MISSING or endpoint is None:
        messages.append(diagnostic("VAL-001", "endpoint", "Missing value"))
    elif not isinstance(endpoint, str):
        messages.append(diagnostic("VAL-002", "endpoint", "Must be a string"))
    elif endpoint.strip() == "":
        messages.append(diagnostic("VAL-003", "endpoint", "Must not be empty"))
    elif not is_absolute_url(endpoint):
        messages.append(diagnostic("VAL-004", "endpoint", "Must be a valid URL"))

    if timeout is not MISSING and timeout is not None:
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
            messages.append(diagnostic("VAL-005", "timeout", "Must be a number"))
        elif timeout <= 0:
            messages.append(diagnostic("VAL-006", "timeout", "Must be greater than 0"))

    return messages


def validate_compare(before: Any = MISSING, after: Any = MISSING) -> list[str]:
    """Check the arguments of ``compare``. Returns VAL-010..015 messages."""
    return [
        *_validate_snapshot(before, "before", ("VAL-010", "VAL-011", "VAL-012")),
        *_validate_snapshot(after, "after", ("VAL-013", "VAL-014", "VAL-015")),
    ]


def ensure_valid(messages: list[str]) -> None:
    """Raise InputValidationError when validation produced messages."""
    if messages:
        raise InputValidationError(messages)


def is_absolute_url(value: str) -> bool:
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc or parts.path)


def _validate_snapshot(value: Any, name: str, codes: tuple[str, str, str]) -> list[str]:
    missing, not_object, incomplete = codes

    if value is MISSING:
        return [diagnostic(missing, name, "Missing value")]

    if isinstance(value, (AuditSnapshot, AuditReport)):
        return []

    if not isinstance(value, Mapping):
        return [diagnostic(not_object, name, "Must be an object")]

    if not all(_is_section(value.get(key)) for key in ("categories", "entries")):
        return [diagnostic(incomplete, name, "Missing categories or entries")]

    return []


def _is_section(value: Any) -> bool:
    return isinstance(value, Mapping) and len(value) > 0
