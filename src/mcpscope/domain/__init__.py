"""
Domain layer for mcpscope.

Contains all core data structures with zero external dependencies
beyond Pydantic.
"""

from mcpscope.domain.diff import SnapshotDiff
from mcpscope.domain.exceptions import (
    ConfigError,
    InputValidationError,
    McpScopeError,
    SnapshotLoadError,
    ToolCallError,
)
from mcpscope.domain.models import (
    AuditSnapshot,
    DerivedCategories,
    Diagnostic,
    OAuthProfile,
    PaymentProfile,
    RestrictedCall,
    RuleMetadata,
    Severity,
    SnapshotEntries,
)
from mcpscope.domain.report import (
    AuditReport,
    ComparisonReport,
    OAuthProbeResult,
    PaymentValidationResult,
    ProbeResult,
)

__all__ = [
    # Models
    "AuditSnapshot",
    "DerivedCategories",
    "Diagnostic",
    "OAuthProfile",
    "PaymentProfile",
    "RestrictedCall",
    "RuleMetadata",
    "Severity",
    "SnapshotEntries",
    "SnapshotDiff",
    # Reports
    "AuditReport",
    "ComparisonReport",
    "OAuthProbeResult",
    "PaymentValidationResult",
    "ProbeResult",
    # Exceptions
    "McpScopeError",
    "InputValidationError",
    "ConfigError",
    "SnapshotLoadError",
    "ToolCallError",
]
