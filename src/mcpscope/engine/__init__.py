"""
Engine layer for mcpscope.

Contains the discovery, probing, validation and comparison engines.
"""

from mcpscope.engine.auditor import ServerAuditor, audit_server, compare_snapshots
from mcpscope.engine.differ import SnapshotDiffEngine
from mcpscope.engine.oauth import OAuthDiscoveryEngine
from mcpscope.engine.payment_validator import PaymentRuleValidator, validate_payments
from mcpscope.engine.prober import ToolProbeEngine

__all__ = [
    "ServerAuditor",
    "audit_server",
    "compare_snapshots",
    "SnapshotDiffEngine",
    "OAuthDiscoveryEngine",
    "PaymentRuleValidator",
    "validate_payments",
    "ToolProbeEngine",
]
