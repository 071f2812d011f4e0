"""
mcpscope: Auditor for Model Context Protocol (MCP) servers

Connects to a remote MCP server, checks its OAuth discovery documents,
probes its tools for x402 payment requirements and records everything in
a snapshot that can be diffed against a later one.

Usage:
    # CLI
    $ mcpscope audit https://example.com/mcp --output before.json
    $ mcpscope compare before.json after.json

    # Python API
    import anyio
    from mcpscope import audit_server, compare_snapshots

    report = anyio.run(audit_server, "https://example.com/mcp")
    print(report.status, report.messages)
"""

from mcpscope.domain.models import (
    AuditSnapshot,
    DerivedCategories,
    Diagnostic,
    Severity,
    SnapshotEntries,
)
from mcpscope.domain.report import AuditReport, ComparisonReport
from mcpscope.engine.auditor import ServerAuditor, audit_server, compare_snapshots

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Domain models
    "AuditSnapshot",
    "DerivedCategories",
    "Diagnostic",
    "Severity",
    "SnapshotEntries",
    # Reports
    "AuditReport",
    "ComparisonReport",
    # Engine
    "ServerAuditor",
    "audit_server",
    "compare_snapshots",
]
