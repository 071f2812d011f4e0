"""
JSON renderer for mcpscope.

Outputs machine-readable reports. Audit reports serialize to the
camelCase snapshot shape, so a saved report can be fed back into
``mcpscope compare``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mcpscope.domain.report import AuditReport, ComparisonReport


class JsonRenderer:
    """
    Renders audit and comparison reports as JSON.

    Provides machine-readable output for CI/CD pipelines
    and downstream processing.
    """

    def __init__(
        self,
        indent: int = 2,
        include_messages: bool = True,
    ) -> None:
        """
        Initialize the JSON renderer.

        Args:
            indent: JSON indentation level.
            include_messages: Whether to include status and messages, or
                only the bare snapshot.
        """
        self.indent = indent
        self.include_messages = include_messages

    def render(self, report: AuditReport | ComparisonReport) -> str:
        """
        Render a report as a JSON string.

        Args:
            report: The report to render.

        Returns:
            JSON string.
        """
        return json.dumps(self.to_dict(report), indent=self.indent, default=str)

    def to_dict(self, report: AuditReport | ComparisonReport) -> dict[str, Any]:
        data = report.to_json()
        if not self.include_messages:
            data.pop("status", None)
            data.pop("messages", None)
        return data

    def render_to_file(self, report: AuditReport | ComparisonReport, path: str | Path) -> None:
        """
        Render a report to a JSON file.

        Args:
            report: The report to render.
            path: Output file path.
        """
        Path(path).write_text(self.render(report), encoding="utf-8")


def render_json(report: AuditReport | ComparisonReport, **kwargs) -> str:
    """
    Convenience function to render a report as JSON.

    Args:
        report: The report to render.
        **kwargs: Options passed to JsonRenderer.

    Returns:
        JSON string.
    """
    renderer = JsonRenderer(**kwargs)
    return renderer.render(report)
