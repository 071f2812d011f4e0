"""
Terminal renderer using Rich.

Outputs color-coded audit and comparison reports to the terminal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mcpscope.domain.models import Diagnostic, Severity

if TYPE_CHECKING:
    from mcpscope.domain.diff import SnapshotDiff
    from mcpscope.domain.report import AuditReport, ComparisonReport
    from mcpscope.rules.base import Rule


class TerminalRenderer:
    """
    Renders reports to the terminal using Rich.

    Audit reports show the derived categories and every diagnostic grouped
    by severity; comparison reports show one table per changed section.
    """

    # Color mapping for severities
    SEVERITY_COLORS = {
        Severity.CRITICAL: "red bold",
        Severity.HIGH: "red",
        Severity.MEDIUM: "yellow",
        Severity.LOW: "blue",
        Severity.INFO: "dim",
    }

    def __init__(
        self,
        console: Console | None = None,
        show_categories: bool = True,
    ) -> None:
        """
        Initialize the terminal renderer.

        Args:
            console: Rich console to use (creates new one if None).
            show_categories: Whether to print the derived category table.
        """
        self.console = console or Console()
        self.show_categories = show_categories

    def render(self, report: AuditReport) -> None:
        """
        Render an audit report to the terminal.

        Args:
            report: The audit report to render.
        """
        self._render_header(report)

        if self.show_categories:
            self._render_categories(report)

        if report.messages:
            self._render_messages(report)
        else:
            self.console.print("\n[green]✓ No issues found![/green]\n")

        self._render_footer(report)

    def _render_header(self, report: AuditReport) -> None:
        entries = report.entries
        server = entries.server_name or "unknown server"
        if entries.server_version:
            server += f" {entries.server_version}"

        self.console.print()
        self.console.print(
            Panel(
                f"[bold]MCP Server Audit[/bold]\n"
                f"Endpoint: [cyan]{entries.endpoint}[/cyan]\n"
                f"Server: {server}\n"
                f"Transport: {entries.transport or '-'} | "
                f"Protocol: {entries.protocol_version or '-'}\n"
                f"Timestamp: [dim]{entries.timestamp}[/dim]",
                title="mcpscope",
                border_style="blue",
            )
        )

    def _render_categories(self, report: AuditReport) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Category", style="bold")
        table.add_column("Value")

        for key, value in report.categories.model_dump(by_alias=True).items():
            if value is True:
                cell = Text("yes", style="green")
            elif value is False:
                cell = Text("no", style="dim")
            else:
                cell = Text(str(value) if value is not None else "-")
            table.add_row(key, cell)

        self.console.print()
        self.console.print(table)

    def _render_messages(self, report: AuditReport) -> None:
        self.console.print()
        self.console.print("[bold]Diagnostics:[/bold]")
        self.console.print()

        for severity in sorted(Severity, reverse=True):
            for message in report.messages_by_severity(severity):
                self._render_diagnostic(Diagnostic.parse(message))

        self.console.print()

    def _render_diagnostic(self, item: Diagnostic) -> None:
        color = self.SEVERITY_COLORS[item.severity]
        self.console.print(
            f"[{color}]{item.severity.value:<8}[/] [cyan]{item.code}[/cyan] "
            f"[dim]{item.context}[/dim]: {item.text}"
        )

    def _render_footer(self, report: AuditReport) -> None:
        if report.status:
            status = "[green]✓ PASSED[/green]"
        else:
            status = "[red]✗ FAILED[/red]"

        x402 = report.entries.x402
        latency = report.entries.latency
        self.console.print(
            f"Status: {status} | "
            f"Tools: {len(report.entries.tools)} | "
            f"Restricted: {len(x402.restricted_calls)} | "
            f"Ping: {_ms(latency.ping)} | "
            f"tools/list: {_ms(latency.list_tools)}"
        )
        self.console.print()

    def render_comparison(self, report: ComparisonReport) -> None:
        """
        Render a comparison report to the terminal.

        Args:
            report: The comparison report to render.
        """
        self.console.print()
        for message in report.messages:
            self._render_diagnostic(Diagnostic.parse(message))

        if not report.has_changes:
            self.console.print("\n[green]✓ No changes between snapshots[/green]\n")
            return

        table = Table(title="Changes", show_lines=False)
        table.add_column("Section", style="bold")
        table.add_column("Change")
        table.add_column("Before", style="red")
        table.add_column("After", style="green")

        for section, change, before, after in _comparison_rows(report.diff):
            table.add_row(section, change, _short(before), _short(after))

        self.console.print(table)
        self.console.print()

    def render_rules(self, rules: list[Rule]) -> None:
        """Print a table of the payment validation rules."""
        table = Table(title="x402 Payment Rules")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Target")
        table.add_column("Severity")
        table.add_column("Codes")

        for rule in rules:
            meta = rule.metadata
            severity_style = self.SEVERITY_COLORS.get(meta.severity, "")
            table.add_row(
                meta.rule_id,
                meta.name,
                meta.target,
                f"[{severity_style}]{meta.severity.value}[/]",
                _code_range(meta.codes),
            )

        self.console.print(table)


def _comparison_rows(diff: SnapshotDiff) -> list[tuple[str, str, object, object]]:
    rows: list[tuple[str, str, object, object]] = []

    for field, change in diff.server.changed.items():
        rows.append(("server", field, change.before, change.after))

    for key, value in diff.capabilities.added.items():
        rows.append(("capabilities", f"+ {key}", None, value))
    for key, value in diff.capabilities.removed.items():
        rows.append(("capabilities", f"- {key}", value, None))
    for key, change in diff.capabilities.modified.items():
        rows.append(("capabilities", f"~ {key}", change.before, change.after))

    for name in diff.tools.added:
        rows.append(("tools", f"+ {name}", None, None))
    for name in diff.tools.removed:
        rows.append(("tools", f"- {name}", None, None))
    for tool in diff.tools.modified:
        for change in tool.changes:
            rows.append(("tools", f"~ {tool.name}.{change.field}", *_change_sides(change)))

    for name in diff.x402.tools_added:
        rows.append(("x402", f"+ {name}", None, None))
    for name in diff.x402.tools_removed:
        rows.append(("x402", f"- {name}", None, None))
    for tool in diff.x402.tools_modified:
        for change in tool.changes:
            rows.append(("x402", f"~ {tool.tool_name}.{change.field}", *_change_sides(change)))
    for field, change in diff.x402.changed.items():
        rows.append(("x402", field, change.before, change.after))

    for field, latency in diff.latency.changed.items():
        rows.append(("latency", f"{field} ({latency.delta:+} ms)", latency.before, latency.after))

    for key, change in diff.categories.changed.items():
        rows.append(("categories", key, change.before, change.after))

    return rows


def _change_sides(change: object) -> tuple[object, object]:
    kind = getattr(change, "kind", None)
    members = getattr(change, "keys", None) or getattr(change, "networks", None)
    if kind == "added":
        return None, members
    if kind == "removed":
        return members, None
    return getattr(change, "before", None), getattr(change, "after", None)


def _code_range(codes: list[str]) -> str:
    if not codes:
        return "-"
    if len(codes) == 1:
        return codes[0]
    return f"{codes[0]}..{codes[-1].split('-', 1)[1]}"


def _short(value: object, limit: int = 60) -> str:
    if value is None:
        return ""
    text = str(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def _ms(value: int | None) -> str:
    return f"{value}ms" if value is not None else "-"


def render_report(report: AuditReport, **kwargs) -> None:
    """
    Convenience function to render an audit report to terminal.

    Args:
        report: The audit report to render.
        **kwargs: Options passed to TerminalRenderer.
    """
    renderer = TerminalRenderer(**kwargs)
    renderer.render(report)
