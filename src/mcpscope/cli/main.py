"""
Main CLI entry point for mcpscope.

Usage:
    mcpscope audit https://example.com/mcp
    mcpscope audit https://example.com/mcp --format json --output before.json
    mcpscope compare before.json after.json
    mcpscope rules
    mcpscope init
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import anyio
import typer
from rich.console import Console
from rich.logging import RichHandler

from mcpscope import __version__
from mcpscope.config import CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE, ScopeConfig, load_config
from mcpscope.domain.exceptions import ConfigError, InputValidationError, SnapshotLoadError

# Create the main Typer app
app = typer.Typer(
    name="mcpscope",
    help="mcpscope: auditor for Model Context Protocol (MCP) servers",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)

_HANDLER_MARKER = "_mcpscope_rich_handler"


class OutputFormat(str, Enum):
    """Output format options."""

    terminal = "terminal"
    json = "json"


def configure_logging(level_name: str = "WARNING") -> None:
    """Attach a Rich handler to the root logger once."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.WARNING))

    if any(getattr(handler, _HANDLER_MARKER, False) for handler in root_logger.handlers):
        return

    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    setattr(handler, _HANDLER_MARKER, True)
    root_logger.addHandler(handler)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"mcpscope version {__version__}")
        raise typer.Exit()


def _load_settings(config: Path | None, verbose: bool) -> ScopeConfig:
    try:
        settings = load_config(config)
    except ConfigError as e:
        err_console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(2) from e

    configure_logging("DEBUG" if verbose else settings.logging.level)
    return settings


def load_snapshot(path: Path) -> dict[str, Any]:
    """
    Read a snapshot (or a saved audit report) from a JSON file.

    Raises:
        SnapshotLoadError: If the file cannot be read or is not JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotLoadError(f"Cannot read {path}: {e}", source=str(path)) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotLoadError(
            f"Invalid JSON in {path}: {e.msg}", source=str(path), line=e.lineno
        ) from e

    return data


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    mcpscope: auditor for Model Context Protocol (MCP) servers

    Connects to a remote MCP server, checks its OAuth discovery documents,
    probes its tools for x402 payment requirements and records a snapshot
    that can be compared with a later one.

    Examples:

        mcpscope audit https://example.com/mcp

        mcpscope audit https://example.com/mcp -f json -o before.json

        mcpscope compare before.json after.json --fail-on-changes
    """
    pass


@app.command()
def audit(
    endpoint: Annotated[
        str,
        typer.Argument(help="URL of the MCP server to audit."),
    ],
    timeout: Annotated[
        Optional[float],
        typer.Option(
            "--timeout",
            "-t",
            help="Per-request timeout in milliseconds.",
        ),
    ] = None,
    format: Annotated[
        Optional[OutputFormat],
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Write the JSON report to this file.",
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help=f"Path to {CONFIG_FILENAME} config file.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    Audit a live MCP server.

    Runs OAuth discovery, connects over streamable HTTP (or SSE), lists
    tools, resources and prompts, probes every tool for x402 payment
    requirements and validates what it finds. Exits with 1 when any
    non-informational diagnostic was produced.

    Examples:

        mcpscope audit https://example.com/mcp

        mcpscope audit https://example.com/mcp --timeout 5000 --format json
    """
    from mcpscope.engine.auditor import ServerAuditor
    from mcpscope.renderers.json_renderer import JsonRenderer
    from mcpscope.renderers.terminal import TerminalRenderer

    settings = _load_settings(config, verbose)
    timeout_ms = timeout if timeout is not None else settings.audit.timeout_ms
    output_format = format or OutputFormat(settings.audit.format)
    output_path = output or settings.audit.output

    try:
        report = anyio.run(ServerAuditor().start, endpoint, timeout_ms)
    except InputValidationError as e:
        err_console.print(f"[red]Invalid input: {e.message}[/red]")
        raise typer.Exit(2) from e

    json_renderer = JsonRenderer()

    match output_format:
        case OutputFormat.terminal:
            TerminalRenderer(console=console).render(report)
            if output_path:
                json_renderer.render_to_file(report, output_path)
                console.print(f"[green]Report written to {output_path}[/green]")

        case OutputFormat.json:
            if output_path:
                json_renderer.render_to_file(report, output_path)
                err_console.print(f"[green]Report written to {output_path}[/green]")
            else:
                typer.echo(json_renderer.render(report))

    raise typer.Exit(report.exit_code)


@app.command()
def compare(
    before: Annotated[
        Path,
        typer.Argument(help="Earlier snapshot or audit report (JSON).", exists=True, dir_okay=False),
    ],
    after: Annotated[
        Path,
        typer.Argument(help="Later snapshot or audit report (JSON).", exists=True, dir_okay=False),
    ],
    format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
        ),
    ] = OutputFormat.terminal,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Write the JSON comparison to this file.",
        ),
    ] = None,
    fail_on_changes: Annotated[
        Optional[bool],
        typer.Option(
            "--fail-on-changes/--no-fail-on-changes",
            help="Exit with 1 when the snapshots differ.",
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help=f"Path to {CONFIG_FILENAME} config file.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    Compare two audit snapshots and report drift.

    Examples:

        mcpscope compare before.json after.json

        mcpscope compare before.json after.json --format json --fail-on-changes
    """
    from mcpscope.engine.auditor import compare_snapshots
    from mcpscope.renderers.json_renderer import JsonRenderer
    from mcpscope.renderers.terminal import TerminalRenderer

    settings = _load_settings(config, verbose)
    should_fail = fail_on_changes if fail_on_changes is not None else settings.compare.fail_on_changes

    try:
        report = compare_snapshots(load_snapshot(before), load_snapshot(after))
    except SnapshotLoadError as e:
        location = f" (line {e.line})" if e.line else ""
        err_console.print(f"[red]{e.message}{location}[/red]")
        raise typer.Exit(2) from e
    except InputValidationError as e:
        err_console.print(f"[red]Invalid snapshot: {e.message}[/red]")
        raise typer.Exit(2) from e

    json_renderer = JsonRenderer()

    match format:
        case OutputFormat.terminal:
            TerminalRenderer(console=console).render_comparison(report)
            if output:
                json_renderer.render_to_file(report, output)
                console.print(f"[green]Comparison written to {output}[/green]")

        case OutputFormat.json:
            if output:
                json_renderer.render_to_file(report, output)
                err_console.print(f"[green]Comparison written to {output}[/green]")
            else:
                typer.echo(json_renderer.render(report))

    if should_fail and report.has_changes:
        raise typer.Exit(1)


@app.command()
def init(
    path: Annotated[
        Path,
        typer.Argument(
            help=f"Directory to create the {CONFIG_FILENAME} config file in.",
        ),
    ] = Path("."),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing config file.",
        ),
    ] = False,
) -> None:
    """
    Initialize mcpscope configuration.

    Creates a .mcpscope.toml config file with default settings.

    Examples:

        mcpscope init

        mcpscope init ./project --force
    """
    config_path = path / CONFIG_FILENAME

    if config_path.exists() and not force:
        console.print(
            f"[yellow]Config file already exists: {config_path}[/yellow]\n"
            f"Use --force to overwrite."
        )
        raise typer.Exit(1)

    config_path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    console.print(f"[green]✓ Created {config_path}[/green]")
    console.print("\nEdit this file to customize mcpscope behavior.")


@app.command()
def rules() -> None:
    """
    List the x402 payment validation rules.

    Shows rule IDs, what they apply to, default severity and the
    diagnostic codes each rule can emit.
    """
    from mcpscope.renderers.terminal import TerminalRenderer
    from mcpscope.rules import DEFAULT_RULES

    TerminalRenderer(console=console).render_rules(DEFAULT_RULES)
    console.print(f"\nTotal: {len(DEFAULT_RULES)} rules")


if __name__ == "__main__":
    app()
