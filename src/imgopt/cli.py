"""Command line interface for imgopt."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from imgopt.assets import FileState, OptimizationEngine, OptimizationReport, StatusQuery
from imgopt.config import ConfigError, ConfigManager, ImgoptConfig
from imgopt.formatting import format_bytes
from imgopt.ledger import LedgerError

console = Console()
err_console = Console(stderr=True)

_STATE_STYLES = {
    FileState.COMPRESSED: "green",
    FileState.SKIPPED: "dim",
    FileState.FAILED: "red",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {escape(str(root))}: {parts}.[/green]"


def _configure_logging(level: str) -> None:
    """Route library logging through rich on stderr at the configured level."""

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _load_config(cli_overrides: dict[str, Any] | None = None) -> ImgoptConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load(cli_overrides=cli_overrides)
    _configure_logging(config.logging.level)
    return config


def _resolve_output_modes(
    ctx: click.Context,
    config: ImgoptConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine explicit flags with configured defaults for quiet/summary output.

    Raises:
        click.ClickException: If the requested modes conflict.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def _report_table(report: OptimizationReport) -> Table:
    table = Table(title="Optimization results")
    table.add_column("File", overflow="fold")
    table.add_column("State")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Saved", justify="right")
    for outcome in report.outcomes:
        style = _STATE_STYLES.get(outcome.state, "")
        before = format_bytes(outcome.original_bytes) if outcome.original_bytes is not None else "-"
        after = format_bytes(outcome.optimized_bytes) if outcome.optimized_bytes is not None else "-"
        saved = format_bytes(outcome.saved_bytes) if outcome.state == FileState.COMPRESSED else "-"
        table.add_row(
            escape(_relative(outcome.path, report.root)),
            f"[{style}]{outcome.state.value}[/{style}]" if style else outcome.state.value,
            before,
            after,
            saved,
        )
    return table


def _report_payload(report: OptimizationReport) -> dict[str, Any]:
    return {
        "root": report.root.as_posix(),
        "quality": report.quality,
        "files": [outcome.model_dump(mode="json") for outcome in report.outcomes],
        "counts": {
            "selected": len(report.outcomes),
            "compressed": len(report.by_state(FileState.COMPRESSED)),
            "skipped": len(report.by_state(FileState.SKIPPED)),
            "failed": len(report.failed),
        },
        "saved_bytes": report.saved_bytes,
        "pruned": report.pruned,
    }


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="imgopt")
def cli() -> None:
    """imgopt compresses a project's JPEG and PNG assets once and remembers what it did."""


@cli.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option(
    "-q",
    "--quality",
    type=click.IntRange(1, 100),
    default=None,
    help="Re-encoding quality from 1 to 100 (defaults to configuration).",
)
@click.option("--include", type=str, help="Only optimize assets matching this glob.")
@click.option("--exclude", type=str, help="Skip assets matching this glob.")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Number of files processed in parallel (defaults to configuration).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the results.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def optimize(
    ctx: click.Context,
    path: str,
    quality: int | None,
    include: str | None,
    exclude: str | None,
    workers: int | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Compress images declared by the project at PATH that are not yet optimized.

    Originals are kept next to each image with an `.orig` marker. Exits with
    status 1 when any file could not be optimized.
    """

    exit_code = 0
    try:
        overrides: dict[str, Any] = {}
        if quality is not None:
            overrides["optimization.quality"] = quality
        if workers is not None:
            overrides["optimization.workers"] = workers
        config = _load_config(overrides)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )

        root = Path(path).expanduser().resolve()
        status_query = StatusQuery()
        if not status_query.has_unoptimized_assets(root, include, exclude):
            if json_output:
                console.print_json(data={"root": root.as_posix(), "files": [], "up_to_date": True})
            else:
                _emit_message(
                    "[green]No unoptimized assets found.[/green]",
                    mode="summary",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            return

        def _notify(message: str) -> None:
            if not quiet_enabled and not json_output:
                err_console.print(f"[cyan]{message}[/cyan]")

        engine = OptimizationEngine(workers=config.optimization.workers, notify=_notify)
        report = engine.optimize(
            root,
            include=include,
            exclude=exclude,
            quality=config.optimization.quality,
        )
        exit_code = 0 if report.ok else 1

        if json_output:
            console.print_json(data=_report_payload(report))
            return

        _emit_message(
            _report_table(report), mode="detail", quiet=quiet_enabled, summary_only=summary_only
        )
        if report.failed:
            _emit_message(
                "[red]Errors encountered:[/red]",
                mode="error",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            for outcome in report.failed:
                _emit_message(
                    f"  - {escape(_relative(outcome.path, root))}: "
                    f"{escape(outcome.error or '')}",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
        _emit_message(
            _format_summary_line(
                "Optimization",
                root,
                {
                    "compressed": len(report.by_state(FileState.COMPRESSED)),
                    "skipped": len(report.by_state(FileState.SKIPPED)),
                    "failed": len(report.failed),
                    "saved": format_bytes(report.saved_bytes),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except LedgerError as exc:
        _handle_cli_error(str(exc), code="ledger_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except OSError as exc:
        _handle_cli_error(
            f"Could not record optimization progress: {exc}",
            code="io_error",
            json_output=json_output,
            original=exc,
        )

    if exit_code:
        ctx.exit(exit_code)


@cli.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--include", type=str, help="Only check assets matching this glob.")
@click.option("--exclude", type=str, help="Ignore assets matching this glob.")
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
@click.pass_context
def status(
    ctx: click.Context,
    path: str,
    include: str | None,
    exclude: str | None,
    json_output: bool,
) -> None:
    """List images under PATH that still need optimizing.

    Exits with status 1 when any selected image is not yet optimized.
    """

    pending: list[Path] = []
    try:
        _load_config()
        root = Path(path).expanduser().resolve()
        pending = list(StatusQuery().iter_unoptimized(root, include, exclude))

        if json_output:
            console.print_json(
                data={
                    "root": root.as_posix(),
                    "unoptimized": [_relative(item, root) for item in pending],
                    "up_to_date": not pending,
                }
            )
        elif not pending:
            console.print("[green]All selected assets are optimized.[/green]")
        else:
            console.print(f"[yellow]{len(pending)} asset(s) need optimizing:[/yellow]")
            for item in pending:
                console.print(f"  - {escape(_relative(item, root))}")
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except LedgerError as exc:
        _handle_cli_error(str(exc), code="ledger_error", json_output=json_output, original=exc)
    except OSError as exc:
        _handle_cli_error(
            f"Could not read optimization progress: {exc}",
            code="io_error",
            json_output=json_output,
            original=exc,
        )

    if pending:
        ctx.exit(1)


@cli.group()
def config() -> None:
    """Inspect imgopt settings."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        settings = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(settings.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
