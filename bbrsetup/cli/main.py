"""
Main CLI application using Typer.
"""

from __future__ import annotations

import json

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console

from bbrsetup.__version__ import __version__
from bbrsetup.cli.formatters import format_report, print_header
from bbrsetup.core.config import AppConfig, build_config
from bbrsetup.core.configurator import Configurator, RunMode, RunReport
from bbrsetup.core.detector import SystemDetector
from bbrsetup.core.errors import BBRSetupError
from bbrsetup.core.executor import CommandRunner
from bbrsetup.core.probe import LinuxSystemProbe
from bbrsetup.storage.logger import setup_logging

app = typer.Typer(
    name="bbr-setup",
    help="Enable TCP BBR congestion control on Linux.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()

OUTPUT_FORMATS = ("rich", "json")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bbr-setup {__version__}")
        raise typer.Exit(0)


def _init_context(verbose: bool) -> tuple[AppConfig, LinuxSystemProbe]:
    """
    Initialize shared objects: config, logging and the system probe.
    Uses the optional config file (~/.bbr-setup.yaml or ./.bbr-setup.yaml)
    and BBR_SETUP_* environment variables for values the CLI does not set.
    """
    config = build_config(verbose=verbose or None)
    setup_logging(config.log_dir, config.verbose)

    probe = LinuxSystemProbe(
        runner=CommandRunner(timeout=config.command_timeout),
        detector=SystemDetector(),
        kernel_config_paths=config.kernel_config_paths,
    )
    return config, probe


def _output_report_json(report: RunReport, pretty: bool = True) -> None:
    """Print a RunReport as JSON on stdout."""
    payload = report.model_dump(mode="json")
    payload["exit_code"] = report.exit_code
    typer.echo(json.dumps(payload, indent=2 if pretty else None))


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def main(
    check: bool = typer.Option(
        False,
        "--check",
        help="Show current BBR status and exit (non-zero if not enabled)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be done without making changes",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """
    Enable TCP BBR congestion control.

    Run without options (as root) to configure BBR and persist it in sysctl.
    """
    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"must be one of: {', '.join(OUTPUT_FORMATS)}", param_hint="'--format'"
        )

    try:
        config, probe = _init_context(verbose)
    except ValidationError as e:
        setup_logging(verbose=verbose)
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    except OSError as e:
        # log_dir could not be created, typically when not running as root
        setup_logging(verbose=verbose)
        logger.error(f"Cannot prepare log directory: {e}")
        raise typer.Exit(1)

    try:
        mode = RunMode.from_flags(check=check, dry_run=dry_run)
    except BBRSetupError as e:
        logger.error(str(e))
        raise typer.Exit(e.exit_code)

    if output_format == "rich":
        print_header(console)

    configurator = Configurator(probe, config, mode)
    try:
        report = configurator.run()
    except BBRSetupError as e:
        logger.error(str(e))
        raise typer.Exit(e.exit_code)

    if output_format == "json":
        _output_report_json(report)
    else:
        format_report(report, console)

    if report.exit_code != 0:
        raise typer.Exit(report.exit_code)
