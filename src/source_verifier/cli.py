"""CLI for source-verifier using Typer and Rich."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from source_verifier.config import Config
from source_verifier.console import print as cprint
from source_verifier.console import print_error, print_success, set_console, status
from source_verifier.errors import ConfigError, SourceVerifierError
from source_verifier.formats import TargetFormat
from source_verifier.safe_logging import configure_rich_logging, quiet_third_party_loggers
from source_verifier.source import SourceProvider
from source_verifier.tracker import TrackerClient
from source_verifier.verifier import SourceVerifier, VerificationResult


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NOT_VERIFIED = 2


app = typer.Typer(
    name="source-verifier",
    help="Verify lossless sources are suitable for transcoding",
    no_args_is_help=True,
    add_completion=False,
)


class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int


state = AppState()


def _configure_logging(cfg: Config, verbose: int) -> int:
    """Install the log handler for a config; returns the effective level."""
    # CLI flag takes precedence over the config file
    if verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.INFO)

    configure_rich_logging(
        level=log_level,
        format_string=cfg.logging.format,
        hash_paths=cfg.logging.hash_paths,
        library_root=cfg.paths.content_dirs[0] if cfg.paths.content_dirs else None,
        secrets=[cfg.tracker.api_key] if cfg.tracker.api_key else [],
    )
    quiet_third_party_loggers(verbose)
    return log_level


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
) -> None:
    """source-verifier: check a FLAC source before transcoding it."""
    set_console(Console(soft_wrap=True, highlight=False))

    try:
        cfg = Config.load(config_path)
    except ConfigError as e:
        print_error(str(e))
        sys.exit(ExitCode.ERROR)

    log_level = _configure_logging(cfg, verbose)

    logger = logging.getLogger(__name__)
    if config_path:
        logger.debug("Loaded config from %s", config_path)
    logger.debug(f"Logging configured: level={logging.getLevelName(log_level)}")

    state.config = cfg
    state.output_format = output
    state.verbose = verbose


async def run_verification(config: Config, source_input: str) -> VerificationResult:
    """Resolve a source from the tracker and verify it."""
    if not config.tracker.api_key:
        raise ConfigError("No tracker API key configured. Set TRACKER_API_KEY or tracker.api_key")

    async with TrackerClient(
        base_url=config.tracker.base_url,
        api_key=config.tracker.api_key,
        rate_limit_seconds=config.tracker.rate_limit_seconds,
        timeout_s=config.tracker.timeout_s,
    ) as api:
        provider = SourceProvider(api, config.paths.content_dirs)
        source = await provider.get_by_string(source_input)
        verifier = SourceVerifier.from_config(config, api)
        return await verifier.verify(source)


def _print_result(result: VerificationResult) -> None:
    if state.output_format == OutputFormat.JSON:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.verified:
        print_success(f"✓ Verified: {result.source}")
        return

    cprint(f"[yellow]⚠ Skipped: {escape(str(result.source))}[/yellow]")
    for report in result.phases:
        for rule in report.rules:
            cprint(f"  [dim]{report.phase.value}[/dim] {escape(str(rule))}")


@app.command()
def verify(
    source: Annotated[str, typer.Argument(help="Torrent id or tracker torrent URL")],
    skip_hash_check: Annotated[
        bool | None,
        typer.Option("--skip-hash-check/--hash-check", help="Skip the torrent hash check"),
    ] = None,
    content_dir: Annotated[
        list[Path] | None,
        typer.Option("--content-dir", help="Directory containing torrent content (repeatable)"),
    ] = None,
    target: Annotated[
        list[TargetFormat] | None,
        typer.Option("--target", help="Allowed transcode target (repeatable)"),
    ] = None,
    allow_existing: Annotated[
        bool | None,
        typer.Option("--allow-existing/--no-allow-existing", help="Allow existing formats"),
    ] = None,
    workers: Annotated[
        int | None, typer.Option(min=1, help="Threads for per-file checks")
    ] = None,
    api_key: Annotated[str | None, typer.Option(help="Tracker API key")] = None,
) -> None:
    """Verify a FLAC source is suitable for transcoding.

    Exits 0 when the source is verified, 2 when it is rejected and 1 when
    verification could not be performed.

    Examples:
        source-verifier verify 123456
        source-verifier verify "https://redacted.sh/torrents.php?id=1&torrentid=123456"
        source-verifier -o json verify 123456 --skip-hash-check
    """
    cfg = state.config

    # CLI > Env > Config File > Defaults
    if skip_hash_check is not None:
        cfg.verify.skip_hash_check = skip_hash_check
    if workers is not None:
        cfg.verify.workers = workers
    if content_dir:
        cfg.paths.content_dirs = content_dir
    if target:
        cfg.targets.formats = target
    if allow_existing is not None:
        cfg.targets.allow_existing = allow_existing
    if api_key:
        cfg.tracker.api_key = api_key

    # Redaction and path relativization depend on the overrides above
    _configure_logging(cfg, state.verbose)

    try:
        if state.output_format == OutputFormat.TEXT and sys.stdout.isatty():
            with status(f"Verifying {source}..."):
                result = asyncio.run(run_verification(cfg, source))
        else:
            result = asyncio.run(run_verification(cfg, source))
    except SourceVerifierError as e:
        print_error(str(e))
        sys.exit(ExitCode.ERROR)

    _print_result(result)
    sys.exit(ExitCode.SUCCESS if result.verified else ExitCode.NOT_VERIFIED)
