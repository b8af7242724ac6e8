"""Logging setup for source-verifier.

Logs go through a Rich handler. Records are sanitized before formatting:
- File paths are relativized to the content directory, or hashed
- Known secrets (the tracker API key) are redacted
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that are only shown at the highest verbosity
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def hash_path(file_path: Path | str, length: int = 12) -> str:
    """Hash a file path for logging.

    Args:
        file_path: Path to hash
        length: Length of hash to return

    Returns:
        Truncated SHA256 hash of the path
    """
    path_str = str(file_path)
    return hashlib.sha256(path_str.encode()).hexdigest()[:length]


def relativize_path(file_path: Path | str, library_root: Path | str | None = None) -> str:
    """Convert path to relative form for logging.

    If library_root is provided and contains the path, returns the path
    relative to it. Otherwise the path is returned unchanged.
    """
    path = Path(file_path)
    if library_root:
        try:
            return str(path.relative_to(library_root))
        except ValueError:
            pass
    return str(path)


def safe_path(
    file_path: Path | str,
    library_root: Path | str | None = None,
    use_hash: bool = False,
) -> str:
    """Get a log-safe representation of a path."""
    if use_hash:
        return f"file:{hash_path(file_path)}"
    return relativize_path(file_path, library_root)


def redact_value(value: str, visible_chars: int = 4) -> str:
    """Redact a sensitive value, showing only first few characters.

    Returns:
        Redacted string (e.g., "abcd***")
    """
    if len(value) <= visible_chars:
        return "***"
    return f"{value[:visible_chars]}***"


class SafeLogFormatter(logging.Formatter):
    """Log formatter that relativizes paths and redacts secrets."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        hash_paths: bool = False,
        library_root: Path | None = None,
        secrets: Iterable[str] = (),
    ):
        super().__init__(fmt, datefmt)
        self.hash_paths = hash_paths
        self.library_root = library_root
        self.secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers see the original record
        record = logging.makeLogRecord(record.__dict__)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return self._redact(super().format(record))

    def _redact(self, message: str) -> str:
        for secret in self.secrets:
            message = message.replace(secret, redact_value(secret))
        return message

    def _sanitize_args(
        self, args: tuple[Any, ...] | Mapping[str, Any]
    ) -> tuple[Any, ...] | dict[str, Any]:
        if isinstance(args, Mapping):
            return {k: self._sanitize_value(v) for k, v in args.items()}
        return tuple(self._sanitize_value(arg) for arg in args)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, Path):
            return safe_path(value, self.library_root, use_hash=self.hash_paths)
        return value


def configure_rich_logging(
    level: int = logging.INFO,
    format_string: str = "%(message)s",
    hash_paths: bool = False,
    library_root: Path | None = None,
    secrets: Iterable[str] = (),
    show_time: bool = False,
    show_path: bool = False,
    console: Console | None = None,
) -> Console:
    """Configure root logging with a Rich handler.

    Replaces any handlers previously installed on the root logger so the
    function can be called once per CLI invocation.

    Returns:
        The Console the handler writes to
    """
    console = console or Console(stderr=True)
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(
        SafeLogFormatter(
            fmt=format_string,
            hash_paths=hash_paths,
            library_root=library_root,
            secrets=secrets,
        )
    )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    return console


def quiet_third_party_loggers(verbose: int) -> None:
    """Hold third-party loggers at WARNING unless very verbose (-vvv)."""
    if verbose < 3:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
