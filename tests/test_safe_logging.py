"""Tests for log sanitization."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from pathlib import Path

import pytest
from rich.console import Console

from source_verifier.config import VerifyConfig
from source_verifier.safe_logging import (
    SafeLogFormatter,
    configure_rich_logging,
    hash_path,
    redact_value,
    safe_path,
)
from source_verifier.stream_verifier import StreamVerifier
from tests.helpers import DEFAULT_TAGS, make_source


def make_record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_hash_path_is_stable():
    assert hash_path("/music/a.flac") == hash_path(Path("/music/a.flac"))
    assert len(hash_path("/music/a.flac")) == 12


def test_safe_path():
    assert safe_path("/music/Album/01.flac", "/music") == "Album/01.flac"
    assert safe_path("/other/01.flac", "/music") == "/other/01.flac"
    assert safe_path("/music/01.flac", use_hash=True).startswith("file:")


def test_redact_value():
    assert redact_value("abcdef123") == "abcd***"
    assert redact_value("abc") == "***"


def test_formatter_redacts_secrets():
    formatter = SafeLogFormatter("%(message)s", secrets=["supersecretkey"])
    record = make_record("Authorization: %s", "supersecretkey")
    assert formatter.format(record) == "Authorization: supe***"


def test_formatter_relativizes_path_args():
    formatter = SafeLogFormatter("%(message)s", library_root=Path("/music"))
    record = make_record("Checking %s", Path("/music/Album/01.flac"))
    assert formatter.format(record) == "Checking Album/01.flac"
    # The original record is left untouched for other handlers
    assert record.args == (Path("/music/Album/01.flac"),)


def test_formatter_hashes_path_args():
    formatter = SafeLogFormatter("%(message)s", hash_paths=True)
    record = make_record("Checking %s", Path("/music/01.flac"))
    assert formatter.format(record) == f"Checking file:{hash_path(Path('/music/01.flac'))}"


def test_configure_rich_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        console = Console(record=True, width=200)
        configure_rich_logging(level=logging.DEBUG, console=console, secrets=["topsecretvalue"])
        configure_rich_logging(level=logging.DEBUG, console=console, secrets=["topsecretvalue"])
        assert len(root.handlers) == 1

        logging.getLogger("source_verifier.test").info("key is topsecretvalue")
        output = console.export_text()
        assert "tops***" in output
        assert "topsecretvalue" not in output
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


class CollectingHandler(logging.Handler):
    """Handler keeping formatted messages."""

    def __init__(self, formatter: logging.Formatter):
        super().__init__(logging.DEBUG)
        self.setFormatter(formatter)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(self.format(record))


@pytest.fixture
def hashed_log():
    """Attach a path-hashing formatter to the source_verifier loggers."""
    logger = logging.getLogger("source_verifier")
    handler = CollectingHandler(SafeLogFormatter("%(message)s", hash_paths=True))
    saved_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler
    logger.removeHandler(handler)
    logger.setLevel(saved_level)


def test_decode_failure_log_hides_file_path(make_flac, monkeypatch, hashed_log):
    failed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="bad frame")
    monkeypatch.setattr(subprocess, "run", lambda args, **kwargs: failed)
    flac = make_flac()

    StreamVerifier(flac_path=Path("/usr/bin/flac")).check(flac)

    assert hashed_log.messages == [f"flac --test failed for file:{hash_path(flac)}: bad frame"]


def test_rejection_log_hides_file_path(harness, make_flac, source_dir, hashed_log):
    flac = make_flac(tags={**DEFAULT_TAGS, "ALBUM": ""})

    options = VerifyConfig(skip_hash_check=True)
    asyncio.run(harness.verifier.verify(make_source(source_dir), options))

    assert f"Missing album tag: file:{hash_path(flac)}" in hashed_log.messages
    assert not any(str(flac) in message for message in hashed_log.messages)
