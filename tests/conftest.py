"""Pytest configuration and shared fixtures for source-verifier tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tests.helpers import DEFAULT_TAGS, VerifierHarness, create_flac

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration from the developer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("SOURCE_VERIFIER_") or name == "TRACKER_API_KEY":
            monkeypatch.delenv(name)


# =============================================================================
# FLAC Fixtures
# =============================================================================


@pytest.fixture
def source_dir(tmp_path) -> Path:
    """Empty source directory."""
    directory = tmp_path / "source"
    directory.mkdir(exist_ok=True)
    return directory


@pytest.fixture
def make_flac(source_dir) -> Callable[..., Path]:
    """Create FLAC files below the source directory."""

    def _make(
        name: str = "01 - Test Title.flac",
        tags: dict[str, Any] | None = DEFAULT_TAGS,
        **streaminfo: int,
    ) -> Path:
        return create_flac(source_dir / name, tags=tags, **streaminfo)

    return _make


# =============================================================================
# Verifier Fixtures
# =============================================================================


@pytest.fixture
def harness() -> VerifierHarness:
    """Verifier with all collaborators recording their calls."""
    return VerifierHarness()
