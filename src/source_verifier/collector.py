"""Find FLAC files in a source directory."""

from __future__ import annotations

from pathlib import Path

FLAC_EXTENSION = ".flac"


def find_flacs(directory: Path) -> list[Path]:
    """
    Recursively collect FLAC files below a directory.

    Matching is case-insensitive on the extension and the result is sorted so
    every caller sees files in the same order.

    Raises:
        OSError: If the directory cannot be read
    """
    return sorted(
        path
        for path in directory.rglob("*")
        if path.suffix.lower() == FLAC_EXTENSION and path.is_file()
    )
