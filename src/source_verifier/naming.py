"""
Transcode naming and advisory name shortening.

Transcodes are written to ``Artist - Album [Year] [Media FORMAT]``. When that
makes a path too long the ``Shortener`` suggests shorter track and album
names. Suggestions are only logged, never applied.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from source_verifier.formats import TargetFormat
from source_verifier.source import Source, SourceMetadata

logger = logging.getLogger(__name__)

# Characters that are not allowed in file names on common filesystems
_ILLEGAL_CHARS = re.compile(r'[/\\:*?"<>|]')
_BRACKETED = re.compile(r"\s*[\(\[][^\(\)\[\]]*[\)\]]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(name: str) -> str:
    """Replace characters that are illegal in file names."""
    return _ILLEGAL_CHARS.sub("-", name).strip()


class SourceName:
    """Directory names derived from source metadata."""

    @staticmethod
    def get(metadata: SourceMetadata) -> str:
        name = f"{metadata.artist} - {metadata.album}"
        if metadata.year:
            name += f" [{metadata.year}]"
        return sanitize(name)

    @staticmethod
    def get_transcode_dir(metadata: SourceMetadata, target: TargetFormat) -> str:
        return f"{SourceName.get(metadata)} [{sanitize(metadata.media)} {target.value}]"


class Shortener:
    """
    Suggest shorter names for paths that exceed the length limit.

    Args:
        max_length: Names at or below this length are truncated to it
    """

    def __init__(self, max_length: int = 60):
        self.max_length = max_length

    def shorten(self, text: str) -> str | None:
        """
        Shorten a name by dropping bracketed segments, then truncating on a word.

        Returns:
            The shortened name, or None if no shorter name can be found
        """
        shortened = _WHITESPACE.sub(" ", _BRACKETED.sub("", text)).strip()
        if len(shortened) > self.max_length:
            cut = shortened[: self.max_length].rsplit(" ", 1)[0]
            shortened = cut.rstrip(" -,.")
        if not shortened or shortened == text:
            return None
        return shortened

    def suggest_track_name(self, flac: Path) -> str | None:
        suggestion = self.shorten(flac.stem)
        if suggestion is None:
            logger.warning(f"Track name of {flac.name} is too long, rename it manually")
        else:
            logger.warning(f"Track could be renamed: '{flac.stem}' -> '{suggestion}'")
        return suggestion

    def suggest_album_name(self, source: Source) -> str | None:
        album = source.metadata.album
        suggestion = self.shorten(album)
        if suggestion is None:
            logger.warning(f"Album name '{album}' is too long, shorten the directory manually")
        else:
            logger.warning(f"Album could be renamed: '{album}' -> '{suggestion}'")
        return suggestion
