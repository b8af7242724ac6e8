"""
Vorbis comment checks for FLAC files.

Every file must carry the tags a transcode needs to be named and tagged:
artist, album, title and track number. Uses mutagen for tag reading.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from source_verifier.errors import SourceReadError
from source_verifier.rules import RuleKind, SourceRule
from source_verifier.source import SourceMetadata

# Vorbis keys that must be present and non-empty, in report order
REQUIRED_TAGS = {
    "ARTIST": RuleKind.MISSING_ARTIST_TAG,
    "ALBUM": RuleKind.MISSING_ALBUM_TAG,
    "TITLE": RuleKind.MISSING_TITLE_TAG,
    "TRACKNUMBER": RuleKind.MISSING_TRACK_NUMBER_TAG,
}

_NUMERIC_TRACK = re.compile(r"^0*[1-9]\d*(/\d+)?$")
_VINYL_TRACK = re.compile(r"^[A-Z]{1,2}\d+(/\d+)?$")


def read_vorbis_comments(flac: Path) -> dict[str, list[str]]:
    """
    Read Vorbis comments from a FLAC file.

    Keys are upper-cased. A file without a comment block yields an empty dict.

    Raises:
        SourceReadError: If the file cannot be opened or is not FLAC
    """
    from mutagen import MutagenError
    from mutagen.flac import FLAC

    try:
        audio = FLAC(flac)
    except (MutagenError, OSError) as e:
        raise SourceReadError(flac, str(e)) from e

    if audio.tags is None:
        return {}

    result: dict[str, list[str]] = {}
    for key, value in audio.tags:  # pyright: ignore[reportGeneralTypeIssues]
        result.setdefault(key.upper(), []).append(value)
    return result


def _first_value(tags: dict[str, Any], key: str) -> str | None:
    values = tags.get(key)
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def is_valid_track_number(value: str, vinyl: bool = False) -> bool:
    """
    Check a TRACKNUMBER value.

    Numbers may carry a total (``3/12``). Vinyl releases may use side letters
    (``A1``, ``B12``).
    """
    if _NUMERIC_TRACK.match(value):
        return True
    return vinyl and bool(_VINYL_TRACK.match(value))


class TagVerifier:
    """Check the tags of a single FLAC file."""

    def check(self, flac: Path, metadata: SourceMetadata) -> list[SourceRule]:
        tags = read_vorbis_comments(flac)
        path = str(flac)
        rules: list[SourceRule] = []

        for key, kind in REQUIRED_TAGS.items():
            if _first_value(tags, key) is None:
                rules.append(SourceRule(kind, path))

        track_number = _first_value(tags, "TRACKNUMBER")
        if track_number is not None and not is_valid_track_number(
            track_number, vinyl=metadata.is_vinyl
        ):
            rules.append(SourceRule(RuleKind.INVALID_TRACK_NUMBER, path, track_number))

        return rules
