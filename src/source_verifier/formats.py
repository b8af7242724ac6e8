"""Source and transcode formats, and which transcodes a source is eligible for."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class SourceFormat(StrEnum):
    """Lossless formats that can be transcoded from."""

    FLAC24 = "FLAC24"
    FLAC = "FLAC"

    @classmethod
    def from_tracker(cls, format: str, encoding: str) -> SourceFormat | None:
        """Map the tracker's format/encoding pair to a source format."""
        if format != "FLAC":
            return None
        if encoding == "24bit Lossless":
            return cls.FLAC24
        if encoding == "Lossless":
            return cls.FLAC
        return None


class ExistingFormat(StrEnum):
    """Formats that may already exist on the tracker for an edition."""

    FLAC24 = "FLAC24"
    FLAC = "FLAC"
    MP3_320 = "320"
    V0 = "V0"

    @classmethod
    def from_tracker(cls, format: str, encoding: str) -> ExistingFormat | None:
        """Map the tracker's format/encoding pair to an existing format."""
        match (format, encoding):
            case ("FLAC", "24bit Lossless"):
                return cls.FLAC24
            case ("FLAC", "Lossless"):
                return cls.FLAC
            case ("MP3", "320"):
                return cls.MP3_320
            case ("MP3", "V0 (VBR)"):
                return cls.V0
            case _:
                return None


class TargetFormat(StrEnum):
    """Formats a source can be transcoded to, in order of preference."""

    FLAC = "FLAC"
    MP3_320 = "320"
    V0 = "V0"

    @property
    def extension(self) -> str:
        return "flac" if self is TargetFormat.FLAC else "mp3"

    @property
    def existing(self) -> ExistingFormat:
        """The existing format a transcode to this target would duplicate."""
        return _TARGET_TO_EXISTING[self]


_TARGET_TO_EXISTING = {
    TargetFormat.FLAC: ExistingFormat.FLAC,
    TargetFormat.MP3_320: ExistingFormat.MP3_320,
    TargetFormat.V0: ExistingFormat.V0,
}


def sort_targets(targets: Iterable[TargetFormat]) -> list[TargetFormat]:
    """Sort targets in declaration order."""
    order = list(TargetFormat)
    return sorted(targets, key=order.index)


class TargetFormatProvider:
    """
    Decide which transcodes a source is eligible for.

    A 16-bit FLAC source can only be transcoded to MP3. A 24-bit source can
    also be resampled to 16-bit FLAC. Targets that already exist on the
    tracker are excluded unless ``allow_existing`` is set.
    """

    def __init__(
        self,
        allowed: Iterable[TargetFormat] | None = None,
        allow_existing: bool = False,
    ):
        self.allowed = set(allowed) if allowed is not None else set(TargetFormat)
        self.allow_existing = allow_existing

    def get(
        self,
        source_format: SourceFormat,
        existing: Iterable[ExistingFormat],
    ) -> set[TargetFormat]:
        existing = set(existing)
        targets = set(self.allowed)
        if source_format is SourceFormat.FLAC:
            targets.discard(TargetFormat.FLAC)
        if not self.allow_existing:
            targets = {target for target in targets if target.existing not in existing}
        return targets
