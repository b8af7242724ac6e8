"""Verification rules.

A rule is a single verification finding. A source passes verification when
no rules are produced; every rule explains why it was rejected.

The set of rule kinds is closed: add a member to ``RuleKind`` and the
exhaustive ``match`` in ``SourceRule.summary`` fails type checking until a
message is written for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, assert_never


class RuleCategory(StrEnum):
    """Which check produced a rule."""

    POLICY = "policy"
    FILESYSTEM = "filesystem"
    TAG = "tag"
    STREAM = "stream"
    HASH = "hash"


class RuleKind(StrEnum):
    """Every kind of verification finding."""

    # Policy
    SCENE_NOT_SUPPORTED = "scene_not_supported"
    LOSSY_MASTER_NEEDS_APPROVAL = "lossy_master_needs_approval"
    LOSSY_WEB_NEEDS_APPROVAL = "lossy_web_needs_approval"
    NO_TRANSCODE_FORMATS = "no_transcode_formats"

    # Filesystem
    SOURCE_DIRECTORY_NOT_FOUND = "source_directory_not_found"
    NO_FLAC_FILES = "no_flac_files"
    PATH_TOO_LONG = "path_too_long"

    # Tags
    MISSING_ARTIST_TAG = "missing_artist_tag"
    MISSING_ALBUM_TAG = "missing_album_tag"
    MISSING_TITLE_TAG = "missing_title_tag"
    MISSING_TRACK_NUMBER_TAG = "missing_track_number_tag"
    INVALID_TRACK_NUMBER = "invalid_track_number"

    # Stream
    UNSUPPORTED_SAMPLE_RATE = "unsupported_sample_rate"
    UNSUPPORTED_BIT_DEPTH = "unsupported_bit_depth"
    TOO_MANY_CHANNELS = "too_many_channels"
    CORRUPT_STREAM = "corrupt_stream"

    # Hash
    HASH_MISMATCH = "hash_mismatch"

    @property
    def category(self) -> RuleCategory:
        return _CATEGORIES[self]


_CATEGORIES: dict[RuleKind, RuleCategory] = {
    RuleKind.SCENE_NOT_SUPPORTED: RuleCategory.POLICY,
    RuleKind.LOSSY_MASTER_NEEDS_APPROVAL: RuleCategory.POLICY,
    RuleKind.LOSSY_WEB_NEEDS_APPROVAL: RuleCategory.POLICY,
    RuleKind.NO_TRANSCODE_FORMATS: RuleCategory.POLICY,
    RuleKind.SOURCE_DIRECTORY_NOT_FOUND: RuleCategory.FILESYSTEM,
    RuleKind.NO_FLAC_FILES: RuleCategory.FILESYSTEM,
    RuleKind.PATH_TOO_LONG: RuleCategory.FILESYSTEM,
    RuleKind.MISSING_ARTIST_TAG: RuleCategory.TAG,
    RuleKind.MISSING_ALBUM_TAG: RuleCategory.TAG,
    RuleKind.MISSING_TITLE_TAG: RuleCategory.TAG,
    RuleKind.MISSING_TRACK_NUMBER_TAG: RuleCategory.TAG,
    RuleKind.INVALID_TRACK_NUMBER: RuleCategory.TAG,
    RuleKind.UNSUPPORTED_SAMPLE_RATE: RuleCategory.STREAM,
    RuleKind.UNSUPPORTED_BIT_DEPTH: RuleCategory.STREAM,
    RuleKind.TOO_MANY_CHANNELS: RuleCategory.STREAM,
    RuleKind.CORRUPT_STREAM: RuleCategory.STREAM,
    RuleKind.HASH_MISMATCH: RuleCategory.HASH,
}


@dataclass(frozen=True, order=True)
class SourceRule:
    """
    A single verification finding.

    Attributes:
        kind: What was found
        path: The file or directory the finding is about, if any
        detail: Extra context (offending tag value, sample rate, verifier output)
    """

    kind: RuleKind
    path: str | None = None
    detail: str | None = None

    @property
    def category(self) -> RuleCategory:
        return self.kind.category

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "category": self.category.value,
            "path": self.path,
            "detail": self.detail,
            "message": str(self),
        }

    @property
    def shows_path(self) -> bool:
        """Whether the message names the rule's path."""
        return self.path is not None and self.kind is not RuleKind.HASH_MISMATCH

    @property
    def summary(self) -> str:
        """The message without the path."""
        detail = self.detail or ""
        match self.kind:
            case RuleKind.SCENE_NOT_SUPPORTED:
                return "Scene releases are not supported"
            case RuleKind.LOSSY_MASTER_NEEDS_APPROVAL:
                return "Lossy master releases need approval"
            case RuleKind.LOSSY_WEB_NEEDS_APPROVAL:
                return "Lossy web releases need approval"
            case RuleKind.NO_TRANSCODE_FORMATS:
                return "No transcode formats available"
            case RuleKind.SOURCE_DIRECTORY_NOT_FOUND:
                return "Source directory not found"
            case RuleKind.NO_FLAC_FILES:
                return "No FLAC files found in source directory"
            case RuleKind.PATH_TOO_LONG:
                return "Path is too long"
            case RuleKind.MISSING_ARTIST_TAG:
                return "Missing artist tag"
            case RuleKind.MISSING_ALBUM_TAG:
                return "Missing album tag"
            case RuleKind.MISSING_TITLE_TAG:
                return "Missing title tag"
            case RuleKind.MISSING_TRACK_NUMBER_TAG:
                return "Missing track number tag"
            case RuleKind.INVALID_TRACK_NUMBER:
                return f"Invalid track number '{detail}'"
            case RuleKind.UNSUPPORTED_SAMPLE_RATE:
                return f"Unsupported sample rate {detail} Hz"
            case RuleKind.UNSUPPORTED_BIT_DEPTH:
                return f"Unsupported bit depth {detail}"
            case RuleKind.TOO_MANY_CHANNELS:
                return f"Too many channels ({detail})"
            case RuleKind.CORRUPT_STREAM:
                return f"Audio stream failed to decode ({detail})"
            case RuleKind.HASH_MISMATCH:
                return f"Hash check failed: {detail}"
            case _:
                assert_never(self.kind)

    def __str__(self) -> str:
        if self.shows_path:
            return f"{self.summary}: {self.path}"
        return self.summary


def has_kind(rules: list[SourceRule], kind: RuleKind) -> bool:
    """Check whether any rule in a list is of the given kind."""
    return any(rule.kind == kind for rule in rules)
