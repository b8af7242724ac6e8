"""Builders and fake collaborators shared by the test suite."""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Any

from source_verifier.formats import SourceFormat, TargetFormat, TargetFormatProvider
from source_verifier.naming import Shortener
from source_verifier.paths import PathManager
from source_verifier.rules import SourceRule
from source_verifier.source import Source, SourceMetadata, TorrentInfo
from source_verifier.stream_verifier import StreamVerifier
from source_verifier.tag_verifier import TagVerifier
from source_verifier.verifier import SourceVerifier

TRACKER_URL = "https://tracker.test"
AJAX_URL = f"{TRACKER_URL}/ajax.php"

DEFAULT_TAGS = {
    "ARTIST": "Test Artist",
    "ALBUM": "Test Album",
    "TITLE": "Test Title",
    "TRACKNUMBER": "1",
}

# Smallest bencoded dict that passes the descriptor check
TORRENT_BUFFER = b"d4:infod4:name4:testee"


# =============================================================================
# FLAC Files
# =============================================================================


def build_streaminfo(
    sample_rate: int = 44100,
    channels: int = 2,
    bits_per_sample: int = 16,
    total_samples: int = 44100,
) -> bytes:
    """Build a 34 byte STREAMINFO block body."""
    packed = (
        (sample_rate << 44)
        | ((channels - 1) << 41)
        | ((bits_per_sample - 1) << 36)
        | total_samples
    )
    return (
        struct.pack(">HH", 4096, 4096)  # min/max block size
        + b"\x00" * 6  # min/max frame size (unknown)
        + struct.pack(">Q", packed)
        + b"\x00" * 16  # MD5
    )


def create_flac(
    path: Path,
    tags: dict[str, str] | None = None,
    **streaminfo: int,
) -> Path:
    """
    Create a FLAC file with a STREAMINFO block and optional Vorbis comments.

    The file has no audio frames, which is enough for metadata checks.
    """
    from mutagen.flac import FLAC

    path.parent.mkdir(parents=True, exist_ok=True)
    body = build_streaminfo(**streaminfo)
    # Last metadata block flag, type 0 (STREAMINFO), 24-bit length
    header = bytes([0x80]) + len(body).to_bytes(3, "big")
    path.write_bytes(b"fLaC" + header + body)

    if tags:
        audio = FLAC(path)
        audio.add_tags()
        for key, value in tags.items():
            audio[key] = value
        audio.save()
    return path


# =============================================================================
# Sources
# =============================================================================


def make_source(
    directory: Path,
    source_format: SourceFormat = SourceFormat.FLAC,
    existing: frozenset[Any] = frozenset(),
    media: str = "CD",
    album: str = "Test Album",
    **torrent: Any,
) -> Source:
    """Build a source; extra keyword arguments go to TorrentInfo."""
    torrent.setdefault("id", 123)
    torrent.setdefault("group_id", 45)
    return Source(
        directory=directory,
        format=source_format,
        torrent=TorrentInfo(**torrent),
        metadata=SourceMetadata(artist="Test Artist", album=album, year=2020, media=media),
        existing=existing,
    )


# =============================================================================
# Fake Collaborators
# =============================================================================


class FakeTracker:
    """Tracker stand-in counting torrent file downloads."""

    def __init__(self, buffer: bytes = TORRENT_BUFFER):
        self.buffer = buffer
        self.download_calls: list[int] = []

    async def get_torrent_file_as_buffer(self, torrent_id: int) -> bytes:
        self.download_calls.append(torrent_id)
        return self.buffer


class FakeTorrentVerifier:
    """Torrent verifier stand-in returning fixed rules."""

    def __init__(self, rules: list[SourceRule] | None = None):
        self.rules = rules or []
        self.calls: list[tuple[bytes, Path]] = []

    async def verify(self, buffer: bytes, directory: Path) -> list[SourceRule]:
        self.calls.append((buffer, directory))
        return list(self.rules)


class RecordingShortener(Shortener):
    """Shortener that records its suggestion calls."""

    def __init__(self):
        super().__init__()
        self.track_calls: list[Path] = []
        self.album_calls: list[Source] = []

    def suggest_track_name(self, flac: Path) -> str | None:
        self.track_calls.append(flac)
        return super().suggest_track_name(flac)

    def suggest_album_name(self, source: Source) -> str | None:
        self.album_calls.append(source)
        return super().suggest_album_name(source)


class RecordingPathManager(PathManager):
    """Path manager that records evaluations."""

    def __init__(self):
        super().__init__()
        self.calls: list[Path] = []

    def get_max_transcode_sub_path(self, source, flac, targets) -> str:
        self.calls.append(flac)
        return super().get_max_transcode_sub_path(source, flac, targets)


class RecordingTagVerifier(TagVerifier):
    def __init__(self):
        self.calls: list[Path] = []

    def check(self, flac, metadata):
        self.calls.append(flac)
        return super().check(flac, metadata)


class RecordingStreamVerifier(StreamVerifier):
    def __init__(self):
        super().__init__(decode_check=False)
        self.calls: list[Path] = []

    def check(self, flac):
        self.calls.append(flac)
        return super().check(flac)


class VerifierHarness:
    """A SourceVerifier wired to recording fakes."""

    def __init__(
        self,
        allowed: list[TargetFormat] | None = None,
        hash_rules: list[SourceRule] | None = None,
    ):
        self.tracker = FakeTracker()
        self.torrent_verifier = FakeTorrentVerifier(hash_rules)
        self.shortener = RecordingShortener()
        self.paths = RecordingPathManager()
        self.tags = RecordingTagVerifier()
        self.streams = RecordingStreamVerifier()
        self.verifier = SourceVerifier(
            targets=TargetFormatProvider(allowed=allowed),
            paths=self.paths,
            tag_verifier=self.tags,
            stream_verifier=self.streams,
            shortener=self.shortener,
            api=self.tracker,  # pyright: ignore[reportArgumentType]
            torrent_verifier=self.torrent_verifier,  # pyright: ignore[reportArgumentType]
        )


# =============================================================================
# Tracker Responses
# =============================================================================


def torrent_response(torrent_id: int = 123, group_id: int = 45, **torrent: Any) -> dict[str, Any]:
    """Build an ajax.php?action=torrent response."""
    data: dict[str, Any] = {
        "id": torrent_id,
        "media": "CD",
        "format": "FLAC",
        "encoding": "Lossless",
        "remastered": False,
        "remasterYear": 0,
        "remasterTitle": "",
        "remasterRecordLabel": "",
        "remasterCatalogueNumber": "",
        "scene": False,
        "lossyMasterApproved": None,
        "lossyWebApproved": None,
        "filePath": "Test Artist - Test Album (2020) [FLAC]",
    }
    data.update(torrent)
    return {
        "status": "success",
        "response": {
            "group": {
                "id": group_id,
                "name": "Test Album",
                "year": 2020,
                "musicInfo": {"artists": [{"id": 1, "name": "Test Artist"}]},
            },
            "torrent": data,
        },
    }


def torrent_group_response(
    group_id: int = 45, torrents: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    """Build an ajax.php?action=torrentgroup response."""
    return {
        "status": "success",
        "response": {
            "group": {"id": group_id, "name": "Test Album", "year": 2020},
            "torrents": torrents or [],
        },
    }
