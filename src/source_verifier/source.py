"""
Sources: a directory of FLAC files plus the tracker metadata describing it.

``SourceProvider`` builds a ``Source`` from the tracker API given a torrent id
or URL, resolving the directory against the configured content directories.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlparse

from source_verifier.errors import SourceInputError, TrackerApiError
from source_verifier.formats import ExistingFormat, SourceFormat

if TYPE_CHECKING:
    from source_verifier.tracker import TrackerClient

logger = logging.getLogger(__name__)

VINYL_MEDIA = "Vinyl"


@dataclass(frozen=True)
class TorrentInfo:
    """Tracker metadata for the source torrent."""

    id: int
    group_id: int = 0
    scene: bool = False
    lossy_master_approved: bool | None = None
    lossy_web_approved: bool | None = None
    file_path: str = ""


@dataclass(frozen=True)
class SourceMetadata:
    """Descriptive metadata for the release."""

    artist: str
    album: str
    year: int | None = None
    media: str = "CD"

    @property
    def is_vinyl(self) -> bool:
        return self.media == VINYL_MEDIA


@dataclass(frozen=True)
class Source:
    """A release under evaluation."""

    directory: Path
    format: SourceFormat
    torrent: TorrentInfo
    metadata: SourceMetadata
    existing: frozenset[ExistingFormat] = field(default_factory=frozenset)

    def __str__(self) -> str:
        name = f"{self.metadata.artist} - {self.metadata.album}"
        if self.metadata.year:
            name += f" [{self.metadata.year}]"
        return name


_ANCHOR_PATTERN = re.compile(r"#torrent(\d+)$")


def parse_source_input(value: str) -> int:
    """
    Parse a torrent id from user input.

    Accepts a bare id or a tracker URL such as
    ``https://tracker.example/torrents.php?id=1&torrentid=2`` or
    ``https://tracker.example/torrents.php?id=1#torrent2``.

    Raises:
        SourceInputError: If no torrent id can be found
    """
    value = value.strip()
    if value.isdigit():
        return int(value)

    parsed = urlparse(value)
    if parsed.scheme in ("http", "https"):
        query = parse_qs(parsed.query)
        torrent_ids = query.get("torrentid")
        if torrent_ids and torrent_ids[0].isdigit():
            return int(torrent_ids[0])
        if match := _ANCHOR_PATTERN.search(value):
            return int(match.group(1))

    raise SourceInputError(f"Could not find a torrent id in: {value}")


def _join_artists(artists: list[dict[str, Any]]) -> str:
    names = [html.unescape(artist.get("name", "")) for artist in artists]
    names = [name for name in names if name]
    if not names:
        return "Unknown Artist"
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} & {names[1]}"
    return "Various Artists"


def _same_edition(a: dict[str, Any], b: dict[str, Any]) -> bool:
    keys = (
        "media",
        "remasterYear",
        "remasterTitle",
        "remasterRecordLabel",
        "remasterCatalogueNumber",
    )
    return all(a.get(key) == b.get(key) for key in keys)


class SourceProvider:
    """
    Build sources from tracker data.

    Args:
        api: Tracker client
        content_dirs: Directories that may contain the torrent's content
    """

    def __init__(self, api: TrackerClient, content_dirs: list[Path]):
        self.api = api
        self.content_dirs = content_dirs

    async def get_by_string(self, value: str) -> Source:
        """Resolve user input (id or URL) to a source."""
        return await self.get(parse_source_input(value))

    async def get(self, torrent_id: int) -> Source:
        response = await self.api.get_torrent(torrent_id)
        group = response.get("group")
        torrent = response.get("torrent")
        complete = isinstance(group, dict) and isinstance(torrent, dict)
        if not complete or "id" not in group or "id" not in torrent:
            raise TrackerApiError(f"Incomplete tracker response for torrent {torrent_id}")

        source_format = SourceFormat.from_tracker(
            torrent.get("format", ""), torrent.get("encoding", "")
        )
        if source_format is None:
            raise SourceInputError(
                f"Torrent {torrent_id} is {torrent.get('format')} "
                f"{torrent.get('encoding')}, not a lossless FLAC source"
            )

        group_response = await self.api.get_torrent_group(group["id"])
        existing: set[ExistingFormat] = set()
        for other in group_response.get("torrents", []):
            if not _same_edition(other, torrent):
                continue
            fmt = ExistingFormat.from_tracker(other.get("format", ""), other.get("encoding", ""))
            if fmt is not None:
                existing.add(fmt)

        file_path = html.unescape(torrent.get("filePath", ""))
        year = torrent.get("remasterYear") or group.get("year") or None
        metadata = SourceMetadata(
            artist=_join_artists(group.get("musicInfo", {}).get("artists", [])),
            album=html.unescape(group.get("name", "")),
            year=int(year) if year else None,
            media=torrent.get("media", "CD"),
        )
        info = TorrentInfo(
            id=int(torrent["id"]),
            group_id=int(group["id"]),
            scene=bool(torrent.get("scene", False)),
            lossy_master_approved=torrent.get("lossyMasterApproved"),
            lossy_web_approved=torrent.get("lossyWebApproved"),
            file_path=file_path,
        )
        source = Source(
            directory=self._resolve_directory(file_path),
            format=source_format,
            torrent=info,
            metadata=metadata,
            existing=frozenset(existing),
        )
        logger.debug("Resolved torrent %s to %s at %s", torrent_id, source, source.directory)
        return source

    def _resolve_directory(self, file_path: str) -> Path:
        """Find the content directory holding the torrent, or the first candidate."""
        if not self.content_dirs:
            return Path(file_path)
        candidates = [content_dir / file_path for content_dir in self.content_dirs]
        for candidate in candidates:
            if candidate.is_dir():
                return candidate
        return candidates[0]
