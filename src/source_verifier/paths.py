"""Transcode output paths and their lengths."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from source_verifier.formats import TargetFormat, sort_targets
from source_verifier.naming import SourceName
from source_verifier.source import Source

# Maximum path length (in UTF-8 bytes) the tracker accepts inside a torrent
MAX_PATH_LENGTH = 180


def path_length(path: str) -> int:
    """Length of a path as the tracker measures it, in UTF-8 bytes."""
    return len(path.encode("utf-8"))


class PathManager:
    """Compute the paths transcodes of a source will have inside their torrents."""

    def get_transcode_sub_path(self, source: Source, flac: Path, target: TargetFormat) -> str:
        """
        Path of one transcoded file relative to the torrent root.

        This is the path that ends up inside the transcode torrent, so it is
        the one the length limit applies to.
        """
        try:
            relative = flac.relative_to(source.directory)
        except ValueError:
            relative = Path(flac.name)
        relative = relative.with_suffix(f".{target.extension}")
        dir_name = SourceName.get_transcode_dir(source.metadata, target)
        return str(PurePosixPath(dir_name, *relative.parts))

    def get_max_transcode_sub_path(
        self,
        source: Source,
        flac: Path,
        targets: Iterable[TargetFormat],
    ) -> str:
        """
        Longest transcode sub-path (in bytes) of a file across all targets.

        Returns an empty string when there are no targets.
        """
        paths = [
            self.get_transcode_sub_path(source, flac, target) for target in sort_targets(targets)
        ]
        return max(paths, key=path_length, default="")
