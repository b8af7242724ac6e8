"""
Hash check of on-disk content against a torrent descriptor.

Piece hashes are verified by intermodal (``imdl torrent verify``), which reads
the torrent from stdin.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from source_verifier.errors import HashCheckError
from source_verifier.rules import RuleKind, SourceRule

logger = logging.getLogger(__name__)


def get_imdl_path() -> Path | None:
    """Find imdl executable in PATH."""
    path = shutil.which("imdl")
    return Path(path) if path else None


def is_torrent_descriptor(buffer: bytes) -> bool:
    """Check that a buffer looks like a bencoded torrent (a dict with an info key)."""
    return buffer.startswith(b"d") and buffer.endswith(b"e") and b"4:info" in buffer


class TorrentVerifier:
    """
    Verify files against a torrent descriptor.

    Args:
        imdl_path: Optional path to the imdl executable
        timeout_sec: Timeout for one verification
    """

    def __init__(self, imdl_path: Path | None = None, timeout_sec: int = 600):
        self.imdl_path = imdl_path
        self.timeout_sec = timeout_sec

    async def verify(self, buffer: bytes, directory: Path) -> list[SourceRule]:
        """
        Verify the content of a directory against a torrent.

        Returns:
            Empty list if every piece matches, otherwise a single hash mismatch rule

        Raises:
            HashCheckError: If the descriptor is malformed or imdl cannot be run
        """
        if not is_torrent_descriptor(buffer):
            raise HashCheckError("Torrent file is malformed")

        imdl_path = self.imdl_path or get_imdl_path()
        if imdl_path is None:
            raise HashCheckError(
                "imdl not found in PATH. Install intermodal or skip the hash check"
            )

        args = [
            str(imdl_path),
            "torrent",
            "verify",
            "--input",
            "-",
            "--content",
            str(directory),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise HashCheckError(f"Failed to run imdl: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(buffer), timeout=self.timeout_sec
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise HashCheckError(f"imdl timed out after {self.timeout_sec}s") from e

        if process.returncode == 0:
            return []

        output = stderr.decode(errors="replace")
        logger.debug("imdl torrent verify failed for %s: %s", directory, output.strip())
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        message = lines[-1] if lines else f"imdl exited with status {process.returncode}"
        return [SourceRule(RuleKind.HASH_MISMATCH, str(directory), message)]
