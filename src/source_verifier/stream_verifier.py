"""
Audio stream checks for FLAC files.

STREAMINFO is read with mutagen to check the stream can be transcoded
(sample rate, bit depth, channel count). Optionally the whole stream is
decoded with the reference ``flac`` tool to detect corruption.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from source_verifier.errors import SourceReadError, StreamCheckError
from source_verifier.rules import RuleKind, SourceRule

logger = logging.getLogger(__name__)

SUPPORTED_SAMPLE_RATES = frozenset({44100, 48000, 88200, 96000, 176400, 192000})
SUPPORTED_BIT_DEPTHS = frozenset({16, 24})
MAX_CHANNELS = 2


def get_flac_path() -> Path | None:
    """Find flac executable in PATH."""
    path = shutil.which("flac")
    return Path(path) if path else None


class StreamVerifier:
    """
    Check the audio stream of a single FLAC file.

    Args:
        decode_check: Fully decode each file with ``flac --test``
        flac_path: Optional path to the flac executable
        timeout_sec: Timeout for decoding one file
    """

    def __init__(
        self,
        decode_check: bool = True,
        flac_path: Path | None = None,
        timeout_sec: int = 300,
    ):
        self.decode_check = decode_check
        self.flac_path = flac_path
        self.timeout_sec = timeout_sec

    def check(self, flac: Path) -> list[SourceRule]:
        from mutagen import MutagenError
        from mutagen.flac import FLAC

        try:
            info = FLAC(flac).info
        except (MutagenError, OSError) as e:
            raise SourceReadError(flac, str(e)) from e

        path = str(flac)
        rules: list[SourceRule] = []

        if info.sample_rate not in SUPPORTED_SAMPLE_RATES:
            rules.append(SourceRule(RuleKind.UNSUPPORTED_SAMPLE_RATE, path, str(info.sample_rate)))
        if info.bits_per_sample not in SUPPORTED_BIT_DEPTHS:
            rules.append(
                SourceRule(RuleKind.UNSUPPORTED_BIT_DEPTH, path, str(info.bits_per_sample))
            )
        if info.channels > MAX_CHANNELS:
            rules.append(SourceRule(RuleKind.TOO_MANY_CHANNELS, path, str(info.channels)))
        if info.total_samples == 0:
            # Zero means the encoder did not know the length, not an empty stream
            logger.debug("Unknown sample count in STREAMINFO: %s", flac)

        if self.decode_check:
            error = self.test_decode(flac)
            if error is not None:
                rules.append(SourceRule(RuleKind.CORRUPT_STREAM, path, error))

        return rules

    def test_decode(self, flac: Path) -> str | None:
        """
        Decode a file with ``flac --test``.

        Returns:
            None if the file decodes cleanly, otherwise the decoder's message

        Raises:
            StreamCheckError: If flac is not available or times out
        """
        flac_path = self.flac_path or get_flac_path()
        if flac_path is None:
            raise StreamCheckError(
                "flac not found in PATH. Install flac or disable stream.decode_check"
            )

        try:
            result = subprocess.run(
                [str(flac_path), "--test", "--silent", str(flac)],
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except subprocess.TimeoutExpired as e:
            raise StreamCheckError(f"flac timed out after {self.timeout_sec}s on {flac}") from e
        except OSError as e:
            raise StreamCheckError(f"Failed to run flac: {e}") from e

        if result.returncode == 0:
            return None

        lines = [line.strip() for line in result.stderr.splitlines() if line.strip()]
        message = lines[-1] if lines else f"flac exited with status {result.returncode}"
        logger.debug("flac --test failed for %s: %s", flac, result.stderr.strip())
        return message
