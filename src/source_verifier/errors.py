"""Hard errors.

Rules describe a source that failed verification. These exceptions describe
a verification that could not be performed at all: no verdict is produced
when one of them is raised.
"""

from __future__ import annotations


class SourceVerifierError(Exception):
    """Base class for every error that aborts a verification run."""

    pass


class ConfigError(SourceVerifierError):
    """Invalid configuration."""

    pass


class SourceInputError(SourceVerifierError):
    """The source argument could not be resolved to a lossless torrent."""

    pass


class SourceReadError(SourceVerifierError):
    """A source file could not be opened or is not a FLAC container."""

    def __init__(self, path: object, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to read {self.path}: {reason}")


class StreamCheckError(SourceVerifierError):
    """The FLAC decoder could not be run."""

    pass


class TrackerApiError(SourceVerifierError):
    """Error talking to the tracker API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class HashCheckError(SourceVerifierError):
    """The torrent descriptor could not be checked against the files on disk."""

    pass
