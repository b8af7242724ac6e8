__all__ = (
    "Config",
    "VerifyConfig",
    # Rules
    "RuleCategory",
    "RuleKind",
    "SourceRule",
    # Errors
    "SourceVerifierError",
    "SourceReadError",
    "StreamCheckError",
    "TrackerApiError",
    "HashCheckError",
    "SourceInputError",
    "ConfigError",
    # Sources
    "Source",
    "SourceMetadata",
    "TorrentInfo",
    "SourceProvider",
    "SourceFormat",
    "ExistingFormat",
    "TargetFormat",
    "TargetFormatProvider",
    # Verification
    "SourceVerifier",
    "VerificationResult",
    "PhaseReport",
    "Phase",
    "TagVerifier",
    "StreamVerifier",
    "TorrentVerifier",
    "TrackerClient",
    "PathManager",
    "Shortener",
    "find_flacs",
)

from source_verifier.collector import find_flacs
from source_verifier.config import Config, VerifyConfig
from source_verifier.errors import (
    ConfigError,
    HashCheckError,
    SourceInputError,
    SourceReadError,
    SourceVerifierError,
    StreamCheckError,
    TrackerApiError,
)
from source_verifier.formats import (
    ExistingFormat,
    SourceFormat,
    TargetFormat,
    TargetFormatProvider,
)
from source_verifier.hash_check import TorrentVerifier
from source_verifier.naming import Shortener
from source_verifier.paths import PathManager
from source_verifier.rules import RuleCategory, RuleKind, SourceRule
from source_verifier.source import Source, SourceMetadata, SourceProvider, TorrentInfo
from source_verifier.stream_verifier import StreamVerifier
from source_verifier.tag_verifier import TagVerifier
from source_verifier.tracker import TrackerClient
from source_verifier.verifier import Phase, PhaseReport, SourceVerifier, VerificationResult
