"""
Source verification engine.

Decides whether a source can be transcoded. Three phases run in a fixed
order and every one of them runs even when an earlier one already failed,
so a single run reports every problem the operator has to fix:

1. Policy: tracker flags and transcode eligibility (no I/O)
2. Files: directory, tags, audio streams and output path lengths (local I/O)
3. Hash: on-disk content against the tracker's torrent file (network I/O),
   skipped when configured

The source is verified when no phase produced a rule.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from source_verifier.collector import find_flacs
from source_verifier.config import Config, VerifyConfig
from source_verifier.errors import SourceReadError
from source_verifier.formats import TargetFormat, TargetFormatProvider
from source_verifier.hash_check import TorrentVerifier
from source_verifier.naming import Shortener
from source_verifier.paths import PathManager, path_length
from source_verifier.rules import RuleKind, SourceRule, has_kind
from source_verifier.source import Source
from source_verifier.stream_verifier import StreamVerifier
from source_verifier.tag_verifier import TagVerifier
from source_verifier.tracker import TrackerClient

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    """Verification phases."""

    POLICY = "policy"
    FILES = "files"
    HASH = "hash"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    Phase.POLICY: "API checks",
    Phase.FILES: "FLAC file checks",
    Phase.HASH: "Hash check",
}


class VerificationState(StrEnum):
    """Progress of a verification run."""

    START = "start"
    POLICY_CHECKED = "policy_checked"
    FILES_CHECKED = "files_checked"
    HASH_CHECKED = "hash_checked"
    VERDICT = "verdict"


# Phases in execution order, with the state reached once each has run.
PHASES: tuple[tuple[Phase, VerificationState], ...] = (
    (Phase.POLICY, VerificationState.POLICY_CHECKED),
    (Phase.FILES, VerificationState.FILES_CHECKED),
    (Phase.HASH, VerificationState.HASH_CHECKED),
)


@dataclass
class PhaseReport:
    """Rules produced by one phase."""

    phase: Phase
    rules: list[SourceRule] = field(default_factory=list)
    skipped: bool = False

    @property
    def passed(self) -> bool:
        return not self.rules

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "skipped": self.skipped,
            "passed": self.passed,
            "rules": [rule.to_dict() for rule in self.rules],
        }


@dataclass
class VerificationResult:
    """Outcome of verifying one source."""

    source: Source
    phases: list[PhaseReport] = field(default_factory=list)
    state: VerificationState = VerificationState.START

    @property
    def rules(self) -> list[SourceRule]:
        """All rules in phase order."""
        return [rule for report in self.phases for rule in report.rules]

    @property
    def verified(self) -> bool:
        return not self.rules

    def phase(self, phase: Phase) -> PhaseReport:
        for report in self.phases:
            if report.phase == phase:
                return report
        raise KeyError(phase)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "torrent_id": self.source.torrent.id,
            "directory": str(self.source.directory),
            "verified": self.verified,
            "phases": [report.to_dict() for report in self.phases],
            "rules": [rule.to_dict() for rule in self.rules],
        }


class SourceVerifier:
    """
    Verify a FLAC source is suitable for transcoding.

    All collaborators are passed in. The tracker client in particular is an
    explicit handle owned by the caller, only used during the hash phase.
    """

    def __init__(
        self,
        targets: TargetFormatProvider,
        paths: PathManager,
        tag_verifier: TagVerifier,
        stream_verifier: StreamVerifier,
        shortener: Shortener,
        api: TrackerClient,
        torrent_verifier: TorrentVerifier,
        options: VerifyConfig | None = None,
        collector: Callable[[Path], list[Path]] = find_flacs,
    ):
        self.targets = targets
        self.paths = paths
        self.tag_verifier = tag_verifier
        self.stream_verifier = stream_verifier
        self.shortener = shortener
        self.api = api
        self.torrent_verifier = torrent_verifier
        self.options = options or VerifyConfig()
        self.collector = collector

    @classmethod
    def from_config(cls, config: Config, api: TrackerClient) -> SourceVerifier:
        """Build a verifier with the collaborators described by a config."""
        return cls(
            targets=TargetFormatProvider(
                allowed=config.targets.formats,
                allow_existing=config.targets.allow_existing,
            ),
            paths=PathManager(),
            tag_verifier=TagVerifier(),
            stream_verifier=StreamVerifier(
                decode_check=config.stream.decode_check,
                flac_path=config.stream.flac_path,
                timeout_sec=config.stream.timeout_s,
            ),
            shortener=Shortener(),
            api=api,
            torrent_verifier=TorrentVerifier(
                imdl_path=config.hash_check.imdl_path,
                timeout_sec=config.hash_check.timeout_s,
            ),
            options=config.verify,
        )

    async def verify(
        self, source: Source, options: VerifyConfig | None = None
    ) -> VerificationResult:
        """
        Run every phase against a source.

        Args:
            source: Source to verify
            options: Overrides the verifier's configured options for this run

        Returns:
            VerificationResult; ``verified`` is True when no phase produced a rule

        Raises:
            SourceVerifierError: If verification could not be performed
        """
        options = options or self.options
        logger.info(f"Verifying {source}")
        result = VerificationResult(source=source)

        for phase, state in PHASES:
            report = await self._run_phase(phase, source, options)
            result.phases.append(report)
            result.state = state
            _debug_report(report, source)

        result.state = VerificationState.VERDICT
        if result.verified:
            logger.info(f"Verified {source}")
        else:
            logger.warning(f"Skipped {source}")
            for rule in result.rules:
                _log_rule(logging.WARNING, rule)
        return result

    async def _run_phase(self, phase: Phase, source: Source, options: VerifyConfig) -> PhaseReport:
        match phase:
            case Phase.POLICY:
                return PhaseReport(phase, self.policy_checks(source))
            case Phase.FILES:
                return PhaseReport(phase, self.file_checks(source, options))
            case Phase.HASH:
                if options.skip_hash_check:
                    logger.debug("Skipped hash check due to settings")
                    return PhaseReport(phase, skipped=True)
                return PhaseReport(phase, await self.hash_check(source))

    def eligible_targets(self, source: Source) -> set[TargetFormat]:
        return self.targets.get(source.format, source.existing)

    def policy_checks(self, source: Source) -> list[SourceRule]:
        """Check tracker flags and transcode eligibility."""
        rules: list[SourceRule] = []
        torrent = source.torrent
        if torrent.scene:
            rules.append(SourceRule(RuleKind.SCENE_NOT_SUPPORTED))
        # An approved flag that is already set still needs a manual review
        if torrent.lossy_master_approved is True:
            rules.append(SourceRule(RuleKind.LOSSY_MASTER_NEEDS_APPROVAL))
        if torrent.lossy_web_approved is True:
            rules.append(SourceRule(RuleKind.LOSSY_WEB_NEEDS_APPROVAL))
        if not self.eligible_targets(source):
            rules.append(SourceRule(RuleKind.NO_TRANSCODE_FORMATS))
        return rules

    def file_checks(self, source: Source, options: VerifyConfig | None = None) -> list[SourceRule]:
        """
        Check the source directory and every FLAC file in it.

        A missing directory or an empty one is reported as a single rule and
        nothing else is checked.

        Raises:
            SourceReadError: If the directory or a file cannot be read
        """
        options = options or self.options
        directory = source.directory
        if not directory.is_dir():
            return [SourceRule(RuleKind.SOURCE_DIRECTORY_NOT_FOUND, str(directory))]

        try:
            flacs = self.collector(directory)
        except OSError as e:
            raise SourceReadError(directory, str(e)) from e
        if not flacs:
            return [SourceRule(RuleKind.NO_FLAC_FILES, str(directory))]

        targets = self.eligible_targets(source)

        def content_checks(flac: Path) -> list[SourceRule]:
            return [
                *self.tag_verifier.check(flac, source.metadata),
                *self.stream_verifier.check(flac),
            ]

        if options.workers > 1 and len(flacs) > 1:
            with ThreadPoolExecutor(max_workers=min(options.workers, len(flacs))) as executor:
                # map keeps input order, so results match a serial run
                content = list(executor.map(content_checks, flacs))
        else:
            content = [content_checks(flac) for flac in flacs]

        rules: list[SourceRule] = []
        for flac, file_rules in zip(flacs, content, strict=True):
            if targets:
                max_path = self.paths.get_max_transcode_sub_path(source, flac, targets)
                if path_length(max_path) > options.max_path_length:
                    rules.append(SourceRule(RuleKind.PATH_TOO_LONG, max_path))
                    self.shortener.suggest_track_name(flac)
            rules.extend(file_rules)

        if has_kind(rules, RuleKind.PATH_TOO_LONG):
            self.shortener.suggest_album_name(source)
        return rules

    async def hash_check(self, source: Source) -> list[SourceRule]:
        """
        Verify on-disk content against the tracker's torrent file.

        Raises:
            TrackerApiError: If the torrent file cannot be downloaded
            HashCheckError: If the torrent file cannot be checked
        """
        buffer = await self.api.get_torrent_file_as_buffer(source.torrent.id)
        return await self.torrent_verifier.verify(buffer, source.directory)


def _debug_report(report: PhaseReport, source: Source) -> None:
    title = report.phase.label
    if report.skipped:
        return
    if report.passed:
        logger.debug(f"Passed {title} {source}")
    else:
        logger.debug(f"Failed {title} {source}")
        for rule in report.rules:
            _log_rule(logging.DEBUG, rule, prefix="⚠ ")


def _log_rule(level: int, rule: SourceRule, prefix: str = "") -> None:
    # Paths go in as Path args so the log formatter can relativize or hash them
    if rule.shows_path:
        logger.log(level, "%s%s: %s", prefix, rule.summary, Path(rule.path or ""))
    else:
        logger.log(level, "%s%s", prefix, rule.summary)
