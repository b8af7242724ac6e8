from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from source_verifier.errors import ConfigError
from source_verifier.formats import TargetFormat
from source_verifier.paths import MAX_PATH_LENGTH


class VerifyConfig(BaseModel):
    """Verification options."""

    skip_hash_check: bool = Field(default=False)
    workers: int = Field(default=1, ge=1)  # threads for per-file checks
    max_path_length: int = Field(default=MAX_PATH_LENGTH, ge=1)


class TargetsConfig(BaseModel):
    """Transcode target configuration."""

    formats: list[TargetFormat] = Field(default_factory=lambda: list(TargetFormat))
    allow_existing: bool = Field(default=False)


class PathsConfig(BaseModel):
    """Filesystem locations."""

    content_dirs: list[Path] = Field(default_factory=list)


class TrackerConfig(BaseModel):
    """Tracker API configuration."""

    base_url: str = Field(default="https://redacted.sh")
    # Read from TRACKER_API_KEY if not provided
    api_key: str | None = Field(default=None)
    rate_limit_seconds: float = Field(default=2.0, ge=0)
    timeout_s: float = Field(default=30.0, ge=1.0)


class StreamConfig(BaseModel):
    """Audio stream check configuration."""

    decode_check: bool = Field(default=True)
    flac_path: Path | None = Field(default=None)
    timeout_s: int = Field(default=300, ge=1)


class HashCheckConfig(BaseModel):
    """Hash check configuration."""

    imdl_path: Path | None = Field(default=None)
    timeout_s: int = Field(default=600, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(message)s")
    hash_paths: bool = Field(default=False)


class Config(BaseModel):
    """
    Main configuration for source-verifier.

    Loads from TOML file with optional environment variable overrides.
    """

    verify: VerifyConfig = Field(default_factory=VerifyConfig)
    targets: TargetsConfig = Field(default_factory=TargetsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    hash_check: HashCheckConfig = Field(default_factory=HashCheckConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        SOURCE_VERIFIER_<SECTION>_<KEY> (e.g., SOURCE_VERIFIER_VERIFY_SKIP_HASH_CHECK)

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.

        Raises:
            ConfigError: If the file cannot be parsed or a value is invalid
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            try:
                config_dict = tomllib.loads(config_path.read_text())
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

        config_dict = cls._merge_env_overrides(config_dict)
        try:
            return cls.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """
        Merge environment variable overrides into config dictionary.

        Returns a new dictionary with env vars applied, ready for Pydantic validation.
        """
        env_prefix = "SOURCE_VERIFIER_"

        def truthy(value: str) -> bool:
            return value.lower() in ("true", "1", "yes")

        verify = cls._section(config_dict, "verify")
        if skip := os.getenv(f"{env_prefix}VERIFY_SKIP_HASH_CHECK"):
            verify["skip_hash_check"] = truthy(skip)
        if workers := os.getenv(f"{env_prefix}VERIFY_WORKERS"):
            verify["workers"] = workers
        if max_path := os.getenv(f"{env_prefix}VERIFY_MAX_PATH_LENGTH"):
            verify["max_path_length"] = max_path

        targets = cls._section(config_dict, "targets")
        if formats := os.getenv(f"{env_prefix}TARGETS_FORMATS"):
            targets["formats"] = [fmt.strip() for fmt in formats.split(",") if fmt.strip()]
        if allow_existing := os.getenv(f"{env_prefix}TARGETS_ALLOW_EXISTING"):
            targets["allow_existing"] = truthy(allow_existing)

        paths = cls._section(config_dict, "paths")
        if content_dirs := os.getenv(f"{env_prefix}PATHS_CONTENT_DIRS"):
            paths["content_dirs"] = content_dirs.split(os.pathsep)

        # Tracker config
        tracker = cls._section(config_dict, "tracker")
        if api_key := os.getenv("TRACKER_API_KEY"):
            tracker["api_key"] = api_key
        if base_url := os.getenv(f"{env_prefix}TRACKER_BASE_URL"):
            tracker["base_url"] = base_url
        if rate_limit := os.getenv(f"{env_prefix}TRACKER_RATE_LIMIT_SECONDS"):
            tracker["rate_limit_seconds"] = rate_limit
        if timeout := os.getenv(f"{env_prefix}TRACKER_TIMEOUT_S"):
            tracker["timeout_s"] = timeout

        stream = cls._section(config_dict, "stream")
        if decode_check := os.getenv(f"{env_prefix}STREAM_DECODE_CHECK"):
            stream["decode_check"] = truthy(decode_check)
        if flac_path := os.getenv(f"{env_prefix}STREAM_FLAC_PATH"):
            stream["flac_path"] = flac_path

        hash_check = cls._section(config_dict, "hash_check")
        if imdl_path := os.getenv(f"{env_prefix}HASH_CHECK_IMDL_PATH"):
            hash_check["imdl_path"] = imdl_path

        # Logging config
        logging_config = cls._section(config_dict, "logging")
        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_config["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_config["format"] = log_format
        if log_hash_paths := os.getenv(f"{env_prefix}LOGGING_HASH_PATHS"):
            logging_config["hash_paths"] = truthy(log_hash_paths)

        return config_dict
