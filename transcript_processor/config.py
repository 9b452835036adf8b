"""Tunable settings for the chunked transcription pipeline.

Every constant is overridable through TRANSCRIBE_* environment variables.
Credentials for remote services are read by the client constructors.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields

from transcript_processor.utils.errors import ConfigurationError

MIB = 1024 * 1024

DEFAULT_CHUNK_SIZE = 1 * MIB
DEFAULT_MAX_FILE_SIZE = 2000 * MIB  # 2GB
DEFAULT_CHUNK_TIMEOUT_SECONDS = 45.0
DEFAULT_MAX_CHUNK_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 1.0
DEFAULT_RETRY_MAX_DELAY_SECONDS = 8.0
DEFAULT_RETRY_JITTER_SECONDS = 1.0
DEFAULT_MAX_SESSION_RETRIES = 3
DEFAULT_SESSION_RETRY_DELAY_SECONDS = 2.0
DEFAULT_BATCH_CONCURRENCY = 2
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60.0

ENV_PREFIX = "TRANSCRIBE_"

# Settings that may legitimately be zero (no jitter, no session retries).
_ZERO_ALLOWED = {
    "retry_jitter_seconds",
    "max_session_retries",
    "session_retry_delay_seconds",
}


@dataclass(frozen=True)
class TranscriptionSettings:
    """All tunable constants for one transcription session."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    chunk_timeout_seconds: float = DEFAULT_CHUNK_TIMEOUT_SECONDS
    max_chunk_retries: int = DEFAULT_MAX_CHUNK_RETRIES
    retry_base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    retry_max_delay_seconds: float = DEFAULT_RETRY_MAX_DELAY_SECONDS
    retry_jitter_seconds: float = DEFAULT_RETRY_JITTER_SECONDS
    max_session_retries: int = DEFAULT_MAX_SESSION_RETRIES
    session_retry_delay_seconds: float = DEFAULT_SESSION_RETRY_DELAY_SECONDS
    batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0 or (value == 0 and f.name not in _ZERO_ALLOWED):
                raise ConfigurationError(
                    f"Setting '{f.name}' must be positive, got {value!r}",
                    setting=f.name,
                )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TranscriptionSettings:
        """Build settings from TRANSCRIBE_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Settings with environment overrides applied over the defaults.

        Raises:
            ConfigurationError: If a variable is not a valid number or is
                out of range.
        """
        if environ is None:
            environ = os.environ

        overrides: dict[str, int | float] = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            converter = int if f.type in ("int", int) else float
            try:
                overrides[f.name] = converter(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid value for {key}: '{raw}'", setting=f.name
                ) from exc
        return cls(**overrides)
