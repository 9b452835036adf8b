"""Source file model and pre-flight validation.

Validation errors are surfaced immediately and never retried; no remote
call happens for a file that fails here.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field

from transcript_processor.config import DEFAULT_MAX_FILE_SIZE
from transcript_processor.utils.errors import (
    EmptyInputError,
    FileTooLargeError,
    UnsupportedTypeError,
)

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "audio/mpeg",
        "audio/wav",
        "audio/x-wav",
        "audio/x-m4a",
        "audio/aac",
        "audio/flac",
        "audio/x-flac",
        "audio/ogg",
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/webm",
    }
)


@dataclass(frozen=True)
class SourceFile:
    """An uploaded audio/video payload. Read-only once created."""

    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    def fingerprint(self) -> str:
        return file_fingerprint(self.data)


def file_fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of a payload, used for cache and storage keys."""
    return hashlib.sha256(data).hexdigest()


def format_size(num_bytes: int) -> str:
    """Render a byte count the way limits are quoted to users (e.g. '2GB')."""
    for unit, scale in (("GB", 1000 * 1024 * 1024), ("MB", 1024 * 1024), ("KB", 1024)):
        if num_bytes >= scale:
            value = num_bytes / scale
            return f"{value:.0f}{unit}" if value.is_integer() else f"{value:.1f}{unit}"
    return f"{num_bytes}B"


def validate_source_file(
    source: SourceFile, max_file_size: int = DEFAULT_MAX_FILE_SIZE
) -> SourceFile:
    """Check a source file's type and size.

    Args:
        source: The selected file.
        max_file_size: Size ceiling in bytes.

    Returns:
        The same SourceFile, for chaining.

    Raises:
        UnsupportedTypeError: If the MIME type is not supported.
        EmptyInputError: If the file has zero length.
        FileTooLargeError: If the file exceeds `max_file_size`.
    """
    logger.debug(
        "Validating file %s (%s, %.2fMB)",
        source.name,
        source.mime_type,
        source.size / (1024 * 1024),
    )

    if source.mime_type not in SUPPORTED_MIME_TYPES:
        raise UnsupportedTypeError(
            "Unsupported file type. Please upload an audio or video file "
            "in MP3, WAV, FLAC, M4A, AAC, OGG, MP4, MOV, AVI, or WEBM format.",
            mime_type=source.mime_type,
        )

    if source.size == 0:
        raise EmptyInputError(
            "The uploaded file appears to be empty. "
            "Please check the file and try again."
        )

    if source.size > max_file_size:
        raise FileTooLargeError(
            f"File size exceeds {format_size(max_file_size)} limit",
            size=source.size,
            limit=max_file_size,
        )

    return source
