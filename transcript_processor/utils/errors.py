"""Custom exception hierarchy for the chunked transcription pipeline.

All exceptions inherit from TranscriptionError, enabling targeted handling
at session boundaries while preserving specific failure context.
"""


class TranscriptionError(Exception):
    """Base exception for all transcription pipeline errors."""

    def __init__(self, message: str, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)

    def __str__(self) -> str:
        if self.session_id:
            return f"[session={self.session_id}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(TranscriptionError):
    """Raised when a tunable setting has an invalid value."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        setting: str | None = None,
    ) -> None:
        self.setting = setting
        super().__init__(message, session_id)


class ValidationError(TranscriptionError):
    """Raised when a source file is rejected before any remote call."""


class EmptyInputError(ValidationError):
    """Raised when a source file or buffer has zero length."""


class UnsupportedTypeError(ValidationError):
    """Raised when a source file's MIME type is not accepted."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        mime_type: str | None = None,
    ) -> None:
        self.mime_type = mime_type
        super().__init__(message, session_id)


class FileTooLargeError(ValidationError):
    """Raised when a source file exceeds the configured size ceiling."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        size: int | None = None,
        limit: int | None = None,
    ) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message, session_id)


class PartitionError(TranscriptionError):
    """Raised when a buffer cannot be split into well-formed chunks."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        offset: int | None = None,
    ) -> None:
        self.offset = offset
        super().__init__(message, session_id)


class ASRError(TranscriptionError):
    """Raised when automatic speech recognition fails."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, session_id)


class RemoteServiceError(ASRError):
    """Raised when the remote service returns an error or malformed payload."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        session_id: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, session_id, provider)

    @property
    def rejected(self) -> bool:
        """True for 4xx replies that resending the same request will not fix."""
        code = self.status_code
        return code is not None and 400 <= code < 500 and code not in (408, 429)


class ChunkTimeoutError(ASRError):
    """Raised when a single chunk call exceeds its timeout."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        provider: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, session_id, provider)


class EmptyChunkError(ASRError):
    """Raised when a zero-length chunk reaches the remote client."""


class StorageError(TranscriptionError):
    """Raised when storage operations (objects/records) fail."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, session_id)


class TranscriptionCancelled(TranscriptionError):
    """Raised when a session is aborted; a terminal outcome, not a failure."""
