"""Transcription session controller.

Owns the UI-facing state of one file's transcription: validation, the
shared abort signal, session-level retry of the whole pipeline, caching,
persistence, and progress/status callbacks.

State machine:
    Idle -> Validating -> Idle (file selected)
    Idle -> Extracting -> Transcribing -> Uploading -> Completed
    Extracting/Transcribing -> (error, budget left) -> Extracting
    Extracting/Transcribing -> Failed | Cancelled
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from transcript_processor.asr.client import RemoteTranscriptionClient
from transcript_processor.asr.interface import Transcript, TranscriptionOptions
from transcript_processor.config import TranscriptionSettings
from transcript_processor.observability.metrics import (
    SessionMetrics,
    StageTimer,
    log_session_metrics,
)
from transcript_processor.pipeline import transcribe_buffer
from transcript_processor.storage.cache import TranscriptCache, cache_key
from transcript_processor.storage.transcript_store import (
    StoredTranscript,
    TranscriptStore,
)
from transcript_processor.utils.errors import (
    RemoteServiceError,
    StorageError,
    TranscriptionCancelled,
    TranscriptionError,
    ValidationError,
)
from transcript_processor.utils.retry import retry_with_backoff, sleep_or_abort
from transcript_processor.validation import (
    SourceFile,
    file_fingerprint,
    validate_source_file,
)

logger = logging.getLogger(__name__)

FAILURE_STATUS = "Error during transcription"


class SessionPhase(str, Enum):
    """Lifecycle phase of a transcription session."""

    IDLE = "idle"
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionPhase.COMPLETED,
            SessionPhase.FAILED,
            SessionPhase.CANCELLED,
        )


@dataclass
class SessionState:
    """Snapshot of a session, read by the UI layer."""

    phase: SessionPhase = SessionPhase.IDLE
    progress: int = 0
    status_message: str = ""
    result: Transcript | None = None
    retry_attempt: int = 0
    error: str | None = None
    reference: StoredTranscript | None = None


@dataclass
class SessionCallbacks:
    """Hooks the UI layer registers to observe a session."""

    on_progress: Callable[[int], None] | None = None
    on_status_change: Callable[[str], None] | None = None
    on_complete: Callable[[Transcript], None] | None = None
    on_error: Callable[[Exception], None] | None = None


@retry_with_backoff(
    max_retries=2,
    base_delay=1.0,
    retryable_exceptions=(StorageError,),
)
async def _save_with_retry(
    store: TranscriptStore,
    source: SourceFile,
    transcript: Transcript,
    options: TranscriptionOptions,
) -> StoredTranscript:
    return await store.save(source, transcript, options)


class TranscriptionSession:
    """Drive one file from selection to a terminal outcome.

    Args:
        client: Remote transcription client used for every chunk.
        options: Remote service options for this session.
        settings: Tunable constants (defaults if omitted).
        store: Optional persistence collaborator for finished transcripts.
        cache: Optional transcript cache keyed by file and options.
        callbacks: Optional UI hooks.
        session_id: Identifier used in logs and metrics.
    """

    def __init__(
        self,
        client: RemoteTranscriptionClient,
        options: TranscriptionOptions | None = None,
        settings: TranscriptionSettings | None = None,
        store: TranscriptStore | None = None,
        cache: TranscriptCache | None = None,
        callbacks: SessionCallbacks | None = None,
        session_id: str | None = None,
    ) -> None:
        self.client = client
        self.options = options or TranscriptionOptions()
        self.settings = settings or TranscriptionSettings()
        self.store = store
        self.cache = cache
        self.callbacks = callbacks or SessionCallbacks()
        self.session_id = session_id or uuid.uuid4().hex[:12]

        self._state = SessionState()
        self._source: SourceFile | None = None
        self._cache_key: str | None = None
        self._abort = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> SessionState:
        return replace(self._state)

    @property
    def source(self) -> SourceFile | None:
        return self._source

    @property
    def is_processing(self) -> bool:
        return not self._idle.is_set()

    async def select_file(self, source: SourceFile) -> None:
        """Clean up any previous session, then validate and accept `source`.

        Raises:
            ValidationError: If the file is rejected. The session is left
                Idle with no file and the error is reported via on_error.
        """
        await self._cleanup()

        self._set_status(SessionPhase.VALIDATING, "Validating file...")
        try:
            validate_source_file(source, self.settings.max_file_size)
        except ValidationError as exc:
            logger.warning(
                "Rejected file %s: %s",
                source.name,
                exc,
                extra={"session_id": self.session_id},
            )
            self._state = SessionState(error=str(exc))
            self._set_status(SessionPhase.IDLE, str(exc))
            self._notify_error(exc)
            raise

        self._source = source
        self._set_status(SessionPhase.IDLE, f"Selected {source.name}")

    async def start_transcription(self) -> SessionState:
        """Run the pipeline for the selected file until a terminal outcome.

        Returns:
            The terminal SessionState (Completed, Failed or Cancelled).

        Raises:
            ValidationError: If no file has been selected.
            TranscriptionError: If a transcription is already running.
        """
        if self._source is None:
            raise ValidationError("Please upload a file first")
        if self.is_processing:
            raise TranscriptionError(
                "A transcription is already running", session_id=self.session_id
            )

        source = self._source
        self._idle.clear()
        self._abort = asyncio.Event()
        previous_reference = self._state.reference
        self._state = SessionState()
        metrics = SessionMetrics(
            session_id=self.session_id,
            status="running",
            file_name=source.name,
            file_size_bytes=source.size,
            provider=self.client.provider,
        )
        wall_start = time.monotonic()

        try:
            await self._remove_reference(previous_reference)
            transcript = await self._run_with_session_retries(source, metrics)
        except TranscriptionCancelled:
            self._finish_cancelled()
        except asyncio.CancelledError:
            self._finish_cancelled()
            raise
        except Exception as exc:
            self._finish_failed(exc)
        else:
            await self._finish_completed(source, transcript, metrics)
        finally:
            metrics.status = self._state.phase.value
            metrics.session_retries = self._state.retry_attempt
            metrics.error_message = self._state.error
            metrics.wall_time_seconds = time.monotonic() - wall_start
            log_session_metrics(metrics)
            self._idle.set()

        return self.state

    def cancel(self) -> None:
        """Signal the running pipeline to stop at its next yield point."""
        if self.is_processing and not self._abort.is_set():
            logger.info(
                "Cancelling transcription", extra={"session_id": self.session_id}
            )
            self._abort.set()

    async def reset(self) -> None:
        """Cancel any running work, clean up, and return to Idle."""
        await self._cleanup()

    async def _run_with_session_retries(
        self, source: SourceFile, metrics: SessionMetrics
    ) -> Transcript:
        max_retries = self.settings.max_session_retries
        while True:
            if self._abort.is_set():
                raise TranscriptionCancelled("Transcription cancelled")
            try:
                return await self._run_once(source, metrics)
            except (TranscriptionCancelled, ValidationError):
                raise
            except Exception as exc:
                if self._abort.is_set():
                    raise TranscriptionCancelled("Transcription cancelled") from exc
                if isinstance(exc, RemoteServiceError) and exc.rejected:
                    raise
                if self._state.retry_attempt >= max_retries:
                    raise
                self._state.retry_attempt += 1
                logger.warning(
                    "Session attempt failed, retrying (%d/%d): %s",
                    self._state.retry_attempt,
                    max_retries,
                    exc,
                    extra={
                        "session_id": self.session_id,
                        "attempt": self._state.retry_attempt,
                        "error": type(exc).__name__,
                    },
                )
                self._set_status(
                    self._state.phase,
                    f"Retrying ({self._state.retry_attempt}/{max_retries})...",
                )
                if await sleep_or_abort(
                    self.settings.session_retry_delay_seconds, self._abort
                ):
                    raise TranscriptionCancelled("Transcription cancelled") from exc

    async def _run_once(self, source: SourceFile, metrics: SessionMetrics) -> Transcript:
        with StageTimer("extract", metrics.stage_durations):
            self._set_status(SessionPhase.EXTRACTING, "Preparing audio for processing...")
            buffer = source.data
            if self.cache is not None and self._cache_key is None:
                file_hash = await asyncio.to_thread(file_fingerprint, buffer)
                self._cache_key = cache_key(file_hash, self.options.fingerprint())

        if self.cache is not None and self._cache_key is not None:
            cached = self.cache.get(self._cache_key)
            if cached is not None:
                logger.info(
                    "Using cached transcript for %s",
                    source.name,
                    extra={"session_id": self.session_id},
                )
                metrics.cache_hit = True
                return cached

        with StageTimer("transcribe", metrics.stage_durations):
            self._set_status(SessionPhase.TRANSCRIBING, "Transcribing audio...")
            transcript = await transcribe_buffer(
                buffer,
                source.mime_type,
                self.options,
                self.client,
                self.settings,
                on_progress=self._set_progress,
                abort=self._abort,
            )

        metrics.chunk_count = transcript.metadata.get("chunks_processed", 0)
        metrics.chunk_attempts += transcript.metadata.get("chunk_attempts", 0)
        return transcript

    async def _finish_completed(
        self, source: SourceFile, transcript: Transcript, metrics: SessionMetrics
    ) -> None:
        self._state.result = transcript
        if self.cache is not None and self._cache_key is not None:
            self.cache.put(self._cache_key, transcript, self.settings.cache_ttl_seconds)

        if self.store is not None:
            with StageTimer("upload", metrics.stage_durations):
                self._set_status(SessionPhase.UPLOADING, "Saving transcript...")
                try:
                    self._state.reference = await _save_with_retry(
                        self.store, source, transcript, self.options
                    )
                except StorageError as exc:
                    logger.error(
                        "Failed to save transcript for %s",
                        source.name,
                        exc_info=True,
                        extra={"session_id": self.session_id},
                    )
                    self._notify_error(exc)

        self._set_progress(100)
        self._set_status(
            SessionPhase.COMPLETED, "Transcription completed successfully!"
        )
        if self.callbacks.on_complete is not None:
            self.callbacks.on_complete(transcript)

    def _finish_failed(self, exc: Exception) -> None:
        logger.error(
            "Transcription failed after %d session retries: %s",
            self._state.retry_attempt,
            exc,
            extra={"session_id": self.session_id, "error": type(exc).__name__},
        )
        self._state.error = str(exc)
        self._set_status(SessionPhase.FAILED, f"{FAILURE_STATUS}: {exc}")
        self._notify_error(exc)

    def _finish_cancelled(self) -> None:
        logger.info("Transcription cancelled", extra={"session_id": self.session_id})
        self._set_status(SessionPhase.CANCELLED, "Transcription cancelled")

    async def _cleanup(self) -> None:
        """Stop running work and drop all state from the previous file."""
        if self.is_processing:
            self.cancel()
            await self._idle.wait()

        if self.cache is not None and self._cache_key is not None:
            self.cache.delete(self._cache_key)

        await self._remove_reference(self._state.reference)

        self._source = None
        self._cache_key = None
        self._state = SessionState()

    async def _remove_reference(self, reference: StoredTranscript | None) -> None:
        if self.store is None or reference is None:
            return
        try:
            await self.store.remove(reference)
        except StorageError:
            logger.warning(
                "Failed to remove previously stored file %s",
                reference.audio_path,
                exc_info=True,
                extra={"session_id": self.session_id},
            )

    def _set_status(self, phase: SessionPhase, message: str) -> None:
        self._state.phase = phase
        self._state.status_message = message
        logger.debug(
            "Session status: %s",
            message,
            extra={"session_id": self.session_id, "phase": phase.value},
        )
        if self.callbacks.on_status_change is not None:
            self.callbacks.on_status_change(message)

    def _set_progress(self, percent: int) -> None:
        # Progress never moves backwards within a session, including retries.
        percent = max(0, min(100, int(percent)))
        if percent <= self._state.progress:
            return
        self._state.progress = percent
        if self.callbacks.on_progress is not None:
            self.callbacks.on_progress(percent)

    def _notify_error(self, exc: Exception) -> None:
        if self.callbacks.on_error is not None:
            self.callbacks.on_error(exc)
