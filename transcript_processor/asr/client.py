"""Remote transcription client: one bounded, timed call per chunk.

RemoteTranscriptionClient wraps an ASREngine with a per-call timeout and
its own semaphore limiting concurrent remote calls. It never retries.
"""

import asyncio
import logging
import time

from transcript_processor.asr.interface import (
    ASREngine,
    Transcript,
    TranscriptionOptions,
)
from transcript_processor.config import (
    DEFAULT_BATCH_CONCURRENCY,
    DEFAULT_CHUNK_TIMEOUT_SECONDS,
)
from transcript_processor.utils.errors import (
    ChunkTimeoutError,
    EmptyChunkError,
    RemoteServiceError,
)
from transcript_processor.utils.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)


class RemoteTranscriptionClient:
    """Invoke an ASR engine for a single chunk under a timeout.

    Args:
        engine: The remote speech-to-text engine.
        timeout_seconds: Per-call timeout.
        max_concurrency: Upper bound on simultaneous remote calls made
            through this client.
    """

    def __init__(
        self,
        engine: ASREngine,
        timeout_seconds: float = DEFAULT_CHUNK_TIMEOUT_SECONDS,
        max_concurrency: int = DEFAULT_BATCH_CONCURRENCY,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.engine = engine
        self.timeout_seconds = timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.calls_made = 0

    @property
    def provider(self) -> str:
        return self.engine.provider

    async def transcribe(
        self,
        chunk_bytes: bytes,
        mime_type: str,
        options: TranscriptionOptions,
        chunk_index: int | None = None,
    ) -> Transcript:
        """Transcribe one chunk, racing the remote call against the timeout.

        Raises:
            EmptyChunkError: If `chunk_bytes` is empty.
            ChunkTimeoutError: If the call exceeds the timeout.
            RemoteServiceError: If the remote call fails or returns a
                malformed payload.
        """
        if len(chunk_bytes) == 0:
            raise EmptyChunkError("Invalid audio chunk: zero length", provider=self.provider)

        async with self._semaphore:
            self.calls_made += 1
            start = time.monotonic()
            try:
                transcript = await asyncio.wait_for(
                    self.engine.transcribe_chunk(chunk_bytes, mime_type, options),
                    timeout=self.timeout_seconds,
                )
            except TimeoutError as exc:
                logger.error(
                    "Timeout reached after %.0fs for chunk %s",
                    self.timeout_seconds,
                    chunk_index,
                    extra={"chunk_index": chunk_index},
                )
                raise ChunkTimeoutError(
                    "The processing request timed out after "
                    f"{self.timeout_seconds:g}s",
                    provider=self.provider,
                    timeout_seconds=self.timeout_seconds,
                ) from exc

        if transcript is None or not isinstance(transcript.text, str):
            raise RemoteServiceError(
                "Remote service returned no transcript", provider=self.provider
            )

        logger.debug(
            "Chunk %s transcribed in %.2fs (%d chars)",
            chunk_index,
            time.monotonic() - start,
            len(transcript.text),
            extra={
                "chunk_index": chunk_index,
                "duration_seconds": round(time.monotonic() - start, 3),
            },
        )
        return transcript

    async def attempt(
        self,
        chunk_bytes: bytes,
        mime_type: str,
        options: TranscriptionOptions,
        chunk_index: int | None = None,
    ) -> Result:
        """Make exactly one call and report its outcome as Ok or Err."""
        try:
            transcript = await self.transcribe(chunk_bytes, mime_type, options, chunk_index)
        except ChunkTimeoutError as exc:
            return Err(kind=ErrorKind.TIMEOUT, error=exc)
        except EmptyChunkError as exc:
            return Err(kind=ErrorKind.EMPTY_CHUNK, error=exc)
        except RemoteServiceError as exc:
            if exc.rejected:
                return Err(kind=ErrorKind.REJECTED, error=exc)
            return Err(kind=ErrorKind.REMOTE, error=exc)
        except Exception as exc:
            logger.warning(
                "Unexpected error transcribing chunk %s: %s",
                chunk_index,
                exc,
                exc_info=True,
            )
            return Err(kind=ErrorKind.UNEXPECTED, error=exc)
        return Ok(value=transcript)
