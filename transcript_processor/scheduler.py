"""Batch scheduler: bounded-concurrency chunk dispatch with ordered results.

Chunks are dispatched in fixed-size batches. Each batch is a task group of
per-chunk retry runs; the scheduler waits for the whole batch to settle
before starting the next, so peak concurrent remote calls never exceed the
batch size.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from transcript_processor.asr.client import RemoteTranscriptionClient
from transcript_processor.asr.interface import Transcript, TranscriptionOptions
from transcript_processor.chunking.partitioner import Chunk
from transcript_processor.config import TranscriptionSettings
from transcript_processor.utils.errors import TranscriptionCancelled
from transcript_processor.utils.result import ErrorKind, Result
from transcript_processor.utils.retry import with_retry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class ChunkResult:
    """Outcome of one chunk once its retries have settled.

    Exactly one of `transcript` and `error` is populated.
    """

    index: int
    transcript: Transcript | None = None
    error: Exception | None = None
    attempts: int = 0

    @property
    def text(self) -> str | None:
        return self.transcript.text if self.transcript is not None else None

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_result(cls, index: int, result: Result) -> ChunkResult:
        if result.is_ok:
            return cls(index=index, transcript=result.value, attempts=result.attempts)
        return cls(index=index, error=result.error, attempts=result.attempts)


class BatchScheduler:
    """Drive partitioned chunks through the retry controller in batches.

    Args:
        client: Remote transcription client performing single attempts.
        settings: Batch size and per-chunk retry configuration.
        abort: Shared abort signal for the owning session.
    """

    def __init__(
        self,
        client: RemoteTranscriptionClient,
        settings: TranscriptionSettings | None = None,
        abort: asyncio.Event | None = None,
    ) -> None:
        self.client = client
        self.settings = settings or TranscriptionSettings()
        self.abort = abort or asyncio.Event()

    @property
    def concurrency(self) -> int:
        return self.settings.batch_concurrency

    async def process_all(
        self,
        chunks: Sequence[Chunk],
        mime_type: str,
        options: TranscriptionOptions,
        on_progress: ProgressCallback | None = None,
    ) -> list[ChunkResult]:
        """Transcribe every chunk, returning results in chunk index order.

        Progress is reported after each batch as the floor of
        completed / total * 100. The caller reports the final 100 once the
        transcript is assembled.

        Raises:
            TranscriptionCancelled: If the abort signal fires.
            Exception: The first terminal chunk error (lowest index) of the
                first batch containing one. No partial results are returned.
        """
        total = len(chunks)
        results: list[ChunkResult] = []
        last_reported = -1

        logger.info(
            "Starting batch processing of %d chunks with concurrency %d",
            total,
            self.concurrency,
        )

        for start in range(0, total, self.concurrency):
            if self.abort.is_set():
                raise TranscriptionCancelled("Transcription cancelled")

            batch = chunks[start : start + self.concurrency]
            batch_results = await self._run_batch(batch, mime_type, options)

            for chunk_result in batch_results:
                if (
                    not chunk_result.ok
                    and isinstance(chunk_result.error, TranscriptionCancelled)
                ):
                    raise chunk_result.error
            for chunk_result in batch_results:
                if not chunk_result.ok:
                    logger.error(
                        "Chunk %d failed after %d attempts: %s",
                        chunk_result.index,
                        chunk_result.attempts,
                        chunk_result.error,
                        extra={"chunk_index": chunk_result.index},
                    )
                    raise chunk_result.error  # type: ignore[misc]

            results.extend(batch_results)

            percent = len(results) * 100 // total
            if on_progress is not None and percent > last_reported:
                on_progress(percent)
                last_reported = percent

            logger.debug(
                "Processing progress: %d/%d chunks (%d%%)",
                len(results),
                total,
                percent,
            )

        return results

    async def _run_batch(
        self,
        batch: Sequence[Chunk],
        mime_type: str,
        options: TranscriptionOptions,
    ) -> list[ChunkResult]:
        """Run one batch concurrently; results keep submission order."""
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self._process_chunk(chunk, mime_type, options))
                for chunk in batch
            ]
        return [task.result() for task in tasks]

    async def _process_chunk(
        self,
        chunk: Chunk,
        mime_type: str,
        options: TranscriptionOptions,
    ) -> ChunkResult:
        data = chunk.to_bytes()

        async def attempt() -> Result:
            return await self.client.attempt(data, mime_type, options, chunk.index)

        result = await with_retry(
            attempt,
            max_retries=self.settings.max_chunk_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            max_delay=self.settings.retry_max_delay_seconds,
            jitter=self.settings.retry_jitter_seconds,
            abort=self.abort,
            label=f"chunk {chunk.index}",
        )
        if not result.is_ok and result.kind is ErrorKind.CANCELLED:
            logger.info("Chunk %d abandoned after cancellation", chunk.index)
        return ChunkResult.from_result(chunk.index, result)
