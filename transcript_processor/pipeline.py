"""End-to-end chunked transcription of one in-memory payload.

partition -> batch schedule (per-chunk retry) -> ordered merge.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace

from transcript_processor.asr.client import RemoteTranscriptionClient
from transcript_processor.asr.interface import Transcript, TranscriptionOptions
from transcript_processor.chunking.partitioner import partition
from transcript_processor.config import TranscriptionSettings
from transcript_processor.scheduler import BatchScheduler, ChunkResult, ProgressCallback

logger = logging.getLogger(__name__)


def merge_chunk_results(results: Sequence[ChunkResult]) -> Transcript:
    """Assemble chunk transcripts into one Transcript in chunk index order.

    Texts are joined with a single space and empty texts are skipped.
    Utterances keep chunk order and are tagged with their chunk index;
    their times stay relative to the chunk they came from.
    """
    ordered = sorted(results, key=lambda r: r.index)
    texts: list[str] = []
    utterances = []
    total_attempts = 0

    for result in ordered:
        if result.transcript is None:
            raise ValueError(f"Chunk {result.index} has no transcript to merge")
        total_attempts += result.attempts
        text = result.transcript.text.strip()
        if text:
            texts.append(text)
        utterances.extend(
            replace(utterance, chunk_index=result.index)
            for utterance in result.transcript.utterances
        )

    metadata = {
        "chunks_processed": len(ordered),
        "chunk_attempts": total_attempts,
        "chunk_retries": sum(r.retries for r in ordered),
    }
    return Transcript(text=" ".join(texts), utterances=utterances, metadata=metadata)


async def transcribe_buffer(
    buffer: bytes,
    mime_type: str,
    options: TranscriptionOptions,
    client: RemoteTranscriptionClient,
    settings: TranscriptionSettings | None = None,
    on_progress: ProgressCallback | None = None,
    abort: asyncio.Event | None = None,
) -> Transcript:
    """Partition `buffer`, transcribe every chunk, and merge the results.

    Args:
        buffer: Full source payload (shared read-only by every chunk).
        mime_type: Declared MIME type forwarded with each chunk.
        options: Remote service options.
        client: Single-attempt remote client.
        settings: Chunk size, batch size and retry configuration.
        on_progress: Called with 0..99 after each batch and 100 at the end.
        abort: Shared abort signal.

    Returns:
        The merged Transcript.

    Raises:
        EmptyInputError: If `buffer` is empty.
        TranscriptionCancelled: If `abort` fires.
        ASRError: If any chunk exhausts its retries.
    """
    settings = settings or TranscriptionSettings()
    chunks = partition(buffer, settings.chunk_size)

    scheduler = BatchScheduler(client, settings, abort)
    results = await scheduler.process_all(chunks, mime_type, options, on_progress)

    transcript = merge_chunk_results(results)
    transcript.metadata["chunk_size"] = settings.chunk_size
    transcript.metadata["provider"] = client.provider
    if on_progress is not None:
        on_progress(100)

    logger.info(
        "Assembled transcript from %d chunks (%d chars)",
        len(results),
        len(transcript.text),
    )
    return transcript
