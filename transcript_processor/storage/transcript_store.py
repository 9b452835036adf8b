"""Persistence of finished transcripts and their source media.

save() uploads the original file and a JSON rendering of the transcript,
then records both in the transcription table. remove() undoes all three.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field

from transcript_processor.asr.interface import Transcript, TranscriptionOptions
from transcript_processor.asr.postprocess import format_transcript
from transcript_processor.storage.object_store import ObjectStorageClient
from transcript_processor.storage.records_client import TranscriptRecordsClient
from transcript_processor.utils.errors import StorageError
from transcript_processor.validation import SourceFile

logger = logging.getLogger(__name__)

AUDIO_PREFIX = "transcriptions"
JSON_PREFIX = "json"


@dataclass
class StoredTranscript:
    """Reference to everything persisted for one transcript."""

    audio_path: str
    json_path: str
    record_id: str | None = None
    paths: list[str] = field(default_factory=list)


def build_result_document(transcript: Transcript) -> dict:
    """JSON document stored alongside the audio."""
    return {
        "transcript": transcript.text,
        "formatted": format_transcript(transcript),
        "utterances": [
            {
                "speaker": u.speaker_label,
                "start": u.start_time,
                "end": u.end_time,
                "confidence": u.confidence,
                "text": u.text,
                "chunk_index": u.chunk_index,
            }
            for u in transcript.utterances
        ],
        "metadata": transcript.metadata,
    }


class TranscriptStore:
    """Save/remove transcripts through object storage and the records table."""

    def __init__(
        self,
        objects: ObjectStorageClient,
        records: TranscriptRecordsClient | None = None,
    ) -> None:
        self.objects = objects
        self.records = records

    async def save(
        self,
        source: SourceFile,
        transcript: Transcript,
        options: TranscriptionOptions | None = None,
    ) -> StoredTranscript:
        """Persist the source file and transcript.

        Returns:
            A StoredTranscript reference usable with remove().

        Raises:
            StorageError: If any upload or the record insert fails. Objects
                already uploaded are removed before the error propagates.
        """
        key = uuid.uuid4().hex
        audio_path = f"{AUDIO_PREFIX}/{key}-{source.name}"
        json_path = f"{JSON_PREFIX}/{key}.json"
        document = build_result_document(transcript)
        stored = StoredTranscript(audio_path=audio_path, json_path=json_path)

        try:
            await asyncio.to_thread(
                self.objects.upload, audio_path, source.data, source.mime_type
            )
            stored.paths.append(audio_path)
            await asyncio.to_thread(
                self.objects.upload,
                json_path,
                json.dumps(document).encode("utf-8"),
                "application/json",
            )
            stored.paths.append(json_path)

            if self.records is not None:
                metadata = {
                    "model": options.model if options else None,
                    "language": options.language if options else None,
                    "speakers": len({u.speaker_label for u in transcript.utterances})
                    or None,
                    "jsonPath": json_path,
                    "chunks": transcript.metadata.get("chunks_processed"),
                }
                stored.record_id = await self.records.insert_record(
                    {
                        "file_name": source.name,
                        "file_path": audio_path,
                        "metadata": metadata,
                        "raw_response": document,
                    }
                )
        except StorageError:
            await self._discard_paths(stored.paths)
            raise

        logger.info("Saved transcript for %s to %s", source.name, audio_path)
        return stored

    async def remove(self, stored: StoredTranscript) -> None:
        """Delete the objects and record behind a StoredTranscript.

        Raises:
            StorageError: If deletion fails.
        """
        await asyncio.to_thread(self.objects.remove, list(stored.paths))
        if self.records is not None and stored.record_id is not None:
            await self.records.delete_records([stored.record_id])
        logger.info("Removed stored transcript %s", stored.audio_path)

    async def _discard_paths(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            await asyncio.to_thread(self.objects.remove, list(paths))
        except StorageError:
            logger.warning("Failed to discard partial upload %s", paths, exc_info=True)
