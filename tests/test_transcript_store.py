"""Tests for transcript_processor.storage.transcript_store module."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from transcript_processor.asr.interface import Transcript, TranscriptionOptions, Utterance
from transcript_processor.storage.transcript_store import (
    StoredTranscript,
    TranscriptStore,
    build_result_document,
)
from transcript_processor.utils.errors import StorageError
from transcript_processor.validation import SourceFile

SOURCE = SourceFile(name="talk.mp3", mime_type="audio/mpeg", data=b"audio-bytes")
TRANSCRIPT = Transcript(
    text="hello there",
    utterances=[
        Utterance("Speaker 1", 0.0, 1.0, 0.9, "hello", chunk_index=0),
        Utterance("Speaker 2", 1.0, 2.0, 0.8, "there", chunk_index=0),
    ],
    metadata={"chunks_processed": 1},
)


def _store(records=None):
    objects = MagicMock()
    objects.upload.side_effect = lambda path, data, content_type="": path
    return TranscriptStore(objects, records), objects


class TestBuildResultDocument:
    """Tests for build_result_document()."""

    def test_contains_text_utterances_and_metadata(self) -> None:
        document = build_result_document(TRANSCRIPT)

        assert document["transcript"] == "hello there"
        assert document["formatted"] == "Speaker 1: hello\n\nSpeaker 2: there"
        assert document["utterances"][1]["speaker"] == "Speaker 2"
        assert document["metadata"] == {"chunks_processed": 1}
        json.dumps(document)


class TestTranscriptStoreSave:
    """Tests for TranscriptStore.save()."""

    @pytest.mark.asyncio
    async def test_uploads_audio_and_json(self) -> None:
        store, objects = _store()

        stored = await store.save(SOURCE, TRANSCRIPT)

        assert stored.audio_path.startswith("transcriptions/")
        assert stored.audio_path.endswith("-talk.mp3")
        assert stored.json_path.startswith("json/")
        assert stored.paths == [stored.audio_path, stored.json_path]
        assert stored.record_id is None

        audio_call, json_call = objects.upload.call_args_list
        assert audio_call.args == (stored.audio_path, b"audio-bytes", "audio/mpeg")
        assert json_call.args[2] == "application/json"
        assert json.loads(json_call.args[1])["transcript"] == "hello there"

    @pytest.mark.asyncio
    async def test_inserts_record_when_configured(self) -> None:
        records = MagicMock()
        records.insert_record = AsyncMock(return_value="row-1")
        store, _ = _store(records)

        stored = await store.save(SOURCE, TRANSCRIPT, TranscriptionOptions(model="nova-3"))

        assert stored.record_id == "row-1"
        row = records.insert_record.await_args.args[0]
        assert row["file_name"] == "talk.mp3"
        assert row["file_path"] == stored.audio_path
        assert row["metadata"]["model"] == "nova-3"
        assert row["metadata"]["speakers"] == 2
        assert row["metadata"]["jsonPath"] == stored.json_path

    @pytest.mark.asyncio
    async def test_failed_upload_discards_partial_objects(self) -> None:
        store, objects = _store()
        objects.upload.side_effect = [
            "transcriptions/x",
            StorageError("json upload failed", operation="upload"),
        ]

        with pytest.raises(StorageError, match="json upload failed"):
            await store.save(SOURCE, TRANSCRIPT)

        removed = objects.remove.call_args.args[0]
        assert len(removed) == 1
        assert removed[0].startswith("transcriptions/")

    @pytest.mark.asyncio
    async def test_failed_record_insert_discards_objects(self) -> None:
        records = MagicMock()
        records.insert_record = AsyncMock(side_effect=StorageError("insert failed"))
        store, objects = _store(records)

        with pytest.raises(StorageError, match="insert failed"):
            await store.save(SOURCE, TRANSCRIPT)

        assert len(objects.remove.call_args.args[0]) == 2


class TestTranscriptStoreRemove:
    """Tests for TranscriptStore.remove()."""

    @pytest.mark.asyncio
    async def test_removes_objects_and_record(self) -> None:
        records = MagicMock()
        records.delete_records = AsyncMock()
        store, objects = _store(records)
        stored = StoredTranscript(
            audio_path="transcriptions/k-talk.mp3",
            json_path="json/k.json",
            record_id="row-1",
            paths=["transcriptions/k-talk.mp3", "json/k.json"],
        )

        await store.remove(stored)

        objects.remove.assert_called_once_with(
            ["transcriptions/k-talk.mp3", "json/k.json"]
        )
        records.delete_records.assert_awaited_once_with(["row-1"])

    @pytest.mark.asyncio
    async def test_remove_error_propagates(self) -> None:
        store, objects = _store()
        objects.remove.side_effect = StorageError("delete failed")
        stored = StoredTranscript(audio_path="a", json_path="b", paths=["a", "b"])

        with pytest.raises(StorageError):
            await store.remove(stored)
