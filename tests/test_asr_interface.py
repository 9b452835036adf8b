"""Tests for ASR interface data models and options encoding."""

import pytest

from transcript_processor.asr.interface import (
    ASREngine,
    Keyterm,
    Transcript,
    TranscriptionOptions,
    Utterance,
)


class TestASREngineABC:
    """ASREngine cannot be used without transcribe_chunk()."""

    def test_cannot_instantiate_abstract_engine(self) -> None:
        with pytest.raises(TypeError):
            ASREngine()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_minimal_subclass(self) -> None:
        class EchoEngine(ASREngine):
            provider = "echo"

            async def transcribe_chunk(self, data, mime_type, options):
                return Transcript(text=data.decode())

        engine = EchoEngine()
        transcript = await engine.transcribe_chunk(b"hi", "audio/wav", TranscriptionOptions())
        assert transcript.text == "hi"
        await engine.aclose()


class TestTranscriptionOptions:
    """Tests for query parameter encoding and fingerprints."""

    def test_default_query_params(self) -> None:
        params = dict(TranscriptionOptions().to_query_params())
        assert params["model"] == "nova-2"
        assert params["language"] == "en"
        assert params["smart_format"] == "true"
        assert params["diarize"] == "false"
        assert "diarize_version" not in params
        assert "utt_split" not in params

    def test_diarize_adds_version(self) -> None:
        params = dict(TranscriptionOptions(diarize=True).to_query_params())
        assert params["diarize"] == "true"
        assert params["diarize_version"] == "3"

    def test_utterance_threshold_maps_to_utt_split(self) -> None:
        params = dict(TranscriptionOptions(utterance_threshold=0.8).to_query_params())
        assert params["utt_split"] == "0.8"

    def test_keywords_and_keyterms_repeat(self) -> None:
        options = TranscriptionOptions(
            keywords=("alpha", "beta"),
            keyterms=(Keyterm("Kubernetes", boost=2.0, category="technical"),),
        )
        params = options.to_query_params()

        assert [v for k, v in params if k == "keywords"] == ["alpha", "beta"]
        assert [v for k, v in params if k == "keyterm"] == ["Kubernetes"]

    def test_fingerprint_is_stable_and_option_sensitive(self) -> None:
        assert TranscriptionOptions().fingerprint() == TranscriptionOptions().fingerprint()
        assert (
            TranscriptionOptions(model="nova-3").fingerprint()
            != TranscriptionOptions().fingerprint()
        )
        assert len(TranscriptionOptions().fingerprint()) == 16

    def test_to_dict_serializes_keyterms(self) -> None:
        options = TranscriptionOptions(keyterms=(Keyterm("GPU"),))
        assert options.to_dict()["keyterms"] == [
            {"term": "GPU", "boost": 1.0, "category": "other"}
        ]


class TestTranscript:
    """Tests for Transcript serialization."""

    def test_to_dict_includes_utterances(self) -> None:
        transcript = Transcript(
            text="hello",
            utterances=[Utterance("Speaker 1", 0.0, 1.0, 0.9, "hello")],
            metadata={"chunks_processed": 1},
        )
        data = transcript.to_dict()
        assert data["text"] == "hello"
        assert data["utterances"][0]["speaker_label"] == "Speaker 1"
        assert data["metadata"] == {"chunks_processed": 1}
