"""Deepgram ASR client implementation.

Implements DeepgramEngine against the pre-recorded /v1/listen endpoint.
Converts Deepgram JSON into the internal Transcript model.
"""

import logging
import os

import httpx

from transcript_processor.asr.interface import (
    ASREngine,
    Transcript,
    TranscriptionOptions,
    TranscriptWord,
    Utterance,
)
from transcript_processor.utils.errors import RemoteServiceError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepgram.com"
PROVIDER = "deepgram"


def _speaker_label(raw_speaker: object) -> str:
    """Map Deepgram's 0-based speaker ids to 'Speaker 1', 'Speaker 2', ..."""
    if isinstance(raw_speaker, int):
        return f"Speaker {raw_speaker + 1}"
    return "Speaker"


def _convert_words(raw_words: list[dict]) -> list[TranscriptWord]:
    words = []
    for raw in raw_words:
        speaker = raw.get("speaker")
        words.append(
            TranscriptWord(
                text=raw.get("punctuated_word") or raw.get("word", ""),
                start_time=float(raw.get("start", 0.0)),
                end_time=float(raw.get("end", 0.0)),
                confidence=float(raw.get("confidence", 0.0)),
                speaker_label=_speaker_label(speaker) if speaker is not None else None,
            )
        )
    return words


def _utterances_from_paragraphs(alternative: dict) -> list[Utterance]:
    """Build utterances from paragraph output when utterances were not requested."""
    paragraphs = (alternative.get("paragraphs") or {}).get("paragraphs") or []
    utterances = []
    for paragraph in paragraphs:
        sentences = paragraph.get("sentences") or []
        utterances.append(
            Utterance(
                speaker_label=_speaker_label(paragraph.get("speaker")),
                start_time=float(paragraph.get("start", 0.0)),
                end_time=float(paragraph.get("end", 0.0)),
                confidence=0.0,
                text=" ".join(s.get("text", "") for s in sentences).strip(),
            )
        )
    return utterances


def parse_deepgram_response(body: object, provider: str = PROVIDER) -> Transcript:
    """Convert a Deepgram /v1/listen JSON body to a Transcript.

    Raises:
        RemoteServiceError: If the transcript field is missing.
    """
    try:
        alternative = body["results"]["channels"][0]["alternatives"][0]  # type: ignore[index]
        text = alternative["transcript"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RemoteServiceError(
            "Invalid response structure from Deepgram API", provider=provider
        ) from exc
    if not isinstance(text, str):
        raise RemoteServiceError(
            "Invalid response structure from Deepgram API", provider=provider
        )

    utterances = [
        Utterance(
            speaker_label=_speaker_label(raw.get("speaker")),
            start_time=float(raw.get("start", 0.0)),
            end_time=float(raw.get("end", 0.0)),
            confidence=float(raw.get("confidence", 0.0)),
            text=raw.get("transcript", ""),
            words=_convert_words(raw.get("words") or []),
        )
        for raw in body["results"].get("utterances") or []  # type: ignore[index]
    ]
    if not utterances:
        utterances = _utterances_from_paragraphs(alternative)

    metadata = dict(body.get("metadata") or {})  # type: ignore[union-attr]
    if "confidence" in alternative:
        metadata.setdefault("confidence", alternative["confidence"])
    return Transcript(text=text, utterances=utterances, metadata=metadata)


class DeepgramEngine(ASREngine):
    """Deepgram pre-recorded transcription engine.

    Args:
        api_key: Deepgram API key (falls back to DEEPGRAM_API_KEY).
        base_url: Deepgram API base URL (default production endpoint).
        client: Optional shared httpx.AsyncClient.
    """

    provider = PROVIDER

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key or os.environ.get("DEEPGRAM_API_KEY", "")
        if not self._api_key:
            raise ValueError("api_key is required")
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=None)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transcribe_chunk(
        self, data: bytes, mime_type: str, options: TranscriptionOptions
    ) -> Transcript:
        """POST one chunk to /v1/listen and parse the response.

        Raises:
            RemoteServiceError: On transport failure, non-2xx status, or a
                response without a transcript.
        """
        url = f"{self._base_url}/v1/listen"
        headers = {
            "Authorization": f"Token {self._api_key}",
            "Content-Type": mime_type,
        }

        try:
            response = await self._client.post(
                url,
                params=options.to_query_params(),
                headers=headers,
                content=data,
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(
                f"Deepgram request failed: {exc}", provider=self.provider
            ) from exc

        if response.status_code == 401:
            raise RemoteServiceError(
                "Authentication failed. Please check your Deepgram API key.",
                status_code=401,
                provider=self.provider,
            )
        if not response.is_success:
            raise RemoteServiceError(
                f"Deepgram API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                provider=self.provider,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "Deepgram returned a non-JSON response",
                status_code=response.status_code,
                provider=self.provider,
            ) from exc

        transcript = parse_deepgram_response(body, self.provider)
        logger.debug(
            "Received Deepgram transcript of %d chars (%d utterances)",
            len(transcript.text),
            len(transcript.utterances),
        )
        return transcript
