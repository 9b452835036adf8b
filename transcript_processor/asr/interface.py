"""Abstract ASR engine interface.

Defines the ASR engine ABC, the options forwarded to the remote service,
and the transcript data models. Concrete implementations (e.g., Deepgram)
subclass ASREngine.
"""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class TranscriptWord:
    """A single word with timing and confidence information."""

    text: str
    start_time: float
    end_time: float
    confidence: float
    speaker_label: str | None = None


@dataclass
class Utterance:
    """A stretch of speech from a single speaker."""

    speaker_label: str
    start_time: float
    end_time: float
    confidence: float
    text: str
    words: list[TranscriptWord] = field(default_factory=list)
    chunk_index: int | None = None


@dataclass
class Transcript:
    """Transcript text plus optional per-utterance structure."""

    text: str
    utterances: list[Utterance] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Keyterm:
    """A term the recognizer should favour."""

    term: str
    boost: float = 1.0
    category: str = "other"


@dataclass(frozen=True)
class TranscriptionOptions:
    """Remote service configuration, forwarded unchanged to the engine."""

    model: str = "nova-2"
    language: str = "en"
    smart_format: bool = True
    punctuate: bool = True
    diarize: bool = False
    filler_words: bool = False
    paragraphs: bool = False
    utterances: bool = False
    utterance_threshold: float | None = None
    keywords: tuple[str, ...] = ()
    keyterms: tuple[Keyterm, ...] = ()

    def to_query_params(self) -> list[tuple[str, str]]:
        """Encode as Deepgram /v1/listen query parameters."""
        params: list[tuple[str, str]] = [
            ("model", self.model),
            ("language", self.language),
            ("smart_format", _flag(self.smart_format)),
            ("punctuate", _flag(self.punctuate)),
            ("diarize", _flag(self.diarize)),
            ("filler_words", _flag(self.filler_words)),
            ("paragraphs", _flag(self.paragraphs)),
            ("utterances", _flag(self.utterances)),
        ]
        if self.diarize:
            params.append(("diarize_version", "3"))
        if self.utterance_threshold is not None:
            params.append(("utt_split", str(self.utterance_threshold)))
        params.extend(("keywords", keyword) for keyword in self.keywords)
        params.extend(("keyterm", keyterm.term) for keyterm in self.keyterms)
        return params

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["keywords"] = list(self.keywords)
        data["keyterms"] = [asdict(k) for k in self.keyterms]
        return data

    def fingerprint(self) -> str:
        """Stable digest of the options, used in cache keys."""
        encoded = json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()[:16]


def _flag(value: bool) -> str:
    return "true" if value else "false"


class ASREngine(ABC):
    """Abstract base class for ASR engine implementations.

    Subclasses must implement transcribe_chunk(). Each call performs
    exactly one remote request; retries and timeouts live elsewhere.
    """

    provider: str = "unknown"

    @abstractmethod
    async def transcribe_chunk(
        self, data: bytes, mime_type: str, options: TranscriptionOptions
    ) -> Transcript:
        """Transcribe one chunk of audio.

        Args:
            data: Raw chunk bytes.
            mime_type: Declared MIME type of the source file.
            options: Remote service configuration.

        Returns:
            Transcript for this chunk.
        """

    async def aclose(self) -> None:
        """Release any held connections."""
