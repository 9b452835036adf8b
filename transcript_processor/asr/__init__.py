"""Remote speech recognition engines and the per-chunk client."""

from transcript_processor.asr.client import RemoteTranscriptionClient
from transcript_processor.asr.interface import (
    ASREngine,
    Keyterm,
    Transcript,
    TranscriptionOptions,
)
from transcript_processor.asr.registry import get_asr_engine

__all__ = [
    "ASREngine",
    "Keyterm",
    "RemoteTranscriptionClient",
    "Transcript",
    "TranscriptionOptions",
    "get_asr_engine",
]
