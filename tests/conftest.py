"""Shared fixtures: a scripted ASR engine and fast-running settings."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from transcript_processor.asr.client import RemoteTranscriptionClient
from transcript_processor.asr.interface import (
    ASREngine,
    Transcript,
    TranscriptionOptions,
)
from transcript_processor.config import TranscriptionSettings

Handler = Callable[[int, int], "str | Transcript | Exception"]


class ScriptedEngine(ASREngine):
    """Fake engine whose chunks are identified by their first byte.

    Test buffers fill chunk i with byte value i, so the engine can tell
    which chunk it received. `handler(index, call_number)` decides the
    outcome of each call (call_number counts calls for that chunk from 1).
    """

    provider = "scripted"

    def __init__(
        self,
        handler: Handler | None = None,
        delays: dict[int, float] | None = None,
    ) -> None:
        self.handler = handler or (lambda index, call: f"chunk {index}")
        self.delays = delays or {}
        self.calls: list[int] = []
        self.sizes: dict[int, int] = {}
        self.completed: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def transcribe_chunk(
        self, data: bytes, mime_type: str, options: TranscriptionOptions
    ) -> Transcript:
        index = data[0]
        self.calls.append(index)
        self.sizes[index] = len(data)
        call_number = self.calls.count(index)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(index, 0.0)
            if delay:
                await asyncio.sleep(delay)
            outcome = self.handler(index, call_number)
        finally:
            self.in_flight -= 1

        if isinstance(outcome, Exception):
            raise outcome
        self.completed.append(index)
        if isinstance(outcome, Transcript):
            return outcome
        return Transcript(text=outcome)


def make_buffer(*sizes: int) -> bytes:
    """Buffer whose i-th chunk (of the given sizes) is filled with byte i."""
    return b"".join(bytes([index]) * size for index, size in enumerate(sizes))


@pytest.fixture
def fast_settings() -> TranscriptionSettings:
    """Settings with 4-byte chunks and near-zero delays."""
    return TranscriptionSettings(
        chunk_size=4,
        chunk_timeout_seconds=1.0,
        max_chunk_retries=3,
        retry_base_delay_seconds=0.001,
        retry_max_delay_seconds=0.004,
        retry_jitter_seconds=0.0,
        max_session_retries=3,
        session_retry_delay_seconds=0.0,
        batch_concurrency=2,
    )


@pytest.fixture
def engine() -> ScriptedEngine:
    return ScriptedEngine()


@pytest.fixture
def client(engine: ScriptedEngine, fast_settings: TranscriptionSettings):
    return RemoteTranscriptionClient(
        engine,
        timeout_seconds=fast_settings.chunk_timeout_seconds,
        max_concurrency=fast_settings.batch_concurrency,
    )


@pytest.fixture
def make_engine() -> type[ScriptedEngine]:
    """Factory for ScriptedEngine instances with custom handlers/delays."""
    return ScriptedEngine


@pytest.fixture
def buffer_of() -> Callable[..., bytes]:
    return make_buffer
