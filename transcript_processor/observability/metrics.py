"""Session metrics collection and reporting.

Provides SessionMetrics for structured observability data, StageTimer for
measuring session stage durations, and log_session_metrics() for emitting
metrics as one structured JSON line to stdout.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


@dataclass
class SessionMetrics:
    """All metrics collected for a single transcription session."""

    session_id: str
    status: str
    file_name: str = ""
    file_size_bytes: int = 0
    chunk_count: int = 0
    chunk_attempts: int = 0
    session_retries: int = 0
    cache_hit: bool = False
    provider: str = ""
    wall_time_seconds: float = 0.0
    stage_durations: dict[str, float] = field(default_factory=dict)
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a session stage.

    When given a `durations` dict, the elapsed time is accumulated under
    the stage name, so repeated stages (session retries) add up.

    Usage:
        timer = StageTimer("transcribe", metrics.stage_durations)
        with timer:
            await do_work()
        print(timer.duration_seconds)
    """

    def __init__(
        self, stage_name: str, durations: dict[str, float] | None = None
    ) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._durations = durations
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        elapsed = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)
        self.duration_seconds = elapsed
        if self._durations is not None:
            self._durations[self.stage_name] = (
                self._durations.get(self.stage_name, 0.0) + elapsed
            )


def log_session_metrics(metrics: SessionMetrics) -> None:
    """Emit session metrics as a single structured JSON line to stdout.

    The JSON envelope includes timestamp, severity, and metric_type
    fields. All SessionMetrics fields are spread into the top level.

    Args:
        metrics: Populated SessionMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "session_completion",
        **asdict(metrics),
    }
    print(json.dumps(entry))
