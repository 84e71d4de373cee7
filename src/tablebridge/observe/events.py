"""Event emission and timing for transfer operations."""

from __future__ import annotations

import sys
import time
from datetime import datetime, timezone
from typing import IO, Any

import orjson


class Timer:
    """Simple context-manager timer for measuring duration_ms."""

    def __init__(self) -> None:
        self.start: float = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed_ms = int((time.perf_counter() - self.start) * 1000)


class EventEmitter:
    """Emits NDJSON lifecycle events to stderr (or another stream)."""

    def __init__(self, enabled: bool = False, stream: IO[str] | None = None) -> None:
        self.enabled = enabled
        self.stream = stream
        self.history: list[dict[str, Any]] = []

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        payload = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data or {},
        }
        self.history.append(payload)
        stream = self.stream or sys.stderr
        stream.write(orjson.dumps(payload, default=str).decode() + "\n")
        stream.flush()
