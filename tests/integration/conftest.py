from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest


class EventCollector:
    """Thread-safe helper for waiting on asynchronous callbacks."""

    def __init__(self) -> None:
        self.events: list[Path] = []
        self._condition = threading.Condition()

    def add(self, path: Path) -> None:
        with self._condition:
            self.events.append(path)
            self._condition.notify_all()

    def wait_for(self, count: int, timeout: float = 10.0) -> bool:
        """Wait until a minimum number of events have been collected."""

        deadline = time.monotonic() + timeout
        with self._condition:
            while len(self.events) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(timeout=remaining)
            return True


@pytest.fixture
def event_collector() -> EventCollector:
    return EventCollector()
