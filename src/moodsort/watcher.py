"""Filesystem watcher that triggers model reloads."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

LOGGER = logging.getLogger(__name__)


class ModelWatcher:
    """Watch a model file and call back when it is written or replaced."""

    def __init__(
        self,
        model_path: Path,
        on_change: Callable[[Path], None],
        *,
        debounce_seconds: float = 0.5,
        observer_factory: Callable[[], BaseObserver] | None = None,
    ) -> None:
        self._model_path = Path(model_path).expanduser().resolve()
        self._on_change = on_change
        self._observer_factory = observer_factory or Observer
        self._observer: BaseObserver | None = None
        self._handler: _ModelEventHandler | None = None
        self._debounce = max(0.0, debounce_seconds)
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start watching the model's parent directory."""

        with self._lock:
            if self._observer is not None:
                return
            directory = self._model_path.parent
            directory.mkdir(parents=True, exist_ok=True)
            observer = self._observer_factory()
            handler = _ModelEventHandler(
                target=self._model_path,
                callback=self._emit,
                debounce_seconds=self._debounce,
            )
            observer.schedule(handler, str(directory), recursive=False)
            observer.start()
            self._observer = observer
            self._handler = handler

    def stop(self) -> None:
        """Stop watching and wait for the observer thread to finish."""

        with self._lock:
            observer = self._observer
            if observer is None:
                return
            observer.stop()
            if self._handler is not None:
                self._handler.cancel()
                self._handler = None
            try:
                observer.join(timeout=5)
            except RuntimeError:  # pragma: no cover - watchdog internals
                LOGGER.warning("Failed to join model observer thread")
            self._observer = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def _emit(self, path: Path) -> None:
        try:
            self._on_change(path)
        except Exception:  # pragma: no cover - callback errors are logged
            LOGGER.exception("Model change callback failed for %s", path)


class _ModelEventHandler(FileSystemEventHandler):
    """Forward events touching the watched file once a burst has settled."""

    def __init__(
        self,
        *,
        target: Path,
        callback: Callable[[Path], None],
        debounce_seconds: float,
    ) -> None:
        super().__init__()
        self._target = target
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_path(_event_path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_path(_event_path(event.src_path))

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        if not event.is_directory:
            self._handle_path(_event_path(event.dest_path))

    def cancel(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _handle_path(self, path: Path) -> None:
        if path.resolve() != self._target:
            return
        if self._debounce_seconds <= 0:
            self._callback(self._target)
            return
        # Every event restarts the quiet period; the callback sees the last write.
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self._debounce_seconds, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._timer_lock:
            self._timer = None
        self._callback(self._target)


def _event_path(value: str | bytes) -> Path:
    if isinstance(value, bytes):
        return Path(os.fsdecode(value))
    return Path(value)


__all__ = ["ModelWatcher"]
