from __future__ import annotations

import threading
import time
from dataclasses import replace
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent
from watchdog.observers.polling import PollingObserver

from moodsort.service import ModelHolder
from moodsort.store import save_model
from moodsort.watcher import ModelWatcher, _ModelEventHandler


def _handler(target: Path, seen: list[Path], debounce: float = 0.0) -> _ModelEventHandler:
    return _ModelEventHandler(target=target, callback=seen.append, debounce_seconds=debounce)


def test_handler_ignores_other_files(tmp_path) -> None:
    target = (tmp_path / "model.zip").resolve()
    seen: list[Path] = []
    handler = _handler(target, seen)

    handler.on_created(FileCreatedEvent(str(tmp_path / "notes.txt")))
    handler.on_modified(FileModifiedEvent(str(target)))

    assert seen == [target]


def test_handler_follows_atomic_replace(tmp_path) -> None:
    target = (tmp_path / "model.zip").resolve()
    seen: list[Path] = []
    handler = _handler(target, seen)

    handler.on_moved(FileMovedEvent(str(tmp_path / ".model.zip.tmp"), str(target)))

    assert seen == [target]


def test_handler_fires_once_after_a_burst(tmp_path) -> None:
    target = (tmp_path / "model.zip").resolve()
    seen: list[Path] = []
    settled = threading.Event()

    def _record(path: Path) -> None:
        seen.append(path)
        settled.set()

    handler = _ModelEventHandler(target=target, callback=_record, debounce_seconds=0.2)

    for _ in range(5):
        handler.on_modified(FileModifiedEvent(str(target)))
        time.sleep(0.02)

    assert settled.wait(timeout=5.0)
    time.sleep(0.4)
    assert seen == [target]


def test_partial_copy_reloads_once_complete(tmp_path, trained_model) -> None:
    model_path = tmp_path / "model.zip"
    save_model(trained_model, model_path)
    holder = ModelHolder(model_path)
    staged = tmp_path / "staged.zip"
    save_model(replace(trained_model, trainer_name="copied"), staged)
    data = staged.read_bytes()
    done = threading.Event()
    outcomes: list[bool] = []

    def _reload(_path: Path) -> None:
        outcomes.append(holder.reload())
        done.set()

    handler = _ModelEventHandler(
        target=model_path.resolve(), callback=_reload, debounce_seconds=0.3
    )

    model_path.write_bytes(data[: len(data) // 2])
    handler.on_modified(FileModifiedEvent(str(model_path)))
    model_path.write_bytes(data)
    handler.on_modified(FileModifiedEvent(str(model_path)))

    assert done.wait(timeout=5.0)
    assert outcomes == [True]
    assert holder.current.trainer_name == "copied"


def test_stop_cancels_pending_callback(tmp_path) -> None:
    model_path = tmp_path / "model.zip"
    seen: list[Path] = []
    watcher = ModelWatcher(
        model_path,
        seen.append,
        debounce_seconds=0.5,
        observer_factory=lambda: PollingObserver(timeout=0.1),
    )

    watcher.start()
    model_path.write_bytes(b"new model")
    time.sleep(0.3)
    watcher.stop()
    time.sleep(0.7)

    assert seen == []


def test_watcher_reports_rewritten_model(tmp_path) -> None:
    model_path = tmp_path / "Data" / "model.zip"
    changed = threading.Event()
    watcher = ModelWatcher(
        model_path,
        lambda _path: changed.set(),
        debounce_seconds=0.0,
        observer_factory=lambda: PollingObserver(timeout=0.1),
    )

    watcher.start()
    try:
        assert watcher.is_running
        model_path.write_bytes(b"new model")
        assert changed.wait(timeout=5.0)
    finally:
        watcher.stop()

    assert not watcher.is_running


def test_stop_without_start_is_noop(tmp_path) -> None:
    watcher = ModelWatcher(tmp_path / "model.zip", lambda _path: None)

    watcher.stop()

    assert not watcher.is_running
