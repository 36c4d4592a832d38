from __future__ import annotations

from dataclasses import replace

from watchdog.observers.polling import PollingObserver

from moodsort.service import ModelHolder
from moodsort.store import load_model, save_model
from moodsort.trainer import ModelTrainer


def test_holder_picks_up_retrained_model(fast_config, event_collector) -> None:
    ModelTrainer(fast_config).run()

    def _loader(path):
        model = load_model(path)
        event_collector.add(path)
        return model

    holder = ModelHolder(fast_config.model_path, loader=_loader)
    original = holder.current

    watcher = holder.watch(
        debounce_seconds=0.0, observer_factory=lambda: PollingObserver(timeout=0.1)
    )
    try:
        assert watcher.is_running
        save_model(replace(original, trainer_name="retrained"), fast_config.model_path)
        assert event_collector.wait_for(2)
    finally:
        watcher.stop()

    assert not watcher.is_running
    assert holder.current.trainer_name == "retrained"


def test_corrupt_replacement_keeps_serving_previous_model(fast_config) -> None:
    ModelTrainer(fast_config).run()
    holder = ModelHolder(fast_config.model_path)
    original = holder.current

    fast_config.model_path.write_bytes(b"half written")

    assert holder.reload() is False
    assert holder.current is original
    assert holder.current.predict("I feel anxious").label in original.labels
