"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/moodsort/config.yaml")
DEFAULT_ROOT_DIR = Path(".")
DEFAULT_DATA_PATH = Path("Data/MentalHealthData.csv")
DEFAULT_MODEL_PATH = Path("Data/MentalHealthModel.zip")
DEFAULT_LOG_LEVEL = "info"
DEFAULT_L2_GRID: tuple[float | None, ...] = (1e-2, 1e-3, 1e-4, 1e-5, 1e-6, 1e-7, None)
DEFAULT_TRAINERS: tuple[str, ...] = (
    "maxent-sdca",
    "maxent-lbfgs",
    "ova-sdca",
    "ova-lbfgs",
    "naive-bayes",
)
_NONE_MARKERS = {"none", "null", "off", ""}


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False


@dataclass(frozen=True)
class FeaturizerSettings:
    """Knobs of the TF-IDF n-gram featurizer."""

    ngram_length: int = 2
    use_all_lengths: bool = True
    maximum_ngrams_count: tuple[int, ...] = (10000,)
    remove_stop_words: bool = True

    @property
    def ngram_range(self) -> tuple[int, int]:
        low = 1 if self.use_all_lengths else self.ngram_length
        return low, self.ngram_length

    def ngram_cap(self, length: int) -> int:
        """Return the maximum number of n-grams kept for the given length."""

        if len(self.maximum_ngrams_count) == 1:
            return self.maximum_ngrams_count[0]
        low, _high = self.ngram_range
        return self.maximum_ngrams_count[length - low]


@dataclass(frozen=True)
class TrainingConfig:
    """Model-selection and evaluation settings."""

    test_fraction: float = 0.2
    folds: int = 5
    seed: int = 42
    l2_grid: tuple[float | None, ...] = DEFAULT_L2_GRID
    trainers: tuple[str, ...] = DEFAULT_TRAINERS
    max_iter: int = 1000
    n_jobs: int = 1
    top_k: int = 3


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    root_dir: Path
    data_path: Path
    model_path: Path
    featurizer: FeaturizerSettings = field(default_factory=FeaturizerSettings)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    predictions_log: bool = False


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML.

    An explicitly requested file must exist. When only the default location is
    consulted and nothing is there, built-in defaults are returned.
    """

    config_path, explicit = _resolve_config_path(path)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        LOGGER.debug("No config file at %s; using defaults.", config_path)
        return _parse_config({})

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return _parse_config(raw)


def default_config(root_dir: Path | None = None) -> Config:
    """Return the built-in configuration anchored at ``root_dir``."""

    raw: dict[str, Any] = {}
    if root_dir is not None:
        raw["root_dir"] = str(root_dir)
    return _parse_config(raw)


def _resolve_config_path(explicit: Path | str | None) -> tuple[Path, bool]:
    if explicit:
        return Path(explicit).expanduser(), True
    env_path = os.environ.get("MOODSORT_CONFIG")
    if env_path:
        return Path(env_path).expanduser(), True
    return DEFAULT_CONFIG_PATH.expanduser(), False


def _parse_config(raw: dict[str, Any]) -> Config:
    root_dir = Path(raw.get("root_dir") or raw.get("rootdir") or DEFAULT_ROOT_DIR).expanduser()
    data_path = _resolve_path(root_dir, raw.get("data_path"), DEFAULT_DATA_PATH, "data_path")
    model_path = _resolve_path(root_dir, raw.get("model_path"), DEFAULT_MODEL_PATH, "model_path")
    return Config(
        root_dir=root_dir,
        data_path=data_path,
        model_path=model_path,
        featurizer=_parse_featurizer(raw.get("featurizer")),
        training=_parse_training(raw.get("training")),
        logging=_parse_logging(raw.get("logging")),
        predictions_log=bool(raw.get("predictions_log", False)),
    )


def _resolve_path(root_dir: Path, value: Any, default: Path, field_name: str) -> Path:
    if value is None:
        candidate = default
    elif isinstance(value, (str, Path)) and str(value).strip():
        candidate = Path(value).expanduser()
    else:
        raise ConfigError(f"{field_name} must be a non-empty path.")
    if candidate.is_absolute():
        return candidate
    return root_dir / candidate


def _parse_featurizer(value: Any) -> FeaturizerSettings:
    if value is None:
        return FeaturizerSettings()
    if not isinstance(value, dict):
        raise ConfigError("featurizer must be a mapping.")

    defaults = FeaturizerSettings()
    ngram_length = _positive_int(value.get("ngram_length", defaults.ngram_length), "ngram_length")
    use_all_lengths = bool(value.get("use_all_lengths", defaults.use_all_lengths))
    remove_stop_words = bool(value.get("remove_stop_words", defaults.remove_stop_words))

    raw_caps = value.get("maximum_ngrams_count", list(defaults.maximum_ngrams_count))
    if isinstance(raw_caps, int):
        raw_caps = [raw_caps]
    if not isinstance(raw_caps, list) or not raw_caps:
        raise ConfigError("featurizer.maximum_ngrams_count must be an integer or a list.")
    caps = tuple(
        _positive_int(cap, f"maximum_ngrams_count[{idx}]") for idx, cap in enumerate(raw_caps)
    )
    lengths = ngram_length if use_all_lengths else 1
    if len(caps) not in (1, lengths):
        raise ConfigError(
            f"featurizer.maximum_ngrams_count needs 1 or {lengths} value(s), got {len(caps)}."
        )

    return FeaturizerSettings(
        ngram_length=ngram_length,
        use_all_lengths=use_all_lengths,
        maximum_ngrams_count=caps,
        remove_stop_words=remove_stop_words,
    )


def _parse_training(value: Any) -> TrainingConfig:
    if value is None:
        return TrainingConfig()
    if not isinstance(value, dict):
        raise ConfigError("training must be a mapping.")

    defaults = TrainingConfig()
    test_fraction = _float(value.get("test_fraction", defaults.test_fraction), "test_fraction")
    if not 0.0 <= test_fraction < 1.0:
        raise ConfigError("training.test_fraction must be in [0, 1).")
    folds = _positive_int(value.get("folds", defaults.folds), "folds")
    if folds < 2:
        raise ConfigError("training.folds must be at least 2.")
    n_jobs = value.get("n_jobs", defaults.n_jobs)
    if not isinstance(n_jobs, int) or isinstance(n_jobs, bool) or n_jobs == 0:
        raise ConfigError("training.n_jobs must be a non-zero integer.")

    return TrainingConfig(
        test_fraction=test_fraction,
        folds=folds,
        seed=_int(value.get("seed", defaults.seed), "seed"),
        l2_grid=_parse_l2_grid(value.get("l2_grid")),
        trainers=_parse_trainers(value.get("trainers")),
        max_iter=_positive_int(value.get("max_iter", defaults.max_iter), "max_iter"),
        n_jobs=n_jobs,
        top_k=_positive_int(value.get("top_k", defaults.top_k), "top_k"),
    )


def _parse_l2_grid(value: Any) -> tuple[float | None, ...]:
    if value is None:
        return DEFAULT_L2_GRID
    if not isinstance(value, list) or not value:
        raise ConfigError("training.l2_grid must be a non-empty list.")
    grid: list[float | None] = []
    for idx, entry in enumerate(value):
        if entry is None or (isinstance(entry, str) and entry.strip().lower() in _NONE_MARKERS):
            grid.append(None)
            continue
        strength = _float(entry, f"l2_grid[{idx}]")
        if strength <= 0:
            raise ConfigError(f"training.l2_grid[{idx}] must be positive.")
        grid.append(strength)
    return tuple(grid)


def _parse_trainers(value: Any) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_TRAINERS
    if not isinstance(value, list) or not value:
        raise ConfigError("training.trainers must be a non-empty list.")
    names: list[str] = []
    for idx, entry in enumerate(value):
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"training.trainers[{idx}] must be a family name.")
        name = entry.strip()
        if name not in DEFAULT_TRAINERS:
            raise ConfigError(
                f"training.trainers[{idx}] has unknown family '{name}'; "
                f"choose from {', '.join(DEFAULT_TRAINERS)}."
            )
        if name in names:
            LOGGER.warning("Trainer family '%s' listed twice; ignoring duplicate.", name)
            continue
        names.append(name)
    return tuple(names)


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, debug_file=debug_file)


def _positive_int(value: Any, field_name: str) -> int:
    number = _int(value, field_name)
    if number <= 0:
        raise ConfigError(f"{field_name} must be a positive integer.")
    return number


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{field_name} must be an integer.")
    return value


def _float(value: Any, field_name: str) -> float:
    # PyYAML reads exponent literals without a dot ("1e-5") as strings.
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number.") from exc


__all__ = [
    "Config",
    "ConfigError",
    "FeaturizerSettings",
    "LoggingConfig",
    "TrainingConfig",
    "DEFAULT_L2_GRID",
    "DEFAULT_TRAINERS",
    "default_config",
    "load_config",
]
