from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml

from config.env import config_path, min_zoom_override
from config.types import BenchmarkConfig

logger = logging.getLogger(__name__)


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid benchmark yaml root: {path}")
    return data


@lru_cache(maxsize=4)
def _load(path: Path) -> BenchmarkConfig:
    cfg = BenchmarkConfig.model_validate(_load_yaml(path))
    logger.info("Loaded benchmark config %s from %s", cfg.id, path)
    return cfg


def get_config() -> BenchmarkConfig:
    cfg = _load(config_path().resolve())
    override = min_zoom_override()
    if override is not None:
        cfg = cfg.model_copy(update={"minZoomForRun": override})
    return cfg


def clear_config_cache() -> None:
    """
    Drop the cached config so YAML edits (or a new BENCH_CONFIG_PATH) are picked up.
    """
    _load.cache_clear()
