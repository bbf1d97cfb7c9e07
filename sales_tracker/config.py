# sales_tracker/config.py
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

from sales_tracker.seed import DEFAULT_SEED_URL

DEFAULT_CONFIG: Dict[str, object] = {
    "db_path": "salesboard.db",
    "seed_url": DEFAULT_SEED_URL,
    "seed_timeout_seconds": 30,
    "query_timeout_seconds": 10,
    "default_per_page": 10,
    "server": {
        "host": "127.0.0.1",
        "port": 8000,
    },
}

# Environment variables that override keys of the loaded config.
ENV_OVERRIDES = {
    "SALESBOARD_DB": "db_path",
    "SALESBOARD_SEED_URL": "seed_url",
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    """Load a YAML config file, fill in defaults and apply env overrides.

    A missing file is not an error; the defaults are used instead.
    """
    data: Dict[str, object] = {}
    if path is not None:
        target = Path(path)
        if target.exists():
            with target.open("r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file {target} must contain a mapping")
    config = _merge_defaults(data, copy.deepcopy(DEFAULT_CONFIG))
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value
    return config
