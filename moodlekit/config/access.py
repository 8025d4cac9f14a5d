"""Process-wide config access for the CLI and long-running clients.

Loaded configs are cached per config file and per set of MOODLEKIT_*
environment variables, so changing either one yields a fresh load.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from moodlekit.config.loader import get_config_path, load_config
from moodlekit.config.schema import Config

ENV_PREFIX = "MOODLEKIT_"

_lock = threading.RLock()
_cache: dict[tuple[str, tuple[tuple[str, str], ...]], Config] = {}


def _resolved(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def _env_snapshot() -> tuple[tuple[str, str], ...]:
    return tuple(sorted((k, v) for k, v in os.environ.items() if k.upper().startswith(ENV_PREFIX)))


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Return the site config, loading it at most once per file and environment."""
    path = _resolved(config_path)
    key = (str(path), _env_snapshot())
    with _lock:
        if force_reload or key not in _cache:
            _cache[key] = load_config(path)
        return _cache[key]


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget cached configs for one file, or for every file."""
    with _lock:
        if config_path is None:
            _cache.clear()
            return
        path = str(_resolved(config_path))
        for key in [k for k in _cache if k[0] == path]:
            del _cache[key]
