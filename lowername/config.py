"""Persistent JSON defaults for the command line.

Stores the default concurrency cap, log path, and ownership preference.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .runtime.audit import DEFAULT_LOG_FILE
from .runtime.limiter import DEFAULT_MAX_IN_FLIGHT

APP_NAME = "lowername"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME


@dataclass(frozen=True)
class RenamerDefaults:
    """Effective defaults after merging persisted config over built-ins."""

    max_workers: int = DEFAULT_MAX_IN_FLIGHT
    log_file: str = DEFAULT_LOG_FILE
    preserve_ownership: bool = True


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored so a read-only config dir never blocks a run.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def load_defaults() -> RenamerDefaults:
    """Return CLI defaults, ignoring persisted values of the wrong type.

    ``max_workers`` must be a positive integer (booleans rejected) and
    ``log_file`` a non-blank string.
    """
    data = load_config()
    built_in = RenamerDefaults()

    max_workers = data.get("max_workers")
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        max_workers = built_in.max_workers

    log_file = data.get("log_file")
    if not isinstance(log_file, str) or not log_file.strip():
        log_file = built_in.log_file

    preserve_ownership = data.get("preserve_ownership")
    if not isinstance(preserve_ownership, bool):
        preserve_ownership = built_in.preserve_ownership

    return RenamerDefaults(
        max_workers=max_workers,
        log_file=log_file.strip(),
        preserve_ownership=preserve_ownership,
    )


def save_defaults(defaults: RenamerDefaults) -> None:
    """Persist ``defaults`` while keeping unrelated config keys."""
    config = load_config()
    config["max_workers"] = int(defaults.max_workers)
    config["log_file"] = str(defaults.log_file)
    config["preserve_ownership"] = bool(defaults.preserve_ownership)
    save_config(config)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "RenamerDefaults",
    "load_config",
    "save_config",
    "load_defaults",
    "save_defaults",
]
