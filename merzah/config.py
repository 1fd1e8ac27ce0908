"""
merzah.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for **non-secret** settings (platform identity, API
port, rotation cadence).  Secrets such as ``DATABASE_URL`` and
``JWT_SECRET`` live in ``.env`` and are read from the environment.

Usage::

    from merzah.config import load_config

    cfg = load_config()                   # reads ./config.yaml by default
    print(cfg.platform_name)              # "Merzah"
    print(cfg.rotation_interval_minutes)  # 60
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from merzah.constants import DEFAULT_ROTATION_INTERVAL_MINUTES, ROTATION_MAX_ITERATIONS


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MerzahConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    platform_name: str

    # API
    api_port: int

    # Events
    default_timezone: str = "UTC"  # IANA zone for events created without one

    # Rotation job
    rotation_interval_minutes: int = DEFAULT_ROTATION_INTERVAL_MINUTES
    rotation_max_iterations: int = ROTATION_MAX_ITERATIONS
    rotation_on_startup: bool = True  # Run once immediately instead of waiting a full period


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> MerzahConfig:
    """Read *path* and return a :class:`MerzahConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``default_timezone`` is not a known IANA zone or the rotation
        settings are not positive.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    default_timezone = str(raw.get("default_timezone", "UTC"))
    try:
        ZoneInfo(default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown default_timezone: {default_timezone!r}") from None

    interval = int(raw.get("rotation_interval_minutes", DEFAULT_ROTATION_INTERVAL_MINUTES))
    max_iterations = int(raw.get("rotation_max_iterations", ROTATION_MAX_ITERATIONS))
    if interval <= 0 or max_iterations <= 0:
        raise ValueError(
            "rotation_interval_minutes and rotation_max_iterations must be positive"
        )

    return MerzahConfig(
        platform_name=raw["platform_name"],
        api_port=int(raw["api_port"]),
        default_timezone=default_timezone,
        rotation_interval_minutes=interval,
        rotation_max_iterations=max_iterations,
        rotation_on_startup=bool(raw.get("rotation_on_startup", True)),
    )
