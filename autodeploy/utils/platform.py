"""Path utilities."""

from __future__ import annotations

import os
from pathlib import Path


def get_config_dir() -> Path:
    env = os.environ.get("AUTODEPLOY_CONFIG_DIR")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg) / "autodeploy"


def normalize_path(path: str | Path) -> Path:
    return Path(path).expanduser().resolve()
