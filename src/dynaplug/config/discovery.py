"""Config file discovery and reading.

Walk-up finder locates dynaplug.toml from the working directory upward.
``DYNAPLUG_CONFIG`` and the ``--config`` CLI flag take precedence over the
walk-up. Relative ``[loader] plugin_dirs`` are anchored at the file's folder.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "dynaplug.toml"
CONFIG_ENV_VAR = "DYNAPLUG_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest dynaplug.toml at or above *start* (default: cwd).

    When ``DYNAPLUG_CONFIG`` is set it wins, and None is returned if it
    does not point at a file.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path)
        return candidate if candidate.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for folder in (directory, *directory.parents):
        candidate = folder / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path* and anchor relative plugin directories at its parent."""
    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    loader = data.get("loader")
    if isinstance(loader, dict) and isinstance(loader.get("plugin_dirs"), list):
        loader["plugin_dirs"] = [
            str(path.parent / entry) if not Path(entry).is_absolute() else entry
            for entry in loader["plugin_dirs"]
        ]
    return data
