"""Config file discovery.

Walk-up finder locates ``polyface.toml``, the way git finds ``.git/``.
``POLYFACE_CONFIG`` and ``--config`` override the search.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "polyface.toml"
CONFIG_ENV_VAR = "POLYFACE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``polyface.toml``.

    ``POLYFACE_CONFIG`` is checked first; when it names a missing file the
    search stops there and returns None.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent
