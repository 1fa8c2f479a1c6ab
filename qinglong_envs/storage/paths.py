"""Filesystem locations for qinglong-envs.

Every persistent file the package touches is defined here.  Directory
creation is deferred to :func:`ensure_parents` so that importing the
package never writes to disk.
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir

APP_NAME = "qinglong-envs"

CONFIG_DIR: Path = Path(user_config_dir(APP_NAME))
CACHE_DIR: Path = Path(user_cache_dir(APP_NAME))

SETTINGS_FILE = CONFIG_DIR / "settings.json"
TOKENS_FILE = CACHE_DIR / "tokens.json"


def ensure_parents(path: Path) -> Path:
    """Create the parent directories of *path* and return *path* unchanged."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return path


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically (write-to-tmp then replace).

    The temporary file is removed if the replace step fails, and the
    original error is re-raised.
    """
    tmp = path.with_suffix(path.suffix + ".tmp")
    ensure_parents(tmp)

    with tmp.open("w", encoding="utf-8") as fh:
        fh.write(data)

    try:
        os.replace(tmp, path)
    except OSError:
        try:
            if tmp.exists():
                tmp.unlink()
        except OSError:
            pass
        raise
