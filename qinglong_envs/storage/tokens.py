"""Persistent storage for access tokens.

Tokens are kept in a single JSON object mapping a cache key (see
:func:`token_key`) to a serialised :class:`TokenInfo`.  Reads that fail for
any reason are treated as a cache miss; all writes go through
:func:`atomic_write`.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from ..models.token import TokenInfo
from .paths import TOKENS_FILE, atomic_write, ensure_parents


def token_key(base_url: str, client_id: str) -> str:
    """Return the cache key for tokens issued to *client_id* by *base_url*."""
    return f"{base_url.rstrip('/')}|{client_id}"


class TokenStore:
    """On-disk token cache shared by every client pointing at the same file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else TOKENS_FILE
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load tokens from {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        try:
            ensure_parents(self.path)
            atomic_write(self.path, json.dumps(data, indent=2))
        except OSError as exc:
            logger.warning(f"Failed to save tokens to {self.path}: {exc}")

    def load(self, key: str) -> TokenInfo | None:
        """Return the token cached under *key*, or ``None``."""
        with self._lock:
            raw = self._read().get(key)
        if raw is None:
            return None
        try:
            return TokenInfo.model_validate(raw)
        except ValueError as exc:
            logger.warning(f"Discarding unreadable cached token: {exc}")
            return None

    def save(self, key: str, token: TokenInfo) -> None:
        """Cache *token* under *key*, replacing any previous entry."""
        with self._lock:
            data = self._read()
            data[key] = token.model_dump()
            self._write(data)
        logger.debug(f"Token cached in {self.path}")

    def delete(self, key: str) -> None:
        """Remove the entry for *key*; a missing entry is not an error."""
        with self._lock:
            data = self._read()
            if data.pop(key, None) is None:
                return
            self._write(data)
        logger.debug(f"Cached token removed from {self.path}")
