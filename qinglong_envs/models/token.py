"""Pydantic v2 model for the access token issued by ``/open/auth/token``."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict


class TokenInfo(BaseModel):
    """Access token plus the metadata needed to decide when to refresh it."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    token_type: str
    expiration: int = 0

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` request header."""
        return f"{self.token_type} {self.token}"

    def is_usable(self, now: float | None = None, leeway: int = 0) -> bool:
        """Return ``True`` if the token may be reused at *now*.

        A token with no expiration is never reused.  Otherwise it is usable
        until *leeway* seconds before it expires.
        """
        if not self.expiration:
            return False
        if now is None:
            now = time.time()
        return now < self.expiration - leeway
