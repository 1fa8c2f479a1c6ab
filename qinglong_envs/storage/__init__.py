"""Local persistence: paths, settings and the token cache."""

from qinglong_envs.storage.config import Settings
from qinglong_envs.storage.tokens import TokenStore, token_key

__all__ = ["Settings", "TokenStore", "token_key"]
