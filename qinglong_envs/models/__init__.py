"""Re-export the data models."""

from qinglong_envs.models.env import Env
from qinglong_envs.models.token import TokenInfo

__all__ = ["Env", "TokenInfo"]
