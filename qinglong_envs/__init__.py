"""Client for the Qinglong panel's environment variable API."""

from qinglong_envs.api import (
    AuthenticationError,
    ConfigurationError,
    EnvNotFoundError,
    QinglongClient,
    QinglongError,
    RequestError,
    get_env,
    list_envs,
    set_env,
)
from qinglong_envs.models import Env, TokenInfo

__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "Env",
    "EnvNotFoundError",
    "QinglongClient",
    "QinglongError",
    "RequestError",
    "TokenInfo",
    "get_env",
    "list_envs",
    "set_env",
]
