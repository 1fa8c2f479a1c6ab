"""Qinglong API layer -- re-exports the client, errors and env operations."""

from qinglong_envs.api.client import (
    AuthenticationError,
    ConfigurationError,
    QinglongClient,
    QinglongError,
    RequestError,
)
from qinglong_envs.api.envs import EnvNotFoundError, get_env, list_envs, set_env

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "EnvNotFoundError",
    "QinglongClient",
    "QinglongError",
    "RequestError",
    "get_env",
    "list_envs",
    "set_env",
]
