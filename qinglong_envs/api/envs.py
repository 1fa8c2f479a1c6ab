"""Environment variable operations against the Qinglong open API.

All functions accept a :class:`~qinglong_envs.api.client.QinglongClient` as
their first argument and return parsed Pydantic models.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from ..models.env import Env
from .client import QinglongClient, QinglongError, RequestError

ENVS_PATH = "/open/envs"


class EnvNotFoundError(QinglongError):
    """Raised when no environment variable has exactly the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Env '{name}' Not Found")
        self.name = name


def list_envs(client: QinglongClient, search_value: str | None = None) -> list[Env]:
    """Fetch environment variables, optionally filtered by the server.

    The server-side filter is a fuzzy match on name, value and remarks, so
    the result may contain entries whose name differs from *search_value*.
    Entries that fail to parse are logged and skipped.
    """
    params = {"searchValue": search_value} if search_value is not None else None
    data = client.authorized_request("GET", ENVS_PATH, params=params)
    if data is None:
        return []
    if not isinstance(data, list):
        raise RequestError(
            f"requestFail: url: {client.base_url}{ENVS_PATH}, expected a list of envs",
            url=f"{client.base_url}{ENVS_PATH}",
            data=data,
        )

    envs: list[Env] = []
    for raw in data:
        try:
            envs.append(Env.model_validate(raw))
        except ValidationError as exc:
            env_id = raw.get("id", "<unknown>") if isinstance(raw, dict) else "<unknown>"
            logger.warning(f"Failed to parse env {env_id}: {exc}")
    return envs


def get_env(client: QinglongClient, name: str) -> Env:
    """Return the environment variable called exactly *name*.

    Raises :class:`EnvNotFoundError` if the search returns no exact match.
    """
    for env in list_envs(client, name):
        if env.name == name:
            return env
    raise EnvNotFoundError(name)


def set_env(
    client: QinglongClient,
    name: str,
    value: str,
    remarks: str | None = None,
) -> Env:
    """Update the value (and remarks) of the existing variable *name*.

    The variable must already exist; :class:`EnvNotFoundError` is raised
    otherwise.  Passing ``remarks=None`` sends a null ``remarks`` field.

    Returns the variable as stored by the server after the update.
    """
    env = get_env(client, name)
    payload = {
        "id": env.id,
        "name": name,
        "value": value,
        "remarks": remarks,
    }
    data = client.authorized_request("PUT", ENVS_PATH, json=payload)
    logger.debug(f"Env '{name}' (id {env.id}) updated")
    try:
        return Env.model_validate(data)
    except ValidationError as exc:
        raise RequestError(
            f"requestFail: url: {client.base_url}{ENVS_PATH}, malformed env: {exc}",
            url=f"{client.base_url}{ENVS_PATH}",
            data=data,
        ) from exc
