"""User settings for qinglong-envs.

Settings are resolved in three layers, later layers winning:

1. the field defaults of :class:`ClientSettings`
2. the JSON file at :data:`~qinglong_envs.storage.paths.SETTINGS_FILE`
3. ``QL_*`` environment variables (e.g. ``QL_BASE_URL``)

Values from the file or the environment that do not validate against the
field type are dropped with a warning, so the field keeps the value of the
layer below.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .paths import SETTINGS_FILE, atomic_write, ensure_parents


def _read_file() -> dict[str, Any]:
    if not SETTINGS_FILE.exists():
        return {}
    try:
        data = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning(f"Failed to read settings from {SETTINGS_FILE}: {exc}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {SETTINGS_FILE}: not a JSON object")
        return {}
    return data


def _valid_values(
    settings_cls: type[BaseSettings], data: dict[str, Any], origin: str
) -> dict[str, Any]:
    """Keep only the entries of *data* that validate against their field."""
    valid: dict[str, Any] = {}
    for key, value in data.items():
        field = settings_cls.model_fields.get(key)
        if field is None:
            continue
        try:
            valid[key] = TypeAdapter(field.annotation).validate_python(value)
        except ValidationError:
            # Values are not logged: client_secret lives here too.
            logger.warning(f"Ignoring invalid {origin} value for '{key}'")
    return valid


class _JsonFileSource(PydanticBaseSettingsSource):
    """Reads :data:`SETTINGS_FILE`, tolerating a missing or corrupt file."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return _valid_values(self.settings_cls, _read_file(), "settings file")


class _LenientEnvSource(EnvSettingsSource):
    """``QL_*`` environment variables, skipping the ones that fail validation."""

    def __call__(self) -> dict[str, Any]:
        return _valid_values(self.settings_cls, super().__call__(), "environment")


class ClientSettings(BaseSettings):
    """Connection and caching settings for :class:`QinglongClient`."""

    model_config = SettingsConfigDict(
        env_prefix="QL_",
        env_ignore_empty=True,
        extra="ignore",
    )

    base_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    timeout: float = 3.0
    token_leeway: int = 60
    cache_tokens: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            _LenientEnvSource(settings_cls),
            _JsonFileSource(settings_cls),
        )


class Settings:
    """Read and write persistent settings.

    All methods are classmethods; there is no instance state.  Reads go to
    disk every time so changes made by another process are picked up.
    """

    @classmethod
    def load(cls) -> dict[str, Any]:
        """Return the fully resolved settings dict."""
        return ClientSettings().model_dump()

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Return a single setting, or *default* when the key is unknown."""
        return cls.load().get(key, default)

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """Persist *key* = *value* to the settings file.

        Environment overrides are not written back; only the file layer
        changes.
        """
        data = _read_file()
        data[key] = value
        ensure_parents(SETTINGS_FILE)
        atomic_write(SETTINGS_FILE, json.dumps(data, indent=2))
        logger.debug(f"Setting '{key}' saved to {SETTINGS_FILE}")
