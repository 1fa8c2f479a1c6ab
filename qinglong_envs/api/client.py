"""HTTP client for the Qinglong open API with access token caching."""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from ..models.token import TokenInfo
from ..storage.config import Settings
from ..storage.tokens import TokenStore, token_key

TOKEN_PATH = "/open/auth/token"


class QinglongError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(QinglongError):
    """Raised when the client is missing a required setting."""


class RequestError(QinglongError):
    """Raised when the server rejects a request.

    Either the HTTP status was outside ``2xx`` (``status_code`` is set) or
    the JSON envelope carried a ``code`` other than 200 (``code`` and
    ``data`` are set).
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
        code: Any = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.code = code
        self.data = data


class AuthenticationError(QinglongError):
    """Raised when an access token cannot be obtained."""


class QinglongClient:
    """Low-level client that owns the access token.

    Tokens are fetched lazily on the first authorised request and reused
    until they are within ``leeway`` seconds of expiring.  A single lock per
    client guarantees that concurrent callers trigger at most one token
    fetch; everyone else waits for it and reuses the result.

    Any constructor argument left as ``None`` is read from
    :class:`~qinglong_envs.storage.config.Settings`.

    Example::

        with QinglongClient("http://localhost:5700", "id", "secret") as client:
            env = get_env(client, "JD_COOKIE")
    """

    def __init__(
        self,
        base_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        timeout: float | None = None,
        leeway: int | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        settings = Settings.load()
        self.base_url = (base_url or settings["base_url"]).rstrip("/")
        self.client_id = client_id or settings["client_id"]
        self.client_secret = client_secret or settings["client_secret"]
        missing = [
            name
            for name in ("base_url", "client_id", "client_secret")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"Missing client settings: {', '.join(missing)}")

        self.timeout = timeout if timeout is not None else settings["timeout"]
        self.leeway = leeway if leeway is not None else settings["token_leeway"]
        if token_store is None and settings["cache_tokens"]:
            token_store = TokenStore()
        self.token_store = token_store

        self._http = httpx.Client(base_url=self.base_url, timeout=self.timeout)
        self._token_lock = threading.Lock()
        self.token_info: TokenInfo | None = None

        if self.token_store is not None:
            cached = self.token_store.load(self._token_key)
            if cached is not None and cached.is_usable(leeway=self.leeway):
                logger.debug("Loaded cached access token")
                self.token_info = cached

    @property
    def _token_key(self) -> str:
        return token_key(self.base_url, self.client_id)

    # ------------------------------------------------------------------
    # Request envelope
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and unwrap the ``{"code", "data"}`` envelope.

        Returns the envelope's ``data`` member.  Raises :class:`RequestError`
        for a non-2xx status, a body that is not a JSON object, or an
        envelope ``code`` other than 200.  Transport failures propagate as
        :class:`httpx.HTTPError`.
        """
        resp = self._http.request(method, path, params=params, json=json, headers=headers)
        url = f"{self.base_url}{path}"

        if not 200 <= resp.status_code < 300:
            raise RequestError(
                f"requestFail: url: {url}, status: {resp.status_code}, resp: {resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError:
            raise RequestError(
                f"requestFail: url: {url}, non-JSON response: {resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            ) from None
        if not isinstance(body, dict):
            raise RequestError(
                f"requestFail: url: {url}, unexpected response: {resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            )

        code = body.get("code")
        data = body.get("data")
        if code != 200:
            raise RequestError(
                f"requestFail: url: {url}, code: {code}, data: {_dump(data)}",
                url=url,
                status_code=resp.status_code,
                code=code,
                data=data,
            )
        return data

    def authorized_request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like :meth:`request` but with the ``Authorization`` header set."""
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = self.get_token()
        return self.request(method, path, headers=headers, **kwargs)

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------

    def fetch_token(self) -> TokenInfo:
        """Request a new access token from the server.

        The cache is neither read nor updated; use :meth:`get_token` for
        that.
        """
        data = self.request(
            "GET",
            TOKEN_PATH,
            params={"client_id": self.client_id, "client_secret": self.client_secret},
        )
        try:
            return TokenInfo.model_validate(data)
        except ValidationError as exc:
            raise RequestError(
                f"requestFail: url: {self.base_url}{TOKEN_PATH}, malformed token response",
                url=f"{self.base_url}{TOKEN_PATH}",
                data=data,
            ) from exc

    def get_token(self) -> str:
        """Return the ``Authorization`` header value, fetching a token if needed.

        Raises :class:`AuthenticationError` if a new token is needed and
        cannot be fetched.  The previously cached token, if any, is left in
        place in that case.
        """
        token_info = self.token_info
        if token_info is not None and token_info.is_usable(leeway=self.leeway):
            return token_info.authorization

        with self._token_lock:
            # Another thread may have refreshed the token while we waited.
            token_info = self.token_info
            if token_info is not None and token_info.is_usable(leeway=self.leeway):
                return token_info.authorization

            logger.debug(f"Fetching access token from {self.base_url}")
            try:
                token_info = self.fetch_token()
            except (QinglongError, httpx.HTTPError) as exc:
                logger.error(f"Failed to obtain access token: {exc}")
                raise AuthenticationError(f"Failed to obtain access token: {exc}") from exc

            self.token_info = token_info
            if self.token_store is not None:
                self.token_store.save(self._token_key, token_info)
            return token_info.authorization

    def invalidate_token(self) -> None:
        """Forget the cached token so the next request fetches a new one."""
        with self._token_lock:
            self.token_info = None
            if self.token_store is not None:
                self.token_store.delete(self._token_key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP transport."""
        self._http.close()

    def __enter__(self) -> QinglongClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _dump(data: Any) -> str:
    try:
        return json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(data)
