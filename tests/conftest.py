"""Shared fixtures: an in-memory fake panel and isolated storage paths."""
import json
import threading
import time

import httpx
import pytest
from loguru import logger

from qinglong_envs.storage.config import ClientSettings


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Keep every test away from the real settings/tokens files and QL_* vars."""
    monkeypatch.setattr("qinglong_envs.storage.config.SETTINGS_FILE", tmp_path / "settings.json")
    monkeypatch.setattr("qinglong_envs.storage.tokens.TOKENS_FILE", tmp_path / "tokens.json")
    for name in ClientSettings.model_fields:
        monkeypatch.delenv(f"QL_{name.upper()}", raising=False)
    return tmp_path


@pytest.fixture
def log_messages():
    """Collect every loguru message emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level} {message}")
    yield messages
    logger.remove(handler_id)


class FakePanel:
    """Minimal stand-in for the panel's open API.

    Records every request and serves ``/open/auth/token`` and ``/open/envs``.
    Individual tests tweak the attributes to simulate failures.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.token_delay = 0.0
        self.token_ttl = 3600
        self.token_response = None
        self.envs = [
            {"id": 1, "name": "JD_COOKIE", "value": "pt_key=a", "remarks": "main"},
            {"id": 2, "name": "JD_COOKIE_2", "value": "pt_key=b", "remarks": None},
        ]
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/open/auth/token":
            return self._token(request)
        if path == "/open/envs":
            if request.headers.get("Authorization") is None:
                return httpx.Response(401, text="Unauthorized")
            if request.method == "GET":
                return self._list_envs(request)
            if request.method == "PUT":
                return self._update_env(request)
        return httpx.Response(404, text="Not Found")

    def _token(self, request):
        with self._lock:
            self.token_calls += 1
            n = self.token_calls
        if self.token_delay:
            time.sleep(self.token_delay)
        if self.token_response is not None:
            return self.token_response
        return httpx.Response(
            200,
            json={
                "code": 200,
                "data": {
                    "token": f"tok-{n}",
                    "token_type": "Bearer",
                    "expiration": int(time.time()) + self.token_ttl,
                },
            },
        )

    def _list_envs(self, request):
        search = request.url.params.get("searchValue")
        found = [
            e for e in self.envs
            if search is None or search in e["name"] or search in e["value"]
        ]
        return httpx.Response(200, json={"code": 200, "data": found})

    def _update_env(self, request):
        body = json.loads(request.content)
        for env in self.envs:
            if env["id"] == body["id"]:
                env.update(body)
                return httpx.Response(200, json={"code": 200, "data": env})
        return httpx.Response(200, json={"code": 400, "message": "not found"})

    @property
    def token_requests(self):
        return [r for r in self.requests if r.url.path == "/open/auth/token"]


@pytest.fixture
def panel():
    return FakePanel()


@pytest.fixture
def make_client(panel):
    """Build a client whose HTTP transport is routed to *panel*."""
    from qinglong_envs.api.client import QinglongClient

    clients = []

    def _make(handler=None, **kwargs):
        kwargs.setdefault("base_url", "http://panel.test")
        kwargs.setdefault("client_id", "cid")
        kwargs.setdefault("client_secret", "csecret")
        client = QinglongClient(**kwargs)
        client._http.close()
        client._http = httpx.Client(
            base_url=client.base_url,
            transport=httpx.MockTransport(handler or panel.handler),
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
