from __future__ import annotations

import base64
import json
from typing import Any, Callable

import pytest

from subscribe_config import SubscribeConfig

CONTENTS_URL = "https://api.github.com/repos/acme/site/contents/subscribers.txt"


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, reason: str = "", text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeGitHub:
    """
    In-memory stand-in for one file behind the contents API.

    Implements the sha check the real API applies: a PUT without sha on an
    existing file, or with a stale sha, is rejected with 409.
    """

    def __init__(self, content: str | None = None, sha: str = "abc123"):
        self.content = content
        self.sha = sha if content is not None else None
        self.version = 0
        self.gets: list[dict] = []
        self.puts: list[dict] = []
        self.get_override: FakeResponse | None = None
        self.put_override: FakeResponse | None = None
        self.before_put: Callable[["FakeGitHub"], None] | None = None

    def commit(self, content: str) -> None:
        self.version += 1
        self.content = content
        self.sha = f"sha{self.version}"

    def get(self, url: str, headers: dict | None = None, timeout: float | None = None):
        self.gets.append({"url": url, "headers": headers, "timeout": timeout})
        if self.get_override is not None:
            return self.get_override
        if self.content is None:
            return FakeResponse(404, {"message": "Not Found"}, reason="Not Found")
        encoded = base64.b64encode(self.content.encode("utf-8")).decode("ascii")
        # wrapped like the real API
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60)) + "\n"
        return FakeResponse(200, {"content": wrapped, "sha": self.sha, "encoding": "base64"})

    def put(self, url: str, headers: dict | None = None, json: dict | None = None, timeout: float | None = None):
        self.puts.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.before_put is not None:
            hook, self.before_put = self.before_put, None
            hook(self)
        if self.put_override is not None:
            return self.put_override
        if self.content is not None and json.get("sha") != self.sha:
            return FakeResponse(409, {"message": f"subscribers.txt does not match {json.get('sha')}"}, reason="Conflict")
        self.commit(base64.b64decode(json["content"]).decode("utf-8"))
        return FakeResponse(201 if self.version == 1 else 200, {"content": {"sha": self.sha}})

    def put_content(self, i: int = -1) -> str:
        return base64.b64decode(self.puts[i]["json"]["content"]).decode("utf-8")


@pytest.fixture
def config() -> SubscribeConfig:
    return SubscribeConfig(token="ghp_test", owner="acme", repo="site")


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


def post_event(body: Any = None, method: str = "POST", raw: str | None = None) -> dict:
    if raw is None:
        raw = json.dumps(body) if body is not None else None
    return {"httpMethod": method, "path": "/api/subscribe", "headers": {}, "body": raw, "isBase64Encoded": False}
