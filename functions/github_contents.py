import base64
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import requests

ACCEPT = "application/vnd.github.v3+json"


@dataclass(frozen=True)
class RemoteFile:
    content: str
    sha: Optional[str] = None


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    file: Optional[RemoteFile] = None
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    status: int
    body: Any = None

    @property
    def conflict(self) -> bool:
        # stale sha
        return self.status == 409


def contents_url(api_url: str, owner: str, repo: str, path: str) -> str:
    return "{}/repos/{}/{}/contents/{}".format(
        api_url.rstrip("/"), quote(owner, safe=""), quote(repo, safe=""), quote(path.lstrip("/"), safe="/")
    )


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(data: str) -> str:
    # GitHub wraps base64 content at 60 columns
    return base64.b64decode("".join(data.split())).decode("utf-8")


def append_line(existing, line):
    return f"{existing}\n{line}" if existing else line


def _body(resp):
    try:
        return resp.json()
    except ValueError:
        return resp.text


class GitHubContents:
    """Read and write one file through the GitHub repository contents API."""

    def __init__(self, session: requests.Session, token: str, url: str, timeout_s: float = 10.0):
        self.session = session
        self.url = url
        self.timeout_s = timeout_s
        self.headers = {
            "Authorization": f"token {token}",
            "Accept": ACCEPT,
        }

    def read(self) -> ReadResult:
        """
        Fetch the file.

        A 404 is the first-subscriber case and reads as an empty file with no sha.
        Transport errors and malformed 200 payloads raise.
        """
        resp = self.session.get(self.url, headers=self.headers, timeout=self.timeout_s)
        if resp.status_code == 404:
            return ReadResult(ok=True, file=RemoteFile(content=""), status=404)
        if not resp.ok:
            return ReadResult(ok=False, status=resp.status_code, error=resp.reason or str(resp.status_code))
        data = resp.json()
        # files over 1 MB come back with encoding "none" and empty content
        if data.get("encoding") != "base64":
            raise ValueError(f"unsupported contents encoding {data.get('encoding')!r} for {self.url}")
        return ReadResult(
            ok=True,
            file=RemoteFile(content=decode_content(data["content"]), sha=data["sha"]),
            status=resp.status_code,
        )

    def write(self, content: str, message: str, sha: Optional[str] = None) -> WriteResult:
        payload = {"message": message, "content": encode_content(content)}
        # no sha creates the file, a sha updates it
        if sha:
            payload["sha"] = sha
        headers = dict(self.headers)
        headers["Content-Type"] = "application/json"
        resp = self.session.put(self.url, headers=headers, json=payload, timeout=self.timeout_s)
        if resp.ok:
            return WriteResult(ok=True, status=resp.status_code)
        return WriteResult(ok=False, status=resp.status_code, body=_body(resp))
