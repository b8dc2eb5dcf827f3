import os, re, json, base64, logging

import requests

from github_contents import GitHubContents, append_line, contents_url
from subscribe_config import SubscribeConfig, load_config


def log_level(name):
    level = logging.getLevelName((name or "INFO").strip().upper())
    # unknown names come back as "Level X"
    return level if isinstance(level, int) else logging.INFO


logger = logging.getLogger(__name__)
logger.setLevel(log_level(os.environ.get("LOG_LEVEL")))

EMAIL_RX = re.compile(r"\S+@\S+\.\S+")

MSG_OK = "Successfully subscribed!"
MSG_INVALID = "Invalid email address provided."
MSG_INTERNAL = "An internal server error occurred."

_runtime = None


class SubscribeError(Exception):
    pass


class RemoteReadError(SubscribeError):
    pass


class RemoteWriteError(SubscribeError):
    pass


def _cors_headers(config):
    if not config.cors_enabled:
        return {}
    return {
        "Access-Control-Allow-Origin": config.cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _response(config, status, body=None, headers=None):
    out = dict(_cors_headers(config))
    if body is not None:
        out["Content-Type"] = "application/json"
    out.update(headers or {})
    return {
        "statusCode": status,
        "headers": out,
        "body": json.dumps(body) if body is not None else "",
    }


def request_method(event):
    # REST API (payload v1) or HTTP API (payload v2)
    method = event.get("httpMethod") or ((event.get("requestContext") or {}).get("http") or {}).get("method") or ""
    return method.upper()


def request_body(event):
    raw = event.get("body") or ""
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        body = json.loads(raw or "{}")
    except (ValueError, RecursionError):
        return {}
    return body if isinstance(body, dict) else {}


def is_valid_email(email):
    return isinstance(email, str) and bool(EMAIL_RX.search(email))


def append_subscriber(email: str, contents: GitHubContents, max_attempts: int = 1) -> None:
    """
    Read the subscriber list, append the email and write it back.

    The write carries the sha observed on read. Two overlapping requests can
    observe the same sha and the later write is rejected with 409. With
    max_attempts > 1 that rejection triggers a fresh read and another write;
    any other failure ends the request.
    """
    for attempt in range(1, max_attempts + 1):
        read = contents.read()
        if not read.ok:
            raise RemoteReadError(f"Failed to get file from GitHub: {read.status} {read.error}")

        new_content = append_line(read.file.content, email)
        result = contents.write(new_content, f"feat: Add new subscriber {email}", sha=read.file.sha)
        if result.ok:
            return

        logger.error("GitHub API Error: %s", result.body)
        if result.conflict and attempt < max_attempts:
            logger.warning("sha conflict writing %s, retrying (attempt %d/%d)", contents.url, attempt, max_attempts)
            continue
        raise RemoteWriteError(f"Failed to update file on GitHub: {result.status}")


def handle(event: dict, config: SubscribeConfig, session: requests.Session) -> dict:
    method = request_method(event)
    if method == "OPTIONS":
        return _response(config, 200)
    if method != "POST":
        return {
            "statusCode": 405,
            "headers": dict(_cors_headers(config), **{"Allow": "POST", "Content-Type": "text/plain"}),
            "body": "Method Not Allowed",
        }

    email = request_body(event).get("email")
    if not is_valid_email(email):
        return _response(config, 400, {"message": MSG_INVALID})

    url = contents_url(config.api_url, config.owner, config.repo, config.file_path)
    contents = GitHubContents(session, config.token, url, timeout_s=config.timeout_s)
    try:
        append_subscriber(email, contents, max_attempts=config.max_write_attempts)
    except Exception:
        logger.exception("subscribe failed for %s", url)
        return _response(config, 500, {"message": MSG_INTERNAL})

    return _response(config, 200, {"message": MSG_OK})


def _get_runtime():
    global _runtime
    if _runtime is None:
        _runtime = (load_config(), requests.Session())
    return _runtime


def handler(event, context):
    config, session = _get_runtime()
    return handle(event, config, session)
