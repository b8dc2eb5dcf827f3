import os, json
from dataclasses import dataclass
from typing import Mapping, Optional

import boto3

DEFAULT_FILE_PATH = "subscribers.txt"
DEFAULT_API_URL = "https://api.github.com"

TRUTHY = ("1", "true", "yes", "on")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class SubscribeConfig:
    token: str
    owner: str
    repo: str
    file_path: str = DEFAULT_FILE_PATH
    api_url: str = DEFAULT_API_URL
    cors_enabled: bool = True
    cors_allow_origin: str = "*"
    max_write_attempts: int = 1
    timeout_s: float = 10.0


def _positive_int(env, name, default):
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ConfigError(f"{name} must be >= 1, got {value}")
    return value


def _positive_float(env, name, default):
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {value}")
    return value


def token_from_secret(secret_arn: str, secrets_client=None) -> str:
    """
    Resolve the GitHub token from Secrets Manager.

    The secret holds either the bare token or a JSON object with a "token" key.
    """
    client = secrets_client or boto3.client("secretsmanager")
    try:
        raw = client.get_secret_value(SecretId=secret_arn).get("SecretString") or ""
    except Exception as e:
        raise ConfigError(f"could not read GitHub token secret {secret_arn}: {e}") from e
    raw = raw.strip()
    if raw.startswith("{"):
        try:
            raw = str(json.loads(raw).get("token") or "").strip()
        except ValueError as e:
            raise ConfigError(f"GitHub token secret {secret_arn} is not valid JSON") from e
    if not raw:
        raise ConfigError(f"GitHub token secret {secret_arn} is empty")
    return raw


def load_config(environ: Optional[Mapping[str, str]] = None, secrets_client=None) -> SubscribeConfig:
    env = os.environ if environ is None else environ

    token = (env.get("GITHUB_TOKEN") or "").strip()
    owner = (env.get("GITHUB_OWNER") or "").strip()
    repo = (env.get("GITHUB_REPO") or "").strip()
    secret_arn = (env.get("GITHUB_TOKEN_SECRET_ARN") or "").strip()

    missing = []
    if not token and not secret_arn:
        missing.append("GITHUB_TOKEN")
    if not owner:
        missing.append("GITHUB_OWNER")
    if not repo:
        missing.append("GITHUB_REPO")
    if missing:
        raise ConfigError(f"missing required environment variables: {', '.join(missing)}")

    if not token:
        token = token_from_secret(secret_arn, secrets_client)

    return SubscribeConfig(
        token=token,
        owner=owner,
        repo=repo,
        file_path=(env.get("EMAIL_FILE_PATH") or "").strip() or DEFAULT_FILE_PATH,
        api_url=((env.get("GITHUB_API_URL") or "").strip() or DEFAULT_API_URL).rstrip("/"),
        cors_enabled=(env.get("CORS_ENABLED") or "true").strip().lower() in TRUTHY,
        cors_allow_origin=(env.get("CORS_ALLOW_ORIGIN") or "").strip() or "*",
        max_write_attempts=_positive_int(env, "MAX_WRITE_ATTEMPTS", 1),
        timeout_s=_positive_float(env, "HTTP_TIMEOUT_SECONDS", 10.0),
    )
