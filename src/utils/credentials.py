"""API token lookup for the exchange gateway."""

from __future__ import annotations

import os
import re
from typing import Mapping

import keyring
from keyring.errors import KeyringError

DEFAULT_SERVICE_NAME = "spot-agent"
DEFAULT_TOKEN_ENV = "SPOT_AGENT_API_TOKEN"
DEFAULT_TOKEN_USERNAME = "api_token"
_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")


def load_api_token(
    config: Mapping[str, object] | None = None,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
    token_env: str = DEFAULT_TOKEN_ENV,
    token_username: str = DEFAULT_TOKEN_USERNAME,
    required: bool = False,
) -> str | None:
    """Resolve the gateway token from config, then the environment, then keyring.

    A config value of the form ``${VAR}`` is read from environment variable
    ``VAR``. Returns None when nothing is found unless ``required`` is set.
    """
    token = _resolve_value(config, "api_token")
    if not token:
        token = _clean_value(os.getenv(token_env))
    if not token:
        token = _get_keyring_value(service_name, token_username)
    if not token and required:
        raise ValueError(
            "API token is missing. Provide api_token in the config, "
            f"set {token_env}, or store it in the keychain for service "
            f"'{service_name}'."
        )
    return token


def store_api_token(
    token: str,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
    token_username: str = DEFAULT_TOKEN_USERNAME,
) -> None:
    value = _clean_value(token)
    if not value:
        raise ValueError("api_token must be a non-empty string.")
    try:
        keyring.set_password(service_name, token_username, value)
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to store the token in the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc


def _resolve_value(config: Mapping[str, object] | None, key: str) -> str | None:
    if not config or config.get(key) is None:
        return None
    raw = str(config[key]).strip()
    match = _ENV_PATTERN.match(raw)
    if match:
        return _clean_value(os.getenv(match.group(1)))
    return _clean_value(raw)


def _clean_value(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _get_keyring_value(service_name: str, username: str) -> str | None:
    try:
        return _clean_value(keyring.get_password(service_name, username))
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to access the OS keychain. Ensure a keyring backend is available."
        ) from exc
