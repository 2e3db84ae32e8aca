"""Configuration parsing and validation for the Trello reviewer."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import AuthenticationError, ConfigurationError
from .models import ListRole

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7431
DEFAULT_ERROR_STATUS = 500
DEFAULT_CREDENTIALS_PATH = "credentials.json"
DEFAULT_UNKNOWN_DIR = "unknown"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the review server."""

    key: str
    token: str
    secret: str
    board: Optional[str] = None
    port: int = DEFAULT_PORT
    error_status: int = DEFAULT_ERROR_STATUS
    list_ids: Dict[ListRole, str] = field(default_factory=dict)
    unknown_dir: str = DEFAULT_UNKNOWN_DIR
    quiet: bool = False
    debug: bool = False


def read_credentials(path: Optional[str]) -> Dict[str, Any]:
    """Read default settings from a JSON credentials file.

    A missing file is not an error: every value can also come from the
    command line.

    Raises:
        ConfigurationError: If the file exists but is not a JSON object.
    """
    if not path:
        return {}

    credentials_file = Path(path)
    if not credentials_file.is_file():
        logger.info("Please enter default values in a file called %s", credentials_file.name)
        return {}

    try:
        credentials = json.loads(credentials_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Could not read credentials file '{path}': {exc}") from exc

    if not isinstance(credentials, dict):
        raise ConfigurationError(f"Credentials file '{path}' must contain a JSON object.")

    return credentials


def _parse_list_ids(settings: Mapping[str, Any]) -> Dict[ListRole, str]:
    """Collect explicit role to list id overrides.

    Overrides may be given as top-level keys (``"inProgress": "..."``) or under a
    ``"lists"`` object; the latter wins.
    """
    overrides: Dict[str, Any] = {}
    for role in ListRole:
        if settings.get(role.config_key):
            overrides[role.config_key] = settings[role.config_key]

    nested = settings.get("lists") or {}
    if not isinstance(nested, dict):
        raise ConfigurationError("Invalid value for 'lists': expected an object of list ids.")
    overrides.update(nested)

    list_ids: Dict[ListRole, str] = {}
    for key, list_id in overrides.items():
        role = ListRole.from_config_key(key)
        if role is None:
            raise ConfigurationError(f"Unknown list role '{key}' in configuration.")
        if not list_id:
            continue
        list_ids[role] = str(list_id)

    return list_ids


def _parse_int(settings: Mapping[str, Any], key: str, default: int) -> int:
    value = settings.get(key)
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid value for '{key}': expected an integer.") from exc
    if parsed <= 0:
        raise ConfigurationError(f"Invalid value for '{key}': expected an integer greater than 0.")
    return parsed


def load_config(
    options: Mapping[str, Any],
    credentials_path: Optional[str] = DEFAULT_CREDENTIALS_PATH,
) -> Config:
    """Build and validate application configuration.

    Values from the credentials file are overwritten by any non-``None``
    command-line option. Trello credentials fall back to the ``TRELLO_KEY`` and
    ``TRELLO_TOKEN`` environment variables.

    Args:
        options: Command-line options, typically ``vars(parse_args())``.
        credentials_path: Optional JSON file with default settings.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If the secret is missing or a value is invalid.
        AuthenticationError: If the Trello key or token is not configured.
    """
    settings: Dict[str, Any] = dict(read_credentials(credentials_path))
    settings.update({name: value for name, value in options.items() if value is not None})

    key = str(settings.get("key") or os.getenv("TRELLO_KEY", "")).strip()
    token = str(settings.get("token") or os.getenv("TRELLO_TOKEN", "")).strip()
    if not key or not token:
        raise AuthenticationError(
            "Missing Trello credentials. Pass --key and --token, add them to the "
            "credentials file, or set TRELLO_KEY and TRELLO_TOKEN."
        )

    secret = str(settings.get("secret") or "").strip()
    if not secret:
        raise ConfigurationError("Missing required 'secret': the webhook URL must contain a secret.")

    board = settings.get("board")

    return Config(
        key=key,
        token=token,
        secret=secret,
        board=str(board) if board else None,
        port=_parse_int(settings, "port", DEFAULT_PORT),
        error_status=_parse_int(settings, "error_status", DEFAULT_ERROR_STATUS),
        list_ids=_parse_list_ids(settings),
        unknown_dir=str(settings.get("unknown_dir") or DEFAULT_UNKNOWN_DIR),
        quiet=bool(settings.get("quiet")),
        debug=bool(settings.get("debug")),
    )
