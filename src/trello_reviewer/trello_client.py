"""Trello REST API client for board, list, card and comment operations."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Union

import requests

from .config import Config
from .errors import ApiError

logger = logging.getLogger(__name__)

JsonPayload = Union[Dict[str, Any], List[Any]]


class TrelloClient:
    """Small client for the Trello REST API, authenticated by key and token."""

    _BASE_URL = "https://api.trello.com/1"
    _MAX_RETRIES = 3
    _MAX_BACKOFF_SECONDS = 10

    def __init__(self, config: Config, timeout_seconds: int = 10) -> None:
        """Initialize an authenticated Trello API client.

        Args:
            config: Validated runtime configuration including key and token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below ``/1``."""
        return f"{self._BASE_URL}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> JsonPayload:
        """Execute a request with retry logic for 429/5xx responses.

        Every call carries the ``key`` and ``token`` credentials as query
        parameters.

        Raises:
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return valid JSON.
        """
        url = self._build_url(path)
        query = dict(params or {})
        query["key"] = self._config.key
        query["token"] = self._config.token

        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.request(
                    method, url, params=query, timeout=self._timeout_seconds
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"Could not connect to Trello: {method} {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying Trello request",
                    extra={"method": method, "path": path, "status_code": status_code},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise ApiError(
                    "Trello API request failed: "
                    f"{method} {url} returned {status_code} - {response.text}"
                )

            try:
                return response.json()
            except ValueError as exc:
                raise ApiError(f"Trello API returned invalid JSON: {method} {url}") from exc

        raise ApiError(f"Trello request failed after retries: {method} {url}") from last_error

    def _request_object(
        self, method: str, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        payload = self._request(method, path, params=params)
        if not isinstance(payload, dict):
            raise ApiError(f"Trello API returned unexpected payload shape: {method} {path}")
        return payload

    def _request_list(
        self, method: str, path: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        payload = self._request(method, path, params=params)
        if not isinstance(payload, list):
            raise ApiError(f"Trello API returned unexpected payload shape: {method} {path}")
        return payload

    def get_board_lists(self, board_id: str) -> List[Dict[str, Any]]:
        """List all lists of a board, including closed ones."""
        return self._request_list("GET", f"boards/{board_id}/lists", params={"filter": "all"})

    def create_list(self, board_id: str, name: str) -> Dict[str, Any]:
        """Create a list at the end of a board."""
        return self._request_object(
            "POST", "lists", params={"name": name, "idBoard": board_id, "pos": "bottom"}
        )

    def reopen_list(self, list_id: str) -> Dict[str, Any]:
        """Reopen an archived list."""
        return self._request_object("PUT", f"lists/{list_id}/closed", params={"value": "false"})

    def get_list_cards(self, list_id: str) -> List[Dict[str, Any]]:
        """List all cards of a list, archived ones included."""
        return self._request_list("GET", f"lists/{list_id}/cards", params={"filter": "all"})

    def create_card(self, list_id: str, name: str, description: str) -> Dict[str, Any]:
        """Create a card in a list."""
        return self._request_object(
            "POST", "cards", params={"idList": list_id, "name": name, "desc": description}
        )

    def update_card(self, card_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update (name, labels, description...) to a card."""
        return self._request_object("PUT", f"cards/{card_id}", params=fields)

    def move_card(self, card_id: str, list_id: str) -> Dict[str, Any]:
        """Move a card to another list."""
        return self._request_object("PUT", f"cards/{card_id}/idList", params={"value": list_id})

    def add_comment(self, card_id: str, text: str) -> Dict[str, Any]:
        """Post a comment on a card."""
        return self._request_object(
            "POST", f"cards/{card_id}/actions/comments", params={"text": text}
        )

    def get_comment_actions(self, card_id: str) -> List[Dict[str, Any]]:
        """Return the raw ``commentCard`` actions of a card, in Trello's order."""
        return self._request_list(
            "GET", f"cards/{card_id}/actions", params={"filter": "commentCard"}
        )
