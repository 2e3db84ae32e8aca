"""Cached view of the review board: list roles and their cards.

``BoardState.init`` resolves every :class:`ListRole` to one Trello list and loads
its cards. Later lookups and moves work against this cache, which is kept
coherent after each successful remote call but is never authoritative: Trello
remains the source of truth and ``init`` may be called again to rebuild it.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple

from .config import Config
from .errors import ApiError, CardNotFoundError, ConfigurationError
from .models import Card, Comment, ListRole
from .trello_client import TrelloClient

logger = logging.getLogger(__name__)

_CARD_ID_LENGTH = 24


def is_card_id(name_or_id: str) -> bool:
    """Tell opaque Trello ids apart from card titles."""
    return len(name_or_id) == _CARD_ID_LENGTH and "[" not in name_or_id


def title_prefix(title: str) -> str:
    """Return the ``[repo]`` prefix of a title, or the whole title without one."""
    if title.startswith("["):
        end = title.find("]")
        if end != -1:
            return title[: end + 1]
    return title


def _to_card(item: Dict[str, Any]) -> Card:
    card_id = item.get("id")
    if not card_id:
        raise ApiError(f"Trello card payload is missing its id: {item}")
    return Card(
        id=str(card_id),
        name=str(item.get("name") or ""),
        list_id=str(item.get("idList") or ""),
        closed=bool(item.get("closed")),
    )


class BoardState:
    """Resolve list roles against a Trello board and cache their cards."""

    def __init__(self, client: TrelloClient, config: Config) -> None:
        self._client = client
        self._config = config
        self._lock = threading.Lock()
        self._list_ids: Dict[ListRole, str] = {}
        self._cards: Dict[ListRole, List[Card]] = {}

    def init(self) -> None:
        """Resolve all list roles and load their cards.

        Roles are resolved concurrently. The cache is only replaced once every
        role has resolved; otherwise the first failure is raised.

        Raises:
            ConfigurationError: If no board is configured or a configured list id
                does not exist on the board.
            ApiError: If any Trello call fails.
        """
        board_id = self._config.board
        if not board_id:
            raise ConfigurationError("Missing required 'board': cannot resolve review lists.")

        lists = self._client.get_board_lists(board_id)

        resolved: Dict[ListRole, Tuple[str, List[Card]]] = {}
        with ThreadPoolExecutor(max_workers=len(ListRole)) as pool:
            futures = {
                pool.submit(self._resolve_role, board_id, role, lists): role for role in ListRole
            }
            for future in as_completed(futures):
                role = futures[future]
                resolved[role] = future.result()

        with self._lock:
            self._list_ids = {role: list_id for role, (list_id, _) in resolved.items()}
            self._cards = {role: cards for role, (_, cards) in resolved.items()}

        logger.info(
            "Board lists resolved",
            extra={
                "board_id": board_id,
                "cards_total": sum(len(cards) for cards in self._cards.values()),
            },
        )

    def _resolve_role(
        self, board_id: str, role: ListRole, lists: List[Dict[str, Any]]
    ) -> Tuple[str, List[Card]]:
        configured_id = self._config.list_ids.get(role)
        if configured_id:
            if not any(item.get("id") == configured_id for item in lists):
                raise ConfigurationError(
                    f"List '{configured_id}' configured for {role.config_key} "
                    f"was not found on board '{board_id}'."
                )
            list_id = configured_id
        else:
            list_id = self._find_or_create_list(board_id, role, lists)

        cards = [_to_card(item) for item in self._client.get_list_cards(list_id)]
        logger.debug(
            "Resolved list role",
            extra={"role": role.config_key, "list_id": list_id, "cards": len(cards)},
        )
        return list_id, cards

    def _find_or_create_list(
        self, board_id: str, role: ListRole, lists: List[Dict[str, Any]]
    ) -> str:
        for item in lists:
            if item.get("name") != role.default_name:
                continue
            if item.get("closed"):
                logger.info("Reopening closed list", extra={"role": role.config_key})
                self._client.reopen_list(item["id"])
            return str(item["id"])

        logger.info("Creating missing list", extra={"role": role.config_key})
        created = self._client.create_list(board_id, role.default_name)
        if not created.get("id"):
            raise ApiError(f"Trello did not return an id for new list '{role.default_name}'.")
        return str(created["id"])

    def list_id(self, role: ListRole) -> str:
        """Return the resolved list id of a role."""
        try:
            return self._list_ids[role]
        except KeyError as exc:
            raise ConfigurationError("Board state is not initialized; call init() first.") from exc

    def cards(self, role: ListRole) -> List[Card]:
        """Return a snapshot of the cached cards of a role."""
        with self._lock:
            return list(self._cards.get(role, []))

    def find_card(self, name_or_id: str) -> Optional[Card]:
        """Find a cached card by id or by title.

        Titles match cards whose name starts with the title itself first, then
        any card sharing the title's ``[repo]`` prefix.
        """
        with self._lock:
            cached = [card for cards in self._cards.values() for card in cards]

        if is_card_id(name_or_id):
            return next((card for card in cached if card.id == name_or_id), None)

        exact = next((card for card in cached if card.name.startswith(name_or_id)), None)
        if exact is not None:
            return exact

        prefix = title_prefix(name_or_id)
        return next((card for card in cached if card.name.startswith(prefix)), None)

    def move_card(self, name_or_id: str, role: ListRole) -> Card:
        """Move a card to the list of ``role`` and update the cache.

        Raises:
            CardNotFoundError: If no cached card matches ``name_or_id``.
            ApiError: If the remote move fails; the cache is left unchanged.
        """
        card = self.find_card(name_or_id)
        if card is None:
            raise CardNotFoundError(f"Could not find card {name_or_id}")

        destination_id = self.list_id(role)
        self._client.move_card(card.id, destination_id)

        with self._lock:
            for cards in self._cards.values():
                cards[:] = [cached for cached in cards if cached.id != card.id]
            card.list_id = destination_id
            self._cards.setdefault(role, []).append(card)

        logger.info(
            "Moved card",
            extra={"card_id": card.id, "card_name": card.name, "role": role.config_key},
        )
        return card

    def modify_card(self, card_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update to a card; the cached name is not refreshed."""
        return self._client.update_card(card_id, fields)

    def is_card_in_list(self, card: Card, role: ListRole) -> bool:
        return card.list_id == self._list_ids.get(role)

    def create_card(self, role: ListRole, name: str, description: str) -> Card:
        """Create a card in the list of ``role`` and add it to the cache."""
        card = _to_card(self._client.create_card(self.list_id(role), name, description))
        if not card.list_id:
            card.list_id = self.list_id(role)
        with self._lock:
            self._cards.setdefault(role, []).append(card)
        logger.info("Created card", extra={"card_id": card.id, "card_name": name})
        return card

    def add_comment(self, card_id: str, text: str) -> Dict[str, Any]:
        return self._client.add_comment(card_id, text)

    def read_comments(self, card_id: str) -> List[Comment]:
        """Read the comments of a card, preserving Trello's order."""
        comments: List[Comment] = []
        for action in self._client.get_comment_actions(card_id):
            data = action.get("data") or {}
            creator = action.get("memberCreator") or {}
            comments.append(
                Comment(
                    text=str(data.get("text") or ""),
                    date=action.get("date"),
                    author=creator.get("username") or creator.get("fullName"),
                )
            )
        return comments
