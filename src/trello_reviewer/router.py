"""Classify GitHub webhook payloads and dispatch them to review handlers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import PayloadError, ReviewerError
from .models import CommentPayload, Event, EventKind, PullRequestPayload
from .review import ReviewEngine

logger = logging.getLogger(__name__)


def _login(user: Any) -> str:
    if isinstance(user, dict):
        return str(user.get("login") or "")
    return ""


def _parse_pull_request(payload: Mapping[str, Any]) -> Optional[PullRequestPayload]:
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        return None
    return PullRequestPayload(
        title=str(pull_request.get("title") or ""),
        body=str(pull_request.get("body") or ""),
        author=_login(pull_request.get("user")),
        html_url=str(pull_request.get("html_url") or ""),
        merged=bool(pull_request.get("merged")),
    )


def _parse_comment(payload: Mapping[str, Any]) -> Optional[CommentPayload]:
    comment = payload.get("comment")
    issue = payload.get("issue")
    if not isinstance(comment, dict) or not isinstance(issue, dict):
        return None
    return CommentPayload(
        author=_login(comment.get("user")),
        body=str(comment.get("body") or ""),
        html_url=str(comment.get("html_url") or ""),
        issue_title=str(issue.get("title") or ""),
        sender=_login(payload.get("sender")),
    )


def parse_event(payload: Any) -> Event:
    """Build an :class:`Event` from a decoded webhook payload.

    Raises:
        PayloadError: If the payload has no action or no repository name.
    """
    if not isinstance(payload, dict):
        raise PayloadError("Webhook payload is not a JSON object")

    action = payload.get("action")
    repository = payload.get("repository")
    repository_name = repository.get("name") if isinstance(repository, dict) else None
    if not action or not repository_name:
        raise PayloadError("Webhook payload is missing action or repository name")

    kind = EventKind.from_action(str(action))
    return Event(
        kind=kind,
        action=str(action),
        repository=str(repository_name),
        pull_request=_parse_pull_request(payload),
        comment=_parse_comment(payload) if kind is EventKind.COMMENT_CREATED else None,
        raw=payload,
    )


class EventRouter:
    """Per-event dispatcher from action kind to review handler."""

    def __init__(self, engine: ReviewEngine, unknown_dir: str = "unknown") -> None:
        self._unknown_dir = Path(unknown_dir)
        self._handlers: Dict[EventKind, Callable[[Event], None]] = {
            EventKind.COMMENT_CREATED: engine.handle_comment,
            EventKind.PULL_REQUEST_OPENED: engine.handle_opened,
            EventKind.PULL_REQUEST_CLOSED: engine.handle_closed,
            EventKind.PULL_REQUEST_REOPENED: engine.handle_reopened,
            EventKind.UNKNOWN: self.store_unknown,
        }

    def route(self, payload: Any) -> None:
        """Process one decoded payload; failures are logged, never raised."""
        try:
            event = parse_event(payload)
        except PayloadError as exc:
            logger.info("Dropping webhook: %s", exc)
            return

        logger.debug(
            "Routing event",
            extra={"action": event.action, "repository": event.repository},
        )
        try:
            self._handlers[event.kind](event)
        except ReviewerError as exc:
            logger.error("Could not handle %s event for %s: %s", event.action, event.repository, exc)

    def store_unknown(self, event: Event) -> None:
        """Save the payload of an unsupported action for later inspection."""
        safe_action = "".join(char if char.isalnum() or char in "-_" else "_" for char in event.action)
        target = self._unknown_dir / f"{safe_action}.json"
        try:
            self._unknown_dir.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(event.raw, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Could not store unknown action %s: %s", event.action, exc)
            return
        logger.info("Stored unknown action", extra={"action": event.action, "path": str(target)})
