"""Domain models for the GitHub to Trello review bridge.

These dataclasses intentionally model only the subset of webhook and Trello
payload fields that the review workflow reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ListRole(Enum):
    """Logical pipeline stage of a card, each backed by one Trello list."""

    IN_PROGRESS = ("inProgress", "In progress")
    UNDER_REVIEW = ("underReview", "Under review")
    REVIEWED = ("reviewed", "Reviewed")
    MERGED = ("merged", "Merged")
    CANCELLED = ("cancelled", "Cancelled")
    BLOCKED = ("blocked", "Blocked")

    def __init__(self, config_key: str, default_name: str) -> None:
        self.config_key = config_key
        self.default_name = default_name

    @classmethod
    def from_config_key(cls, key: str) -> Optional["ListRole"]:
        for role in cls:
            if role.config_key == key:
                return role
        return None


class EventKind(Enum):
    """Kind of inbound webhook event, keyed by the GitHub action string."""

    COMMENT_CREATED = "created"
    PULL_REQUEST_OPENED = "opened"
    PULL_REQUEST_CLOSED = "closed"
    PULL_REQUEST_REOPENED = "reopened"
    UNKNOWN = "unknown"

    @classmethod
    def from_action(cls, action: str) -> "EventKind":
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == action:
                return kind
        return cls.UNKNOWN


@dataclass(slots=True)
class Card:
    """Represents a Trello card tracking one pull request."""

    id: str
    name: str
    list_id: str
    closed: bool = False


@dataclass(frozen=True, slots=True)
class Comment:
    """Represents a comment read back from a card."""

    text: str
    date: Optional[str] = None
    author: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PullRequestPayload:
    """Pull request fields used when opening, closing or reopening cards."""

    title: str
    body: str
    author: str
    html_url: str
    merged: bool = False


@dataclass(frozen=True, slots=True)
class CommentPayload:
    """Issue comment fields used when tallying review votes."""

    author: str
    body: str
    html_url: str
    issue_title: str
    sender: str


@dataclass(frozen=True, slots=True)
class Event:
    """One inbound webhook notification, classified by action."""

    kind: EventKind
    action: str
    repository: str
    pull_request: Optional[PullRequestPayload] = None
    comment: Optional[CommentPayload] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
