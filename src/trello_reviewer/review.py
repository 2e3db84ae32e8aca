"""Review workflow: reflect pull request activity onto board cards.

Business logic:
- An opened pull request becomes a card in the in-progress list.
- A closed pull request moves its card to merged or cancelled.
- A reopened pull request moves its card back to in progress.
- A comment holding ``+1`` or ``-1`` is copied to the card, the votes on the card
  are tallied and the card is renamed, relabelled and moved accordingly.
"""

from __future__ import annotations

import logging
from typing import Optional

from .board import BoardState
from .errors import ApiError, CardNotFoundError
from .models import Card, Event, ListRole
from .naming import with_score
from .votes import compute_score

logger = logging.getLogger(__name__)

REVIEWED_SCORE = 2

LABEL_REVIEWED = "green"
LABEL_BLOCKED = "red"
LABEL_PENDING = "orange"


def card_title(repository: str, title: str) -> str:
    """Build the card title for a pull request: ``[repo] title``."""
    return f"[{repository}] {title}"


class ReviewEngine:
    """Turn classified webhook events into board operations."""

    def __init__(self, board: BoardState) -> None:
        self._board = board

    def handle_comment(self, event: Event) -> None:
        """Copy a vote comment onto its card and update the review state."""
        comment = event.comment
        if comment is None:
            logger.info("Comment event without comment payload", extra={"repository": event.repository})
            return

        title = card_title(event.repository, comment.issue_title)
        text = f"{comment.sender}: {comment.body}\n\n{comment.html_url}"

        if "+1" not in comment.body and "-1" not in comment.body:
            logger.info("Comment is not a vote", extra={"card_title": title, "sender": comment.sender})
            return

        card = self._board.find_card(title)
        if card is None:
            logger.info("No card for commented pull request", extra={"card_title": title})
            return

        self._board.add_comment(card.id, text)
        self.update_review(card)

    def update_review(self, card: Card) -> None:
        """Tally the votes on a card, then rename and move it.

        The rename always happens before the move, and a failed rename does not
        prevent the move.
        """
        comments = self._board.read_comments(card.id)
        if not comments:
            logger.info("Card has no comments", extra={"card_id": card.id})
            return

        destination: Optional[ListRole] = None
        if self._board.is_card_in_list(card, ListRole.IN_PROGRESS):
            destination = ListRole.UNDER_REVIEW

        score = compute_score(comments)
        label = LABEL_PENDING
        if score >= REVIEWED_SCORE:
            destination = ListRole.REVIEWED
            label = LABEL_REVIEWED
        elif score < 0:
            destination = ListRole.BLOCKED
            label = LABEL_BLOCKED
        elif self._board.is_card_in_list(card, ListRole.BLOCKED):
            destination = ListRole.UNDER_REVIEW

        new_name = with_score(card.name, score)
        try:
            self._board.modify_card(card.id, {"name": new_name, "labels": label})
        except ApiError as exc:
            logger.error("Could not rename card %s: %s", card.id, exc)
        else:
            logger.info(
                "Renamed card",
                extra={"card_id": card.id, "card_name": new_name, "score": score, "label": label},
            )

        if destination is None:
            return
        if self._board.is_card_in_list(card, ListRole.MERGED):
            logger.info("Card already merged, not moving", extra={"card_id": card.id})
            return

        try:
            self._board.move_card(card.id, destination)
        except (ApiError, CardNotFoundError) as exc:
            logger.error("Could not move card %s: %s", card.id, exc)

    def handle_opened(self, event: Event) -> None:
        """Create an in-progress card for a new pull request."""
        pull_request = event.pull_request
        if pull_request is None:
            logger.info("Opened event without pull request", extra={"repository": event.repository})
            return

        title = card_title(event.repository, pull_request.title)
        description = f"[{pull_request.html_url}]({pull_request.html_url})\n\n{pull_request.body}"
        self._board.create_card(ListRole.IN_PROGRESS, title, description)

    def handle_closed(self, event: Event) -> None:
        """Move the card of a closed pull request to merged or cancelled."""
        pull_request = event.pull_request
        if pull_request is None:
            logger.info("Closed event without pull request", extra={"repository": event.repository})
            return

        destination = ListRole.MERGED if pull_request.merged else ListRole.CANCELLED
        self._move(card_title(event.repository, pull_request.title), destination)

    def handle_reopened(self, event: Event) -> None:
        """Move the card of a reopened pull request back to in progress."""
        pull_request = event.pull_request
        if pull_request is None:
            logger.info("Reopened event without pull request", extra={"repository": event.repository})
            return

        self._move(card_title(event.repository, pull_request.title), ListRole.IN_PROGRESS)

    def _move(self, title: str, destination: ListRole) -> None:
        try:
            self._board.move_card(title, destination)
        except CardNotFoundError:
            logger.info("No card for pull request", extra={"card_title": title})
