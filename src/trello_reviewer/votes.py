"""Review vote tallying for card comments.

A vote is the first line of a comment written as ``voter: expression``, for
example ``alice: +1`` or ``bob: -1 needs tests``. The tally works in two passes:

- Collect the first vote line of every voter; later lines from the same voter
  are ignored.
- Classify each collected expression. ``-N`` adds ``N`` to the veto total and
  ``+N`` adds ``min(N, 1)`` to the score. An expression containing both signs
  goes through both branches.

Any outstanding veto makes the final score negative, whatever the positive sum.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .models import Comment

logger = logging.getLogger(__name__)

Number = Union[int, float]

_LEADING_NUMBER = re.compile(r"\s*(\d+(?:\.\d*)?|\.\d+)")


def _parse_magnitude(text: str) -> Optional[float]:
    """Parse the leading decimal number of ``text``, ignoring what follows."""
    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    return float(match.group(1))


def _normalize(value: float) -> Number:
    if float(value).is_integer():
        return int(value)
    return value


def collect_votes(comments: Sequence[Comment]) -> List[Tuple[str, str]]:
    """Return ``(voter, expression)`` pairs, keeping only each voter's first line."""
    seen = set()
    votes: List[Tuple[str, str]] = []

    for comment in comments:
        vote_line = (comment.text or "").split("\n", 1)[0]
        if ":" not in vote_line:
            continue

        voter, expression = vote_line.split(":", 1)
        if voter in seen:
            logger.debug("Ignoring repeated vote", extra={"voter": voter})
            continue

        seen.add(voter)
        votes.append((voter, expression))

    return votes


def _classify(votes: Sequence[Tuple[str, str]]) -> Tuple[float, float, Dict[str, float]]:
    score_total = 0.0
    veto_total = 0.0
    record: Dict[str, float] = {}

    for voter, expression in votes:
        if "-" in expression:
            magnitude = _parse_magnitude(expression.split("-", 1)[1])
            if magnitude is not None:
                veto_total += magnitude
                record[voter] = -magnitude

        if "+" in expression:
            magnitude = _parse_magnitude(expression.split("+", 1)[1])
            if magnitude is not None:
                score_total += min(magnitude, 1)
                record[voter] = magnitude

    return score_total, veto_total, record


def tally_votes(comments: Sequence[Comment]) -> Dict[str, Number]:
    """Return the signed vote counted for each voter."""
    _, _, record = _classify(collect_votes(comments))
    return {voter: _normalize(value) for voter, value in record.items()}


def compute_score(comments: Sequence[Comment]) -> Number:
    """Compute the net review score of a card from its comments.

    Returns ``0`` for an empty sequence. When any veto is outstanding the result
    is the negated veto total; otherwise it is the capped positive total.
    """
    score_total, veto_total, record = _classify(collect_votes(comments))

    logger.debug(
        "Tallied review votes",
        extra={"votes": record, "score_total": score_total, "veto_total": veto_total},
    )

    if veto_total > 0:
        return _normalize(-veto_total)
    return _normalize(score_total)
