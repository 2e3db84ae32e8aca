"""Encode review scores into card titles, e.g. ``[repo] Fix parser (+2)``."""

from __future__ import annotations

from typing import Union

Number = Union[int, float]


def strip_score(name: str) -> str:
    """Return ``name`` without a trailing ``" (...)"`` score suffix."""
    if name.endswith(")"):
        position = name.rfind(" (")
        if position != -1:
            return name[:position]
    return name


def format_score(score: Number) -> str:
    """Format a score with an explicit ``+`` when positive: ``+2``, ``0``, ``-0.5``."""
    if float(score).is_integer():
        text = str(int(score))
    else:
        text = repr(float(score))

    if score > 0:
        return f"+{text}"
    return text


def with_score(name: str, score: Number) -> str:
    """Replace any score suffix on ``name`` with ``score``."""
    return f"{strip_score(name)} ({format_score(score)})"
