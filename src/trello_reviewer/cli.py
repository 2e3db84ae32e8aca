"""Command-line argument parsing for the Trello reviewer."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import DEFAULT_CREDENTIALS_PATH


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the review server.

    Options left out default to ``None`` so that values from the credentials
    file are kept.
    """
    parser = argparse.ArgumentParser(
        prog="trello-reviewer",
        description=(
            "Listen to GitHub pull request notifications and track code reviews "
            "on a Trello board."
        ),
    )

    parser.add_argument("-t", "--token", help="Consumer token for Trello.")
    parser.add_argument("-k", "--key", help="Key for Trello.")
    parser.add_argument("-b", "--board", help="Id of the Trello board to track reviews on.")
    parser.add_argument("-s", "--secret", help="Secret value to access the server.")
    parser.add_argument(
        "-p",
        "--port",
        type=_positive_int,
        help="Port to start the server (default: 7431).",
    )
    parser.add_argument(
        "-e",
        "--error-status",
        type=_positive_int,
        help="HTTP status returned when the secret does not match (default: 500).",
    )
    parser.add_argument(
        "-c",
        "--credentials",
        default=DEFAULT_CREDENTIALS_PATH,
        help=f"JSON file with default values (default: {DEFAULT_CREDENTIALS_PATH}).",
    )
    parser.add_argument(
        "-u",
        "--unknown-dir",
        help="Directory where payloads of unknown actions are saved (default: unknown).",
    )
    parser.add_argument("-q", "--quiet", action="store_true", default=None, help="Do not log any messages.")
    parser.add_argument("-d", "--debug", action="store_true", default=None, help="Log debug messages.")

    return parser.parse_args(argv)
