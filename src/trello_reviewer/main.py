"""Entry point: wire configuration, board state and the webhook server."""

from __future__ import annotations

import errno
import logging
from typing import Optional, Sequence

from .board import BoardState
from .cli import parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError
from .review import ReviewEngine
from .router import EventRouter
from .server import ReviewServer
from .trello_client import TrelloClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4


def configure_logging(quiet: bool = False, debug: bool = False) -> None:
    """Configure root logging; ``debug`` wins over ``quiet``.

    Safe to call again once the full configuration is known: later calls only
    change the level.
    """
    level = logging.INFO
    if quiet:
        level = logging.WARNING
    if debug:
        level = logging.DEBUG
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger().setLevel(level)


def build_server(config: Config) -> ReviewServer:
    """Resolve the board and bind the webhook server.

    Raises:
        ConfigurationError: If the board cannot be resolved from configuration.
        ApiError: If Trello cannot be reached while resolving lists.
        OSError: If the port cannot be bound.
    """
    board = BoardState(TrelloClient(config=config), config)
    board.init()
    router = EventRouter(ReviewEngine(board), unknown_dir=config.unknown_dir)
    return ReviewServer(
        port=config.port,
        secret=config.secret,
        sink=router.route,
        error_status=config.error_status,
    )


def run_server(argv: Optional[Sequence[str]] = None) -> int:
    """Run the review server until interrupted and return a process exit code."""
    try:
        args = parse_args(argv)
        configure_logging(quiet=bool(args.quiet), debug=bool(args.debug))
        options = vars(args)
        credentials_path = options.pop("credentials")
        config = load_config(options, credentials_path=credentials_path)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        return EXIT_AUTHENTICATION
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error while loading configuration")
        return EXIT_UNEXPECTED

    configure_logging(quiet=config.quiet, debug=config.debug)
    try:
        server = build_server(config)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except ApiError as exc:
        logger.error("Trello API error: %s", exc)
        return EXIT_API
    except OSError as exc:
        if exc.errno == errno.EADDRINUSE:
            logger.error("Port %s in use, please free it and retry again", config.port)
        else:
            logger.error("Could not start server on port %s: %s", config.port, exc)
        return EXIT_UNEXPECTED
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error while starting the review server")
        return EXIT_UNEXPECTED

    logger.info("Listening on port %s", server.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()
    return EXIT_OK


def main() -> None:
    raise SystemExit(run_server())


if __name__ == "__main__":
    main()
