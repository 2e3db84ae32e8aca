"""Tests for application startup in the main module."""

import errno
import logging
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trello_reviewer.config import Config
from trello_reviewer.errors import ApiError, AuthenticationError, ConfigurationError
from trello_reviewer.main import build_server, configure_logging, run_server

ARGV = ["-k", "key", "-t", "token", "-s", "secret", "-b", "board-1", "-c", ""]


@pytest.fixture(autouse=True)
def _restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


def _config() -> Config:
    return Config(key="key", token="token", secret="secret", board="board-1", port=7431)


def test_run_server_success_serves_until_interrupted():
    """Verify startup wires components, serves and closes the server."""
    server = Mock()
    server.port = 7431
    server.serve_forever.side_effect = KeyboardInterrupt

    with patch("trello_reviewer.main.load_config", return_value=_config()) as load_config_mock, patch(
        "trello_reviewer.main.configure_logging"
    ), patch("trello_reviewer.main.build_server", return_value=server) as build_mock:
        exit_code = run_server(ARGV)

    assert exit_code == 0
    options = load_config_mock.call_args.args[0]
    assert options["key"] == "key"
    assert "credentials" not in options
    assert load_config_mock.call_args.kwargs == {"credentials_path": ""}
    build_mock.assert_called_once_with(_config())
    server.server_close.assert_called_once_with()


def test_run_server_configuration_error_returns_exit_code():
    """Verify configuration failures return the configuration exit code."""
    with patch("trello_reviewer.main.load_config", side_effect=ConfigurationError("no secret")):
        assert run_server(ARGV) == 2


def test_run_server_missing_credentials_returns_auth_error():
    """Verify missing Trello credentials return the authentication exit code."""
    with patch("trello_reviewer.main.load_config", side_effect=AuthenticationError("no key")):
        assert run_server(ARGV) == 3


def test_run_server_api_error_returns_api_exit_code():
    """Verify Trello failures while resolving lists return the API exit code."""
    with patch("trello_reviewer.main.load_config", return_value=_config()), patch(
        "trello_reviewer.main.configure_logging"
    ), patch("trello_reviewer.main.build_server", side_effect=ApiError("down")):
        assert run_server(ARGV) == 4


def test_run_server_port_in_use_is_reported(caplog):
    """Verify a busy port is reported with a clear message."""
    busy = OSError(errno.EADDRINUSE, "Address already in use")
    with patch("trello_reviewer.main.load_config", return_value=_config()), patch(
        "trello_reviewer.main.configure_logging"
    ), patch("trello_reviewer.main.build_server", side_effect=busy):
        exit_code = run_server(ARGV)

    assert exit_code == 1
    assert "Port 7431 in use, please free it and retry again" in caplog.text


def test_run_server_unexpected_error_returns_generic_exit_code():
    """Verify unexpected exceptions are mapped to the generic non-zero exit code."""
    with patch("trello_reviewer.main.parse_args", side_effect=RuntimeError("boom")):
        assert run_server(ARGV) == 1


def test_build_server_initializes_board_before_binding():
    """Verify the board is resolved before the server is created."""
    board = Mock()

    with patch("trello_reviewer.main.TrelloClient") as client_ctor, patch(
        "trello_reviewer.main.BoardState", return_value=board
    ) as board_ctor, patch("trello_reviewer.main.ReviewServer") as server_ctor:
        server = build_server(_config())

    client_ctor.assert_called_once_with(config=_config())
    board_ctor.assert_called_once_with(client_ctor.return_value, _config())
    board.init.assert_called_once_with()
    assert server is server_ctor.return_value
    kwargs = server_ctor.call_args.kwargs
    assert kwargs["port"] == 7431
    assert kwargs["secret"] == "secret"
    assert kwargs["error_status"] == 500


def test_run_server_configures_logging_before_loading_config():
    """Verify logging is set up from CLI flags first, then from the loaded config."""
    order = []
    config = Config(key="key", token="token", secret="secret", board="board-1", debug=True)

    with patch(
        "trello_reviewer.main.configure_logging", side_effect=lambda **kw: order.append(("log", kw))
    ), patch(
        "trello_reviewer.main.load_config", side_effect=lambda *a, **kw: order.append(("load", {})) or config
    ), patch("trello_reviewer.main.build_server", side_effect=ApiError("down")):
        run_server(ARGV + ["-q"])

    assert order == [
        ("log", {"quiet": True, "debug": False}),
        ("load", {}),
        ("log", {"quiet": False, "debug": True}),
    ]


def test_run_server_logs_missing_credentials_hint(tmp_path, caplog):
    """Verify the credentials file hint is emitted at info level."""
    argv = ["-k", "key", "-t", "token", "-s", "secret", "-c", str(tmp_path / "credentials.json")]

    with patch("trello_reviewer.main.build_server", side_effect=ApiError("down")):
        exit_code = run_server(argv)

    assert exit_code == 4
    assert "Please enter default values in a file called credentials.json" in caplog.text


def test_configure_logging_applies_level_on_repeated_calls():
    """Verify a second call changes the root level to the requested one."""
    configure_logging()
    assert logging.getLogger().level == logging.INFO

    configure_logging(quiet=True)
    assert logging.getLogger().level == logging.WARNING

    configure_logging(quiet=True, debug=True)
    assert logging.getLogger().level == logging.DEBUG
