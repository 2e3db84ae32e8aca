"""End-to-end tests for the webhook listener."""

import http.client
import json
import logging
import sys
import threading
import time
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trello_reviewer.board import BoardState
from trello_reviewer.config import Config
from trello_reviewer.review import ReviewEngine
from trello_reviewer.router import EventRouter
from trello_reviewer.server import ReviewServer

SECRET = "s3cret"


@pytest.fixture
def running_server(tmp_path):
    """Start a server on a free port with a mocked Trello client behind it."""
    client = Mock()
    board = BoardState(client, Config(key="k", token="t", secret=SECRET, board="board-1"))
    router = EventRouter(ReviewEngine(board), unknown_dir=str(tmp_path))
    received = threading.Event()

    def sink(payload):
        router.route(payload)
        received.set()

    server = ReviewServer(port=0, secret=SECRET, sink=sink, host="127.0.0.1")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server, client, received
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def _url(server: ReviewServer, path: str) -> str:
    return f"http://127.0.0.1:{server.port}{path}"


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_wrong_secret_returns_error_without_board_calls(running_server):
    """Verify a path without the secret is rejected and nothing reaches Trello."""
    server, client, received = running_server

    response = requests.post(_url(server, "/hook/wrong"), data=b"{}", timeout=5)

    assert response.status_code == 500
    assert response.text == "ERROR"
    assert not received.wait(0.2)
    assert client.mock_calls == []


def test_custom_error_status_is_used():
    """Verify the configured status is returned when the secret does not match."""
    server = ReviewServer(port=0, secret=SECRET, sink=Mock(), error_status=403, host="127.0.0.1")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        response = requests.get(_url(server, "/"), timeout=5)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)

    assert response.status_code == 403
    assert response.text == "ERROR"


def test_unparsable_body_is_acknowledged_and_logged(running_server, caplog):
    """Verify a malformed body gets OK, one log line and no board calls."""
    server, client, received = running_server

    with caplog.at_level(logging.INFO, logger="trello_reviewer.server"):
        response = requests.post(_url(server, f"/{SECRET}/hook"), data=b"{not json", timeout=5)
        assert _wait_for(lambda: caplog.records)

    assert response.status_code == 200
    assert response.text == "OK"
    server_records = [record for record in caplog.records if record.name == "trello_reviewer.server"]
    assert len(server_records) == 1
    assert "Could not parse webhook body" in server_records[0].getMessage()
    assert not received.is_set()
    assert client.mock_calls == []


def test_valid_payload_is_routed_after_ok(running_server):
    """Verify a valid payload reaches the router and the board."""
    server, client, received = running_server
    payload = {
        "action": "reopened",
        "repository": {"name": "test"},
        "pull_request": {"title": "Test PR", "body": "", "html_url": "", "merged": False},
    }

    response = requests.post(
        _url(server, f"/github/{SECRET}"), data=json.dumps(payload).encode("utf-8"), timeout=5
    )

    assert response.status_code == 200
    assert response.text == "OK"
    assert received.wait(2)


def _post_with_bad_length(server: ReviewServer, path: str):
    connection = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        connection.putrequest("POST", path)
        connection.putheader("Content-Length", "abc")
        connection.endheaders()
        response = connection.getresponse()
        return response.status, response.read().decode("utf-8")
    finally:
        connection.close()


def test_invalid_content_length_still_gets_secret_check(running_server, caplog):
    """Verify a malformed Content-Length is treated as an empty body."""
    server, client, received = running_server

    with caplog.at_level(logging.INFO, logger="trello_reviewer.server"):
        wrong = _post_with_bad_length(server, "/wrong")
        right = _post_with_bad_length(server, f"/{SECRET}")
        assert _wait_for(lambda: "Could not parse webhook body" in caplog.text)

    assert wrong == (500, "ERROR")
    assert right == (200, "OK")
    assert "Ignoring invalid Content-Length" in caplog.text
    assert not received.is_set()
    assert client.mock_calls == []
