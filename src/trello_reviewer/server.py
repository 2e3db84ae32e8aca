"""HTTP listener for GitHub webhook notifications.

Any request whose path contains the configured secret is acknowledged with
``OK`` straight away and then handed to the router in the same request thread.
Other requests get the configured error status with body ``ERROR``.
"""

from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable

logger = logging.getLogger(__name__)

PayloadSink = Callable[[Any], None]


class WebhookHandler(BaseHTTPRequestHandler):
    server: "ReviewServer"

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("http %s - %s", self.address_string(), fmt % args)

    def _respond(self, code: int, text: str) -> None:
        data = text.encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)
        self.wfile.flush()

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            logger.info("Ignoring invalid Content-Length: %s", self.headers.get("Content-Length"))
            return b""
        if length <= 0:
            return b""
        return self.rfile.read(length)

    def _handle(self) -> None:
        body = self._read_body()
        if self.server.secret not in self.path:
            self._respond(self.server.error_status, "ERROR")
            return

        self._respond(200, "OK")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.info("Could not parse webhook body: %s", exc)
            return

        self.server.sink(payload)

    def do_POST(self) -> None:  # noqa: N802
        self._handle()

    def do_GET(self) -> None:  # noqa: N802
        self._handle()

    def do_PUT(self) -> None:  # noqa: N802
        self._handle()


class ReviewServer(ThreadingHTTPServer):
    """Threaded webhook server; each request is handled in its own thread."""

    daemon_threads = True

    def __init__(
        self,
        port: int,
        secret: str,
        sink: PayloadSink,
        error_status: int = 500,
        host: str = "",
    ) -> None:
        self.secret = secret
        self.sink = sink
        self.error_status = error_status
        super().__init__((host, port), WebhookHandler)

    @property
    def port(self) -> int:
        return self.server_address[1]
