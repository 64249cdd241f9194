"""Loopback HTTP receiver for authorization callbacks.

The redirect page served from the trusted origin posts ``{"token", "state"}``
to ``http://127.0.0.1:<port>/callback``. The browser's ``Origin`` header
becomes the message origin, so the flow can reject anything else.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Callable, Coroutine
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from syncfree.auth.flow import CallbackMessage

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def log_message(self, format, *args):
        pass  # Suppress default request logging

    def do_OPTIONS(self):
        self.send_response(204)
        self._cors_headers()
        self.end_headers()

    def do_POST(self):
        if self.path != CALLBACK_PATH:
            self._respond(404, {"error": "not found"})
            return

        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length < 0:
            self._respond(400, {"error": "invalid content length"})
            return

        try:
            data = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self._respond(400, {"error": "invalid json"})
            return
        if not isinstance(data, dict):
            self._respond(400, {"error": "invalid payload"})
            return

        message = CallbackMessage(
            origin=self.headers.get("Origin", ""),
            token=str(data.get("token") or ""),
            state=str(data.get("state") or ""),
        )
        self.server.dispatch(message)
        self._respond(202, {"received": True})

    def _cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", self.server.trusted_origin)
        self.send_header("Access-Control-Allow-Methods", "POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def _respond(self, code: int, data: dict):
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self._cors_headers()
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())


class _CallbackServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], receiver: CallbackReceiver) -> None:
        super().__init__(address, _CallbackHandler)
        self.receiver = receiver

    @property
    def trusted_origin(self) -> str:
        return self.receiver.trusted_origin

    def dispatch(self, message: CallbackMessage) -> None:
        self.receiver.dispatch(message)


class CallbackReceiver:
    """Runs the loopback listener on a daemon thread.

    Messages are handed to ``handler`` on the event loop that started the
    receiver.
    """

    def __init__(
        self,
        handler: Callable[[CallbackMessage], Coroutine[Any, Any, object]],
        trusted_origin: str,
        port: int,
        host: str = "127.0.0.1",
    ) -> None:
        self.handler = handler
        self.trusted_origin = trusted_origin
        self.host = host
        self.port = port
        self._server: _CallbackServer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._server = _CallbackServer((self.host, self.port), self)
        self.port = self._server.server_address[1]
        thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        thread.start()
        logger.info(f"Callback receiver listening on http://{self.host}:{self.port}{CALLBACK_PATH}")

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None

    def dispatch(self, message: CallbackMessage) -> None:
        if self._loop is None:
            return
        future = asyncio.run_coroutine_threadsafe(self.handler(message), self._loop)
        future.add_done_callback(_log_failure)


def _log_failure(future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning(f"Callback handling ended with {type(exc).__name__}: {exc}")
