#
# elector: a kubernetes leader election helper
# Copyright (C) 2026  The elector authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>
#

import contextlib
import http
import http.server
import logging
import socket
import threading
import time
import typing
import urllib.parse

from .config import parse_address
from .leader import ObservedLeader

_logger = logging.getLogger(__name__)

DRAIN_TIMEOUT = 3.0


class DrainTimeout(Exception):
    pass


class _StatusHandler(http.server.BaseHTTPRequestHandler):
    leader_state: ObservedLeader
    identity: str

    def do_GET(self) -> None:
        path = urllib.parse.urlsplit(self.path).path
        if path == "/health":
            self._health()
        elif path == "/leader":
            self._leader()
        else:
            self._root()

    def _root(self) -> None:
        body = self.leader_state.get().to_json()
        self._reply(http.HTTPStatus.OK, body, "application/json")

    def _health(self) -> None:
        data = self.leader_state.get()
        if not data:
            self._reply(
                http.HTTPStatus.INTERNAL_SERVER_ERROR,
                f"Invalid leader set: {data!r}",
            )
            return
        self._reply(http.HTTPStatus.OK, f"Valid leader set: {data!r}")

    def _leader(self) -> None:
        data = self.leader_state.get()
        if not data:
            self._reply(
                http.HTTPStatus.INTERNAL_SERVER_ERROR,
                f"Invalid leader set: {data!r}",
            )
        elif data.is_leader(self.identity):
            self._reply(http.HTTPStatus.OK, f"Valid leader set: {data!r}")
        else:
            self._reply(http.HTTPStatus.GONE)

    def _not_allowed(self) -> None:
        self.send_response(http.HTTPStatus.METHOD_NOT_ALLOWED)
        self.send_header("Allow", "GET")
        self.send_header("Content-Length", "0")
        self.end_headers()

    do_POST = do_PUT = do_PATCH = do_DELETE = _not_allowed

    def _reply(
        self,
        status: http.HTTPStatus,
        body: str = "",
        content_type: str = "text/plain; charset=utf-8",
    ) -> None:
        data = body.encode("utf8")
        self.send_response(status)
        if data:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: typing.Any) -> None:
        _logger.debug("%s - %s", self.address_string(), format % args)


class _Server(http.server.ThreadingHTTPServer):
    """Threaded HTTP server that keeps track of requests being handled
    so that shutdown can wait for them.
    """

    daemon_threads = True

    def __init__(self, *args: typing.Any, **kwargs: typing.Any) -> None:
        self._active = 0
        self._idle = threading.Condition()
        super().__init__(*args, **kwargs)

    def process_request_thread(
        self, request: typing.Any, client_address: typing.Any
    ) -> None:
        with self._idle:
            self._active += 1
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._idle:
                self._active -= 1
                self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


class _Server6(_Server):
    address_family = socket.AF_INET6


class StatusServer:
    """HTTP server reporting the observed leader.

    Endpoints:
    * `/` - the leader as JSON (any other path is treated the same)
    * `/health` - 200 if any leader is known, 500 otherwise
    * `/leader` - 200 if this participant leads, 410 if another does,
      500 if no leader is known
    """

    def __init__(
        self, address: str, leader_state: ObservedLeader, identity: str
    ) -> None:
        self.address = address
        self.leader_state = leader_state
        self.identity = identity
        self._server: typing.Optional[_Server] = None
        self._serve_thread: typing.Optional[threading.Thread] = None

    def _request_handler_cls(self) -> typing.Type[_StatusHandler]:
        state = self.leader_state
        ident = self.identity

        class Handler(_StatusHandler):
            leader_state = state
            identity = ident

        return Handler

    @property
    def server_address(self) -> typing.Tuple[str, int]:
        """Return the (host, port) the server is bound to."""
        assert self._server
        return self._server.server_address[:2]  # type: ignore

    def start(self) -> None:
        """Bind the listening socket and serve requests in a thread."""
        if self._server is not None:
            raise RuntimeError("server already started")
        host, port = parse_address(self.address)
        server_cls = _Server6 if ":" in host else _Server
        self._server = server_cls((host, port), self._request_handler_cls())
        self._serve_thread = threading.Thread(
            target=self._server.serve_forever, name="status-http"
        )
        self._serve_thread.start()
        host, port = self.server_address
        _logger.info("Serving leader status on %s:%s", host, port)

    def shutdown(self, timeout: float = DRAIN_TIMEOUT) -> None:
        """Stop accepting requests and wait, up to timeout seconds, for
        requests in progress to finish. Raises DrainTimeout if they do not.
        Requests still running when this returns are abandoned.
        """
        if self._server is None:
            return
        server, self._server = self._server, None
        deadline = time.monotonic() + timeout
        _logger.debug("shutting down http server...")
        server.shutdown()
        assert self._serve_thread
        self._serve_thread.join(max(0.0, deadline - time.monotonic()))
        idle = server.wait_idle(max(0.0, deadline - time.monotonic()))
        server.server_close()
        if not idle or self._serve_thread.is_alive():
            raise DrainTimeout(
                f"http server did not stop within {timeout} seconds"
            )
        _logger.info("HTTP server stopped")

    @contextlib.contextmanager
    def serve(self) -> typing.Iterator["StatusServer"]:
        """Returns a context manager that runs the server in a thread,
        shutting the server down when the context manager exits.
        """
        self.start()
        try:
            yield self
        finally:
            self.shutdown()
