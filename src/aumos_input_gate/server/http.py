"""HTTP server for pending inputs.

Uses only Python's built-in ``http.server`` module; no external web
framework dependency.  The requesting principal is taken from the
``X-Remote-User`` and ``X-Remote-Groups`` headers set by an
authenticating reverse proxy and bound to the handling thread for the
duration of the request.

Example
-------
>>> server = InputGateServer(api=api, host="127.0.0.1", port=8080)
>>> server.start()           # blocks
>>> # Or run in background:
>>> server.start_background()
>>> server.stop()
"""
from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING
from urllib.parse import parse_qs

from aumos_input_gate.permissions.principal import ANONYMOUS, SYSTEM, Principal, impersonate
from aumos_input_gate.server.api import ApiResponse
from aumos_input_gate.server.crumb import CRUMB_HEADER

if TYPE_CHECKING:
    from aumos_input_gate.server.api import InputGateApi

logger = logging.getLogger(__name__)

USER_HEADER = "X-Remote-User"
GROUPS_HEADER = "X-Remote-Groups"


def principal_from_headers(headers: object) -> Principal:
    """Build the requesting principal from proxy headers.

    Anonymous when the user header is absent, or when it names the reserved
    system principal.
    """
    name = (headers.get(USER_HEADER) or "").strip()  # type: ignore[attr-defined]
    if not name:
        return ANONYMOUS
    if name == SYSTEM.name:
        logger.warning("Refusing reserved user name %r from request headers", name)
        return ANONYMOUS
    raw_groups = headers.get(GROUPS_HEADER) or ""  # type: ignore[attr-defined]
    groups = frozenset(g.strip() for g in raw_groups.split(",") if g.strip())
    return Principal(name, groups)


class _InputGateHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the input endpoints."""

    # Class-level reference to InputGateApi, set by InputGateServer.
    api: "InputGateApi"

    def do_GET(self) -> None:  # noqa: N802
        path = self.path.split("?")[0]
        with impersonate(principal_from_headers(self.headers)):
            self._send(self.api.handle_get(path))

    def do_POST(self) -> None:  # noqa: N802
        path = self.path.split("?")[0]
        try:
            payload = self._read_payload()
        except ValueError as exc:
            self._send(ApiResponse.failure(400, f"Malformed request body: {exc}"))
            return

        with impersonate(principal_from_headers(self.headers)):
            self._send(self.api.handle_post(path, payload, self.headers.get(CRUMB_HEADER)))

    def _read_payload(self) -> dict[str, object]:
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length > 0 else b""
        if not raw:
            return {}

        content_type = (self.headers.get("Content-Type") or "").split(";")[0].strip()
        text = raw.decode("utf-8")
        if content_type == "application/x-www-form-urlencoded":
            return {key: values[0] for key, values in parse_qs(text, keep_blank_values=True).items()}

        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return data

    def _send(self, response: ApiResponse) -> None:
        body = b"" if response.body is None else json.dumps(response.body, default=str).encode("utf-8")
        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        if body:
            self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, fmt: str, *args: object) -> None:  # type: ignore[override]
        """Route request logging through the module logger."""
        logger.debug(fmt, *args)


class InputGateServer:
    """Wraps a ``ThreadingHTTPServer`` serving the input endpoints.

    Parameters
    ----------
    api:
        The :class:`InputGateApi` handling decoded requests.
    host:
        Bind address (default: ``"127.0.0.1"``).
    port:
        Port to listen on (default: ``8080``).
    """

    def __init__(
        self,
        api: "InputGateApi",
        host: str = "127.0.0.1",
        port: int = 8080,
    ) -> None:
        self._api = api
        self._host = host
        self._port = port
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the server and block until stopped (Ctrl-C)."""
        self._server = self._build_server()
        logger.info("Input gate server running at %s", self.url)
        try:
            self._server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            self._server.server_close()

    def start_background(self) -> None:
        """Start the server in a daemon background thread."""
        self._server = self._build_server()
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="input-gate-server",
        )
        self._thread.start()
        logger.info("Input gate server running (background) at %s", self.url)

    def stop(self) -> None:
        """Stop the background server."""
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def url(self) -> str:
        """The base URL the server listens on."""
        return f"http://{self._host}:{self._port}/"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_server(self) -> ThreadingHTTPServer:
        # One handler subclass per server so instances never share an api.
        api = self._api

        class _Handler(_InputGateHandler):
            pass

        _Handler.api = api  # type: ignore[attr-defined]

        server = ThreadingHTTPServer((self._host, self._port), _Handler)
        server.daemon_threads = True
        return server
