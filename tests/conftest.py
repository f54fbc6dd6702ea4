from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import pytest

TOKEN_PATH = "/v1/oauth/oauth-business-users-for-applications/accesstoken"


@dataclass
class Route:
    status: int
    body: Any = None
    delay: float = 0.0
    raw: Optional[bytes] = None
    trickle: float = 0.0  # pause between 64-byte pieces of the body


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))

    def form(self) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(self.body.decode("utf-8")).items()}


@dataclass
class FakeTrustpilot:
    """An in-process HTTP server standing in for the Trustpilot APIs."""

    host: str
    port: int
    routes: Dict[Tuple[str, str], Route] = field(default_factory=dict)
    requests: List[RecordedRequest] = field(default_factory=list)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/v1/"

    @property
    def token_url(self) -> str:
        return f"http://{self.host}:{self.port}{TOKEN_PATH}"

    def route(self, method: str, path: str, status: int, body: Any = None, **kwargs: Any) -> None:
        self.routes[(method, path)] = Route(status=status, body=body, **kwargs)

    def requests_to(self, path: str) -> List[RecordedRequest]:
        return [r for r in self.requests if r.path == path]


def _make_handler(fake: FakeTrustpilot):
    class Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            fake.requests.append(
                RecordedRequest(self.command, self.path, dict(self.headers.items()), body)
            )

            route = fake.routes.get((self.command, self.path))
            if route is None:
                route = Route(status=404, body={"message": "Not found"})
            if route.delay:
                time.sleep(route.delay)

            payload = route.raw
            if payload is None:
                payload = b"" if route.body is None else json.dumps(route.body).encode("utf-8")
            self.send_response(route.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if not route.trickle:
                self.wfile.write(payload)
                return
            try:
                for start in range(0, len(payload), 64):
                    self.wfile.write(payload[start : start + 64])
                    time.sleep(route.trickle)
            except (BrokenPipeError, ConnectionResetError):
                pass

        do_GET = _handle
        do_POST = _handle

        def log_message(self, format: str, *args: Any) -> None:
            pass

    return Handler


@pytest.fixture
def fake_server():
    fake = FakeTrustpilot(host="127.0.0.1", port=0)
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(fake))
    server.daemon_threads = True
    fake.port = server.server_address[1]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield fake
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def token_route(fake_server):
    fake_server.route(
        "POST",
        TOKEN_PATH,
        200,
        {
            "access_token": "tkn-1",
            "token_type": "Bearer",
            "expires_in": "359999",
            "refresh_token": "rfr-1",
        },
    )
    return fake_server
