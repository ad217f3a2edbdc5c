"""Pytest configuration and shared fixtures for icy_nowplaying tests.

Provides a local ICY fixture server: a threaded HTTP server whose routes are
configured per test with a status, headers and a body that can be chunked,
slowed down, endless, or never sent at all.
"""
import logging
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from icy_nowplaying.core.config import FetcherConfig  # noqa: E402


PROXY_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "NO_PROXY",
              "http_proxy", "https_proxy", "all_proxy", "no_proxy")


def icy_block(text: str, pad: bytes = b"\x00") -> bytes:
    """Length byte plus a metadata block padded to a multiple of 16 bytes."""
    data = text.encode("utf-8")
    units = (len(data) + 15) // 16
    return bytes([units]) + data.ljust(units * 16, pad)


def icy_body(title: str, metaint: int = 100, filler: bytes = b"\x00",
             trailing_audio: int = 0) -> bytes:
    """One ICY frame carrying StreamTitle='title';"""
    return (filler * metaint
            + icy_block(f"StreamTitle='{title}';")
            + filler * trailing_audio)


class Route:
    """How the fixture server answers one path."""

    def __init__(self, status: int = 200, headers: Optional[Dict[str, str]] = None,
                 body: bytes = b"", chunk_size: Optional[int] = None, delay: float = 0.0,
                 endless: Optional[bytes] = None, hang: bool = False):
        self.status = status
        self.headers = headers or {}
        self.body = body
        self.chunk_size = chunk_size
        self.delay = delay
        self.endless = endless
        self.hang = hang
        self.hits = 0
        self.bytes_sent = 0
        self.completed = False
        self.finished = threading.Event()

    def pieces(self, stop_event: threading.Event) -> Iterator[bytes]:
        if self.endless is not None:
            # Bounded so a broken client cannot keep a test running forever
            for _ in range(200000):
                if stop_event.is_set():
                    return
                yield self.endless
            return
        if self.chunk_size:
            for start in range(0, len(self.body), self.chunk_size):
                yield self.body[start:start + self.chunk_size]
        elif self.body:
            yield self.body


class _FixtureHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.0"

    def log_message(self, format, *args):
        pass

    def do_GET(self):
        fixture = self.server.fixture
        fixture.requests.append((self.path, self.headers))
        route = fixture.routes.get(self.path)
        if route is None:
            self.send_error(404)
            return

        route.hits += 1
        try:
            if route.hang:
                # Accept the request, never answer
                fixture.stop_event.wait(30)
                return

            self.send_response(route.status)
            for name, value in route.headers.items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.flush()

            for piece in route.pieces(fixture.stop_event):
                self.wfile.write(piece)
                self.wfile.flush()
                route.bytes_sent += len(piece)
                if route.delay:
                    time.sleep(route.delay)
            route.completed = True
        except (BrokenPipeError, ConnectionResetError):
            pass
        finally:
            route.finished.set()


class IcyFixtureServer:
    """Threaded local HTTP server with per-path canned responses."""

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.requests: List = []
        self.stop_event = threading.Event()
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), _FixtureHandler)
        self.httpd.daemon_threads = True
        self.httpd.fixture = self
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def port(self) -> int:
        return self.httpd.server_address[1]

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def add(self, path: str, **kwargs) -> Route:
        route = Route(**kwargs)
        self.routes[path] = route
        return route

    def stream(self, path: str, title: str, metaint: int = 100, **kwargs) -> Route:
        return self.add(path, headers={"icy-metaint": str(metaint)},
                        body=icy_body(title, metaint), **kwargs)

    def redirect(self, path: str, location: str, status: int = 302) -> Route:
        return self.add(path, status=status,
                        headers={"Location": location, "Content-Length": "9"},
                        body=b"redirect\n")

    def paths_requested(self) -> List[str]:
        return [path for path, _ in self.requests]

    def start(self):
        self._thread.start()

    def close(self):
        self.stop_event.set()
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    """Keep requests from routing fixture traffic through an environment proxy."""
    for name in PROXY_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_package_loggers():
    """Drop handlers attached during a test; loggers outlive the test otherwise."""
    yield
    for name in list(logging.Logger.manager.loggerDict):
        if not name.startswith("icy_nowplaying"):
            continue
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


@pytest.fixture
def icy_server() -> Iterator[IcyFixtureServer]:
    server = IcyFixtureServer()
    server.start()
    yield server
    server.close()


@pytest.fixture
def fast_config() -> FetcherConfig:
    """Fetcher settings with a short time budget for tests."""
    return FetcherConfig(timeout=2.0)
