# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Shared fixtures: a local inference backend and an in-process forecast source."""
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import pytest

from riskglobe.domain.errors import AbortError, InferenceError


EMPTY_COLLECTION = {"type": "FeatureCollection", "features": []}


class FakeInferenceBackend:
    """
    Scriptable /api/ai/infer endpoint.

    Responses are keyed by (disaster, horizonHours). Clearing ``release``
    makes every request block inside the handler until it is set again.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, int], tuple[int, Any]] = {}
        self.requests: list[dict[str, Any]] = []
        self.paths: list[str] = []
        self.release = threading.Event()
        self.release.set()
        self._lock = threading.Lock()
        self.base_url = ""

    def respond(self, disaster: str, horizon: int, body: Any, status: int = 200) -> None:
        self.responses[(disaster, horizon)] = (status, body)

    def record(self, path: str, payload: dict[str, Any]) -> tuple[int, Any]:
        with self._lock:
            self.paths.append(path)
            self.requests.append(payload)
        key = (payload.get("disaster"), payload.get("horizonHours"))
        return self.responses.get(key, (200, EMPTY_COLLECTION))

    @property
    def request_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def wait_for_requests(self, count: int, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.request_count >= count:
                return True
            time.sleep(0.01)
        return self.request_count >= count


def _handler_for(backend: FakeInferenceBackend):

    class Handler(BaseHTTPRequestHandler):

        def log_message(self, format: str, *args: Any) -> None:
            pass

        def do_POST(self) -> None:
            length = int(self.headers.get("Content-Length", 0))
            payload = json.loads(self.rfile.read(length).decode()) if length else {}
            status, body = backend.record(self.path, payload)
            backend.release.wait(10)
            raw = body if isinstance(body, (str, bytes)) else json.dumps(body)
            if isinstance(raw, str):
                raw = raw.encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(raw)))
            self.end_headers()
            self.wfile.write(raw)

    return Handler


@pytest.fixture
def backend():
    """Start a fake inference backend, yield it, shut it down after the test."""
    fake = FakeInferenceBackend()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _handler_for(fake))
    server.daemon_threads = True
    fake.base_url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield fake
    fake.release.set()
    server.shutdown()
    server.server_close()


def point_feature(lon: float, lat: float, risk: float | None = None) -> dict[str, Any]:
    properties = {} if risk is None else {"risk": risk}
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": properties,
    }


def collection(*features: dict[str, Any]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


class FakeSource:
    """Deterministic in-process ForecastSource."""

    def __init__(self, responses=None, failures=(), aborts=()):
        self.responses = responses or {}
        self.failures = set(failures)
        self.aborts = set(aborts)
        self.calls = []
        self.closed = False
        self.reopened = 0

    def infer(self, disaster, horizon, options=None):
        self.calls.append((disaster, horizon, options))
        if (disaster, horizon) in self.failures:
            raise InferenceError(500, "forced failure")
        if (disaster, horizon) in self.aborts:
            raise AbortError("cancelled")
        return self.responses.get((disaster, horizon), ())

    def cancel(self, disaster, horizon):
        pass

    def cancel_all(self):
        pass

    def close(self):
        self.closed = True

    def reopen(self):
        self.closed = False
        self.reopened += 1
