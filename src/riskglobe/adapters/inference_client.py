# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Inference backend adapter: one cancellable POST per grid cell.

External dependencies (urllib, json, threading) are confined to this
layer. Every call registers a CancelHandle under its ``disaster-horizon``
tag for exactly as long as it runs; the registry belongs to the client
instance (and through it to one orchestrator), never to the module.

Wire contract:
    POST {api_base}/api/ai/infer
    body:     {"disaster": "fires", "horizonHours": 24, "options": {...}}
    response: {"geojson": FeatureCollection} or a bare FeatureCollection

Cancellation is cooperative. A handle is checked before connecting,
between body chunks and after the response, so a cancelled call always
ends in AbortError even if the socket could not be interrupted.
"""
import http.client
import json
import logging
import threading
import urllib.error
import urllib.request
from typing import Any

from riskglobe.domain.errors import AbortError, InferenceError
from riskglobe.domain.forecast import (
    DisasterKind,
    Feature,
    RequestKey,
    features_from_payload,
)
from riskglobe.ports.forecast_source import ForecastSource


_log = logging.getLogger(__name__)

INFER_PATH = "/api/ai/infer"
DEFAULT_TIMEOUT_S = 300.0
_READ_CHUNK = 64 * 1024
_MAX_ERROR_TEXT = 2000


class CancelHandle:
    """Cancellation flag for one in-flight request."""

    def __init__(self, key: str) -> None:
        self.key = key
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AbortError(f"Request {self.key} cancelled")


class CancellationRegistry:
    """
    In-flight request handles keyed by ``disaster-horizon`` tag.

    Thread-safe. close() cancels everything and makes register() raise
    AbortError until reopen(), so no request starts after a stop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: dict[str, CancelHandle] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, key: RequestKey) -> CancelHandle:
        with self._lock:
            if self._closed:
                raise AbortError(f"Request {key.tag} rejected: registry closed")
            if key.tag in self._handles:
                raise ValueError(f"Request {key.tag} is already in flight")
            handle = CancelHandle(key.tag)
            self._handles[key.tag] = handle
            return handle

    def release(self, handle: CancelHandle) -> None:
        with self._lock:
            if self._handles.get(handle.key) is handle:
                del self._handles[handle.key]

    def cancel(self, key: RequestKey) -> bool:
        """Cancel one request. Returns False when nothing was in flight."""
        with self._lock:
            handle = self._handles.get(key.tag)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            handle.cancel()
        return len(handles)

    def close(self) -> int:
        with self._lock:
            self._closed = True
        return self.cancel_all()

    def reopen(self) -> None:
        with self._lock:
            self._closed = False

    def in_flight(self) -> list[str]:
        with self._lock:
            return sorted(self._handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)


class ForecastRequestClient(ForecastSource):
    """
    Requests disaster forecasts from the inference backend.

    Args:
        api_base: Backend origin, e.g. ``https://example.com``.
        timeout: Per-request socket timeout in seconds.
        registry: Cancellation registry; a private one is created if omitted.
    """

    def __init__(
        self,
        api_base: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
        registry: CancellationRegistry | None = None,
    ):
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self.registry = registry if registry is not None else CancellationRegistry()

    @property
    def endpoint(self) -> str:
        return f"{self._api_base}{INFER_PATH}"

    def infer(
        self,
        disaster: DisasterKind | str,
        horizon: int,
        options: dict[str, Any] | None = None,
    ) -> tuple[Feature, ...]:
        """
        Run inference for one (disaster, horizon) cell.

        Returns:
            Features of the returned FeatureCollection.

        Raises:
            InferenceError: non-2xx status, transport failure or bad JSON.
            AbortError: the call was cancelled or the registry is closed.
        """
        key = RequestKey(DisasterKind(disaster), int(horizon))
        handle = self.registry.register(key)
        try:
            body = self._post_json(
                self.endpoint,
                {
                    "disaster": key.disaster.value,
                    "horizonHours": key.horizon,
                    "options": options or {},
                },
                handle,
            )
            handle.raise_if_cancelled()
            try:
                payload = json.loads(body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise InferenceError(None, f"invalid JSON response for {key.tag}: {e}") from e
            return features_from_payload(payload)
        finally:
            self.registry.release(handle)

    def cancel(self, disaster: DisasterKind | str, horizon: int) -> None:
        if self.registry.cancel(RequestKey(DisasterKind(disaster), int(horizon))):
            _log.debug("Cancelled %s-%s", DisasterKind(disaster).value, horizon)

    def cancel_all(self) -> None:
        count = self.registry.cancel_all()
        if count:
            _log.debug("Cancelled %d in-flight request(s)", count)

    def close(self) -> None:
        self.registry.close()

    def reopen(self) -> None:
        self.registry.reopen()

    def _post_json(self, url: str, body: dict[str, Any], handle: CancelHandle) -> bytes:
        """POST a JSON body and return the raw response bytes."""
        req = urllib.request.Request(
            url,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "User-Agent": "riskglobe/0.1",
            },
            method="POST",
        )
        handle.raise_if_cancelled()
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                chunks = []
                while True:
                    handle.raise_if_cancelled()
                    chunk = response.read(_READ_CHUNK)
                    if not chunk:
                        break
                    chunks.append(chunk)
                return b"".join(chunks)
        except urllib.error.HTTPError as e:
            handle.raise_if_cancelled()
            raise InferenceError(e.code, _error_text(e)) from e
        except urllib.error.URLError as e:
            handle.raise_if_cancelled()
            raise InferenceError(None, f"connection failed: {e.reason}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            handle.raise_if_cancelled()
            raise InferenceError(None, f"transport error: {e}") from e


def _error_text(error: urllib.error.HTTPError) -> str:
    try:
        text = error.read().decode("utf-8", errors="replace")
    except (OSError, http.client.HTTPException):
        text = ""
    return text.strip()[:_MAX_ERROR_TEXT] or str(error.reason)
