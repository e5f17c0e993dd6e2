"""Test doubles shared by the test modules."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from lingodotdev.providers import LocalizationClient
from lingodotdev.structures import Record


class RecordingClient(LocalizationClient):
    """Prefixes every string leaf and records each chunk call."""

    def __init__(
        self,
        prefix: str = "ES:",
        *,
        delay: Optional[Callable[[Record], float]] = None,
        fail_on: Optional[str] = None,
        error: Optional[Exception] = None,
        barrier: Optional[threading.Barrier] = None,
    ) -> None:
        self.prefix = prefix
        self.delay = delay
        self.fail_on = fail_on
        self.error = error
        self.barrier = barrier
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def localize_chunk(
        self,
        chunk: Record,
        *,
        workflow_id: str,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
    ) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(
                {
                    "keys": chunk.keys(),
                    "workflow_id": workflow_id,
                    "target_locale": target_locale,
                    "source_locale": source_locale,
                    "fast": fast,
                    "reference": reference,
                }
            )
        if self.barrier is not None:
            self.barrier.wait()
        if self.delay is not None:
            time.sleep(self.delay(chunk))
        if self.fail_on is not None and self.fail_on in chunk.keys():
            raise self.error or RuntimeError("chunk failed")
        return {key: self._translate(value) for key, value in chunk.unwrap().items()}

    def _translate(self, value: Any) -> Any:
        if isinstance(value, str):
            return f"{self.prefix}{value}"
        if isinstance(value, list):
            return [self._translate(item) for item in value]
        if isinstance(value, dict):
            return {key: self._translate(item) for key, item in value.items()}
        return value

    def recognize_locale(self, text: str) -> str:
        return "en"

    def whoami(self) -> Optional[Dict[str, Any]]:
        return {"email": "user@example.com", "id": "user-1"}


class ServiceStub:
    """An httpx.MockTransport handler imitating the localization service."""

    def __init__(self, prefix: str = "ES:") -> None:
        self.prefix = prefix
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, httpx.Response] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.responses:
            return self.responses[path]
        if path.endswith("/i18n"):
            body = json.loads(request.content)
            data = {key: f"{self.prefix}{value}" if isinstance(value, str) else value
                    for key, value in body["data"].items()}
            return httpx.Response(200, json={"data": data})
        if path.endswith("/recognize"):
            return httpx.Response(200, json={"locale": "fr"})
        if path.endswith("/whoami"):
            return httpx.Response(200, json={"email": "user@example.com", "id": "user-1"})
        return httpx.Response(404, text="not found")
