"""Localization service client abstractions."""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx

from .configuration import EngineConfig
from .errors import (
    APIError,
    AuthenticationError,
    LingoDotDevError,
    ServerError,
    ValidationError,
)
from .structures import Record

logger = logging.getLogger(__name__)


class LocalizationClient(ABC):
    """Abstract adapter for the remote localization service."""

    @abstractmethod
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
        """Translate one chunk and return the translated entries by key."""

    @abstractmethod
    def recognize_locale(self, text: str) -> str:
        """Return the locale code detected for the text."""

    @abstractmethod
    def whoami(self) -> Optional[Dict[str, Any]]:
        """Return the authenticated account, or None when unauthenticated."""

    def close(self) -> None:
        """Release transport resources."""


class EchoLocalizationClient(LocalizationClient):
    """A client that returns the original content (useful for testing)."""

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
        return chunk.unwrap()

    def recognize_locale(self, text: str) -> str:
        return ""

    def whoami(self) -> Optional[Dict[str, Any]]:
        return None


class HttpLocalizationClient(LocalizationClient):
    """Client for the Lingo.dev HTTP API.

    A single ``httpx.Client`` is shared by every request, including chunk
    requests issued from worker threads.
    """

    def __init__(
        self,
        config: EngineConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._http = httpx.Client(transport=transport)

    def close(self) -> None:
        self._http.close()

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
        request_body = {
            "params": {"workflowId": workflow_id, "fast": bool(fast)},
            "locale": {"source": source_locale, "target": target_locale},
            "reference": dict(reference) if reference else {},
            "data": chunk.unwrap(),
        }
        self._log_debug("client.request.i18n", request_body)

        data = self._post_json("/i18n", request_body)
        self._log_debug("client.response.i18n", data)

        if not data.get("data") and data.get("error"):
            raise APIError(str(data["error"]))
        translated = data.get("data") or {}
        if not isinstance(translated, dict):
            raise APIError("Request failed: response data must be an object")
        return {str(key): value for key, value in translated.items()}

    def recognize_locale(self, text: str) -> str:
        if text is None or not text.strip():
            raise ValidationError("Text cannot be empty")

        data = self._post_json("/recognize", {"text": text})
        self._log_debug("client.response.recognize", data)
        return data.get("locale") or ""

    def whoami(self) -> Optional[Dict[str, Any]]:
        try:
            response = self._send("/whoami", None)
        except APIError:
            return None

        if response.status_code >= 500:
            raise ServerError(
                _server_error_message(response), status_code=response.status_code
            )
        if not response.is_success:
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get("email"):
            return None
        return {"email": data["email"], "id": data.get("id")}

    # --- Internal helpers -------------------------------------------------

    def _send(self, path: str, body: Any) -> httpx.Response:
        url = f"{self.config.api_url.rstrip('/')}{path}"
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            content = json.dumps(body).encode("utf-8") if body is not None else None
        except (TypeError, ValueError) as exc:
            raise APIError(f"Request failed: {exc}") from exc
        try:
            return self._http.post(
                url,
                headers=headers,
                content=content,
                timeout=httpx.Timeout(self.config.request_timeout),
            )
        except httpx.HTTPError as exc:
            raise APIError(f"Request failed: {exc}") from exc

    def _post_json(self, path: str, body: Any) -> Dict[str, Any]:
        """POST a JSON body and return the decoded object, mapping failures."""

        response = self._send(path, body)
        raise_for_status(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise APIError(f"Request failed: invalid JSON response ({exc})") from exc
        if not isinstance(data, dict):
            raise APIError("Request failed: expected a JSON object response")
        return data

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.config.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[lingodotdev][client-debug] {label}:\n{message}", file=sys.stderr)


def _server_error_message(response: httpx.Response) -> str:
    return (
        f"Server error ({response.status_code}): {response.reason_phrase}. "
        f"{response.text}. This may be due to temporary service issues."
    )


def raise_for_status(response: httpx.Response) -> None:
    """Map non-2xx responses onto the SDK error hierarchy."""

    status_code = response.status_code
    if response.is_success:
        return

    logger.debug("Localization service answered %d", status_code)
    if status_code >= 500:
        raise ServerError(_server_error_message(response), status_code=status_code)
    if status_code == 400:
        raise ValidationError(
            f"Invalid request ({status_code}): {response.reason_phrase}"
        )
    if status_code == 401:
        raise AuthenticationError(
            f"Authentication failed ({status_code}): {response.reason_phrase}",
            status_code=status_code,
        )
    raise APIError(response.text, status_code=status_code)


def build_client(
    name: str | None,
    config: EngineConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> LocalizationClient:
    """Factory to create clients by name."""

    normalized = (name or "http").strip().lower()
    if normalized in {"http", "lingo", "lingodotdev", "default"}:
        return HttpLocalizationClient(config, transport=transport)
    if normalized in {"echo", "noop", "mock"}:
        return EchoLocalizationClient()
    raise LingoDotDevError(f"Unknown localization client '{name}'.")
