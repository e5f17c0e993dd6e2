"""Public entry point for localizing text, objects, chats and HTML."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from .configuration import (
    DEFAULT_API_URL,
    EngineConfig,
    build_config,
    get_settings,
    update_config,
)
from .documents import extract_from_soup, parse_html, reinject_into_soup
from .errors import APIError, ValidationError
from .providers import LocalizationClient, build_client
from .segmenter import PayloadChunker
from .structures import to_record
from .translator import ChunkDispatcher, ProgressSink

ProgressCallback = Callable[[int], None]


def _require_locale(target_locale: Optional[str]) -> None:
    if target_locale is None or not str(target_locale).strip():
        raise ValidationError("Target locale is required")


def _percentage_only(callback: ProgressCallback | None) -> ProgressSink | None:
    if callback is None:
        return None

    def _sink(percentage: int, chunk: Dict[str, Any], translated: Dict[str, Any]) -> None:
        callback(percentage)

    return _sink


class Engine:
    """Localizes content through the Lingo.dev API.

    Payloads are split into chunks bounded by ``batch_size`` entries and
    ``ideal_batch_item_size`` words, sent under a shared workflow id, and
    merged back into a single result.

    Example::

        with Engine(api_key="...") as engine:
            engine.localize_text("Hello world", target_locale="es")
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        batch_size: int = 25,
        ideal_batch_item_size: int = 250,
        debug: bool = False,
        request_timeout: float = 60.0,
        client: LocalizationClient | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = build_config(
            api_key=api_key,
            api_url=api_url,
            batch_size=batch_size,
            ideal_batch_item_size=ideal_batch_item_size,
            debug=debug,
            request_timeout=request_timeout,
        )
        self.client = client or build_client("http", self.config, transport=transport)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        *,
        client: LocalizationClient | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "Engine":
        return cls(
            config.api_key,
            api_url=config.api_url,
            batch_size=config.batch_size,
            ideal_batch_item_size=config.ideal_batch_item_size,
            debug=config.debug,
            request_timeout=config.request_timeout,
            client=client,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, **kwargs: Any) -> "Engine":
        """Build an engine from LINGODOTDEV_* environment settings."""

        return cls.from_config(get_settings(), **kwargs)

    def configure(self, **changes: Any) -> "Engine":
        """Adjust batch limits or other options with the same validation rules.

        Transport options (``api_key``, ``api_url``, timeouts) are read by the
        HTTP client on every request, so changes apply immediately.
        """

        update_config(self.config, **changes)
        return self

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _dispatcher(self) -> ChunkDispatcher:
        # Built per call so config changes made after construction apply.
        chunker = PayloadChunker(
            max_items=self.config.batch_size,
            ideal_words=self.config.ideal_batch_item_size,
        )
        return ChunkDispatcher(self.client, chunker)

    def localize_raw(
        self,
        payload: Mapping[str, Any],
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        concurrent: bool = False,
        on_progress: ProgressSink | None = None,
    ) -> Dict[str, Any]:
        """Chunk and localize a mapping, returning the merged translation."""

        return self._dispatcher().localize(
            to_record(payload),
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
            concurrent=concurrent,
            on_progress=on_progress,
        )

    def localize_text(
        self,
        text: str,
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        concurrent: bool = False,
    ) -> str:
        _require_locale(target_locale)
        if text is None:
            raise ValidationError("Text cannot be None")

        response = self.localize_raw(
            {"text": text},
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
            concurrent=concurrent,
            on_progress=_percentage_only(on_progress),
        )
        if "text" not in response:
            raise APIError("API did not return localized text")
        return response["text"]

    def localize_object(
        self,
        obj: Mapping[str, Any],
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        concurrent: bool = False,
    ) -> Dict[str, Any]:
        _require_locale(target_locale)
        if obj is None:
            raise ValidationError("Object cannot be None")
        if not isinstance(obj, Mapping):
            raise ValidationError("Object must be a mapping")
        if not obj:
            return {}

        response = self.localize_raw(
            obj,
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
            concurrent=concurrent,
            on_progress=_percentage_only(on_progress),
        )
        if not response:
            raise APIError("API returned empty localization response")
        return response

    def localize_chat(
        self,
        chat: List[Mapping[str, Any]],
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        concurrent: bool = False,
    ) -> List[Dict[str, Any]]:
        """Localize chat messages, each a mapping with ``name`` and ``text``."""

        _require_locale(target_locale)
        if chat is None:
            raise ValidationError("Chat cannot be None")
        if not isinstance(chat, list):
            raise ValidationError("Chat must be a list")
        for message in chat:
            if not (
                isinstance(message, Mapping)
                and message.get("name") is not None
                and message.get("text") is not None
            ):
                raise ValidationError(
                    "Each chat message must have 'name' and 'text' keys"
                )

        response = self.localize_raw(
            {"chat": chat},
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
            concurrent=concurrent,
            on_progress=_percentage_only(on_progress),
        )
        if "chat" not in response:
            raise APIError("API did not return localized chat")
        return response["chat"]

    def localize_html(
        self,
        html: str,
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        concurrent: bool = False,
    ) -> str:
        """Localize text nodes and localizable attributes of an HTML document.

        The ``lang`` attribute of the root element is set to the target locale.
        Scripts and styles are left untouched.
        """

        _require_locale(target_locale)
        if html is None:
            raise ValidationError("HTML cannot be None")

        soup = parse_html(html)
        extracted = extract_from_soup(soup)
        localized = self.localize_raw(
            extracted,
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
            concurrent=concurrent,
            on_progress=_percentage_only(on_progress),
        )
        reinject_into_soup(soup, localized, target_locale)
        return str(soup)

    def batch_localize_text(
        self,
        text: str,
        *,
        target_locales: List[str],
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        concurrent: bool = False,
    ) -> List[str]:
        """Localize one text into several locales, preserving locale order."""

        if text is None:
            raise ValidationError("Text cannot be None")
        if not isinstance(target_locales, list):
            raise ValidationError("Target locales must be a list")
        if not target_locales:
            raise ValidationError("Target locales cannot be empty")

        def _localize(target_locale: str) -> str:
            return self.localize_text(
                text,
                target_locale=target_locale,
                source_locale=source_locale,
                fast=fast,
                reference=reference,
            )

        return self._map(_localize, target_locales, concurrent)

    def batch_localize_objects(
        self,
        objects: List[Mapping[str, Any]],
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        concurrent: bool = False,
    ) -> List[Dict[str, Any]]:
        """Localize several objects into one locale, preserving input order."""

        if not isinstance(objects, list):
            raise ValidationError("Objects must be a list")
        if not objects:
            raise ValidationError("Objects cannot be empty")
        _require_locale(target_locale)
        for obj in objects:
            if not isinstance(obj, Mapping):
                raise ValidationError("Each object must be a mapping")

        def _localize(obj: Mapping[str, Any]) -> Dict[str, Any]:
            return self.localize_object(
                obj,
                target_locale=target_locale,
                source_locale=source_locale,
                fast=fast,
                reference=reference,
                concurrent=concurrent,
            )

        return self._map(_localize, objects, concurrent)

    def recognize_locale(self, text: str) -> str:
        if text is None or not text.strip():
            raise ValidationError("Text cannot be empty")
        return self.client.recognize_locale(text)

    def whoami(self) -> Optional[Dict[str, Any]]:
        return self.client.whoami()

    @staticmethod
    def _map(func: Callable[[Any], Any], items: List[Any], concurrent: bool) -> List[Any]:
        if not concurrent:
            return [func(item) for item in items]
        with ThreadPoolExecutor(
            max_workers=len(items), thread_name_prefix="lingodotdev-batch"
        ) as executor:
            futures = [executor.submit(func, item) for item in items]
        return [future.result() for future in futures]

    @classmethod
    def quick_translate(
        cls,
        content: Any,
        *,
        api_key: str,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool = True,
        api_url: str = DEFAULT_API_URL,
        **engine_options: Any,
    ) -> Any:
        """One-off translation of a string or mapping."""

        if not isinstance(content, (str, Mapping)):
            raise ValidationError("Content must be a string or mapping")
        with cls(api_key, api_url=api_url, **engine_options) as engine:
            if isinstance(content, str):
                return engine.localize_text(
                    content,
                    target_locale=target_locale,
                    source_locale=source_locale,
                    fast=fast,
                )
            return engine.localize_object(
                content,
                target_locale=target_locale,
                source_locale=source_locale,
                fast=fast,
                concurrent=True,
            )

    @classmethod
    def quick_batch_translate(
        cls,
        content: Any,
        *,
        api_key: str,
        target_locales: List[str],
        source_locale: str | None = None,
        fast: bool = True,
        api_url: str = DEFAULT_API_URL,
        **engine_options: Any,
    ) -> List[Any]:
        """One-off translation of a string or mapping into several locales."""

        if not isinstance(content, (str, Mapping)):
            raise ValidationError("Content must be a string or mapping")
        with cls(api_key, api_url=api_url, **engine_options) as engine:
            if isinstance(content, str):
                return engine.batch_localize_text(
                    content,
                    target_locales=target_locales,
                    source_locale=source_locale,
                    fast=fast,
                    concurrent=True,
                )
            return [
                engine.localize_object(
                    content,
                    target_locale=target_locale,
                    source_locale=source_locale,
                    fast=fast,
                    concurrent=True,
                )
                for target_locale in target_locales
            ]
