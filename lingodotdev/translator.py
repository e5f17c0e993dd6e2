"""Chunk dispatch orchestration against the localization service."""

from __future__ import annotations

import logging
import secrets
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ValidationError
from .providers import LocalizationClient
from .segmenter import PayloadChunker
from .structures import Record

logger = logging.getLogger(__name__)

# Receives (percentage, chunk, translated_chunk) after each sequential chunk.
ProgressSink = Callable[[int, Dict[str, Any], Dict[str, Any]], None]


def new_workflow_id() -> str:
    """Return a fresh correlation token for one top-level call."""

    return secrets.token_hex(8)


def progress_percentage(completed: int, total: int) -> int:
    """Percentage of completed chunks, rounded half away from zero."""

    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_reference(reference: Any) -> Optional[Dict[str, Any]]:
    """Reference context must be a mapping when given."""

    if reference is None:
        return None
    if not isinstance(reference, Mapping):
        raise ValidationError("Reference must be a mapping")
    return dict(reference)


class ChunkDispatcher:
    """Coordinates chunking, remote calls, and result merging.

    Parallel fan-out is used only when ``concurrent`` is requested and no
    progress sink is given; progress always implies strictly ordered,
    sequential dispatch.
    """

    def __init__(self, client: LocalizationClient, chunker: PayloadChunker) -> None:
        self.client = client
        self.chunker = chunker

    def localize(
        self,
        record: Record,
        *,
        target_locale: str,
        source_locale: str | None = None,
        fast: bool | None = None,
        reference: Mapping[str, Any] | None = None,
        concurrent: bool = False,
        on_progress: ProgressSink | None = None,
    ) -> Dict[str, Any]:
        reference = validate_reference(reference)
        chunks = self.chunker.chunk(record)
        workflow_id = new_workflow_id()

        call = dict(
            workflow_id=workflow_id,
            target_locale=target_locale,
            source_locale=source_locale,
            fast=fast,
            reference=reference,
        )

        if concurrent and on_progress is None:
            logger.info(
                "Dispatching %d chunks in parallel (workflow %s)",
                len(chunks),
                workflow_id,
            )
            results = self._run_parallel(chunks, call)
        else:
            logger.info(
                "Dispatching %d chunks sequentially (workflow %s)",
                len(chunks),
                workflow_id,
            )
            results = self._run_sequential(chunks, call, on_progress)

        merged: Dict[str, Any] = {}
        for result in results:
            # Keys come from disjoint entries; on collision the later chunk wins.
            merged.update(result)
        return merged

    def _run_sequential(
        self,
        chunks: List[Record],
        call: Dict[str, Any],
        on_progress: ProgressSink | None,
    ) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        total = len(chunks)
        for index, chunk in enumerate(chunks, start=1):
            translated = self.client.localize_chunk(chunk, **call)
            results.append(translated)
            logger.debug("Chunk %d/%d localized (%d entries)", index, total, len(chunk))
            if on_progress is not None:
                on_progress(progress_percentage(index, total), chunk.unwrap(), translated)
        return results

    def _run_parallel(
        self,
        chunks: List[Record],
        call: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        if not chunks:
            return []

        with ThreadPoolExecutor(
            max_workers=len(chunks), thread_name_prefix="lingodotdev-chunk"
        ) as executor:
            futures: List[Future] = [
                executor.submit(self.client.localize_chunk, chunk, **call)
                for chunk in chunks
            ]
            wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                future.cancel()
        # Leaving the executor joins every task; only then are results read.

        for future in futures:
            if not future.cancelled() and future.exception() is not None:
                raise future.exception()  # type: ignore[misc]
        return [future.result() for future in futures]
