"""Word counting and payload chunking utilities."""

from __future__ import annotations

import logging
from typing import Dict, List

from .errors import ValidationError
from .structures import MAX_DEPTH, Record, Value, ValueKind

logger = logging.getLogger(__name__)


def count_words(value: Value, *, _depth: int = 0) -> int:
    """Count whitespace-delimited words in a payload value.

    Strings contribute their token count, sequences and records the sum of
    their members. Record keys and non-string scalars contribute nothing.
    """

    if _depth > MAX_DEPTH:
        raise ValidationError(
            f"Payload nesting exceeds the supported depth of {MAX_DEPTH} levels"
        )

    kind = value.kind
    if kind is ValueKind.LEAF:
        return len(value.text.split())  # type: ignore[union-attr]
    if kind is ValueKind.SEQUENCE:
        return sum(
            count_words(item, _depth=_depth + 1)
            for item in value.items  # type: ignore[union-attr]
        )
    if kind is ValueKind.RECORD:
        return sum(
            count_words(item, _depth=_depth + 1)
            for item in value.entries.values()  # type: ignore[union-attr]
        )
    return 0


class PayloadChunker:
    """Splits a record into ordered chunks bounded by item and word counts.

    Entries are never split: a single entry larger than ``ideal_words``
    becomes its own oversized chunk. Limits are validated by the engine
    configuration, not here.
    """

    def __init__(self, max_items: int, ideal_words: int) -> None:
        self.max_items = max_items
        self.ideal_words = ideal_words

    def chunk(self, record: Record) -> List[Record]:
        chunks: List[Record] = []
        current: Dict[str, Value] = {}
        current_words = 0
        total = len(record)

        for position, (key, value) in enumerate(record.items(), start=1):
            current[key] = value
            # Word counts are additive, so the running total matches a recount.
            current_words += count_words(value)

            if (
                current_words > self.ideal_words
                or len(current) >= self.max_items
                or position == total
            ):
                chunks.append(Record(entries=current))
                current = {}
                current_words = 0

        logger.debug(
            "Split %d entries into %d chunks (max_items=%d, ideal_words=%d)",
            total,
            len(chunks),
            self.max_items,
            self.ideal_words,
        )
        return chunks
