"""Core data structures for localization payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple, Union

from .errors import ValidationError

# Nesting guard for payload conversion and word counting.
MAX_DEPTH = 256

# JSON scalars other than strings; bool is a subclass of int.
SCALAR_TYPES = (int, float)


class ValueKind(Enum):
    """Tags the shape of a payload value."""

    LEAF = auto()
    SCALAR = auto()
    SEQUENCE = auto()
    RECORD = auto()


@dataclass(frozen=True)
class Leaf:
    """A translatable string."""

    text: str
    kind: ValueKind = field(default=ValueKind.LEAF, init=False, repr=False)

    def unwrap(self) -> str:
        return self.text


@dataclass(frozen=True)
class Scalar:
    """A non-string value carried through untouched (numbers, booleans, null)."""

    value: Any
    kind: ValueKind = field(default=ValueKind.SCALAR, init=False, repr=False)

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Sequence:
    """An ordered list of values."""

    items: Tuple["Value", ...]
    kind: ValueKind = field(default=ValueKind.SEQUENCE, init=False, repr=False)

    def unwrap(self) -> List[Any]:
        return [item.unwrap() for item in self.items]


@dataclass
class Record:
    """An insertion-ordered mapping of string keys to values."""

    entries: Dict[str, "Value"] = field(default_factory=dict)
    kind: ValueKind = field(default=ValueKind.RECORD, init=False, repr=False)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, "Value"]]) -> "Record":
        return cls(entries=dict(pairs))

    def items(self) -> Iterator[Tuple[str, "Value"]]:
        return iter(self.entries.items())

    def keys(self) -> List[str]:
        return list(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def unwrap(self) -> Dict[str, Any]:
        return {key: value.unwrap() for key, value in self.entries.items()}


Value = Union[Leaf, Scalar, Sequence, Record]


def to_value(obj: Any, *, _depth: int = 0) -> Value:
    """Convert plain JSON-like data into the payload variant."""

    if _depth > MAX_DEPTH:
        raise ValidationError(
            f"Payload nesting exceeds the supported depth of {MAX_DEPTH} levels"
        )
    if isinstance(obj, (Leaf, Scalar, Sequence, Record)):
        return obj
    if isinstance(obj, str):
        return Leaf(obj)
    if isinstance(obj, Mapping):
        return Record.from_pairs(
            (str(key), to_value(item, _depth=_depth + 1)) for key, item in obj.items()
        )
    if isinstance(obj, (list, tuple)):
        return Sequence(tuple(to_value(item, _depth=_depth + 1) for item in obj))
    if obj is None or isinstance(obj, SCALAR_TYPES):
        return Scalar(obj)
    raise ValidationError(f"Unsupported payload value of type {type(obj).__name__}")


def to_record(obj: Mapping[str, Any]) -> Record:
    """Convert a mapping into a Record."""

    value = to_value(obj)
    if value.kind is not ValueKind.RECORD:
        raise ValidationError("Payload must be a mapping")
    return value  # type: ignore[return-value]
