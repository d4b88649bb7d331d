"""Value types exchanged with a document store.

Documents are plain ``dict`` payloads addressed by a collection path and a
document id. Nested map entries are addressed with dotted field paths
(``"typing.u1"``).

Timestamps are aware UTC ``datetime`` values. Documents written by other
clients may carry naive timestamps; ``as_utc`` reads those as UTC.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


class _DeleteField:
    """Sentinel type for ``DELETE_FIELD``."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    def __copy__(self) -> "_DeleteField":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_DeleteField":
        return self


# Write this as a field value to remove the field from the document.
DELETE_FIELD = _DeleteField()

FILTER_OPERATORS = ("==", "!=", "in", "not-in", "array-contains")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware datetime, treating naive values as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class FieldFilter:
    """A single query predicate.

    Attributes:
        field: Dotted field path.
        op: One of ``FILTER_OPERATORS``.
        value: Comparison operand (a list for ``in`` / ``not-in``).
    """
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op!r}")


@dataclass(frozen=True)
class Query:
    """Immutable query over one collection.

    Build with the chaining helpers::

        Query("chat_rooms").where("participants", "array-contains", "u1")
    """
    collection: str
    filters: Tuple[FieldFilter, ...] = ()
    order_by: Tuple[Tuple[str, bool], ...] = ()

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def ordered_by(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order_by=self.order_by + ((field_path, descending),))


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of a document. ``data`` is None if it does not exist."""
    id: str
    path: str
    data: Optional[Dict[str, Any]] = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, field_path: str, default: Any = None) -> Any:
        return get_field(self.data or {}, field_path, default)


@dataclass(frozen=True)
class QuerySnapshot:
    """Result of a query, in store order."""
    query: Query
    documents: List[DocumentSnapshot] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.documents)


_MISSING = object()


def get_field(data: Dict[str, Any], field_path: str, default: Any = None) -> Any:
    """Resolve a dotted field path inside ``data``."""
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return current


def apply_field_updates(data: Dict[str, Any], updates: Dict[str, Any]) -> None:
    """Apply ``updates`` to ``data`` in place, honouring dotted paths and DELETE_FIELD."""
    for field_path, value in updates.items():
        parts = field_path.split(".")
        target = data
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                if value is DELETE_FIELD:
                    target = None
                    break
                child = {}
                target[part] = child
            target = child
        if target is None:
            continue
        if value is DELETE_FIELD:
            target.pop(parts[-1], None)
        else:
            target[parts[-1]] = value
