"""In-memory DocumentStore with push subscriptions.

The reference backend for chatsync: single event loop, no persistence.
Collections keep insertion order, which is the "store order" used for stable
sorting. Every committed write pushes fresh snapshots to the document and
query subscriptions it affects.

Thread Safety:
    Designed for async/await usage with a single event loop. Each public
    coroutine runs to completion without awaiting, so writes and the
    notifications they trigger are never interleaved. It is NOT thread-safe.
"""
from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import DocumentNotFoundError
from ..streams import LiveStream, Subscription
from .base import DocumentStore, WriteBatch
from .schemas import (
    DocumentSnapshot,
    FieldFilter,
    Query,
    QuerySnapshot,
    apply_field_updates,
    get_field,
)

logger = logging.getLogger(__name__)

_MISSING = object()

# (kind, path, doc_id, data, merge)
_Write = Tuple[str, str, str, Dict[str, Any], bool]


def _matches(data: Dict[str, Any], flt: FieldFilter) -> bool:
    value = get_field(data, flt.field, _MISSING)
    if flt.op == "array-contains":
        return isinstance(value, list) and flt.value in value
    if value is _MISSING:
        return False
    if flt.op == "==":
        return value == flt.value
    if flt.op == "!=":
        return value != flt.value
    if flt.op == "in":
        return value in flt.value
    return value not in flt.value


def _sort_key(value: Any) -> Tuple[bool, Any]:
    # None sorts after present values in ascending order.
    return (value is None, value if value is not None else 0)


class InMemoryWriteBatch(WriteBatch):
    """Write batch for ``InMemoryDocumentStore``."""

    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store
        self._writes: List[_Write] = []
        self._committed = False

    def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "InMemoryWriteBatch":
        self._writes.append(("set", path, doc_id, data, merge))
        return self

    def update(self, path: str, doc_id: str, data: Dict[str, Any]) -> "InMemoryWriteBatch":
        self._writes.append(("update", path, doc_id, data, True))
        return self

    def __len__(self) -> int:
        return len(self._writes)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        self._store._apply(self._writes)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store.

    Args:
        ignore_ordering: Emulate a backend that ignores ``order_by`` on
            queries (results come back in store order).

    Attributes:
        commit_count: Number of successfully applied write groups; a batch
            counts once.
    """

    def __init__(self, ignore_ordering: bool = False) -> None:
        self.honors_ordering = not ignore_ordering
        self.commit_count = 0

        # path -> {doc_id -> data}, insertion ordered
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

        # (path, doc_id) -> subscriptions on that document
        self._document_watchers: Dict[Tuple[str, str], List[Subscription]] = {}

        # path -> [(query, subscription)]
        self._query_watchers: Dict[str, List[Tuple[Query, Subscription]]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def generate_id(self) -> str:
        return uuid.uuid4().hex[:20]

    async def get(self, path: str, doc_id: str) -> DocumentSnapshot:
        return self._snapshot(path, doc_id)

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        return self._run_query(query)

    def _snapshot(self, path: str, doc_id: str) -> DocumentSnapshot:
        data = self._collections.get(path, {}).get(doc_id)
        return DocumentSnapshot(id=doc_id, path=path, data=copy.deepcopy(data))

    def _run_query(self, query: Query) -> List[DocumentSnapshot]:
        docs = [
            (doc_id, data)
            for doc_id, data in self._collections.get(query.collection, {}).items()
            if all(_matches(data, flt) for flt in query.filters)
        ]
        if self.honors_ordering:
            # Stable multi-key sort: least significant key first.
            for field_path, descending in reversed(query.order_by):
                docs.sort(key=lambda item: _sort_key(get_field(item[1], field_path)), reverse=descending)
        return [
            DocumentSnapshot(id=doc_id, path=query.collection, data=copy.deepcopy(data))
            for doc_id, data in docs
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._apply([("set", path, doc_id, data, merge)])

    async def create_if_absent(self, path: str, doc_id: str, data: Dict[str, Any]) -> bool:
        if doc_id in self._collections.get(path, {}):
            return False
        self._apply([("set", path, doc_id, data, False)])
        return True

    async def update(
        self,
        path: str,
        doc_id: str,
        data: Dict[str, Any],
        precondition: Optional[Dict[str, Any]] = None,
    ) -> bool:
        existing = self._collections.get(path, {}).get(doc_id)
        if existing is None:
            raise DocumentNotFoundError(path, doc_id)
        if precondition and any(
            get_field(existing, key, _MISSING) != value for key, value in precondition.items()
        ):
            return False
        self._apply([("update", path, doc_id, data, True)])
        return True

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)

    def _apply(self, writes: List[_Write]) -> None:
        """Validate then apply ``writes`` as one atomic group and notify."""
        pending_creates: Set[Tuple[str, str]] = set()
        for kind, path, doc_id, _data, _merge in writes:
            key = (path, doc_id)
            if kind == "set":
                pending_creates.add(key)
            elif doc_id not in self._collections.get(path, {}) and key not in pending_creates:
                raise DocumentNotFoundError(path, doc_id)

        touched: List[Tuple[str, str]] = []
        for kind, path, doc_id, data, merge in writes:
            collection = self._collections.setdefault(path, {})
            if kind == "set" and not merge:
                document: Dict[str, Any] = {}
            else:
                document = collection.get(doc_id, {})
            apply_field_updates(document, copy.deepcopy(data))
            collection[doc_id] = document
            if (path, doc_id) not in touched:
                touched.append((path, doc_id))

        self.commit_count += 1
        self._notify(touched)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_document(self, path: str, doc_id: str) -> LiveStream[DocumentSnapshot]:
        key = (path, doc_id)

        def _unsubscribe(subscription: Subscription) -> None:
            watchers = self._document_watchers.get(key, [])
            if subscription in watchers:
                watchers.remove(subscription)
            if not watchers:
                self._document_watchers.pop(key, None)

        subscription: Subscription[DocumentSnapshot] = Subscription(on_close=_unsubscribe)
        self._document_watchers.setdefault(key, []).append(subscription)
        subscription.push(self._snapshot(path, doc_id))
        return subscription

    def subscribe_query(self, query: Query) -> LiveStream[QuerySnapshot]:
        entry_holder: List[Tuple[Query, Subscription]] = []

        def _unsubscribe(subscription: Subscription) -> None:
            watchers = self._query_watchers.get(query.collection, [])
            for entry in entry_holder:
                if entry in watchers:
                    watchers.remove(entry)
            if not watchers:
                self._query_watchers.pop(query.collection, None)

        subscription: Subscription[QuerySnapshot] = Subscription(on_close=_unsubscribe)
        entry = (query, subscription)
        entry_holder.append(entry)
        self._query_watchers.setdefault(query.collection, []).append(entry)
        subscription.push(QuerySnapshot(query=query, documents=self._run_query(query)))
        return subscription

    def subscriber_count(self) -> int:
        """Number of open document and query subscriptions."""
        return sum(len(w) for w in self._document_watchers.values()) + sum(
            len(w) for w in self._query_watchers.values()
        )

    def _notify(self, touched: List[Tuple[str, str]]) -> None:
        paths: List[str] = []
        for path, doc_id in touched:
            for subscription in list(self._document_watchers.get((path, doc_id), [])):
                subscription.push(self._snapshot(path, doc_id))
            if path not in paths:
                paths.append(path)

        for path in paths:
            for query, subscription in list(self._query_watchers.get(path, [])):
                subscription.push(QuerySnapshot(query=query, documents=self._run_query(query)))
        logger.debug("Notified subscribers for %d document(s)", len(touched))
