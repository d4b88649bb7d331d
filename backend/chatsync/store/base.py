"""Abstract DocumentStore interface.

Every backing database (the in-memory reference store, a hosted document
database adapter, ...) must implement this interface so the chat components
stay backend-agnostic. The store owns durability, per-document write ordering
and push delivery; chatsync layers chat semantics on top.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..streams import LiveStream
from .schemas import DocumentSnapshot, Query, QuerySnapshot


class WriteBatch(ABC):
    """A group of writes committed atomically.

    Either every write is applied or none is.
    """

    @abstractmethod
    def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        """Queue a full (or merged) document write."""

    @abstractmethod
    def update(self, path: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        """Queue a merge-update of an existing document."""

    @abstractmethod
    async def commit(self) -> None:
        """Apply all queued writes atomically.

        Raises:
            DocumentNotFoundError: If an ``update`` targets a missing
                document. Nothing is applied in that case.
        """


class DocumentStore(ABC):
    """Abstract base class for document stores.

    Attributes:
        honors_ordering: False when the backend may ignore ``Query.order_by``
            on filtered queries; callers that need an order must sort locally.
    """

    honors_ordering: bool = True

    @abstractmethod
    def generate_id(self) -> str:
        """Return a fresh, store-unique document id."""

    @abstractmethod
    async def get(self, path: str, doc_id: str) -> DocumentSnapshot:
        """Read a single document (``exists`` is False when absent)."""

    @abstractmethod
    async def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Write a document, replacing it unless ``merge`` is True."""

    @abstractmethod
    async def create_if_absent(self, path: str, doc_id: str, data: Dict[str, Any]) -> bool:
        """Create the document only if it does not exist.

        Returns:
            True if the document was created, False if it already existed.
        """

    @abstractmethod
    async def update(
        self,
        path: str,
        doc_id: str,
        data: Dict[str, Any],
        precondition: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Merge-update an existing document.

        Args:
            precondition: Field values the stored document must currently
                hold for the write to apply.

        Returns:
            True if applied, False if the precondition did not hold.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    async def query(self, query: Query) -> List[DocumentSnapshot]:
        """Run a one-shot query."""

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start a new atomic write batch."""

    @abstractmethod
    def subscribe_document(self, path: str, doc_id: str) -> LiveStream[DocumentSnapshot]:
        """Push the document's current state, then every change to it."""

    @abstractmethod
    def subscribe_query(self, query: Query) -> LiveStream[QuerySnapshot]:
        """Push the query's current result, then a new result on every change."""
