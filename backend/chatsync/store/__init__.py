"""Document store port.

Provides the abstract ``DocumentStore`` the chat components are written
against, plus an in-memory implementation with push subscriptions.
"""
from .base import DocumentStore, WriteBatch
from .memory import InMemoryDocumentStore
from .schemas import DELETE_FIELD, DocumentSnapshot, FieldFilter, Query, QuerySnapshot

__all__ = [
    "DELETE_FIELD",
    "DocumentSnapshot",
    "DocumentStore",
    "FieldFilter",
    "InMemoryDocumentStore",
    "Query",
    "QuerySnapshot",
    "WriteBatch",
]
