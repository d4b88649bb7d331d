"""Exception hierarchy for chatsync.

Only validation and authentication failures are surfaced to callers as a
matter of course. Presence, typing, display-name and delivered-transition
failures are logged and swallowed by the components that issue them.
"""
from enum import Enum


class ChatSyncError(Exception):
    """Base exception for chatsync errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotAuthenticatedError(ChatSyncError):
    """Raised when an operation needs a session and none exists."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class CredentialValidationError(ChatSyncError):
    """Raised for malformed credentials before any network attempt.

    Attributes:
        field: Which input failed (``"email"`` or ``"password"``).
    """

    def __init__(self, message: str, field: str):
        self.field = field
        super().__init__(message)


class AuthErrorKind(str, Enum):
    """Classification of a failed identity-provider call."""
    NETWORK = "network"
    DUPLICATE_ACCOUNT = "duplicate_account"
    WEAK_CREDENTIAL = "weak_credential"
    MALFORMED_INPUT = "malformed_input"
    DISABLED_ACCOUNT = "disabled_account"
    NOT_FOUND = "not_found"
    WRONG_CREDENTIAL = "wrong_credential"
    OPERATION_NOT_ALLOWED = "operation_not_allowed"
    UNCLASSIFIED = "unclassified"


class AuthenticationError(ChatSyncError):
    """Raised once retries against the identity provider are exhausted.

    Attributes:
        kind: Error classification.
        attempts: How many provider calls were made.
    """

    def __init__(self, kind: AuthErrorKind, message: str, attempts: int = 0):
        self.kind = kind
        self.attempts = attempts
        super().__init__(message)


class StoreError(ChatSyncError):
    """Base exception for document store failures."""


class DocumentNotFoundError(StoreError):
    """Raised when updating a document that does not exist."""

    def __init__(self, path: str, doc_id: str):
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"Document not found: {path}/{doc_id}")
