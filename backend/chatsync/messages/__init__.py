"""Message lifecycle (sent -> delivered -> read) and unread counts."""
from .lifecycle import MessageLifecycle, SentMessage
from .schemas import Message, MessageStatus
from .unread import UnreadAggregator, count_unread

__all__ = [
    "Message",
    "MessageLifecycle",
    "MessageStatus",
    "SentMessage",
    "UnreadAggregator",
    "count_unread",
]
