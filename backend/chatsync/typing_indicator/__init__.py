"""Typing signals with a freshness window and keystroke debouncing."""
from .coordinator import TypingCoordinator, TypingSession

__all__ = ["TypingCoordinator", "TypingSession"]
