"""Error types shared across xmrwatch."""

from __future__ import annotations


class XmrWatchError(Exception):
    """Base class for all xmrwatch errors."""


class StartupError(XmrWatchError):
    """The service cannot start (no initial price or no database)."""


class FetchError(XmrWatchError):
    """The remote price source was unreachable or returned garbage."""


class PersistenceError(XmrWatchError):
    """Writing a subscriber record to the store failed."""

    def __init__(self, message: str = "failed to save alerts") -> None:
        super().__init__(message)


class InvalidParameters(XmrWatchError, ValueError):
    def __init__(self, message: str = "invalid parameters") -> None:
        super().__init__(message)


class IndexOutOfRange(XmrWatchError, IndexError):
    def __init__(self, index: int) -> None:
        super().__init__(f"index {index} out of range")
        self.index = index


class DeliveryFailure(XmrWatchError):
    """A message could not be handed to the chat transport."""


__all__ = [
    "XmrWatchError",
    "StartupError",
    "FetchError",
    "PersistenceError",
    "InvalidParameters",
    "IndexOutOfRange",
    "DeliveryFailure",
]
