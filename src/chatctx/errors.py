"""
Exception hierarchy for the context store.

Every failure the store can report derives from :class:`StoreError` so that
callers (the chat driver, the MCP tools) can log and carry on with a single
``except`` clause.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for all context-store failures."""


class TokenizationError(StoreError):
    """The tokenizer could not encode the given text."""


class VectorizationError(StoreError):
    """A tokenizer failure surfaced while building a vector."""


class CapacityExceeded(StoreError):
    """The approximate index has reached its declared point capacity."""

    def __init__(self, capacity: int) -> None:
        super().__init__(f"index capacity of {capacity} points exhausted")
        self.capacity = capacity
