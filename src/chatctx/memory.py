"""
ContextStore: token-budgeted conversation memory with similarity recall.

The store keeps the live turns of a conversation in insertion order and
evicts the oldest ones whenever a new turn would push the total token count
past ``max_tokens``.  Every turn is also written into an approximate
nearest-neighbour index so the turns most similar to a new prompt can be
replayed to the model.

Usage example::

    from chatctx import ContextStore, Turn
    from chatctx.tokenizer import TiktokenTokenizer

    store = ContextStore(TiktokenTokenizer("gpt-4o"), max_tokens=4096)
    store.add_context(Turn("user", "My name is Alice."))
    store.add_context(Turn("assistant", "Nice to meet you, Alice."))

    for turn in store.get_relevant_context("What is my name?"):
        print(turn.role, turn.content)

Entry ids
---------
The index cannot delete points, but eviction removes turns from the front of
the history.  Index points are therefore keyed by an entry id that is
allocated once per insertion and never reused.  Evicted ids become
tombstones and are skipped when a query returns them, so a query result can
never resolve to a turn other than the one indexed under that id.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from .errors import CapacityExceeded, StoreError
from .index import DEFAULT_CAPACITY, ApproxIndex, ChromaIndex
from .tokenizer import Tokenizer, tokenizer_for_model
from .vectorizer import TokenIdVectorizer, Vectorizer

if TYPE_CHECKING:
    from .config import ContextConfig

logger = logging.getLogger(__name__)

IndexFactory = Callable[[int, int], ApproxIndex]


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One message of a conversation."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        if not isinstance(self.content, str):
            raise TypeError(f"content must be str, not {type(self.content).__name__}")

    @property
    def key(self) -> tuple[Role, str]:
        return (self.role, self.content)

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class _Entry:
    turn: Turn
    tokens: int


class ContextStore:
    """
    Bounded semantic memory of conversation turns.

    Parameters
    ----------
    tokenizer:
        Counts tokens for the budget and, through the default vectorizer,
        produces the vectors stored in the index.
    max_tokens:
        Token budget for all live turns together.
    dimension:
        Width of the vectors written to the index.
    capacity:
        Maximum number of points the index accepts over the store's
        lifetime.  Evicted turns still occupy their point.
    default_k:
        Number of turns returned by :meth:`get_relevant_context` when no
        ``k`` is given.
    vectorizer:
        Replaces :class:`TokenIdVectorizer`.  Its ``dimension`` must equal
        *dimension*.
    index_factory:
        ``factory(dimension, capacity)`` returning a fresh
        :class:`ApproxIndex`.  Defaults to :class:`ChromaIndex`.

    After :meth:`reset` the old instance is discarded: its index is released
    and any further call on it raises :class:`~chatctx.errors.StoreError`.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        *,
        max_tokens: int = 4096,
        dimension: int = 1536,
        capacity: int = DEFAULT_CAPACITY,
        default_k: int = 5,
        vectorizer: Vectorizer | None = None,
        index_factory: IndexFactory | None = None,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self.tokenizer = tokenizer
        self.max_tokens = max_tokens
        self.dimension = dimension
        self.capacity = capacity
        self.default_k = default_k
        self.vectorizer = vectorizer or TokenIdVectorizer(tokenizer, dimension)
        if self.vectorizer.dimension != dimension:
            raise ValueError(
                f"vectorizer dimension {self.vectorizer.dimension} != store dimension {dimension}"
            )
        self._index_factory = index_factory or ChromaIndex
        self._index = self._index_factory(dimension, capacity)

        self._live: OrderedDict[int, _Entry] = OrderedDict()
        self._live_keys: dict[tuple[Role, str], int] = {}
        self._tombstones: set[int] = set()
        self._next_id = 0
        self._current_tokens = 0
        self._discarded = False

    @classmethod
    def from_config(cls, config: "ContextConfig", **kwargs: Any) -> "ContextStore":
        """Build a store from a :class:`~chatctx.config.ContextConfig`."""
        return cls(
            tokenizer_for_model(config.model),
            max_tokens=config.max_tokens,
            dimension=config.dimension,
            capacity=config.capacity,
            default_k=config.k,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_context(self, turn: Turn) -> bool:
        """
        Remember *turn*, evicting the oldest turns to stay within budget.

        Returns ``False`` without changing anything when an identical turn
        (same role and content) is already live, ``True`` otherwise.

        Raises :class:`~chatctx.errors.VectorizationError` or
        :class:`~chatctx.errors.TokenizationError` if the text cannot be
        encoded and :class:`~chatctx.errors.CapacityExceeded` if the index
        is full.  In every failure case the store is left untouched.
        """
        self._check_active()
        if turn.key in self._live_keys:
            logger.debug("Skipping duplicate %s turn", turn.role.value)
            return False

        vector = self.vectorizer.vectorize(turn.content)
        tokens = self.tokenizer.count(turn.content)

        # Oldest-first run of entries that must go to fit the new turn.
        evict: list[int] = []
        remaining = self._current_tokens
        for old_id, entry in self._live.items():
            if remaining + tokens <= self.max_tokens:
                break
            evict.append(old_id)
            remaining -= entry.tokens

        entry_id = self._next_id
        try:
            self._index.insert(entry_id, vector)
        except CapacityExceeded:
            logger.warning(
                "Context index is full (%d points); turn not stored", self.capacity
            )
            raise
        self._next_id += 1

        for old_id in evict:
            self._evict(old_id)

        self._live[entry_id] = _Entry(turn, tokens)
        self._live_keys[turn.key] = entry_id
        self._current_tokens += tokens
        if self._current_tokens > self.max_tokens:
            logger.debug(
                "Turn %d alone exceeds the budget (%d > %d tokens)",
                entry_id,
                tokens,
                self.max_tokens,
            )
        return True

    def get_relevant_context(self, query: str, k: int | None = None) -> list[Turn]:
        """
        Return up to *k* live turns most similar to *query*, closest first.

        Index hits that point at evicted turns are skipped.
        """
        self._check_active()
        k = self.default_k if k is None else k
        if k <= 0 or not self._live:
            return []

        vector = self.vectorizer.vectorize(query)
        fetch_n = min(k + len(self._tombstones), len(self._index))
        results: list[Turn] = []
        for entry_id in self._index.query(vector, fetch_n):
            entry = self._live.get(entry_id)
            if entry is None:
                if entry_id not in self._tombstones:
                    raise StoreError(f"index returned unknown entry id {entry_id}")
                logger.debug("Skipping evicted entry %d", entry_id)
                continue
            results.append(entry.turn)
            if len(results) == k:
                break
        return results

    def reset(self) -> "ContextStore":
        """
        Return an empty store with the same configuration.

        The current index is released and this instance is marked discarded;
        calling it again raises :class:`~chatctx.errors.StoreError`.
        """
        self._check_active()
        fresh = ContextStore(
            self.tokenizer,
            max_tokens=self.max_tokens,
            dimension=self.dimension,
            capacity=self.capacity,
            default_k=self.default_k,
            vectorizer=self.vectorizer,
            index_factory=self._index_factory,
        )
        self._index.discard()
        self._discarded = True
        return fresh

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def current_tokens(self) -> int:
        return self._current_tokens

    @property
    def indexed_count(self) -> int:
        if self._discarded:
            return 0
        return len(self._index)

    @property
    def tombstone_count(self) -> int:
        return len(self._tombstones)

    def turns(self) -> list[Turn]:
        """Live turns, oldest first."""
        return [entry.turn for entry in self._live.values()]

    def stats(self) -> dict[str, int]:
        return {
            "turns": len(self._live),
            "tokens": self._current_tokens,
            "max_tokens": self.max_tokens,
            "indexed": self.indexed_count,
            "tombstones": self.tombstone_count,
            "capacity": self.capacity,
        }

    def __len__(self) -> int:
        return len(self._live)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_active(self) -> None:
        if self._discarded:
            raise StoreError("context store was reset; use the store returned by reset()")

    def _evict(self, entry_id: int) -> None:
        entry = self._live.pop(entry_id)
        del self._live_keys[entry.turn.key]
        self._tombstones.add(entry_id)
        self._current_tokens -= entry.tokens
        logger.debug("Evicted entry %d (%d tokens)", entry_id, entry.tokens)
