"""
Nearest-neighbour indexes over fixed-dimension vectors.

Both implementations rank by cosine distance::

    distance = 1 - cosine_similarity   ∈ [0, 2]

Points can be added but never removed, mirroring HNSW graphs, which are not
efficiently mutable.  Callers that need to forget an entry must track that
themselves (the context store keeps tombstones for this).
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Sequence

import chromadb
import numpy as np

from .errors import CapacityExceeded

#: Default maximum number of points per index.
DEFAULT_CAPACITY: int = 1000


class ApproxIndex(ABC):
    """
    Bounded, insert-only k-nearest-neighbour index.

    Subclasses implement :meth:`_add`, :meth:`_search` and ``__len__``; the
    base class enforces the dimension, id-uniqueness and capacity rules so
    every backend fails the same way.
    """

    def __init__(self, dimension: int, capacity: int = DEFAULT_CAPACITY) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.dimension = dimension
        self.capacity = capacity
        self._ids: set[int] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def insert(self, id: int, vector: Sequence[float]) -> None:
        """
        Add a point under *id*.

        Raises :class:`CapacityExceeded` once ``capacity`` points are
        stored, and ``ValueError`` for a reused id or a vector of the wrong
        dimension.  Nothing is written when any of these fire.
        """
        if len(vector) != self.dimension:
            raise ValueError(
                f"expected a vector of dimension {self.dimension}, got {len(vector)}"
            )
        if id in self._ids:
            raise ValueError(f"id {id} is already indexed")
        if len(self) >= self.capacity:
            raise CapacityExceeded(self.capacity)
        self._add(id, vector)
        self._ids.add(id)

    def query(self, vector: Sequence[float], k: int) -> list[int]:
        """Return up to *k* ids ordered by increasing distance to *vector*."""
        n = min(k, len(self))
        if n <= 0:
            return []
        if len(vector) != self.dimension:
            raise ValueError(
                f"expected a vector of dimension {self.dimension}, got {len(vector)}"
            )
        return self._search(vector, n)

    @property
    def is_full(self) -> bool:
        return len(self) >= self.capacity

    def discard(self) -> None:
        """Release backend resources once the index is no longer used."""

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _add(self, id: int, vector: Sequence[float]) -> None: ...

    @abstractmethod
    def _search(self, vector: Sequence[float], n: int) -> list[int]: ...

    @abstractmethod
    def __len__(self) -> int: ...


class ChromaIndex(ApproxIndex):
    """
    HNSW index held in an in-memory ChromaDB collection.

    Each instance owns a uniquely named collection, so several indexes can
    share one client without seeing each other's points.
    """

    def __init__(
        self,
        dimension: int,
        capacity: int = DEFAULT_CAPACITY,
        _client: chromadb.ClientAPI | None = None,
    ) -> None:
        super().__init__(dimension, capacity)
        self.client = _client or chromadb.EphemeralClient()
        self.collection = self.client.get_or_create_collection(
            name=f"context_{uuid.uuid4().hex}",
            embedding_function=None,
            metadata={"hnsw:space": "cosine"},
        )

    def _add(self, id: int, vector: Sequence[float]) -> None:
        self.collection.add(ids=[str(id)], embeddings=[list(vector)])

    def _search(self, vector: Sequence[float], n: int) -> list[int]:
        result = self.collection.query(
            query_embeddings=[list(vector)],
            n_results=n,
            include=["distances"],
        )
        return [int(i) for i in result["ids"][0]]

    def __len__(self) -> int:
        return self.collection.count()

    def discard(self) -> None:
        self.client.delete_collection(self.collection.name)


class BruteForceIndex(ApproxIndex):
    """
    Exact cosine scan with numpy.

    Linear in the number of points, which is fine for short chat histories.
    Ties keep insertion order.
    """

    def __init__(self, dimension: int, capacity: int = DEFAULT_CAPACITY) -> None:
        super().__init__(dimension, capacity)
        self._keys: list[int] = []
        self._rows: list[np.ndarray] = []

    def _add(self, id: int, vector: Sequence[float]) -> None:
        self._keys.append(id)
        self._rows.append(np.asarray(vector, dtype=np.float64))

    def _search(self, vector: Sequence[float], n: int) -> list[int]:
        matrix = np.vstack(self._rows)
        query = np.asarray(vector, dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        similarity = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        distances = 1.0 - similarity

        order = np.argsort(distances, kind="stable")[:n]
        return [self._keys[i] for i in order]

    def __len__(self) -> int:
        return len(self._keys)
