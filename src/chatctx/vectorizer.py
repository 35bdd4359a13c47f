"""
Pseudo-embeddings derived from token ids.

:class:`TokenIdVectorizer` is not a semantic embedding: it writes the scaled
token ids of a text into a fixed-width vector.  It exists so the store can
run without an embedding model.  Anything implementing :class:`Vectorizer`
can replace it without touching the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .errors import TokenizationError, VectorizationError
from .tokenizer import Tokenizer

#: Divisor applied to every token id.
TOKEN_ID_SCALE: float = 100.0


class Vectorizer(ABC):
    """Maps text to a vector of fixed dimension."""

    dimension: int

    @abstractmethod
    def vectorize(self, content: str) -> list[float]:
        """Return the vector for *content*."""


class TokenIdVectorizer(Vectorizer):
    """
    ``vector[i] = token_ids[i] / TOKEN_ID_SCALE`` for ``i < dimension``.

    Longer token sequences are truncated; shorter ones leave trailing zeros.
    """

    def __init__(self, tokenizer: Tokenizer, dimension: int = 1536) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.tokenizer = tokenizer
        self.dimension = dimension

    def vectorize(self, content: str) -> list[float]:
        try:
            ids = self.tokenizer.token_ids(content)
        except TokenizationError as exc:
            raise VectorizationError(f"failed to vectorize text: {exc}") from exc

        vector = [0.0] * self.dimension
        for i, token_id in enumerate(ids[: self.dimension]):
            vector[i] = token_id / TOKEN_ID_SCALE
        return vector
