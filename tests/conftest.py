"""
Shared pytest fixtures for chatctx tests.

Uses ChromaDB in ephemeral (in-memory) mode and a deterministic fake
tokenizer so that tests run fast without downloading tiktoken encodings.
"""

from __future__ import annotations

import zlib

import chromadb
import pytest

from chatctx.errors import TokenizationError
from chatctx.index import BruteForceIndex, ChromaIndex
from chatctx.memory import ContextStore
from chatctx.tokenizer import Tokenizer

#: Small vectors keep the chroma-backed tests quick.
TEST_DIMENSION = 32


class FakeTokenizer(Tokenizer):
    """
    One token per whitespace-separated word, with the id derived from the
    word's CRC32.  Deterministic and offline.  Text containing the
    ``<|endoftext|>`` marker is rejected, like tiktoken does by default.
    """

    def token_ids(self, text: str) -> list[int]:
        if not isinstance(text, str) or "<|endoftext|>" in text:
            raise TokenizationError("disallowed special token")
        return [zlib.crc32(word.encode()) % 50_000 + 1 for word in text.split()]


def words(n: int, tag: str) -> str:
    """Return text of exactly *n* fake tokens, unique per *tag*."""
    return " ".join(f"{tag}{i}" for i in range(n))


# A single shared EphemeralClient instance for the test session.
# Each ChromaIndex creates a uniquely named collection so tests are isolated.
_EPHEMERAL_CLIENT = chromadb.EphemeralClient()


def chroma_factory(dimension: int, capacity: int) -> ChromaIndex:
    return ChromaIndex(dimension, capacity, _client=_EPHEMERAL_CLIENT)


INDEX_FACTORIES = {
    "brute": BruteForceIndex,
    "chroma": chroma_factory,
}


@pytest.fixture()
def tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture(params=sorted(INDEX_FACTORIES))
def index_factory(request):
    """Every store-level test runs against both index backends."""
    return INDEX_FACTORIES[request.param]


@pytest.fixture()
def make_store(tokenizer, index_factory):
    """Factory for stores with a small budget and the parametrised index."""

    def _make(max_tokens: int = 20, capacity: int = 50, default_k: int = 5) -> ContextStore:
        return ContextStore(
            tokenizer,
            max_tokens=max_tokens,
            dimension=TEST_DIMENSION,
            capacity=capacity,
            default_k=default_k,
            index_factory=index_factory,
        )

    return _make


@pytest.fixture()
def store(make_store) -> ContextStore:
    return make_store()
