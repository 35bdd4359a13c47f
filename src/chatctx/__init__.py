"""
chatctx: A token-bounded semantic context store for LLM chat.

Remembers conversation turns within a token budget, skips duplicates, and
recalls the earlier turns most similar to a new prompt.
"""

from .errors import CapacityExceeded, StoreError, TokenizationError, VectorizationError
from .index import ApproxIndex, BruteForceIndex, ChromaIndex
from .memory import ContextStore, Role, Turn
from .tokenizer import TiktokenTokenizer, Tokenizer, tokenizer_for_model
from .vectorizer import TokenIdVectorizer, Vectorizer

__all__ = [
    "ApproxIndex",
    "BruteForceIndex",
    "CapacityExceeded",
    "ChromaIndex",
    "ContextStore",
    "Role",
    "StoreError",
    "TiktokenTokenizer",
    "TokenIdVectorizer",
    "TokenizationError",
    "Tokenizer",
    "Turn",
    "VectorizationError",
    "Vectorizer",
    "tokenizer_for_model",
]
