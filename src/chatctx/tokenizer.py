"""
Tokenizer adapters.

The context store only needs two things from a tokenizer: the ordered token
ids of a string and the number of tokens in it.  Both must be deterministic
for a given text and model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .errors import TokenizationError

if TYPE_CHECKING:
    import tiktoken

#: Encoding used for models tiktoken does not know about (other providers).
DEFAULT_ENCODING: str = "cl100k_base"

#: Model assumed when none is configured.
DEFAULT_MODEL: str = "gpt-4o"


class Tokenizer(ABC):
    """Converts text into integer token ids."""

    @abstractmethod
    def token_ids(self, text: str) -> list[int]:
        """Return the token ids of *text*, in order."""

    def count(self, text: str) -> int:
        """Return the number of tokens in *text*."""
        return len(self.token_ids(text))


class TiktokenTokenizer(Tokenizer):
    """
    Tokenizer backed by tiktoken.

    The encoding is resolved from the model name on first use.  Names that
    tiktoken cannot map (e.g. models served by other providers) fall back to
    :data:`DEFAULT_ENCODING`.
    """

    def __init__(self, model: str = DEFAULT_MODEL) -> None:
        self.model = model
        self._encoding: tiktoken.Encoding | None = None

    @property
    def encoding(self) -> "tiktoken.Encoding":
        """
        The tiktoken encoding, loaded on first access.

        Loading may fetch the encoding file over the network; any failure is
        raised as :class:`TokenizationError`.
        """
        if self._encoding is None:
            import tiktoken

            try:
                try:
                    self._encoding = tiktoken.encoding_for_model(self.model)
                except KeyError:
                    self._encoding = tiktoken.get_encoding(DEFAULT_ENCODING)
            except Exception as exc:
                raise TokenizationError(
                    f"could not load the tiktoken encoding for {self.model!r}: {exc}"
                ) from exc
        return self._encoding

    def token_ids(self, text: str) -> list[int]:
        if not isinstance(text, str):
            raise TokenizationError(f"expected str, got {type(text).__name__}")
        encoding = self.encoding
        try:
            return list(encoding.encode(text))
        except Exception as exc:
            # ValueError for disallowed special tokens such as <|endoftext|>.
            raise TokenizationError(str(exc)) from exc

    def __repr__(self) -> str:
        return f"TiktokenTokenizer(model={self.model!r})"


def tokenizer_for_model(model: str | None = None) -> Tokenizer:
    """Return the tokenizer variant for a provider/model identifier."""
    return TiktokenTokenizer(model or DEFAULT_MODEL)
