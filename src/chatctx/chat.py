"""
Chat driver: turns a prompt plus recalled context into a model call.

Each :meth:`ChatSession.ask` recalls the turns most relevant to the prompt,
shapes them into a well-formed message list, calls the model, and feeds the
exchange back into the context store.  Store failures never abort a
conversation; they are logged and the prompt is answered without history.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .config import ChatConfig
from .errors import StoreError
from .memory import ContextStore, Role, Turn

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Message preparation
# ---------------------------------------------------------------------------


def combine_consecutive_messages(turns: Iterable[Turn]) -> list[Turn]:
    """Merge runs of turns that share a role into a single turn."""
    combined: list[Turn] = []
    for turn in turns:
        if combined and combined[-1].role == turn.role:
            previous = combined.pop()
            turn = Turn(turn.role, f"{previous.content}\n\n{turn.content}")
        combined.append(turn)
    return combined


def ensure_messages_alternate(turns: Iterable[Turn]) -> list[Turn]:
    """
    Order *turns* so that system turns come first and user/assistant turns
    strictly alternate, starting with a user turn.

    Leading assistant turns are dropped; a turn repeating the previous role
    is merged into it.
    """
    turns = list(turns)
    system = [t for t in turns if t.role is Role.SYSTEM]
    dialogue: list[Turn] = []
    for turn in turns:
        if turn.role is Role.SYSTEM:
            continue
        if not dialogue and turn.role is Role.ASSISTANT:
            continue
        dialogue.append(turn)
    return combine_consecutive_messages(system) + combine_consecutive_messages(dialogue)


def build_messages(
    history: Iterable[Turn],
    prompt: str,
    system_prompt: str | None = None,
) -> list[dict[str, str]]:
    """Return the provider message list for *prompt* given recalled *history*."""
    turns = list(history)
    if system_prompt:
        turns.insert(0, Turn(Role.SYSTEM, system_prompt))
    turns = ensure_messages_alternate(combine_consecutive_messages(turns))
    turns.append(Turn(Role.USER, prompt))
    return [t.as_message() for t in combine_consecutive_messages(turns)]


# ---------------------------------------------------------------------------
# Model clients
# ---------------------------------------------------------------------------


class ChatModel(Protocol):
    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> str: ...


class OpenAIChatModel:
    """Chat completions against any OpenAI-compatible endpoint."""

    def __init__(self, api_key: str, base_url: str | None = None) -> None:
        from openai import OpenAI

        kwargs = {"api_key": api_key}
        if base_url:
            kwargs["base_url"] = base_url
        self.client = OpenAI(**kwargs)

    @classmethod
    def from_config(cls, config: ChatConfig) -> "OpenAIChatModel":
        if not config.api_key:
            raise ValueError("an API key is required (set OPENAI_API_KEY)")
        return cls(config.api_key, config.base_url)

    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> str:
        completion = self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
        )
        return completion.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class ChatSession:
    """
    A conversation bound to one context store and one model client.

    Parameters
    ----------
    store:
        Memory of earlier turns.  Replaced wholesale by :meth:`reset`.
    model_client:
        Anything with a :class:`ChatModel` ``complete`` method.
    model, temperature:
        Forwarded to every completion call.
    k:
        Number of turns recalled per prompt; ``None`` uses the store default.
    remember:
        When false the store is only read, never written.
    """

    def __init__(
        self,
        store: ContextStore,
        model_client: ChatModel,
        *,
        model: str,
        temperature: float = 1.0,
        k: int | None = None,
        system_prompt: str | None = None,
        remember: bool = True,
    ) -> None:
        self.store = store
        self.model_client = model_client
        self.model = model
        self.temperature = temperature
        self.k = k
        self.system_prompt = system_prompt
        self.remember = remember

    def ask(self, prompt: str) -> str:
        """Answer *prompt*, using and then updating the context store."""
        history = self._recall(prompt)
        messages = build_messages(history, prompt, self.system_prompt)
        reply = self.model_client.complete(
            messages, model=self.model, temperature=self.temperature
        )
        if self.remember:
            self._remember(Turn(Role.USER, prompt))
            self._remember(Turn(Role.ASSISTANT, reply))
        return reply

    def reset(self) -> None:
        self.store = self.store.reset()

    def _recall(self, prompt: str) -> list[Turn]:
        try:
            return self.store.get_relevant_context(prompt, self.k)
        except StoreError as exc:
            logger.warning("Context lookup failed, answering without history: %s", exc)
            return []

    def _remember(self, turn: Turn) -> None:
        try:
            self.store.add_context(turn)
        except StoreError as exc:
            logger.warning("Could not store %s turn: %s", turn.role.value, exc)
