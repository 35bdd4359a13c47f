"""
Runtime configuration.

Values come from, in priority order: constructor arguments, environment
variables, then the defaults below.

Environment variables:
    CHATCTX_MAX_TOKENS   - token budget of the context store (default: 4096)
    CHATCTX_DIMENSION    - vector dimension (default: 1536)
    CHATCTX_K            - turns recalled per prompt (default: 5)
    CHATCTX_CAPACITY     - index point capacity (default: 1000)
    CHATCTX_MODEL        - model name, also selects the tokenizer (default: gpt-4o)
    CHATCTX_TEMPERATURE  - sampling temperature (default: 1.0)
    OPENAI_BASE_URL      - OpenAI-compatible endpoint
    OPENAI_API_KEY       - API key for that endpoint
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .index import DEFAULT_CAPACITY
from .tokenizer import DEFAULT_MODEL


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    return int(raw) if raw not in (None, "") else default


@dataclass(slots=True)
class ContextConfig:
    """Settings of the context store."""

    max_tokens: int = 4096
    dimension: int = 1536
    k: int = 5
    capacity: int = DEFAULT_CAPACITY
    model: str = DEFAULT_MODEL

    def __post_init__(self) -> None:
        for name in ("max_tokens", "dimension", "k", "capacity"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ContextConfig":
        env = os.environ if env is None else env
        return cls(
            max_tokens=_env_int(env, "CHATCTX_MAX_TOKENS", 4096),
            dimension=_env_int(env, "CHATCTX_DIMENSION", 1536),
            k=_env_int(env, "CHATCTX_K", 5),
            capacity=_env_int(env, "CHATCTX_CAPACITY", DEFAULT_CAPACITY),
            model=env.get("CHATCTX_MODEL") or DEFAULT_MODEL,
        )


@dataclass(slots=True)
class ChatConfig:
    """Settings of the model provider."""

    model: str = DEFAULT_MODEL
    temperature: float = 1.0
    base_url: str | None = None
    api_key: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ChatConfig":
        env = os.environ if env is None else env
        temperature = env.get("CHATCTX_TEMPERATURE")
        return cls(
            model=env.get("CHATCTX_MODEL") or DEFAULT_MODEL,
            temperature=float(temperature) if temperature else 1.0,
            base_url=env.get("OPENAI_BASE_URL") or None,
            api_key=env.get("OPENAI_API_KEY") or None,
        )
