"""
MCP (Model Context Protocol) server for chatctx.

Exposes a process-wide ContextStore as tools, so an MCP client can keep a
token-bounded conversation memory and recall the turns relevant to a query.

Run as a stdio server:
    python -m chatctx.mcp_server

Or via the installed entry-point:
    chatctx-mcp

Configuration comes from the CHATCTX_* environment variables described in
:mod:`chatctx.config`.
"""

from __future__ import annotations

import json
import logging
import threading

from mcp.server.fastmcp import FastMCP

from .config import ContextConfig
from .errors import StoreError
from .logging import configure_logging
from .memory import ContextStore, Turn

logger = logging.getLogger(__name__)

# Lazily built so the tokenizer is only loaded when a tool is first used.
_store: ContextStore | None = None

# Insert/evict is not atomic against an interleaving caller.
_lock = threading.Lock()


def _get_store() -> ContextStore:
    global _store
    if _store is None:
        _store = ContextStore.from_config(ContextConfig.from_env())
    return _store


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "chatctx",
    instructions=(
        "Bounded conversation memory. "
        "Use `add_context` to remember a user, assistant or system message. "
        "Use `get_context` before answering to recall the most similar "
        "earlier messages. "
        "Use `reset_context` to forget the whole conversation. "
        "Use `context_stats` to see how much of the token budget is used."
    ),
)


@mcp.tool()
def add_context(content: str, role: str = "user") -> str:
    """
    Remember one conversation message.

    The oldest messages are forgotten when the token budget would be
    exceeded; an identical message that is still remembered is not stored
    twice.

    Args:
        content: The message text.
        role:    One of "user", "assistant" or "system".

    Returns:
        A confirmation message, or an error description.
    """
    try:
        turn = Turn(role, content)
    except ValueError:
        return f"Error: invalid role {role!r}."

    with _lock:
        try:
            added = _get_store().add_context(turn)
        except StoreError as exc:
            logger.warning("add_context failed: %s", exc)
            return f"Error: {exc}"
    return "Stored." if added else "Already remembered."


@mcp.tool()
def get_context(query: str, k: int = 5) -> str:
    """
    Recall the remembered messages most similar to *query*.

    Args:
        query: Text to compare against remembered messages.
        k:     Maximum number of messages to return (default 5).

    Returns:
        JSON array of {role, content} objects, closest first.
    """
    with _lock:
        try:
            turns = _get_store().get_relevant_context(query, k)
        except StoreError as exc:
            logger.warning("get_context failed: %s", exc)
            return f"Error: {exc}"
    if not turns:
        return "No context found."
    return json.dumps([t.as_message() for t in turns], indent=2)


@mcp.tool()
def reset_context() -> str:
    """Forget every remembered message."""
    global _store
    with _lock:
        _store = _get_store().reset()
    return "Context cleared."


@mcp.tool()
def context_stats() -> str:
    """
    Report memory usage.

    Returns:
        JSON object with turns, tokens, max_tokens, indexed, tombstones and
        capacity.
    """
    with _lock:
        return json.dumps(_get_store().stats(), indent=2)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    configure_logging(json_output=True)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
