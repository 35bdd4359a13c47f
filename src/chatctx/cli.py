"""
Command-line interface for chatctx.

Sub-commands
------------
chat      – Interactive conversation with recalled context.
one-shot  – Ask a single question and exit.

Inside ``chat``, ``/reset`` forgets the conversation so far and ``/exit``
(or end of input) quits.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .chat import ChatModel, ChatSession, OpenAIChatModel
from .config import ChatConfig, ContextConfig
from .logging import LOG_LEVELS, configure_logging
from .memory import ContextStore

logger = logging.getLogger(__name__)


def _add_session_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-e",
        "--engine",
        dest="model",
        default=None,
        metavar="MODEL",
        help="Model to use (default: $CHATCTX_MODEL or gpt-4o).",
    )
    parser.add_argument(
        "-t",
        "--temperature",
        type=float,
        default=None,
        help="Response temperature (default: $CHATCTX_TEMPERATURE or 1.0).",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=None,
        metavar="N",
        help="Token budget of the remembered context (default: 4096).",
    )
    parser.add_argument(
        "-k",
        type=int,
        default=None,
        metavar="N",
        help="Number of earlier turns recalled per prompt (default: 5).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatctx",
        description="Chat with an LLM that remembers relevant earlier turns.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        metavar="LEVEL",
        help="One of DEBUG, INFO, WARNING, ERROR (default: WARNING).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # chat
    p_chat = sub.add_parser("chat", help="Start an interactive conversation.")
    _add_session_options(p_chat)

    # one-shot
    p_one = sub.add_parser("one-shot", help="Ask one question and exit.")
    p_one.add_argument("question", help="The question to ask.")
    _add_session_options(p_one)

    return parser


def _build_model(config: ChatConfig) -> ChatModel:
    return OpenAIChatModel.from_config(config)


def _build_session(args: argparse.Namespace) -> ChatSession:
    chat_config = ChatConfig.from_env()
    context_config = ContextConfig.from_env()
    if args.model:
        chat_config.model = context_config.model = args.model
    if args.temperature is not None:
        chat_config.temperature = args.temperature
    if args.max_tokens is not None:
        context_config.max_tokens = args.max_tokens
    if args.k is not None:
        context_config.k = args.k

    return ChatSession(
        ContextStore.from_config(context_config),
        _build_model(chat_config),
        model=chat_config.model,
        temperature=chat_config.temperature,
        k=context_config.k,
    )


def _repl(session: ChatSession) -> int:
    while True:
        print("\nYou: ", end="", flush=True)
        line = sys.stdin.readline()
        if not line:
            return 0
        prompt = line.strip()
        if not prompt:
            continue
        if prompt == "/exit":
            return 0
        if prompt == "/reset":
            session.reset()
            print("Context cleared.")
            continue
        try:
            reply = session.ask(prompt)
        except Exception as exc:  # provider errors must not end the session
            logger.exception("Model call failed")
            print(f"Error: {exc}", file=sys.stderr)
            continue
        print(f"Assistant: {reply}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        session = _build_session(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command == "chat":
        return _repl(session)

    elif args.command == "one-shot":
        try:
            reply = session.ask(args.question)
        except Exception as exc:
            logger.exception("Model call failed")
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(reply)

    return 0


if __name__ == "__main__":
    sys.exit(main())
