"""Tests for the CLI entry point."""

from __future__ import annotations

import io
import logging

import pytest

import chatctx.cli as cli_module
from chatctx.cli import main
from conftest import FakeTokenizer


class ScriptedModel:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def complete(self, messages, *, model, temperature):
        self.prompts.append(messages[-1]["content"])
        return f"echo: {messages[-1]['content']}"


class FailingModel:
    def complete(self, messages, *, model, temperature):
        raise RuntimeError("provider unavailable")


@pytest.fixture()
def offline(monkeypatch):
    """
    Keep the CLI offline: fake tokenizer, small vectors, no logging
    reconfiguration of the test process.
    """
    monkeypatch.setattr(
        "chatctx.memory.tokenizer_for_model", lambda model=None: FakeTokenizer()
    )
    monkeypatch.setattr(cli_module, "configure_logging", lambda level: None)
    monkeypatch.setenv("CHATCTX_DIMENSION", "16")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


@pytest.fixture()
def model(offline, monkeypatch) -> ScriptedModel:
    model = ScriptedModel()
    monkeypatch.setattr(cli_module, "_build_model", lambda config: model)
    return model


class TestCLI:
    def test_one_shot_prints_reply(self, model, capsys):
        rc = main(["one-shot", "hello there"])
        assert rc == 0
        assert capsys.readouterr().out.strip() == "echo: hello there"

    def test_one_shot_model_error_returns_1(self, offline, monkeypatch, capsys):
        monkeypatch.setattr(cli_module, "_build_model", lambda config: FailingModel())
        rc = main(["one-shot", "hello"])
        assert rc == 1
        assert "provider unavailable" in capsys.readouterr().err

    def test_missing_api_key_returns_1(self, offline, monkeypatch, capsys):
        monkeypatch.delenv("OPENAI_API_KEY")
        rc = main(["one-shot", "hello"])
        assert rc == 1
        assert "API key" in capsys.readouterr().err

    def test_chat_repl(self, model, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("first\n\n/reset\nsecond\n/exit\nignored\n"))
        rc = main(["chat", "-e", "gpt-4o-mini", "-t", "0.3", "-k", "2"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "Assistant: echo: first" in out
        assert "Context cleared." in out
        assert model.prompts == ["first", "second"]

    def test_chat_ends_on_eof(self, model, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("only\n"))
        assert main(["chat"]) == 0
        assert "Assistant: echo: only" in capsys.readouterr().out

    def test_chat_survives_model_errors(self, offline, monkeypatch, capsys):
        monkeypatch.setattr(cli_module, "_build_model", lambda config: FailingModel())
        monkeypatch.setattr("sys.stdin", io.StringIO("one\ntwo\n"))
        assert main(["chat"]) == 0
        err = capsys.readouterr().err
        assert len([line for line in err.splitlines() if line.startswith("Error: ")]) == 2

    def test_options_reach_the_session(self, model, monkeypatch):
        sessions = []
        build = cli_module._build_session

        def spy(args):
            session = build(args)
            sessions.append(session)
            return session

        monkeypatch.setattr(cli_module, "_build_session", spy)
        main(["one-shot", "-e", "gpt-4o-mini", "-t", "0.1", "--max-tokens", "64", "-k", "3", "q"])

        session = sessions[0]
        assert session.model == "gpt-4o-mini"
        assert session.temperature == 0.1
        assert session.k == 3
        assert session.store.max_tokens == 64
        assert session.store.dimension == 16

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            main([])

    def test_unknown_log_level_is_rejected(self, model, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "verbose", "one-shot", "hi"])
        assert exc_info.value.code == 2
        assert "invalid choice" in capsys.readouterr().err
        assert model.prompts == []

    def test_log_level_is_case_insensitive(self, model, monkeypatch):
        levels = []
        monkeypatch.setattr(cli_module, "configure_logging", levels.append)
        assert main(["--log-level", "debug", "one-shot", "hi"]) == 0
        assert levels == ["DEBUG"]


class TestConfigureLogging:
    def test_configures_root_logger(self):
        from chatctx.logging import configure_logging

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("debug", json_output=True)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert logging.getLogger("chromadb").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_unknown_level_rejected(self):
        from chatctx.logging import configure_logging

        with pytest.raises(ValueError):
            configure_logging("verbose")
