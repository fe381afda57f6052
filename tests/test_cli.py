from __future__ import annotations

import asyncio
import sys
from types import SimpleNamespace

import pytest

from tibetscribe import cli
from tibetscribe.config_loader import DEFAULT_CONFIG
from tibetscribe.gemini import GeminiClient


class EchoModels:
    """Answers every request with the same text."""

    def __init__(self, text: str):
        self.text = text
        self.requests = []

    async def generate_content(self, model, contents, config=None):
        self.requests.append((model, contents, config))
        return SimpleNamespace(text=self.text)


@pytest.fixture
def echo(monkeypatch):
    models = EchoModels("Hello brave world")
    stub = SimpleNamespace(aio=SimpleNamespace(models=models))
    monkeypatch.setattr(cli, "GeminiClient", lambda api_key_env: GeminiClient(client=stub))
    return models


def execute(argv):
    handler = cli.CLIHandler()
    args = handler.parser.parse_args(argv)
    return asyncio.run(handler._execute(args, dict(DEFAULT_CONFIG), [], handler._read_text_input(args)))


def test_text_and_text_file_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        cli.CLIHandler().parser.parse_args(["--text", "ཀ", "--text-file", "in.txt"])


def test_text_run_prints_transcription_translation_and_explanation(echo, capsys) -> None:
    exit_code = execute(["--text", "Hello brave world", "--explain", "brave", "-q", "50"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "=== Tibetan Transcription ===\nHello brave world" in out
    assert "=== English Translation ===" in out
    assert "=== Explanation of Selected Phrase ===" in out
    # translate + explain; the image stages are skipped
    assert len(echo.requests) == 2


def test_unknown_phrase_fails_the_run(echo, capsys) -> None:
    assert execute(["--text", "Hello brave world", "--alternates", "missing"]) == 1
    assert "Alternate Translations" not in capsys.readouterr().out


def test_text_file_input(echo, tmp_path, capsys) -> None:
    source = tmp_path / "input.txt"
    source.write_text("Hello brave world", encoding="utf-8")

    assert execute(["--text-file", str(source)]) == 0
    assert "Hello brave world" in capsys.readouterr().out


def test_run_exits_when_config_is_missing(monkeypatch, tmp_path, restore_logging) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["tibetscribe", "--text", "ཀ", "-c", "absent.yaml"])
    with pytest.raises(SystemExit) as excinfo:
        cli.CLIHandler().run()
    assert excinfo.value.code == 1


def test_run_rejects_out_of_range_quality(monkeypatch, tmp_path, restore_logging) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("log_dir: logs\n", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["tibetscribe", "--text", "ཀ", "-q", "150"])
    with pytest.raises(SystemExit) as excinfo:
        cli.CLIHandler().run()
    assert excinfo.value.code == 1


def test_run_end_to_end_with_text(echo, monkeypatch, tmp_path, restore_logging, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("quality_level: 0\n", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["tibetscribe", "--text", "ཀ་ཁ་"])

    with pytest.raises(SystemExit) as excinfo:
        cli.CLIHandler().run()

    assert excinfo.value.code == 0
    assert "=== English Translation ===\nHello brave world" in capsys.readouterr().out
    _, _, config = echo.requests[0]
    assert config.thinking_config.thinking_budget == 128
    assert (tmp_path / "logs" / "tibetscribe.log").exists()
