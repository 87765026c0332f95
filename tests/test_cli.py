import json
import sys
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from loguru import logger

import script_remixer.utils.logger as logger_module
from script_remixer.cli import cli
from script_remixer.models import ChapterStatus

from conftest import OUTLINE, SCENE_TEXT, STYLE_REPORT, FakeClient


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("GEMINI_API_KEY", "API_KEY", "APP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    # Each invocation gets a fresh stderr from the runner.
    monkeypatch.setattr(logger_module, "_configured", False)
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake():
    client = FakeClient()
    with patch("script_remixer.cli.GeminiClient", return_value=client):
        yield client


def _write_config(tmp_path, api_key="test-key", password=""):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"""
gemini:
  api_key: "{api_key}"
generation:
  batch_delay_seconds: 0
  language: en
access:
  password: "{password}"
  session_file: {tmp_path / "access"}
""")
    return config_file


@pytest.fixture
def sample_config(tmp_path):
    return _write_config(tmp_path)


@pytest.fixture
def outline_file(tmp_path):
    path = tmp_path / "outline.txt"
    path.write_text(OUTLINE, encoding="utf-8")
    return path


@pytest.fixture
def session(tmp_path):
    return tmp_path / "session.json"


def _invoke(runner, config, *args, **kwargs):
    return runner.invoke(cli, ["-c", str(config), *args], catch_exceptions=False, **kwargs)


def _load(session):
    return json.loads(session.read_text(encoding="utf-8"))


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("style", "blueprint", "write", "refine", "export", "run"):
        assert command in result.output


def test_directors_command(runner, sample_config):
    result = _invoke(runner, sample_config, "directors")
    assert result.exit_code == 0
    assert "WONG_KAR_WAI" in result.output
    assert "CUSTOM" in result.output


def test_init_config(runner, tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "do-not-write")
    target = tmp_path / "new-config.yaml"
    result = _invoke(runner, tmp_path / "missing.yaml", "init-config", str(target))
    assert result.exit_code == 0
    assert target.exists()
    assert "do-not-write" not in target.read_text()


def test_missing_api_key(runner, tmp_path, session):
    config = _write_config(tmp_path, api_key="")
    result = _invoke(runner, config, "style", "-s", str(session))
    assert result.exit_code != 0
    assert "API key is missing" in result.output
    assert not session.exists()


def test_locked_workspace(runner, tmp_path, session, fake):
    config = _write_config(tmp_path, password="open-sesame")

    result = _invoke(runner, config, "status", "-s", str(session))
    assert result.exit_code != 0
    assert "locked" in result.output

    assert _invoke(runner, config, "directors").exit_code == 0

    result = _invoke(runner, config, "unlock", input="wrong\n")
    assert result.exit_code != 0

    result = _invoke(runner, config, "unlock", input="open-sesame\n")
    assert result.exit_code == 0
    assert _invoke(runner, config, "status", "-s", str(session)).exit_code == 0


def test_run_end_to_end(runner, sample_config, outline_file, session, tmp_path, fake):
    output = tmp_path / "script.txt"
    result = _invoke(
        runner, sample_config, "run",
        "--style", "ang_lee",
        "--outline", str(outline_file),
        "--character", "Mei|Salvage Pilot|Keeps every receipt",
        "--entropy", "1.1",
        "-o", str(output),
        "--yes",
        "-s", str(session),
    )
    assert result.exit_code == 0, result.output

    text = output.read_text(encoding="utf-8")
    assert "=== Scene 1: Arrival ===" in text
    assert "=== Scene 3: Departure ===" in text
    assert text.count(SCENE_TEXT) == 3

    state = _load(session)
    assert state["stage"] == "PRODUCTION"
    assert state["selected_style"] == "ANG_LEE"
    assert state["entropy"] == 1.1
    assert [c["name"] for c in state["characters"]] == ["Mei"]
    assert all(c["status"] == ChapterStatus.COMPLETED.value for c in state["chapters"])

    blueprint_call = next(c for c in fake.calls if c.schema is not None)
    assert "Mei (Salvage Pilot)" in blueprint_call.prompt
    assert blueprint_call.temperature == 1.1


def test_stepwise_session(runner, sample_config, outline_file, session, tmp_path, fake):
    def step(*args, **kwargs):
        result = _invoke(runner, sample_config, *args, "-s", str(session), **kwargs)
        assert result.exit_code == 0, result.output
        return result

    result = _invoke(runner, sample_config, "blueprint", "-s", str(session))
    assert result.exit_code != 0
    assert "Extract a style first" in result.output

    step("style", "--style", "EDWARD_YANG")
    assert _load(session)["style_dna"] == STYLE_REPORT

    step("blueprint", "--outline", str(outline_file))
    assert _load(session)["stage"] == "BLUEPRINT_REVIEW"

    step("write", "-n", "2")
    chapters = _load(session)["chapters"]
    assert [c["status"] for c in chapters] == ["pending", "completed", "pending"]
    assert _load(session)["current_chapter_id"] == 2

    step("refine", "-n", "2", "--note", "More rain.")
    assert _load(session)["chapters"][1]["content"] == "REVISED: " + SCENE_TEXT

    edited = tmp_path / "scene1.txt"
    edited.write_text("EXT. DOCK - DAWN\nMEI waits.", encoding="utf-8")
    step("edit", "-n", "1", "--file", str(edited))
    chapter_one = _load(session)["chapters"][0]
    assert chapter_one["content"] == "EXT. DOCK - DAWN\nMEI waits."
    assert chapter_one["status"] == "pending"

    result = step("status", "--bible")
    assert "PRODUCTION" in result.output

    output = tmp_path / "partial.txt"
    step("export", "-o", str(output))
    text = output.read_text(encoding="utf-8")
    assert "(not generated)" in text
    assert "MEI waits." in text

    step("reset", "--yes")
    state = _load(session)
    assert state["stage"] == "STYLE_INPUT"
    assert state["chapters"] == []
    assert state["outline"] == OUTLINE


def test_write_reports_failed_chapter(runner, sample_config, outline_file, session, fake):
    for args in (("style",), ("blueprint", "--outline", str(outline_file))):
        assert _invoke(runner, sample_config, *args, "-s", str(session)).exit_code == 0

    fake.fail_when = lambda prompt: "FULL script content for SEQUENCE 2:" in prompt
    result = _invoke(runner, sample_config, "write", "--all", "-s", str(session))
    assert result.exit_code == 0
    assert [c["status"] for c in _load(session)["chapters"]] == ["completed", "error", "completed"]

    fake.fail_when = None
    assert _invoke(runner, sample_config, "write", "-s", str(session)).exit_code == 0
    assert [c["status"] for c in _load(session)["chapters"]] == ["completed"] * 3


def test_invalid_entropy(runner, sample_config, outline_file, session, fake):
    assert _invoke(runner, sample_config, "style", "-s", str(session)).exit_code == 0
    result = runner.invoke(cli, [
        "-c", str(sample_config), "blueprint",
        "--outline", str(outline_file), "--entropy", "3", "-s", str(session),
    ])
    assert result.exit_code != 0
    assert "Entropy must be between" in result.output


def test_export_without_scenes(runner, sample_config, session):
    result = _invoke(runner, sample_config, "export", "-s", str(session))
    assert result.exit_code != 0
    assert "Nothing to export" in result.output


def test_run_starts_from_a_clean_session(runner, sample_config, outline_file, session, tmp_path, fake):
    corpus = tmp_path / "corpus.txt"
    corpus.write_text("STALE_MARKER " * 20, encoding="utf-8")
    first = _invoke(
        runner, sample_config, "run",
        "--style", "CUSTOM", "--corpus", str(corpus),
        "--outline", str(outline_file),
        "--character", "Mei|Salvage Pilot|Keeps every receipt",
        "--entropy", "1.3",
        "-o", str(tmp_path / "first.txt"), "--yes", "-s", str(session),
    )
    assert first.exit_code == 0, first.output

    second = _invoke(
        runner, sample_config, "run",
        "--style", "WONG_KAR_WAI",
        "--outline", str(outline_file),
        "-o", str(tmp_path / "second.txt"), "--yes", "-s", str(session),
    )
    assert second.exit_code == 0, second.output

    style_call = [c for c in fake.calls if c.action.startswith("StyleAnalyst")][-1]
    assert "STALE_MARKER" not in style_call.prompt
    blueprint_call = [c for c in fake.calls if c.schema is not None][-1]
    assert "Mei" not in blueprint_call.prompt
    assert blueprint_call.temperature == 0.7

    state = _load(session)
    assert state["custom_corpus"] == ""
    assert [c["name"] for c in state["characters"]] == [""]


def test_lock_command(runner, tmp_path, session):
    config = _write_config(tmp_path, password="open-sesame")
    assert _invoke(runner, config, "unlock", input="open-sesame\n").exit_code == 0
    assert _invoke(runner, config, "status", "-s", str(session)).exit_code == 0

    result = _invoke(runner, config, "lock")
    assert result.exit_code == 0
    assert not (tmp_path / "access").exists()
    assert _invoke(runner, config, "status", "-s", str(session)).exit_code != 0


def test_status_clear_error(runner, sample_config, outline_file, session, fake):
    for args in (("style",), ("blueprint", "--outline", str(outline_file))):
        assert _invoke(runner, sample_config, *args, "-s", str(session)).exit_code == 0
    fake.fail_when = lambda prompt: "FULL script content for SEQUENCE 1:" in prompt
    assert _invoke(runner, sample_config, "write", "-s", str(session)).exit_code == 0
    assert _load(session)["error"].startswith("Chapter 1 failed")

    result = _invoke(runner, sample_config, "status", "--clear-error", "-s", str(session))
    assert result.exit_code == 0
    assert "Chapter 1 failed" in result.output
    assert _load(session)["error"] is None
