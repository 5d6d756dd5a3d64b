"""Tests for console logging helpers."""

from agent_office.logging_utils import (
    Color,
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_ERROR,
    LOG_TAG_INGEST,
    LOG_TAG_SUCCESS,
    colored,
    log_deterministic,
    log_error,
    log_ingest,
    log_success,
)


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.setenv("AGENT_OFFICE_NO_COLOR", "1")
    assert colored("hello", Color.BLUE) == "hello"


def test_colored_wraps_ansi_codes(monkeypatch):
    monkeypatch.delenv("AGENT_OFFICE_NO_COLOR", raising=False)
    text = colored("hello", Color.GREEN, bold=True)

    assert text.startswith(Color.BOLD.value + Color.GREEN.value)
    assert text.endswith(Color.RESET.value)
    assert "hello" in text


def test_log_helpers_prefix_tags(monkeypatch, capsys):
    monkeypatch.setenv("AGENT_OFFICE_NO_COLOR", "1")
    log_ingest("snapshot read")
    log_error("bad file")
    lines = capsys.readouterr().out.splitlines()

    assert lines == [f"{LOG_TAG_INGEST} snapshot read", f"{LOG_TAG_ERROR} bad file"]


def test_deterministic_and_success_tags(monkeypatch, capsys):
    monkeypatch.setenv("AGENT_OFFICE_NO_COLOR", "1")
    log_deterministic("3 agents heading to new zones")
    log_success("Office scene initialized")
    lines = capsys.readouterr().out.splitlines()

    assert lines == [
        f"{LOG_TAG_DETERMINISTIC} 3 agents heading to new zones",
        f"{LOG_TAG_SUCCESS} Office scene initialized",
    ]
