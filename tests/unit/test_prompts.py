"""Unit tests for prompt assembly limits."""

import pytest

from resumefit.llm.prompts import (
    MAX_CHAT_HISTORY_TURNS,
    MAX_HISTORY_TURN_CHARS,
    STRICT_RETRY_PREFIX,
    build_chat_prompt,
    build_strict_retry_prompt,
)
from resumefit.models import ChatTurn


@pytest.mark.unit
def test_short_history_turns_are_truncated():
    history = [ChatTurn(role="user", content="x" * 500), ChatTurn(role="assistant", content="ok")]

    prompt = build_chat_prompt("Shorten it", "Skills\nPython", "Requirements\nSQL", history)

    assert "user: " + "x" * MAX_HISTORY_TURN_CHARS + "\n" in prompt
    assert "x" * (MAX_HISTORY_TURN_CHARS + 1) not in prompt
    assert "assistant: ok" in prompt


@pytest.mark.unit
def test_long_history_keeps_latest_turns():
    history = [ChatTurn(role="user", content=f"turn-{i:02d}") for i in range(MAX_CHAT_HISTORY_TURNS + 5)]

    prompt = build_chat_prompt("Next", "Skills\nPython", "Requirements\nSQL", history)

    assert "turn-04" not in prompt
    assert "turn-05" in prompt
    assert f"turn-{MAX_CHAT_HISTORY_TURNS + 4:02d}" in prompt


@pytest.mark.unit
def test_strict_retry_wraps_original_prompt():
    assert build_strict_retry_prompt("body").startswith(STRICT_RETRY_PREFIX)
    assert build_strict_retry_prompt("body").endswith("body")
