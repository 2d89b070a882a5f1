"""Tests for AI-PM prompt context building and JSON extraction."""

import pytest

from app.exceptions import AIResponseParseError
from services.assessment_types import ChatMessage, Subtask, SubtaskStatus, TodoState
from services.prompts import (
    build_conversation_context,
    build_evaluation_context,
    extract_json,
)


def message(idx: int, sender: str = "candidate") -> ChatMessage:
    return ChatMessage(
        id=f"msg_{idx}",
        sender=sender,
        content=f"message {idx}",
        timestamp=f"2026-01-01T00:00:{idx:02d}Z",
    )


@pytest.fixture
def todo() -> TodoState:
    return TodoState(
        main_task="Build a login form",
        subtasks=[
            Subtask(id="s1", title="Validate input", status=SubtaskStatus.COMPLETED),
            Subtask(id="s2", title="Add a test", status=SubtaskStatus.SKIPPED),
            Subtask(id="s3", title="Style it"),
        ],
        completed_count=1,
    )


class TestConversationContext:
    def test_state_summary(self, todo):
        context = build_conversation_context([], todo)
        assert "- Main Task: Build a login form" in context
        assert "- Completed Tasks: 1/4" in context
        assert "- Subtasks: 3 (1 completed, 1 skipped)" in context

    def test_unassigned_main_task(self):
        context = build_conversation_context([], TodoState())
        assert "- Main Task: Not yet assigned" in context

    def test_only_last_ten_messages(self, todo):
        messages = [message(i) for i in range(12)]
        context = build_conversation_context(messages, todo)
        assert "[CANDIDATE]: message 1\n" not in context
        assert "[CANDIDATE]: message 2" in context
        assert context.rstrip().endswith("[CANDIDATE]: message 11")

    def test_code_files_appended(self, todo):
        context = build_conversation_context(
            [message(0, "ai")], todo, {"src/App.tsx": "export default App;"}
        )
        assert "[AI]: message 0" in context
        assert "**Code Files Submitted:**" in context
        assert "--- src/App.tsx ---\nexport default App;" in context


class TestEvaluationContext:
    def test_full_history_with_timestamps(self, todo):
        messages = [message(i) for i in range(12)]
        context = build_evaluation_context(messages, todo, {"a.py": "print(1)"})
        assert "- Total Subtasks Generated: 3" in context
        assert "- Skipped: 1" in context
        assert "[CANDIDATE] (2026-01-01T00:00:00Z):\nmessage 0" in context
        assert "**Final Code Submission:**" in context

    def test_no_files_block_without_files(self, todo):
        assert "Final Code Submission" not in build_evaluation_context([], todo)


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"message": "hi", "action": "issue_task"}')["action"] == "issue_task"

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"message": "hi"}\n```\nThanks'
        assert extract_json(text) == {"message": "hi"}

    def test_embedded_object(self):
        text = 'Sure! {"message": "hi", "terminate": false} Let me know.'
        assert extract_json(text) == {"message": "hi", "terminate": False}

    def test_broken_fenced_block_raises(self):
        with pytest.raises(AIResponseParseError):
            extract_json("```json\n{not json}\n```")

    def test_no_json_raises(self):
        with pytest.raises(AIResponseParseError, match="No valid JSON"):
            extract_json("I cannot answer that.")
