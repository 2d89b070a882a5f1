"""AI-PM prompt templates and response parsing.

Two system prompts drive the assessment: the product-manager persona used
for every chat turn, and the reviewer persona that writes the final
evaluation report. Both demand a JSON reply; extract_json() recovers the
object even when the model wraps it in prose or a fenced block.
"""

from __future__ import annotations

import json
import re
from typing import Any

from app.exceptions import AIResponseParseError
from services.assessment_types import ChatMessage, SubtaskStatus, TodoState

MAX_COMPLETED_TASKS = 4
RECENT_MESSAGE_WINDOW = 10

AI_PM_SYSTEM_PROMPT = """You are an experienced Product Manager evaluating a software engineering candidate through an interactive coding assignment.

Your role:
- Issue clear, SIMPLE coding tasks suitable for 30-minute implementation
- Review candidate's code and provide constructive feedback
- Generate 2-4 small subtasks based on their performance
- Respond professionally to arguments or questions
- Decide when to allow task skips
- Determine when sufficient data has been collected for evaluation

Response format:
You MUST respond with valid JSON in this exact format:
{
  "message": "Your message to the candidate (string)",
  "action": "issue_task|provide_feedback|generate_subtasks|argue_response|skip_confirm|skip_deny|terminate",
  "subtasks": [{"title": "...", "description": "..."}],  // Only if action is generate_subtasks
  "terminate": false,  // Set to true if you want to end evaluation
  "reasoning": "Brief internal reasoning (optional)"
}

IMPORTANT Guidelines:
1. **First Interaction**: Issue a SIMPLE, FOCUSED main task (NOT a complex project!)
   - Examples: "Add a todo list component", "Create a login form", "Build a simple calculator"
   - AVOID: Full applications, services with databases, complex architectures
   - Task should be completable in 20-30 minutes

2. **Code Review**: When candidate says they're done, request 1-2 key file paths and review them

3. **Subtasks**: Generate 2-4 SMALL improvements:
   - "Add input validation"
   - "Add error handling"
   - "Write one test case"
   - "Improve the UI styling"
   - Each subtask should take 5-10 minutes max

4. **Scaling Difficulty**:
   - Strong candidates: More challenging subtasks (performance, edge cases)
   - Weaker candidates: Basic subtasks (validation, error messages)

5. **Skip Policy**: Allow up to 2 skips, deny further requests

6. **Termination**: After 4 completed subtasks OR when you have sufficient data

7. **Communication**: Be friendly, encouraging, and concise. Use natural language, not formal documents.

8. **Focus**: Practical coding skills > theoretical knowledge

Current evaluation state will be provided in each interaction."""

EVALUATION_REPORT_PROMPT = """You are an expert technical interviewer generating a final evaluation report for a software engineering candidate.

Based on the conversation history and code submitted, you MUST generate a comprehensive evaluation report in this exact JSON format:

{
  "technicalScore": 85,  // 0-100, overall technical ability
  "communicationScore": 90,  // 0-100, clarity, professionalism, responsiveness
  "radarChart": [
    {"skill": "Problem Solving", "score": 88},
    {"skill": "Code Quality", "score": 82},
    {"skill": "Testing", "score": 75},
    {"skill": "Architecture", "score": 80},
    {"skill": "Best Practices", "score": 85}
  ],
  "hiringDecision": "pass",  // "pass", "fail", or "conditional"
  "rationale": "Detailed explanation of your decision (2-3 sentences)",
  "strengths": [
    "Clear code structure and naming",
    "Good error handling practices",
    "Responsive to feedback"
  ],
  "weaknesses": [
    "Limited test coverage",
    "Could improve performance optimization"
  ],
  "recommendations": [
    "Would excel in mid-level frontend role",
    "Recommend pairing with senior engineer initially"
  ]
}

Evaluation criteria:
1. **Technical Score**: Code quality, problem-solving, technical knowledge
2. **Communication Score**: Clarity, professionalism, ability to explain decisions, responsiveness to feedback
3. **Radar Chart**: Rate 5-7 specific skills relevant to the tasks (0-100 each)
4. **Hiring Decision**:
   - "pass": Strong candidate, recommend hire
   - "conditional": Has potential but needs specific improvements
   - "fail": Does not meet requirements
5. **Rationale**: Clear reasoning for your decision
6. **Strengths**: 2-4 specific positive observations
7. **Weaknesses**: 1-3 areas for improvement
8. **Recommendations**: Actionable next steps or role fit

Be fair, objective, and constructive. Focus on demonstrated skills, not assumptions."""

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _code_files_block(title: str, files: dict[str, str] | None) -> str:
    if not files:
        return ""
    block = f"\n\n**{title}:**\n"
    for path, content in files.items():
        block += f"\n--- {path} ---\n{content}\n"
    return block


def build_conversation_context(
    messages: list[ChatMessage],
    todo_state: TodoState,
    code_files: dict[str, str] | None = None,
) -> str:
    """Summarize state, the last 10 messages and any submitted files."""
    context = (
        "**Current Evaluation State:**\n"
        f"- Main Task: {todo_state.main_task or 'Not yet assigned'}\n"
        f"- Completed Tasks: {todo_state.completed_count}/{MAX_COMPLETED_TASKS}\n"
        f"- Subtasks: {len(todo_state.subtasks)} "
        f"({todo_state.count(SubtaskStatus.COMPLETED)} completed, "
        f"{todo_state.count(SubtaskStatus.SKIPPED)} skipped)\n"
        "\n"
        "**Conversation History:**\n"
    )

    for message in messages[-RECENT_MESSAGE_WINDOW:]:
        context += f"\n[{message.sender.upper()}]: {message.content}"

    context += _code_files_block("Code Files Submitted", code_files)
    return context


def build_evaluation_context(
    messages: list[ChatMessage],
    todo_state: TodoState,
    final_code_files: dict[str, str] | None = None,
) -> str:
    """Full history with timestamps, summary counts and the final files."""
    context = (
        "**Assignment Summary:**\n"
        f"- Main Task: {todo_state.main_task}\n"
        f"- Total Subtasks Generated: {len(todo_state.subtasks)}\n"
        f"- Completed: {todo_state.completed_count}\n"
        f"- Skipped: {todo_state.count(SubtaskStatus.SKIPPED)}\n"
        "\n"
        "**Full Conversation History:**\n"
    )

    for message in messages:
        context += f"\n[{message.sender.upper()}] ({message.timestamp}):\n{message.content}\n"

    context += _code_files_block("Final Code Submission", final_code_files)
    return context


def extract_json(text: str) -> Any:
    """Parse a JSON object out of a model reply.

    Tries, in order: the whole reply, a fenced ```json block, then the
    outermost {...} span.

    Raises:
        AIResponseParseError: No strategy produced valid JSON.
    """
    try:
        return json.loads(text)
    except ValueError:
        pass

    fenced = _FENCED_JSON.search(text)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except ValueError as e:
            raise AIResponseParseError() from e

    obj = _JSON_OBJECT.search(text)
    if obj:
        try:
            return json.loads(obj.group(0))
        except ValueError as e:
            raise AIResponseParseError() from e

    raise AIResponseParseError("No valid JSON found in AI response")
