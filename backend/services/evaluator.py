"""AI-PM model calls.

Wraps the configured model connector with the assessment prompts and
validates every reply into typed models.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from app.exceptions import AIResponseParseError
from app.logging_config import get_logger
from services.assessment_types import AIResponse, ChatMessage, EvaluationReport, TodoState
from services.model_connector import BaseModelConnector, get_connector
from services.prompts import (
    AI_PM_SYSTEM_PROMPT,
    EVALUATION_REPORT_PROMPT,
    build_conversation_context,
    build_evaluation_context,
    extract_json,
)

logger = get_logger(__name__)


class AssessmentEvaluator:
    """Runs AI-PM chat turns and final evaluations against one connector."""

    def __init__(self, connector: BaseModelConnector | None = None) -> None:
        self.connector = connector or get_connector()

    async def process_ai_chat(
        self,
        messages: list[ChatMessage],
        todo_state: TodoState,
        candidate_message: str,
        code_files: dict[str, str] | None = None,
    ) -> AIResponse:
        """Ask the AI-PM for its next move."""
        context = build_conversation_context(messages, todo_state, code_files)
        user = (
            f"{context}\n\n**Candidate's Latest Message:**\n{candidate_message}"
            "\n\nRespond with JSON following the specified format."
        )

        logger.info(
            "ai_chat_request",
            message_count=len(messages),
            code_files=len(code_files or {}),
            provider=self.connector.provider,
        )
        text = await self.connector.generate_text(AI_PM_SYSTEM_PROMPT, user)

        try:
            return AIResponse.model_validate(extract_json(text))
        except PydanticValidationError as e:
            logger.warning("ai_chat_response_invalid", errors=e.error_count())
            raise AIResponseParseError("AI response did not match the expected format") from e

    async def generate_evaluation_report(
        self,
        messages: list[ChatMessage],
        todo_state: TodoState,
        final_code_files: dict[str, str] | None = None,
    ) -> EvaluationReport:
        """Produce the final report, stamped with the evaluation time (UTC)."""
        context = build_evaluation_context(messages, todo_state, final_code_files)
        user = f"{context}\n\nGenerate the final evaluation report as JSON following the specified format."

        text = await self.connector.generate_text(EVALUATION_REPORT_PROMPT, user)
        data = extract_json(text)
        if not isinstance(data, dict):
            raise AIResponseParseError("Evaluation report must be a JSON object")

        data.pop("evaluatedAt", None)
        data.pop("evaluated_at", None)
        try:
            report = EvaluationReport.model_validate(
                {**data, "evaluated_at": datetime.now(UTC).isoformat()}
            )
        except PydanticValidationError as e:
            logger.warning("evaluation_report_invalid", errors=e.error_count())
            raise AIResponseParseError("Evaluation report did not match the expected format") from e

        logger.info(
            "evaluation_report_generated",
            decision=report.hiring_decision.value,
            technical_score=report.technical_score,
        )
        return report
