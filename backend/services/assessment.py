"""AI-PM Assessment Service.

Drives the chat-based coding assessment for one claimed assignment:

    claim -> send_message (repeat) -> complete_evaluation

Each chat turn appends the candidate message, asks the AI-PM for its next
move, applies that move to the todo state (main task, subtasks, skips,
completions) and records timeline events. The evaluation ends either when
the AI-PM terminates, when 4 tasks are completed, or when the candidate
asks for the final report.

All state lives in JSON columns on the candidate assignment row and is
replaced wholesale on every update.
"""

from __future__ import annotations

import time
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    AssessmentCompletedError,
    BadRequestError,
    CodeSyncError,
    ForbiddenError,
    ModelProviderError,
    NotFoundError,
)
from app.logging_config import get_logger
from app.metrics import ASSESSMENT_TURNS, EVALUATIONS_COMPLETED
from db.models import Assignment, CandidateAssignment
from db.repositories.assignments import AssignmentRepository
from db.repositories.jobs import JobRepository
from services.assessment_types import (
    AIAction,
    AIResponse,
    ChatIntent,
    ChatMessage,
    ChatMessageMetadata,
    EvaluationReport,
    HiringDecision,
    Subtask,
    SubtaskStatus,
    TimelineEvent,
    TodoState,
)
from services.evaluator import AssessmentEvaluator
from services.prompts import MAX_COMPLETED_TASKS
from services.raw_fetcher import RawFileFetcher
from services.role_recommendation import RoleRecommendation, recommend_role_from_evaluation

logger = get_logger(__name__)

MAX_SKIPS = 2
SUBMISSION_BRANCH = "user-submission"

DECISION_BY_HIRING = {
    HiringDecision.PASS: "proceed",
    HiringDecision.FAIL: "reject",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _event(title: str, description: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
    return TimelineEvent(
        id=f"event_{_now_ms()}_{uuid.uuid4().hex[:8]}",
        title=title,
        description=description,
        timestamp=_now_iso(),
        is_completed=True,
        metadata=metadata,
    ).model_dump(exclude_none=True)


def load_messages(value: Any) -> list[ChatMessage]:
    """Stored chat log; entries that fail validation are dropped."""
    if not isinstance(value, list):
        return []
    messages = []
    for item in value:
        try:
            messages.append(ChatMessage.model_validate(item))
        except ValueError:
            logger.warning("chat_message_invalid_dropped")
    return messages


def apply_ai_response(
    todo: TodoState,
    response: AIResponse,
    intent: ChatIntent = ChatIntent.MESSAGE,
    subtask_id: str | None = None,
) -> tuple[AIResponse, list[dict[str, Any]]]:
    """Apply one AI-PM move to the todo state in place.

    Returns the (possibly downgraded) response and the timeline events the
    move produced.
    """
    events: list[dict[str, Any]] = []

    if (
        intent == ChatIntent.SKIP
        and response.action == AIAction.SKIP_CONFIRM
        and todo.count(SubtaskStatus.SKIPPED) >= MAX_SKIPS
    ):
        response = response.model_copy(update={"action": AIAction.SKIP_DENY})

    if response.action == AIAction.ISSUE_TASK:
        if not todo.main_task:
            todo.main_task = response.message
        events.append(_event("Main task issued", "AI-PM assigned the main task"))

    if response.action == AIAction.GENERATE_SUBTASKS:
        drafts = response.subtasks or []
        stamp = _now_ms()
        todo.subtasks.extend(
            Subtask(
                id=f"subtask_{stamp}_{idx}",
                title=draft.title,
                description=draft.description,
                status=SubtaskStatus.PENDING,
            )
            for idx, draft in enumerate(drafts)
        )
        events.append(
            _event(
                f"Generated {len(drafts)} subtasks",
                "AI-PM created new subtasks based on code review",
            )
        )

    target = next(
        (s for s in todo.subtasks if s.id == subtask_id and s.status == SubtaskStatus.PENDING),
        None,
    )
    if target is not None:
        if intent == ChatIntent.COMPLETE and response.action not in (
            AIAction.SKIP_DENY,
            AIAction.ARGUE_RESPONSE,
        ):
            target.status = SubtaskStatus.COMPLETED
            todo.completed_count += 1
            events.append(
                _event(
                    "Subtask completed",
                    target.title,
                    {"subtaskId": target.id, "action": response.action.value},
                )
            )
        elif intent == ChatIntent.SKIP and response.action == AIAction.SKIP_CONFIRM:
            target.status = SubtaskStatus.SKIPPED
            events.append(
                _event(
                    "Subtask skipped",
                    target.title,
                    {"subtaskId": target.id, "action": response.action.value},
                )
            )

    return response, events


def should_terminate(todo: TodoState, response: AIResponse) -> bool:
    return (
        response.terminate
        or response.action == AIAction.TERMINATE
        or todo.completed_count >= MAX_COMPLETED_TASKS
    )


class AssessmentService:
    """Assignment templates and the candidate-side AI-PM chat."""

    def __init__(
        self,
        session: AsyncSession,
        fetcher: RawFileFetcher | None = None,
        evaluator: AssessmentEvaluator | None = None,
    ) -> None:
        self.jobs = JobRepository(session)
        self.assignments = AssignmentRepository(session)
        self.fetcher = fetcher or RawFileFetcher()
        self._evaluator = evaluator

    @property
    def evaluator(self) -> AssessmentEvaluator:
        if self._evaluator is None:
            self._evaluator = AssessmentEvaluator()
        return self._evaluator

    # --- Assignment templates ---

    async def get_by_job(self, job_id: int) -> Assignment | None:
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if not job.is_published:
            raise ForbiddenError("Job not published")
        return await self.jobs.get_assignment(job_id)

    async def upsert_for_job(
        self,
        hr_user_id: str,
        job_id: int,
        repo_template_url: str,
        instructions: str | None = None,
    ) -> Assignment:
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.hr_user_id != hr_user_id:
            raise ForbiddenError("Job not owned by this HR")
        return await self.jobs.upsert_assignment(job_id, repo_template_url, instructions)

    # --- Candidate flow ---

    async def claim(
        self, candidate_user_id: str, job_id: int, repo_url: str | None = None
    ) -> CandidateAssignment:
        """Claim the job's assignment; claiming twice returns the same row."""
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if not job.is_published:
            raise ForbiddenError("Job not published")

        assignment = await self.jobs.get_assignment(job_id)
        if assignment is None:
            raise NotFoundError("Assignment not found for this job")

        existing = await self.assignments.find(assignment.id, candidate_user_id)
        if existing is not None:
            return existing

        claimed = await self.assignments.create(
            CandidateAssignment(
                assignment_id=assignment.id,
                job_id=job_id,
                candidate_user_id=candidate_user_id,
                repo_url=repo_url,
                submission_branch=SUBMISSION_BRANCH,
                status="claimed",
                decision_status="pending",
                todo=TodoState().model_dump(),
                messages=[],
                timeline=[_event("Assignment claimed", f"Claimed assignment for job {job_id}")],
            )
        )
        logger.info("assignment_claimed", candidate_assignment_id=claimed.id, job_id=job_id)
        return claimed

    async def get_assignment(
        self, candidate_user_id: str, candidate_assignment_id: int
    ) -> CandidateAssignment:
        row = await self.assignments.get(candidate_assignment_id)
        if row is None:
            raise NotFoundError("Candidate assignment not found")
        if row.candidate_user_id != candidate_user_id:
            raise ForbiddenError("Not your assignment")
        return row

    async def _fetch_files(self, row: CandidateAssignment, paths: list[str] | None) -> dict[str, str] | None:
        if not paths or not row.repo_url:
            return None
        try:
            return await self.fetcher.fetch_multiple_files(row.repo_url, paths)
        except CodeSyncError as exc:
            logger.warning("code_files_unavailable", candidate_assignment_id=row.id, error=exc.code)
            return None

    async def send_message(
        self,
        candidate_user_id: str,
        candidate_assignment_id: int,
        message: str,
        file_paths: list[str] | None = None,
        subtask_id: str | None = None,
        intent: ChatIntent = ChatIntent.MESSAGE,
    ) -> tuple[ChatMessage, bool]:
        """Run one AI-PM chat turn.

        Returns:
            The AI message that was appended and whether the assessment
            should now terminate.
        """
        row = await self.get_assignment(candidate_user_id, candidate_assignment_id)
        if row.status == "completed":
            raise AssessmentCompletedError()

        messages = load_messages(row.messages)
        todo = TodoState.from_stored(row.todo)

        messages.append(
            ChatMessage(
                id=f"msg_{_now_ms()}_candidate",
                sender="candidate",
                content=message,
                timestamp=_now_iso(),
            )
        )

        code_files = await self._fetch_files(row, file_paths)

        try:
            response = await self.evaluator.process_ai_chat(messages, todo, message, code_files)
        except CodeSyncError:
            raise
        except Exception as exc:
            logger.error("ai_chat_failed", candidate_assignment_id=row.id, error=type(exc).__name__)
            raise ModelProviderError("ai", "Failed to get AI response") from exc

        response, events = apply_ai_response(todo, response, intent, subtask_id)
        ASSESSMENT_TURNS.labels(action=response.action.value).inc()

        ai_message = ChatMessage(
            id=f"msg_{_now_ms()}_ai",
            sender="ai",
            content=response.message,
            timestamp=_now_iso(),
            metadata=ChatMessageMetadata(
                action=response.action,
                subtasks_generated=len(response.subtasks) if response.subtasks else None,
                files_reviewed=file_paths,
            ),
        )
        messages.append(ai_message)

        await self.assignments.save(
            row,
            {
                "messages": [m.model_dump(mode="json", exclude_none=True) for m in messages],
                "todo": todo.model_dump(mode="json"),
                "status": "in_progress" if len(messages) <= 2 else row.status,
                "timeline": [*(row.timeline or []), *events],
            },
        )

        terminate = should_terminate(todo, response)
        logger.info(
            "assessment_message_processed",
            candidate_assignment_id=row.id,
            action=response.action.value,
            completed_count=todo.completed_count,
            should_terminate=terminate,
        )
        return ai_message, terminate

    async def complete_evaluation(
        self,
        candidate_user_id: str,
        candidate_assignment_id: int,
        final_file_paths: list[str] | None = None,
    ) -> EvaluationReport:
        """Generate the final report and close the assessment."""
        row = await self.get_assignment(candidate_user_id, candidate_assignment_id)
        if row.status == "completed":
            raise AssessmentCompletedError()

        messages = load_messages(row.messages)
        todo = TodoState.from_stored(row.todo)
        final_files = await self._fetch_files(row, final_file_paths)

        report = await self.evaluator.generate_evaluation_report(messages, todo, final_files)

        # "conditional" leaves the HR decision as it was
        decision = DECISION_BY_HIRING.get(report.hiring_decision, row.decision_status)
        event = _event(
            "Evaluation completed",
            f"Technical: {report.technical_score:g}/100, "
            f"Communication: {report.communication_score:g}/100",
        )

        await self.assignments.save(
            row,
            {
                "status": "completed",
                "decision_status": decision,
                "capability_stats": report.model_dump(mode="json"),
                "timeline": [*(row.timeline or []), event],
            },
        )

        EVALUATIONS_COMPLETED.labels(decision=report.hiring_decision.value).inc()
        logger.info(
            "evaluation_completed",
            candidate_assignment_id=row.id,
            decision=report.hiring_decision.value,
            decision_status=decision,
        )
        return report

    async def role_recommendation(
        self, candidate_user_id: str, candidate_assignment_id: int
    ) -> RoleRecommendation:
        """Role fit derived from the stored evaluation report."""
        row = await self.get_assignment(candidate_user_id, candidate_assignment_id)
        if not row.capability_stats:
            raise BadRequestError("Evaluation not completed yet")

        report = EvaluationReport.model_validate(row.capability_stats)
        return recommend_role_from_evaluation(
            [{"name": point.skill, "score": point.score} for point in report.radar_chart],
            overall_score=report.technical_score,
        )
