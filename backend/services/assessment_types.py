"""AI-PM assessment data types.

Everything here is stored as JSON on the candidate assignment row, so all
models round-trip through model_dump() / model_validate(). Model replies
use camelCase keys for the evaluation report; both spellings are accepted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AIAction(str, Enum):
    ISSUE_TASK = "issue_task"
    PROVIDE_FEEDBACK = "provide_feedback"
    GENERATE_SUBTASKS = "generate_subtasks"
    ARGUE_RESPONSE = "argue_response"
    SKIP_CONFIRM = "skip_confirm"
    SKIP_DENY = "skip_deny"
    TERMINATE = "terminate"


class SubtaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class HiringDecision(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    CONDITIONAL = "conditional"


class ChatIntent(str, Enum):
    """What the candidate says a message is for."""

    MESSAGE = "message"
    COMPLETE = "complete"
    SKIP = "skip"


def _clamp_score(value: Any) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return 0
    return max(0, min(100, value))


class Subtask(BaseModel):
    id: str
    title: str
    description: str = ""
    status: SubtaskStatus = SubtaskStatus.PENDING


class TodoState(BaseModel):
    main_task: str = ""
    subtasks: list[Subtask] = Field(default_factory=list)
    completed_count: int = 0

    @classmethod
    def from_stored(cls, value: Any) -> TodoState:
        """Load stored todo JSON; legacy lists and malformed values become empty."""
        if not isinstance(value, dict):
            return cls()
        aliases = {
            "main_task": value.get("main_task", value.get("mainTask")),
            "subtasks": value.get("subtasks"),
            "completed_count": value.get("completed_count", value.get("completedCount")),
        }
        try:
            return cls.model_validate({k: v for k, v in aliases.items() if v is not None})
        except ValueError:
            return cls()

    def count(self, status: SubtaskStatus) -> int:
        return sum(1 for subtask in self.subtasks if subtask.status == status)


class ChatMessageMetadata(BaseModel):
    action: AIAction | None = None
    subtasks_generated: int | None = None
    files_reviewed: list[str] | None = None


class ChatMessage(BaseModel):
    id: str
    sender: Literal["ai", "candidate"]
    content: str
    timestamp: str
    metadata: ChatMessageMetadata | None = None


class SubtaskDraft(BaseModel):
    title: str
    description: str = ""


class AIResponse(BaseModel):
    """Structured reply the AI-PM model must produce for every turn."""

    message: str
    action: AIAction
    subtasks: list[SubtaskDraft] | None = None
    terminate: bool = False
    reasoning: str | None = None

    @field_validator("terminate", mode="before")
    @classmethod
    def _none_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class RadarDataPoint(BaseModel):
    skill: str
    score: float

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        return _clamp_score(v)


class EvaluationReport(BaseModel):
    """Final report produced once the assessment ends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    technical_score: float
    communication_score: float
    radar_chart: list[RadarDataPoint] = Field(default_factory=list)
    hiring_decision: HiringDecision
    rationale: str = ""
    evaluated_at: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("technical_score", "communication_score", mode="before")
    @classmethod
    def _clamp_scores(cls, v: Any) -> float:
        return _clamp_score(v)

    @field_validator("hiring_decision", mode="before")
    @classmethod
    def _lowercase_decision(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class TimelineEvent(BaseModel):
    id: str
    title: str
    description: str
    timestamp: str
    is_completed: bool = True
    metadata: dict[str, Any] | None = None
