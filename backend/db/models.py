"""Database models for CodeSync.

Users live in the upstream identity provider; tables reference them by
their opaque string id. JSON payloads (tech stacks, chat logs, todo state,
evaluation reports) use the generic JSON type so the same metadata runs on
PostgreSQL and on SQLite in tests.

JSON columns are replaced, never mutated in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ApplicationStatus(str, Enum):
    """Lifecycle of a candidate's application to a job."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FLAGGED = "flagged"
    PROCEED = "proceed"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    EXPIRED = "expired"


# HR decisions that automated flows must never overwrite
FINAL_DECISIONS = {
    ApplicationStatus.PROCEED.value,
    ApplicationStatus.REJECTED.value,
    ApplicationStatus.WAITLISTED.value,
}

# Statuses a candidate may set on their own application
CANDIDATE_STATUSES = {
    ApplicationStatus.NOT_STARTED.value,
    ApplicationStatus.IN_PROGRESS.value,
    ApplicationStatus.COMPLETED.value,
}


class CandidateProfile(Base):
    """GitHub identity a candidate registered; the start of every analysis."""

    __tablename__ = "candidate_profiles"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    github_login: Mapped[str] = mapped_column(String(255), nullable=False)
    github_url: Mapped[str] = mapped_column(Text, nullable=False)
    preferred_culture: Mapped[str | None] = mapped_column(Text)
    last_analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<CandidateProfile(user_id={self.user_id})>"


class RepoAnalysis(Base):
    """Result of analyzing one public repository for a candidate."""

    __tablename__ = "repo_analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    repo_full_name: Mapped[str] = mapped_column(Text, nullable=False)
    tech_stack: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    signals: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    rationale: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    readme_excerpt: Mapped[str | None] = mapped_column(Text)
    domain_tags: Mapped[list[str] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<RepoAnalysis(id={self.id}, repo={self.repo_full_name})>"


class Job(Base):
    """A role posted by an HR user with weighted stack requirements."""

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hr_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    role_type: Mapped[str | None] = mapped_column(String(50))
    seniority: Mapped[str | None] = mapped_column(String(50))
    required_stacks: Mapped[dict[str, float]] = mapped_column(JSON, nullable=False)
    match_threshold: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, title={self.title}, published={self.is_published})>"


class Assignment(Base):
    """The coding assignment template attached to a job."""

    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    repo_template_url: Mapped[str] = mapped_column(Text, nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class JobMatch(Base):
    """A candidate's match / application against one job for one repository."""

    __tablename__ = "job_matches"
    __table_args__ = (
        UniqueConstraint("job_id", "candidate_user_id", "repo_full_name", name="job_match_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    candidate_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    analysis_id: Mapped[int | None] = mapped_column(ForeignKey("repo_analyses.id"), index=True)
    repo_full_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ApplicationStatus.COMPLETED.value, nullable=False, index=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    rationale: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow
    )


class CandidateTrackSelection(Base):
    """Track chosen by a candidate for one analysis."""

    __tablename__ = "candidate_track_selections"
    __table_args__ = (
        UniqueConstraint("candidate_user_id", "analysis_id", name="candidate_track_selection_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    analysis_id: Mapped[int] = mapped_column(
        ForeignKey("repo_analyses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    track: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow
    )


class CandidateAssignment(Base):
    """One candidate's claimed assignment: chat log, todo state and timeline."""

    __tablename__ = "candidate_assignments"
    __table_args__ = (
        UniqueConstraint("assignment_id", "candidate_user_id", name="candidate_assignment_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[int] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    candidate_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    repo_url: Mapped[str | None] = mapped_column(Text)
    submission_branch: Mapped[str] = mapped_column(
        String(255), default="user-submission", nullable=False
    )
    # claimed / in_progress / completed
    status: Mapped[str] = mapped_column(String(20), default="claimed", nullable=False)
    # pending / proceed / reject
    decision_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    todo: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    messages: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    timeline: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    capability_stats: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<CandidateAssignment(id={self.id}, candidate={self.candidate_user_id}, "
            f"status={self.status})>"
        )
