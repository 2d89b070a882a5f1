"""Shared API dependencies.

Provides caller identity, rate limiting and service construction as
injectable FastAPI dependencies.

Identity comes from trusted headers set by the upstream gateway:
X-User-ID (opaque user id) and X-User-Role (hr | candidate).
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import analyze_rate_limiter, api_rate_limiter, chat_rate_limiter, get_redis
from app.exceptions import ForbiddenError, UnauthorizedError
from app.logging_config import get_logger
from db.session import get_db_session
from services.assessment import AssessmentService
from services.github_service import GitHubService
from services.raw_fetcher import RawFileFetcher

logger = get_logger(__name__)


class UserRole(str, Enum):
    HR = "hr"
    CANDIDATE = "candidate"


class CurrentUser(BaseModel):
    id: str
    role: UserRole


def _hash_identifier(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:16]


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Resolve the caller from gateway headers."""
    if not x_user_id:
        raise UnauthorizedError()
    try:
        role = UserRole((x_user_role or "").strip().lower())
    except ValueError:
        raise ForbiddenError("Unknown user role") from None
    return CurrentUser(id=x_user_id, role=role)


async def require_hr(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.HR:
        raise ForbiddenError("HR role required")
    return user


async def require_candidate(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.CANDIDATE:
        raise ForbiddenError("Candidate role required")
    return user


async def rate_limit_by_user(
    user: CurrentUser = Depends(get_current_user),
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Apply per-user rate limiting for API calls."""
    await api_rate_limiter.check(_hash_identifier(user.id), redis)


async def rate_limit_chat(
    user: CurrentUser = Depends(require_candidate),
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Per-candidate limit on AI-PM chat turns."""
    await chat_rate_limiter.check(_hash_identifier(user.id), redis)


async def rate_limit_analyze(
    user: CurrentUser = Depends(require_candidate),
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Per-candidate limit on repository analyses."""
    await analyze_rate_limiter.check(_hash_identifier(user.id), redis)


def get_github_service(redis: aioredis.Redis = Depends(get_redis)) -> GitHubService:
    return GitHubService(redis)


def get_raw_fetcher(redis: aioredis.Redis = Depends(get_redis)) -> RawFileFetcher:
    return RawFileFetcher(redis)


def get_assessment_service(
    session: AsyncSession = Depends(get_db_session),
    redis: aioredis.Redis = Depends(get_redis),
) -> AssessmentService:
    return AssessmentService(session, fetcher=RawFileFetcher(redis))
