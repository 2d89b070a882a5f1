"""Role recommendation from skill signals.

Classifies named skill signals into frontend / backend / devops by keyword,
then combines the winning track with a seniority cut (85) into a role name
such as "Senior Frontend Engineer".
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel

FRONTEND_KEYWORDS = [
    "react",
    "next",
    "css",
    "tailwind",
    "ui",
    "ux",
    "accessibility",
    "design systems",
    "frontend",
]

BACKEND_KEYWORDS = [
    "node",
    "api",
    "database",
    "schema",
    "backend",
    "architecture",
    "distributed",
    "system design",
]

DEVOPS_KEYWORDS = [
    "devops",
    "sre",
    "infrastructure",
    "infra",
    "iac",
    "terraform",
    "ansible",
    "helm",
    "kubernetes",
    "k8s",
    "docker",
    "container",
    "ci",
    "cd",
    "cicd",
    "github actions",
    "gitlab ci",
    "jenkins",
    "pipeline",
    "aws",
    "gcp",
    "azure",
    "cloud",
    "observability",
    "prometheus",
    "grafana",
    "logging",
    "monitoring",
]

OBVIOUS_FRONTEND = ("react", "css", "frontend")
OBVIOUS_DEVOPS = ("docker", "kubernetes", "devops", "ci", "cd", "terraform")

SENIOR_THRESHOLD = 85
TAG_SIGNAL_SCORE = 15
MAX_MATCHED_TAGS = 6


class RoleTrack(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DEVOPS = "devops"


class SkillSignal(BaseModel):
    name: str
    score: float


class TrackScores(BaseModel):
    track: RoleTrack
    frontend_score: float
    backend_score: float
    devops_score: float
    matches: dict[RoleTrack, list[SkillSignal]]


class RoleRecommendation(BaseModel):
    role_name: str
    track: RoleTrack
    seniority: str
    overall_score: float
    matched_tags: list[str]
    conclusion: str
    debug: dict[str, float]


def _clamp(value: Any, low: float = 0, high: float = 100) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        value = 0
    return max(low, min(high, value))


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def track_from_signals(signals: list[SkillSignal]) -> TrackScores:
    """Sum signal scores per track; a signal may count toward several tracks."""
    buckets = {
        RoleTrack.FRONTEND: FRONTEND_KEYWORDS,
        RoleTrack.BACKEND: BACKEND_KEYWORDS,
        RoleTrack.DEVOPS: DEVOPS_KEYWORDS,
    }
    scores = {track: 0.0 for track in buckets}
    matches: dict[RoleTrack, list[SkillSignal]] = {track: [] for track in buckets}

    for signal in signals:
        name = signal.name.strip().lower()
        for track, keywords in buckets.items():
            if _contains_any(name, keywords):
                scores[track] += signal.score
                matches[track].append(signal)

    if not any(scores.values()):
        names = [s.name.strip().lower() for s in signals]
        if any(_contains_any(n, OBVIOUS_DEVOPS) for n in names):
            scores[RoleTrack.DEVOPS] = 1
        elif any(_contains_any(n, OBVIOUS_FRONTEND) for n in names):
            scores[RoleTrack.FRONTEND] = 1
        else:
            scores[RoleTrack.BACKEND] = 1

    frontend = scores[RoleTrack.FRONTEND]
    backend = scores[RoleTrack.BACKEND]
    devops = scores[RoleTrack.DEVOPS]
    best = max(frontend, backend, devops)

    if devops == best:
        track = RoleTrack.DEVOPS
    elif frontend >= backend:
        track = RoleTrack.FRONTEND
    else:
        track = RoleTrack.BACKEND

    return TrackScores(
        track=track,
        frontend_score=frontend,
        backend_score=backend,
        devops_score=devops,
        matches=matches,
    )


def role_name_for(track: RoleTrack, seniority: str) -> str:
    label = {"frontend": "Frontend", "backend": "Backend", "devops": "DevOps"}[track.value]
    return f"{seniority.capitalize()} {label} Engineer"


def _matched_tags(contributing: list[SkillSignal]) -> list[str]:
    ordered = sorted(contributing, key=lambda s: s.score, reverse=True)
    names = [s.name for s in ordered if s.name]
    return list(dict.fromkeys(names))[:MAX_MATCHED_TAGS]


def _format_score(score: float) -> str:
    return str(int(score)) if float(score).is_integer() else str(score)


def _recommend(signals: list[SkillSignal], overall: float) -> tuple[TrackScores, str, str, list[str]]:
    scores = track_from_signals(signals)
    seniority = "senior" if overall >= SENIOR_THRESHOLD else "junior"
    role_name = role_name_for(scores.track, seniority)
    matched = _matched_tags(scores.matches[scores.track])
    return scores, seniority, role_name, matched


def recommend_role_from_evaluation(
    technical_skills: list[dict[str, Any]] | None,
    overall_score: float | None = None,
    overall_match: float | None = None,
) -> RoleRecommendation:
    """Recommend a role from an evaluation's technical skill scores.

    Args:
        technical_skills: Items with "name" (or "skill") and "score".
        overall_score: Evaluation score; preferred over `overall_match`.
        overall_match: Fallback overall score from the job match.
    """
    overall = _clamp(overall_score if overall_score is not None else overall_match or 0)
    signals = [
        SkillSignal(name=str(item.get("name") or item.get("skill") or ""), score=_clamp(item.get("score")))
        for item in technical_skills or []
        if isinstance(item, dict)
    ]
    scores, seniority, role_name, matched = _recommend(signals, overall)

    why = f"{' + '.join(matched[:3])} signals" if matched else "your technical skill signals"
    conclusion = (
        f"Based on {why} and an overall score of {_format_score(overall)}%, "
        f"the best fit is {role_name}."
    )

    return RoleRecommendation(
        role_name=role_name,
        track=scores.track,
        seniority=seniority,
        overall_score=overall,
        matched_tags=matched,
        conclusion=conclusion,
        debug={
            "frontend_score": scores.frontend_score,
            "backend_score": scores.backend_score,
            "devops_score": scores.devops_score,
        },
    )


def recommend_role_from_candidate(
    match_score: float | None = None,
    tags: list[str] | None = None,
    skills: list[dict[str, Any]] | None = None,
) -> RoleRecommendation:
    """Recommend a role from profile skills (name, level) plus tags."""
    overall = _clamp(match_score or 0)
    signals = [
        SkillSignal(name=str(item.get("name") or ""), score=_clamp(item.get("level")))
        for item in skills or []
        if isinstance(item, dict)
    ]
    # Tags contribute a small fixed amount when skills are sparse
    signals.extend(SkillSignal(name=tag, score=TAG_SIGNAL_SCORE) for tag in tags or [])
    scores, seniority, role_name, matched = _recommend(signals, overall)

    why = f"{' + '.join(matched[:3])} signals" if matched else "your code skill signals"
    conclusion = (
        f"Based on {why} and your match score of {_format_score(overall)}%, "
        f"your best-fit role is {role_name}."
    )

    return RoleRecommendation(
        role_name=role_name,
        track=scores.track,
        seniority=seniority,
        overall_score=overall,
        matched_tags=matched,
        conclusion=conclusion,
        debug={
            "frontend_score": scores.frontend_score,
            "backend_score": scores.backend_score,
            "devops_score": scores.devops_score,
        },
    )
