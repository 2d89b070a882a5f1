"""Deterministic job match scoring.

Scores a repository's detected skills against a job's weighted stack
requirements. The result is fully explainable: every requirement gets a
breakdown entry with its normalized weight, match confidence and the
evidence that produced it.

    score = round(100 * sum(weight * match) * (0.7 + 0.3 * coverage))

Coverage is the share of requirements the repository had any signal for,
so repositories with incomplete signals take a mild penalty.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field

COVERAGE_BASE = 0.7
COVERAGE_WEIGHT = 0.3

SKILL_SYNONYMS = {
    "ci": "ci/cd",
    "cicd": "ci/cd",
    "ci/cd": "ci/cd",
    "ci-cd": "ci/cd",
    "ts": "typescript",
    "typescript": "typescript",
    "node": "node.js",
    "nodejs": "node.js",
    "node.js": "node.js",
    "next": "next.js",
    "nextjs": "next.js",
    "next.js": "next.js",
    "reactjs": "react",
}


class SkillEvidence(BaseModel):
    """Confidence (0..1) that a repository shows a skill, with evidence."""

    confidence: float
    evidence: list[str] = Field(default_factory=list)


RepoSkillMap = dict[str, SkillEvidence]


class MatchBreakdownItem(BaseModel):
    requirement: str
    weight: float
    match: float
    reason: str
    evidence: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    score: int
    coverage: float
    breakdown: list[MatchBreakdownItem]


def clamp01(value: float) -> float:
    if value < 0:
        return 0.0
    if value > 1:
        return 1.0
    return value


def round_half_up(value: float) -> int:
    """Round halves towards positive infinity (JavaScript Math.round)."""
    return math.floor(value + 0.5)


def normalize_skill_key(raw: str) -> str:
    key = raw.strip().lower()
    return SKILL_SYNONYMS.get(key, key)


def normalize_weights(required_stacks: dict[str, Any]) -> list[tuple[str, float]]:
    """Keep finite positive weights and scale them to sum to 1."""
    entries = [
        (key, float(weight))
        for key, weight in required_stacks.items()
        if isinstance(weight, (int, float))
        and not isinstance(weight, bool)
        and math.isfinite(weight)
        and weight > 0
    ]
    total = sum(weight for _, weight in entries)
    if total <= 0:
        return [(key, 0.0) for key, _ in entries]
    return [(key, weight / total) for key, weight in entries]


def _coerce_evidence(value: Any) -> SkillEvidence:
    if isinstance(value, SkillEvidence):
        confidence, evidence = value.confidence, value.evidence
    elif isinstance(value, dict):
        confidence, evidence = value.get("confidence", 0), value.get("evidence")
    else:
        confidence, evidence = 0, None
    if (
        not isinstance(confidence, (int, float))
        or isinstance(confidence, bool)
        or not math.isfinite(confidence)
    ):
        confidence = 0
    return SkillEvidence(
        confidence=clamp01(float(confidence)),
        evidence=list(evidence) if isinstance(evidence, list) else [],
    )


def compute_deterministic_job_match(
    required_stacks: dict[str, Any],
    repo_skills: dict[str, Any] | None,
) -> MatchResult:
    """Score a repository skill map against weighted job requirements.

    Args:
        required_stacks: Requirement name to raw weight.
        repo_skills: Skill name to SkillEvidence (or an equivalent dict).

    Returns:
        MatchResult with integer score 0-100, coverage 0-1 and a per
        requirement breakdown in requirement order.
    """
    required = normalize_weights(required_stacks or {})
    skills = {
        normalize_skill_key(name): _coerce_evidence(value)
        for name, value in (repo_skills or {}).items()
    }

    breakdown: list[MatchBreakdownItem] = []
    weighted = 0.0
    decidable = 0

    for requirement, weight in required:
        hit = skills.get(normalize_skill_key(requirement))
        match = clamp01(hit.confidence) if hit else 0.0
        if hit:
            decidable += 1

        breakdown.append(
            MatchBreakdownItem(
                requirement=requirement,
                weight=weight,
                match=match,
                reason=(
                    f"Detected {requirement} from repo signals"
                    if hit
                    else f"No evidence found for {requirement}"
                ),
                evidence=list(hit.evidence) if hit else [],
            )
        )
        weighted += weight * match

    coverage = decidable / len(required) if required else 0.0
    score = round_half_up(100 * weighted * (COVERAGE_BASE + COVERAGE_WEIGHT * coverage))

    return MatchResult(score=score, coverage=coverage, breakdown=breakdown)
