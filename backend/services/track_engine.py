"""Assessment track recommendation.

After a repository analysis the candidate picks one of three assessment
tracks:
- specialist: deep validation on the stack the repo already shows
- expansion: fill engineering gaps (tests, CI/CD, containers)
- pragmatist: business-flavoured problems close to the repo's domain

This module derives skill maps from a stored tech stack, builds the track
option cards, recommends a default track and ranks published jobs for a
chosen track.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

from services.match_engine import RepoSkillMap, SkillEvidence, round_half_up


class TrackKey(str, Enum):
    SPECIALIST = "specialist"
    EXPANSION = "expansion"
    PRAGMATIST = "pragmatist"


class TrackOption(BaseModel):
    track_key: TrackKey
    title: str
    slogan: str
    focus_areas: list[str]
    rationale: str


class AssignmentSummary(BaseModel):
    id: int
    repo_template_url: str
    instructions: str | None = None


class JobRecommendation(BaseModel):
    job_id: int
    job_title: str
    score: int
    reason: str
    assignment: AssignmentSummary | None = None


STRONG_FRONTEND_MARKERS = ("react", "next.js", "tailwind")


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _frameworks(tech_stack: Any) -> list[str]:
    return [f for f in _list(_field(tech_stack, "frameworks")) if isinstance(f, str)]


def _has_tests(signals: Any) -> bool:
    return len(_list(_field(signals, "test_frameworks"))) > 0


def derive_repo_skills(tech_stack: Any) -> dict[str, float]:
    """Flatten a tech stack into skill -> presence weight (0..1)."""
    skills: dict[str, float] = {}

    for item in _list(_field(tech_stack, "languages"))[:8]:
        name = _field(item, "language")
        if not isinstance(name, str) or not name:
            continue
        pct = _number(_field(item, "percentage", 0))
        skills[name] = max(0.0, min(1.0, pct / 100))

    # Frameworks and tooling are presence signals with a small fixed weight
    for name in _list(_field(tech_stack, "frameworks"))[:10]:
        if not isinstance(name, str) or not name.strip():
            continue
        skills[name] = max(skills.get(name, 0.0), 0.15)

    for name in _list(_field(tech_stack, "tooling"))[:10]:
        if not isinstance(name, str) or not name.strip():
            continue
        skills[name] = max(skills.get(name, 0.0), 0.08)

    return skills


def _merge_evidence(existing: list[str], extra: str) -> list[str]:
    return list(dict.fromkeys([*existing, extra]))


def derive_repo_skill_evidence_map(tech_stack: Any) -> RepoSkillMap:
    """Build a match-engine skill map with human-readable evidence."""
    out: RepoSkillMap = {}

    for item in _list(_field(tech_stack, "languages"))[:12]:
        name = _field(item, "language")
        if not isinstance(name, str) or not name:
            continue
        pct = _number(_field(item, "percentage", 0))
        out[name] = SkillEvidence(
            confidence=max(0.0, min(1.0, pct / 100)),
            evidence=[f"Language share: {round_half_up(pct)}%"],
        )

    for name, floor, label in (
        *((f, 0.7, "Detected framework/library") for f in _list(_field(tech_stack, "frameworks"))[:20]),
        *((t, 0.5, "Detected tooling") for t in _list(_field(tech_stack, "tooling"))[:20]),
    ):
        if not isinstance(name, str) or not name.strip():
            continue
        current = out.get(name)
        out[name] = SkillEvidence(
            confidence=max(current.confidence if current else 0.0, floor),
            evidence=_merge_evidence(current.evidence if current else [], label),
        )

    return out


def _missing_engineering_bits(signals: Any) -> list[str]:
    missing = []
    if not _has_tests(signals):
        missing.append("tests (TDD)")
    if not _field(signals, "has_ci"):
        missing.append("CI/CD")
    if not _field(signals, "has_dockerfile"):
        missing.append("containerization")
    return missing


def generate_track_options(
    tech_stack: Any,
    signals: Any = None,
    domain_tags: list[str] | None = None,
) -> list[TrackOption]:
    """Build the three track cards with rationales drawn from the analysis."""
    top_frameworks = ", ".join(_frameworks(tech_stack)[:4])
    domains = ", ".join((domain_tags or [])[:3])
    missing = _missing_engineering_bits(signals)

    if top_frameworks:
        specialist_rationale = (
            f"Your repo's tech stack focuses on {top_frameworks}, suitable for "
            "increasing complexity and deep validation on your strengths."
        )
    else:
        specialist_rationale = (
            "Your repo demonstrates a clear technical direction, suitable for "
            "increasing complexity and deep validation on your strengths."
        )

    if missing:
        expansion_rationale = (
            f"Your repo may be missing: {', '.join(missing)}. This mode will fill "
            'the gaps with "fill-in-the-blank" exercises.'
        )
    else:
        expansion_rationale = (
            "Your repo shows complete engineering signals. This mode will further "
            "expand full-stack vision and engineering capabilities."
        )

    if domains:
        pragmatist_rationale = (
            f"Based on README/domain signals, you lean toward: {domains}. This mode "
            "will be closer to real business scenarios."
        )
    else:
        pragmatist_rationale = (
            "This mode de-emphasizes stack constraints and focuses more on solving "
            "real business problems and maintainability."
        )

    return [
        TrackOption(
            track_key=TrackKey.SPECIALIST,
            title="Expert Mode · Deep Validation (The Specialist Track)",
            slogan="Show us your mastery.",
            focus_areas=[
                "Extreme performance requirements (e.g., virtual list with 10,000 rows @ 60fps)",
                "Core principles assessment (restrict third-party libraries, "
                "hand-write state management/optimization)",
                "Architecture design (reusable component system + quality standards)",
            ],
            rationale=specialist_rationale,
        ),
        TrackOption(
            track_key=TrackKey.EXPANSION,
            title="Full-Stack/Potential Mode · Breadth Completion (The Expansion Track)",
            slogan="Step out of your comfort zone.",
            focus_areas=[
                "Enforced TDD: Write test cases first, then implement features",
                "Full-stack integration: Fill gaps in backend/BFF/data aggregation",
                "Engineering: GitHub Actions / CI/CD integration",
            ],
            rationale=expansion_rationale,
        ),
        TrackOption(
            track_key=TrackKey.PRAGMATIST,
            title="Practical Mode · Business Simulation (The Pragmatist Track)",
            slogan="Solve a real-world problem.",
            focus_areas=[
                "Ambiguous requirements: Handle ambiguity and make trade-offs",
                "Bug Bash: Fix legacy bugs + incremental refactoring",
                "Business logic priority: Permissions/approval flows/state machines",
            ],
            rationale=pragmatist_rationale,
        ),
    ]


def recommend_default_track(
    tech_stack: Any,
    signals: Any = None,
    domain_tags: list[str] | None = None,
) -> TrackKey:
    """Pick the default track from stack strength, gaps and domain signals.

    Ties resolve expansion first, then pragmatist, then specialist.
    """
    frameworks = _frameworks(tech_stack)
    strong_frontend = len(frameworks) >= 3 or any(
        marker in f.lower() for f in frameworks for marker in STRONG_FRONTEND_MARKERS
    )
    missing = len(_missing_engineering_bits(signals))
    domain_count = len(domain_tags) if isinstance(domain_tags, list) else 0

    specialist = (2 if strong_frontend else 0) + min(len(frameworks), 3) * 0.25
    expansion = missing * 1.25
    pragmatist = min(domain_count, 5) * 0.8

    best = max(specialist, expansion, pragmatist)
    if best == expansion:
        return TrackKey.EXPANSION
    if best == pragmatist:
        return TrackKey.PRAGMATIST
    return TrackKey.SPECIALIST


def score_job_for_track(
    track_key: TrackKey | str,
    job: Any,
    assignment: Any,
    repo_skills: dict[str, float],
    signals: Any = None,
    domain_tags: list[str] | None = None,
) -> JobRecommendation:
    """Score one job for a track.

    Base score is the weight share of required stacks present in the repo
    skill map. Tracks then add bonuses: expansion for gaps the job would
    exercise, pragmatist for domain overlap, specialist for high overlap.
    """
    track = TrackKey(track_key)
    required = _field(job, "required_stacks") or {}
    required_keys = [key.lower() for key in required]

    overlap = 0.0
    total = 0.0
    for key, raw_weight in required.items():
        weight = max(0.0, _number(raw_weight))
        total += weight
        if key in repo_skills:
            overlap += weight
    base = overlap / total if total > 0 else 0.0

    score = round_half_up(base * 100)
    reasons = [f"stack overlap {round_half_up(base * 100)}%"]

    if track == TrackKey.EXPANSION:
        if not _has_tests(signals) and any("test" in key for key in required_keys):
            score += 10
            reasons.append("fill tests gap")
        if not _field(signals, "has_ci") and ("ci" in required_keys or "cicd" in required_keys):
            score += 8
            reasons.append("fill CI/CD gap")
        if not _field(signals, "has_dockerfile") and any("docker" in key for key in required_keys):
            score += 6
            reasons.append("fill Docker gap")

    elif track == TrackKey.PRAGMATIST:
        text = "\n".join(
            [
                _field(job, "title") or "",
                _field(job, "description") or "",
                _field(assignment, "instructions") or "",
            ]
        ).lower()
        hits = [tag for tag in domain_tags or [] if tag.lower() in text]
        if hits:
            score += 12
            reasons.append(f"domain: {', '.join(hits[:2])}")

    elif score >= 70:
        score += 5
        reasons.append("Deep validation preference (high overlap)")

    summary = None
    if assignment is not None:
        summary = AssignmentSummary(
            id=_field(assignment, "id"),
            repo_template_url=_field(assignment, "repo_template_url"),
            instructions=_field(assignment, "instructions"),
        )

    return JobRecommendation(
        job_id=_field(job, "id"),
        job_title=_field(job, "title"),
        score=max(0, min(100, score)),
        reason=" · ".join(reasons),
        assignment=summary,
    )


def top_recommendations(
    track_key: TrackKey | str,
    jobs: list[tuple[Any, Any]],
    repo_skills: dict[str, float],
    signals: Any = None,
    domain_tags: list[str] | None = None,
    limit: int = 3,
) -> list[JobRecommendation]:
    """Score (job, assignment) pairs and return the best `limit`, stable on ties."""
    scored = [
        score_job_for_track(track_key, job, assignment, repo_skills, signals, domain_tags)
        for job, assignment in jobs
    ]
    scored.sort(key=lambda rec: rec.score, reverse=True)
    return scored[:limit]
