"""Prometheus metrics for monitoring.

Tracks request latency, GitHub and model call durations, match scoring
and assessment progress.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Info

# Application info
APP_INFO = Info("codesync_app", "CodeSync application info")

# HTTP metrics
HTTP_REQUESTS_TOTAL = Counter(
    "codesync_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "codesync_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# GitHub API metrics
GITHUB_API_CALLS = Counter(
    "codesync_github_api_calls_total",
    "Total GitHub API calls",
    ["endpoint", "status"],
)

GITHUB_API_DURATION = Histogram(
    "codesync_github_api_duration_seconds",
    "GitHub API call duration",
    ["endpoint"],
)

GITHUB_CACHE_HITS = Counter(
    "codesync_github_cache_hits_total",
    "GitHub data cache hits",
    ["kind"],
)

GITHUB_CACHE_MISSES = Counter(
    "codesync_github_cache_misses_total",
    "GitHub data cache misses",
    ["kind"],
)

# Model connector metrics
MODEL_CALLS = Counter(
    "codesync_model_calls_total",
    "Total AI model API calls",
    ["provider", "model", "status"],
)

MODEL_CALL_DURATION = Histogram(
    "codesync_model_call_duration_seconds",
    "AI model API call duration",
    ["provider", "model"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

# Rate limiting
RATE_LIMIT_HITS = Counter(
    "codesync_rate_limit_hits_total",
    "Total rate limit hits",
    ["endpoint", "limit_type"],
)

# Matching metrics
MATCH_SCORES_COMPUTED = Counter(
    "codesync_match_scores_computed_total",
    "Deterministic job match scores computed",
)

MATCH_SCORE = Histogram(
    "codesync_match_score",
    "Distribution of deterministic job match scores",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)

TRACK_SELECTIONS = Counter(
    "codesync_track_selections_total",
    "Assessment tracks selected by candidates",
    ["track"],
)

# Assessment metrics
ASSESSMENT_TURNS = Counter(
    "codesync_assessment_turns_total",
    "AI-PM chat turns by AI action",
    ["action"],
)

EVALUATIONS_COMPLETED = Counter(
    "codesync_evaluations_completed_total",
    "Final evaluation reports by hiring decision",
    ["decision"],
)

REPO_ANALYSES = Counter(
    "codesync_repo_analyses_total",
    "Repository analyses run",
    ["status"],
)
