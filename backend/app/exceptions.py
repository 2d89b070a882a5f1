"""Custom exception classes for CodeSync.

All exceptions follow the CodeSync error format:
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "details": {}  # optional
    }
}

Error messages must never contain API keys or raw candidate code.
"""

from __future__ import annotations

from typing import Any


class CodeSyncError(Exception):
    """Base exception for CodeSync."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class NotFoundError(CodeSyncError):
    """Requested record does not exist."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(code="NOT_FOUND", message=message, status_code=404)


class ForbiddenError(CodeSyncError):
    """Caller may not act on this record."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(code="FORBIDDEN", message=message, status_code=403)


class UnauthorizedError(CodeSyncError):
    """No caller identity was supplied."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(code="UNAUTHORIZED", message=message, status_code=401)


class BadRequestError(CodeSyncError):
    """Request is well-formed but cannot be applied."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="BAD_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


class ValidationError(CodeSyncError):
    """Input validation error."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=422,
            details=details,
        )


class AssessmentCompletedError(CodeSyncError):
    """The AI-PM evaluation for this assignment is already finished."""

    def __init__(self) -> None:
        super().__init__(
            code="ASSESSMENT_COMPLETED",
            message="Evaluation already completed",
            status_code=400,
        )


class InvalidGitHubInputError(CodeSyncError):
    """A repository or owner identifier could not be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="INVALID_GITHUB_INPUT",
            message=message,
            status_code=400,
        )


class ExternalServiceError(CodeSyncError):
    """External service (GitHub, AI model) unavailable."""

    def __init__(self, service: str, message: str = "Service unavailable") -> None:
        super().__init__(
            code=f"{service.upper()}_SERVICE_ERROR",
            message=message,
            status_code=502,
        )


class GitHubAPIError(CodeSyncError):
    """GitHub API specific errors."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(
            code="GITHUB_API_ERROR",
            message=message,
            status_code=status_code,
        )


class GitHubNotFoundError(CodeSyncError):
    """GitHub repository, file or user not found."""

    def __init__(self, message: str = "GitHub resource not found") -> None:
        super().__init__(
            code="GITHUB_NOT_FOUND",
            message=message,
            status_code=404,
        )


class GitHubRateLimitError(CodeSyncError):
    """GitHub API rate limit exceeded."""

    def __init__(self, retry_after: int | None = None, message: str | None = None) -> None:
        details = {}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            code="GITHUB_RATE_LIMIT",
            message=message or "GitHub API rate limit exceeded. Try again later.",
            status_code=429,
            details=details,
        )


class RateLimitError(CodeSyncError):
    """Application rate limit exceeded."""

    def __init__(self, limit_type: str, retry_after: int = 60) -> None:
        super().__init__(
            code="RATE_LIMIT_EXCEEDED",
            message=f"Rate limit exceeded for {limit_type}. Try again later.",
            status_code=429,
            details={"retry_after_seconds": retry_after, "limit_type": limit_type},
        )


class ModelProviderError(CodeSyncError):
    """AI model provider error."""

    def __init__(self, provider: str, message: str = "Model call failed") -> None:
        super().__init__(
            code="MODEL_PROVIDER_ERROR",
            message=message,
            status_code=502,
            details={"provider": provider},
        )


class AIResponseParseError(CodeSyncError):
    """The model answered with something that is not the expected JSON."""

    def __init__(self, message: str = "Failed to parse AI response as JSON") -> None:
        super().__init__(
            code="AI_RESPONSE_INVALID",
            message=message,
            status_code=502,
        )
