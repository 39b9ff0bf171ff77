"""Exceptions raised while processing a report submission."""

from __future__ import annotations

from typing import Optional


class SubmissionError(Exception):
    """Base exception for rejected submissions."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ClientValidationError(SubmissionError):
    """A required field is missing or malformed."""

    status_code = 400


class TimingCheckFailed(SubmissionError):
    """The form was submitted faster than a human could fill it in."""

    status_code = 429


class RateLimitExceeded(SubmissionError):
    """Too many submissions from the same submitter."""

    status_code = 429

    def __init__(self, retry_after: int, message: str = "Too many submissions. Please try again later."):
        self.retry_after = retry_after
        super().__init__(message)


class ChallengeFailed(SubmissionError):
    """Human-verification token was rejected (or could not be checked)."""

    def __init__(self, error_codes: Optional[list[str]] = None, *, misconfigured: bool = False):
        self.error_codes = list(error_codes or [])
        self.misconfigured = misconfigured
        if misconfigured:
            message = "Spam protection is misconfigured. Please contact the administrator."
        else:
            message = "Spam protection check failed. Please try again."
        super().__init__(message)

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 503 if self.misconfigured else 403


class PreviewUnavailable(SubmissionError):
    """Link preview could not be produced. Never surfaced to the submitter."""

    status_code = 502


class UpstreamTransientError(SubmissionError):
    """Persistence failed after every check passed."""

    status_code = 500

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)
