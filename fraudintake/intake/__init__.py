"""Submission intake: spam defense, SSRF-safe link previews, orchestration."""

from .challenge import ChallengeVerifier
from .errors import (
    ChallengeFailed,
    ClientValidationError,
    PreviewUnavailable,
    RateLimitExceeded,
    SubmissionError,
    TimingCheckFailed,
    UpstreamTransientError,
)
from .metadata import extract_thumbnail, extract_title
from .models import (
    LinkPreview,
    NewReport,
    PreviewDocument,
    SubmissionOutcome,
    SubmissionRequest,
    VerificationResult,
)
from .pipeline import SubmissionPipeline
from .preview import PreviewFetcher
from .rate_limiter import RateLimitDecision, SubmissionRateLimiter
from .ssrf import Fetchability, SSRFGuard

__all__ = [
    "ChallengeFailed",
    "ChallengeVerifier",
    "ClientValidationError",
    "Fetchability",
    "LinkPreview",
    "NewReport",
    "PreviewDocument",
    "PreviewFetcher",
    "PreviewUnavailable",
    "RateLimitDecision",
    "RateLimitExceeded",
    "SSRFGuard",
    "SubmissionError",
    "SubmissionOutcome",
    "SubmissionPipeline",
    "SubmissionRateLimiter",
    "SubmissionRequest",
    "TimingCheckFailed",
    "UpstreamTransientError",
    "VerificationResult",
    "extract_thumbnail",
    "extract_title",
]
