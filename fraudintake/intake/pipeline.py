"""Report submission orchestration.

Checks run cheapest first: structural validation, honeypot, form timing,
local rate limiting, the remote challenge check, and finally the outbound
preview fetch to the submitted site.
"""

from __future__ import annotations

import logging
import math
import secrets
import string
import time
from typing import Callable, Optional, Protocol

from ..utils.urls import StorageUrlPolicy, is_valid_email
from ..utils.values import coerce_positive_int
from .challenge import MISSING_SECRET_KEY, ChallengeVerifier
from .errors import (
    ChallengeFailed,
    ClientValidationError,
    RateLimitExceeded,
    TimingCheckFailed,
    UpstreamTransientError,
)
from .models import LinkPreview, NewReport, SubmissionOutcome, SubmissionRequest
from .preview import PreviewFetcher
from .rate_limiter import SubmissionRateLimiter

logger = logging.getLogger(__name__)

MIN_FORM_COMPLETION_MS = 6_000
MAX_ATTACHMENTS = 5

REPORT_ID_ALPHABET = string.digits + string.ascii_lowercase
REPORT_ID_LENGTH = 12


def generate_report_id() -> str:
    return "".join(secrets.choice(REPORT_ID_ALPHABET) for _ in range(REPORT_ID_LENGTH))


class ReportStore(Protocol):
    async def create_report(self, report: NewReport, *, report_id: Optional[str] = None) -> dict: ...


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class SubmissionPipeline:
    """Runs one submission through every intake check and persists it."""

    def __init__(
        self,
        *,
        store: ReportStore,
        rate_limiter: SubmissionRateLimiter,
        challenge_verifier: ChallengeVerifier,
        preview_fetcher: Optional[PreviewFetcher] = None,
        storage_policy: Optional[StorageUrlPolicy] = None,
        min_form_completion_ms: int = MIN_FORM_COMPLETION_MS,
        max_attachments: int = MAX_ATTACHMENTS,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = generate_report_id,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.challenge_verifier = challenge_verifier
        self.preview_fetcher = preview_fetcher
        self.storage_policy = storage_policy
        self.min_form_completion_ms = min_form_completion_ms
        self.max_attachments = max_attachments
        self.clock = clock
        self.id_factory = id_factory

    def validate(self, request: SubmissionRequest) -> list[str]:
        """Check required fields and attachments. Returns the de-duplicated attachments."""
        attachments: list[str] = []
        for value in request.attachment_urls or []:
            if not isinstance(value, str) or not value.strip():
                raise ClientValidationError("Invalid screenshot information")
            attachments.append(value.strip())
        attachments = _dedupe(attachments)
        if len(attachments) > self.max_attachments:
            raise ClientValidationError(f"At most {self.max_attachments} screenshots are allowed")
        if attachments and (
            self.storage_policy is None
            or not all(self.storage_policy.is_valid(value) for value in attachments)
        ):
            raise ClientValidationError("Invalid screenshot URL")

        request.url = (request.url or "").strip()
        request.email = (request.email or "").strip().lower()
        if not request.url:
            raise ClientValidationError("URL is required")
        platform_id = coerce_positive_int(request.platform_id)
        if platform_id is None:
            raise ClientValidationError("Platform is required")
        category_id = coerce_positive_int(request.category_id)
        if category_id is None:
            raise ClientValidationError("Category is required")
        request.platform_id = platform_id
        request.category_id = category_id
        if not request.email:
            raise ClientValidationError("Email address is required")
        if not is_valid_email(request.email):
            raise ClientValidationError("Email address is invalid")
        return attachments

    def check_timing(self, request: SubmissionRequest) -> None:
        started = request.form_started_at
        if started is None or not isinstance(started, (int, float)) or not math.isfinite(started):
            raise ClientValidationError("Submission details are incomplete")
        elapsed_ms = self.clock() * 1000.0 - float(started)
        if elapsed_ms < self.min_form_completion_ms:
            raise TimingCheckFailed("Submitted too quickly. Please review the form and try again.")

    async def submit(self, request: SubmissionRequest) -> SubmissionOutcome:
        attachments = self.validate(request)

        if (request.honeypot or "").strip():
            logger.info("Honeypot field filled; discarding submission")
            return SubmissionOutcome(report_id=self.id_factory(), persisted=False)

        token = (request.challenge_token or "").strip()
        if not token:
            raise ClientValidationError("Challenge token is missing")

        self.check_timing(request)

        decision = self.rate_limiter.check_and_record(request.rate_limit_key)
        if not decision.allowed:
            raise RateLimitExceeded(decision.retry_after_seconds or 60)

        verification = await self.challenge_verifier.verify(token, request.client_ip)
        if not verification.success:
            logger.error("Challenge verification rejected: %s", verification.error_codes)
            raise ChallengeFailed(
                verification.error_codes,
                misconfigured=MISSING_SECRET_KEY in verification.error_codes,
            )

        preview = await self._preview(request.url)

        title = (request.title or "").strip() or None
        image_urls = list(attachments)
        if preview.thumbnail_url:
            image_urls.append(preview.thumbnail_url)
        report = NewReport(
            url=request.url,
            email=request.email,
            platform_id=request.platform_id,
            category_id=request.category_id,
            title=preview.title or title,
            description=request.description,
            source_ip=request.client_ip,
            image_urls=_dedupe(image_urls),
        )

        report_id = self.id_factory()
        try:
            created = await self.store.create_report(report, report_id=report_id)
        except Exception as exc:
            logger.exception("Failed to create report: %s", exc)
            raise UpstreamTransientError() from exc

        return SubmissionOutcome(report_id=str(created.get("id") or report_id), report=created)

    async def _preview(self, url: str) -> LinkPreview:
        if self.preview_fetcher is None:
            return LinkPreview()
        try:
            return await self.preview_fetcher.preview(url)
        except Exception as exc:
            logger.warning("Link preview failed for submitted URL: %s", exc)
            return LinkPreview()
