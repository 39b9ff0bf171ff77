"""Public API handlers."""

from __future__ import annotations

import logging
import re

from aiohttp import web

from ..intake.errors import RateLimitExceeded, SubmissionError
from ..intake.models import SubmissionRequest
from ..utils.values import coerce_positive_int
from .server_request import _coerce_str, _coerce_timestamp

logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "Thank you for your report. It will be reviewed by our team."
REPORT_ID_RE = re.compile(r"^[0-9a-z]{1,64}$")

# Never echoed back to the public.
PRIVATE_REPORT_FIELDS = ("source_ip", "user_id")


def _error_response(exc: SubmissionError) -> web.Response:
    headers = {}
    if isinstance(exc, RateLimitExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    return web.json_response({"error": exc.message}, status=exc.status_code, headers=headers)


class IntakeServerPublicApiMixin:
    """Public API handlers."""

    def _submission_from_payload(self, request: web.Request, data: dict) -> SubmissionRequest:
        raw_screenshots = data.get("screenshotUrls")
        if raw_screenshots is not None and not isinstance(raw_screenshots, list):
            raise web.HTTPBadRequest(
                text='{"error": "Invalid screenshot information"}',
                content_type="application/json",
            )
        description = data.get("description")

        return SubmissionRequest(
            url=_coerce_str(data.get("url")),
            email=_coerce_str(data.get("email")),
            platform_id=coerce_positive_int(data.get("platformId")),
            category_id=coerce_positive_int(data.get("categoryId")),
            form_started_at=_coerce_timestamp(data.get("formStartedAt")),
            challenge_token=_coerce_str(data.get("turnstileToken")),
            honeypot=_coerce_str(data.get("spamTrap")),
            title=_coerce_str(data.get("title")) or None,
            description=description if isinstance(description, str) else None,
            attachment_urls=list(raw_screenshots or []),
            client_ip=self._client_ip(request),
            user_agent=self._user_agent(request),
        )

    async def _public_api_submit(self, request: web.Request) -> web.Response:
        """Public endpoint to submit a suspicious URL/account for review."""
        data = await self._read_json(request)
        submission = self._submission_from_payload(request, data)

        try:
            outcome = await self.pipeline.submit(submission)
        except SubmissionError as exc:
            return _error_response(exc)
        except Exception:
            logger.exception("Failed to create report")
            return web.json_response({"error": "Internal Server Error"}, status=500)

        return web.json_response(
            {"id": outcome.report_id, "status": "submitted", "message": SUBMITTED_MESSAGE},
            status=201,
        )

    async def _public_api_report(self, request: web.Request) -> web.Response:
        """Return report details with images and timeline."""
        report_id = (request.match_info.get("report_id") or "").strip().lower()
        if not REPORT_ID_RE.match(report_id):
            return web.json_response({"error": "Report not found"}, status=404)

        report = await self.database.get_report(report_id)
        if not report:
            return web.json_response({"error": "Report not found"}, status=404)

        try:
            await self.database.increment_view_count(report_id)
        except Exception as exc:
            logger.warning("Failed to increment view count for %s: %s", report_id, exc)

        for key in PRIVATE_REPORT_FIELDS:
            report.pop(key, None)
        return web.json_response(report)
