"""Human-verification (Turnstile) token checks."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from .models import VerificationResult

logger = logging.getLogger(__name__)

TURNSTILE_VERIFY_ENDPOINT = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
VERIFY_TIMEOUT_SECONDS = 10.0

MISSING_SECRET_KEY = "missing-secret-key"
HTTP_ERROR = "challenge-http-error"
REQUEST_FAILED = "challenge-request-failed"


class ChallengeVerifier:
    """Exchanges a client challenge token for a verdict.

    Never raises: every failure mode is reported as ``success=False`` with an
    error code, and a missing secret is reported as ``missing-secret-key`` so the
    caller can tell misconfiguration apart from a failed human check.
    """

    def __init__(
        self,
        secret_key: str = "",
        *,
        endpoint: str = TURNSTILE_VERIFY_ENDPOINT,
        timeout: float = VERIFY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = (secret_key or "").strip()
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    async def verify(self, token: str, client_ip: Optional[str] = None) -> VerificationResult:
        if not self.secret_key:
            logger.error("TURNSTILE_SECRET_KEY is not set")
            return VerificationResult(success=False, error_codes=[MISSING_SECRET_KEY])

        form = {"secret": self.secret_key, "response": token}
        if client_ip:
            form["remoteip"] = client_ip

        try:
            return await asyncio.wait_for(self._post(form), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Challenge verification timed out after %.1fs", self.timeout)
            return VerificationResult(success=False, error_codes=[REQUEST_FAILED])
        except Exception as exc:
            logger.error("Challenge verification failed: %s", exc)
            return VerificationResult(success=False, error_codes=[REQUEST_FAILED])

    async def _post(self, form: dict[str, str]) -> VerificationResult:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            trust_env=False,
        ) as client:
            resp = await client.post(
                self.endpoint,
                data=form,
                headers={"Cache-Control": "no-store"},
            )

        if not resp.is_success:
            logger.warning("Challenge verification endpoint returned %s", resp.status_code)
            return VerificationResult(success=False, error_codes=[HTTP_ERROR])

        payload = resp.json()
        if not isinstance(payload, dict):
            return VerificationResult(success=False, error_codes=[REQUEST_FAILED])

        raw_codes = payload.get("error-codes")
        error_codes = [str(code) for code in raw_codes] if isinstance(raw_codes, list) else []
        return VerificationResult(success=payload.get("success") is True, error_codes=error_codes)
