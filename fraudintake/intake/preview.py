"""Guarded link-preview fetching for submitted URLs."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import httpx

from .errors import PreviewUnavailable
from .metadata import extract_thumbnail, extract_title, looks_like_html_document
from .models import LinkPreview, PreviewDocument
from .ssrf import SSRFGuard, has_explicit_scheme

logger = logging.getLogger(__name__)

PREVIEW_FETCH_TIMEOUT_SECONDS = 6.0
MAX_PREVIEW_CONTENT_LENGTH = 3_000_000
MAX_REDIRECTS = 5
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

PREVIEW_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)
PREVIEW_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
PREVIEW_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


def is_html_content_type(content_type: str) -> bool:
    normalized = (content_type or "").lower()
    return "text/html" in normalized or "application/xhtml+xml" in normalized


class PreviewFetcher:
    """Fetches a candidate page for metadata extraction.

    Every hop is checked with `SSRFGuard`: redirects are followed by hand so a
    public page cannot bounce the fetch onto an internal address. Each
    candidate gets one wall-clock budget covering connect, redirects and body.
    """

    def __init__(
        self,
        guard: Optional[SSRFGuard] = None,
        *,
        timeout: float = PREVIEW_FETCH_TIMEOUT_SECONDS,
        max_content_length: int = MAX_PREVIEW_CONTENT_LENGTH,
        max_redirects: int = MAX_REDIRECTS,
        user_agent: str = PREVIEW_USER_AGENT,
        accept_language: str = PREVIEW_ACCEPT_LANGUAGE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.guard = guard or SSRFGuard()
        self.timeout = timeout
        self.max_content_length = max_content_length
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.accept_language = accept_language
        self._transport = transport

    def candidate_urls(self, raw_url: str) -> list[str]:
        """Primary URL plus an http:// fallback when the submitter gave no scheme."""
        primary = self.guard.parse_public_http_url(raw_url)
        if not primary:
            return []

        candidates = [primary]
        if not has_explicit_scheme(raw_url) and primary.startswith("https://"):
            parts = urlsplit(primary)
            candidates.append(urlunsplit(("http",) + tuple(parts[1:])))
        return candidates

    async def fetch(self, url: str) -> Optional[PreviewDocument]:
        """Return the first usable HTML document among the candidates, or None."""
        candidates = self.candidate_urls(url)
        if not candidates:
            logger.info("Preview skipped: %r is not a public http(s) URL", url[:200])
            return None

        for candidate in candidates:
            try:
                return await asyncio.wait_for(self._fetch_candidate(candidate), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.info("Preview fetch timed out for %s", candidate)
            except PreviewUnavailable as exc:
                logger.info("Preview unavailable for %s: %s", candidate, exc.message)
            except httpx.HTTPError as exc:
                logger.info("Preview fetch failed for %s: %s", candidate, exc)
            except Exception as exc:
                logger.warning("Unexpected preview fetch error for %s: %s", candidate, exc)
        return None

    async def preview(self, url: str) -> LinkPreview:
        """Fetch `url` and extract its title and thumbnail."""
        document = await self.fetch(url)
        if document is None:
            return LinkPreview()
        return LinkPreview(
            title=extract_title(document.html),
            thumbnail_url=extract_thumbnail(document.html, document.final_url, self.guard),
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": PREVIEW_ACCEPT,
            "Accept-Language": self.accept_language,
            "User-Agent": self.user_agent,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

    async def _fetch_candidate(self, candidate: str) -> PreviewDocument:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=False,
            transport=self._transport,
            trust_env=False,
        ) as client:
            current = candidate
            for _ in range(self.max_redirects + 1):
                request = client.build_request("GET", current, headers=self._headers())
                response = await client.send(request, stream=True)
                try:
                    if response.status_code in REDIRECT_STATUSES:
                        current = self._next_hop(current, response.headers.get("location"))
                        continue
                    return await self._read_document(response, candidate, current)
                finally:
                    await response.aclose()
        raise PreviewUnavailable("too many redirects")

    def _next_hop(self, current: str, location: Optional[str]) -> str:
        if not location:
            raise PreviewUnavailable("redirect without Location")
        target = urljoin(current, location.strip())
        if not self.guard.is_fetchable(target):
            raise PreviewUnavailable(f"redirect to forbidden target {target[:200]}")
        return target

    async def _read_document(
        self,
        response: httpx.Response,
        candidate: str,
        current: str,
    ) -> PreviewDocument:
        if not response.is_success:
            raise PreviewUnavailable(f"HTTP {response.status_code}")

        declared = response.headers.get("content-length", "")
        try:
            declared_length = int(declared)
        except ValueError:
            declared_length = None
        if declared_length is not None and declared_length > self.max_content_length:
            raise PreviewUnavailable(f"declared content length {declared_length} exceeds cap")

        body = bytearray()
        async for chunk in response.aiter_bytes():
            remaining = self.max_content_length - len(body)
            body.extend(chunk[:remaining])
            if len(body) >= self.max_content_length:
                break

        html = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        content_type = response.headers.get("content-type", "")
        if not is_html_content_type(content_type) and not looks_like_html_document(html):
            raise PreviewUnavailable(f"not an HTML document ({content_type or 'no content type'})")

        final_url = self.guard.parse_public_http_url(current) or candidate
        return PreviewDocument(html=html, final_url=final_url, content_type=content_type)
