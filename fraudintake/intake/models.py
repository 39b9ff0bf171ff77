"""Data classes shared by the intake components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SubmissionRequest:
    """A report as submitted by the public form (all fields untrusted)."""

    url: str
    email: str
    platform_id: Optional[int]
    category_id: Optional[int]
    form_started_at: Optional[float]  # epoch milliseconds, as sent by the browser
    challenge_token: str = ""
    honeypot: str = ""
    title: Optional[str] = None
    description: Optional[str] = None
    attachment_urls: list[str] = field(default_factory=list)
    client_ip: Optional[str] = None
    user_agent: str = "unknown"

    @property
    def rate_limit_key(self) -> str:
        """Per-submitter key: client IP, or the user agent when no IP is known."""
        if self.client_ip:
            return f"ip:{self.client_ip}"
        return f"ua:{(self.user_agent or 'unknown')[:160].lower()}"


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    error_codes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PreviewDocument:
    html: str
    final_url: str
    content_type: str = ""


@dataclass(frozen=True)
class LinkPreview:
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None

    @property
    def empty(self) -> bool:
        return self.title is None and self.thumbnail_url is None


@dataclass
class NewReport:
    """Assembled record handed to the persistence layer."""

    url: str
    email: str
    platform_id: int
    category_id: int
    title: Optional[str] = None
    description: Optional[str] = None
    source_ip: Optional[str] = None
    image_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionOutcome:
    report_id: str
    persisted: bool = True
    report: Optional[dict] = None
