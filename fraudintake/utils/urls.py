"""URL, address and email normalization helpers."""

from __future__ import annotations

import ipaddress
import re
from typing import Optional
from urllib.parse import quote, urlsplit

MAX_ATTACHMENT_URL_LENGTH = 2048

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_IPV4_WITH_PORT_RE = re.compile(r"^(\d{1,3}(?:\.\d{1,3}){3})(?::\d+)?$")
_IPV6_WITH_PORT_RE = re.compile(r"^\[([^\]]+)\](?::\d+)?$")


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def normalize_ip(value: str | None) -> Optional[str]:
    """Return a bare IP address from header-ish input (``1.2.3.4:80``, ``[::1]:80``)."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if _is_ip(trimmed):
        return trimmed

    match = _IPV4_WITH_PORT_RE.match(trimmed)
    if match and _is_ip(match.group(1)):
        return match.group(1)

    match = _IPV6_WITH_PORT_RE.match(trimmed)
    if match and _is_ip(match.group(1)):
        return match.group(1)

    return None


def resolve_origin(value: str) -> Optional[str]:
    """``scheme://host[:port]`` of an http(s) URL, or None."""
    if not value:
        return None
    try:
        parsed = urlsplit(value.strip())
        port = parsed.port
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    default_port = 443 if parsed.scheme == "https" else 80
    host = parsed.hostname
    if ":" in host:
        host = f"[{host}]"
    if port and port != default_port:
        return f"{parsed.scheme}://{host}:{port}"
    return f"{parsed.scheme}://{host}"


class StorageUrlPolicy:
    """Accepts only public object URLs inside one storage bucket."""

    def __init__(self, project_url: str, bucket: str):
        self.origin = resolve_origin(project_url)
        self.bucket = bucket
        self._prefixes = tuple(
            dict.fromkeys(
                (
                    f"/storage/v1/object/public/{bucket}/",
                    f"/storage/v1/object/public/{quote(bucket, safe='')}/",
                )
            )
        )

    def is_valid(self, value: str) -> bool:
        trimmed = (value or "").strip()
        if not trimmed or len(trimmed) > MAX_ATTACHMENT_URL_LENGTH:
            return False
        if not self.origin:
            return False
        if resolve_origin(trimmed) != self.origin:
            return False
        try:
            path = urlsplit(trimmed).path
        except ValueError:
            return False
        return path.startswith(self._prefixes)
