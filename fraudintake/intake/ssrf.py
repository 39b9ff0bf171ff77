"""Decide whether a user-supplied URL may be fetched by the server.

Every outbound fetch (first request, each redirect hop, the final URL and any
thumbnail link pulled out of a page) goes through `SSRFGuard.classify`.
No DNS resolution happens here; only the literal hostname is judged.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import idna

ALLOWED_SCHEMES = frozenset({"http", "https"})

FORBIDDEN_IPV4_NETWORKS = tuple(
    ipaddress.IPv4Network(cidr)
    for cidr in (
        "10.0.0.0/8",
        "127.0.0.0/8",
        "0.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
    )
)

FORBIDDEN_HOSTNAMES = frozenset({"localhost", "localhost.localdomain"})
FORBIDDEN_SUFFIXES = (".local", ".localhost", ".internal")

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*:")
_DOTTED_QUAD_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")
_HOST_CHARS_RE = re.compile(r"^[a-z0-9._-]+$")


class Fetchability(str, Enum):
    """Outcome of an SSRF classification."""

    FETCHABLE = "fetchable"
    FORBIDDEN = "forbidden"


def has_explicit_scheme(value: str) -> bool:
    return bool(_SCHEME_RE.match((value or "").strip()))


def _ipv4_literal(host: str) -> Optional[ipaddress.IPv4Address]:
    """Return the address an OS resolver would read `host` as, if it is an IPv4 literal.

    inet_aton accepts shorthand forms such as ``127.1``, ``0x7f.0.0.1`` and
    ``2130706433``; those must be judged as the address they denote.
    """
    if not host or not host[0].isdigit():
        return None
    try:
        packed = socket.inet_aton(host)
    except OSError:
        return None
    return ipaddress.IPv4Address(packed)


def normalize_hostname(hostname: str) -> Optional[str]:
    """Canonical ASCII form of `hostname`, or None when it cannot be judged.

    Lower-cased, UTS 46 mapped (so ``ⓛⓞⓒⓐⓛⓗⓞⓢⓣ`` becomes ``localhost``) and
    stripped of trailing dots. IPv6 literals yield None.
    """
    host = (hostname or "").strip().lower()
    if not host or ":" in host or host.startswith("["):
        return None
    if not host.isascii():
        try:
            host = idna.encode(host, uts46=True).decode("ascii")
        except (idna.IDNAError, UnicodeError):
            return None
    host = host.lower().rstrip(".")
    return host or None


def is_private_hostname(hostname: str) -> bool:
    """True when `hostname` names loopback, private, link-local or otherwise internal targets."""
    host = normalize_hostname(hostname)
    if host is None:
        return True

    if host in FORBIDDEN_HOSTNAMES or host.endswith(FORBIDDEN_SUFFIXES):
        return True
    if not _HOST_CHARS_RE.match(host):
        return True

    quad = _DOTTED_QUAD_RE.match(host)
    if quad and any(int(octet) > 255 for octet in quad.groups()):
        return True

    address = _ipv4_literal(host)
    if address is not None:
        return any(address in network for network in FORBIDDEN_IPV4_NETWORKS)

    return False


def split_url(value: str):
    """urlsplit + port access, or None when the URL is malformed."""
    try:
        parsed = urlsplit(value)
        parsed.port  # raises ValueError on a bad port
    except ValueError:
        return None
    return parsed


class SSRFGuard:
    """Classifies hostnames and URLs as fetchable or forbidden."""

    def classify(self, hostname_or_url: str) -> Fetchability:
        value = (hostname_or_url or "").strip()
        if not value:
            return Fetchability.FORBIDDEN

        if "://" not in value and not has_explicit_scheme(value):
            return Fetchability.FORBIDDEN if is_private_hostname(value) else Fetchability.FETCHABLE

        parsed = split_url(value)
        if parsed is None or parsed.scheme.lower() not in ALLOWED_SCHEMES:
            return Fetchability.FORBIDDEN
        if parsed.username is not None or parsed.password is not None:
            return Fetchability.FORBIDDEN
        if is_private_hostname(parsed.hostname or ""):
            return Fetchability.FORBIDDEN
        return Fetchability.FETCHABLE

    def is_fetchable(self, hostname_or_url: str) -> bool:
        return self.classify(hostname_or_url) is Fetchability.FETCHABLE

    def parse_public_http_url(self, value: str) -> Optional[str]:
        """Normalize a user-supplied URL into an absolute public http(s) URL.

        Values without a scheme get ``https://`` prepended, but only when they
        look like a hostname (contain a dot).
        """
        trimmed = (value or "").strip()
        if not trimmed:
            return None

        explicit = has_explicit_scheme(trimmed)
        if not explicit and "." not in trimmed:
            return None

        parsed = split_url(trimmed if explicit else f"https://{trimmed}")
        if parsed is None or not parsed.hostname:
            return None
        url = urlunsplit(
            (
                parsed.scheme.lower(),
                parsed.netloc,
                parsed.path or "/",
                parsed.query,
                parsed.fragment,
            )
        )
        if not self.is_fetchable(url):
            return None
        return url
