"""Title/thumbnail extraction from untrusted HTML.

Pages come from arbitrary third parties, so nothing here builds a DOM. Only a
bounded prefix of the document is scanned with a handful of tag regexes, and
only allowlisted meta/link keys are considered. First match wins.

Attribute lookup requires the name to stand alone: it must not follow a word
character, ``-`` or ``:``, so ``data-name=`` or ``og:name=`` never answer for
``name=``. Otherwise quoting and matching rules are the usual loose ones
(double, single or no quotes; case-insensitive names).
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin

from .ssrf import SSRFGuard, split_url

HEAD_SCAN_LIMIT = 250_000
HTML_SNIFF_LIMIT = 10_000
MAX_TITLE_LENGTH = 255

TITLE_META_KEYS = frozenset({"og:title", "twitter:title", "twitter:text:title", "title"})
IMAGE_META_KEYS = frozenset(
    {
        "og:image",
        "og:image:url",
        "og:image:secure_url",
        "twitter:image",
        "twitter:image:src",
    }
)
ICON_REL_TOKENS = frozenset({"icon", "apple-touch-icon"})

_META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_LINK_TAG_RE = re.compile(r"<link\b[^>]*>", re.IGNORECASE)
_TITLE_TAG_RE = re.compile(r"<title\b[^>]*>([\s\S]*?)</title>", re.IGNORECASE)
_HTML_SNIFF_RE = re.compile(r"<(html|head|title|meta)\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

_ENTITIES = (
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)

_attribute_patterns: dict[str, re.Pattern[str]] = {}

_default_guard = SSRFGuard()


def _attribute_pattern(attribute: str) -> re.Pattern[str]:
    pattern = _attribute_patterns.get(attribute)
    if pattern is None:
        pattern = re.compile(
            rf"(?<![\w:-]){re.escape(attribute)}\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s>]+))",
            re.IGNORECASE,
        )
        _attribute_patterns[attribute] = pattern
    return pattern


def extract_attribute_value(tag: str, attribute: str) -> Optional[str]:
    """Read one attribute from a raw tag string (quoted or unquoted)."""
    match = _attribute_pattern(attribute).search(tag)
    if not match:
        return None
    value = next((group for group in match.groups() if group is not None), "")
    return value.strip() or None


def decode_html_entities(value: str) -> str:
    for entity, char in _ENTITIES:
        value = value.replace(entity, char)
    return value


def normalize_title(value: str) -> Optional[str]:
    decoded = _WHITESPACE_RE.sub(" ", decode_html_entities(value)).strip()
    if not decoded:
        return None
    return decoded[:MAX_TITLE_LENGTH]


def looks_like_html_document(html: str) -> bool:
    return bool(_HTML_SNIFF_RE.search(html[:HTML_SNIFF_LIMIT]))


def _meta_key(tag: str) -> str:
    return (
        extract_attribute_value(tag, "property")
        or extract_attribute_value(tag, "name")
        or ""
    ).lower()


def extract_title(html: str) -> Optional[str]:
    """Pick the page title from social meta tags, falling back to <title>."""
    head = (html or "")[:HEAD_SCAN_LIMIT]

    for tag in _META_TAG_RE.findall(head):
        if _meta_key(tag) not in TITLE_META_KEYS:
            continue
        content = extract_attribute_value(tag, "content")
        if not content:
            continue
        title = normalize_title(content)
        if title:
            return title

    match = _TITLE_TAG_RE.search(head)
    if not match or not match.group(1):
        return None
    return normalize_title(match.group(1))


def resolve_thumbnail_url(
    candidate: str,
    base_url: str,
    guard: Optional[SSRFGuard] = None,
) -> Optional[str]:
    """Resolve `candidate` against the page URL; None unless it is a public http(s) URL."""
    guard = guard or _default_guard
    try:
        resolved = urljoin(base_url, candidate.replace("&amp;", "&").strip())
    except ValueError:
        return None
    parsed = split_url(resolved)
    if parsed is None or parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return None
    if not guard.is_fetchable(resolved):
        return None
    return resolved


def extract_thumbnail(
    html: str,
    base_url: str,
    guard: Optional[SSRFGuard] = None,
) -> Optional[str]:
    """Pick a preview image from social meta tags, then from icon-ish <link> tags."""
    head = (html or "")[:HEAD_SCAN_LIMIT]

    for tag in _META_TAG_RE.findall(head):
        if _meta_key(tag) not in IMAGE_META_KEYS:
            continue
        content = extract_attribute_value(tag, "content")
        if not content:
            continue
        resolved = resolve_thumbnail_url(content, base_url, guard)
        if resolved:
            return resolved

    for tag in _LINK_TAG_RE.findall(head):
        rel = (extract_attribute_value(tag, "rel") or "").lower()
        if not rel:
            continue
        if "image_src" not in rel and not ICON_REL_TOKENS.intersection(rel.split()):
            continue
        href = extract_attribute_value(tag, "href")
        if not href:
            continue
        resolved = resolve_thumbnail_url(href, base_url, guard)
        if resolved:
            return resolved

    return None
