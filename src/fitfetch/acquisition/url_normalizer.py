"""
URL normalization, SSRF guard and hint classification.

Everything here is pure: no network access, no logging side effects.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Any, Iterable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ..config.config import UrlPolicyConfig
from .errors import ErrorKind, UrlValidationError
from .models import NormalizedUrl, UrlHint

_ALLOWED_SCHEMES = ("http", "https")
_HOSTNAME_RE = re.compile(r"^[a-z0-9._~\-]+$|^\[?[0-9a-f:.]+\]?$", re.IGNORECASE)

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "bmp")
SOCIAL_MEDIA_DOMAINS = ("instagram.com", "facebook.com", "pinterest.com", "twitter.com", "x.com", "tiktok.com")
PRODUCT_PAGE_DOMAINS = (
    "zara.com",
    "hm.com",
    "amazon.com",
    "ebay.com",
    "etsy.com",
    "shopify.com",
    "nike.com",
    "adidas.com",
    "target.com",
    "walmart.com",
)
IMAGE_CDN_DOMAINS = ("imgur.com", "unsplash.com", "cloudinary.com", "amazonaws.com", "cloudfront.net")

GENERIC_SUGGESTIONS = (
    'Right-click the image and select "Copy image address", then paste that URL',
    "Try a direct image link from a CDN or image host (imgur, unsplash, etc.)",
    "Save the image to your device and upload it directly",
)

HINT_SUGGESTIONS = {
    UrlHint.DIRECT_IMAGE: (
        "The link looks like a direct image file; check that it is publicly accessible",
    ),
    UrlHint.IMAGE_CDN: (
        "Image hosts usually work; make sure the link is not expired or access-restricted",
    ),
    UrlHint.PRODUCT_PAGE: (
        'Look for "View larger" or "Zoom" options that open the full product image',
        "Use the product image URL instead of the product page URL",
    ),
    UrlHint.SOCIAL_MEDIA: (
        "Social media images require authentication and usually cannot be fetched",
        "Copy the direct image URL from the browser developer tools",
    ),
    UrlHint.UNKNOWN: (
        "The page may block automated access; copying the image address directly usually helps",
    ),
}


def _matches_domain(hostname: str, domains: Iterable[str]) -> bool:
    return any(hostname == domain or hostname.endswith(f".{domain}") for domain in domains)


def classify_url(hostname: str, path: str) -> UrlHint:
    """Classify a parsed URL into a hint category."""
    hostname = hostname.lower()
    path = path.lower()

    if any(path.endswith(f".{ext}") for ext in IMAGE_EXTENSIONS):
        return UrlHint.DIRECT_IMAGE
    if _matches_domain(hostname, SOCIAL_MEDIA_DOMAINS):
        return UrlHint.SOCIAL_MEDIA
    if _matches_domain(hostname, PRODUCT_PAGE_DOMAINS):
        return UrlHint.PRODUCT_PAGE
    if _matches_domain(hostname, IMAGE_CDN_DOMAINS):
        return UrlHint.IMAGE_CDN
    return UrlHint.UNKNOWN


def suggestions_for(hint: Optional[UrlHint]) -> List[str]:
    """Hint-specific suggestions followed by the generic advice."""
    specific = HINT_SUGGESTIONS.get(hint or UrlHint.UNKNOWN, ())
    return [*specific, *GENERIC_SUGGESTIONS]


def _is_blocked(hostname: str, blocked_hosts: Sequence[str]) -> bool:
    if hostname in blocked_hosts or hostname.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_loopback or ip.is_unspecified


def _invalid(raw: Any, kind: ErrorKind, message: str, resolved: str | None = None) -> NormalizedUrl:
    return NormalizedUrl(
        raw_input=raw,
        resolved_url=resolved,
        hostname=None,
        is_valid=False,
        validation_error=message,
        error_kind=kind,
    )


def normalize_url(raw: Any, policy: UrlPolicyConfig | None = None) -> NormalizedUrl:
    """Normalize user input into a fetchable URL, or describe why it is not one."""
    policy = policy or UrlPolicyConfig()

    if not isinstance(raw, str) or not raw.strip():
        return _invalid(raw, ErrorKind.INVALID_INPUT, "URL must be a non-empty string")

    candidate = raw.strip()
    if len(candidate) > policy.max_url_length:
        return _invalid(raw, ErrorKind.INVALID_INPUT, f"URL exceeds maximum length of {policy.max_url_length}")

    if candidate.startswith("//"):
        candidate = "https:" + candidate
    elif "://" not in candidate:
        candidate = "https://" + candidate

    try:
        parts = urlsplit(candidate)
        # Accessing .port validates it
        parts.port
    except ValueError as e:
        return _invalid(raw, ErrorKind.MALFORMED_URL, f"Invalid URL format: {e}", candidate)

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        return _invalid(raw, ErrorKind.MALFORMED_URL, f"Unsupported URL scheme: {parts.scheme}", candidate)

    hostname = (parts.hostname or "").lower()
    if not hostname or not _HOSTNAME_RE.match(hostname) or ".." in hostname:
        return _invalid(raw, ErrorKind.MALFORMED_URL, "Invalid URL format: missing or illegal hostname", candidate)

    if _is_blocked(hostname, policy.blocked_hosts):
        return NormalizedUrl(
            raw_input=raw,
            resolved_url=candidate,
            hostname=hostname,
            is_valid=False,
            validation_error="Local URLs are not supported for security reasons",
            error_kind=ErrorKind.BLOCKED_HOST,
        )

    resolved = urlunsplit((scheme, parts.netloc, parts.path or "/", parts.query, ""))
    return NormalizedUrl(
        raw_input=raw,
        resolved_url=resolved,
        hostname=hostname,
        is_valid=True,
        special_case_hint=classify_url(hostname, parts.path),
    )


def validate_url(raw: Any, policy: UrlPolicyConfig | None = None) -> NormalizedUrl:
    """Like ``normalize_url`` but raises ``UrlValidationError`` on rejection."""
    normalized = normalize_url(raw, policy)
    if not normalized.is_valid:
        kind = normalized.error_kind or ErrorKind.MALFORMED_URL
        raise UrlValidationError(kind, normalized.validation_error or "Invalid URL")
    return normalized
