"""
Finds image references in HTML returned by proxy relays.
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urljoin, urlsplit

import structlog
from selectolax.lexbor import LexborHTMLParser

logger = structlog.get_logger(__name__)

# (selector, attribute) pairs in priority order
_IMAGE_SELECTORS = (
    ("img[src]", "src"),
    ('meta[property="og:image"]', "content"),
    ('meta[name="twitter:image"]', "content"),
    ('meta[property="twitter:image"]', "content"),
)


def looks_like_html(text: str) -> bool:
    """Cheap check used before handing text to the parser."""
    lowered = text[:4096].lower()
    return "<img" in lowered or "og:image" in lowered or "<html" in lowered or "twitter:image" in lowered


def find_image_urls(html: str, base_url: Optional[str] = None) -> List[str]:
    """
    Collect absolute http(s) image URLs from ``<img src>``, ``og:image`` and
    ``twitter:image`` references, in that order, without duplicates.

    Relative references are resolved against ``base_url`` when one is given
    and dropped otherwise.
    """
    if not html or not html.strip():
        return []

    tree = LexborHTMLParser(html)
    found: List[str] = []
    seen: set[str] = set()

    for selector, attribute in _IMAGE_SELECTORS:
        for node in tree.css(selector):
            value = (node.attributes.get(attribute) or "").strip()
            if not value or value.startswith("data:"):
                continue
            if base_url:
                value = urljoin(base_url, value)
            if urlsplit(value).scheme not in ("http", "https"):
                continue
            if value not in seen:
                seen.add(value)
                found.append(value)

    logger.debug("Scanned HTML for image references", count=len(found), base_url=base_url)
    return found
