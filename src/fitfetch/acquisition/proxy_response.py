"""
Classification of proxy relay responses into a tagged shape.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Optional, Tuple
from urllib.parse import unquote_to_bytes

from .content_validator import normalize_mime_type
from .html_scanner import looks_like_html
from .models import HtmlPage, JsonEnvelope, ProxyResponseShape, RawBytes

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+\-]+/[\w.+\-]+)?(?P<params>(?:;[^,;]+)*),(?P<data>.*)$", re.DOTALL)


def classify_proxy_response(content_type: Optional[str], body: bytes) -> ProxyResponseShape:
    """
    Decide what a relay returned.

    JSON objects carrying a string ``contents`` field are envelopes, HTML
    (declared or sniffed) is a page, and everything else is raw bytes.
    """
    mime_type = normalize_mime_type(content_type)
    head = body[:512].lstrip()

    if (mime_type and "json" in mime_type) or head.startswith(b"{"):
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("contents"), str):
            return JsonEnvelope(contents=payload["contents"])

    if mime_type in ("text/html", "application/xhtml+xml") or head[:1] == b"<":
        text = body.decode("utf-8", errors="replace")
        if mime_type in ("text/html", "application/xhtml+xml") or looks_like_html(text):
            return HtmlPage(html=text)

    return RawBytes(data=body, mime_type=mime_type)


def decode_data_uri(value: str) -> Optional[Tuple[bytes, Optional[str]]]:
    """Decode a ``data:`` URI into bytes and its MIME type, or ``None``."""
    match = _DATA_URI_RE.match(value.strip())
    if not match:
        return None
    params = match.group("params") or ""
    data = match.group("data")
    if ";base64" in params.lower():
        try:
            decoded = base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError):
            return None
    else:
        decoded = unquote_to_bytes(data)
    return decoded, normalize_mime_type(match.group("mime"))
