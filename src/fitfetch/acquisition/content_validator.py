"""
Content validation for fetched image payloads.

The magic-byte signature is authoritative: a payload whose declared MIME type
disagrees with its signature is still accepted as the signature's format.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from ..config.config import ContentValidationConfig
from .models import ContentCheck

# Ordered; the first matching prefix wins.
SIGNATURES: Tuple[Tuple[str, bytes], ...] = (
    ("jpeg", b"\xff\xd8\xff"),
    ("png", b"\x89PNG"),
    ("gif", b"GIF"),
    ("webp", b"RIFF"),
)

FORMAT_MIME_TYPES: Dict[str, str] = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    """Strip parameters and lowercase; ``None`` for absent or blank values."""
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    return base or None


def sniff_format(data: bytes) -> Optional[str]:
    """Return the image format whose signature prefixes ``data``."""
    for image_format, signature in SIGNATURES:
        if data.startswith(signature):
            return image_format
    return None


class ContentValidator:
    """Checks size, declared MIME type and signature, returning the first failure."""

    def __init__(self, config: ContentValidationConfig | None = None) -> None:
        self.config = config or ContentValidationConfig()

    @property
    def max_bytes(self) -> int:
        return self.config.max_bytes

    def validate(self, data: bytes, declared_mime_type: Optional[str] = None) -> ContentCheck:
        if not data:
            return ContentCheck(is_valid=False, error="No image data provided")

        if len(data) > self.config.max_bytes:
            limit_mb = self.config.max_bytes / (1024 * 1024)
            return ContentCheck(is_valid=False, error=f"Image too large (max {limit_mb:g}MB)")

        mime_type = normalize_mime_type(declared_mime_type)
        if mime_type is not None and mime_type not in self.config.allowed_mime_types:
            return ContentCheck(is_valid=False, error=f"Unsupported MIME type: {mime_type}")

        detected = sniff_format(data)
        if detected is None:
            return ContentCheck(is_valid=False, error="Invalid image file signature")

        return ContentCheck(is_valid=True, detected_format=detected)
