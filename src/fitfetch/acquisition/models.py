"""
Value objects produced and consumed by the acquisition pipeline.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .errors import ErrorKind


class UrlHint(str, Enum):
    """Coarse category of a URL, used only to pick suggestion text."""

    DIRECT_IMAGE = "direct_image"
    IMAGE_CDN = "image_cdn"
    PRODUCT_PAGE = "product_page"
    SOCIAL_MEDIA = "social_media"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class NormalizedUrl:
    """Outcome of URL normalization; never mutated after creation."""

    raw_input: Any
    resolved_url: str | None
    hostname: str | None
    is_valid: bool
    validation_error: str | None = None
    error_kind: ErrorKind | None = None
    special_case_hint: UrlHint | None = None


@dataclass(slots=True, frozen=True)
class FetchedImage:
    """Raw bytes returned by a strategy before content validation."""

    data: bytes
    mime_type: str | None
    final_url: str

    @property
    def byte_length(self) -> int:
        return len(self.data)


@dataclass(slots=True, frozen=True)
class ContentCheck:
    """Result of validating a payload."""

    is_valid: bool
    error: str | None = None
    detected_format: str | None = None


@dataclass(slots=True, frozen=True)
class ExtractionAttempt:
    """One strategy try, appended to the attempt log."""

    strategy_name: str
    started_at: datetime
    succeeded: bool
    duration_ms: float = 0.0
    error_message: str | None = None
    error_kind: ErrorKind | None = None
    tries: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy_name,
            "started_at": self.started_at.isoformat(),
            "succeeded": self.succeeded,
            "duration_ms": round(self.duration_ms, 1),
            "error": self.error_message,
            "kind": self.error_kind.value if self.error_kind else None,
            "tries": self.tries,
        }


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Validated image bytes handed to the caller."""

    image_bytes: bytes = field(repr=False)
    mime_type: str
    source_url: str
    resolved_url: str
    strategy_used: str
    extracted_at: datetime
    detected_format: str | None = None
    attempts: Tuple[ExtractionAttempt, ...] = ()

    @property
    def byte_length(self) -> int:
        return len(self.image_bytes)

    def as_file(self, name: str = "extracted-image") -> io.BytesIO:
        """Wrap the bytes as a named file-like object for upload APIs."""
        extension = self.detected_format or self.mime_type.rsplit("/", 1)[-1]
        buffer = io.BytesIO(self.image_bytes)
        buffer.name = f"{name}.{extension}"
        return buffer

    def metadata(self) -> Dict[str, Any]:
        return {
            "source_url": self.source_url,
            "resolved_url": self.resolved_url,
            "strategy": self.strategy_used,
            "mime_type": self.mime_type,
            "detected_format": self.detected_format,
            "byte_length": self.byte_length,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class ExtractionFailure:
    """Aggregate produced when every strategy failed."""

    source_url: str
    attempts: Tuple[ExtractionAttempt, ...]
    aggregate_message: str
    suggestions: Tuple[str, ...]
    hint: UrlHint | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_url": self.source_url,
            "message": self.aggregate_message,
            "hint": self.hint.value if self.hint else None,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "suggestions": list(self.suggestions),
        }


# --- Proxy response shapes ---


@dataclass(slots=True, frozen=True)
class RawBytes:
    data: bytes
    mime_type: Optional[str]


@dataclass(slots=True, frozen=True)
class JsonEnvelope:
    contents: str


@dataclass(slots=True, frozen=True)
class HtmlPage:
    html: str


ProxyResponseShape = Union[RawBytes, JsonEnvelope, HtmlPage]
