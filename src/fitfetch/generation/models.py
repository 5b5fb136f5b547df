"""
Data models and the generator protocol for the wardrobe generation hand-off.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from ..acquisition.models import ExtractionResult


class GenerationError(Exception):
    """Raised when the generative model cannot be reached or returns nothing usable."""


@dataclass(slots=True, frozen=True)
class GenerationOutput:
    text: Optional[str] = None
    image_bytes: Optional[bytes] = field(default=None, repr=False)
    mime_type: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_bytes)


@dataclass(slots=True, frozen=True)
class GenerationOptions:
    """Per-call knobs for wardrobe generation."""

    selected_styles: Tuple[str, ...] = ("realistic",)
    creativity_level: float = 0.7
    preserve_pose: bool = True
    preserve_facial_expressions: bool = True

    def __post_init__(self) -> None:
        if not self.selected_styles:
            raise ValueError("At least one style must be selected")
        if not 0.0 <= self.creativity_level <= 1.0:
            raise ValueError(f"creativity_level must be between 0 and 1, got {self.creativity_level}")


@runtime_checkable
class ImageGenerator(Protocol):
    """Analyses validated image bytes and turns them plus a prompt into generated output."""

    async def analyze(self, image: ExtractionResult, context: str) -> Optional[str]: ...

    async def generate(
        self, image: ExtractionResult, prompt: str, *, options: Optional[GenerationOptions] = None
    ) -> GenerationOutput: ...


@dataclass(slots=True, frozen=True)
class GenerationOutcome:
    """Successful URL-to-generation run."""

    original_url: str
    strategy_used: str
    prompt: str
    output: GenerationOutput
    extraction: Dict[str, Any] = field(default_factory=dict)
    analysis: Optional[str] = None
    portfolio_item_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "original_url": self.original_url,
            "extraction_strategy": self.strategy_used,
            "extraction": self.extraction,
            "prompt": self.prompt,
            "analysis": self.analysis,
            "text": self.output.text,
            "mime_type": self.output.mime_type,
            "has_image": self.output.has_image,
            "portfolio_item_id": self.portfolio_item_id,
        }

    def portfolio_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "original_url": self.original_url,
            "strategy_used": self.strategy_used,
            "prompt": self.prompt,
            "analysis": self.analysis,
            "text": self.output.text,
            "mime_type": self.output.mime_type,
        }
        if self.output.image_bytes:
            payload["image_base64"] = base64.b64encode(self.output.image_bytes).decode("ascii")
        return payload


@dataclass(slots=True, frozen=True)
class UploadFallback:
    """Structured payload telling the caller to fall back to a direct upload."""

    original_url: str
    error: str
    message: str
    strategies_tried: Tuple[str, ...]
    error_details: Tuple[Dict[str, Any], ...]
    suggestions: Tuple[str, ...]
    upload_accept: Tuple[str, ...]
    upload_max_size_mb: int
    title: str = "Image Extraction Failed"

    @property
    def success(self) -> bool:
        return False

    @property
    def requires_upload(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "upload_fallback",
            "success": False,
            "requires_upload": True,
            "title": self.title,
            "original_url": self.original_url,
            "error": self.error,
            "message": self.message,
            "strategies_tried": list(self.strategies_tried),
            "error_details": list(self.error_details),
            "suggestions": list(self.suggestions),
            "upload_config": {
                "accept": ",".join(self.upload_accept),
                "max_size": f"{self.upload_max_size_mb}MB",
                "description": "Upload the image directly to continue with fashion generation",
            },
        }
