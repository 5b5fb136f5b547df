"""Hands validated images to a generative model, with an upload fallback on exhaustion."""

from .gemini import GeminiImageGenerator
from .models import (
    GenerationError,
    GenerationOptions,
    GenerationOutcome,
    GenerationOutput,
    ImageGenerator,
    UploadFallback,
)
from .service import FashionGenerationService, build_enhanced_prompt

__all__ = [
    "FashionGenerationService",
    "GeminiImageGenerator",
    "GenerationError",
    "GenerationOptions",
    "GenerationOutcome",
    "GenerationOutput",
    "ImageGenerator",
    "UploadFallback",
    "build_enhanced_prompt",
]
