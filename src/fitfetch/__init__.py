"""
Fitfetch - resilient image acquisition for fashion generation.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .acquisition import ExtractionExhaustedError, ExtractionResult, ImageExtractor, extract_image_from_url
from .config import Config
from .generation import FashionGenerationService
from .portfolio import PortfolioStore

__all__ = [
    "__version__",
    "Config",
    "ExtractionExhaustedError",
    "ExtractionResult",
    "FashionGenerationService",
    "ImageExtractor",
    "PortfolioStore",
    "extract_image_from_url",
]
