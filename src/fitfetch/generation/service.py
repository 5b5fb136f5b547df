"""
URL-to-generation service: extraction, image analysis, prompt assembly and
upload fallback.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Union

import structlog

from ..acquisition.errors import ExtractionExhaustedError
from ..acquisition.models import ExtractionResult
from ..acquisition.orchestrator import ImageExtractor
from ..config.config import ExtractionSettings, GenerationConfig
from ..portfolio.store import PortfolioStore
from .models import GenerationError, GenerationOptions, GenerationOutcome, ImageGenerator, UploadFallback

logger = structlog.get_logger(__name__)

PRESERVATION_NOTE = (
    "Apply the requested wardrobe changes while preserving the person's natural pose and characteristics."
)

FALLBACK_MESSAGE = (
    "Unable to extract image from the provided URL due to network restrictions. "
    "Please upload the image directly using the upload button below."
)


def build_enhanced_prompt(
    prompt: str,
    analysis: Optional[str] = None,
    options: Optional[GenerationOptions] = None,
) -> str:
    """Append the image analysis (or the short preservation note) and the style options to ``prompt``."""
    sections: List[str] = []
    if prompt.strip():
        sections.append(prompt.strip())

    if analysis and analysis.strip():
        preserve_pose = options.preserve_pose if options else True
        preserve_face = options.preserve_facial_expressions if options else True
        requirements = ["PRESERVATION REQUIREMENTS:"]
        if preserve_pose:
            requirements.append("- Maintain the exact same pose and body positioning")
        if preserve_face:
            requirements.append("- Preserve facial expressions and features")
        requirements += [
            "- Keep lighting and background context",
            "- Apply fashion overlays naturally and seamlessly",
        ]
        sections.append(f"EXTRACTED IMAGE ANALYSIS:\n{analysis.strip()}")
        sections.append("\n".join(requirements))
        sections.append(
            "Generate fashion overlays that respect the original image characteristics "
            "while applying the requested wardrobe changes."
        )
    else:
        sections.append(PRESERVATION_NOTE)

    if options is not None:
        sections.append(
            f"Style: {', '.join(options.selected_styles)}\nCreativity Level: {options.creativity_level}"
        )
    return "\n\n".join(sections)


class FashionGenerationService:
    """
    Fetches the image behind a URL, has the generator analyse it, and hands
    it to the generator with a prompt built from that analysis. A failed
    analysis is not fatal.

    When every acquisition strategy fails the service returns an
    ``UploadFallback`` instead of raising, so the caller can switch to a
    direct upload. URL validation errors are not converted and propagate.
    """

    def __init__(
        self,
        extractor: ImageExtractor,
        generator: ImageGenerator,
        config: Optional[GenerationConfig] = None,
        *,
        portfolio: Optional[PortfolioStore] = None,
    ) -> None:
        self.extractor = extractor
        self.generator = generator
        self.config = config or extractor.config.generation
        self.portfolio = portfolio
        self.logger = logger.bind(component="FashionGenerationService")

    async def generate_from_image_url(
        self,
        url: str,
        prompt: str,
        options: Optional[ExtractionSettings] = None,
        *,
        generation_options: Optional[GenerationOptions] = None,
    ) -> Union[GenerationOutcome, UploadFallback]:
        generation_options = generation_options or GenerationOptions()
        try:
            image = await self.extractor.extract(url, options)
        except ExtractionExhaustedError as e:
            if not self.config.enable_upload_fallback:
                raise
            self.logger.warning("Extraction exhausted, offering upload fallback", url=url)
            return self._upload_fallback(url, e)

        analysis = await self._analyze(image, prompt)
        enhanced_prompt = build_enhanced_prompt(prompt, analysis, generation_options)
        output = await self.generator.generate(image, enhanced_prompt, options=generation_options)
        outcome = GenerationOutcome(
            original_url=url,
            strategy_used=image.strategy_used,
            prompt=enhanced_prompt,
            output=output,
            extraction=image.metadata(),
            analysis=analysis,
        )

        if self.portfolio is not None:
            item = self.portfolio.save(outcome.portfolio_payload())
            outcome = replace(outcome, portfolio_item_id=item.id)

        self.logger.info(
            "Generation completed",
            url=url,
            strategy=image.strategy_used,
            analysed=analysis is not None,
            has_image=output.has_image,
        )
        return outcome

    async def _analyze(self, image: ExtractionResult, prompt: str) -> Optional[str]:
        """Returns ``None`` when analysis is disabled or the model call fails."""
        if not self.config.analyze_images:
            return None
        try:
            return await self.generator.analyze(image, prompt)
        except GenerationError as e:
            self.logger.warning("Image analysis failed, continuing without it", url=image.source_url, error=str(e))
            return None

    def _upload_fallback(self, url: str, error: ExtractionExhaustedError) -> UploadFallback:
        failure = error.failure
        return UploadFallback(
            original_url=url,
            error=failure.aggregate_message,
            message=FALLBACK_MESSAGE,
            strategies_tried=tuple(attempt.strategy_name for attempt in failure.attempts),
            error_details=tuple(attempt.to_dict() for attempt in failure.attempts),
            suggestions=failure.suggestions,
            upload_accept=tuple(self.config.upload_accept),
            upload_max_size_mb=self.config.upload_max_size_mb,
        )
