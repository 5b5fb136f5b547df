"""
Gemini adapter for the wardrobe generation hand-off.
"""

from __future__ import annotations

import os
from typing import Any, List, Optional

import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..acquisition.models import ExtractionResult
from ..config.config import GenerationConfig
from .models import GenerationError, GenerationOptions, GenerationOutput

logger = structlog.get_logger(__name__)

ANALYSIS_PROMPT = """Analyze this extracted fashion image for virtual wardrobe overlay generation.

Context: {context}
Source URL: {source_url}
Extraction Strategy: {strategy}

Please provide:
1. Detailed description of the person's pose and body positioning
2. Facial expression and features analysis for preservation
3. Current clothing and style assessment
4. Lighting conditions and background elements
5. Optimal overlay strategies for this specific image
6. Color palette and style recommendations
7. Any challenges or considerations for virtual wardrobe application

Focus on providing actionable insights for creating seamless fashion overlays while maintaining the person's natural characteristics."""


class GeminiImageGenerator:
    """Sends the extracted image inline with a prompt and collects text and image parts."""

    def __init__(self, config: Optional[GenerationConfig] = None, *, client: Optional[Any] = None) -> None:
        self.config = config or GenerationConfig()
        if client is None:
            api_key = self.config.api_key or os.getenv("GEMINI_API_KEY")
            if not api_key:
                raise GenerationError("Gemini API key not configured")
            client = genai.Client(api_key=api_key)
        self._client = client
        self.logger = logger.bind(component="GeminiImageGenerator", model=self.config.model)

    async def analyze(self, image: ExtractionResult, context: str) -> Optional[str]:
        """Describe pose, features, clothing and lighting so generation can preserve them."""
        prompt = ANALYSIS_PROMPT.format(
            context=context.strip() or "-", source_url=image.source_url, strategy=image.strategy_used
        )
        self.logger.info("Requesting image analysis", source_url=image.source_url, model=self.config.analysis_model)
        response = await self._request(self.config.analysis_model, [self._image_part(image), prompt])
        return self._parse(response).text

    async def generate(
        self, image: ExtractionResult, prompt: str, *, options: Optional[GenerationOptions] = None
    ) -> GenerationOutput:
        options = options or GenerationOptions()
        self.logger.info(
            "Requesting generation",
            source_url=image.source_url,
            byte_length=image.byte_length,
            styles=list(options.selected_styles),
        )
        response = await self._request(
            self.config.model,
            [self._image_part(image), prompt],
            types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                temperature=options.creativity_level,
            ),
        )

        output = self._parse(response)
        if output.text is None and not output.has_image:
            raise GenerationError("Gemini returned no text or image")
        return output

    @staticmethod
    def _image_part(image: ExtractionResult) -> Any:
        return types.Part.from_bytes(data=image.image_bytes, mime_type=image.mime_type)

    async def _request(
        self, model: str, contents: List[Any], config: Optional[types.GenerateContentConfig] = None
    ) -> Any:
        try:
            return await self._client.aio.models.generate_content(model=model, contents=contents, config=config)
        except genai_errors.APIError as e:
            self.logger.error("Gemini request failed", model=model, error=str(e))
            raise GenerationError(f"Gemini request failed: {e}") from e

    @staticmethod
    def _parse(response: Any) -> GenerationOutput:
        texts: List[str] = []
        image_bytes: Optional[bytes] = None
        mime_type: Optional[str] = None

        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data and image_bytes is None:
                    image_bytes = inline.data
                    mime_type = inline.mime_type
                elif getattr(part, "text", None):
                    texts.append(part.text)
            break

        return GenerationOutput(text="".join(texts) or None, image_bytes=image_bytes, mime_type=mime_type)
