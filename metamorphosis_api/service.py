from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .config import Settings
from .errors import GatewayError, InvalidStep, ProviderCallError, ProviderResponseError
from .providers.extract import first_inline_image, first_text
from .providers.vertex import VertexAIProvider
from .schemas import (
    DESCRIBE_IMAGE,
    GENERATE_IMAGE,
    GENERATE_TEXT,
    DescribeImagePayload,
    GenerateImagePayload,
    GenerateTextPayload,
    ImageResult,
    TextResult,
)

logger = logging.getLogger("metamorphosis-api.service")


class GenerationService:
    """The three generation steps, bound to one request's provider."""

    def __init__(self, provider: VertexAIProvider, settings: Settings) -> None:
        self.provider = provider
        self.settings = settings

    async def generate_text(self, payload: GenerateTextPayload) -> TextResult:
        response = await self._generate(
            self.settings.text_model,
            contents=[{"role": "user", "parts": [{"text": payload.user_query}]}],
            system_instruction=payload.system_prompt,
        )
        return TextResult(text=_extract(first_text, response))

    async def generate_image(self, payload: GenerateImagePayload) -> ImageResult:
        response = await self._generate(
            self.settings.image_model,
            contents=[{"role": "user", "parts": [{"text": payload.prompt}]}],
            generation_config={"responseModalities": list(self.settings.image_response_modalities)},
        )
        return ImageResult(base64Image=_extract(first_inline_image, response))

    async def describe_image(self, payload: DescribeImagePayload) -> TextResult:
        image_part = {
            "inlineData": {
                "mimeType": self.settings.describe_image_mime_type,
                "data": payload.base64_data,
            }
        }
        response = await self._generate(
            self.settings.text_model,
            contents=[{"role": "user", "parts": [{"text": payload.system_prompt}, image_part]}],
        )
        return TextResult(text=_extract(first_text, response))

    async def dispatch(self, request: Any) -> Union[TextResult, ImageResult]:
        """Run the step named by ``request.step`` with its payload."""
        handlers = {
            GENERATE_TEXT: self.generate_text,
            GENERATE_IMAGE: self.generate_image,
            DESCRIBE_IMAGE: self.describe_image,
        }
        handler = handlers.get(request.step)
        if handler is None:
            raise InvalidStep()
        return await handler(request.payload)

    async def _generate(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            return await self.provider.generate_content(
                model,
                contents,
                system_instruction=system_instruction,
                generation_config=generation_config,
            )
        except GatewayError:
            raise
        except Exception as exc:
            logger.error(f"Error calling Vertex AI: {exc}", exc_info=True)
            raise ProviderCallError(str(exc)) from exc


def _extract(extractor: Callable[[Dict[str, Any]], str], response: Dict[str, Any]) -> str:
    try:
        return extractor(response)
    except GatewayError:
        raise
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        # JSON that is not shaped like generateContent output.
        logger.error(f"Malformed Vertex AI response: {exc}")
        raise ProviderResponseError(f"Malformed response from Vertex AI: {exc}") from exc
