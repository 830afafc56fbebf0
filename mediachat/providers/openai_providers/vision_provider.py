import base64
from typing import Dict, Any

from loguru import logger
from openai import AsyncOpenAI

from ..base import VisionProvider
from ..model_params import completion_params
from ...config.settings import DEFAULT_FRAME_PROMPT
from ...utils.error_handler import (
    handle_exceptions,
    convert_exceptions,
    ProviderException,
    ConfigurationException,
)


def build_image_messages(image_data: bytes, prompt: str):
    """Single user turn carrying the prompt and the frame as a base64 data URL."""
    image_base64 = base64.b64encode(image_data).decode('utf-8')
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:image/jpeg;base64,{image_base64}"
                    }
                }
            ]
        }
    ]


class OpenAIVisionProvider(VisionProvider):
    """OpenAI Vision provider implementation."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.client = self._initialize_client()

    def _initialize_client(self):
        """Initialize OpenAI client."""
        api_key = self.config.get("api_key")
        if not api_key:
            raise ConfigurationException("OpenAI API key is required")

        try:
            return AsyncOpenAI(
                api_key=api_key,
                base_url=self.config.get("endpoint") or None,
                timeout=self.config.get("timeout", 200),
                max_retries=self.config.get("max_retries", 2)
            )
        except Exception as e:
            raise ProviderException(f"Failed to initialize OpenAI client: {e}") from e

    def _request_model(self, model: str) -> str:
        return model

    @handle_exceptions(retries=3, exceptions=(ProviderException,))
    @convert_exceptions({Exception: ProviderException})
    async def analyze_image(self, image_data: bytes, **kwargs) -> Dict[str, Any]:
        """Analyze image using OpenAI Vision."""
        model = self.config.get("model_name") or "gpt-4o"
        prompt = kwargs.get("prompt") or self.config.get("prompt") or DEFAULT_FRAME_PROMPT
        max_tokens = kwargs.get("max_tokens", self.config.get("max_tokens", 150))

        try:
            response = await self.client.chat.completions.create(
                model=self._request_model(model),
                messages=build_image_messages(image_data, prompt),
                **completion_params(model, max_tokens, kwargs.get("temperature"))
            )
        except Exception as e:
            logger.error(f"OpenAI Vision analysis failed: {e}")
            raise ProviderException(f"OpenAI Vision analysis failed: {e}") from e

        return {
            "analysis": response.choices[0].message.content,
            "model": response.model,
            "usage": response.usage.model_dump() if response.usage else None
        }

    async def close(self):
        """Close the vision client and cleanup resources."""
        if self.client:
            logger.info("Closing OpenAI vision client")
            await self.client.close()
