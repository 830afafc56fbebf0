from typing import Dict, Any, List

from loguru import logger
from openai import AsyncOpenAI

from ..base import LLMProvider
from ..model_params import completion_params
from ...utils.error_handler import (
    handle_exceptions,
    convert_exceptions,
    ProviderException,
    ConfigurationException,
)


class OpenAILLMProvider(LLMProvider):
    """OpenAI LLM provider implementation."""

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
    async def chat_completion(self, messages: List[Dict], **kwargs) -> Dict[str, Any]:
        """Generate chat completion using OpenAI.

        ``model``, ``max_tokens`` and ``temperature`` may be overridden per call;
        the token budget is sent under the parameter name the model family expects.
        """
        model = kwargs.pop("model", None) or self.config.get("model_name", "gpt-4.1-mini")
        max_tokens = kwargs.pop("max_tokens", 1000)
        temperature = kwargs.pop("temperature", self.config.get("temperature", 0.7))

        try:
            response = await self.client.chat.completions.create(
                model=self._request_model(model),
                messages=messages,
                **completion_params(model, max_tokens, temperature),
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI chat completion failed: {e}")
            raise ProviderException(f"OpenAI chat completion failed: {e}") from e

        return {
            "content": response.choices[0].message.content,
            "usage": response.usage.model_dump() if response.usage else None,
            "model": response.model,
            "finish_reason": response.choices[0].finish_reason
        }

    async def close(self):
        """Close the LLM client and cleanup resources."""
        if self.client:
            logger.info("Closing OpenAI LLM client")
            await self.client.close()
