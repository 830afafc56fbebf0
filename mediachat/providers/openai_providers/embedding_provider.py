from typing import Dict, Any, List

from loguru import logger
from openai import AsyncOpenAI

from ..base import EmbeddingProvider
from ...utils.error_handler import (
    handle_exceptions,
    convert_exceptions,
    ProviderException,
    ConfigurationException,
)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider implementation."""

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

    def _request_options(self) -> Dict[str, Any]:
        options = {"model": self.config.get("model_name", "text-embedding-3-small")}
        # only the text-embedding-3 family accepts a custom output size
        if options["model"].startswith("text-embedding-3") and self.config.get("dimensions"):
            options["dimensions"] = self.config["dimensions"]
        return options

    @handle_exceptions(retries=3, exceptions=(ProviderException,))
    @convert_exceptions({Exception: ProviderException})
    async def embedding(self, text: str, **kwargs) -> List[float]:
        """Generate embedding using OpenAI."""
        try:
            response = await self.client.embeddings.create(
                input=text,
                **self._request_options(),
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI embedding failed: {e}")
            raise ProviderException(f"OpenAI embedding failed: {e}") from e

        return response.data[0].embedding

    @handle_exceptions(retries=3, exceptions=(ProviderException,))
    @convert_exceptions({Exception: ProviderException})
    async def batch_embedding(self, texts: List[str], **kwargs) -> List[List[float]]:
        """Generate embeddings for multiple texts using OpenAI."""
        if not texts:
            return []
        try:
            response = await self.client.embeddings.create(
                input=texts,
                **self._request_options(),
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI batch embedding failed: {e}")
            raise ProviderException(f"OpenAI batch embedding failed: {e}") from e

        return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]

    async def close(self):
        """Close the embedding client and cleanup resources."""
        if self.client:
            logger.info("Closing OpenAI embedding client")
            await self.client.close()
