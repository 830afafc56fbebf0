from typing import Any, Dict, Optional, Type

from loguru import logger

from .base import (
    LLMProvider,
    EmbeddingProvider,
    VisionProvider,
    CatalogProvider,
    FrameExtractor,
)
from .azure_providers import (
    AzureLLMProvider,
    AzureEmbeddingProvider,
    AzureVisionProvider,
)
from .openai_providers import (
    OpenAILLMProvider,
    OpenAIEmbeddingProvider,
    OpenAIVisionProvider,
)
from .custom_providers import (
    PeerTubeCatalogProvider,
    FFmpegFrameExtractor,
)
from ..utils.error_handler import ConfigurationException
from ..config.settings import MediaChatConfig


class ProviderFactory:
    """Factory class for creating provider instances.

    Every ``create_*`` method takes the configuration explicitly; when it is
    omitted a fresh ``MediaChatConfig`` is loaded from the environment.
    """

    _llm_providers: Dict[str, Type[LLMProvider]] = {
        'azure': AzureLLMProvider,
        'openai': OpenAILLMProvider,
    }

    _embedding_providers: Dict[str, Type[EmbeddingProvider]] = {
        'azure': AzureEmbeddingProvider,
        'openai': OpenAIEmbeddingProvider,
    }

    _vision_providers: Dict[str, Type[VisionProvider]] = {
        'azure': AzureVisionProvider,
        'openai': OpenAIVisionProvider,
    }

    _catalog_providers: Dict[str, Type[CatalogProvider]] = {
        'peertube': PeerTubeCatalogProvider,
    }

    _frame_extractors: Dict[str, Type[FrameExtractor]] = {
        'ffmpeg': FFmpegFrameExtractor,
    }

    @staticmethod
    def _create(registry: Dict[str, type], kind: str, provider_name: str, settings: Dict[str, Any]):
        if provider_name not in registry:
            raise ConfigurationException(
                f"Unknown {kind} provider: {provider_name}. "
                f"Supported providers: {list(registry.keys())}"
            )
        logger.info(f"Creating {kind} provider: {provider_name}")
        return registry[provider_name](settings)

    @classmethod
    def create_llm_provider(cls, config: Optional[MediaChatConfig] = None, provider_name: str = None) -> LLMProvider:
        """
        Create LLM provider instance.

        Args:
            config: Application configuration (optional, loaded from the environment)
            provider_name: Name of the provider (optional, defaults to config)

        Raises:
            ConfigurationException: If provider is not supported
        """
        config = config or MediaChatConfig()
        return cls._create(
            cls._llm_providers, "LLM",
            provider_name or config.llm.provider,
            config.llm.model_dump(),
        )

    @classmethod
    def create_embedding_provider(cls, config: Optional[MediaChatConfig] = None, provider_name: str = None) -> EmbeddingProvider:
        """Create embedding provider instance."""
        config = config or MediaChatConfig()
        return cls._create(
            cls._embedding_providers, "embedding",
            provider_name or config.embedding.provider,
            config.embedding.model_dump(),
        )

    @classmethod
    def create_vision_provider(cls, config: Optional[MediaChatConfig] = None, provider_name: str = None) -> Optional[VisionProvider]:
        """Create vision provider instance; ``None`` when frame description is disabled.

        Vision shares the LLM credentials and endpoint.
        """
        config = config or MediaChatConfig()
        if not config.vision.enabled:
            logger.info("Frame description disabled, no vision provider created")
            return None

        settings = config.llm.model_dump()
        settings.update(config.vision.model_dump(exclude_none=True))
        return cls._create(
            cls._vision_providers, "vision",
            provider_name or config.vision.provider,
            settings,
        )

    @classmethod
    def create_catalog_provider(cls, config: Optional[MediaChatConfig] = None, provider_name: str = None) -> CatalogProvider:
        """Create catalog provider instance."""
        config = config or MediaChatConfig()
        return cls._create(
            cls._catalog_providers, "catalog",
            provider_name or config.catalog.provider,
            config.catalog.model_dump(),
        )

    @classmethod
    def create_frame_extractor(cls, config: Optional[MediaChatConfig] = None, provider_name: str = "ffmpeg") -> FrameExtractor:
        """Create frame extractor instance."""
        config = config or MediaChatConfig()
        return cls._create(
            cls._frame_extractors, "frame extractor",
            provider_name,
            config.ingestion.model_dump(),
        )

    @classmethod
    def get_supported_providers(cls) -> Dict[str, list]:
        """Get list of supported providers by type."""
        return {
            "llm": list(cls._llm_providers.keys()),
            "embedding": list(cls._embedding_providers.keys()),
            "vision": list(cls._vision_providers.keys()),
            "catalog": list(cls._catalog_providers.keys()),
            "frame_extractor": list(cls._frame_extractors.keys()),
        }

    @classmethod
    def register_llm_provider(cls, name: str, provider_class: Type[LLMProvider]):
        """Register a new LLM provider."""
        cls._llm_providers[name] = provider_class
        logger.info(f"Registered LLM provider: {name}")

    @classmethod
    def register_embedding_provider(cls, name: str, provider_class: Type[EmbeddingProvider]):
        """Register a new embedding provider."""
        cls._embedding_providers[name] = provider_class
        logger.info(f"Registered embedding provider: {name}")

    @classmethod
    def register_vision_provider(cls, name: str, provider_class: Type[VisionProvider]):
        """Register a new vision provider."""
        cls._vision_providers[name] = provider_class
        logger.info(f"Registered vision provider: {name}")

    @classmethod
    def register_catalog_provider(cls, name: str, provider_class: Type[CatalogProvider]):
        """Register a new catalog provider."""
        cls._catalog_providers[name] = provider_class
        logger.info(f"Registered catalog provider: {name}")

    @classmethod
    def register_frame_extractor(cls, name: str, provider_class: Type[FrameExtractor]):
        """Register a new frame extractor."""
        cls._frame_extractors[name] = provider_class
        logger.info(f"Registered frame extractor: {name}")


# Global provider factory instance
provider_factory = ProviderFactory()
