"""Provider system for mediachat."""

from .base import (
    LLMProvider,
    EmbeddingProvider,
    VisionProvider,
    CatalogProvider,
    FrameExtractor,
)
from .factory import ProviderFactory, provider_factory
from .model_params import completion_params

__all__ = [
    # Base classes
    'LLMProvider',
    'EmbeddingProvider',
    'VisionProvider',
    'CatalogProvider',
    'FrameExtractor',
    # Factory
    'ProviderFactory',
    'provider_factory',
    'completion_params',
]
