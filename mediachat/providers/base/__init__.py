from .llm_provider import LLMProvider
from .embedding_provider import EmbeddingProvider
from .vision_provider import VisionProvider
from .catalog_provider import CatalogProvider
from .frame_extractor import FrameExtractor

__all__ = [
    'LLMProvider',
    'EmbeddingProvider',
    'VisionProvider',
    'CatalogProvider',
    'FrameExtractor',
]
