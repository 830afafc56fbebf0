from .llm_provider import OpenAILLMProvider
from .embedding_provider import OpenAIEmbeddingProvider
from .vision_provider import OpenAIVisionProvider

__all__ = [
    'OpenAILLMProvider',
    'OpenAIEmbeddingProvider',
    'OpenAIVisionProvider',
]
