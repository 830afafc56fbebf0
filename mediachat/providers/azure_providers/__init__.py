from .llm_provider import AzureLLMProvider
from .embedding_provider import AzureEmbeddingProvider
from .vision_provider import AzureVisionProvider

__all__ = [
    "AzureLLMProvider",
    "AzureEmbeddingProvider",
    "AzureVisionProvider",
]
