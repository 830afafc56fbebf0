from .settings import (
    LLMConfig,
    EmbeddingConfig,
    VisionConfig,
    StoreConfig,
    CatalogConfig,
    IngestionConfig,
    ChatConfig,
    LoggingConfig,
    MediaChatConfig,
)

__all__ = [
    "LLMConfig",
    "EmbeddingConfig",
    "VisionConfig",
    "StoreConfig",
    "CatalogConfig",
    "IngestionConfig",
    "ChatConfig",
    "LoggingConfig",
    "MediaChatConfig",
]
