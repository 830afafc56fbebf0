"""Explicit dependency container handed to every component at construction."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from .config.settings import MediaChatConfig
from .pipeline.scheduler import AsyncioTaskScheduler, TaskScheduler
from .providers.base import (
    CatalogProvider,
    EmbeddingProvider,
    FrameExtractor,
    LLMProvider,
    VisionProvider,
)
from .providers.factory import ProviderFactory
from .store.base import EmbeddingStore
from .store.factory import create_embedding_store
from .utils.error_handler import log_exceptions


@dataclass
class ServiceContext:
    config: MediaChatConfig
    store: EmbeddingStore
    llm: LLMProvider
    embedding: EmbeddingProvider
    catalog: CatalogProvider
    frame_extractor: FrameExtractor
    scheduler: TaskScheduler
    vision: Optional[VisionProvider] = None

    @property
    def snapshots_root(self) -> Path:
        return Path(self.config.store.data_dir) / "snapshots"

    @classmethod
    @log_exceptions(custom_message="Failed to create service context")
    async def create(cls, config: Optional[MediaChatConfig] = None) -> "ServiceContext":
        """Build providers and the store from configuration."""
        config = config or MediaChatConfig()
        logger.info(f"Creating service context for {config.app_name} ({config.environment})")

        store = await create_embedding_store(config.store)
        return cls(
            config=config,
            store=store,
            llm=ProviderFactory.create_llm_provider(config),
            embedding=ProviderFactory.create_embedding_provider(config),
            catalog=ProviderFactory.create_catalog_provider(config),
            frame_extractor=ProviderFactory.create_frame_extractor(config),
            scheduler=AsyncioTaskScheduler(),
            vision=ProviderFactory.create_vision_provider(config),
        )

    async def close(self) -> None:
        """Stop scheduled work, then release clients and the store."""
        await self.scheduler.close()
        for provider in (self.llm, self.embedding, self.vision, self.catalog):
            if provider is not None:
                await provider.close()
        await self.store.close()
        logger.info("Service context closed")
