import asyncio
from typing import List, Optional

from loguru import logger

from .context import AssembledContext
from ..config.settings import ChatConfig
from ..models import Asset, ChatExchange, ChunkMatch, FrameDescription, RelatedItem
from ..providers.base import CatalogProvider, EmbeddingProvider
from ..store.base import EmbeddingStore
from ..utils.error_handler import degrade_on_error


class ContextAssembler:
    """Gathers retrieval context for a question about one asset.

    Each step degrades to an empty result on failure so an answer can still
    be attempted with partial context.
    """

    def __init__(
        self,
        store: EmbeddingStore,
        embedding: EmbeddingProvider,
        catalog: CatalogProvider,
        config: ChatConfig,
    ):
        self.store = store
        self.embedding = embedding
        self.catalog = catalog
        self.config = config

    @degrade_on_error(list)
    async def _embed_query(self, query: str) -> List[float]:
        return await self.embedding.embedding(query)

    async def _relevant_chunks(self, asset_id: str, query: str) -> List[ChunkMatch]:
        query_embedding = await self._embed_query(query)
        if not query_embedding:
            return []
        return await self.store.similarity_search(asset_id, query_embedding, self.config.top_k)

    async def _frames_for(self, asset_id: str, chunks: List[ChunkMatch]) -> List[FrameDescription]:
        if not chunks:
            return []
        min_time = min(match.chunk.start_time for match in chunks)
        max_time = max(match.chunk.end_time for match in chunks)
        return await self.store.frames_in_range(asset_id, min_time, max_time, limit=self.config.max_frames)

    @degrade_on_error(list)
    async def _related(self, asset_id: str) -> List[RelatedItem]:
        return await self.catalog.list_related(asset_id, self.config.related_limit)

    async def _history(self, asset_id: str, user_id: Optional[str]) -> List[ChatExchange]:
        recent = await self.store.get_chat_history(asset_id, user_id, self.config.history_limit)
        return list(reversed(recent))

    @degrade_on_error(lambda: None)
    async def _asset(self, asset_id: str) -> Optional[Asset]:
        return await self.catalog.get_asset(asset_id)

    async def assemble(self, asset_id: str, query: str, user_id: Optional[str] = None) -> AssembledContext:
        chunks = await self._relevant_chunks(asset_id, query)
        frames = await self._frames_for(asset_id, chunks)
        related, history, asset = await asyncio.gather(
            self._related(asset_id),
            self._history(asset_id, user_id),
            self._asset(asset_id),
        )

        logger.debug(
            f"Context for {asset_id}: {len(chunks)} chunks, {len(frames)} frames, "
            f"{len(related)} related, {len(history)} history"
        )
        return AssembledContext(
            asset_id=asset_id,
            query=query,
            user_id=user_id,
            asset=asset,
            chunks=chunks,
            frames=frames,
            related=related,
            history=history,
        )
