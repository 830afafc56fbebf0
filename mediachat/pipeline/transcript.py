from typing import Callable, Dict, List, Optional

from loguru import logger

from .captions import segment_captions
from ..config.settings import IngestionConfig
from ..models import Asset, Chunk
from ..providers.base import CatalogProvider, EmbeddingProvider
from ..store.base import EmbeddingStore

EMBEDDING_BATCH_SIZE = 64


class TranscriptStage:
    """Caption acquisition, segmentation and embedding generation."""

    def __init__(
        self,
        store: EmbeddingStore,
        catalog: CatalogProvider,
        embedding: EmbeddingProvider,
        config: IngestionConfig,
        caption_language: str = "en",
    ):
        self.store = store
        self.catalog = catalog
        self.embedding = embedding
        self.config = config
        self.caption_language = caption_language

    async def fetch_transcript(self, asset_id: str, asset: Asset) -> Optional[str]:
        caption = asset.preferred_caption(self.caption_language)
        if caption is None:
            logger.info(f"No captions listed for {asset_id} yet")
            return None
        content = await self.catalog.fetch_caption(caption)
        if not content:
            logger.info(f"Caption {caption.language} for {asset_id} is not downloadable yet")
            return None
        return content

    def _reuse_stored(self, chunks: List[Chunk], stored: Dict[int, Chunk]) -> int:
        """Carry over stored embeddings whose chunk text is unchanged."""
        reused = 0
        for chunk in chunks:
            previous = stored.get(chunk.index)
            if previous is not None and previous.text == chunk.text and previous.embedding is not None:
                chunk.embedding = previous.embedding
                reused += 1
        return reused

    async def _embed(self, asset_id: str, missing: List[Chunk], is_current: Callable[[], bool]) -> int:
        """Embed chunks in batches, persisting each batch as soon as it returns."""
        for start in range(0, len(missing), EMBEDDING_BATCH_SIZE):
            if not is_current():
                return start
            batch = missing[start:start + EMBEDDING_BATCH_SIZE]
            vectors = await self.embedding.batch_embedding([chunk.text for chunk in batch])
            for chunk, vector in zip(batch, vectors):
                chunk.embedding = list(vector)
                await self.store.upsert_chunk(chunk)
            logger.debug(f"Embedded chunks {start}-{start + len(batch) - 1} for {asset_id}")
        return len(missing)

    async def run(
        self,
        asset_id: str,
        asset: Asset,
        is_current: Callable[[], bool] = lambda: True,
    ) -> Optional[int]:
        """Store embedded chunks for the asset.

        Returns the number of chunks stored, or ``None`` when no transcript is
        available yet (no caption track, download failed, or no cues).
        Chunks are written before embedding so an interrupted run resumes
        from the last persisted batch.
        """
        content = await self.fetch_transcript(asset_id, asset)
        if content is None:
            return None

        chunks = segment_captions(content, asset_id, self.config.segment_duration)
        if not chunks:
            logger.info(f"Caption for {asset_id} has no cues")
            return None
        if not is_current():
            return None

        stored = {chunk.index: chunk for chunk in await self.store.list_chunks(asset_id)}
        reused = self._reuse_stored(chunks, stored)
        if reused:
            logger.info(f"Reused {reused} stored embeddings for {asset_id}")

        for chunk in chunks:
            previous = stored.get(chunk.index)
            if previous is None or previous != chunk:
                await self.store.upsert_chunk(chunk)
        await self.store.truncate_chunks(asset_id, len(chunks))

        await self._embed(asset_id, [chunk for chunk in chunks if chunk.embedding is None], is_current)

        logger.info(f"Stored {len(chunks)} transcript chunks for {asset_id}")
        return len(chunks)
