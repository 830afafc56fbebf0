from typing import List, Optional

from loguru import logger
from sqlalchemy import Float, delete, func, literal, literal_column, select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .base import EmbeddingStore
from .tables import build_schema
from ..models import (
    ChatExchange,
    Chunk,
    ChunkMatch,
    FrameDescription,
    ProcessingRecord,
    ProcessingStatus,
    StatusEvent,
    UsageRecord,
)
from ..utils.error_handler import convert_exceptions, degrade_on_error, StoreException

WRITE_ERRORS = {SQLAlchemyError: StoreException, OSError: StoreException}


def normalize_database_url(url: str) -> str:
    """Force the asyncpg driver onto plain postgres URLs."""
    for prefix in ("postgresql+asyncpg://", "postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


class PgVectorStore(EmbeddingStore):
    """PostgreSQL + pgvector store.

    Similarity search is an HNSW-accelerated cosine-distance query, so the
    ranking matches the fallback store's cosine similarity.
    """

    def __init__(self, database_url: str, embedding_dim: int = 1536, echo: bool = False,
                 engine: Optional[AsyncEngine] = None):
        self.database_url = normalize_database_url(database_url)
        self.embedding_dim = embedding_dim
        self.schema = build_schema(embedding_dim)
        self.engine = engine or create_async_engine(self.database_url, echo=echo, pool_pre_ping=True)

    @convert_exceptions(WRITE_ERRORS)
    async def initialize(self) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(self.schema.metadata.create_all)
        logger.info(f"pgvector store ready (dim={self.embedding_dim})")

    async def close(self) -> None:
        logger.info("Disposing pgvector engine")
        await self.engine.dispose()

    # Chunks

    @staticmethod
    def _chunk_from_row(row) -> Chunk:
        embedding = row.embedding
        return Chunk(
            asset_id=row.asset_id,
            index=row.chunk_index,
            start_time=row.start_time,
            end_time=row.end_time,
            text=row.content,
            embedding=[float(value) for value in embedding] if embedding is not None else None,
        )

    @convert_exceptions(WRITE_ERRORS)
    async def upsert_chunk(self, chunk: Chunk) -> None:
        table = self.schema.chunks
        stmt = insert(table).values(
            asset_id=chunk.asset_id,
            chunk_index=chunk.index,
            start_time=chunk.start_time,
            end_time=chunk.end_time,
            content=chunk.text,
            embedding=chunk.embedding,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.asset_id, table.c.chunk_index],
            set_={
                "start_time": stmt.excluded.start_time,
                "end_time": stmt.excluded.end_time,
                "content": stmt.excluded.content,
                "embedding": stmt.excluded.embedding,
            },
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    @degrade_on_error(list)
    async def list_chunks(self, asset_id: str) -> List[Chunk]:
        table = self.schema.chunks
        stmt = select(table).where(table.c.asset_id == asset_id).order_by(table.c.chunk_index)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [self._chunk_from_row(row) for row in result]

    @convert_exceptions(WRITE_ERRORS)
    async def truncate_chunks(self, asset_id: str, keep: int) -> None:
        table = self.schema.chunks
        stmt = delete(table).where(table.c.asset_id == asset_id, table.c.chunk_index >= keep)
        async with self.engine.begin() as conn:
            result = await conn.execute(stmt)
        if result.rowcount:
            logger.info(f"Removed {result.rowcount} stale chunks for {asset_id}")

    def _similarity_statement(self, asset_id: str, embedding: List[float], k: int):
        table = self.schema.chunks
        if len(embedding) != self.embedding_dim:
            # a query of another width scores 0 against every chunk
            logger.warning(f"Query embedding has {len(embedding)} dimensions, store expects {self.embedding_dim}")
            distance = literal(1.0, Float).label("distance")
        else:
            # zero vectors give a NaN distance; rank them as similarity 0
            raw = table.c.embedding.cosine_distance(embedding)
            distance = func.coalesce(func.nullif(raw, literal_column("'NaN'::float8")), 1.0).label("distance")
        return (
            select(table, distance)
            .where(table.c.asset_id == asset_id, table.c.embedding.is_not(None))
            .order_by(distance, table.c.chunk_index)
            .limit(k)
        )

    @degrade_on_error(list)
    async def similarity_search(self, asset_id: str, embedding: List[float], k: int) -> List[ChunkMatch]:
        if k <= 0:
            return []
        stmt = self._similarity_statement(asset_id, embedding, k)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [
                ChunkMatch(chunk=self._chunk_from_row(row), similarity=1.0 - float(row.distance))
                for row in result
            ]

    # Frames

    @convert_exceptions(WRITE_ERRORS)
    async def upsert_frame_description(
        self,
        asset_id: str,
        timestamp: float,
        image_ref: str,
        description: Optional[str] = None,
    ) -> None:
        table = self.schema.frames
        stmt = insert(table).values(
            asset_id=asset_id,
            timestamp=float(timestamp),
            image_ref=image_ref,
            description=description,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.asset_id, table.c.timestamp],
            set_={
                "image_ref": stmt.excluded.image_ref,
                "description": stmt.excluded.description,
            },
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    @degrade_on_error(list)
    async def frames_in_range(
        self,
        asset_id: str,
        min_time: float,
        max_time: float,
        limit: Optional[int] = None,
    ) -> List[FrameDescription]:
        table = self.schema.frames
        stmt = (
            select(table)
            .where(
                table.c.asset_id == asset_id,
                table.c.timestamp >= min_time,
                table.c.timestamp <= max_time,
            )
            .order_by(table.c.timestamp)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [
                FrameDescription(
                    asset_id=row.asset_id,
                    timestamp=row.timestamp,
                    image_ref=row.image_ref,
                    description=row.description,
                )
                for row in result
            ]

    # Chat and usage

    @convert_exceptions(WRITE_ERRORS)
    async def save_chat_exchange(self, exchange: ChatExchange) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(insert(self.schema.chat_exchanges).values(**exchange.model_dump()))

    @degrade_on_error(list)
    async def get_chat_history(
        self,
        asset_id: str,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[ChatExchange]:
        table = self.schema.chat_exchanges
        stmt = select(table).where(table.c.asset_id == asset_id)
        if user_id is not None:
            stmt = stmt.where(table.c.user_id == user_id)
        stmt = stmt.order_by(table.c.created_at.desc(), table.c.id.desc()).limit(limit)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [
                ChatExchange(
                    asset_id=row.asset_id,
                    user_id=row.user_id,
                    message=row.message,
                    response=row.response,
                    created_at=row.created_at,
                )
                for row in result
            ]

    @convert_exceptions(WRITE_ERRORS)
    async def track_usage(self, record: UsageRecord) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(insert(self.schema.usage).values(**record.model_dump()))

    # Processing status

    async def _read_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        table = self.schema.processing_status
        async with self.engine.connect() as conn:
            result = await conn.execute(select(table).where(table.c.asset_id == asset_id))
            row = result.first()
        if row is None:
            return None
        return ProcessingRecord(
            asset_id=row.asset_id,
            status=ProcessingStatus(row.status),
            error_message=row.error_message,
            created_at=row.created_at,
            processed_at=row.processed_at,
            events=[StatusEvent.model_validate(event) for event in row.events or []],
        )

    @convert_exceptions(WRITE_ERRORS)
    async def _write_processing_record(self, record: ProcessingRecord) -> None:
        table = self.schema.processing_status
        values = {
            "asset_id": record.asset_id,
            "status": record.status.value,
            "error_message": record.error_message,
            "created_at": record.created_at,
            "processed_at": record.processed_at,
            "events": [event.model_dump(mode="json") for event in record.events],
        }
        stmt = insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.asset_id],
            set_={
                "status": stmt.excluded.status,
                "error_message": stmt.excluded.error_message,
                "processed_at": stmt.excluded.processed_at,
                "events": stmt.excluded.events,
            },
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    @degrade_on_error(lambda: None)
    async def get_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        return await self._read_processing_record(asset_id)

    # Lifecycle

    @convert_exceptions(WRITE_ERRORS)
    async def delete_asset(self, asset_id: str) -> None:
        async with self.engine.begin() as conn:
            for table in (self.schema.chunks, self.schema.frames, self.schema.processing_status):
                await conn.execute(delete(table).where(table.c.asset_id == asset_id))
        logger.info(f"Deleted stored data for {asset_id}")
