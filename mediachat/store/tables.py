"""
Relational schema for the pgvector backend.

Five logical tables, each keyed by ``asset_id``:

- ``mediachat_chunks``            unique (asset_id, chunk_index), HNSW cosine index
- ``mediachat_frames``            unique (asset_id, timestamp)
- ``mediachat_chat_exchanges``    append-only
- ``mediachat_processing_status`` unique (asset_id)
- ``mediachat_usage``             append-only
"""

from dataclasses import dataclass

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB


@dataclass
class StoreSchema:
    metadata: MetaData
    chunks: Table
    frames: Table
    chat_exchanges: Table
    processing_status: Table
    usage: Table


def build_schema(embedding_dim: int) -> StoreSchema:
    """Build the table set; the vector width must match the embedding model."""
    metadata = MetaData()

    chunks = Table(
        "mediachat_chunks",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("asset_id", String(255), nullable=False),
        Column("chunk_index", Integer, nullable=False),
        Column("start_time", Float, nullable=False),
        Column("end_time", Float, nullable=False),
        Column("content", Text, nullable=False),
        Column("embedding", Vector(embedding_dim), nullable=True),
        Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        UniqueConstraint("asset_id", "chunk_index", name="uq_mediachat_chunks_asset_index"),
        Index("idx_mediachat_chunks_asset", "asset_id"),
    )
    Index(
        "idx_mediachat_chunks_embedding",
        chunks.c.embedding,
        postgresql_using="hnsw",
        postgresql_with={"m": 16, "ef_construction": 64},
        postgresql_ops={"embedding": "vector_cosine_ops"},
    )

    frames = Table(
        "mediachat_frames",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("asset_id", String(255), nullable=False),
        Column("timestamp", Float, nullable=False),
        Column("image_ref", Text, nullable=False),
        Column("description", Text, nullable=True),
        Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        UniqueConstraint("asset_id", "timestamp", name="uq_mediachat_frames_asset_timestamp"),
    )

    chat_exchanges = Table(
        "mediachat_chat_exchanges",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("asset_id", String(255), nullable=False),
        Column("user_id", String(255), nullable=True),
        Column("message", Text, nullable=False),
        Column("response", Text, nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Index("idx_mediachat_chat_asset_created", "asset_id", "created_at"),
    )

    processing_status = Table(
        "mediachat_processing_status",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("asset_id", String(255), nullable=False, unique=True),
        Column("status", String(32), nullable=False),
        Column("error_message", Text, nullable=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("processed_at", DateTime(timezone=True), nullable=True),
        Column("events", JSONB, nullable=False, server_default="[]"),
    )

    usage = Table(
        "mediachat_usage",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("user_id", String(255), nullable=True),
        Column("endpoint", String(64), nullable=False),
        Column("tokens_used", Integer, nullable=False, default=0),
        Column("cost", Float, nullable=False, default=0.0),
        Column("created_at", DateTime(timezone=True), nullable=False),
    )

    return StoreSchema(
        metadata=metadata,
        chunks=chunks,
        frames=frames,
        chat_exchanges=chat_exchanges,
        processing_status=processing_status,
        usage=usage,
    )
