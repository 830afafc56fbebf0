from .base import EmbeddingStore
from .local_store import LocalKeyValueStore
from .pgvector_store import PgVectorStore
from .similarity import cosine_similarity, rank_by_similarity
from .factory import create_embedding_store

__all__ = [
    "EmbeddingStore",
    "LocalKeyValueStore",
    "PgVectorStore",
    "cosine_similarity",
    "rank_by_similarity",
    "create_embedding_store",
]
