from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from .base import EmbeddingStore
from .local_store import LocalKeyValueStore
from .pgvector_store import PgVectorStore
from ..config.settings import StoreConfig
from ..exceptions import StoreException


async def create_embedding_store(config: StoreConfig) -> EmbeddingStore:
    """Pick the store backend at startup.

    The pgvector backend is used when a database URL is configured and the
    database accepts the schema; otherwise the key-value fallback is used.
    """
    if config.database_url:
        store = None
        try:
            store = PgVectorStore(
                config.database_url,
                embedding_dim=config.embedding_dim,
                echo=config.echo,
            )
            await store.initialize()
            logger.info("Using pgvector embedding store")
            return store
        except (StoreException, SQLAlchemyError) as e:
            logger.warning(f"pgvector store unavailable, falling back to key-value store: {e}")
            if store is not None:
                await store.close()

    store = LocalKeyValueStore(
        data_dir=config.data_dir,
        history_cap=config.history_cap,
        usage_cap=config.usage_cap,
    )
    await store.initialize()
    return store
