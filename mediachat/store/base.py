from abc import ABC, abstractmethod
from typing import List, Optional, Union

from ..models import (
    ChatExchange,
    Chunk,
    ChunkMatch,
    FrameDescription,
    ProcessingRecord,
    ProcessingStatus,
    StatusEvent,
    UsageRecord,
    utcnow,
)
from ..states import check_transition


class EmbeddingStore(ABC):
    """Storage interface for per-asset derived data.

    Two backends implement it: a pgvector-backed relational store and a
    key-value fallback. Callers never branch on which one is active.

    Read methods never raise: failures are logged and an empty result is
    returned. Write methods raise StoreException.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create schema, load persisted collections)."""
        pass

    async def close(self) -> None:
        pass

    # Chunks

    @abstractmethod
    async def upsert_chunk(self, chunk: Chunk) -> None:
        """Insert or replace by ``(asset_id, index)``."""
        pass

    @abstractmethod
    async def list_chunks(self, asset_id: str) -> List[Chunk]:
        """All chunks of an asset ordered by index."""
        pass

    @abstractmethod
    async def truncate_chunks(self, asset_id: str, keep: int) -> None:
        """Delete chunks whose index is ``>= keep``."""
        pass

    @abstractmethod
    async def similarity_search(self, asset_id: str, embedding: List[float], k: int) -> List[ChunkMatch]:
        """Up to ``k`` embedded chunks, most similar first, ties by ascending index."""
        pass

    # Frames

    @abstractmethod
    async def upsert_frame_description(
        self,
        asset_id: str,
        timestamp: float,
        image_ref: str,
        description: Optional[str] = None,
    ) -> None:
        """Insert or replace by ``(asset_id, timestamp)``."""
        pass

    @abstractmethod
    async def frames_in_range(
        self,
        asset_id: str,
        min_time: float,
        max_time: float,
        limit: Optional[int] = None,
    ) -> List[FrameDescription]:
        """Frames with ``min_time <= timestamp <= max_time`` ordered by timestamp."""
        pass

    async def list_frames(self, asset_id: str) -> List[FrameDescription]:
        return await self.frames_in_range(asset_id, 0.0, float("inf"))

    # Chat and usage

    @abstractmethod
    async def save_chat_exchange(self, exchange: ChatExchange) -> None:
        pass

    @abstractmethod
    async def get_chat_history(
        self,
        asset_id: str,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[ChatExchange]:
        """Most recent exchanges first."""
        pass

    @abstractmethod
    async def track_usage(self, record: UsageRecord) -> None:
        pass

    # Processing status

    @abstractmethod
    async def _read_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        """Load the record, raising on storage failure."""
        pass

    @abstractmethod
    async def _write_processing_record(self, record: ProcessingRecord) -> None:
        pass

    @abstractmethod
    async def get_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        pass

    async def set_processing_status(
        self,
        asset_id: str,
        status: Union[ProcessingStatus, str],
        error_message: Optional[str] = None,
    ) -> ProcessingRecord:
        """Apply a status transition and append it to the record's event log.

        Raises InvalidTransitionException for transitions the state machine
        does not allow. ``processed_at`` is stamped only on ``completed``.
        """
        status = ProcessingStatus(status)
        record = await self._read_processing_record(asset_id)
        check_transition(asset_id, record.status if record else None, status)

        now = utcnow()
        if record is None:
            record = ProcessingRecord(asset_id=asset_id, status=status, created_at=now)

        record.status = status
        record.error_message = error_message
        if status == ProcessingStatus.COMPLETED:
            record.processed_at = now
        record.events.append(StatusEvent(status=status, message=error_message, at=now))

        await self._write_processing_record(record)
        return record

    # Lifecycle

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None:
        """Remove chunks, frames and the processing record. Idempotent."""
        pass
