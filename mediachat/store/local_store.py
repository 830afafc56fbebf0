import asyncio
import json
import os
from typing import Any, Dict, List, Optional

from loguru import logger

from .base import EmbeddingStore
from .similarity import rank_by_similarity
from ..models import (
    ChatExchange,
    Chunk,
    ChunkMatch,
    FrameDescription,
    ProcessingRecord,
    UsageRecord,
)
from ..utils.error_handler import convert_exceptions, degrade_on_error, StoreException

COLLECTIONS = ("chunks", "frames", "chat", "processing", "usage")


def _frame_key(timestamp: float) -> str:
    return repr(float(timestamp))


class LocalKeyValueStore(EmbeddingStore):
    """Key-value fallback store.

    Keeps the five logical collections in memory and, when ``data_dir`` is
    set, persists each one as a JSON document written atomically through a
    temporary file. Similarity search is a brute-force cosine scan.

    Layout:
        chunks      {asset_id: {index: chunk}}
        frames      {asset_id: {timestamp: frame}}
        chat        {asset_id: [exchange, ...]}   oldest first, capped
        processing  {asset_id: record}
        usage       [record, ...]                 oldest first, capped
    """

    def __init__(self, data_dir: Optional[str] = None, history_cap: int = 100, usage_cap: int = 1000):
        self.data_dir = data_dir
        self.history_cap = history_cap
        self.usage_cap = usage_cap

        self._data: Dict[str, Any] = {name: ([] if name == "usage" else {}) for name in COLLECTIONS}
        self._locks: Dict[str, asyncio.Lock] = {name: asyncio.Lock() for name in COLLECTIONS}

    def _collection_file(self, name: str) -> str:
        return os.path.join(self.data_dir, f"{name}.json")

    def _load_sync(self, name: str) -> None:
        path = self._collection_file(name)
        if not os.path.exists(path):
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                self._data[name] = json.load(f)
        except (OSError, ValueError) as e:
            # Corrupt or partial JSON: move the broken file aside and start fresh
            logger.exception(f"Failed to load collection '{name}': {e}")
            corrupt_path = path + ".corrupt"
            os.replace(path, corrupt_path)
            logger.warning(f"Moved corrupt collection file to {corrupt_path}")

    def _save_sync(self, name: str, payload: Any) -> None:
        path = self._collection_file(name)
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, default=str, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def _persist(self, name: str) -> None:
        """Write a collection to disk; callers hold the collection lock."""
        if self.data_dir is None:
            return
        payload = json.loads(json.dumps(self._data[name], default=str))
        await asyncio.to_thread(self._save_sync, name, payload)

    async def initialize(self) -> None:
        if self.data_dir is None:
            logger.info("Using in-memory key-value store")
            return
        os.makedirs(self.data_dir, exist_ok=True)
        for name in COLLECTIONS:
            await asyncio.to_thread(self._load_sync, name)
        logger.info(f"Using key-value store at {self.data_dir}")

    # Chunks

    @convert_exceptions({Exception: StoreException})
    async def upsert_chunk(self, chunk: Chunk) -> None:
        async with self._locks["chunks"]:
            per_asset = self._data["chunks"].setdefault(chunk.asset_id, {})
            per_asset[str(chunk.index)] = chunk.model_dump(mode="json")
            await self._persist("chunks")

    @degrade_on_error(list)
    async def list_chunks(self, asset_id: str) -> List[Chunk]:
        per_asset = self._data["chunks"].get(asset_id, {})
        chunks = [Chunk.model_validate(item) for item in per_asset.values()]
        return sorted(chunks, key=lambda chunk: chunk.index)

    @convert_exceptions({Exception: StoreException})
    async def truncate_chunks(self, asset_id: str, keep: int) -> None:
        async with self._locks["chunks"]:
            per_asset = self._data["chunks"].get(asset_id)
            if not per_asset:
                return
            stale = [key for key in per_asset if int(key) >= keep]
            for key in stale:
                del per_asset[key]
            if stale:
                logger.info(f"Removed {len(stale)} stale chunks for {asset_id}")
                await self._persist("chunks")

    @degrade_on_error(list)
    async def similarity_search(self, asset_id: str, embedding: List[float], k: int) -> List[ChunkMatch]:
        chunks = await self.list_chunks(asset_id)
        return rank_by_similarity(embedding, chunks, k)

    # Frames

    @convert_exceptions({Exception: StoreException})
    async def upsert_frame_description(
        self,
        asset_id: str,
        timestamp: float,
        image_ref: str,
        description: Optional[str] = None,
    ) -> None:
        frame = FrameDescription(
            asset_id=asset_id,
            timestamp=timestamp,
            image_ref=image_ref,
            description=description,
        )
        async with self._locks["frames"]:
            per_asset = self._data["frames"].setdefault(asset_id, {})
            per_asset[_frame_key(timestamp)] = frame.model_dump(mode="json")
            await self._persist("frames")

    @degrade_on_error(list)
    async def frames_in_range(
        self,
        asset_id: str,
        min_time: float,
        max_time: float,
        limit: Optional[int] = None,
    ) -> List[FrameDescription]:
        per_asset = self._data["frames"].get(asset_id, {})
        frames = [
            FrameDescription.model_validate(item)
            for item in per_asset.values()
            if min_time <= item["timestamp"] <= max_time
        ]
        frames.sort(key=lambda frame: frame.timestamp)
        return frames[:limit] if limit is not None else frames

    # Chat and usage

    @convert_exceptions({Exception: StoreException})
    async def save_chat_exchange(self, exchange: ChatExchange) -> None:
        async with self._locks["chat"]:
            per_asset = self._data["chat"].setdefault(exchange.asset_id, [])
            per_asset.append(exchange.model_dump(mode="json"))
            if len(per_asset) > self.history_cap:
                del per_asset[:len(per_asset) - self.history_cap]
            await self._persist("chat")

    @degrade_on_error(list)
    async def get_chat_history(
        self,
        asset_id: str,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[ChatExchange]:
        exchanges = [
            ChatExchange.model_validate(item)
            for item in self._data["chat"].get(asset_id, [])
            if user_id is None or item.get("user_id") == user_id
        ]
        # stored oldest first; list order breaks ties between equal timestamps
        exchanges.reverse()
        return exchanges[:limit]

    @convert_exceptions({Exception: StoreException})
    async def track_usage(self, record: UsageRecord) -> None:
        async with self._locks["usage"]:
            usage = self._data["usage"]
            usage.append(record.model_dump(mode="json"))
            if len(usage) > self.usage_cap:
                del usage[:len(usage) - self.usage_cap]
            await self._persist("usage")

    # Processing status

    async def _read_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        item = self._data["processing"].get(asset_id)
        return ProcessingRecord.model_validate(item) if item is not None else None

    @convert_exceptions({Exception: StoreException})
    async def _write_processing_record(self, record: ProcessingRecord) -> None:
        async with self._locks["processing"]:
            self._data["processing"][record.asset_id] = record.model_dump(mode="json")
            await self._persist("processing")

    @degrade_on_error(lambda: None)
    async def get_processing_record(self, asset_id: str) -> Optional[ProcessingRecord]:
        return await self._read_processing_record(asset_id)

    # Lifecycle

    @convert_exceptions({Exception: StoreException})
    async def delete_asset(self, asset_id: str) -> None:
        for name in ("chunks", "frames", "processing"):
            async with self._locks[name]:
                if self._data[name].pop(asset_id, None) is not None:
                    await self._persist(name)
        logger.info(f"Deleted stored data for {asset_id}")
