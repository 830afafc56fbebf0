from pathlib import Path
from typing import Callable, Dict, List, Optional

import aiofiles
from loguru import logger

from ..config.settings import IngestionConfig, VisionConfig
from ..exceptions import MediaChatException
from ..models import Asset
from ..providers.base import FrameExtractor, VisionProvider
from ..store.base import EmbeddingStore


def frame_timestamps(duration_seconds: float, interval: int) -> List[float]:
    """0, interval, 2*interval, ... strictly below the asset duration."""
    if duration_seconds <= 0 or interval <= 0:
        return []
    count = int(duration_seconds // interval)
    if count * interval < duration_seconds:
        count += 1
    return [float(i * interval) for i in range(count)]


class FrameCaptureStage:
    """Extracts frames at a fixed interval and stores a description for each.

    A frame is persisted with a null description first and re-persisted once
    the vision provider has described it, so a failed description leaves a
    usable row behind. Frames that already carry a description are skipped.
    """

    def __init__(
        self,
        store: EmbeddingStore,
        frame_extractor: FrameExtractor,
        vision: Optional[VisionProvider],
        config: IngestionConfig,
        vision_config: VisionConfig,
        snapshots_root: Path,
    ):
        self.store = store
        self.frame_extractor = frame_extractor
        self.vision = vision
        self.config = config
        self.vision_config = vision_config
        self.snapshots_root = Path(snapshots_root)

    def snapshot_dir(self, asset_id: str) -> Path:
        return self.snapshots_root / asset_id

    async def _pending_timestamps(self, asset_id: str, timestamps: List[float]) -> List[float]:
        existing: Dict[float, Optional[str]] = {
            frame.timestamp: frame.description for frame in await self.store.list_frames(asset_id)
        }
        pending = []
        for timestamp in timestamps:
            if timestamp not in existing:
                pending.append(timestamp)
            elif self.vision is not None and not existing[timestamp]:
                pending.append(timestamp)
        return pending

    async def _describe(self, asset_id: str, timestamp: float, image_path: str) -> Optional[str]:
        if self.vision is None:
            return None
        try:
            async with aiofiles.open(image_path, "rb") as f:
                image_data = await f.read()
            description = await self.vision.describe_image(
                image_data,
                prompt=self.vision_config.prompt,
                max_tokens=self.vision_config.max_tokens,
            )
        except (MediaChatException, OSError) as e:
            logger.warning(f"Could not describe frame {timestamp}s of {asset_id}: {e}")
            return None
        return description or None

    async def run(
        self,
        asset_id: str,
        asset: Asset,
        media_url: Optional[str],
        is_current: Callable[[], bool] = lambda: True,
    ) -> int:
        """Capture and describe frames; returns the number of frames extracted.

        Stops writing as soon as ``is_current`` turns false, e.g. when the
        asset was deleted while frames were being extracted.
        """
        if not media_url:
            logger.warning(f"No playable media URL for {asset_id}, skipping frame capture")
            return 0

        timestamps = frame_timestamps(asset.duration_seconds, self.config.frame_interval)
        pending = await self._pending_timestamps(asset_id, timestamps)
        if not pending:
            logger.info(f"All {len(timestamps)} frames of {asset_id} already captured")
            return 0

        logger.info(f"Capturing {len(pending)} frames for {asset_id} every {self.config.frame_interval}s")
        frames = await self.frame_extractor.extract_frames(media_url, pending, self.snapshot_dir(asset_id))

        described = 0
        for timestamp, image_path in sorted(frames.items()):
            if not is_current():
                logger.info(f"Frame capture for {asset_id} superseded, discarding remaining frames")
                return 0
            await self.store.upsert_frame_description(asset_id, timestamp, image_path, None)
            description = await self._describe(asset_id, timestamp, image_path)
            if description and is_current():
                await self.store.upsert_frame_description(asset_id, timestamp, image_path, description)
                described += 1

        logger.info(f"Stored {len(frames)} frames for {asset_id} ({described} described)")
        return len(frames)
