"""
Per-asset ingestion state machine.

    pending -> processing -> completed | error

An asset that is not yet encoded waits in ``pending`` through a bounded
series of scheduled readiness checks. Once ready, frames are captured and
described, then the transcript is fetched, segmented and embedded. Missing
captions are polled on a fixed delay while the record stays ``processing``.

At most one pipeline runs per asset. Every enqueue starts a new generation;
scheduled retries carry the generation they were created for and re-read
the processing record before acting, so superseded retries do nothing.
"""

import asyncio
import shutil
from typing import Awaitable, Callable, Dict, Optional, Set

from loguru import logger

from .frames import FrameCaptureStage
from .scheduler import TaskScheduler
from .transcript import TranscriptStage
from ..config.settings import IngestionConfig
from ..exceptions import ResourceNotFoundException
from ..models import Asset, ProcessingStatus
from ..providers.base import CatalogProvider
from ..store.base import EmbeddingStore

TRANSCODING_TIMEOUT_MESSAGE = "Video transcoding did not complete in time"
INTERRUPTED_MESSAGE = "Processing was interrupted"


class IngestionOrchestrator:
    def __init__(
        self,
        store: EmbeddingStore,
        catalog: CatalogProvider,
        frame_stage: FrameCaptureStage,
        transcript_stage: TranscriptStage,
        scheduler: TaskScheduler,
        config: IngestionConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.catalog = catalog
        self.frame_stage = frame_stage
        self.transcript_stage = transcript_stage
        self.scheduler = scheduler
        self.config = config
        self._sleep = sleep

        # a coroutine of this orchestrator is executing pipeline steps for the asset
        self._in_flight: Set[str] = set()
        # the asset's record is "processing" on behalf of this orchestrator
        self._processing: Set[str] = set()
        self._generations: Dict[str, int] = {}

    # Entry points

    def submit(self, asset_id: str) -> None:
        """Fire-and-forget enqueue on the scheduler."""
        self.scheduler.schedule(0, lambda: self.enqueue(asset_id), name=f"ingest:{asset_id}")

    def is_active(self, asset_id: str) -> bool:
        return asset_id in self._in_flight or asset_id in self._processing

    async def enqueue(self, asset_id: str) -> bool:
        """Start or restart processing for an asset.

        Returns False when a pipeline for the asset is already running; the
        request is then coalesced into that run.
        """
        if self.is_active(asset_id):
            logger.info(f"Asset {asset_id} is already being processed, request coalesced")
            return False

        self._in_flight.add(asset_id)
        try:
            record = await self.store.get_processing_record(asset_id)
            if record is not None and record.status == ProcessingStatus.PROCESSING:
                # nothing here owns the run, so it was cut short (e.g. by a restart)
                logger.warning(f"Found stale processing record for {asset_id}, marking as interrupted")
                await self.store.set_processing_status(asset_id, ProcessingStatus.ERROR, INTERRUPTED_MESSAGE)

            generation = self._generations.get(asset_id, 0) + 1
            self._generations[asset_id] = generation

            await self.store.set_processing_status(asset_id, ProcessingStatus.PENDING)
            logger.info(f"Queued asset {asset_id} for processing")
            await self._check_readiness(asset_id, generation, attempt=0)
        finally:
            self._in_flight.discard(asset_id)
        return True

    async def refresh_transcript(self, asset_id: str) -> bool:
        """Re-run ingestion for a completed asset that has no transcript chunks yet."""
        record = await self.store.get_processing_record(asset_id)
        if record is None or record.status != ProcessingStatus.COMPLETED:
            return False
        if await self.store.list_chunks(asset_id):
            return False
        logger.info(f"Asset {asset_id} updated without a transcript, checking for captions again")
        self.submit(asset_id)
        return True

    async def cleanup(self, asset_id: str) -> None:
        """Drop all derived data and stored frame images for an asset."""
        # invalidate any scheduled retry for the asset
        self._generations[asset_id] = self._generations.get(asset_id, 0) + 1
        self._processing.discard(asset_id)

        await self.store.delete_asset(asset_id)

        snapshot_dir = self.frame_stage.snapshot_dir(asset_id)
        if snapshot_dir.exists():
            await asyncio.to_thread(shutil.rmtree, snapshot_dir)
            logger.info(f"Removed snapshots for {asset_id}")

    # Retry plumbing

    def _is_current(self, asset_id: str, generation: int) -> bool:
        return self._generations.get(asset_id) == generation

    async def _retry_readiness(self, asset_id: str, generation: int, attempt: int) -> None:
        if not self._is_current(asset_id, generation):
            logger.debug(f"Dropping superseded readiness check for {asset_id}")
            return
        record = await self.store.get_processing_record(asset_id)
        if record is None or record.status != ProcessingStatus.PENDING:
            logger.debug(f"Dropping readiness check for {asset_id}: status is no longer pending")
            return

        self._in_flight.add(asset_id)
        try:
            await self._check_readiness(asset_id, generation, attempt)
        finally:
            self._in_flight.discard(asset_id)

    async def _retry_transcript(self, asset_id: str, generation: int, attempt: int) -> None:
        if not self._is_current(asset_id, generation):
            logger.debug(f"Dropping superseded transcript check for {asset_id}")
            return
        record = await self.store.get_processing_record(asset_id)
        if record is None or record.status != ProcessingStatus.PROCESSING:
            logger.debug(f"Dropping transcript check for {asset_id}: status is no longer processing")
            self._processing.discard(asset_id)
            return

        self._in_flight.add(asset_id)
        try:
            # captions may have been added since the last look
            asset = await self.catalog.get_asset(asset_id)
            if asset is None:
                raise ResourceNotFoundException(f"Asset {asset_id} not found in catalog")
            await self._transcript_attempt(asset_id, generation, asset, attempt)
        except Exception as e:
            if not self._is_current(asset_id, generation):
                logger.info(f"Ignoring failure of superseded transcript check for {asset_id}: {e}")
                await self._abandon(asset_id)
                return
            logger.exception(f"Transcript retry failed for {asset_id}: {e}")
            await self._fail(asset_id, str(e))
        finally:
            self._in_flight.discard(asset_id)

    # Pipeline

    async def _check_readiness(self, asset_id: str, generation: int, attempt: int) -> None:
        try:
            asset = await self.catalog.get_asset(asset_id)
        except Exception as e:
            if not self._is_current(asset_id, generation):
                await self._abandon(asset_id)
                return
            logger.exception(f"Could not load asset {asset_id}: {e}")
            await self.store.set_processing_status(asset_id, ProcessingStatus.ERROR, str(e))
            return

        if not self._is_current(asset_id, generation):
            await self._abandon(asset_id)
            return

        if asset is None:
            await self.store.set_processing_status(
                asset_id, ProcessingStatus.ERROR, f"Asset {asset_id} not found in catalog"
            )
            return

        if not asset.is_ready:
            delays = self.config.readiness_retry_delays
            if attempt < len(delays):
                delay = delays[attempt]
                message = f"Waiting for transcoding (attempt {attempt + 1})"
                logger.info(f"Asset {asset_id} not ready (state {asset.state}), retrying in {delay}s")
                await self.store.set_processing_status(asset_id, ProcessingStatus.PENDING, message)
                self.scheduler.schedule(
                    delay,
                    lambda: self._retry_readiness(asset_id, generation, attempt + 1),
                    name=f"readiness:{asset_id}:{attempt + 1}",
                )
                return

            logger.error(f"Asset {asset_id} still not ready after {len(delays)} retries")
            await self.store.set_processing_status(asset_id, ProcessingStatus.ERROR, TRANSCODING_TIMEOUT_MESSAGE)
            return

        await self._run_pipeline(asset_id, generation, asset)

    async def _run_pipeline(self, asset_id: str, generation: int, asset: Asset) -> None:
        await self.store.set_processing_status(asset_id, ProcessingStatus.PROCESSING)
        self._processing.add(asset_id)
        logger.info(f"Processing asset {asset_id}")

        try:
            media_url = await self._resolve_media_url(asset_id, asset)
            await self.frame_stage.run(
                asset_id, asset, media_url, is_current=lambda: self._is_current(asset_id, generation)
            )
            await self._transcript_attempt(asset_id, generation, asset, attempt=0)
        except Exception as e:
            if not self._is_current(asset_id, generation):
                logger.info(f"Ignoring failure of superseded run for {asset_id}: {e}")
                await self._abandon(asset_id)
                return
            logger.exception(f"Processing failed for {asset_id}: {e}")
            await self._fail(asset_id, str(e))

    async def _resolve_media_url(self, asset_id: str, asset: Asset) -> Optional[str]:
        retries = max(self.config.media_url_retries, 1)
        for attempt in range(1, retries + 1):
            media_url = asset.best_media_url()
            if media_url:
                return media_url
            if attempt < retries:
                logger.info(
                    f"No media URL for {asset_id} yet (attempt {attempt}/{retries}), "
                    f"retrying in {self.config.media_url_retry_delay}s"
                )
                await self._sleep(self.config.media_url_retry_delay)
                asset = await self.catalog.get_asset(asset_id) or asset
        return None

    async def _transcript_attempt(self, asset_id: str, generation: int, asset: Asset, attempt: int) -> None:
        if not self._is_current(asset_id, generation):
            await self._abandon(asset_id)
            return
        stored = await self.transcript_stage.run(
            asset_id, asset, is_current=lambda: self._is_current(asset_id, generation)
        )
        if not self._is_current(asset_id, generation):
            await self._abandon(asset_id)
            return

        if stored is None:
            if attempt < self.config.transcript_max_retries:
                delay = self.config.transcript_retry_delay
                logger.info(
                    f"No transcript for {asset_id} yet, retry {attempt + 1}/"
                    f"{self.config.transcript_max_retries} in {delay}s"
                )
                self.scheduler.schedule(
                    delay,
                    lambda: self._retry_transcript(asset_id, generation, attempt + 1),
                    name=f"transcript:{asset_id}:{attempt + 1}",
                )
                return
            logger.warning(f"No transcript for {asset_id} after {attempt} retries, completing without one")

        await self.store.set_processing_status(asset_id, ProcessingStatus.COMPLETED)
        self._processing.discard(asset_id)
        logger.info(f"Completed processing for {asset_id}")

    async def _fail(self, asset_id: str, message: str) -> None:
        self._processing.discard(asset_id)
        await self.store.set_processing_status(asset_id, ProcessingStatus.ERROR, message)

    async def _abandon(self, asset_id: str) -> None:
        """Stop a superseded run without writing status.

        The only thing that supersedes a running pipeline is ``cleanup``, so
        anything written between the delete and this point is dropped again.
        """
        logger.info(f"Run for {asset_id} was superseded, stopping")
        if await self.store.get_processing_record(asset_id) is not None:
            return
        await self.store.delete_asset(asset_id)
        snapshot_dir = self.frame_stage.snapshot_dir(asset_id)
        if snapshot_dir.exists():
            await asyncio.to_thread(shutil.rmtree, snapshot_dir)
