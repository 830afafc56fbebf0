"""
Query surface and lifecycle hooks.

``MediaChatService`` wires the ingestion orchestrator, the context assembler
and the chat responder from a ``ServiceContext``; the HTTP layer and any
host integration call into it.
"""

from typing import List, Optional

from loguru import logger

from .chat.context_assembler import ContextAssembler
from .chat.responder import ChatResponder
from .exceptions import ChatDisabledException, ResourceNotFoundException, ValidationException
from .models import ChatExchange, ChatReply, StatusReport
from .pipeline.frames import FrameCaptureStage
from .pipeline.orchestrator import IngestionOrchestrator
from .pipeline.transcript import TranscriptStage
from .service_context import ServiceContext


class MediaChatService:
    def __init__(self, context: ServiceContext):
        self.context = context
        config = context.config

        frame_stage = FrameCaptureStage(
            store=context.store,
            frame_extractor=context.frame_extractor,
            vision=context.vision,
            config=config.ingestion,
            vision_config=config.vision,
            snapshots_root=context.snapshots_root,
        )
        transcript_stage = TranscriptStage(
            store=context.store,
            catalog=context.catalog,
            embedding=context.embedding,
            config=config.ingestion,
            caption_language=config.catalog.preferred_caption_language,
        )
        self.orchestrator = IngestionOrchestrator(
            store=context.store,
            catalog=context.catalog,
            frame_stage=frame_stage,
            transcript_stage=transcript_stage,
            scheduler=context.scheduler,
            config=config.ingestion,
        )
        self.assembler = ContextAssembler(
            store=context.store,
            embedding=context.embedding,
            catalog=context.catalog,
            config=config.chat,
        )
        self.responder = ChatResponder(store=context.store, llm=context.llm, config=config.chat)

    # Query surface

    async def submit_message(self, asset_id: str, user_id: Optional[str], text: str) -> ChatReply:
        """Answer a question about an asset.

        Raises:
            ChatDisabledException: chat is turned off
            ValidationException: empty asset id or message
            ProviderException: the language model call failed
        """
        if not self.context.config.chat.enabled:
            raise ChatDisabledException("Chat is disabled")
        if not asset_id or not (text or "").strip():
            raise ValidationException("Missing required fields", details={"asset_id": asset_id})

        query = text.strip()
        logger.info(f"Chat message for {asset_id} from {user_id or 'anonymous'}")
        context = await self.assembler.assemble(asset_id, query, user_id)
        return await self.responder.respond(context)

    async def get_history(self, asset_id: str, user_id: Optional[str] = None) -> List[ChatExchange]:
        """Most recent exchanges first."""
        return await self.context.store.get_chat_history(
            asset_id, user_id, self.context.config.chat.history_page_size
        )

    async def get_status(self, asset_id: str) -> StatusReport:
        record = await self.context.store.get_processing_record(asset_id)
        return StatusReport.from_record(record)

    async def trigger_reprocess(self, asset_id: str) -> StatusReport:
        """Queue an asset for (re)processing; safe for already completed assets."""
        asset = await self.context.catalog.get_asset(asset_id)
        if asset is None:
            raise ResourceNotFoundException(f"Video not found: {asset_id}")

        logger.info(f"Manual processing triggered for {asset_id}")
        self.orchestrator.submit(asset_id)
        return await self.get_status(asset_id)

    # Lifecycle hooks

    async def on_asset_uploaded(self, asset_id: str) -> bool:
        if not self.context.config.ingestion.auto_process:
            logger.debug(f"Auto-processing disabled, not queueing {asset_id}")
            return False
        self.orchestrator.submit(asset_id)
        return True

    async def on_asset_updated(self, asset_id: str) -> bool:
        return await self.orchestrator.refresh_transcript(asset_id)

    async def on_asset_deleted(self, asset_id: str) -> None:
        await self.orchestrator.cleanup(asset_id)
