"""
Domain models shared by the store, the ingestion pipeline and the chat layer.

Every record is keyed by ``asset_id`` (the catalog's stable UUID); records never
reference each other directly, so per-asset data can be dropped independently.
"""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetState(IntEnum):
    """Catalog encoding states (PeerTube numbering)."""

    PUBLISHED = 1
    TO_TRANSCODE = 2
    TO_IMPORT = 3
    WAITING_FOR_LIVE = 4
    LIVE_ENDED = 5
    TO_MOVE_TO_EXTERNAL_STORAGE = 6
    TRANSCODING_FAILED = 7
    TO_EDIT = 8


class MediaFile(BaseModel):
    """A playable rendition of an asset."""

    url: str
    resolution: int = 0
    kind: str = Field(default="web", description="'hls' for streaming playlists, 'web' for plain files")


class CaptionRef(BaseModel):
    language: str
    url: str


class Asset(BaseModel):
    """Catalog view of a media item. Owned by the catalog; never created here."""

    id: str
    uuid: str
    title: str = ""
    description: Optional[str] = None
    channel_name: Optional[str] = None
    duration_seconds: float = 0.0
    state: int = AssetState.PUBLISHED
    captions: List[CaptionRef] = Field(default_factory=list)
    files: List[MediaFile] = Field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        """True once encoding has completed."""
        return self.state == AssetState.PUBLISHED

    def best_media_url(self) -> Optional[str]:
        """Highest-resolution HLS rendition, else highest-resolution web file."""
        for kind in ("hls", "web"):
            candidates = [f for f in self.files if f.kind == kind and f.url]
            if candidates:
                return max(candidates, key=lambda f: f.resolution).url
        return None

    def preferred_caption(self, language: str = "en") -> Optional[CaptionRef]:
        for caption in self.captions:
            if caption.language == language:
                return caption
        return self.captions[0] if self.captions else None


class RelatedItem(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    channel_name: Optional[str] = None


class Chunk(BaseModel):
    """A time-bounded transcript fragment; ``embedding`` is filled after segmentation."""

    asset_id: str
    index: int = Field(..., ge=0)
    start_time: float
    end_time: float
    text: str
    embedding: Optional[List[float]] = None


class ChunkMatch(BaseModel):
    chunk: Chunk
    similarity: float


class FrameDescription(BaseModel):
    asset_id: str
    timestamp: float
    image_ref: str
    description: Optional[str] = None


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class StatusEvent(BaseModel):
    status: ProcessingStatus
    message: Optional[str] = None
    at: datetime = Field(default_factory=utcnow)


class ProcessingRecord(BaseModel):
    model_config = ConfigDict(use_enum_values=False)

    asset_id: str
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    events: List[StatusEvent] = Field(default_factory=list)


class ChatExchange(BaseModel):
    asset_id: str
    user_id: Optional[str] = None
    message: str
    response: str
    created_at: datetime = Field(default_factory=utcnow)


class UsageRecord(BaseModel):
    user_id: Optional[str] = None
    endpoint: str
    tokens_used: int = 0
    cost: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)


class TimestampRef(BaseModel):
    display: str
    seconds: int


class ChatReply(BaseModel):
    response: str
    timestamps: List[TimestampRef] = Field(default_factory=list)


class StatusReport(BaseModel):
    """Processing status as reported to clients; unknown assets are ``not_processed``."""

    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    processing: bool = False
    processed: bool = False

    @classmethod
    def from_record(cls, record: Optional[ProcessingRecord]) -> "StatusReport":
        if record is None:
            return cls(status="not_processed")
        return cls(
            status=record.status.value,
            error_message=record.error_message,
            created_at=record.created_at,
            processed_at=record.processed_at,
            processing=record.status == ProcessingStatus.PROCESSING,
            processed=record.status == ProcessingStatus.COMPLETED,
        )
