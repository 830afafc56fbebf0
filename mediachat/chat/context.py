from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import Asset, ChatExchange, ChunkMatch, FrameDescription, RelatedItem


class AssembledContext(BaseModel):
    """Everything retrieved for one question, before rendering."""

    asset_id: str
    query: str
    user_id: Optional[str] = None
    asset: Optional[Asset] = None
    chunks: List[ChunkMatch] = Field(default_factory=list)
    frames: List[FrameDescription] = Field(default_factory=list)
    related: List[RelatedItem] = Field(default_factory=list)
    history: List[ChatExchange] = Field(default_factory=list, description="oldest first")
