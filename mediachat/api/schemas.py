from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models import TimestampRef


class ChatSendRequest(BaseModel):
    asset_id: str = Field(..., min_length=1, examples=["9c9de5e8-0a1b-4cba-9b8d-8e2b1f3f6c11"])
    message: str = Field(..., examples=["What is the intro about?"])

    @field_validator("asset_id", "message")
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class ChatSendResponse(BaseModel):
    response: str
    timestamps: List[TimestampRef] = Field(default_factory=list)


class ChatHistoryItem(BaseModel):
    message: str
    response: str
    user_id: Optional[str] = None
    created_at: datetime


class HookEventResponse(BaseModel):
    asset_id: str
    event: str
    queued: bool = False
