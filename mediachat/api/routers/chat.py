from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from ..dependencies import get_service, get_user_id
from ..schemas import ChatHistoryItem, ChatSendRequest, ChatSendResponse
from ...exceptions import ChatDisabledException, ValidationException
from ...service import MediaChatService

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/send", response_model=ChatSendResponse)
async def send_message(
    data: ChatSendRequest,
    user_id: Optional[str] = Depends(get_user_id),
    service: MediaChatService = Depends(get_service),
):
    try:
        reply = await service.submit_message(data.asset_id, user_id, data.message)
    except (ValidationException, ChatDisabledException):
        raise
    except Exception as e:
        logger.exception(f"Chat request for {data.asset_id} failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to process chat message"})
    return ChatSendResponse(response=reply.response, timestamps=reply.timestamps)


@router.get("/history/{asset_id}", response_model=List[ChatHistoryItem])
async def chat_history(
    asset_id: str,
    user_id: Optional[str] = Depends(get_user_id),
    service: MediaChatService = Depends(get_service),
):
    exchanges = await service.get_history(asset_id, user_id)
    return [
        ChatHistoryItem(
            message=exchange.message,
            response=exchange.response,
            user_id=exchange.user_id,
            created_at=exchange.created_at,
        )
        for exchange in exchanges
    ]
