from enum import Enum

from fastapi import APIRouter, Depends

from ..dependencies import get_service, require_admin
from ..schemas import HookEventResponse
from ...service import MediaChatService

router = APIRouter(prefix="/hooks", tags=["hooks"], dependencies=[Depends(require_admin)])


class AssetEvent(str, Enum):
    UPLOADED = "uploaded"
    UPDATED = "updated"
    DELETED = "deleted"


@router.post("/assets/{asset_id}/{event}", response_model=HookEventResponse)
async def asset_event(asset_id: str, event: AssetEvent, service: MediaChatService = Depends(get_service)):
    """Lifecycle notifications from the host platform."""
    queued = False
    if event == AssetEvent.UPLOADED:
        queued = await service.on_asset_uploaded(asset_id)
    elif event == AssetEvent.UPDATED:
        queued = await service.on_asset_updated(asset_id)
    else:
        await service.on_asset_deleted(asset_id)
    return HookEventResponse(asset_id=asset_id, event=event.value, queued=queued)
