from fastapi import APIRouter, Depends

from ..dependencies import get_service, require_admin
from ...models import StatusReport
from ...service import MediaChatService

router = APIRouter(prefix="/processing", tags=["processing"])


@router.get("/status/{asset_id}", response_model=StatusReport)
async def processing_status(asset_id: str, service: MediaChatService = Depends(get_service)):
    return await service.get_status(asset_id)


@router.post("/trigger/{asset_id}", dependencies=[Depends(require_admin)])
async def trigger_processing(asset_id: str, service: MediaChatService = Depends(get_service)):
    status = await service.trigger_reprocess(asset_id)
    return {"success": True, "message": "Processing started", "status": status.status}
