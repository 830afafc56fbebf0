import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from ..service import MediaChatService


def get_service(request: Request) -> MediaChatService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service is starting")
    return service


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id or None


def require_admin(request: Request, x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Privileged routes need ``X-Admin-Token`` equal to the configured admin token."""
    expected = get_service(request).context.config.chat.admin_token
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="Admin access required")
