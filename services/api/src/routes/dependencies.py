from typing import Optional

from fastapi import Header, HTTPException, status
from pydantic import BaseModel

import conf
from utils import log

logger = log.get_logger(__name__)


class CurrentUser(BaseModel):
    id: str
    name: Optional[str] = None


async def current_user_get(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> CurrentUser:
    """Caller identity, as asserted by the upstream gateway after authentication."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user identity")
    return CurrentUser(id=x_user_id, name=x_user_name)


async def require_internal_api_key(
    x_internal_api_key: Optional[str] = Header(None, alias="X-Internal-API-Key"),
):
    expected = conf.get_internal_api_key()
    if not expected:
        # No key configured: allow all internal callers (dev mode)
        return
    if x_internal_api_key != expected:
        logger.warning("Rejected internal call with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal API key",
        )
