"""
Internal operator endpoints.
Secured with INTERNAL_API_KEY, not exposed publicly.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from models.operations.auctions import auction_process_lifecycles, auction_status_summary
from utils import log

from .dependencies import require_internal_api_key

logger = log.get_logger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_api_key)],
)


class TransitionResponse(BaseModel):
    auction_id: str
    from_status: str
    to_status: str
    timestamp: datetime
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None
    final_price_per_m3: Optional[float] = None


class LifecycleRunResponse(BaseModel):
    transitions: List[TransitionResponse]
    summary: Dict[str, int]


@router.post("/lifecycle/run", response_model=LifecycleRunResponse)
async def route_lifecycle_run():
    """Trigger a lifecycle sweep now instead of waiting for the scheduler."""
    logger.info("Manually triggering lifecycle sweep")
    transitions = await auction_process_lifecycles()
    summary = await auction_status_summary()
    return LifecycleRunResponse(
        transitions=[TransitionResponse(**t.model_dump(exclude={"settle"})) for t in transitions],
        summary=summary,
    )


@router.get("/lifecycle/summary", response_model=Dict[str, int])
async def route_lifecycle_summary():
    return await auction_status_summary()
