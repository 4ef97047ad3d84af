from fastapi import APIRouter
from utils import log

from .auctions import router as auctions_router
from .bids import router as bids_router
from .internal import router as internal_router
from .notifications import router as notifications_router

logger = log.get_logger(__name__)

router = APIRouter(prefix="/api")
router.include_router(auctions_router)
router.include_router(bids_router)
router.include_router(notifications_router)
router.include_router(internal_router)
