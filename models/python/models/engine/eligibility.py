"""Activity rule: only bidders engaged before the cutoff may bid in the closing window."""

from datetime import datetime
from typing import Iterable, Optional

from models.entities.couchbase.auctions import Auction
from models.entities.couchbase.bids import Bid
from models.engine.results import Rejection
from models.engine.soft_close import in_closing_window, utc_now

ACTIVITY_RESTRICTED_MESSAGE = (
    "You must have placed a bid before the final 15 minutes to bid during the closing period"
)


def check_activity(
    auction: Auction,
    bidder_id: str,
    bid_history: Iterable[Bid],
    now: Optional[datetime] = None,
) -> tuple[bool, Optional[Rejection]]:
    """Return ``(True, None)`` if *bidder_id* may bid right now.

    Outside the closing window everyone is eligible. Inside it the bidder
    needs at least one bid placed strictly before the auction's
    ``activity_window_cutoff``. Bids by other bidders in *bid_history*
    are ignored.
    """
    now = now or utc_now()
    if not in_closing_window(auction.data.end_time, now):
        return True, None

    cutoff = auction.data.activity_window_cutoff
    engaged = any(
        bid.data.bidder_id == bidder_id and bid.data.placed_at < cutoff
        for bid in bid_history
    )
    if engaged:
        return True, None
    return False, Rejection(code="ActivityWindowRestricted", message=ACTIVITY_RESTRICTED_MESSAGE)
