"""Pre-flight bid checks, run before the activity rule and the proxy resolver."""

from datetime import datetime
from typing import Optional

from models.entities.couchbase.auctions import Auction
from models.engine.increments import get_increment
from models.engine.results import Rejection
from models.engine.soft_close import utc_now


def validate_bid(
    auction: Auction,
    bidder_id: str,
    amount_per_m3: float,
    max_proxy_per_m3: float,
    now: Optional[datetime] = None,
) -> tuple[bool, Optional[Rejection]]:
    """Timing first, then identity, then economics. First failure wins."""
    d = auction.data
    now = now or utc_now()

    if now < d.start_time:
        return False, Rejection(code="NotStarted", message="Auction has not started yet")
    if now > d.end_time:
        return False, Rejection(code="AlreadyEnded", message="Auction has ended")
    if bidder_id == d.owner_id:
        return False, Rejection(code="SelfBid", message="You cannot bid on your own auction")

    increment = get_increment(d.dominant_species)
    minimum = d.current_price_per_m3 + increment
    if amount_per_m3 < minimum:
        return False, Rejection(
            code="BelowMinimumIncrement",
            message=(
                f"Minimum bid is €{minimum:.2f}/m³ (current €{d.current_price_per_m3:.2f}/m³ "
                f"+ €{increment:.2f}/m³ increment for {d.dominant_species})"
            ),
        )
    if max_proxy_per_m3 < amount_per_m3:
        return False, Rejection(
            code="ProxyBelowBid",
            message="Your maximum bid must be at least equal to your current bid",
        )
    return True, None
