"""
Full bid pipeline: validator -> activity rule -> proxy resolver -> soft close.

``evaluate_bid`` is pure over the auction snapshot it receives. Callers run
it inside their read-modify-write so the decision always matches the
document version being written.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from models.entities.couchbase.auctions import Auction
from models.entities.couchbase.bids import Bid
from models.engine.eligibility import check_activity
from models.engine.lifecycle import NotificationDraft
from models.engine.proxy import resolve_proxy_bid
from models.engine.results import AuctionUpdateEvent, BidDecision, Rejection
from models.engine.soft_close import evaluate_soft_close, utc_now
from models.engine.validation import validate_bid


def evaluate_bid(
    auction: Auction,
    bidder_id: str,
    bidder_name: Optional[str],
    amount_per_m3: float,
    max_proxy_per_m3: float,
    bid_history: Iterable[Bid] = (),
    now: Optional[datetime] = None,
) -> tuple[Optional[BidDecision], Optional[Rejection]]:
    now = now or utc_now()

    ok, rejection = validate_bid(auction, bidder_id, amount_per_m3, max_proxy_per_m3, now=now)
    if not ok:
        return None, rejection

    ok, rejection = check_activity(auction, bidder_id, bid_history, now=now)
    if not ok:
        return None, rejection

    outcome, rejection = resolve_proxy_bid(
        auction,
        bidder_id,
        bidder_name,
        amount_per_m3,
        max_proxy_per_m3,
        current_leader_id=auction.data.current_bidder_id,
        current_leader_max_proxy=auction.data.highest_max_proxy_per_m3,
    )
    if rejection is not None:
        return None, rejection

    return BidDecision(
        outcome=outcome,
        soft_close=evaluate_soft_close(auction, now=now),
        placed_at=now,
    ), None


def auction_update_event(auction: Auction) -> AuctionUpdateEvent:
    """Broadcast payload describing the auction's current clearing state."""
    d = auction.data
    return AuctionUpdateEvent(
        auction_id=auction.id,
        current_price_per_m3=d.current_price_per_m3,
        current_bidder_anonymous_id=d.current_bidder_anonymous_id,
        bid_count=d.bid_count,
        end_time=d.end_time,
        projected_total_value=d.projected_total_value,
        soft_close_active=d.soft_close_active,
        second_highest_price_per_m3=d.second_highest_price_per_m3,
    )


def bid_notifications(auction: Auction, decision: BidDecision) -> List[NotificationDraft]:
    """Notifications for an accepted bid: the owner always hears about it, a
    displaced leader is told they were outbid."""
    d = auction.data
    outcome = decision.outcome
    price = outcome.current_price_per_m3
    total = outcome.projected_total_value

    drafts = []
    if outcome.previous_leader_id and outcome.leader_changed:
        drafts.append(NotificationDraft(
            user_id=outcome.previous_leader_id,
            type="outbid",
            title="You've been outbid!",
            message=(
                f'You\'ve been outbid on "{d.title}". '
                f"Current: €{price:.2f}/m³ (€{total:,.2f} total)"
            ),
            auction_id=auction.id,
            timestamp=decision.placed_at,
        ))
    drafts.append(NotificationDraft(
        user_id=d.owner_id,
        type="new_bid",
        title="New bid received!",
        message=f'New bid: €{price:.2f}/m³ (€{total:,.2f} total) on "{d.title}"',
        auction_id=auction.id,
        timestamp=decision.placed_at,
    ))
    return drafts
