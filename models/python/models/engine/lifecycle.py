"""
Auction lifecycle policy: draft -> upcoming -> active -> ended -> sold.

``evaluate_lifecycle`` is a pure function of status, schedule and leader.
It is safe to call repeatedly: once a transition has been applied the
auction's new status no longer matches the rule that produced it, so a
second call returns ``None``. ``draft`` and ``sold`` are never left
automatically; publishing a draft is an explicit action.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel

from models.entities.couchbase.auctions import Auction, AuctionStatus
from models.entities.couchbase.notifications import NotificationType
from models.engine.soft_close import utc_now

TERMINAL_STATUSES = ("draft", "sold")


class LifecycleTransition(BaseModel):
    auction_id: str
    from_status: AuctionStatus
    to_status: AuctionStatus
    timestamp: datetime
    settle: bool = False  # active -> ended hands off to settlement
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None
    final_price_per_m3: Optional[float] = None


class NotificationDraft(BaseModel):
    user_id: str
    type: NotificationType
    title: str
    message: str
    auction_id: str
    timestamp: datetime


def evaluate_lifecycle(auction: Auction, now: Optional[datetime] = None) -> Optional[LifecycleTransition]:
    d = auction.data
    now = now or utc_now()

    if d.status in TERMINAL_STATUSES:
        return None

    if d.status == "upcoming" and now >= d.start_time:
        return LifecycleTransition(
            auction_id=auction.id, from_status="upcoming", to_status="active", timestamp=now,
        )
    if d.status == "active" and now >= d.end_time:
        return LifecycleTransition(
            auction_id=auction.id,
            from_status="active",
            to_status="ended",
            timestamp=now,
            settle=True,
            winner_id=d.current_bidder_id,
            winner_name=d.current_bidder_name,
            final_price_per_m3=d.current_price_per_m3 if d.current_bidder_id else None,
        )
    # An auction that ended without bids stays in "ended".
    if d.status == "ended" and d.current_bidder_id:
        return LifecycleTransition(
            auction_id=auction.id, from_status="ended", to_status="sold", timestamp=now,
        )
    return None


def activation_notifications(auction: Auction, now: Optional[datetime] = None) -> List[NotificationDraft]:
    d = auction.data
    return [
        NotificationDraft(
            user_id=d.owner_id,
            type="auction_ending",
            title="Your auction is now live!",
            message=f'"{d.title}" is now active and accepting bids.',
            auction_id=auction.id,
            timestamp=now or utc_now(),
        )
    ]


def settlement_notifications(
    auction: Auction,
    bidder_ids: Iterable[str],
    now: Optional[datetime] = None,
) -> List[NotificationDraft]:
    """Notifications sent when an auction ends.

    With a leader: the winner, the owner, and every other distinct bidder
    (once each). Without one: only the owner.
    """
    d = auction.data
    now = now or utc_now()

    def draft(user_id: str, type: NotificationType, title: str, message: str) -> NotificationDraft:
        return NotificationDraft(
            user_id=user_id, type=type, title=title, message=message,
            auction_id=auction.id, timestamp=now,
        )

    if not d.current_bidder_id:
        return [draft(
            d.owner_id, "sold", "Auction ended",
            f'Your auction "{d.title}" has ended without any bids.',
        )]

    price = d.current_price_per_m3
    total = d.projected_total_value
    winner_label = d.current_bidder_name or d.current_bidder_anonymous_id or d.current_bidder_id

    drafts = [
        draft(
            d.current_bidder_id, "won", "Congratulations! You won the auction!",
            f'You won "{d.title}" at €{price:.2f}/m³ (Total: €{total:,.2f})',
        ),
        draft(
            d.owner_id, "sold", "Your auction has been sold!",
            f'"{d.title}" sold to {winner_label} for €{price:.2f}/m³ (Total: €{total:,.2f})',
        ),
    ]

    seen = {d.current_bidder_id}
    for bidder_id in bidder_ids:
        if bidder_id in seen:
            continue
        seen.add(bidder_id)
        drafts.append(draft(
            bidder_id, "auction_ending", "Auction ended",
            f'The auction for "{d.title}" has ended. The winning bid was €{price:.2f}/m³.',
        ))
    return drafts
