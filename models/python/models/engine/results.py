"""Result and rejection types returned by the clearing engine."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

RejectionCode = Literal[
    "NotStarted",
    "AlreadyEnded",
    "SelfBid",
    "BelowMinimumIncrement",
    "ProxyBelowBid",
    "InsufficientMaxProxy",
    "ActivityWindowRestricted",
]


class Rejection(BaseModel):
    """A recoverable bid rejection with a user-displayable message."""
    code: RejectionCode
    message: str

    def __str__(self) -> str:
        return self.message


class ProxyBidOutcome(BaseModel):
    """Clearing state after the resolver accepted a bid."""
    current_price_per_m3: float
    second_highest_price_per_m3: float
    highest_max_proxy_per_m3: float
    projected_total_value: float
    leader_id: str
    leader_name: Optional[str] = None  # None when the existing leader kept the lead
    leader_anonymous_id: str
    previous_leader_id: Optional[str] = None
    amount_per_m3: float  # price point recorded on the bid
    is_proxy_bid: bool

    @property
    def leader_changed(self) -> bool:
        return self.leader_id != self.previous_leader_id


class SoftCloseDecision(BaseModel):
    in_window: bool
    should_extend: bool
    new_end_time: Optional[datetime] = None


class BidDecision(BaseModel):
    """Everything the storage layer needs to persist an accepted bid."""
    outcome: ProxyBidOutcome
    soft_close: SoftCloseDecision
    placed_at: datetime

    @property
    def soft_close_active(self) -> bool:
        return self.soft_close.in_window


class AuctionUpdateEvent(BaseModel):
    """Payload pushed to real-time subscribers after each accepted bid."""
    auction_id: str
    current_price_per_m3: float
    current_bidder_anonymous_id: Optional[str] = None
    bid_count: int
    end_time: datetime
    projected_total_value: float
    soft_close_active: bool
    second_highest_price_per_m3: Optional[float] = None
