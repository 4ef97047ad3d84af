"""
Soft-close (anti-sniping) evaluation.

A bid accepted while ``0 < end_time - now <= SOFT_CLOSE_WINDOW`` pushes the
end to ``now + SOFT_CLOSE_EXTENSION``. There is no cap on the number of
extensions; ``original_end_time`` on the auction is never touched.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from models.entities.couchbase.auctions import Auction
from models.engine.results import SoftCloseDecision

SOFT_CLOSE_WINDOW = timedelta(minutes=3)
SOFT_CLOSE_EXTENSION = timedelta(minutes=3)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def in_closing_window(end_time: datetime, now: datetime) -> bool:
    time_until_end = end_time - now
    return timedelta(0) < time_until_end <= SOFT_CLOSE_WINDOW


def evaluate_soft_close(auction: Auction, now: Optional[datetime] = None) -> SoftCloseDecision:
    now = now or utc_now()
    if in_closing_window(auction.data.end_time, now):
        return SoftCloseDecision(
            in_window=True,
            should_extend=True,
            new_end_time=now + SOFT_CLOSE_EXTENSION,
        )
    return SoftCloseDecision(in_window=False, should_extend=False)
