"""
Auction business logic with CAS-guarded atomic operations.

The clearing engine (models.engine) is pure; this module is the storage
collaborator around it:
- _auction_cas_retry for atomic read-modify-write keyed by auction id
- Exponential backoff on CASMismatchException
- Bids and notifications are written only after the auction write won
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from couchbase.exceptions import CASMismatchException
from pydantic import BaseModel

from models.entities.couchbase.auctions import Auction, AuctionData, SpeciesShare
from models.entities.couchbase.bids import Bid, BidData
from models.engine.anonymize import anonymize
from models.engine.bidding import bid_notifications, evaluate_bid
from models.engine.lifecycle import (
    LifecycleTransition,
    activation_notifications,
    evaluate_lifecycle,
    settlement_notifications,
)
from models.engine.results import BidDecision, Rejection
from models.operations.bids import (
    bid_create,
    bid_distinct_bidders,
    bid_get_by_bidder,
    bid_get_for_bidder_on_auction,
)
from models.operations.notifications import notification_create_many

logger = logging.getLogger(__name__)

AUCTION_NOT_FOUND = "Auction not found"
CONCURRENT_UPDATE_CONFLICT = "Concurrent update conflict — please retry"
NOT_OWNER = "Not your auction"
AUCTION_NOT_ACTIVE = "Auction is not active"

_NO_TRANSITION = "No lifecycle transition due"

SWEEP_STATUSES = ("upcoming", "active", "ended")


class PlacedBid(BaseModel):
    bid: Bid
    auction: Auction
    decision: BidDecision


# ---------------------------------------------------------------------------
# CAS-retry helper
# ---------------------------------------------------------------------------

async def _auction_cas_retry(
    auction_id: str,
    mutator: Callable[[Auction], Optional[str]],
    max_retries: int = 5,
) -> tuple[Optional[Auction], Optional[str]]:
    """Read-modify-write an auction with CAS-guarded retry.

    *mutator* receives the freshly read ``Auction`` and mutates its data in
    place. It returns ``None`` on success or an error string to abort
    early. On ``CASMismatchException`` the helper re-reads and retries with
    exponential backoff (10 ms, 20 ms, 40 ms, …).
    """
    backoff_ms = 10
    for attempt in range(max_retries + 1):
        auction = await Auction.get(auction_id)
        if not auction:
            return None, AUCTION_NOT_FOUND

        error = mutator(auction)
        if error is not None:
            return None, error

        try:
            return await Auction.update(auction), None
        except CASMismatchException:
            if attempt == max_retries:
                return None, CONCURRENT_UPDATE_CONFLICT
            logger.debug(f"CAS conflict on auction {auction_id}, retry {attempt + 1}")
            await asyncio.sleep(backoff_ms / 1000)
            backoff_ms *= 2

    return None, "Max retries exceeded"


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def auction_create(
    owner_id: str,
    title: str,
    volume_m3: float,
    starting_price_per_m3: float,
    start_time: datetime,
    end_time: datetime,
    species_breakdown: Optional[List[SpeciesShare]] = None,
    dominant_species: Optional[str] = None,
    owner_name: Optional[str] = None,
) -> Auction:
    """Create a draft auction. The activity cutoff is fixed here from the scheduled end.

    Naive start/end times are taken as UTC.
    """
    if starting_price_per_m3 <= 0:
        raise ValueError("Starting price must be positive")

    data = AuctionData(
        owner_id=owner_id,
        owner_name=owner_name,
        title=title,
        species_breakdown=species_breakdown or [],
        dominant_species=dominant_species or "",
        volume_m3=volume_m3,
        starting_price_per_m3=starting_price_per_m3,
        current_price_per_m3=starting_price_per_m3,
        second_highest_price_per_m3=starting_price_per_m3,
        start_time=start_time,
        end_time=end_time,
        status="draft",
    )
    if data.end_time <= data.start_time:
        raise ValueError("Auction must end after it starts")

    auction = await Auction.create(data, user_id=owner_id)
    logger.info(f"Auction {auction.id} created as draft by {owner_id}")
    return auction


async def auction_publish(auction_id: str, owner_id: str) -> tuple[Optional[Auction], Optional[str]]:
    """Move a draft to upcoming. The scheduler takes it from there."""

    def _mutate(auction: Auction) -> Optional[str]:
        d = auction.data
        if d.owner_id != owner_id:
            return NOT_OWNER
        if d.status != "draft":
            return f"Cannot publish: status is {d.status}"
        d.status = "upcoming"
        return None

    return await _auction_cas_retry(auction_id, _mutate)


async def auction_get(auction_id: str) -> Optional[Auction]:
    return await Auction.get(auction_id)


async def auction_search(
    status: Optional[str] = "active",
    dominant_species: Optional[str] = None,
    max_price_per_m3: Optional[float] = None,
    owner_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Auction]:
    """Search auctions with optional filters."""
    conditions = []
    params: Dict[str, Any] = {}

    if status:
        conditions.append("status = $status")
        params["status"] = status
    if dominant_species:
        conditions.append("dominant_species = $dominant_species")
        params["dominant_species"] = dominant_species
    if owner_id:
        conditions.append("owner_id = $owner_id")
        params["owner_id"] = owner_id
    if max_price_per_m3 is not None:
        conditions.append("current_price_per_m3 <= $max_price")
        params["max_price"] = max_price_per_m3

    where = " AND ".join(conditions) if conditions else "1=1"
    return await Auction.query(where, order_by="end_time ASC", limit=limit, offset=offset, **params)


async def auction_get_by_owner(owner_id: str) -> List[Auction]:
    return await Auction.query("owner_id = $owner_id", owner_id=owner_id)


# ---------------------------------------------------------------------------
# Bidder and owner views
# ---------------------------------------------------------------------------

class BidderPosition(BaseModel):
    auction: Auction
    latest_bid: Bid
    is_leading: bool
    bid_count: int


class OwnerPerformance(BaseModel):
    total_auctions: int
    active_auctions: int
    completed_auctions: int
    total_bids: int
    avg_bids_per_auction: float
    avg_price_per_m3: float
    success_rate: float  # percent of auctions that closed with a winner


async def auction_get_bidder_positions(bidder_id: str) -> List[BidderPosition]:
    """One entry per auction the bidder has bid on: their latest bid and whether they lead."""
    bids = await bid_get_by_bidder(bidder_id, limit=500)

    latest: Dict[str, Bid] = {}
    counts: Dict[str, int] = {}
    for bid in bids:  # newest first
        auction_id = bid.data.auction_id
        latest.setdefault(auction_id, bid)
        counts[auction_id] = counts.get(auction_id, 0) + 1

    positions = []
    for auction_id, bid in latest.items():
        auction = await Auction.get(auction_id)
        if not auction:
            logger.warning(f"Bid {bid.id} references missing auction {auction_id}")
            continue
        positions.append(BidderPosition(
            auction=auction,
            latest_bid=bid,
            is_leading=auction.data.current_bidder_id == bidder_id,
            bid_count=counts[auction_id],
        ))
    return positions


async def auction_get_won(bidder_id: str) -> List[Auction]:
    """Ended or sold auctions the bidder leads."""
    return await Auction.query(
        "status IN $statuses AND current_bidder_id = $bidder_id",
        order_by="end_time DESC",
        statuses=["ended", "sold"],
        bidder_id=bidder_id,
    )


async def auction_owner_performance(owner_id: str) -> OwnerPerformance:
    auctions = await auction_get_by_owner(owner_id)
    total = len(auctions)
    completed = [a for a in auctions if a.data.status in ("ended", "sold")]
    with_winner = [a for a in completed if a.data.current_bidder_id]
    total_bids = sum(a.data.bid_count for a in auctions)

    avg_price = (
        sum(a.data.current_price_per_m3 for a in with_winner) / len(with_winner)
        if with_winner else 0.0
    )
    return OwnerPerformance(
        total_auctions=total,
        active_auctions=sum(1 for a in auctions if a.data.status == "active"),
        completed_auctions=len(completed),
        total_bids=total_bids,
        avg_bids_per_auction=round(total_bids / total, 1) if total else 0.0,
        avg_price_per_m3=round(avg_price, 2),
        success_rate=round(len(with_winner) / total * 100, 1) if total else 0.0,
    )


# ---------------------------------------------------------------------------
# Bid placement (CAS-critical)
# ---------------------------------------------------------------------------

async def auction_place_bid(
    auction_id: str,
    bidder_id: str,
    bidder_name: Optional[str],
    amount_per_m3: float,
    max_proxy_per_m3: float,
    now: Optional[datetime] = None,
) -> tuple[Optional[PlacedBid], Optional[Union[Rejection, str]]]:
    """
    Atomically place a proxy bid on an auction.

    CAS flow:
    1. Load the bidder's history on this auction (activity rule input)
    2. Read auction with CAS
    3. Run the engine pipeline against that snapshot
    4. Apply price, leader, soft-close extension and bid count
    5. CAS-write; on conflict go back to 2
    6. Persist the Bid and dispatch notifications

    Returns (placed, error). The error is a ``Rejection`` for engine
    rejections and a string for storage failures.
    """
    now = now or datetime.now(timezone.utc)
    history = await bid_get_for_bidder_on_auction(auction_id, bidder_id)

    decision: Optional[BidDecision] = None
    rejection: Optional[Rejection] = None

    def _mutate(auction: Auction) -> Optional[str]:
        nonlocal decision, rejection
        if auction.data.status != "active":
            return f"{AUCTION_NOT_ACTIVE} (status: {auction.data.status})"
        decision, rejection = evaluate_bid(
            auction, bidder_id, bidder_name, amount_per_m3, max_proxy_per_m3,
            bid_history=history, now=now,
        )
        if rejection is not None:
            return rejection.message

        d = auction.data
        outcome = decision.outcome
        d.set_price(outcome.current_price_per_m3)
        d.second_highest_price_per_m3 = outcome.second_highest_price_per_m3
        d.highest_max_proxy_per_m3 = outcome.highest_max_proxy_per_m3
        d.current_bidder_id = outcome.leader_id
        d.current_bidder_anonymous_id = outcome.leader_anonymous_id
        if outcome.leader_id == bidder_id:
            d.current_bidder_name = bidder_name
        d.bid_count += 1
        d.soft_close_active = decision.soft_close_active
        if decision.soft_close.should_extend:
            d.end_time = decision.soft_close.new_end_time
        return None

    updated, err = await _auction_cas_retry(auction_id, _mutate)
    if rejection is not None:
        return None, rejection
    if err is not None:
        return None, err

    outcome = decision.outcome
    bid = await bid_create(BidData(
        auction_id=auction_id,
        bidder_id=bidder_id,
        bidder_name=bidder_name,
        bidder_anonymous_id=anonymize(bidder_id, auction_id),
        amount_per_m3=outcome.amount_per_m3,
        max_proxy_per_m3=max_proxy_per_m3,
        is_proxy_bid=outcome.is_proxy_bid,
        placed_at=decision.placed_at,
    ))

    if decision.soft_close.should_extend:
        logger.info(
            f"Auction {auction_id} soft-close extension to "
            f"{decision.soft_close.new_end_time.isoformat()}"
        )

    try:
        await notification_create_many(bid_notifications(updated, decision))
    except Exception as e:
        logger.warning(f"Failed to create bid notifications for auction {auction_id}: {e}")

    return PlacedBid(bid=bid, auction=updated, decision=decision), None


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------

async def auction_apply_lifecycle(
    auction_id: str, now: Optional[datetime] = None
) -> tuple[Optional[LifecycleTransition], Optional[str]]:
    """Apply the lifecycle policy to one auction.

    The status write is CAS-guarded and re-evaluates the policy against the
    freshly read document, so when two sweeps race only one of them applies
    the transition and sends notifications. Returns ``(None, None)`` when
    nothing is due.
    """
    now = now or datetime.now(timezone.utc)
    transition: Optional[LifecycleTransition] = None

    def _mutate(auction: Auction) -> Optional[str]:
        nonlocal transition
        transition = evaluate_lifecycle(auction, now)
        if transition is None:
            return _NO_TRANSITION
        auction.data.status = transition.to_status
        if transition.to_status == "ended":
            auction.data.soft_close_active = False
        return None

    updated, err = await _auction_cas_retry(auction_id, _mutate)
    if err == _NO_TRANSITION:
        return None, None
    if err is not None:
        return None, err

    logger.info(f"Auction {auction_id}: {transition.from_status} → {transition.to_status}")

    # The status write is committed; a later sweep will not see this transition again.
    try:
        if transition.to_status == "active":
            await notification_create_many(activation_notifications(updated, now))
        elif transition.settle:
            await _settle(updated, now)
    except Exception as e:
        logger.error(f"Failed to notify for auction {auction_id} {transition.to_status}: {e}", exc_info=True)
    return transition, None


async def _settle(auction: Auction, now: datetime) -> None:
    """Send end-of-auction notifications from the final auction state."""
    d = auction.data
    if d.current_bidder_id:
        logger.info(
            f"Settling auction {auction.id}: winner={d.current_bidder_id}, "
            f"price={d.current_price_per_m3}€/m³, total={d.projected_total_value}€"
        )
        bidder_ids = await bid_distinct_bidders(auction.id)
    else:
        logger.info(f"Auction {auction.id} ended with no bids")
        bidder_ids = []
    await notification_create_many(settlement_notifications(auction, bidder_ids, now))


async def auction_process_lifecycles(now: Optional[datetime] = None) -> List[LifecycleTransition]:
    """Sweep every non-terminal auction and apply due transitions.

    A failure on one auction is logged and does not stop the sweep.
    """
    now = now or datetime.now(timezone.utc)
    candidates = await Auction.query(
        "status IN $statuses AND (status != 'ended' OR current_bidder_id IS VALUED)",
        order_by="end_time ASC",
        statuses=list(SWEEP_STATUSES),
    )

    transitions = []
    for auction in candidates:
        try:
            if evaluate_lifecycle(auction, now) is None:
                continue
            transition, err = await auction_apply_lifecycle(auction.id, now)
        except Exception as e:
            logger.error(f"Lifecycle transition failed for auction {auction.id}: {e}", exc_info=True)
            continue
        if err:
            logger.warning(f"Lifecycle transition skipped for auction {auction.id}: {err}")
        elif transition:
            transitions.append(transition)

    if transitions:
        logger.info(
            f"Completed {len(transitions)} transitions: "
            + ", ".join(f"{t.auction_id}: {t.from_status} → {t.to_status}" for t in transitions)
        )
    return transitions


async def auction_status_summary() -> Dict[str, int]:
    """Auction counts per status, for monitoring."""
    summary = {"draft": 0, "upcoming": 0, "active": 0, "ended": 0, "sold": 0}
    keyspace = Auction.get_keyspace()
    rows = await keyspace.query(
        f"SELECT a.status, COUNT(*) AS n FROM {keyspace} AS a GROUP BY a.status"
    )
    for row in rows:
        if row.get("status") in summary:
            summary[row["status"]] = row["n"]
    return summary
