"""
API endpoints for timber-lot auctions and proxy bidding.

POST   /auctions/              — create a draft auction (forest owner)
POST   /auctions/{id}/publish  — draft → upcoming
GET    /auctions/              — search auctions (public)
GET    /auctions/me            — owner's own auctions
GET    /auctions/increments    — species increment table
GET    /auctions/won           — auctions the caller won
GET    /auctions/performance-stats — owner performance summary
GET    /auctions/{id}          — auction detail
GET    /auctions/{id}/bids     — bid history (anonymized)
POST   /auctions/{id}/bid      — place a proxy bid
GET    /auctions/{id}/stream   — SSE stream for live price updates
"""

import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from models.entities.couchbase.auctions import SpeciesShare
from models.engine.bidding import auction_update_event
from models.engine.increments import QuickBid, SpeciesIncrement, quick_bid_increments, species_increments
from models.engine.results import AuctionUpdateEvent, Rejection
from models.operations.auctions import (
    AUCTION_NOT_ACTIVE,
    AUCTION_NOT_FOUND,
    CONCURRENT_UPDATE_CONFLICT,
    NOT_OWNER,
    OwnerPerformance,
    auction_create,
    auction_get,
    auction_get_by_owner,
    auction_get_won,
    auction_owner_performance,
    auction_place_bid,
    auction_publish,
    auction_search,
)
from models.operations.bids import bid_get_by_auction
from utils import log

from .dependencies import CurrentUser, current_user_get

logger = log.get_logger(__name__)

router = APIRouter(prefix="/auctions", tags=["auctions"])

REJECTION_STATUS = {
    "NotStarted": 409,
    "AlreadyEnded": 409,
    "SelfBid": 403,
    "ActivityWindowRestricted": 403,
    "BelowMinimumIncrement": 400,
    "ProxyBelowBid": 400,
    "InsufficientMaxProxy": 400,
}


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class CreateAuctionRequest(BaseModel):
    title: str = Field(min_length=5)
    species_breakdown: List[SpeciesShare] = []
    dominant_species: Optional[str] = None
    volume_m3: float = Field(ge=1)
    starting_price_per_m3: float = Field(ge=0.1)
    start_time: datetime
    end_time: datetime


class PlaceBidRequest(BaseModel):
    amount_per_m3: float = Field(gt=0)
    max_proxy_per_m3: float = Field(gt=0)


class BidResponse(BaseModel):
    id: str
    auction_id: str
    bidder_anonymous_id: str
    amount_per_m3: float
    is_proxy_bid: bool
    placed_at: datetime


class PlaceBidResponse(BaseModel):
    bid: BidResponse
    auction: AuctionUpdateEvent
    leading: bool
    soft_close_extended: bool


class AuctionResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    species_breakdown: List[SpeciesShare] = []
    dominant_species: str
    volume_m3: float
    starting_price_per_m3: float
    current_price_per_m3: float
    second_highest_price_per_m3: float
    projected_total_value: float
    current_bidder_anonymous_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    original_end_time: datetime
    activity_window_cutoff: datetime
    soft_close_active: bool
    status: str
    bid_count: int
    next_min_bid_per_m3: float
    quick_bids: List[QuickBid]


def _auction_to_response(auction) -> AuctionResponse:
    d = auction.data
    quick_bids = quick_bid_increments(d.dominant_species)
    return AuctionResponse(
        id=auction.id,
        owner_id=d.owner_id,
        title=d.title,
        species_breakdown=d.species_breakdown,
        dominant_species=d.dominant_species,
        volume_m3=d.volume_m3,
        starting_price_per_m3=d.starting_price_per_m3,
        current_price_per_m3=d.current_price_per_m3,
        second_highest_price_per_m3=d.second_highest_price_per_m3,
        projected_total_value=d.projected_total_value,
        current_bidder_anonymous_id=d.current_bidder_anonymous_id,
        start_time=d.start_time,
        end_time=d.end_time,
        original_end_time=d.original_end_time,
        activity_window_cutoff=d.activity_window_cutoff,
        soft_close_active=d.soft_close_active,
        status=d.status,
        bid_count=d.bid_count,
        next_min_bid_per_m3=d.current_price_per_m3 + quick_bids[0].increment_per_m3,
        quick_bids=quick_bids,
    )


def _bid_to_response(bid) -> BidResponse:
    d = bid.data
    return BidResponse(
        id=bid.id,
        auction_id=d.auction_id,
        bidder_anonymous_id=d.bidder_anonymous_id,
        amount_per_m3=d.amount_per_m3,
        is_proxy_bid=d.is_proxy_bid,
        placed_at=d.placed_at,
    )


def _raise_for_error(err) -> None:
    if isinstance(err, Rejection):
        raise HTTPException(status_code=REJECTION_STATUS[err.code], detail=err.message)
    if err == AUCTION_NOT_FOUND:
        raise HTTPException(status_code=404, detail=err)
    if err == CONCURRENT_UPDATE_CONFLICT or err.startswith(AUCTION_NOT_ACTIVE):
        raise HTTPException(status_code=409, detail=err)
    if err == NOT_OWNER:
        raise HTTPException(status_code=403, detail=err)
    raise HTTPException(status_code=400, detail=err)


# ---------------------------------------------------------------------------
# POST /auctions/ — create auction
# ---------------------------------------------------------------------------

@router.post("/", response_model=AuctionResponse, status_code=201)
async def route_auction_create(
    body: CreateAuctionRequest,
    user: CurrentUser = Depends(current_user_get),
):
    """Create a draft auction owned by the caller."""
    try:
        auction = await auction_create(
            owner_id=user.id,
            owner_name=user.name,
            title=body.title,
            volume_m3=body.volume_m3,
            starting_price_per_m3=body.starting_price_per_m3,
            start_time=body.start_time,
            end_time=body.end_time,
            species_breakdown=body.species_breakdown,
            dominant_species=body.dominant_species,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _auction_to_response(auction)


@router.post("/{auction_id}/publish", response_model=AuctionResponse)
async def route_auction_publish(
    auction_id: str,
    user: CurrentUser = Depends(current_user_get),
):
    auction, err = await auction_publish(auction_id, user.id)
    if err:
        _raise_for_error(err)
    return _auction_to_response(auction)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@router.get("/", response_model=List[AuctionResponse])
async def route_auctions_search(
    status: str = "active",
    dominant_species: Optional[str] = None,
    max_price_per_m3: Optional[float] = None,
    limit: int = Query(default=50, le=100),
    offset: int = Query(default=0, ge=0),
):
    auctions = await auction_search(
        status=status,
        dominant_species=dominant_species,
        max_price_per_m3=max_price_per_m3,
        limit=limit,
        offset=offset,
    )
    return [_auction_to_response(a) for a in auctions]


@router.get("/me", response_model=List[AuctionResponse])
async def route_auctions_mine(user: CurrentUser = Depends(current_user_get)):
    auctions = await auction_get_by_owner(user.id)
    return [_auction_to_response(a) for a in auctions]


@router.get("/increments", response_model=List[SpeciesIncrement])
async def route_species_increments():
    return species_increments()


@router.get("/won", response_model=List[AuctionResponse])
async def route_auctions_won(user: CurrentUser = Depends(current_user_get)):
    """Ended or sold auctions the caller won."""
    auctions = await auction_get_won(user.id)
    return [_auction_to_response(a) for a in auctions]


@router.get("/performance-stats", response_model=OwnerPerformance)
async def route_owner_performance(user: CurrentUser = Depends(current_user_get)):
    return await auction_owner_performance(user.id)


@router.get("/{auction_id}", response_model=AuctionResponse)
async def route_auction_detail(auction_id: str):
    auction = await auction_get(auction_id)
    if not auction:
        raise HTTPException(status_code=404, detail=AUCTION_NOT_FOUND)
    return _auction_to_response(auction)


@router.get("/{auction_id}/bids", response_model=List[BidResponse])
async def route_auction_bids(auction_id: str):
    """Bid history, most recent first. Bidders appear only by anonymous handle."""
    auction = await auction_get(auction_id)
    if not auction:
        raise HTTPException(status_code=404, detail=AUCTION_NOT_FOUND)
    bids = await bid_get_by_auction(auction_id)
    return [_bid_to_response(b) for b in bids]


# ---------------------------------------------------------------------------
# POST /auctions/{id}/bid — place a bid
# ---------------------------------------------------------------------------

@router.post("/{auction_id}/bid", response_model=PlaceBidResponse, status_code=201)
async def route_place_bid(
    auction_id: str,
    body: PlaceBidRequest,
    user: CurrentUser = Depends(current_user_get),
):
    """Place a proxy bid: ``amount_per_m3`` now, up to ``max_proxy_per_m3`` automatically."""
    placed, err = await auction_place_bid(
        auction_id=auction_id,
        bidder_id=user.id,
        bidder_name=user.name,
        amount_per_m3=body.amount_per_m3,
        max_proxy_per_m3=body.max_proxy_per_m3,
    )
    if err:
        logger.info(f"Bid on auction {auction_id} by {user.id} rejected: {err}")
        _raise_for_error(err)

    return PlaceBidResponse(
        bid=_bid_to_response(placed.bid),
        auction=auction_update_event(placed.auction),
        leading=placed.decision.outcome.leader_id == user.id,
        soft_close_extended=placed.decision.soft_close.should_extend,
    )


# ---------------------------------------------------------------------------
# GET /auctions/{id}/stream — SSE for live bid updates
# ---------------------------------------------------------------------------

@router.get("/{auction_id}/stream")
async def route_auction_stream(auction_id: str):
    """Server-Sent Events stream for live auction updates.

    Polls Couchbase every second and emits an update event whenever the bid
    count or end time changes. Emits an ended event once the auction leaves
    active.
    """
    async def event_generator():
        last_seen = None
        while True:
            auction = await auction_get(auction_id)
            if not auction:
                yield f"event: error\ndata: {{\"error\": \"{AUCTION_NOT_FOUND}\"}}\n\n"
                break

            d = auction.data
            marker = (d.bid_count, d.end_time)
            if marker != last_seen:
                last_seen = marker
                yield f"event: update\ndata: {auction_update_event(auction).model_dump_json()}\n\n"

            if d.status not in ("active", "upcoming"):
                yield f"event: ended\ndata: {auction_update_event(auction).model_dump_json()}\n\n"
                break

            await asyncio.sleep(1)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
