"""
Bidder views.

GET  /bids/my-bids   — per auction: the caller's latest bid and whether they lead
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from models.operations.auctions import auction_get_bidder_positions

from .auctions import AuctionResponse, BidResponse, _auction_to_response, _bid_to_response
from .dependencies import CurrentUser, current_user_get

router = APIRouter(prefix="/bids", tags=["bids"])


class BidderPositionResponse(BaseModel):
    auction: AuctionResponse
    latest_bid: BidResponse
    is_leading: bool
    bid_count: int


@router.get("/my-bids", response_model=List[BidderPositionResponse])
async def route_my_bids(user: CurrentUser = Depends(current_user_get)):
    positions = await auction_get_bidder_positions(user.id)
    return [
        BidderPositionResponse(
            auction=_auction_to_response(p.auction),
            latest_bid=_bid_to_response(p.latest_bid),
            is_leading=p.is_leading,
            bid_count=p.bid_count,
        )
        for p in positions
    ]
