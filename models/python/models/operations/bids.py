"""
Bid query operations.

Bids are append-only: they are created by ``auction_place_bid`` after the
auction document accepted the outcome, and never updated.
"""

from typing import List, Optional

from models.entities.couchbase.bids import Bid, BidData


async def bid_create(data: BidData) -> Bid:
    return await Bid.create(data, user_id=data.bidder_id)


async def bid_get_by_auction(auction_id: str, limit: int = 100) -> List[Bid]:
    """Bids for an auction, most recent first."""
    return await Bid.query(
        "auction_id = $auction_id",
        order_by="placed_at DESC",
        limit=limit,
        auction_id=auction_id,
    )


async def bid_get_by_bidder(bidder_id: str, limit: int = 50) -> List[Bid]:
    """A bidder's history across auctions, most recent first."""
    return await Bid.query(
        "bidder_id = $bidder_id",
        order_by="placed_at DESC",
        limit=limit,
        bidder_id=bidder_id,
    )


async def bid_get_for_bidder_on_auction(auction_id: str, bidder_id: str) -> List[Bid]:
    """Every bid one bidder placed on one auction, oldest first (activity rule input)."""
    return await Bid.query(
        "auction_id = $auction_id AND bidder_id = $bidder_id",
        order_by="placed_at ASC",
        auction_id=auction_id,
        bidder_id=bidder_id,
    )


async def bid_distinct_bidders(auction_id: str) -> List[str]:
    """Distinct bidder ids on an auction in order of first bid."""
    keyspace = Bid.get_keyspace()
    query = (
        f"SELECT b.bidder_id, MIN(b.placed_at) AS first_bid FROM {keyspace} AS b "
        f"WHERE b.auction_id = $auction_id "
        f"GROUP BY b.bidder_id ORDER BY first_bid"
    )
    rows = await keyspace.query(query, named_parameters={"auction_id": auction_id})
    return [row["bidder_id"] for row in rows if row.get("bidder_id")]
