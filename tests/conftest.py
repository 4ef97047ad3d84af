from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from couchbase.exceptions import CASMismatchException

from models.entities.couchbase.auctions import Auction, AuctionData
from models.entities.couchbase.bids import Bid, BidData

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_auction(auction_id: str = "auction-1", **overrides) -> Auction:
    data = dict(
        owner_id="owner-1",
        owner_name="Padurea Verde SRL",
        title="Stejar lot Maramures",
        dominant_species="Stejar",
        volume_m3=100.0,
        starting_price_per_m3=50.0,
        current_price_per_m3=50.0,
        second_highest_price_per_m3=50.0,
        start_time=NOW - timedelta(hours=1),
        end_time=NOW + timedelta(hours=1),
        status="active",
    )
    data.update(overrides)
    return Auction(id=auction_id, data=AuctionData(**data))


def make_bid(bidder_id: str, placed_at: datetime, auction_id: str = "auction-1",
             amount: float = 60.0, bid_id: str = "bid-1") -> Bid:
    return Bid(id=bid_id, data=BidData(
        auction_id=auction_id,
        bidder_id=bidder_id,
        bidder_anonymous_id="BIDDER-0000",
        amount_per_m3=amount,
        max_proxy_per_m3=amount,
        placed_at=placed_at,
    ))


class AuctionStore:
    """In-memory stand-in for the auctions collection.

    ``get`` hands out copies like a real read; ``update`` raises
    ``CASMismatchException`` while ``conflicts`` is positive.
    """

    def __init__(self):
        self.docs = {}
        self.conflicts = 0
        self.writes = 0

    def put(self, auction: Auction) -> None:
        self.docs[auction.id] = auction.model_copy(deep=True)

    async def get(self, auction_id: str):
        doc = self.docs.get(auction_id)
        return doc.model_copy(deep=True) if doc else None

    async def update(self, item: Auction) -> Auction:
        if self.conflicts > 0:
            self.conflicts -= 1
            raise CASMismatchException()
        self.writes += 1
        self.docs[item.id] = item.model_copy(deep=True)
        return item


@pytest.fixture
def auction_store():
    store = AuctionStore()
    with patch.object(Auction, "get", new=store.get), \
         patch.object(Auction, "update", new=store.update):
        yield store
