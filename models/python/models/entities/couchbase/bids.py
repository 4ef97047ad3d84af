from typing import Optional
from datetime import datetime
from clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData


class BidData(BaseCouchbaseEntityData):
    auction_id: str
    bidder_id: str
    bidder_name: Optional[str] = None
    bidder_anonymous_id: str
    amount_per_m3: float  # price actually placed, not the proxy ceiling
    max_proxy_per_m3: float
    is_proxy_bid: bool = False  # price produced by the system on the leader's behalf
    placed_at: datetime


class Bid(BaseModelCouchbase[BidData]):
    _collection_name = "bids"
