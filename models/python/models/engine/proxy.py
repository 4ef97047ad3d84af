"""
Proxy bidding with second-price clearing.

Each bidder commits a ceiling (max proxy). The visible price only rises as
far as needed to beat the second-best committed ceiling, capped at the
leader's own ceiling. Cases are evaluated in this order:

1. no leader yet: accept at ``max(bid, current + increment)``
2. the leader raises their own ceiling: price unchanged
3. challenger's ceiling <= leader's: system auto-bids for the leader
4. challenger's ceiling > leader's: challenger takes the lead

Only case 1 can reject. Inputs are assumed to have passed
``validation.validate_bid``.
"""

from typing import Optional

from models.entities.couchbase.auctions import Auction
from models.engine.anonymize import anonymize
from models.engine.increments import get_increment, projected_total
from models.engine.results import ProxyBidOutcome, Rejection


def resolve_proxy_bid(
    auction: Auction,
    bidder_id: str,
    bidder_name: Optional[str],
    amount_per_m3: float,
    max_proxy_per_m3: float,
    current_leader_id: Optional[str] = None,
    current_leader_max_proxy: Optional[float] = None,
) -> tuple[Optional[ProxyBidOutcome], Optional[Rejection]]:
    d = auction.data
    current_price = d.current_price_per_m3
    increment = get_increment(d.dominant_species)

    def outcome(price: float, second: float, ceiling: float, leader_id: str,
                leader_name: Optional[str], is_proxy_bid: bool) -> ProxyBidOutcome:
        return ProxyBidOutcome(
            current_price_per_m3=price,
            second_highest_price_per_m3=second,
            highest_max_proxy_per_m3=ceiling,
            projected_total_value=projected_total(price, d.volume_m3),
            leader_id=leader_id,
            leader_name=leader_name,
            leader_anonymous_id=anonymize(leader_id, auction.id),
            previous_leader_id=current_leader_id or None,
            amount_per_m3=price,
            is_proxy_bid=is_proxy_bid,
        )

    # 1. First bid. A zero ceiling on record counts as no leader.
    if not current_leader_id or not current_leader_max_proxy:
        accepted = max(amount_per_m3, current_price + increment)
        if max_proxy_per_m3 < accepted:
            return None, Rejection(
                code="InsufficientMaxProxy",
                message=(
                    f"Your maximum bid of €{max_proxy_per_m3:.2f}/m³ is below "
                    f"the required bid of €{accepted:.2f}/m³"
                ),
            )
        return outcome(accepted, current_price, max_proxy_per_m3,
                       bidder_id, bidder_name, is_proxy_bid=False), None

    # 2. Leader re-raising their own ceiling.
    if current_leader_id == bidder_id:
        return outcome(current_price, d.second_highest_price_per_m3, max_proxy_per_m3,
                       bidder_id, bidder_name, is_proxy_bid=False), None

    # 3. Challenger loses the proxy battle; auto-bid for the leader.
    if max_proxy_per_m3 <= current_leader_max_proxy:
        price = min(max_proxy_per_m3 + increment, current_leader_max_proxy)
        return outcome(price, max_proxy_per_m3, current_leader_max_proxy,
                       current_leader_id, None, is_proxy_bid=True), None

    # 4. Challenger out-commits the leader.
    price = min(current_leader_max_proxy + increment, max_proxy_per_m3)
    return outcome(price, current_leader_max_proxy, max_proxy_per_m3,
                   bidder_id, bidder_name, is_proxy_bid=False), None
