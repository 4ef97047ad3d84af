from datetime import timedelta

from conftest import NOW, make_auction, make_bid
from models.engine.bidding import auction_update_event, bid_notifications, evaluate_bid


def test_validator_runs_before_activity_rule():
    auction = make_auction(end_time=NOW + timedelta(minutes=2))
    _, rejection = evaluate_bid(auction, "owner-1", None, 60.0, 60.0, now=NOW)
    assert rejection.code == "SelfBid"


def test_newcomer_blocked_in_closing_window():
    auction = make_auction(end_time=NOW + timedelta(minutes=2))
    decision, rejection = evaluate_bid(auction, "newcomer", None, 60.0, 60.0, now=NOW)
    assert decision is None
    assert rejection.code == "ActivityWindowRestricted"


def test_engaged_bidder_extends_closing_auction():
    auction = make_auction(end_time=NOW + timedelta(minutes=2))
    history = [make_bid("bidder-1", NOW - timedelta(minutes=30))]
    decision, rejection = evaluate_bid(auction, "bidder-1", "Ion", 60.0, 70.0, bid_history=history, now=NOW)
    assert rejection is None
    assert decision.soft_close.should_extend
    assert decision.soft_close.new_end_time == NOW + timedelta(minutes=3)
    assert decision.soft_close_active
    assert decision.placed_at == NOW


def test_bid_outside_window_uses_stored_leader():
    auction = make_auction(current_bidder_id="A", highest_max_proxy_per_m3=90.0)
    decision, _ = evaluate_bid(auction, "B", None, 53.0, 70.0, now=NOW)
    assert decision.outcome.leader_id == "A"
    assert decision.outcome.current_price_per_m3 == 73.0
    assert not decision.soft_close.should_extend


def test_update_event_mirrors_auction():
    auction = make_auction(current_bidder_anonymous_id="BIDDER-0042", bid_count=4, current_price_per_m3=61.0)
    event = auction_update_event(auction)
    assert event.auction_id == "auction-1"
    assert event.current_price_per_m3 == 61.0
    assert event.current_bidder_anonymous_id == "BIDDER-0042"
    assert event.bid_count == 4
    assert event.projected_total_value == 6100.0


def test_displaced_leader_is_told_they_were_outbid():
    auction = make_auction(current_bidder_id="A", highest_max_proxy_per_m3=60.0)
    decision, _ = evaluate_bid(auction, "B", None, 53.0, 90.0, now=NOW)
    drafts = bid_notifications(auction, decision)
    assert [(d.user_id, d.type) for d in drafts] == [("A", "outbid"), ("owner-1", "new_bid")]


def test_auto_bid_only_notifies_owner():
    auction = make_auction(current_bidder_id="A", highest_max_proxy_per_m3=90.0)
    decision, _ = evaluate_bid(auction, "B", None, 53.0, 60.0, now=NOW)
    drafts = bid_notifications(auction, decision)
    assert [(d.user_id, d.type) for d in drafts] == [("owner-1", "new_bid")]


def test_naive_schedule_compares_with_aware_clock():
    naive = NOW.replace(tzinfo=None)
    auction = make_auction(start_time=naive - timedelta(hours=1), end_time=naive + timedelta(minutes=2))
    decision, rejection = evaluate_bid(auction, "newcomer", None, 60.0, 60.0, now=NOW)
    assert decision is None
    assert rejection.code == "ActivityWindowRestricted"
