from datetime import timedelta

from conftest import NOW, make_auction, make_bid
from models.engine.eligibility import ACTIVITY_RESTRICTED_MESSAGE, check_activity


def _closing_auction():
    # Scheduled to end 2 minutes from NOW: cutoff is NOW - 13 min.
    return make_auction(end_time=NOW + timedelta(minutes=2))


def test_everyone_eligible_outside_closing_window():
    ok, rejection = check_activity(make_auction(), "newcomer", [], now=NOW)
    assert ok and rejection is None


def test_eligible_once_auction_has_passed_its_end():
    auction = make_auction(end_time=NOW - timedelta(seconds=1))
    assert check_activity(auction, "newcomer", [], now=NOW) == (True, None)


def test_newcomer_rejected_in_closing_window():
    ok, rejection = check_activity(_closing_auction(), "newcomer", [], now=NOW)
    assert not ok
    assert rejection.code == "ActivityWindowRestricted"
    assert rejection.message == ACTIVITY_RESTRICTED_MESSAGE


def test_bid_before_cutoff_grants_eligibility():
    auction = _closing_auction()
    early = make_bid("bidder-1", auction.data.activity_window_cutoff - timedelta(seconds=1))
    assert check_activity(auction, "bidder-1", [early], now=NOW) == (True, None)


def test_bid_exactly_at_cutoff_does_not_count():
    auction = _closing_auction()
    at_cutoff = make_bid("bidder-1", auction.data.activity_window_cutoff)
    ok, _ = check_activity(auction, "bidder-1", [at_cutoff], now=NOW)
    assert not ok


def test_other_bidders_history_is_ignored():
    auction = _closing_auction()
    early = make_bid("someone-else", NOW - timedelta(hours=1))
    ok, _ = check_activity(auction, "bidder-1", [early], now=NOW)
    assert not ok


def test_cutoff_stays_fixed_after_extension():
    auction = _closing_auction()
    cutoff = auction.data.activity_window_cutoff
    auction.data.end_time = NOW + timedelta(minutes=3)
    late = make_bid("bidder-1", cutoff + timedelta(minutes=1))
    ok, _ = check_activity(auction, "bidder-1", [late], now=NOW + timedelta(minutes=1))
    assert not ok
