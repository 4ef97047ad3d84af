from unittest.mock import AsyncMock, patch

import pytest

from conftest import NOW
from models.engine.lifecycle import NotificationDraft
from models.entities.couchbase.notifications import Notification, NotificationData
from models.operations.bids import bid_distinct_bidders
from models.entities.couchbase.bids import Bid
from models.operations.notifications import notification_create_many, notification_mark_read


def _notification(user_id="bidder-1", read=False):
    return Notification(id="n-1", data=NotificationData(
        user_id=user_id, type="outbid", title="You've been outbid!", message="...",
        auction_id="auction-1", read=read, timestamp=NOW,
    ))


@pytest.mark.asyncio
async def test_create_many_stores_each_draft():
    drafts = [
        NotificationDraft(user_id=u, type="new_bid", title="t", message="m", auction_id="auction-1", timestamp=NOW)
        for u in ("owner-1", "bidder-1")
    ]

    async def create(data, key=None, user_id=None):
        return Notification(id=f"n-{data.user_id}", data=data)

    with patch.object(Notification, "create", new=create):
        created = await notification_create_many(drafts)

    assert [n.data.user_id for n in created] == ["owner-1", "bidder-1"]
    assert not any(n.data.read for n in created)


@pytest.mark.asyncio
async def test_mark_read_by_recipient():
    update = AsyncMock(side_effect=lambda n: n)
    with patch.object(Notification, "get", new=AsyncMock(return_value=_notification())), \
         patch.object(Notification, "update", new=update):
        notification, err = await notification_mark_read("n-1", "bidder-1")

    assert err is None
    assert notification.data.read
    update.assert_awaited_once()


@pytest.mark.asyncio
async def test_mark_read_by_someone_else():
    with patch.object(Notification, "get", new=AsyncMock(return_value=_notification())):
        notification, err = await notification_mark_read("n-1", "intruder")
    assert notification is None
    assert err == "Not your notification"


@pytest.mark.asyncio
async def test_mark_read_missing():
    with patch.object(Notification, "get", new=AsyncMock(return_value=None)):
        _, err = await notification_mark_read("n-404", "bidder-1")
    assert err == "Notification not found"


@pytest.mark.asyncio
async def test_distinct_bidders_query():
    keyspace = AsyncMock()
    keyspace.query.return_value = [{"bidder_id": "b1"}, {"bidder_id": "b2"}, {"bidder_id": None}]
    with patch.object(Bid, "get_keyspace", return_value=keyspace):
        bidders = await bid_distinct_bidders("auction-1")

    assert bidders == ["b1", "b2"]
    assert keyspace.query.await_args.kwargs["named_parameters"] == {"auction_id": "auction-1"}


@pytest.mark.asyncio
async def test_create_many_skips_failed_write():
    drafts = [
        NotificationDraft(user_id=u, type="sold", title="t", message="m", auction_id="auction-1", timestamp=NOW)
        for u in ("winner", "owner-1", "loser")
    ]

    async def create(data, key=None, user_id=None):
        if data.user_id == "owner-1":
            raise RuntimeError("timeout")
        return Notification(id=f"n-{data.user_id}", data=data)

    with patch.object(Notification, "create", new=create):
        created = await notification_create_many(drafts)

    assert [n.data.user_id for n in created] == ["winner", "loser"]
