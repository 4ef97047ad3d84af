from typing import Optional, Literal
from datetime import datetime
from clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData

NotificationType = Literal["outbid", "won", "sold", "new_bid", "auction_ending"]


class NotificationData(BaseCouchbaseEntityData):
    user_id: str
    type: NotificationType
    title: str
    message: str
    auction_id: Optional[str] = None
    read: bool = False
    timestamp: datetime


class Notification(BaseModelCouchbase[NotificationData]):
    _collection_name = "notifications"
