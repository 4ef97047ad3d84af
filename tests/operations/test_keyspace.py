from clients.couchbase import get_keyspace
from models.entities.couchbase.auctions import Auction


def test_keyspace_path():
    assert str(get_keyspace("auctions", bucket_name="timber")) == "timber._default.auctions"


def test_entity_keyspace_uses_its_collection():
    assert Auction.get_keyspace().collection_name == "auctions"
