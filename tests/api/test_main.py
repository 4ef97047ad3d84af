import main


def test_app_mounts_api_routes():
    paths = {route.path for route in main.app.routes}
    assert main.app.title == "Timber Auction API"
    assert "/api/auctions/{auction_id}/bid" in paths
    assert "/api/bids/my-bids" in paths
    assert "/api/internal/lifecycle/run" in paths
