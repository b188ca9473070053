from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.marketplace import MarketplaceEngine
from toadle_bot.utils.models import CatalogItem
from toadle_bot.utils.store import EntityStore

GUILD = "500"


def make_market():
    ledger = UserLedger(EntityStore())
    ledger.add_catalog_item(CatalogItem(key="widget", name="Widget", price=25))
    market = MarketplaceEngine(ledger)
    ledger.add_inventory("seller", "widget", 5)
    ledger.credit("buyer", 100)
    return ledger, market


def test_create_listing_escrows_inventory():
    ledger, market = make_market()
    listing = market.create_listing("seller", GUILD, "widget", 5, 10)
    assert listing is not None
    assert ledger.item_quantity("seller", "widget") == 0
    assert market.get_listing(listing.listing_id) is listing


def test_create_listing_rejects_bad_input():
    ledger, market = make_market()
    assert market.create_listing("seller", GUILD, "widget", 6, 10) is None
    assert market.create_listing("seller", GUILD, "widget", 0, 10) is None
    assert market.create_listing("seller", GUILD, "widget", 1, 0) is None
    assert market.create_listing("seller", GUILD, "unicorn", 1, 10) is None
    assert ledger.item_quantity("seller", "widget") == 5
    assert market.listings == {}


def test_partial_then_full_purchase_conserves_coins():
    ledger, market = make_market()
    listing = market.create_listing("seller", GUILD, "widget", 5, 10)

    result = market.purchase("buyer", GUILD, listing.listing_id, 2)
    assert result.success
    assert result.total_cost == 20
    assert ledger.balance("buyer") == 80
    assert ledger.balance("seller") == 20
    assert ledger.item_quantity("buyer", "widget") == 2
    assert market.get_listing(listing.listing_id).quantity == 3

    result = market.purchase("buyer", GUILD, listing.listing_id, 3)
    assert result.success
    assert market.get_listing(listing.listing_id) is None
    assert ledger.balance("buyer") + ledger.balance("seller") == 100


def test_purchase_failures_change_nothing():
    ledger, market = make_market()
    listing = market.create_listing("seller", GUILD, "widget", 5, 30)
    lid = listing.listing_id

    assert market.purchase("buyer", GUILD, "nope", 1).message == "Listing not found"
    assert market.purchase("buyer", "other-guild", lid, 1).message == "Listing not found"
    assert market.purchase("buyer", GUILD, lid, 6).message == "Only 5 items available"
    assert market.purchase("seller", GUILD, lid, 1).message == "Cannot buy your own listing"
    assert market.purchase("buyer", GUILD, lid, 4).message == "Insufficient funds. Need 120, have 100"

    assert ledger.balance("buyer") == 100
    assert ledger.balance("seller") == 0
    assert listing.quantity == 5


def test_cancel_listing_returns_items():
    ledger, market = make_market()
    listing = market.create_listing("seller", GUILD, "widget", 3, 10)
    assert market.cancel_listing("buyer", listing.listing_id) is None
    cancelled = market.cancel_listing("seller", listing.listing_id)
    assert cancelled is listing
    assert ledger.item_quantity("seller", "widget") == 5

    listing = market.create_listing("seller", GUILD, "widget", 1, 10)
    assert market.cancel_listing("mod", listing.listing_id, force=True) is listing
    assert market.remove_listing(listing.listing_id) is False


def test_paged_listings_newest_first():
    ledger, market = make_market()
    created = []
    for i in range(5):
        listing = market.create_listing("seller", GUILD, "widget", 1, 10 + i)
        listing.created_at = 1000 + i
        created.append(listing)
    ledger.add_inventory("other", "widget", 1)
    market.create_listing("other", "another-guild", "widget", 1, 10)

    page = market.paged_listings(GUILD, page=1, per_page=2)
    assert page.total == 5
    assert page.total_pages == 3
    assert [l.price for l in page.listings] == [14, 13]

    last = market.paged_listings(GUILD, page=3, per_page=2)
    assert [l.price for l in last.listings] == [10]
    assert market.paged_listings(GUILD, page=4, per_page=2).listings == []
