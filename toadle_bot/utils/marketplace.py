"""Player marketplace: listings escrow seller inventory until bought or cancelled.

A listing is `ACTIVE` while its quantity is positive. Partial purchases
decrement it; the purchase that takes the last unit, or an explicit removal,
deletes it. A listing is never stored with quantity zero.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.models import Listing

logger = logging.getLogger("toadle.marketplace")


@dataclass
class PurchaseResult:
    success: bool
    message: str
    total_cost: int = 0
    listing: Optional[Listing] = None


@dataclass
class ListingPage:
    listings: List[Listing] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    page: int = 1


class MarketplaceEngine:
    def __init__(self, ledger: UserLedger):
        self.ledger = ledger

    @property
    def listings(self):
        return self.ledger.store.listings

    def create_listing(self, seller_id, guild_id, item_key: str, qty: int, price: int) -> Optional[Listing]:
        key = str(item_key).lower()
        if qty <= 0 or price <= 0 or not self.ledger.is_valid_item(key):
            return None
        if self.ledger.item_quantity(seller_id, key) < qty:
            return None
        if not self.ledger.remove_inventory(seller_id, key, qty):
            return None
        listing = Listing(seller_id=str(seller_id), guild_id=str(guild_id), item_key=key, quantity=qty, price=price)
        self.listings[listing.listing_id] = listing
        logger.info("Listing %s: %s x%s @ %s by %s", listing.listing_id, key, qty, price, seller_id)
        return listing

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        return self.listings.get(listing_id)

    def remove_listing(self, listing_id: str) -> bool:
        return self.listings.pop(listing_id, None) is not None

    def cancel_listing(self, user_id, listing_id: str, *, force: bool = False) -> Optional[Listing]:
        """Withdraw a listing and return its remaining units to the seller.

        Only the seller may cancel unless `force` is set.
        """
        listing = self.get_listing(listing_id)
        if listing is None:
            return None
        if listing.seller_id != str(user_id) and not force:
            return None
        del self.listings[listing_id]
        if not self.ledger.add_inventory(listing.seller_id, listing.item_key, listing.quantity):
            # item was removed from the catalog since listing; nothing to return
            logger.warning("Listing %s cancelled but %s is no longer a catalog item", listing_id, listing.item_key)
        return listing

    def purchase(self, buyer_id, guild_id, listing_id: str, qty: int) -> PurchaseResult:
        """Buy `qty` units of a listing.

        Every precondition is checked before the first mutation, so a
        failed purchase changes nothing.
        """
        listing = self.get_listing(listing_id)
        if listing is None or listing.guild_id != str(guild_id):
            return PurchaseResult(False, "Listing not found")
        if qty <= 0:
            return PurchaseResult(False, "Quantity must be positive")
        if qty > listing.quantity:
            return PurchaseResult(False, f"Only {listing.quantity} items available")
        if listing.seller_id == str(buyer_id):
            return PurchaseResult(False, "Cannot buy your own listing")
        if not self.ledger.is_valid_item(listing.item_key):
            return PurchaseResult(False, "This item is no longer available")

        total = qty * listing.price
        wallet = self.ledger.balance(buyer_id)
        if wallet < total:
            return PurchaseResult(False, f"Insufficient funds. Need {total}, have {wallet}")

        self.ledger.debit(buyer_id, total)
        self.ledger.credit(listing.seller_id, total)
        self.ledger.add_inventory(buyer_id, listing.item_key, qty)
        if qty == listing.quantity:
            del self.listings[listing.listing_id]
        else:
            listing.quantity -= qty
        logger.info("Purchase %s: %s bought %s x%s for %s", listing.listing_id, buyer_id, listing.item_key, qty, total)
        return PurchaseResult(True, f"Bought {qty}x {listing.item_key} for {total} coins", total, listing)

    def paged_listings(self, guild_id, page: int = 1, per_page: int = 5) -> ListingPage:
        """Newest-first page of a guild's listings.

        Pages are 1-based; a page past the end yields an empty slice.
        """
        page = max(1, page)
        matching = [l for l in self.listings.values() if l.guild_id == str(guild_id)]
        matching.sort(key=lambda l: (-l.created_at, l.listing_id))
        total = len(matching)
        start = (page - 1) * per_page
        return ListingPage(
            listings=matching[start:start + per_page],
            total=total,
            total_pages=math.ceil(total / per_page) if per_page > 0 else 0,
            page=page,
        )
