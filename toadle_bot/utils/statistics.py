"""Economy statistics computed from the entity store.

Everything is guild-scoped when a `guild_id` is given: accounts by home
guild and listings by the guild they were posted in. Referral numbers are
global because invite registrations are not tied to a guild.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from toadle_bot.utils.models import Listing, UserAccount
from toadle_bot.utils.store import EntityStore

METRICS = {
    "balance": lambda a: a.balance,
    "bank": lambda a: a.bank_balance,
    "networth": lambda a: a.balance + a.bank_balance,
    "earned": lambda a: a.total_earned,
    "referrals": lambda a: a.referrals,
}


@dataclass
class EconomyTotals:
    users: int
    total_balance: int
    total_bank: int
    total_earned: int
    total_referrals: int

    @property
    def average_balance(self) -> int:
        return round(self.total_balance / self.users) if self.users else 0


@dataclass
class ReferralTotals:
    invites: int
    claimed: int

    @property
    def claim_rate(self) -> int:
        """Claims per registered invite, as a whole percentage."""
        return round(self.claimed / self.invites * 100) if self.invites else 0


@dataclass
class ItemStats:
    item_key: str
    listings: int = 0
    quantity: int = 0
    total_value: int = 0
    min_price: int = 0
    max_price: int = 0

    @property
    def average_price(self) -> int:
        return round(self.total_value / self.quantity) if self.quantity else 0


def _accounts(store: EntityStore, guild_id=None) -> List[UserAccount]:
    if guild_id is None:
        return list(store.users.values())
    return [a for a in store.users.values() if a.guild_id == str(guild_id)]


def _listings(store: EntityStore, guild_id=None) -> List[Listing]:
    if guild_id is None:
        return list(store.listings.values())
    return [l for l in store.listings.values() if l.guild_id == str(guild_id)]


def economy_totals(store: EntityStore, guild_id=None) -> EconomyTotals:
    accounts = _accounts(store, guild_id)
    return EconomyTotals(
        users=len(accounts),
        total_balance=sum(a.balance for a in accounts),
        total_bank=sum(a.bank_balance for a in accounts),
        total_earned=sum(a.total_earned for a in accounts),
        total_referrals=sum(a.referrals for a in accounts),
    )


def referral_totals(store: EntityStore) -> ReferralTotals:
    return ReferralTotals(invites=len(store.invites), claimed=len(store.claimed))


def marketplace_value(store: EntityStore, guild_id=None) -> int:
    return sum(l.price * l.quantity for l in _listings(store, guild_id))


def top_users(store: EntityStore, metric: str = "balance", limit: int = 10, guild_id=None) -> List[UserAccount]:
    """Accounts ranked by `metric` (a key of `METRICS`), highest first."""
    key = METRICS.get(metric)
    if key is None:
        raise ValueError(f"unknown metric {metric!r}")
    return sorted(_accounts(store, guild_id), key=key, reverse=True)[:limit]


def item_stats(store: EntityStore, guild_id=None) -> Dict[str, ItemStats]:
    stats: Dict[str, ItemStats] = {}
    for listing in _listings(store, guild_id):
        entry: Optional[ItemStats] = stats.get(listing.item_key)
        if entry is None:
            entry = stats[listing.item_key] = ItemStats(listing.item_key, min_price=listing.price)
        entry.listings += 1
        entry.quantity += listing.quantity
        entry.total_value += listing.price * listing.quantity
        entry.min_price = min(entry.min_price, listing.price)
        entry.max_price = max(entry.max_price, listing.price)
    return stats
