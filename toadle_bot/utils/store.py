"""In-memory entity store.

One `EntityStore` is built at startup (from a repository) and handed to every
ledger. Ledgers mutate its collections synchronously; persistence only ever
sees `snapshot()` output, which is a deep JSON-ready copy.
"""
from __future__ import annotations

import logging
from typing import Dict, Set, Any, Optional

from pydantic import ValidationError

from toadle_bot.utils.models import (
    UserAccount,
    CatalogItem,
    Listing,
    InviteRegistration,
    GuildConfig,
    Giveaway,
    jsonb_serialize,
    jsonb_deserialize,
)

logger = logging.getLogger("toadle.store")

COLLECTIONS = ("users", "items", "listings", "invites", "claimed", "guilds", "giveaways")
_MODELS = {
    "users": UserAccount,
    "items": CatalogItem,
    "listings": Listing,
    "invites": InviteRegistration,
    "guilds": GuildConfig,
    "giveaways": Giveaway,
}


class EntityStore:
    def __init__(self) -> None:
        self.users: Dict[str, UserAccount] = {}
        self.items: Dict[str, CatalogItem] = {}
        self.listings: Dict[str, Listing] = {}
        self.invites: Dict[str, InviteRegistration] = {}
        self.claimed: Set[str] = set()
        self.guilds: Dict[str, GuildConfig] = {}
        self.giveaways: Dict[str, Giveaway] = {}

    def snapshot(self) -> Dict[str, Any]:
        """Return a deep, JSON-ready copy of every collection.

        The claimed set is written as a sorted list of user ids.
        """
        data: Dict[str, Any] = {}
        for name in _MODELS:
            collection = getattr(self, name)
            data[name] = {key: jsonb_serialize(record) for key, record in collection.items()}
        data["claimed"] = sorted(self.claimed)
        return data

    @classmethod
    def from_snapshot(cls, data: Optional[Dict[str, Any]]) -> "EntityStore":
        """Rebuild a store from `snapshot()` output.

        Missing collections start empty. Records that fail validation are
        skipped with a warning rather than aborting the whole load.
        """
        store = cls()
        data = data or {}
        for name, model_cls in _MODELS.items():
            target = getattr(store, name)
            raw = data.get(name) or {}
            if not isinstance(raw, dict):
                logger.warning("Ignoring malformed %s collection (expected mapping)", name)
                continue
            for key, record in raw.items():
                try:
                    target[str(key)] = jsonb_deserialize(model_cls, record)
                except ValidationError as exc:
                    logger.warning("Skipping invalid %s record %s: %s", name, key, exc.errors()[:1])
        claimed = data.get("claimed") or []
        store.claimed = {str(uid) for uid in claimed}
        return store

    def clear_guild_economy(self, guild_id: str) -> Dict[str, int]:
        """Zero every account homed in `guild_id` and drop its market data.

        Returns counts of reset accounts and of deleted listings, guild-scoped
        catalog items and giveaways.
        """
        guild_id = str(guild_id)
        reset = 0
        for account in self.users.values():
            if account.guild_id != guild_id:
                continue
            account.balance = 0
            account.bank_balance = 0
            account.total_earned = 0
            account.inventory = {}
            account.last_daily = None
            account.last_weekly = None
            account.last_earn = None
            reset += 1

        doomed = [lid for lid, listing in self.listings.items() if listing.guild_id == guild_id]
        for lid in doomed:
            del self.listings[lid]

        items = [key for key, item in self.items.items() if item.guild_id == guild_id]
        for key in items:
            del self.items[key]

        giveaways = [gid for gid, g in self.giveaways.items() if g.guild_id == guild_id]
        for gid in giveaways:
            del self.giveaways[gid]

        logger.warning(
            "Economy wiped for guild %s: %s accounts, %s listings, %s items, %s giveaways",
            guild_id, reset, len(doomed), len(items), len(giveaways),
        )
        return {"accounts": reset, "listings": len(doomed), "items": len(items), "giveaways": len(giveaways)}

    def memory_stats(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTIONS}
