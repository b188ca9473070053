"""User ledger: wallet balances, inventories, the item catalog and profiles.

Every wallet or inventory mutation goes through `UserLedger`. Operations are
synchronous and never await, so a precondition check and the mutation it
guards can't interleave with another command.

Failed preconditions (insufficient funds, unknown item) are reported as
`False`; passing a non-positive amount is a programming error and raises
`ValueError`.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from toadle_bot.utils.models import UserAccount, CatalogItem
from toadle_bot.utils.store import EntityStore

logger = logging.getLogger("toadle.ledger")

DEFAULT_CATALOG = Path(__file__).resolve().parents[1] / "data" / "catalog.yaml"

LINK_PLATFORMS = ("twitter", "twitch", "github", "youtube", "discord", "steam", "instagram", "tiktok")
BADGES = (
    "first-referral",
    "crime-master",
    "investor",
    "3-day-streak",
    "7-day-streak",
    "store-champion",
    "gambling-addict",
    "community-helper",
    "early-adopter",
)
MAX_BIO_LENGTH = 200


def _require_positive(value: int, what: str = "amount") -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{what} must be a positive integer, got {value!r}")


def load_catalog_seed(path: Optional[Path] = None) -> List[CatalogItem]:
    """Read global catalog items from a YAML mapping of key -> fields."""
    path = Path(path or DEFAULT_CATALOG)
    if not path.exists():
        return []
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return [CatalogItem(key=str(key).lower(), **fields) for key, fields in raw.items()]


class UserLedger:
    def __init__(self, store: EntityStore):
        self.store = store

    # ----- accounts
    def get_or_create_account(self, user_id, guild_id=None) -> UserAccount:
        """Return the account for `user_id`, creating a zeroed one if needed.

        `guild_id` only matters on creation: it becomes the account's home
        guild.
        """
        uid = str(user_id)
        account = self.store.users.get(uid)
        if account is None:
            account = UserAccount(user_id=uid, guild_id=str(guild_id) if guild_id is not None else None)
            self.store.users[uid] = account
            logger.debug("Created account %s (guild %s)", uid, guild_id)
        elif account.guild_id is None and guild_id is not None:
            account.guild_id = str(guild_id)
        return account

    get_account = get_or_create_account

    def peek_account(self, user_id) -> Optional[UserAccount]:
        """Read an account without creating it."""
        return self.store.users.get(str(user_id))

    def balance(self, user_id) -> int:
        account = self.peek_account(user_id)
        return account.balance if account else 0

    # ----- wallet
    def credit(self, user_id, amount: int) -> int:
        """Add `amount` to the wallet and lifetime earnings; return the new wallet."""
        _require_positive(amount)
        account = self.get_or_create_account(user_id)
        account.balance += amount
        account.total_earned += amount
        return account.balance

    def debit(self, user_id, amount: int) -> bool:
        _require_positive(amount)
        account = self.get_or_create_account(user_id)
        if account.balance < amount:
            return False
        account.balance -= amount
        return True

    def refund(self, user_id, amount: int) -> int:
        """Return coins previously debited without counting them as earnings."""
        _require_positive(amount)
        account = self.get_or_create_account(user_id)
        account.balance += amount
        return account.balance

    def settle_stake(self, user_id, stake: int, payout: int) -> int:
        """Pay out a wager whose `stake` was already debited.

        The returned stake is a refund; only winnings above it count as
        earnings. Returns the net change relative to before the wager.
        """
        if payout <= 0:
            return -stake
        if payout <= stake:
            self.refund(user_id, payout)
        else:
            self.refund(user_id, stake)
            self.credit(user_id, payout - stake)
        return payout - stake

    def set_balance(self, user_id, amount: int) -> int:
        account = self.get_or_create_account(user_id)
        account.balance = max(0, int(amount))
        return account.balance

    def transfer(self, from_id, to_id, amount: int) -> bool:
        """Move wallet coins between users. Received coins count as earnings."""
        _require_positive(amount)
        if str(from_id) == str(to_id):
            return False
        if not self.debit(from_id, amount):
            return False
        self.credit(to_id, amount)
        return True

    def leaderboard(self, limit: int = 10, guild_id=None) -> List[UserAccount]:
        accounts = self.store.users.values()
        if guild_id is not None:
            accounts = [a for a in accounts if a.guild_id == str(guild_id)]
        ranked = sorted(accounts, key=lambda a: (-a.balance, a.user_id))
        return ranked[:limit]

    # ----- catalog
    def is_valid_item(self, item_key: str) -> bool:
        return str(item_key).lower() in self.store.items

    def get_catalog_item(self, item_key: str) -> Optional[CatalogItem]:
        return self.store.items.get(str(item_key).lower())

    def add_catalog_item(self, item: CatalogItem) -> CatalogItem:
        item.key = item.key.lower()
        self.store.items[item.key] = item
        return item

    def remove_catalog_item(self, item_key: str) -> bool:
        return self.store.items.pop(str(item_key).lower(), None) is not None

    def catalog_for_guild(self, guild_id=None) -> List[CatalogItem]:
        gid = str(guild_id) if guild_id is not None else None
        items = [i for i in self.store.items.values() if i.guild_id is None or i.guild_id == gid]
        return sorted(items, key=lambda i: i.key)

    def seed_catalog(self, items: List[CatalogItem]) -> int:
        """Insert seed items that aren't in the catalog yet. Returns how many were added."""
        added = 0
        for item in items:
            if item.key not in self.store.items:
                self.add_catalog_item(item)
                added += 1
        return added

    # ----- inventory
    def item_quantity(self, user_id, item_key: str) -> int:
        account = self.peek_account(user_id)
        if account is None:
            return 0
        return account.inventory.get(str(item_key).lower(), 0)

    def add_inventory(self, user_id, item_key: str, qty: int) -> bool:
        _require_positive(qty, "quantity")
        key = str(item_key).lower()
        if not self.is_valid_item(key):
            return False
        account = self.get_or_create_account(user_id)
        account.inventory[key] = account.inventory.get(key, 0) + qty
        return True

    def remove_inventory(self, user_id, item_key: str, qty: int) -> bool:
        _require_positive(qty, "quantity")
        key = str(item_key).lower()
        if not self.is_valid_item(key):
            return False
        account = self.get_or_create_account(user_id)
        held = account.inventory.get(key, 0)
        if held < qty:
            return False
        if held == qty:
            del account.inventory[key]
        else:
            account.inventory[key] = held - qty
        return True

    # ----- cooldown timestamps
    def stamp(self, user_id, field: str, when: Optional[float] = None) -> None:
        """Record `last_daily`, `last_weekly` or `last_earn` for a user."""
        if field not in ("last_daily", "last_weekly", "last_earn"):
            raise ValueError(f"unknown timestamp field {field!r}")
        setattr(self.get_or_create_account(user_id), field, time.time() if when is None else when)

    # ----- profile
    def set_bio(self, user_id, bio: str) -> bool:
        if len(bio) > MAX_BIO_LENGTH:
            return False
        self.get_or_create_account(user_id).bio = bio
        return True

    def add_link(self, user_id, platform: str, url: str) -> bool:
        platform = platform.lower()
        if platform not in LINK_PLATFORMS or not url.startswith(("http://", "https://")):
            return False
        account = self.get_or_create_account(user_id)
        account.links = {**account.links, platform: url}
        return True

    def remove_link(self, user_id, platform: str) -> bool:
        account = self.get_or_create_account(user_id)
        links: Dict[str, str] = dict(account.links)
        if links.pop(platform.lower(), None) is None:
            return False
        account.links = links
        return True

    def grant_badge(self, user_id, badge: str) -> bool:
        if badge not in BADGES:
            return False
        account = self.get_or_create_account(user_id)
        if badge in account.badges:
            return False
        account.badges = account.badges + [badge]
        return True

    def revoke_badge(self, user_id, badge: str) -> bool:
        account = self.get_or_create_account(user_id)
        if badge not in account.badges:
            return False
        account.badges = [b for b in account.badges if b != badge]
        return True
