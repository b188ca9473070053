"""Wiring for the economy core.

`EconomyCore` is built once per process around a single `EntityStore` and
passed to every cog through the bot. Tests build their own with a fresh
store.
"""
from __future__ import annotations

import random
from pathlib import Path
from typing import Optional

from toadle_bot.utils.bank import BankLedger
from toadle_bot.utils.confirm import ConfirmationBoard
from toadle_bot.utils.giveaways import GiveawayManager
from toadle_bot.utils.guild_config import GuildConfigManager
from toadle_bot.utils.invites import InviteCache
from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.marketplace import MarketplaceEngine
from toadle_bot.utils.moderation import ModerationStore
from toadle_bot.utils.referrals import ReferralLedger, DEFAULT_BONUS
from toadle_bot.utils.repository import Repository
from toadle_bot.utils.store import EntityStore


class EconomyCore:
    def __init__(
        self,
        store: Optional[EntityStore] = None,
        *,
        repository: Optional[Repository] = None,
        data_dir: Optional[Path] = None,
        default_prefix: str = "!",
        referral_bonus: int = DEFAULT_BONUS,
        confirm_timeout: float = 120.0,
        max_logs_per_guild: int = 1000,
        rng: Optional[random.Random] = None,
    ):
        self.store = store if store is not None else EntityStore()
        self.repository = repository
        self.rng = rng or random.Random()
        self.ledger = UserLedger(self.store)
        self.bank = BankLedger(self.ledger)
        self.market = MarketplaceEngine(self.ledger)
        self.referrals = ReferralLedger(self.ledger, bonus=referral_bonus)
        self.config = GuildConfigManager(self.store, default_prefix=default_prefix)
        self.giveaways = GiveawayManager(self.ledger, rng=self.rng)
        self.invites = InviteCache()
        self.nukes = ConfirmationBoard(timeout=confirm_timeout)
        self.moderation = ModerationStore(Path(data_dir or Path.cwd() / "data"), max_logs_per_guild)

    @classmethod
    def from_settings(cls, settings, store: EntityStore, repository: Optional[Repository] = None) -> "EconomyCore":
        return cls(
            store,
            repository=repository,
            data_dir=settings.DATA_DIR,
            default_prefix=settings.DEFAULT_PREFIX,
            referral_bonus=settings.REFERRAL_BONUS,
            confirm_timeout=settings.NUKE_CONFIRM_SECONDS,
            max_logs_per_guild=settings.MAX_LOGS_PER_GUILD,
        )

    async def save(self) -> None:
        if self.repository is not None:
            await self.repository.save(self.store)
