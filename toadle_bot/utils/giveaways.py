"""Timed giveaways that pay coins to randomly drawn entrants.

Giveaways live in the entity store (`store.giveaways`) so entries and
deadlines survive restarts; the cog polls `due()` to conclude them.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.logger import log_transaction
from toadle_bot.utils.models import Giveaway

logger = logging.getLogger("toadle.giveaways")

ENTERED = "entered"
ALREADY_ENTERED = "already_entered"
ENDED = "ended"
NOT_FOUND = "not_found"


@dataclass
class DrawResult:
    giveaway: Giveaway
    winners: List[str] = field(default_factory=list)


class GiveawayManager:
    def __init__(self, ledger: UserLedger, rng: Optional[random.Random] = None):
        self.ledger = ledger
        self.rng = rng or random.Random()

    @property
    def store(self):
        return self.ledger.store

    def _next_id(self) -> str:
        ids = [int(k) for k in self.store.giveaways if k.isdigit()]
        return str(max(ids, default=0) + 1)

    def create(self, guild_id, channel_id, host_id, duration: float, winner_count: int,
               currency_amount: int = 0, prize: str = "", now: Optional[float] = None) -> Giveaway:
        now = time.time() if now is None else now
        giveaway = Giveaway(
            giveaway_id=self._next_id(),
            guild_id=str(guild_id),
            channel_id=str(channel_id),
            host_id=str(host_id),
            prize=prize,
            currency_amount=currency_amount,
            winner_count=winner_count,
            ends_at=now + duration,
        )
        self.store.giveaways[giveaway.giveaway_id] = giveaway
        logger.info("Giveaway %s created in guild %s by %s", giveaway.giveaway_id, guild_id, host_id)
        return giveaway

    def get(self, giveaway_id, guild_id=None) -> Optional[Giveaway]:
        giveaway = self.store.giveaways.get(str(giveaway_id))
        if giveaway is None or (guild_id is not None and giveaway.guild_id != str(guild_id)):
            return None
        return giveaway

    def attach_message(self, giveaway_id, message_id) -> None:
        giveaway = self.get(giveaway_id)
        if giveaway is not None:
            giveaway.message_id = str(message_id)

    def enter(self, giveaway_id, user_id) -> str:
        giveaway = self.get(giveaway_id)
        if giveaway is None:
            return NOT_FOUND
        if giveaway.ended:
            return ENDED
        uid = str(user_id)
        if uid in giveaway.entrants:
            return ALREADY_ENTERED
        giveaway.entrants = giveaway.entrants + [uid]
        return ENTERED

    def active_for_guild(self, guild_id) -> List[Giveaway]:
        gid = str(guild_id)
        active = [g for g in self.store.giveaways.values() if g.guild_id == gid and not g.ended]
        return sorted(active, key=lambda g: g.ends_at)

    def due(self, now: Optional[float] = None) -> List[Giveaway]:
        now = time.time() if now is None else now
        return [g for g in self.store.giveaways.values() if not g.ended and g.ends_at <= now]

    def _draw(self, giveaway: Giveaway) -> List[str]:
        entrants = list(giveaway.entrants)
        if len(entrants) <= giveaway.winner_count:
            return entrants
        return self.rng.sample(entrants, giveaway.winner_count)

    def _pay(self, giveaway: Giveaway, winners: List[str], kind: str) -> None:
        if giveaway.currency_amount <= 0:
            return
        for uid in winners:
            self.ledger.get_or_create_account(uid, giveaway.guild_id)
            self.ledger.credit(uid, giveaway.currency_amount)
            log_transaction(kind, uid, giveaway.currency_amount,
                            giveaway_id=giveaway.giveaway_id, guild_id=giveaway.guild_id)

    def conclude(self, giveaway_id) -> Optional[DrawResult]:
        """Draw winners, pay them and mark the giveaway ended.

        Returns None if the giveaway doesn't exist or already ended.
        """
        giveaway = self.get(giveaway_id)
        if giveaway is None or giveaway.ended:
            return None
        winners = self._draw(giveaway)
        self._pay(giveaway, winners, "giveaway")
        giveaway.winners = winners
        giveaway.ended = True
        logger.info("Giveaway %s ended with %s winners", giveaway.giveaway_id, len(winners))
        return DrawResult(giveaway, winners)

    def reroll(self, giveaway_id) -> Optional[DrawResult]:
        """Draw and pay a fresh set of winners for an ended giveaway."""
        giveaway = self.get(giveaway_id)
        if giveaway is None or not giveaway.ended:
            return None
        winners = self._draw(giveaway)
        self._pay(giveaway, winners, "giveaway_reroll")
        giveaway.winners = winners
        return DrawResult(giveaway, winners)

