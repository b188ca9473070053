"""Invite-use tracking.

Keeps the last known use count of every guild invite. When a member joins,
the fresh invite list is compared against the cache to find which codes were
used; uses of a registered referral invite are logged so the joiner can be
reminded to claim it. Referral bonuses are still only paid by `claiminvite`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from toadle_bot.utils.logger import enqueue_log
from toadle_bot.utils.referrals import ReferralLedger

logger = logging.getLogger("toadle.invites")


@dataclass
class InviteUse:
    code: str
    increase: int
    inviter_id: Optional[str] = None

    @property
    def registered(self) -> bool:
        return self.inviter_id is not None


class InviteCache:
    def __init__(self):
        self._uses: Dict[str, Dict[str, int]] = {}

    def snapshot(self, guild_id, invites: Iterable) -> None:
        """Replace the cached counts for a guild with `invites` (objects with `code` and `uses`)."""
        self._uses[str(guild_id)] = {inv.code: inv.uses or 0 for inv in invites}

    def uses(self, guild_id, code: str) -> Optional[int]:
        return self._uses.get(str(guild_id), {}).get(code)

    def forget(self, guild_id) -> None:
        self._uses.pop(str(guild_id), None)

    def diff(self, guild_id, invites: Iterable) -> Dict[str, int]:
        """Codes whose use count rose since the last snapshot, then re-snapshot.

        Codes the cache has never seen are not reported: their earlier uses
        can't be told apart from this join.
        """
        invites = list(invites)
        cached = self._uses.get(str(guild_id), {})
        increased = {}
        for inv in invites:
            old = cached.get(inv.code)
            if old is not None and (inv.uses or 0) > old:
                increased[inv.code] = (inv.uses or 0) - old
        self.snapshot(guild_id, invites)
        return increased


def record_join(cache: InviteCache, referrals: ReferralLedger, guild_id, member_id, invites: Iterable) -> List[InviteUse]:
    """Work out which invites a join used and log uses of registered ones."""
    found = []
    for code, increase in cache.diff(guild_id, invites).items():
        use = InviteUse(code, increase, referrals.get_invite_owner(code))
        found.append(use)
        if use.registered:
            logger.info("Registered invite %s was used in guild %s, awaiting manual claim", code, guild_id)
            enqueue_log({
                "type": "referral",
                "action": "usage_detected",
                "code": code,
                "inviter_id": use.inviter_id,
                "member_id": str(member_id),
                "guild_id": str(guild_id),
                "increase": increase,
            })
    return found
