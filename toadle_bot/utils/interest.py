"""Daily bank interest sweep across guilds."""
from __future__ import annotations

import logging
from typing import Dict, Iterable

from toadle_bot.utils.bank import InterestResult
from toadle_bot.utils.logger import enqueue_log

logger = logging.getLogger("toadle.interest")


def apply_daily_interest(core, guild_ids: Iterable) -> Dict[str, InterestResult]:
    """Apply each guild's configured rate to the accounts homed there."""
    results: Dict[str, InterestResult] = {}
    for gid in guild_ids:
        gid = str(gid)
        if not core.config.is_feature_enabled(gid, "economy_enabled"):
            continue
        rate = core.config.get(gid).economy.bank_interest_rate
        result = core.bank.apply_interest(rate, guild_id=gid)
        results[gid] = result
        if result.accounts_touched:
            enqueue_log({
                "type": "interest",
                "guild_id": gid,
                "rate": rate,
                "total_interest": result.total_interest,
                "accounts": result.accounts_touched,
            })
    return results
