"""Two-step, time-boxed confirmations keyed by guild.

Each guild is either idle or holds one pending request (initiator plus
deadline). Entering the pending state starts a timer task; leaving it by
confirm, cancel or timeout cancels that task and returns the guild to idle.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger("toadle.confirm")

NONE_PENDING = "none_pending"
NOT_INITIATOR = "not_initiator"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"


@dataclass
class PendingConfirmation:
    guild_id: str
    initiator_id: str
    deadline: float
    task: Optional[asyncio.Task] = None


class ConfirmationBoard:
    def __init__(self, timeout: float = 120.0, on_expire: Optional[Callable[[PendingConfirmation], Awaitable[None]]] = None):
        self.timeout = timeout
        self.on_expire = on_expire
        self._pending: Dict[str, PendingConfirmation] = {}

    def is_pending(self, guild_id) -> bool:
        return str(guild_id) in self._pending

    def get(self, guild_id) -> Optional[PendingConfirmation]:
        return self._pending.get(str(guild_id))

    def initiator(self, guild_id) -> Optional[str]:
        entry = self.get(guild_id)
        return entry.initiator_id if entry else None

    def request(self, guild_id, user_id) -> bool:
        """Open a pending confirmation. False if one is already open.

        Must be called from a running event loop.
        """
        gid = str(guild_id)
        if gid in self._pending:
            return False
        entry = PendingConfirmation(gid, str(user_id), time.time() + self.timeout)
        entry.task = asyncio.get_running_loop().create_task(self._expire(entry))
        self._pending[gid] = entry
        logger.info("Confirmation opened in guild %s by %s (%ss)", gid, user_id, self.timeout)
        return True

    def _close(self, guild_id: str, user_id) -> str:
        entry = self._pending.get(guild_id)
        if entry is None:
            return NONE_PENDING
        if entry.initiator_id != str(user_id):
            return NOT_INITIATOR
        del self._pending[guild_id]
        if entry.task is not None and entry.task is not asyncio.current_task():
            entry.task.cancel()
        return ""

    def confirm(self, guild_id, user_id) -> str:
        outcome = self._close(str(guild_id), user_id)
        return outcome or CONFIRMED

    def cancel(self, guild_id, user_id) -> str:
        outcome = self._close(str(guild_id), user_id)
        return outcome or CANCELLED

    async def _expire(self, entry: PendingConfirmation) -> None:
        await asyncio.sleep(self.timeout)
        if self._pending.get(entry.guild_id) is not entry:
            return
        del self._pending[entry.guild_id]
        logger.info("Confirmation in guild %s expired", entry.guild_id)
        if self.on_expire is not None:
            try:
                await self.on_expire(entry)
            except Exception:
                logger.exception("Expiry callback failed for guild %s", entry.guild_id)

    def cancel_all(self) -> None:
        for entry in self._pending.values():
            if entry.task is not None:
                entry.task.cancel()
        self._pending.clear()
