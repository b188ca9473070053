"""File-backed warnings and moderation log.

`warnings.json` maps guild -> user -> list of warnings; `moderation_logs.json`
maps guild -> list of log entries, newest last, capped per guild. Reads and
writes run in a worker thread under a lock so concurrent commands don't
clobber each other's updates.
"""
from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from toadle_bot.utils.models import WarningRecord, ModLogEntry

logger = logging.getLogger("toadle.moderation")

ACTIONS = ("WARNING", "WARNING_REMOVED", "BAN", "AUTO_BAN", "KICK", "MUTE", "UNMUTE", "CLEAR")
CSV_HEADERS = [
    "Log ID",
    "Timestamp",
    "Action",
    "Target ID",
    "Target Name",
    "Moderator ID",
    "Moderator Name",
    "Reason",
    "Warning ID",
]
DAY = 24 * 60 * 60


def _iso(ts: float) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(ts))


class ModerationStore:
    def __init__(self, data_dir: Path, max_logs_per_guild: int = 1000):
        self.data_dir = Path(data_dir)
        self.warnings_file = self.data_dir / "warnings.json"
        self.logs_file = self.data_dir / "moderation_logs.json"
        self.max_logs = max_logs_per_guild
        self._lock = asyncio.Lock()

    # ----- raw file access
    def _load(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.exception("Corrupt moderation file %s; treating as empty", path)
            return {}

    def _save(self, path: Path, data: Dict[str, Any]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    async def _read(self, path: Path) -> Dict[str, Any]:
        return await asyncio.to_thread(self._load, path)

    async def _write(self, path: Path, data: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._save, path, data)

    # ----- warnings
    async def add_warning(self, guild_id, user_id, moderator_id, moderator_name: str, reason: str) -> Tuple[WarningRecord, int]:
        """Store a warning. Returns it with the user's new warning count."""
        warning = WarningRecord(
            guild_id=str(guild_id),
            user_id=str(user_id),
            moderator_id=str(moderator_id),
            moderator_name=moderator_name,
            reason=reason or "No reason provided",
        )
        async with self._lock:
            data = await self._read(self.warnings_file)
            user_warnings = data.setdefault(str(guild_id), {}).setdefault(str(user_id), [])
            user_warnings.append(warning.model_dump(mode="json"))
            await self._write(self.warnings_file, data)
        return warning, len(user_warnings)

    async def warnings_for(self, guild_id, user_id) -> List[WarningRecord]:
        data = await self._read(self.warnings_file)
        raw = data.get(str(guild_id), {}).get(str(user_id), [])
        return [WarningRecord.model_validate(w) for w in raw]

    async def remove_warning(self, guild_id, user_id, warning_id: str) -> Optional[WarningRecord]:
        async with self._lock:
            data = await self._read(self.warnings_file)
            guild = data.get(str(guild_id), {})
            user_warnings = guild.get(str(user_id), [])
            for i, raw in enumerate(user_warnings):
                if raw.get("warning_id") == warning_id:
                    removed = WarningRecord.model_validate(user_warnings.pop(i))
                    if not user_warnings:
                        del guild[str(user_id)]
                    await self._write(self.warnings_file, data)
                    return removed
        return None

    async def clean_warnings(self, guild_id, days: int = 90) -> Tuple[int, int]:
        """Drop warnings older than `days`. Returns (removed, users affected)."""
        cutoff = time.time() - days * DAY
        removed = affected = 0
        async with self._lock:
            data = await self._read(self.warnings_file)
            guild = data.get(str(guild_id))
            if not guild:
                return 0, 0
            for uid in list(guild):
                kept = [w for w in guild[uid] if float(w.get("timestamp", 0)) >= cutoff]
                dropped = len(guild[uid]) - len(kept)
                if dropped:
                    removed += dropped
                    affected += 1
                if kept:
                    guild[uid] = kept
                else:
                    del guild[uid]
            if removed:
                await self._write(self.warnings_file, data)
        return removed, affected

    async def warning_totals(self, guild_id) -> Tuple[int, int]:
        """(all-time warnings on file, users with warnings) for a guild."""
        data = await self._read(self.warnings_file)
        guild = data.get(str(guild_id), {})
        return sum(len(v) for v in guild.values()), len(guild)

    # ----- log
    async def log_action(
        self,
        guild_id,
        action: str,
        target_id,
        target_name: str,
        moderator_id,
        moderator_name: str,
        reason: str = "No reason provided",
        warning_id: Optional[str] = None,
    ) -> ModLogEntry:
        if action not in ACTIONS:
            raise ValueError(f"unknown moderation action {action!r}")
        entry = ModLogEntry(
            guild_id=str(guild_id),
            action=action,
            target_id=str(target_id),
            target_name=target_name,
            moderator_id=str(moderator_id),
            moderator_name=moderator_name,
            reason=reason or "No reason provided",
            warning_id=warning_id,
        )
        async with self._lock:
            data = await self._read(self.logs_file)
            entries = data.setdefault(str(guild_id), [])
            entries.append(entry.model_dump(mode="json"))
            if len(entries) > self.max_logs:
                del entries[: len(entries) - self.max_logs]
            await self._write(self.logs_file, data)
        return entry

    async def query_logs(
        self,
        guild_id,
        target_id=None,
        action: Optional[str] = None,
        limit: Optional[int] = 10,
        since: Optional[float] = None,
    ) -> List[ModLogEntry]:
        """Matching entries, newest first."""
        data = await self._read(self.logs_file)
        entries = [ModLogEntry.model_validate(e) for e in data.get(str(guild_id), [])]
        if target_id is not None:
            entries = [e for e in entries if e.target_id == str(target_id)]
        if action is not None:
            entries = [e for e in entries if e.action == action.upper()]
        if since is not None:
            entries = [e for e in entries if e.timestamp >= since]
        # stored oldest first; reversing first keeps ties newest first
        entries.reverse()
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit] if limit is not None else entries

    async def log_stats(self, guild_id, days: int = 30) -> Dict[str, Any]:
        entries = await self.query_logs(guild_id, limit=None, since=time.time() - days * DAY)
        total = len(entries)
        per_day = total / days if days else 0.0
        if per_day > 5:
            level = "High"
        elif per_day > 2:
            level = "Medium"
        else:
            level = "Low"
        return {
            "total": total,
            "warnings": sum(1 for e in entries if e.action == "WARNING"),
            "bans": sum(1 for e in entries if e.action in ("BAN", "AUTO_BAN")),
            "kicks": sum(1 for e in entries if e.action == "KICK"),
            "mutes": sum(1 for e in entries if e.action == "MUTE"),
            "unique_users": len({e.target_id for e in entries}),
            "per_day": per_day,
            "activity": level,
        }

    async def export_csv(self, guild_id, target_id=None, action: Optional[str] = None, days: Optional[int] = None) -> str:
        since = time.time() - days * DAY if days else None
        entries = await self.query_logs(guild_id, target_id=target_id, action=action, limit=None, since=since)
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(CSV_HEADERS)
        for e in entries:
            writer.writerow([
                e.log_id,
                _iso(e.timestamp),
                e.action,
                e.target_id,
                e.target_name,
                e.moderator_id,
                e.moderator_name,
                e.reason,
                e.warning_id or "",
            ])
        return buf.getvalue()
