"""Persistence backends for the entity store.

Both backends speak the same two-call contract, `load()` and `save(store)`.
Saves take a snapshot on the event loop and do the slow part elsewhere
(a worker thread for files, the asyncpg pool for Postgres).
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, Optional

from toadle_bot.utils import db as db_utils
from toadle_bot.utils.store import EntityStore, COLLECTIONS

logger = logging.getLogger("toadle.repository")


class Repository:
    async def load(self) -> EntityStore:
        raise NotImplementedError

    async def save(self, store: EntityStore) -> None:
        raise NotImplementedError

    async def backup(self) -> Optional[Path]:
        """Copy the persisted state aside. Backends without files return None."""
        return None


class JsonFileRepository(Repository):
    """One JSON file per collection under `data_dir`."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.backup_dir = self.data_dir / "backups"

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def _read_all(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in COLLECTIONS:
            path = self.path_for(name)
            if not path.exists():
                continue
            try:
                data[name] = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.exception("Could not read %s; starting that collection empty", path)
        return data

    def _write_all(self, snapshot: Dict[str, Any]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            path = self.path_for(name)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(snapshot.get(name, {}), indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)

    def _copy_backup(self) -> Path:
        target = self.backup_dir / time.strftime("%Y%m%d-%H%M%S")
        target.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            path = self.path_for(name)
            if path.exists():
                shutil.copy2(path, target / path.name)
        return target

    async def load(self) -> EntityStore:
        data = await asyncio.to_thread(self._read_all)
        store = EntityStore.from_snapshot(data)
        logger.info("Loaded store from %s: %s", self.data_dir, store.memory_stats())
        return store

    async def save(self, store: EntityStore) -> None:
        snapshot = store.snapshot()
        await asyncio.to_thread(self._write_all, snapshot)
        logger.debug("Saved store to %s", self.data_dir)

    async def backup(self) -> Optional[Path]:
        target = await asyncio.to_thread(self._copy_backup)
        logger.info("Backup written to %s", target)
        return target


class PostgresRepository(Repository):
    """Each collection snapshot is one JSONB row in `toadle_snapshots`."""

    def __init__(self, pool):
        self.pool = pool

    async def load(self) -> EntityStore:
        await db_utils.ensure_schema(self.pool)
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT name, payload FROM toadle_snapshots")
        data: Dict[str, Any] = {}
        for row in rows:
            payload = row["payload"]
            data[row["name"]] = json.loads(payload) if isinstance(payload, str) else payload
        store = EntityStore.from_snapshot(data)
        logger.info("Loaded store from Postgres: %s", store.memory_stats())
        return store

    async def save(self, store: EntityStore) -> None:
        snapshot = store.snapshot()
        async with db_utils.transaction(self.pool) as conn:
            for name in COLLECTIONS:
                await conn.execute(
                    "INSERT INTO toadle_snapshots (name, payload, updated_at) VALUES ($1, $2::jsonb, now()) "
                    "ON CONFLICT (name) DO UPDATE SET payload = EXCLUDED.payload, updated_at = now()",
                    name,
                    json.dumps(snapshot.get(name, {}), ensure_ascii=False),
                )


async def make_repository(settings) -> Repository:
    """Pick the Postgres backend when DATABASE_URL is set, else JSON files."""
    if settings.DATABASE_URL:
        pool = await db_utils.init_pool(
            settings.DATABASE_URL, min_size=settings.DB_POOL_MIN, max_size=settings.DB_POOL_MAX
        )
        return PostgresRepository(pool)
    return JsonFileRepository(settings.DATA_DIR)
