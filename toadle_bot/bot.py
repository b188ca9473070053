"""Bot factory for Toadle.

Creates the `ToadleBot` instance, loads the entity store through the
configured repository and loads every cog extension under `toadle_bot/cogs`.
Commands receive a `ToadleContext` so they can reach the economy core.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import discord
from discord.ext import commands, tasks

from .config import Settings
from toadle_bot.utils import db as db_utils
from toadle_bot.utils import logger as toadle_logger
from toadle_bot.utils.checks import ToadleContext
from toadle_bot.utils.core import EconomyCore
from toadle_bot.utils.ledger import load_catalog_seed
from toadle_bot.utils.repository import make_repository

logger = logging.getLogger("toadle.bot")

COGS_DIR = Path(__file__).resolve().parent / "cogs"


def discover_extensions(cogs_dir: Path = COGS_DIR) -> List[str]:
    """Dotted module names for every cog module, e.g. `toadle_bot.cogs.economy.bank`."""
    names = []
    for path in sorted(cogs_dir.rglob("*.py")):
        if path.name.startswith("_"):
            continue
        parts = path.relative_to(cogs_dir).with_suffix("").parts
        names.append("toadle_bot.cogs." + ".".join(parts))
    return names


class ToadleBot(commands.Bot):
    def __init__(self, settings: Settings, *args, core: Optional[EconomyCore] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings = settings
        self.core = core

    async def get_context(self, origin, /, *, cls=ToadleContext):
        return await super().get_context(origin, cls=cls)

    # ----- lifecycle
    async def setup_hook(self) -> None:
        if self.core is None:
            repository = await make_repository(self.settings)
            store = await repository.load()
            self.core = EconomyCore.from_settings(self.settings, store, repository)
        added = self.core.ledger.seed_catalog(load_catalog_seed())
        if added:
            logger.info("Seeded %s catalog items", added)

        for name in discover_extensions():
            try:
                await self.load_extension(name)
                logger.info("Loaded extension: %s", name)
            except commands.ExtensionError:
                logger.exception("Failed to load extension %s", name)

        self.autosave.change_interval(seconds=self.settings.AUTOSAVE_INTERVAL_SECONDS)
        self.autosave.start()
        if self.settings.LOG_PRUNE_ENABLED:
            self.prune_logs.change_interval(hours=self.settings.LOG_PRUNE_INTERVAL_HOURS)
            self.prune_logs.start()
            logger.info("Started automated log retention task")

    @tasks.loop(minutes=5)
    async def autosave(self) -> None:
        try:
            await self.core.save()
        except Exception:
            logger.exception("Autosave failed")

    @autosave.before_loop
    async def _before_autosave(self) -> None:
        # the first iteration would otherwise fire immediately on startup
        await asyncio.sleep(self.settings.AUTOSAVE_INTERVAL_SECONDS)

    @tasks.loop(hours=24)
    async def prune_logs(self) -> None:
        days = self.settings.LOG_RETENTION_DAYS
        try:
            kept = await asyncio.to_thread(toadle_logger.prune_jsonl_archive, days)
            logger.info("Log retention: kept %s entries (retention=%sd)", kept, days)
        except OSError:
            logger.exception("Log retention task failed")

    async def close(self) -> None:
        self.autosave.cancel()
        self.prune_logs.cancel()
        try:
            if self.core is not None:
                self.core.nukes.cancel_all()
                gambling = self.get_cog("Gambling")
                if gambling is not None:
                    gambling.refund_open_games()
                await self.core.save()
                if self.core.repository is not None:
                    await self.core.repository.backup()
                logger.info("Store saved on shutdown")
        except Exception:
            logger.exception("Failed to save store on shutdown")
        finally:
            await super().close()
            toadle_logger.stop_background_writer()
            await db_utils.close_pool()


def create_bot(settings: Optional[Settings] = None, core: Optional[EconomyCore] = None) -> ToadleBot:
    """Create and return a configured ToadleBot instance."""
    if settings is None:
        settings = Settings()

    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True

    # per-guild prefix lookup from guild config
    def _prefix_callable(bot_instance, message):
        default = settings.DEFAULT_PREFIX
        if bot_instance.core is None or message.guild is None:
            return default
        return bot_instance.core.config.prefix(message.guild.id)

    return ToadleBot(settings, command_prefix=_prefix_callable, intents=intents, help_command=None,
                     case_insensitive=True, core=core)
