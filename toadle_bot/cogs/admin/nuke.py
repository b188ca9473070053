"""Economy reset for a server, guarded by a two-step confirmation.

`nuke` opens a pending confirmation, `launch` (same user, before the timeout)
wipes every account homed in the server plus its listings and server items,
and `abort` cancels. An unconfirmed nuke expires on its own.
"""
from __future__ import annotations

import logging
from typing import Dict

import discord
from discord.ext import commands

from toadle_bot.utils import confirm, helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.confirm import PendingConfirmation
from toadle_bot.utils.logger import enqueue_log

logger = logging.getLogger("toadle.nuke")

NOT_INITIATOR_REPLY = "Only the user who initiated the nuke can {verb} it."


class Nuke(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        # guild id -> channel the nuke was requested in, for the expiry notice
        self.channels: Dict[str, discord.abc.Messageable] = {}
        bot.core.nukes.on_expire = self._expired

    def cog_unload(self):
        self.bot.core.nukes.on_expire = None

    async def _expired(self, entry: PendingConfirmation) -> None:
        channel = self.channels.pop(entry.guild_id, None)
        if channel is None:
            return
        try:
            await channel.send("⏳ Economy nuke timed out and was cancelled.")
        except discord.HTTPException:
            logger.warning("Could not announce nuke expiry in guild %s", entry.guild_id)

    @commands.command(name="nuke")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def nuke(self, ctx: ToadleContext):
        """Start an economy reset for this server."""
        guild_id = ctx.guild_id
        board = ctx.core.nukes
        if not board.request(guild_id, ctx.author.id):
            raise CommandFailed("A nuke is already pending for this server. Use `launch` or `abort`.")
        self.channels[guild_id] = ctx.channel
        await ctx.send(embed=helpers.make_embed(
            "☢️ Economy Nuke Armed",
            f"This will reset **every** balance, bank, inventory and listing in this server.\n"
            f"Type `{ctx.prefix}launch` within {int(board.timeout)} seconds to confirm, "
            f"or `{ctx.prefix}abort` to cancel.",
            colour=helpers.COLOUR_WARN,
        ))

    @commands.command(name="launch")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def launch(self, ctx: ToadleContext):
        """Confirm a pending economy nuke."""
        guild_id = ctx.guild_id
        outcome = ctx.core.nukes.confirm(guild_id, ctx.author.id)
        if outcome == confirm.NONE_PENDING:
            raise CommandFailed("No economy nuke is pending.")
        if outcome == confirm.NOT_INITIATOR:
            raise CommandFailed(NOT_INITIATOR_REPLY.format(verb="launch"))
        self.channels.pop(guild_id, None)

        counts = ctx.core.store.clear_guild_economy(guild_id)
        gambling = self.bot.get_cog("Gambling")
        if gambling is not None:
            # stakes are gone with the wiped balances
            counts["hands"] = gambling.discard_guild_games(guild_id)
        await ctx.core.save()
        enqueue_log({"type": "nuke", "guild_id": guild_id, "user_id": str(ctx.author.id), **counts})
        await ctx.send(embed=helpers.make_embed(
            "💥 Economy Nuked",
            f"Reset {counts['accounts']} accounts, removed {counts['listings']} listings, "
            f"{counts['items']} store items and {counts['giveaways']} giveaways.",
            colour=helpers.COLOUR_BAD,
        ))

    @commands.command(name="abort")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def abort(self, ctx: ToadleContext):
        """Cancel a pending economy nuke."""
        guild_id = ctx.guild_id
        outcome = ctx.core.nukes.cancel(guild_id, ctx.author.id)
        if outcome == confirm.NONE_PENDING:
            raise CommandFailed("No economy nuke is pending.")
        if outcome == confirm.NOT_INITIATOR:
            raise CommandFailed(NOT_INITIATOR_REPLY.format(verb="abort"))
        self.channels.pop(guild_id, None)
        await ctx.send("✅ Economy nuke aborted.")


async def setup(bot: commands.Bot):
    await bot.add_cog(Nuke(bot))
