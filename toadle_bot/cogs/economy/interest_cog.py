from __future__ import annotations

import datetime
import logging

import discord
from discord.ext import commands, tasks

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled
from toadle_bot.utils.interest import apply_daily_interest

logger = logging.getLogger("toadle.interest")

# daily at midnight UTC
INTEREST_TIME = datetime.time(hour=0, tzinfo=datetime.timezone.utc)


class InterestCog(commands.Cog):
    """Daily bank interest sweep plus an admin command to run it on demand."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def cog_load(self) -> None:
        self.daily_interest.start()

    async def cog_unload(self) -> None:
        self.daily_interest.cancel()

    async def _announce(self, guild: discord.Guild, total: int, accounts: int, rate: float) -> None:
        channels = self.bot.core.config.get(guild.id).channels
        channel_id = channels.interest_notification or channels.logs
        if not channel_id:
            return
        channel = guild.get_channel(int(channel_id))
        if channel is None:
            return
        try:
            await channel.send(embed=helpers.make_embed(
                "🏦 Daily Interest",
                f"Paid {helpers.format_coins(total)} at {rate * 100:g}% to {accounts} accounts.",
                colour=helpers.COLOUR_OK,
            ))
        except discord.HTTPException:
            logger.warning("Could not post interest notice in guild %s", guild.id)

    @tasks.loop(time=INTEREST_TIME)
    async def daily_interest(self):
        core = self.bot.core
        guilds = {str(g.id): g for g in self.bot.guilds}
        results = apply_daily_interest(core, guilds)
        for gid, result in results.items():
            if result.accounts_touched:
                rate = core.config.get(gid).economy.bank_interest_rate
                await self._announce(guilds[gid], result.total_interest, result.accounts_touched, rate)
        try:
            await core.save()
        except Exception:
            logger.exception("Save after interest sweep failed")

    @daily_interest.before_loop
    async def _before_interest(self):
        await self.bot.wait_until_ready()

    @commands.command(name="applyinterest", usage="applyinterest [rate%]")
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    @feature_enabled("economy_enabled")
    async def apply_interest_cmd(self, ctx: ToadleContext, rate: str = None):
        """Apply bank interest to this server now."""
        if rate is not None:
            pct = helpers.parse_float(rate.rstrip("%"))
            if pct is None:
                raise ctx.usage_error()
            if not 0 <= pct <= 100:
                raise CommandFailed("Rate must be between 0 and 100 percent.")
            value = pct / 100
        else:
            value = ctx.core.config.get(ctx.guild_id).economy.bank_interest_rate
        result = ctx.core.bank.apply_interest(value, guild_id=ctx.guild_id)
        await ctx.send(embed=helpers.make_embed(
            "Interest Applied",
            f"Credited {result.accounts_touched} accounts with {helpers.format_coins(result.total_interest)} at {value * 100:g}%.",
            colour=helpers.COLOUR_OK,
        ))


async def setup(bot: commands.Bot):
    await bot.add_cog(InterestCog(bot))
