"""International Day reminders.

Servers pick a channel with `setintdayreminder`; once a day the cog posts
the observances falling on that date to every configured channel.
"""
from __future__ import annotations

import datetime
import logging

import discord
from discord.ext import commands, tasks

from toadle_bot.utils import helpers, intdays
from toadle_bot.utils.checks import ToadleContext

logger = logging.getLogger("toadle.intdays")

REMINDER_TIME = datetime.time(hour=9, tzinfo=datetime.timezone.utc)
MESSAGE_LIMIT = 2000


def _today() -> datetime.date:
    return datetime.datetime.now(datetime.timezone.utc).date()


def format_listing(days, today: datetime.date, limit: int = 10) -> str:
    lines = ["🌐 **International Days**", ""]
    current = intdays.todays(days, today)
    if current:
        lines.append("**🎉 Today:**")
        lines.extend(f"• {name}" for name in current)
        lines.append("")
    lines.append("**📅 Upcoming:**")
    ahead = intdays.upcoming(days, today, limit)
    if ahead:
        lines.extend(f"• {day:%m/%d} - {name}" for day, name in ahead)
    else:
        lines.append("No upcoming days found in the next year.")
    return "\n".join(lines)


class InternationalDays(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.days = intdays.load_days()

    async def cog_load(self) -> None:
        self.daily_reminder.start()

    async def cog_unload(self) -> None:
        self.daily_reminder.cancel()

    async def post_reminders(self, today: datetime.date) -> int:
        """Send today's observances to every configured channel. Returns channels posted to."""
        names = intdays.todays(self.days, today)
        if not names:
            return 0
        embed = helpers.make_embed("🌐 Today is...", "\n".join(f"• {n}" for n in names), colour=helpers.COLOUR_INFO)
        posted = 0
        for guild in self.bot.guilds:
            channel_id = self.bot.core.config.get(guild.id).channels.intday_reminder
            if not channel_id:
                continue
            channel = guild.get_channel(int(channel_id))
            if channel is None:
                continue
            try:
                await channel.send(embed=embed)
                posted += 1
            except discord.HTTPException:
                logger.warning("Could not post international day reminder in guild %s", guild.id)
        return posted

    @tasks.loop(time=REMINDER_TIME)
    async def daily_reminder(self):
        posted = await self.post_reminders(_today())
        if posted:
            logger.info("Posted international day reminders to %s channels", posted)

    @daily_reminder.before_loop
    async def _before_reminder(self):
        await self.bot.wait_until_ready()

    @commands.command(name="setintdayreminder", usage="setintdayreminder [#channel|id]")
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    async def setintdayreminder(self, ctx: ToadleContext, target: str = None):
        """Set the channel for daily International Day reminders."""
        channel_id = helpers.parse_channel(target)
        channel = ctx.guild.get_channel(channel_id) if channel_id else None
        if channel is None:
            channel = ctx.channel
        ctx.core.config.update(ctx.guild_id, "channels.intday_reminder", str(channel.id))
        await ctx.send(f"✅ International Day reminder channel set to {channel.mention}")

    @commands.command(name="listintdays", aliases=["intdays"])
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def listintdays(self, ctx: ToadleContext):
        """List today's and upcoming International Days."""
        text = format_listing(self.days, _today())
        for start in range(0, len(text), MESSAGE_LIMIT):
            await ctx.send(text[start:start + MESSAGE_LIMIT])


async def setup(bot: commands.Bot):
    await bot.add_cog(InternationalDays(bot))
