"""Moderation cog.

Warnings and a moderation log kept per server in `ModerationStore`, plus bulk
message deletion. Every significant action is recorded in the log, posted to
the configured logs channel and enqueued to the async logger.
"""
from __future__ import annotations

import io
import logging
import time
from typing import Optional, Tuple

import discord
from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.logger import enqueue_log
from toadle_bot.utils.moderation import ACTIONS

logger = logging.getLogger("toadle.moderation")

ACTION_EMOJI = {
    "WARNING": "⚠️",
    "WARNING_REMOVED": "✅",
    "BAN": "🔨",
    "AUTO_BAN": "🤖",
    "KICK": "👢",
    "MUTE": "🔇",
    "UNMUTE": "🔊",
    "CLEAR": "🧹",
}
CLEAR_LIMIT = 100
# how far back a user-filtered clear looks
CLEAR_SCAN = 100


def _when(ts: float) -> str:
    return f"<t:{int(ts)}:R>"


def _log_filters(ctx: ToadleContext, filters) -> Tuple[Optional[int], Optional[str], Optional[int]]:
    """Split `[@user] [action] [number]` filter words."""
    target_id = action = number = None
    for arg in filters:
        mention = helpers.parse_mention(arg) if arg.startswith("<@") else None
        value = helpers.parse_int(arg)
        if mention is not None:
            target_id = mention
        elif arg.upper() in ACTIONS:
            action = arg.upper()
        elif value is not None:
            number = value
        else:
            raise ctx.usage_error()
    return target_id, action, number


class Moderation(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _post_to_logs(self, ctx: ToadleContext, embed: discord.Embed) -> None:
        channel_id = ctx.core.config.get(ctx.guild_id).channels.logs
        if not channel_id:
            return
        channel = ctx.guild.get_channel(int(channel_id))
        if channel is None:
            return
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            logger.warning("Could not post to logs channel %s in guild %s", channel_id, ctx.guild_id)

    @commands.command(name="warn", usage="warn @user [reason]")
    @commands.guild_only()
    @commands.has_permissions(kick_members=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def warn(self, ctx: ToadleContext, target: discord.User, *, reason: str = "No reason provided"):
        """Warn a member and record it in the moderation log."""
        if target.id == ctx.author.id:
            raise CommandFailed("You cannot warn yourself.")
        if target.bot:
            raise CommandFailed("You cannot warn bots.")

        guild_id = ctx.guild_id
        store = ctx.core.moderation
        warning, count = await store.add_warning(guild_id, target.id, ctx.author.id, str(ctx.author), reason)
        await store.log_action(guild_id, "WARNING", target.id, str(target), ctx.author.id, str(ctx.author),
                               reason, warning.warning_id)
        enqueue_log({"type": "moderation", "action": "warn", "guild_id": guild_id, "target_id": str(target.id),
                     "moderator_id": str(ctx.author.id), "warning_id": warning.warning_id, "reason": reason})

        embed = helpers.make_embed(
            "⚠️ User Warned",
            f"{target.mention} has been warned.\n**Reason:** {reason}",
            colour=helpers.COLOUR_WARN,
        )
        embed.add_field(name="Warning ID", value=f"`{warning.warning_id}`")
        embed.add_field(name="Total warnings", value=str(count))
        embed.set_footer(text=f"Moderator: {ctx.author}")
        await ctx.send(embed=embed)
        await self._post_to_logs(ctx, embed)

        try:
            await target.send(f"⚠️ You were warned in **{ctx.guild.name}**: {reason} (warning {count})")
        except discord.HTTPException:
            logger.debug("Could not DM warned user %s", target.id)

    @commands.command(name="removewarn", aliases=["unwarn", "delwarn"], usage="removewarn @user <warning id>")
    @commands.guild_only()
    @commands.has_permissions(kick_members=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def removewarn(self, ctx: ToadleContext, target: discord.User, warning_id: str):
        guild_id = ctx.guild_id
        removed = await ctx.core.moderation.remove_warning(guild_id, target.id, warning_id)
        if removed is None:
            raise CommandFailed(f"No warning `{warning_id}` found for {target.mention}.")
        await ctx.core.moderation.log_action(guild_id, "WARNING_REMOVED", target.id, str(target), ctx.author.id,
                                             str(ctx.author), f"Removed warning: {removed.reason}", removed.warning_id)
        embed = helpers.make_embed(
            "✅ Warning Removed",
            f"Removed warning `{removed.warning_id}` from {target.mention}.\n**Was:** {removed.reason}",
            colour=helpers.COLOUR_OK,
        )
        await ctx.send(embed=embed)
        await self._post_to_logs(ctx, embed)

    @commands.command(name="warnings", aliases=["warns"], usage="warnings [@user]")
    @commands.guild_only()
    @commands.has_permissions(kick_members=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def warnings(self, ctx: ToadleContext, user: Optional[discord.User] = None):
        target = user or ctx.author
        found = await ctx.core.moderation.warnings_for(ctx.guild_id, target.id)
        if not found:
            await ctx.send(f"✅ {target.mention} has no warnings.")
            return
        lines = [
            f"`{w.warning_id}` {_when(w.timestamp)} by {w.moderator_name or w.moderator_id}: {w.reason}"
            for w in found[-10:]
        ]
        embed = helpers.make_embed(f"⚠️ Warnings for {target}", "\n".join(lines), colour=helpers.COLOUR_WARN)
        embed.set_footer(text=f"{len(found)} total" + (", showing latest 10" if len(found) > 10 else ""))
        await ctx.send(embed=embed)

    @commands.command(name="modlogs", aliases=["modlog"], usage="modlogs [@user] [action] [limit]")
    @commands.guild_only()
    @commands.has_permissions(kick_members=True)
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def modlogs(self, ctx: ToadleContext, *filters: str):
        target_id, action, limit = _log_filters(ctx, filters)
        if limit is None:
            limit = 10
        elif not 1 <= limit <= 25:
            raise CommandFailed("Limit must be between 1 and 25.")

        entries = await ctx.core.moderation.query_logs(ctx.guild_id, target_id=target_id, action=action, limit=limit)
        if not entries:
            await ctx.send("📋 No moderation logs match that filter.")
            return
        lines = [
            f"{ACTION_EMOJI.get(e.action, '•')} **{e.action}** <@{e.target_id}> by {e.moderator_name or e.moderator_id} "
            f"{_when(e.timestamp)}: {e.reason}"
            for e in entries
        ]
        embed = helpers.make_embed("📋 Moderation Logs", "\n".join(lines), colour=helpers.COLOUR_INFO)
        embed.set_footer(text=f"Showing {len(entries)} entries")
        await ctx.send(embed=embed)

    @commands.command(name="modstats", usage="modstats [days]")
    @commands.guild_only()
    @commands.has_permissions(kick_members=True)
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def modstats(self, ctx: ToadleContext, days: int = 30):
        if not 1 <= days <= 365:
            raise CommandFailed("Days must be between 1 and 365.")
        store = ctx.core.moderation
        stats = await store.log_stats(ctx.guild_id, days)
        total_warnings, warned_users = await store.warning_totals(ctx.guild_id)
        embed = helpers.make_embed(f"📊 Moderation Stats (last {days} days)", "", colour=helpers.COLOUR_INFO)
        embed.add_field(name="Actions", value=str(stats["total"]))
        embed.add_field(name="Warnings", value=str(stats["warnings"]))
        embed.add_field(name="Bans", value=str(stats["bans"]))
        embed.add_field(name="Kicks", value=str(stats["kicks"]))
        embed.add_field(name="Mutes", value=str(stats["mutes"]))
        embed.add_field(name="Users actioned", value=str(stats["unique_users"]))
        embed.add_field(name="Activity", value=f"{stats['activity']} ({stats['per_day']:.1f}/day)")
        embed.add_field(name="Warnings on file", value=f"{total_warnings} across {warned_users} users")
        await ctx.send(embed=embed)

    @commands.command(name="exportlogs", usage="exportlogs [@user] [action] [days]")
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    @commands.cooldown(1, 30, commands.BucketType.user)
    async def exportlogs(self, ctx: ToadleContext, *filters: str):
        target_id, action, days = _log_filters(ctx, filters)
        if days is not None and days <= 0:
            raise ctx.usage_error()
        text = await ctx.core.moderation.export_csv(ctx.guild_id, target_id=target_id, action=action, days=days)
        rows = text.count("\n") - 1
        if rows <= 0:
            raise CommandFailed("No moderation logs to export.")
        filename = f"modlogs-{ctx.guild_id}-{time.strftime('%Y%m%d', time.gmtime())}.csv"
        file = discord.File(io.BytesIO(text.encode("utf-8")), filename=filename)
        await ctx.send(f"📄 Exported {rows} log entries.", file=file)

    @commands.command(name="cleanwarnings", usage="cleanwarnings [days]")
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    @commands.cooldown(1, 60, commands.BucketType.user)
    async def cleanwarnings(self, ctx: ToadleContext, days: int = 90):
        """Delete warnings older than the given number of days (default 90)."""
        if not 1 <= days <= 365:
            raise CommandFailed("Days must be between 1 and 365.")
        removed, affected = await ctx.core.moderation.clean_warnings(ctx.guild_id, days)
        enqueue_log({"type": "moderation", "action": "clean_warnings", "guild_id": ctx.guild_id,
                     "moderator_id": str(ctx.author.id), "removed": removed, "users": affected, "days": days})
        if not removed:
            await ctx.send(f"✅ No warnings older than {days} days.")
            return
        await ctx.send(f"🧹 Removed {removed} warnings older than {days} days from {affected} users.")

    @commands.command(name="clear", aliases=["purge", "delete", "clean"], usage="clear <amount> [@user]")
    @commands.guild_only()
    @commands.has_permissions(manage_messages=True)
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def clear(self, ctx: ToadleContext, amount: int, user: Optional[discord.User] = None):
        """Delete recent messages in this channel, optionally only one user's."""
        if amount <= 0:
            raise CommandFailed("Please provide a valid positive number!")
        if amount > CLEAR_LIMIT:
            raise CommandFailed(f"You can only delete up to {CLEAR_LIMIT} messages at once for safety reasons.")

        if user is None:
            limit, check = amount, None
        else:
            left = [amount]

            def check(message):
                if message.author.id != user.id or left[0] <= 0:
                    return False
                left[0] -= 1
                return True

            limit = CLEAR_SCAN
        try:
            deleted = await ctx.channel.purge(limit=limit, check=check or (lambda m: True), before=ctx.message)
        except discord.Forbidden:
            raise CommandFailed("I don't have permission to delete messages in this channel!")
        if user is not None and not deleted:
            raise CommandFailed(f"No recent messages found from {user.display_name}.")
        try:
            await ctx.message.delete()
        except discord.HTTPException:
            logger.debug("Could not delete clear invocation %s", ctx.message.id)

        count = len(deleted)
        target = user.mention if user else "All users"
        await ctx.core.moderation.log_action(
            ctx.guild_id, "CLEAR", user.id if user else 0, str(user) if user else "all",
            ctx.author.id, str(ctx.author), f"Deleted {count} messages in #{ctx.channel}",
        )
        enqueue_log({"type": "moderation", "action": "clear", "guild_id": ctx.guild_id, "channel_id": str(ctx.channel.id),
                     "moderator_id": str(ctx.author.id), "target_id": str(user.id) if user else "all", "deleted": count})

        embed = helpers.make_embed(
            "✅ Messages Deleted",
            f"Successfully deleted {count} message{'s' if count != 1 else ''}",
            colour=helpers.COLOUR_OK,
        )
        embed.add_field(name="📊 Details", inline=False,
                        value=f"**Channel:** {ctx.channel.mention}\n**Moderator:** {ctx.author.mention}\n**Target:** {target}")
        await ctx.send(embed=embed, delete_after=5)
        await self._post_to_logs(ctx, embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(Moderation(bot))
