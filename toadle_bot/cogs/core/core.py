"""Core cog: help, ping and the global command error handler."""
from __future__ import annotations

import logging
import math
import time
from itertools import groupby

import discord
from discord.ext import commands

from toadle_bot.utils import checks, helpers
from toadle_bot.utils.checks import ToadleContext
from toadle_bot.utils.logger import enqueue_log

logger = logging.getLogger("toadle.core")


def error_reply(ctx: ToadleContext, error: Exception) -> str:
    """Map a command error to the line shown to the invoker."""
    if isinstance(error, checks.FeatureDisabled):
        return checks.DISABLED_REPLY
    if isinstance(error, commands.NoPrivateMessage):
        return checks.GUILD_ONLY_REPLY
    if isinstance(error, commands.CheckFailure):
        return checks.NO_PERMISSION_REPLY
    if isinstance(error, commands.CommandOnCooldown):
        return checks.COOLDOWN_REPLY.format(seconds=math.ceil(error.retry_after))
    if isinstance(error, commands.UserNotFound):
        return checks.USER_NOT_FOUND_REPLY
    if isinstance(error, commands.UserInputError):
        return f"❌ Usage: `{ctx.usage()}`"
    if isinstance(error, checks.CommandFailed):
        return f"❌ {error}"
    return checks.GENERIC_ERROR_REPLY


class Core(commands.Cog):
    """Help, ping and error replies."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.start_time = time.time()

    @commands.Cog.listener()
    async def on_command_error(self, ctx: ToadleContext, error: Exception):
        """Global command error handler for user-friendly messages and logging."""
        if isinstance(error, commands.CommandNotFound):
            return
        if ctx.command is not None and not isinstance(error, commands.CommandOnCooldown):
            # cooldowns only count invocations that succeeded
            ctx.command.reset_cooldown(ctx)

        if isinstance(error, commands.CommandInvokeError):
            original = error.original
            logger.error(
                "Error executing command %s (user=%s guild=%s)",
                ctx.command.qualified_name if ctx.command else None,
                ctx.author.id, ctx.guild_id, exc_info=original,
            )
            enqueue_log({
                "type": "command_error",
                "command": getattr(ctx.command, "qualified_name", None),
                "user_id": str(ctx.author.id),
                "guild_id": ctx.guild_id,
                "error": repr(original),
            })

        try:
            await ctx.send(error_reply(ctx, error))
        except discord.HTTPException:
            logger.warning("Could not reply in channel %s", getattr(ctx.channel, "id", None))

    @commands.command(name="help", aliases=["commands", "h"], usage="help [command]")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def help(self, ctx: ToadleContext, *, name: str = None):
        """List commands, or show details for one."""
        if name:
            command = self.bot.get_command(name.lower())
            if command is None or command.hidden:
                raise checks.CommandFailed(f"No command named `{name.split()[0]}`.")
            embed = helpers.make_embed(f"📖 {ctx.prefix}{command.qualified_name}",
                                       command.short_doc or "No description.", colour=helpers.COLOUR_INFO)
            usage = command.usage or f"{command.qualified_name} {command.signature}".strip()
            embed.add_field(name="Usage", value=f"`{ctx.prefix}{usage}`", inline=False)
            if command.aliases:
                embed.add_field(name="Aliases", value=", ".join(f"`{a}`" for a in command.aliases))
            if command.cooldown is not None:
                embed.add_field(name="Cooldown", value=helpers.format_duration(command.cooldown.per))
            if isinstance(command, commands.Group):
                embed.add_field(name="Subcommands", value=" ".join(f"`{c.name}`" for c in command.commands))
            embed.add_field(name="Category", value=command.cog_name or "General")
            await ctx.send(embed=embed)
            return

        visible = sorted((c for c in self.bot.commands if not c.hidden), key=lambda c: (c.cog_name or "", c.name))
        embed = helpers.make_embed(
            "📖 Commands",
            f"Use `{ctx.prefix}help <command>` for details.",
            colour=helpers.COLOUR_INFO,
        )
        for category, group in groupby(visible, key=lambda c: c.cog_name or "General"):
            embed.add_field(name=category, value=" ".join(f"`{c.name}`" for c in group), inline=False)
        await ctx.send(embed=embed)

    @commands.command(name="ping")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def ping(self, ctx: ToadleContext):
        """Respond with gateway latency and uptime."""
        # nan until the gateway has heartbeated
        latency = f"{round(self.bot.latency * 1000)}ms" if math.isfinite(self.bot.latency) else "n/a"
        uptime = helpers.format_duration(time.time() - self.start_time)
        await ctx.send(embed=helpers.make_embed("🏓 Pong!", f"Latency: {latency}\nUptime: {uptime}"))


async def setup(bot: commands.Bot):
    await bot.add_cog(Core(bot))
