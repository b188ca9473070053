"""Leave announcements for servers that configure a leave channel."""
from __future__ import annotations

import logging

import discord
from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.logger import enqueue_log

logger = logging.getLogger("toadle.members")


class Members(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member):
        if member.bot:
            return
        guild = member.guild
        config = self.bot.core.config
        enqueue_log({"type": "member_remove", "guild_id": str(guild.id), "user_id": str(member.id)})
        if not config.is_feature_enabled(guild.id, "leave_messages"):
            return
        channel_id = config.get(guild.id).channels.leave
        channel = guild.get_channel(int(channel_id)) if channel_id else None
        if channel is None:
            return
        embed = helpers.make_embed("👋 Member Left", f"**{member}** left the server.", colour=helpers.COLOUR_WARN)
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            logger.warning("Could not post leave message in guild %s", guild.id)


async def setup(bot: commands.Bot):
    await bot.add_cog(Members(bot))
