"""Giveaway cog.

`giveaway start` posts an embed with an entry button; a background loop ends
giveaways whose deadline has passed, pays any coin prize and edits the post.
Entry buttons are re-registered on load so they keep working after a restart.
"""
from __future__ import annotations

import logging
from typing import Optional

import discord
from discord.ext import commands, tasks

from toadle_bot.utils import giveaways as gw
from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.giveaways import DrawResult, GiveawayManager
from toadle_bot.utils.logger import enqueue_log
from toadle_bot.utils.models import Giveaway

logger = logging.getLogger("toadle.giveaway")

ENTRY_REPLIES = {
    gw.ENTERED: "You have entered the giveaway!",
    gw.ALREADY_ENTERED: "You have already entered!",
    gw.ENDED: "This giveaway has already ended.",
    gw.NOT_FOUND: "This giveaway no longer exists.",
}
DEFAULT_PRIZE = "No custom prize"


def _winner_text(winners) -> str:
    return ", ".join(f"<@{uid}>" for uid in winners) or "No valid entrants"


def giveaway_embed(giveaway: Giveaway) -> discord.Embed:
    return helpers.make_embed(
        "🎉 Giveaway Started!",
        f"**ID:** {giveaway.giveaway_id}\n"
        f"**Prize:** {giveaway.prize}\n"
        f"**Currency:** {giveaway.currency_amount:,}\n"
        f"**Winners:** {giveaway.winner_count}\n"
        f"**Ends:** <t:{int(giveaway.ends_at)}:F>\n"
        f"Hosted by <@{giveaway.host_id}>",
        colour=helpers.COLOUR_INFO,
    )


def ended_embed(giveaway: Giveaway) -> discord.Embed:
    return helpers.make_embed(
        "🎉 Giveaway Ended!",
        f"**ID:** {giveaway.giveaway_id}\n"
        f"**Prize:** {giveaway.prize}\n"
        f"**Winners:** {_winner_text(giveaway.winners)}\n"
        f"**Entries:** {len(giveaway.entrants)}",
        colour=helpers.COLOUR_OK,
    )


class GiveawayView(discord.ui.View):
    """Persistent entry button for one giveaway."""

    def __init__(self, manager: GiveawayManager, giveaway_id: str):
        super().__init__(timeout=None)
        self.manager = manager
        self.giveaway_id = giveaway_id
        button = discord.ui.Button(
            label="Enter Giveaway",
            style=discord.ButtonStyle.primary,
            custom_id=f"enter_giveaway_{giveaway_id}",
        )
        button.callback = self.enter
        self.add_item(button)

    async def enter(self, interaction: discord.Interaction):
        status = self.manager.enter(self.giveaway_id, interaction.user.id)
        await interaction.response.send_message(ENTRY_REPLIES[status], ephemeral=True)


class Giveaways(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def manager(self) -> GiveawayManager:
        return self.bot.core.giveaways

    async def cog_load(self) -> None:
        for giveaway in self.bot.core.store.giveaways.values():
            if not giveaway.ended and giveaway.message_id:
                self.bot.add_view(GiveawayView(self.manager, giveaway.giveaway_id),
                                  message_id=int(giveaway.message_id))
        self.conclude_due.start()

    async def cog_unload(self) -> None:
        self.conclude_due.cancel()

    async def _update_post(self, giveaway: Giveaway) -> None:
        channel = self.bot.get_channel(int(giveaway.channel_id))
        if channel is None:
            return
        try:
            if giveaway.message_id:
                await channel.get_partial_message(int(giveaway.message_id)).edit(embed=ended_embed(giveaway), view=None)
            await channel.send(
                f"🎉 Congratulations {_winner_text(giveaway.winners)}! You won **{giveaway.prize}**"
                + (f" and {helpers.format_coins(giveaway.currency_amount)}" if giveaway.currency_amount else "")
                + "!"
            )
        except discord.HTTPException:
            logger.warning("Could not announce giveaway %s in channel %s", giveaway.giveaway_id, giveaway.channel_id)

    async def finish(self, giveaway_id) -> Optional[DrawResult]:
        """End a giveaway now and announce it. None if it was missing or already over."""
        result = self.manager.conclude(giveaway_id)
        if result is None:
            return None
        enqueue_log({"type": "giveaway", "action": "end", "giveaway_id": result.giveaway.giveaway_id,
                     "guild_id": result.giveaway.guild_id, "winners": result.winners})
        await self._update_post(result.giveaway)
        return result

    @tasks.loop(seconds=30)
    async def conclude_due(self):
        for giveaway in self.manager.due():
            await self.finish(giveaway.giveaway_id)

    @conclude_due.before_loop
    async def _before_conclude(self):
        await self.bot.wait_until_ready()

    @commands.group(name="giveaway", invoke_without_command=True, case_insensitive=True,
                    usage="giveaway <start|end|reroll|lookup> [options]")
    @commands.guild_only()
    async def giveaway(self, ctx: ToadleContext):
        """Manage giveaways: start, end, reroll, or lookup active giveaways."""
        raise ctx.usage_error()

    @giveaway.command(name="start", usage="giveaway start <duration> <winners> [currency] [prize]")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def start(self, ctx: ToadleContext, duration: str, winners: int, *words: str):
        """Start a giveaway, e.g. `giveaway start 1h 2 500 Nitro`."""
        try:
            seconds = helpers.parse_duration(duration)
        except ValueError:
            raise ctx.usage_error()
        if winners < 1:
            raise ctx.usage_error()
        currency = helpers.parse_int(words[0]) if words else None
        if currency is not None:
            if currency < 0:
                raise CommandFailed("The coin prize can't be negative.")
            words = words[1:]
        prize = " ".join(words) or DEFAULT_PRIZE

        giveaway = self.manager.create(ctx.guild_id, ctx.channel.id, ctx.author.id, seconds, winners,
                                       currency_amount=currency or 0, prize=prize)
        view = GiveawayView(self.manager, giveaway.giveaway_id)
        message = await ctx.send(embed=giveaway_embed(giveaway), view=view)
        self.manager.attach_message(giveaway.giveaway_id, message.id)
        enqueue_log({"type": "giveaway", "action": "start", "giveaway_id": giveaway.giveaway_id,
                     "guild_id": ctx.guild_id, "host_id": str(ctx.author.id), "prize": prize,
                     "currency": giveaway.currency_amount, "winners": winners, "ends_at": giveaway.ends_at})

    @giveaway.command(name="end", usage="giveaway end <giveaway id>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def end(self, ctx: ToadleContext, giveaway_id: int):
        """End a giveaway early and draw its winners."""
        if self.manager.get(giveaway_id, ctx.guild_id) is None or await self.finish(giveaway_id) is None:
            raise CommandFailed("Giveaway not found or already ended.")
        await ctx.send(f"Giveaway #{giveaway_id} ended by {ctx.author.mention}.")

    @giveaway.command(name="reroll", usage="giveaway reroll <giveaway id>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def reroll(self, ctx: ToadleContext, giveaway_id: int):
        """Draw new winners for an ended giveaway."""
        result = None
        if self.manager.get(giveaway_id, ctx.guild_id) is not None:
            result = self.manager.reroll(giveaway_id)
        if result is None:
            raise CommandFailed("Giveaway not found or not yet ended.")
        enqueue_log({"type": "giveaway", "action": "reroll", "giveaway_id": str(giveaway_id),
                     "guild_id": ctx.guild_id, "winners": result.winners})
        await ctx.send(f"New winners for #{giveaway_id}: {_winner_text(result.winners)}")

    @giveaway.command(name="lookup", aliases=["list"])
    @commands.guild_only()
    async def lookup(self, ctx: ToadleContext):
        """List this server's active giveaways."""
        active = self.manager.active_for_guild(ctx.guild_id)
        if not active:
            await ctx.send("No active giveaways in this server.")
            return
        lines = [f'• ID {g.giveaway_id}: "{g.prize}" ends <t:{int(g.ends_at)}:R>' for g in active]
        await ctx.send("**Active Giveaways:**\n" + "\n".join(lines))


async def setup(bot: commands.Bot):
    await bot.add_cog(Giveaways(bot))
