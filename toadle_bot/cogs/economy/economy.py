from __future__ import annotations

import math
import time
from typing import Optional

import discord
from discord.ext import commands

from toadle_bot.utils import games, helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled
from toadle_bot.utils.logger import log_transaction

DAY = 24 * 60 * 60
WEEK = 7 * DAY
EARN_INTERVAL = 60 * 60
LEADERBOARD_PAGE = 10
LEADERBOARD_DEPTH = 100


def positive_amount(amount: int) -> int:
    if amount <= 0:
        raise CommandFailed("Please provide a valid positive amount!")
    return amount


class Economy(commands.Cog):
    """Wallet commands: balances, timed rewards, transfers, crime and investing."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    def _claim_timed(self, ctx: ToadleContext, field: str, interval: int, label: str) -> None:
        account = ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        last = getattr(account, field)
        if last is not None:
            left = last + interval - time.time()
            if left > 0:
                raise CommandFailed(f"You have already claimed your {label}. Next claim available in {helpers.format_duration(left)}.")

    @commands.command(name="balance", aliases=["bal", "coins", "money"], usage="balance [@user]")
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def balance(self, ctx: ToadleContext, user: Optional[discord.User] = None):
        """Show wallet, bank and lifetime earnings."""
        target = user or ctx.author
        account = ctx.core.ledger.get_or_create_account(target.id, ctx.guild_id if target == ctx.author else None)
        embed = helpers.make_embed(f"{target.display_name}'s Balance", "", colour=helpers.COLOUR_INFO)
        embed.add_field(name="Wallet", value=helpers.format_coins(account.balance))
        embed.add_field(name="Bank", value=f"{helpers.EMOJI['bank']} {account.bank_balance:,}")
        embed.add_field(name="Total Earned", value=helpers.format_coins(account.total_earned))
        await ctx.send(embed=embed)

    @commands.command(name="daily")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    async def daily(self, ctx: ToadleContext):
        """Claim the daily bonus once every 24 hours."""
        self._claim_timed(ctx, "last_daily", DAY, "daily bonus")
        bounds = ctx.core.config.get(ctx.guild_id).economy.daily_bonus
        amount = games.roll_range(ctx.core.rng, bounds)
        ledger = ctx.core.ledger
        ledger.credit(ctx.author.id, amount)
        ledger.stamp(ctx.author.id, "last_daily")
        log_transaction("daily", str(ctx.author.id), amount, guild_id=ctx.guild_id)
        await ctx.send(embed=helpers.make_embed(
            "🎁 Daily Bonus",
            f"You received {helpers.format_coins(amount)}!\nNew balance: {helpers.format_coins(ledger.balance(ctx.author.id))}",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="weekly")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    async def weekly(self, ctx: ToadleContext):
        """Claim the weekly bonus once every 7 days."""
        self._claim_timed(ctx, "last_weekly", WEEK, "weekly bonus")
        amount = games.roll_range(ctx.core.rng, games.WEEKLY_RANGE)
        ctx.core.ledger.credit(ctx.author.id, amount)
        ctx.core.ledger.stamp(ctx.author.id, "last_weekly")
        log_transaction("weekly", str(ctx.author.id), amount, guild_id=ctx.guild_id)
        await ctx.send(embed=helpers.make_embed(
            "📅 Weekly Bonus", f"You received {helpers.format_coins(amount)}!", colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="earn", aliases=["work"])
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    async def earn(self, ctx: ToadleContext):
        """Work for a few coins once an hour."""
        self._claim_timed(ctx, "last_earn", EARN_INTERVAL, "earnings for this hour")
        bounds = ctx.core.config.get(ctx.guild_id).economy.earn_range
        amount = games.roll_range(ctx.core.rng, bounds)
        ctx.core.ledger.credit(ctx.author.id, amount)
        ctx.core.ledger.stamp(ctx.author.id, "last_earn")
        log_transaction("earn", str(ctx.author.id), amount, guild_id=ctx.guild_id)
        await ctx.send(embed=helpers.make_embed(
            "💼 Work Complete", f"You earned {helpers.format_coins(amount)}.", colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="give", aliases=["transfer", "send", "pay"], usage="give @user <amount>")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def give(self, ctx: ToadleContext, target: discord.User, amount: int):
        if target.id == ctx.author.id:
            raise CommandFailed("You cannot give coins to yourself!")
        if target.bot:
            raise CommandFailed("You cannot give coins to bots!")
        positive_amount(amount)

        ledger = ctx.core.ledger
        ledger.get_or_create_account(target.id, ctx.guild_id)
        if not ledger.transfer(ctx.author.id, target.id, amount):
            raise CommandFailed(f"You don't have enough coins! You have {helpers.format_coins(ledger.balance(ctx.author.id))}.")
        log_transaction("give", str(ctx.author.id), -amount, to=str(target.id), guild_id=ctx.guild_id)
        await ctx.send(embed=helpers.make_embed(
            "💸 Transfer Complete",
            f"You gave {helpers.format_coins(amount)} to {target.mention}.",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="crime")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 300, commands.BucketType.user)
    async def crime(self, ctx: ToadleContext):
        """Risk a fine for a bigger reward."""
        settings = ctx.core.config.get(ctx.guild_id).economy.crime
        ledger = ctx.core.ledger
        account = ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        outcome = games.commit_crime(
            ctx.core.rng, settings.success_chance, settings.reward_range, settings.fine_range, account.balance,
        )
        if outcome.success:
            ledger.credit(ctx.author.id, outcome.amount)
            log_transaction("crime", str(ctx.author.id), outcome.amount, guild_id=ctx.guild_id)
            text = f"🦹 You pulled it off and made {helpers.format_coins(outcome.amount)}!"
        elif outcome.amount > 0:
            ledger.debit(ctx.author.id, outcome.amount)
            log_transaction("crime_fine", str(ctx.author.id), -outcome.amount, guild_id=ctx.guild_id)
            text = f"🚓 You got caught and paid a fine of {helpers.format_coins(outcome.amount)}."
        else:
            text = "🚓 You got caught, but had nothing to pay the fine with."
        await ctx.send(f"{text}\nBalance: {helpers.format_coins(ledger.balance(ctx.author.id))}")

    @commands.command(name="invest", usage="invest <amount>")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 600, commands.BucketType.user)
    async def invest(self, ctx: ToadleContext, stake: int):
        settings = ctx.core.config.get(ctx.guild_id).economy.invest
        positive_amount(stake)
        if stake < games.INVEST_MINIMUM:
            raise CommandFailed(f"Minimum investment is **{games.INVEST_MINIMUM} coins**.")
        ledger = ctx.core.ledger
        if not ledger.debit(ctx.author.id, stake):
            raise CommandFailed(
                f"You don't have enough coins! You have **{ledger.balance(ctx.author.id)}** coins but tried to invest **{stake}**."
            )
        outcome = games.invest(ctx.core.rng, stake, settings.fail_chance, settings.multiplier_range)
        net = ledger.settle_stake(ctx.author.id, stake, outcome.returned)
        log_transaction("invest", str(ctx.author.id), net, stake=stake, guild_id=ctx.guild_id)
        if outcome.success:
            text = f"📈 Your investment paid off ×{outcome.multiplier}! You got back {helpers.format_coins(outcome.returned)}."
        else:
            text = f"📉 The market crashed. You recovered only {helpers.format_coins(outcome.returned)} of your {stake}."
        await ctx.send(f"{text}\nBalance: {helpers.format_coins(ledger.balance(ctx.author.id))}")

    @commands.command(name="leaderboard", aliases=["lb", "top", "rich"], usage="leaderboard [page]")
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def leaderboard(self, ctx: ToadleContext, page: int = 1):
        if page < 1:
            raise ctx.usage_error()
        ranked = ctx.core.ledger.leaderboard(LEADERBOARD_DEPTH, guild_id=ctx.guild_id)
        total_pages = max(1, math.ceil(len(ranked) / LEADERBOARD_PAGE))
        if page > total_pages:
            raise CommandFailed(f"Page {page} does not exist. There are {total_pages} pages.")
        start = (page - 1) * LEADERBOARD_PAGE
        lines = []
        for rank, account in enumerate(ranked[start:start + LEADERBOARD_PAGE], start=start + 1):
            lines.append(f"**{rank}.** <@{account.user_id}> {helpers.format_coins(account.balance)}")
        embed = helpers.make_embed("🏆 Leaderboard", "\n".join(lines) or "Nobody has any coins yet.", colour=helpers.COLOUR_INFO)
        embed.set_footer(text=f"Page {page}/{total_pages}")
        await ctx.send(embed=embed)

    @commands.command(name="inventory", aliases=["inv"], usage="inventory [@user]")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def inventory(self, ctx: ToadleContext, user: Optional[discord.User] = None):
        target = user or ctx.author
        account = ctx.core.ledger.peek_account(target.id)
        lines = []
        for key, qty in sorted((account.inventory if account else {}).items()):
            item = ctx.core.ledger.get_catalog_item(key)
            label = f"{item.emoji} {item.name}".strip() if item else key
            lines.append(f"{label} ×{qty} (`{key}`)")
        await ctx.send(embed=helpers.make_embed(
            f"🎒 {target.display_name}'s Inventory", "\n".join(lines) or "Empty.", colour=helpers.COLOUR_INFO,
        ))


async def setup(bot: commands.Bot):
    await bot.add_cog(Economy(bot))
