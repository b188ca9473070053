from __future__ import annotations

from discord.ext import commands

from toadle_bot.utils import helpers, statistics
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled

TOP_LIMIT = 25


class Stats(commands.Cog):
    """Server-wide economy numbers."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.group(name="stats", aliases=["serverstats"], invoke_without_command=True, case_insensitive=True,
                    usage="stats [top <metric> [limit]|items]")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def stats(self, ctx: ToadleContext):
        """Economy totals for this server."""
        store = ctx.core.store
        totals = statistics.economy_totals(store, ctx.guild_id)
        refs = statistics.referral_totals(store)
        listings = sum(1 for l in store.listings.values() if l.guild_id == ctx.guild_id)

        embed = helpers.make_embed(f"📊 {ctx.guild.name} Economy", "", colour=helpers.COLOUR_INFO)
        embed.add_field(name="Users", value=f"{totals.users:,}")
        embed.add_field(name="Wallets", value=helpers.format_coins(totals.total_balance))
        embed.add_field(name="Banks", value=f"{helpers.EMOJI['bank']} {totals.total_bank:,}")
        embed.add_field(name="Total Earned", value=helpers.format_coins(totals.total_earned))
        embed.add_field(name="Average Wallet", value=helpers.format_coins(totals.average_balance))
        embed.add_field(name="Referrals", value=f"{totals.total_referrals:,}")
        embed.add_field(name="Marketplace", inline=False,
                        value=f"{listings} listings worth {helpers.format_coins(statistics.marketplace_value(store, ctx.guild_id))}")
        embed.add_field(name="Invites", inline=False,
                        value=f"{refs.invites} registered, {refs.claimed} claimed ({refs.claim_rate}%)")
        await ctx.send(embed=embed)

    @stats.command(name="top", usage=f"stats top <{'|'.join(statistics.METRICS)}> [limit]")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def top(self, ctx: ToadleContext, metric: str = "balance", limit: int = 10):
        """Top accounts in this server by a metric."""
        metric = metric.lower()
        if metric not in statistics.METRICS:
            raise CommandFailed(f"Unknown metric. Choose one of: {', '.join(statistics.METRICS)}")
        if not 1 <= limit <= TOP_LIMIT:
            raise CommandFailed(f"Limit must be between 1 and {TOP_LIMIT}.")
        accounts = statistics.top_users(ctx.core.store, metric, limit, ctx.guild_id)
        if not accounts:
            await ctx.send("📊 No accounts in this server yet.")
            return
        value = statistics.METRICS[metric]
        lines = [f"**{i}.** <@{a.user_id}> {value(a):,}" for i, a in enumerate(accounts, start=1)]
        await ctx.send(embed=helpers.make_embed(f"📊 Top {len(accounts)} by {metric}", "\n".join(lines),
                                                colour=helpers.COLOUR_INFO))

    @stats.command(name="items")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def items(self, ctx: ToadleContext):
        """Marketplace listings grouped by item."""
        found = statistics.item_stats(ctx.core.store, ctx.guild_id)
        if not found:
            await ctx.send("📊 No marketplace listings in this server.")
            return
        embed = helpers.make_embed("📊 Marketplace Items", "", colour=helpers.COLOUR_INFO)
        for key, s in sorted(found.items(), key=lambda kv: kv[1].total_value, reverse=True)[:25]:
            embed.add_field(
                name=key,
                value=f"{s.listings} listings, {s.quantity} units\n"
                      f"avg {s.average_price:,} (min {s.min_price:,}, max {s.max_price:,})",
            )
        await ctx.send(embed=embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(Stats(bot))
