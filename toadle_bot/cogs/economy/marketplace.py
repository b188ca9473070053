from __future__ import annotations

import time

from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled
from toadle_bot.utils.logger import enqueue_log

PER_PAGE = 5


class Marketplace(commands.Cog):
    """Player-to-player item market, scoped per server."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.command(name="listitem", aliases=["sell"], usage="listitem <item> <quantity> <price>")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def list_item(self, ctx: ToadleContext, item_key: str, qty: int, price: int):
        item_key = item_key.lower()
        if qty <= 0 or price <= 0:
            raise CommandFailed("Quantity and price must be positive numbers.")
        ledger = ctx.core.ledger
        if not ledger.is_valid_item(item_key):
            raise CommandFailed(f"`{item_key}` is not a known item.")
        held = ledger.item_quantity(ctx.author.id, item_key)
        if held < qty:
            raise CommandFailed(f"You only have {held}x {item_key}.")
        listing = ctx.core.market.create_listing(ctx.author.id, ctx.guild_id, item_key, qty, price)
        if listing is None:
            raise CommandFailed("Could not create that listing.")
        enqueue_log({"type": "listing", "action": "create", **listing.model_dump()})
        await ctx.send(embed=helpers.make_embed(
            "🏷️ Item Listed",
            f"Listed **{qty}x {item_key}** at {helpers.format_coins(price)} each.\nListing ID: `{listing.listing_id}`",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="market", aliases=["marketplace", "shop"], usage="market [page]")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def market(self, ctx: ToadleContext, page: int = 1):
        if page < 1:
            raise ctx.usage_error()
        result = ctx.core.market.paged_listings(ctx.guild_id, page, PER_PAGE)
        if not result.total:
            await ctx.send("🛒 The marketplace is empty. List something with `listitem`!")
            return
        if not result.listings:
            raise CommandFailed(f"Page {page} does not exist. There are {result.total_pages} pages.")
        now = time.time()
        lines = []
        for listing in result.listings:
            age = helpers.format_duration(now - listing.created_at)
            lines.append(
                f"`{listing.listing_id}` **{listing.quantity}x {listing.item_key}** "
                f"@ {helpers.format_coins(listing.price)} by <@{listing.seller_id}> ({age} ago)"
            )
        embed = helpers.make_embed("🛒 Marketplace", "\n".join(lines), colour=helpers.COLOUR_INFO)
        embed.set_footer(text=f"Page {result.page}/{result.total_pages} ({result.total} listings)")
        await ctx.send(embed=embed)

    @commands.command(name="buy", usage="buy <listingId> [quantity]")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def buy(self, ctx: ToadleContext, listing_id: str, qty: int = 1):
        if qty <= 0:
            raise CommandFailed("Quantity must be a positive number.")
        guild_id = ctx.guild_id
        ctx.core.ledger.get_or_create_account(ctx.author.id, guild_id)
        result = ctx.core.market.purchase(ctx.author.id, guild_id, listing_id, qty)
        if not result.success:
            raise CommandFailed(result.message)
        enqueue_log({
            "type": "listing",
            "action": "purchase",
            "guild_id": guild_id,
            "listing_id": listing_id,
            "buyer_id": str(ctx.author.id),
            "quantity": qty,
            "total": result.total_cost,
        })
        await ctx.send(embed=helpers.make_embed(
            "✅ Purchase Complete",
            f"{result.message}.\nBalance: {helpers.format_coins(ctx.core.ledger.balance(ctx.author.id))}",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="unlist", aliases=["delist"], usage="unlist <listingId>")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def unlist(self, ctx: ToadleContext, listing_id: str):
        """Withdraw your own listing; items go back to your inventory."""
        listing = ctx.core.market.get_listing(listing_id)
        if listing is None or listing.guild_id != ctx.guild_id:
            raise CommandFailed("Listing not found")
        cancelled = ctx.core.market.cancel_listing(ctx.author.id, listing.listing_id, force=ctx.permissions.manage_guild)
        if cancelled is None:
            raise CommandFailed("You can only remove your own listings.")
        await ctx.send(f"✅ Removed listing `{cancelled.listing_id}`; {cancelled.quantity}x {cancelled.item_key} returned to <@{cancelled.seller_id}>.")


async def setup(bot: commands.Bot):
    await bot.add_cog(Marketplace(bot))
