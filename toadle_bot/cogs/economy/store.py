from __future__ import annotations

from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, admin_role_or_permissions, feature_enabled
from toadle_bot.utils.logger import log_transaction
from toadle_bot.utils.models import CatalogItem


class Store(commands.Cog):
    """Fixed-price item store backed by the item catalog."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.command(name="store")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def store(self, ctx: ToadleContext):
        items = [i for i in ctx.core.ledger.catalog_for_guild(ctx.guild_id) if i.price > 0]
        if not items:
            await ctx.send("🏪 The store is empty right now.")
            return
        lines = [
            f"{item.emoji} **{item.name}** (`{item.key}`) {helpers.format_coins(item.price)}"
            + (f"\n    {item.description}" if item.description else "")
            for item in items
        ]
        embed = helpers.make_embed("🏪 Store", "\n".join(lines), colour=helpers.COLOUR_INFO)
        embed.set_footer(text=f"Buy with {ctx.prefix}storebuy <item key> [quantity]")
        await ctx.send(embed=embed)

    @commands.command(name="storebuy", usage="storebuy <item key> [quantity]")
    @commands.guild_only()
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def storebuy(self, ctx: ToadleContext, *words: str):
        if not words:
            raise ctx.usage_error()
        args = list(words)
        qty = 1
        maybe_qty = helpers.parse_int(args[-1])
        if len(args) > 1 and maybe_qty is not None:
            qty = maybe_qty
            args = args[:-1]
        if qty <= 0:
            raise CommandFailed("Quantity must be a positive number.")
        key = "_".join(args).lower()

        guild_id = ctx.guild_id
        ledger = ctx.core.ledger
        item = ledger.get_catalog_item(key)
        if item is None or item.price <= 0 or (item.guild_id is not None and item.guild_id != guild_id):
            raise CommandFailed(f'Item "{key}" not found in the store.')
        total = item.price * qty
        ledger.get_or_create_account(ctx.author.id, guild_id)
        wallet = ledger.balance(ctx.author.id)
        if wallet < total:
            raise CommandFailed(f"You need {total} coins but only have {wallet} coins.")
        ledger.debit(ctx.author.id, total)
        ledger.add_inventory(ctx.author.id, item.key, qty)
        log_transaction("storebuy", str(ctx.author.id), -total, item=item.key, quantity=qty, guild_id=guild_id)

        embed = helpers.make_embed(
            "🛒 Purchase Successful!",
            f"You bought **{qty}x {item.name}** for {helpers.format_coins(total)}.",
            colour=helpers.COLOUR_OK,
        )
        embed.add_field(name="💰 Remaining Balance", value=helpers.format_coins(ledger.balance(ctx.author.id)))
        await ctx.send(embed=embed)

    @commands.command(name="storeadd", usage="storeadd <key> <price> [description]")
    @admin_role_or_permissions(manage_guild=True)
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def storeadd(self, ctx: ToadleContext, key: str, price: int, *, description: str = ""):
        """Add or update a server-specific store item (admin role)."""
        key = key.lower()
        if price <= 0:
            raise CommandFailed("Price must be a positive number.")
        guild_id = ctx.guild_id
        existing = ctx.core.ledger.get_catalog_item(key)
        if existing is not None and existing.guild_id != guild_id:
            raise CommandFailed(f"`{key}` is already a catalog item and can't be changed here.")
        item = CatalogItem(
            key=key,
            name=key.replace("_", " ").title(),
            price=price,
            description=description,
            guild_id=guild_id,
        )
        ctx.core.ledger.add_catalog_item(item)
        await ctx.send(f'✅ {"Updated" if existing else "Added"} item "{item.name}" (`{key}`) at {helpers.format_coins(price)}.')

    @commands.command(name="storeremove", usage="storeremove <key>")
    @admin_role_or_permissions(manage_guild=True)
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def storeremove(self, ctx: ToadleContext, key: str):
        key = key.lower()
        item = ctx.core.ledger.get_catalog_item(key)
        if item is None or item.guild_id != ctx.guild_id:
            raise CommandFailed(f"`{key}` is not one of this server's store items.")
        ctx.core.ledger.remove_catalog_item(key)
        await ctx.send(f'✅ Removed "{item.name}" from the store.')


async def setup(bot: commands.Bot):
    await bot.add_cog(Store(bot))
