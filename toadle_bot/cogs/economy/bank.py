from __future__ import annotations

from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled
from toadle_bot.utils.logger import log_transaction


def _amount_arg(ctx: ToadleContext, text: str, available: int) -> int:
    if text.lower() == "all":
        return available
    amount = helpers.parse_int(text)
    if amount is None:
        raise ctx.usage_error()
    return amount


class Bank(commands.Cog):
    """Move coins between the wallet and the interest-bearing bank."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.command(name="deposit", aliases=["dep"], usage="deposit <amount|all>")
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def deposit(self, ctx: ToadleContext, amount: str):
        account = ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        value = _amount_arg(ctx, amount, account.balance)
        result = ctx.core.bank.deposit(ctx.author.id, value)
        if not result.success:
            raise CommandFailed(result.message)
        log_transaction("deposit", str(ctx.author.id), value, bank=result.new_bank)
        await ctx.send(embed=helpers.make_embed(
            "🏦 Deposit Complete",
            f"{result.message}\nWallet: {helpers.format_coins(result.new_wallet)}\nBank: {helpers.format_coins(result.new_bank)}",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="withdraw", aliases=["with"], usage="withdraw <amount|all>")
    @feature_enabled("economy_enabled")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def withdraw(self, ctx: ToadleContext, amount: str):
        account = ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        value = _amount_arg(ctx, amount, account.bank_balance)
        result = ctx.core.bank.withdraw(ctx.author.id, value)
        if not result.success:
            raise CommandFailed(result.message)
        log_transaction("withdraw", str(ctx.author.id), value, bank=result.new_bank)
        await ctx.send(embed=helpers.make_embed(
            "🏦 Withdrawal Complete",
            f"{result.message}\nWallet: {helpers.format_coins(result.new_wallet)}\nBank: {helpers.format_coins(result.new_bank)}",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="bank", aliases=["bankbal"])
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def bank(self, ctx: ToadleContext):
        account = ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        rate = ctx.core.config.get(ctx.guild_id).economy.bank_interest_rate if ctx.guild_id else None
        lines = [f"Bank: {helpers.format_coins(account.bank_balance)}", f"Wallet: {helpers.format_coins(account.balance)}"]
        if rate is not None:
            lines.append(f"Daily interest: {rate * 100:g}%")
        await ctx.send(embed=helpers.make_embed("🏦 Bank Balance", "\n".join(lines), colour=helpers.COLOUR_INFO))


async def setup(bot: commands.Bot):
    await bot.add_cog(Bank(bot))
