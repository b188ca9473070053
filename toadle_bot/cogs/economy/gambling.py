from __future__ import annotations

import logging
from typing import Dict, Optional

from discord.ext import commands

from toadle_bot.utils import games, helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext, feature_enabled
from toadle_bot.utils.logger import log_transaction

logger = logging.getLogger("toadle.gambling")


def _bet(amount: int) -> int:
    if amount <= 0:
        raise CommandFailed("Invalid bet amount")
    return amount


def _take_stake(ctx: ToadleContext, bet: int) -> None:
    ledger = ctx.core.ledger
    ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
    if not ledger.debit(ctx.author.id, bet):
        raise CommandFailed(f"Insufficient funds. You have {helpers.format_coins(ledger.balance(ctx.author.id))}.")


def _hand_text(game: games.BlackjackGame, reveal: bool) -> str:
    dealer = " ".join(game.dealer) + f" (Total: {game.dealer_total})" if reveal else f"{game.dealer[0]} ?"
    return f"Your hand: {' '.join(game.player)} (Total: {game.player_total})\nDealer: {dealer}"


class Gambling(commands.Cog):
    """Blackjack, roulette and slots. Stakes are taken up front and paid out on settlement."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        # one open blackjack hand per user, held in memory only
        self.games: Dict[str, games.BlackjackGame] = {}

    def cog_unload(self):
        self.refund_open_games()

    def refund_open_games(self) -> int:
        """Give every open hand its stake back and drop it. Returns the hands refunded."""
        ledger = self.bot.core.ledger
        refunded = 0
        for uid, game in list(self.games.items()):
            del self.games[uid]
            ledger.refund(uid, game.bet)
            log_transaction("blackjack_refund", uid, game.bet, guild_id=game.guild_id)
            refunded += 1
        if refunded:
            logger.info("Refunded %s open blackjack hands", refunded)
        return refunded

    def discard_guild_games(self, guild_id) -> int:
        """Forget open hands in `guild_id` without paying anything back."""
        doomed = [uid for uid, game in self.games.items() if game.guild_id == str(guild_id)]
        for uid in doomed:
            del self.games[uid]
        return len(doomed)

    def _settle(self, ctx: ToadleContext, kind: str, stake: int, payout: int) -> int:
        net = ctx.core.ledger.settle_stake(ctx.author.id, stake, payout)
        log_transaction(kind, str(ctx.author.id), net, stake=stake, guild_id=ctx.guild_id)
        return net

    def _open_game(self, ctx: ToadleContext) -> games.BlackjackGame:
        game: Optional[games.BlackjackGame] = self.games.get(str(ctx.author.id))
        if game is None:
            raise CommandFailed(f"You don't have a game in progress. Start one with `{ctx.prefix}blackjack <bet>`.")
        return game

    @commands.command(name="blackjack", aliases=["bj"], usage="blackjack <bet>")
    @commands.guild_only()
    @feature_enabled("gambling_enabled")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def blackjack(self, ctx: ToadleContext, bet: int):
        uid = str(ctx.author.id)
        if uid in self.games:
            raise CommandFailed("You already have a game in progress. Use `hit` or `stand`.")
        _take_stake(ctx, _bet(bet))
        game = games.BlackjackGame.deal(bet, ctx.core.rng, guild_id=ctx.guild_id)
        self.games[uid] = game
        embed = helpers.make_embed("🃏 Blackjack", _hand_text(game, reveal=False), colour=helpers.COLOUR_INFO)
        embed.set_footer(text=f"Bet: {bet}. Use {ctx.prefix}hit to draw a card or {ctx.prefix}stand to hold your hand.")
        await ctx.send(embed=embed)

    @commands.command(name="hit")
    @feature_enabled("gambling_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def hit(self, ctx: ToadleContext):
        game = self._open_game(ctx)
        if game.hit() == "bust":
            del self.games[str(ctx.author.id)]
            self._settle(ctx, "blackjack", game.bet, 0)
            await ctx.send(f"💥 You busted with {game.player_total}! You lost {helpers.format_coins(game.bet)}.")
            return
        await ctx.send(embed=helpers.make_embed("🃏 Blackjack", _hand_text(game, reveal=False), colour=helpers.COLOUR_INFO))

    @commands.command(name="stand")
    @feature_enabled("gambling_enabled")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def stand(self, ctx: ToadleContext):
        game = self._open_game(ctx)
        del self.games[str(ctx.author.id)]
        outcome = game.stand()
        net = self._settle(ctx, "blackjack", game.bet, game.payout())
        if outcome == "win":
            text, colour = f"🎉 You win {helpers.format_coins(net)}!", helpers.COLOUR_OK
        elif outcome == "push":
            text, colour = "🤝 Push. Your bet was returned.", helpers.COLOUR_WARN
        else:
            text, colour = f"😢 Dealer wins. You lost {helpers.format_coins(game.bet)}.", helpers.COLOUR_BAD
        await ctx.send(embed=helpers.make_embed("🃏 Blackjack", f"{_hand_text(game, reveal=True)}\n\n{text}", colour=colour))

    @commands.command(name="roulette", usage="roulette <red|black|even|odd|0-36> <amount>")
    @commands.guild_only()
    @feature_enabled("gambling_enabled")
    @commands.cooldown(1, 15, commands.BucketType.user)
    async def roulette(self, ctx: ToadleContext, bet: str, amount: int):
        choice = games.parse_roulette_bet(bet)
        if choice is None:
            raise CommandFailed("Bet on red, black, even, odd or a number from 0 to 36.")
        stake = _bet(amount)
        _take_stake(ctx, stake)
        number = games.spin_roulette(ctx.core.rng)
        payout = games.roulette_payout(choice, number, stake)
        net = self._settle(ctx, "roulette", stake, payout)
        colour = games.roulette_colour(number)
        if payout:
            text = f"The ball landed on **{number} ({colour})**. You win {helpers.format_coins(net)}!"
        else:
            text = f"The ball landed on **{number} ({colour})**. You lost {helpers.format_coins(stake)}."
        await ctx.send(f"🎡 {text}")

    @commands.command(name="slots", usage="slots <bet>")
    @commands.guild_only()
    @feature_enabled("gambling_enabled")
    @commands.cooldown(1, 30, commands.BucketType.user)
    async def slots(self, ctx: ToadleContext, bet: int):
        stake = _bet(bet)
        _take_stake(ctx, stake)
        reels = games.spin_slots(ctx.core.rng)
        multiplier = games.slots_multiplier(reels)
        net = self._settle(ctx, "slots", stake, stake * multiplier)
        line = " | ".join(reels)
        if multiplier:
            text = f"{line}\nx{multiplier}! You win {helpers.format_coins(net)}."
        else:
            text = f"{line}\nNo luck. You lost {helpers.format_coins(stake)}."
        await ctx.send(f"🎰 {text}")


async def setup(bot: commands.Bot):
    await bot.add_cog(Gambling(bot))
