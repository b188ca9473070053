"""Game rules for gambling and earning commands.

Everything here is pure: callers pass a `random.Random` (or anything with the
same interface) and apply the returned payouts through the ledger. Payouts
are the total returned to the player after the stake was taken, so a losing
round pays 0 and a push pays back exactly the stake.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

SUITS = ("♠", "♥", "♦", "♣")
RANKS = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")

RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
SLOT_SYMBOLS = ("🍒", "🍋", "🍊", "🍇", "⭐", "🔔")

WEEKLY_RANGE = (100, 500)
INVEST_MINIMUM = 10
INVEST_LOSS_RANGE = (0.5, 1.0)


# ----- blackjack
def new_deck(rng: random.Random) -> List[str]:
    deck = [rank + suit for suit in SUITS for rank in RANKS]
    rng.shuffle(deck)
    return deck


def card_value(card: str) -> int:
    rank = card[:-1]
    if rank in ("J", "Q", "K"):
        return 10
    if rank == "A":
        return 11
    return int(rank)


def hand_value(hand: Sequence[str]) -> int:
    """Best total for a hand, counting aces as 1 where 11 would bust."""
    total = sum(card_value(c) for c in hand)
    aces = sum(1 for c in hand if c.startswith("A"))
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total


@dataclass
class BlackjackGame:
    bet: int
    deck: List[str]
    player: List[str] = field(default_factory=list)
    dealer: List[str] = field(default_factory=list)
    finished: bool = False
    outcome: Optional[str] = None
    guild_id: Optional[str] = None

    @classmethod
    def deal(cls, bet: int, rng: random.Random, guild_id: Optional[str] = None) -> "BlackjackGame":
        deck = new_deck(rng)
        game = cls(bet=bet, deck=deck, guild_id=guild_id)
        game.player = [deck.pop(), deck.pop()]
        game.dealer = [deck.pop(), deck.pop()]
        return game

    @property
    def player_total(self) -> int:
        return hand_value(self.player)

    @property
    def dealer_total(self) -> int:
        return hand_value(self.dealer)

    def hit(self) -> str:
        """Draw a card for the player. Returns "playing" or "bust"."""
        if self.finished:
            raise RuntimeError("game already finished")
        self.player.append(self.deck.pop())
        if self.player_total > 21:
            self.finished = True
            self.outcome = "bust"
        return self.outcome or "playing"

    def stand(self) -> str:
        """Play out the dealer (draws to 17) and settle the hand."""
        if self.finished:
            raise RuntimeError("game already finished")
        while self.dealer_total < 17:
            self.dealer.append(self.deck.pop())
        player, dealer = self.player_total, self.dealer_total
        if dealer > 21 or player > dealer:
            self.outcome = "win"
        elif player == dealer:
            self.outcome = "push"
        else:
            self.outcome = "lose"
        self.finished = True
        return self.outcome

    def payout(self) -> int:
        if self.outcome == "win":
            return self.bet * 2
        if self.outcome == "push":
            return self.bet
        return 0


# ----- roulette
def parse_roulette_bet(choice: str) -> Optional[str]:
    """Normalise a roulette bet. Returns None if it isn't one we accept."""
    choice = choice.lower()
    if choice in ("red", "black", "even", "odd"):
        return choice
    if choice.isdigit() and 0 <= int(choice) <= 36:
        return str(int(choice))
    return None


def roulette_colour(number: int) -> str:
    if number == 0:
        return "green"
    return "red" if number in RED_NUMBERS else "black"


def roulette_payout(choice: str, number: int, stake: int) -> int:
    """Total returned for a winning bet: 35 to 1 on a number, 2 to 1 outside."""
    if choice.isdigit():
        return stake * 36 if int(choice) == number else 0
    if number == 0:
        return 0
    if choice in ("red", "black"):
        return stake * 3 if roulette_colour(number) == choice else 0
    if choice == "even":
        return stake * 3 if number % 2 == 0 else 0
    if choice == "odd":
        return stake * 3 if number % 2 == 1 else 0
    return 0


def spin_roulette(rng: random.Random) -> int:
    return rng.randint(0, 36)


# ----- slots
def spin_slots(rng: random.Random) -> Tuple[str, str, str]:
    return tuple(rng.choice(SLOT_SYMBOLS) for _ in range(3))


def slots_multiplier(reels: Sequence[str]) -> int:
    a, b, c = reels
    if a == b == c:
        return 10
    if a == b or b == c or a == c:
        return 3
    if "⭐" in reels:
        return 2
    return 0


# ----- earning
def roll_range(rng: random.Random, bounds: Tuple[int, int]) -> int:
    lo, hi = bounds
    return rng.randint(int(lo), int(hi))


@dataclass
class CrimeOutcome:
    success: bool
    amount: int


def commit_crime(rng: random.Random, success_chance: float, reward_range, fine_range, wallet: int) -> CrimeOutcome:
    """Roll a crime. Fines never exceed the current wallet."""
    if rng.random() < success_chance:
        return CrimeOutcome(True, roll_range(rng, reward_range))
    return CrimeOutcome(False, min(wallet, roll_range(rng, fine_range)))


@dataclass
class InvestOutcome:
    success: bool
    returned: int
    multiplier: float


def invest(rng: random.Random, stake: int, fail_chance: float, multiplier_range) -> InvestOutcome:
    """Resolve an investment of `stake` coins that were already taken.

    A failed investment returns between 0% and 50% of the stake; a
    successful one returns stake * multiplier.
    """
    if rng.random() < fail_chance:
        loss = rng.uniform(*INVEST_LOSS_RANGE)
        return InvestOutcome(False, int(stake * (1 - loss)), 0.0)
    lo, hi = multiplier_range
    multiplier = round(rng.uniform(lo, hi), 2)
    return InvestOutcome(True, int(stake * multiplier), multiplier)
