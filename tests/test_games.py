import random

import pytest

from toadle_bot.utils import games


def test_hand_value_softens_aces():
    assert games.hand_value(["A♠", "K♥"]) == 21
    assert games.hand_value(["A♠", "A♥", "9♦"]) == 21
    assert games.hand_value(["A♠", "A♥", "A♦", "A♣"]) == 14
    assert games.hand_value(["K♠", "Q♥", "5♦"]) == 25


def test_new_deck_is_full_and_seeded():
    deck = games.new_deck(random.Random(7))
    assert len(deck) == 52
    assert len(set(deck)) == 52
    assert deck == games.new_deck(random.Random(7))


def _rigged(player, dealer, rest=()):
    # deal() pops from the end: player, player, dealer, dealer
    deck = list(rest) + [dealer[1], dealer[0], player[1], player[0]]
    game = games.BlackjackGame(bet=10, deck=deck)
    game.player = [deck.pop(), deck.pop()]
    game.dealer = [deck.pop(), deck.pop()]
    return game


def test_blackjack_dealer_draws_to_17_and_settles():
    game = _rigged(["10♠", "9♥"], ["10♦", "6♣"], rest=["K♠"])
    assert game.stand() == "win"
    assert game.dealer_total == 26
    assert game.payout() == 20

    game = _rigged(["10♠", "7♥"], ["10♦", "7♣"])
    assert game.stand() == "push"
    assert game.payout() == 10

    game = _rigged(["10♠", "6♥"], ["10♦", "8♣"])
    assert game.stand() == "lose"
    assert game.payout() == 0


def test_blackjack_bust():
    game = _rigged(["10♠", "9♥"], ["10♦", "8♣"], rest=["5♠"])
    assert game.hit() == "bust"
    assert game.payout() == 0
    with pytest.raises(RuntimeError):
        game.stand()


def test_deal_uses_rng():
    game = games.BlackjackGame.deal(25, random.Random(1))
    assert len(game.player) == 2 and len(game.dealer) == 2
    assert len(game.deck) == 48


@pytest.mark.parametrize("text,expected", [("RED", "red"), ("odd", "odd"), ("07", "7"), ("36", "36"), ("37", None), ("green", None)])
def test_parse_roulette_bet(text, expected):
    assert games.parse_roulette_bet(text) == expected


def test_roulette_payouts():
    assert games.roulette_payout("17", 17, 10) == 360
    assert games.roulette_payout("17", 18, 10) == 0
    assert games.roulette_payout("0", 0, 10) == 360
    assert games.roulette_payout("red", 1, 10) == 30
    assert games.roulette_payout("black", 1, 10) == 0
    assert games.roulette_payout("even", 2, 10) == 30
    assert games.roulette_payout("odd", 2, 10) == 0
    for choice in ("red", "black", "even", "odd"):
        assert games.roulette_payout(choice, 0, 10) == 0
    assert games.roulette_colour(0) == "green"


def test_slots_multiplier():
    assert games.slots_multiplier(("🍒", "🍒", "🍒")) == 10
    assert games.slots_multiplier(("🍒", "🍋", "🍒")) == 3
    assert games.slots_multiplier(("⭐", "🍋", "🍒")) == 2
    assert games.slots_multiplier(("🍇", "🍋", "🍒")) == 0
    reels = games.spin_slots(random.Random(3))
    assert len(reels) == 3 and all(r in games.SLOT_SYMBOLS for r in reels)


def test_crime_fine_is_clamped_to_wallet():
    rng = random.Random(0)
    for _ in range(50):
        outcome = games.commit_crime(rng, 0.0, (10, 109), (10, 59), wallet=5)
        assert not outcome.success
        assert 0 <= outcome.amount <= 5
    outcome = games.commit_crime(rng, 1.0, (10, 109), (10, 59), wallet=0)
    assert outcome.success and 10 <= outcome.amount <= 109


def test_invest_outcomes():
    rng = random.Random(4)
    for _ in range(50):
        lost = games.invest(rng, 100, 1.0, (1.5, 3.0))
        assert not lost.success
        assert 0 <= lost.returned <= 50
        won = games.invest(rng, 100, 0.0, (1.5, 3.0))
        assert won.success
        assert 150 <= won.returned <= 300
        assert 1.5 <= won.multiplier <= 3.0
