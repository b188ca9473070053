import pytest

from conftest import GUILD
from toadle_bot.cogs.stats.stats import Stats
from toadle_bot.utils import statistics
from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.models import InviteRegistration, Listing
from toadle_bot.utils.store import EntityStore


def seed(ledger, guild_id):
    for uid, wallet, bank in (("1", 100, 0), ("2", 40, 200), ("3", 10, 5)):
        account = ledger.get_or_create_account(uid, guild_id)
        ledger.credit(uid, wallet)
        account.bank_balance = bank
    ledger.get_or_create_account("9", "other")
    ledger.credit("9", 1000)
    store = ledger.store
    store.listings["a"] = Listing(listing_id="a", seller_id="1", guild_id=str(guild_id), item_key="fish", quantity=2, price=10)
    store.listings["b"] = Listing(listing_id="b", seller_id="2", guild_id=str(guild_id), item_key="fish", quantity=1, price=40)
    store.listings["c"] = Listing(listing_id="c", seller_id="2", guild_id=str(guild_id), item_key="rod", quantity=1, price=75)
    store.listings["d"] = Listing(listing_id="d", seller_id="9", guild_id="other", item_key="rod", quantity=5, price=1)


def test_totals_are_scoped_by_guild():
    ledger = UserLedger(EntityStore())
    seed(ledger, 5)
    totals = statistics.economy_totals(ledger.store, 5)
    assert (totals.users, totals.total_balance, totals.total_bank, totals.total_earned) == (3, 150, 205, 150)
    assert totals.average_balance == 50
    assert statistics.economy_totals(ledger.store).users == 4
    assert statistics.economy_totals(ledger.store, 6).average_balance == 0
    assert statistics.marketplace_value(ledger.store, 5) == 135


def test_top_users_by_metric():
    ledger = UserLedger(EntityStore())
    seed(ledger, 5)
    store = ledger.store
    assert [a.user_id for a in statistics.top_users(store, "balance", guild_id=5)] == ["1", "2", "3"]
    assert [a.user_id for a in statistics.top_users(store, "networth", limit=1, guild_id=5)] == ["2"]
    assert statistics.top_users(store, "balance", limit=1)[0].user_id == "9"
    with pytest.raises(ValueError):
        statistics.top_users(store, "charisma")


def test_item_stats_and_referral_rate():
    ledger = UserLedger(EntityStore())
    seed(ledger, 5)
    fish = statistics.item_stats(ledger.store, 5)["fish"]
    assert (fish.listings, fish.quantity, fish.total_value) == (2, 3, 60)
    assert (fish.min_price, fish.max_price, fish.average_price) == (10, 40, 20)
    assert statistics.item_stats(ledger.store)["rod"].quantity == 6

    store = ledger.store
    assert statistics.referral_totals(store).claim_rate == 0
    for code in ("a", "b", "c"):
        store.invites[code] = InviteRegistration(code=code, inviter_id="1")
    store.claimed.add("2")
    assert statistics.referral_totals(store).claim_rate == 33


@pytest.mark.asyncio
async def test_stats_commands(harness):
    await harness.load(Stats)
    user = harness.user(1)

    res = await harness.run(user, "!stats top")
    assert res.reply == "📊 No accounts in this server yet."
    res = await harness.run(user, "!stats items")
    assert res.reply == "📊 No marketplace listings in this server."

    seed(harness.core.ledger, GUILD)
    res = await harness.run(user, "!serverstats")
    assert res.reply.startswith("📊 Pond Economy")
    fields = {f.name: f.value for f in res.ctx.channel.sent[-1].kwargs["embed"].fields}
    assert fields["Users"] == "3"
    assert fields["Marketplace"] == "3 listings worth 🪙 135"

    res = await harness.run(user, "!stats top bank 2")
    assert res.reply.startswith("📊 Top 2 by bank\n**1.** <@2> 200")
    res = await harness.run(user, "!stats top luck")
    assert res.reply.startswith("❌ Unknown metric.")
    res = await harness.run(user, "!stats top balance 50")
    assert res.reply == "❌ Limit must be between 1 and 25."
    res = await harness.run(user, "!stats items")
    assert res.reply.startswith("📊 Marketplace Items")


@pytest.mark.asyncio
async def test_stats_respect_the_economy_toggle(harness):
    await harness.load(Stats)
    harness.core.config.update(GUILD, "features.economy_enabled", False)
    res = await harness.run(harness.user(1), "!stats")
    assert not res.ok
    assert res.reply == "❌ This feature is disabled on this server."
