import pytest
from discord.ext import commands

from conftest import GUILD
from toadle_bot.cogs.economy.bank import Bank
from toadle_bot.cogs.economy.marketplace import Marketplace
from toadle_bot.cogs.referral.referral import Referral
from toadle_bot.utils import referrals
from toadle_bot.utils.core import EconomyCore
from toadle_bot.utils.models import CatalogItem


def make_core(tmp_path):
    core = EconomyCore(data_dir=tmp_path, referral_bonus=50)
    core.ledger.add_catalog_item(CatalogItem(key="widget", name="Widget", price=25))
    return core


def test_scenario_against_the_core(tmp_path):
    core = make_core(tmp_path)
    ledger = core.ledger
    ledger.get_or_create_account("A", GUILD)
    ledger.credit("A", 100)

    assert core.bank.deposit("A", 40).success
    a = ledger.peek_account("A")
    assert (a.balance, a.bank_balance) == (60, 40)

    result = core.bank.withdraw("A", 100)
    assert not result.success
    assert result.message.startswith("Insufficient bank balance")
    assert (a.balance, a.bank_balance) == (60, 40)

    ledger.add_inventory("B", "widget", 5)
    b_before = ledger.balance("B")
    listing = core.market.create_listing("B", GUILD, "widget", 5, 10)
    purchase = core.market.purchase("A", GUILD, listing.listing_id, 2)
    assert purchase.success
    assert a.balance == 40
    assert ledger.item_quantity("A", "widget") == 2
    assert ledger.balance("B") == b_before + 20
    assert core.market.get_listing(listing.listing_id).quantity == 3

    core.referrals.register_invite("toadcode", "B")
    claim = core.referrals.claim("toadcode", "A")
    assert claim.success
    assert ledger.balance("B") == b_before + 20 + 50
    assert core.referrals.has_claimed("A")
    for code in ("toadcode", "anything"):
        assert core.referrals.claim(code, "A").reason == referrals.ALREADY_CLAIMED


@pytest.mark.asyncio
async def test_scenario_through_commands(harness):
    core = harness.core
    core.ledger.add_catalog_item(CatalogItem(key="widget", name="Widget", price=25))
    await harness.load(Bank, Marketplace, Referral)
    alice = harness.user(1, "Alice")
    bob = harness.user(2, "Bob")

    core.ledger.get_or_create_account(alice.id, GUILD)
    core.ledger.credit(alice.id, 100)
    core.ledger.add_inventory(bob.id, "widget", 5)

    assert (await harness.run(alice, "!deposit 40")).ok
    res = await harness.run(alice, "!withdraw 100")
    assert res.reply == "❌ Insufficient bank balance. You have 40 coins in bank."
    account = core.ledger.peek_account(alice.id)
    assert (account.balance, account.bank_balance) == (60, 40)

    assert (await harness.run(bob, "!listitem widget 5 10")).ok
    listing = next(iter(core.store.listings.values()))
    assert (await harness.run(alice, f"!buy {listing.listing_id} 2")).ok
    assert account.balance == 40
    assert account.inventory == {"widget": 2}
    assert listing.quantity == 3
    assert core.ledger.balance(bob.id) == 20

    assert (await harness.run(bob, "!reginvurl https://discord.gg/toadcode")).ok
    assert (await harness.run(alice, "!claiminvite toadcode")).ok
    assert core.ledger.balance(bob.id) == 70
    assert len(bob.dms) == 1

    # a second claim is refused by the ledger, not just the cooldown
    res = await harness.run(alice, "!claim toadcode")
    assert res.reply.startswith("❌ You have already claimed a referral bonus!")
    assert core.ledger.balance(bob.id) == 70


@pytest.mark.asyncio
async def test_bank_amount_parsing(harness):
    await harness.load(Bank)
    alice = harness.user(1, "Alice")
    harness.core.ledger.credit(alice.id, 50)

    res = await harness.run(alice, "!dep lots")
    assert res.reply == "❌ Usage: `!deposit <amount|all>`"
    assert (await harness.run(alice, "!dep all")).ok
    assert harness.core.ledger.peek_account(alice.id).bank_balance == 50
    res = await harness.run(alice, "!deposit")
    assert isinstance(res.error, commands.MissingRequiredArgument)
