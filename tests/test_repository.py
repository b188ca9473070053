import json

import pytest

from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.marketplace import MarketplaceEngine
from toadle_bot.utils.models import CatalogItem
from toadle_bot.utils.referrals import ReferralLedger
from toadle_bot.utils.repository import JsonFileRepository
from toadle_bot.utils.store import EntityStore, COLLECTIONS


def populated_store():
    store = EntityStore()
    ledger = UserLedger(store)
    ledger.add_catalog_item(CatalogItem(key="widget", name="Widget", price=25))
    ledger.get_or_create_account("a", "g1")
    ledger.credit("a", 75)
    ledger.add_inventory("b", "widget", 4)
    MarketplaceEngine(ledger).create_listing("b", "g1", "widget", 2, 9)
    refs = ReferralLedger(ledger)
    refs.register_invite("abc", "b")
    refs.claim("abc", "a")
    return store


def test_snapshot_is_a_detached_copy():
    store = populated_store()
    snap = store.snapshot()
    store.users["a"].balance = 1
    assert snap["users"]["a"]["balance"] == 75
    assert snap["claimed"] == ["a"]
    assert set(snap) == set(COLLECTIONS)


@pytest.mark.asyncio
async def test_json_round_trip(tmp_path):
    repo = JsonFileRepository(tmp_path)
    store = populated_store()
    await repo.save(store)
    for name in COLLECTIONS:
        assert repo.path_for(name).exists()

    loaded = await repo.load()
    assert loaded.snapshot() == store.snapshot()
    assert loaded.users["a"].guild_id == "g1"
    assert "a" in loaded.claimed
    listing = next(iter(loaded.listings.values()))
    assert listing.quantity == 2


@pytest.mark.asyncio
async def test_missing_directory_loads_empty(tmp_path):
    loaded = await JsonFileRepository(tmp_path / "nothing-here").load()
    assert loaded.memory_stats() == {name: 0 for name in COLLECTIONS}


@pytest.mark.asyncio
async def test_corrupt_file_and_invalid_records_are_skipped(tmp_path):
    repo = JsonFileRepository(tmp_path)
    await repo.save(populated_store())
    repo.path_for("listings").write_text("{not json", encoding="utf-8")
    users = json.loads(repo.path_for("users").read_text(encoding="utf-8"))
    users["broken"] = {"user_id": "broken", "balance": -5}
    repo.path_for("users").write_text(json.dumps(users), encoding="utf-8")

    loaded = await repo.load()
    assert loaded.listings == {}
    assert "broken" not in loaded.users
    assert loaded.users["a"].balance == 75


@pytest.mark.asyncio
async def test_backup_copies_current_files(tmp_path):
    repo = JsonFileRepository(tmp_path)
    await repo.save(populated_store())
    target = await repo.backup()
    assert target.parent == tmp_path / "backups"
    assert (target / "users.json").exists()


def test_clear_guild_economy():
    store = populated_store()
    ledger = UserLedger(store)
    ledger.get_or_create_account("outsider", "g2")
    ledger.credit("outsider", 10)
    ledger.add_catalog_item(CatalogItem(key="pin", name="Pin", price=5, guild_id="g1"))

    counts = store.clear_guild_economy("g1")
    assert counts == {"accounts": 1, "listings": 1, "items": 1, "giveaways": 0}
    assert store.users["a"].balance == 0
    assert store.users["a"].total_earned == 0
    assert store.users["outsider"].balance == 10
    assert "widget" in store.items
    # referral history survives a wipe
    assert "a" in store.claimed
