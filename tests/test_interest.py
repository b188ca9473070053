from toadle_bot.utils.core import EconomyCore
from toadle_bot.utils.interest import apply_daily_interest


def make_core(tmp_path):
    core = EconomyCore(data_dir=tmp_path)
    for uid, gid, amount in (("a", "g1", 1000), ("b", "g2", 1000), ("c", "g1", 0)):
        core.ledger.get_or_create_account(uid, gid)
        if amount:
            core.ledger.credit(uid, amount)
            core.bank.deposit(uid, amount)
    return core


def test_each_guild_uses_its_own_rate(tmp_path):
    core = make_core(tmp_path)
    assert core.config.update("g2", "economy.bank_interest_rate", 0.1)

    results = apply_daily_interest(core, ["g1", "g2"])
    assert results["g1"].total_interest == 20
    assert results["g1"].accounts_touched == 1
    assert results["g2"].total_interest == 100
    assert core.ledger.peek_account("a").bank_balance == 1020
    assert core.ledger.peek_account("b").bank_balance == 1100
    assert core.ledger.peek_account("c").bank_balance == 0


def test_disabled_economy_is_skipped(tmp_path):
    core = make_core(tmp_path)
    assert core.config.update("g1", "features.economy_enabled", False)
    results = apply_daily_interest(core, [1, "g1"])
    assert "g1" not in results
    assert core.ledger.peek_account("a").bank_balance == 1000


def test_interest_never_decreases_bank(tmp_path):
    core = make_core(tmp_path)
    before = {uid: acc.bank_balance for uid, acc in core.store.users.items()}
    assert core.config.update("g1", "economy.bank_interest_rate", 0)
    apply_daily_interest(core, ["g1", "g2"])
    for uid, acc in core.store.users.items():
        assert acc.bank_balance >= before[uid]
