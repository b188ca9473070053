import pytest

from toadle_bot.utils import referrals
from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.referrals import ReferralLedger
from toadle_bot.utils.store import EntityStore


def make_referrals(bonus=50):
    ledger = UserLedger(EntityStore())
    return ledger, ReferralLedger(ledger, bonus=bonus)


@pytest.mark.parametrize("text,expected", [
    ("abc123", "abc123"),
    ("https://discord.gg/abc123", "abc123"),
    ("discord.com/invite/XyZ9", "XyZ9"),
    ("https://discordapp.com/invite/hello?x=1", "hello"),
    ("a", None),
    ("not a code", None),
    ("", None),
])
def test_parse_invite_code(text, expected):
    assert referrals.parse_invite_code(text) == expected


def test_register_keeps_first_owner():
    _, refs = make_referrals()
    assert refs.register_invite("abc", "b").status == referrals.REGISTERED
    assert refs.register_invite("abc", "b").status == referrals.ALREADY_YOURS
    result = refs.register_invite("abc", "c")
    assert result.status == referrals.TAKEN
    assert not result.success
    assert refs.get_invite_owner("abc") == "b"
    assert [r.code for r in refs.invites_for("b")] == ["abc"]


def test_claim_at_most_once():
    ledger, refs = make_referrals()
    refs.register_invite("abc", "b")
    refs.register_invite("def", "c")

    result = refs.claim("abc", "a")
    assert result.success
    assert result.inviter_id == "b"
    assert ledger.balance("b") == 50
    assert ledger.peek_account("b").referrals == 1
    assert refs.has_claimed("a")

    for code in ("abc", "def", "missing"):
        again = refs.claim(code, "a")
        assert not again.success
        assert again.reason == referrals.ALREADY_CLAIMED
    assert ledger.balance("b") == 50
    assert ledger.balance("c") == 0
    assert ledger.store.invites["abc"].uses == 1


def test_claim_unknown_code():
    _, refs = make_referrals()
    result = refs.claim("ghost", "a")
    assert result.reason == referrals.INVALID_CODE
    assert not refs.has_claimed("a")


def test_self_referral_rejected_without_consuming_claim():
    ledger, refs = make_referrals()
    refs.register_invite("mine", "a")
    result = refs.claim("mine", "a")
    assert result.reason == referrals.SELF_REFERRAL
    assert not refs.has_claimed("a")
    assert ledger.balance("a") == 0


def test_zero_bonus_still_records_referral():
    ledger, refs = make_referrals(bonus=0)
    refs.register_invite("abc", "b")
    assert refs.claim("abc", "a").success
    assert ledger.balance("b") == 0
    assert ledger.peek_account("b").referrals == 1
