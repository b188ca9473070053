import pytest
from pydantic import ValidationError

from toadle_bot.utils.guild_config import GuildConfigManager, FEATURES, VALIDATORS
from toadle_bot.utils.models import CrimeSettings, EconomySettings, InvestSettings
from toadle_bot.utils.store import EntityStore


def make_config():
    return GuildConfigManager(EntityStore(), default_prefix="!")


def test_defaults_created_on_first_access():
    config = make_config()
    cfg = config.get(42)
    assert cfg.guild_id == "42"
    assert cfg.prefix == "!"
    assert cfg.economy.crime.success_chance == 0.85
    assert config.store.guilds["42"] is cfg
    assert config.prefix(None) == "!"


@pytest.mark.parametrize("value,ok", [("?", True), ("tt!", True), ("", False), ("toad", False), ("a b", False)])
def test_prefix_validation(value, ok):
    config = make_config()
    assert config.update("1", "prefix", value) is ok
    assert config.prefix("1") == (value if ok else "!")


def test_probability_and_interest():
    config = make_config()
    assert config.update("1", "economy.crime.success_chance", 0.5)
    assert not config.update("1", "economy.crime.success_chance", 1.5)
    assert not config.update("1", "economy.invest.fail_chance", "lots")
    assert config.update("1", "economy.bank_interest_rate", "0.05")
    eco = config.get("1").economy
    assert eco.crime.success_chance == 0.5
    assert eco.bank_interest_rate == 0.05


def test_ranges_take_both_bounds():
    config = make_config()
    assert config.update_range("1", "economy.earn_range", 5, 80)
    assert config.get("1").economy.earn_range == (5, 80)
    assert not config.update_range("1", "economy.earn_range", 0, 10)
    assert not config.update_range("1", "economy.earn_range", 50, 10)
    assert not config.update_range("1", "economy.earn_range", 1, 5000)
    assert config.update_range("1", "economy.invest.multiplier_range", 1.2, 2.5)
    assert config.get("1").economy.earn_range == (5, 80)


def test_channels_roles_and_unknown_paths():
    config = make_config()
    assert config.update("1", "channels.logs", 1234567890)
    assert config.get("1").channels.logs == "1234567890"
    assert config.update("1", "channels.logs", None)
    assert config.get("1").channels.logs is None
    assert not config.update("1", "channels.logs", "#general")
    assert config.update("1", "roles.admin_role", "  Toad Council ")
    assert config.get("1").roles.admin_role == "Toad Council"
    assert not config.update("1", "roles.admin_role", "x" * 101)
    assert not config.update("1", "economy.secret_sauce", 1)


def test_feature_toggles():
    config = make_config()
    assert set(FEATURES) == {"welcome_messages", "leave_messages", "economy_enabled", "gambling_enabled"}
    assert config.is_feature_enabled("1", "gambling_enabled")
    assert config.update("1", "features.gambling_enabled", "off")
    assert not config.is_feature_enabled("1", "gambling_enabled")
    assert not config.update("1", "features.gambling_enabled", "maybe")
    # DMs have no guild config, so nothing is disabled there
    assert config.is_feature_enabled(None, "gambling_enabled")


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), "nan", "inf"])
def test_non_finite_values_are_rejected(bad):
    config = make_config()
    assert not config.update("1", "economy.crime.success_chance", bad)
    assert not config.update("1", "economy.bank_interest_rate", bad)
    assert not config.update_range("1", "economy.invest.multiplier_range", 1.5, bad)
    assert not config.update_range("1", "economy.invest.multiplier_range", bad, 2.0)
    assert not config.update_range("1", "economy.earn_range", 1, bad)
    assert not config.update_range("1", "economy.crime.reward_range", bad, 10)
    eco = config.get("1").economy
    assert eco.crime.success_chance == 0.85
    assert eco.invest.multiplier_range == (1.5, 3.0)
    assert eco.earn_range == (1, 50)
    assert eco.crime.reward_range == (10, 109)


def test_settings_models_validate_assignment():
    invest = InvestSettings()
    with pytest.raises(ValidationError):
        invest.multiplier_range = (float("nan"), 2.0)
    with pytest.raises(ValidationError):
        invest.multiplier_range = (0.0, 2.0)
    with pytest.raises(ValidationError):
        invest.fail_chance = float("inf")
    crime = CrimeSettings()
    with pytest.raises(ValidationError):
        crime.success_chance = 1.5
    with pytest.raises(ValidationError):
        crime.fine_range = (20, 10)
    eco = EconomySettings()
    with pytest.raises(ValidationError):
        eco.earn_range = (0, 10)
    with pytest.raises(ValidationError):
        eco.bank_interest_rate = -0.1
    assert invest.multiplier_range == (1.5, 3.0)


def test_model_rejection_leaves_config_untouched(monkeypatch):
    config = make_config()
    monkeypatch.setitem(VALIDATORS, "economy.crime.success_chance", lambda v: v)
    assert not config.update("1", "economy.crime.success_chance", 2.0)
    assert not config.update("1", "economy.crime.success_chance", float("nan"))
    assert config.get("1").economy.crime.success_chance == 0.85


def test_intday_reminder_channel_is_configurable():
    config = make_config()
    assert config.update("1", "channels.intday_reminder", "123456789012345678")
    assert config.get("1").channels.intday_reminder == "123456789012345678"
