"""Per-guild configuration with validated dotted-path updates."""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict

from pydantic import ValidationError

from toadle_bot.utils.models import GuildConfig
from toadle_bot.utils.store import EntityStore

logger = logging.getLogger("toadle.guild_config")


def _prefix(value: Any) -> str:
    if not isinstance(value, str) or not 1 <= len(value) <= 3 or any(c.isspace() for c in value):
        raise ValueError("Prefix must be 1-3 characters without spaces")
    return value


def _probability(value: Any) -> float:
    value = float(value)
    if not math.isfinite(value) or not 0 <= value <= 1:
        raise ValueError("Value must be between 0 and 1")
    return value


def _finite_pair(value: Any) -> tuple:
    lo, hi = (float(v) for v in value)
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise ValueError("Range bounds must be finite numbers")
    return lo, hi


def _int_range(upper: int = 1_000_000) -> Callable[[Any], tuple]:
    def check(value: Any) -> tuple:
        lo, hi = _finite_pair(value)
        lo, hi = int(lo), int(hi)
        if lo < 1 or hi < lo:
            raise ValueError("Minimum must be at least 1 and maximum must not be below minimum")
        if hi > upper:
            raise ValueError(f"Maximum must be at most {upper}")
        return (lo, hi)
    return check


def _float_range(value: Any) -> tuple:
    lo, hi = _finite_pair(value)
    if lo <= 0 or hi < lo:
        raise ValueError("Minimum must be positive and maximum must not be below minimum")
    return (lo, hi)


def _channel(value: Any):
    if value is None:
        return None
    value = str(value)
    if not value.isdigit():
        raise ValueError("Channel must be a channel id")
    return value


def _role_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip() or len(value) > 100:
        raise ValueError("Role name must be 1-100 characters")
    return value.strip()


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).lower()
    if lowered in ("true", "on", "yes", "1"):
        return True
    if lowered in ("false", "off", "no", "0"):
        return False
    raise ValueError("Value must be true or false")


VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "prefix": _prefix,
    "economy.earn_range": _int_range(1000),
    "economy.daily_bonus": _int_range(),
    "economy.crime.success_chance": _probability,
    "economy.crime.reward_range": _int_range(),
    "economy.crime.fine_range": _int_range(),
    "economy.invest.fail_chance": _probability,
    "economy.invest.multiplier_range": _float_range,
    "economy.bank_interest_rate": _probability,
    "channels.welcome": _channel,
    "channels.leave": _channel,
    "channels.logs": _channel,
    "channels.interest_notification": _channel,
    "channels.intday_reminder": _channel,
    "roles.admin_role": _role_name,
    "roles.moderator_role": _role_name,
    "features.welcome_messages": _flag,
    "features.leave_messages": _flag,
    "features.economy_enabled": _flag,
    "features.gambling_enabled": _flag,
}

FEATURES = tuple(p.split(".", 1)[1] for p in VALIDATORS if p.startswith("features."))


class GuildConfigManager:
    def __init__(self, store: EntityStore, default_prefix: str = "!"):
        self.store = store
        self.default_prefix = default_prefix

    def get(self, guild_id) -> GuildConfig:
        gid = str(guild_id)
        config = self.store.guilds.get(gid)
        if config is None:
            config = GuildConfig(guild_id=gid, prefix=self.default_prefix)
            self.store.guilds[gid] = config
        return config

    def prefix(self, guild_id) -> str:
        if guild_id is None:
            return self.default_prefix
        return self.get(guild_id).prefix

    def update(self, guild_id, path: str, value: Any) -> bool:
        """Set a dotted-path field after validating it.

        Returns False, leaving the config untouched, for unknown paths or
        rejected values.
        """
        validator = VALIDATORS.get(path)
        if validator is None:
            return False
        try:
            normalized = validator(value)
        except (ValueError, TypeError, OverflowError) as exc:
            logger.debug("Rejected %s=%r for guild %s: %s", path, value, guild_id, exc)
            return False
        *parents, leaf = path.split(".")
        target: Any = self.get(guild_id)
        for part in parents:
            target = getattr(target, part)
        try:
            setattr(target, leaf, normalized)
        except ValidationError as exc:
            logger.debug("Model rejected %s=%r for guild %s: %s", path, normalized, guild_id, exc.errors()[:1])
            return False
        logger.info("Guild %s config %s set to %r", guild_id, path, normalized)
        return True

    def update_range(self, guild_id, path: str, low, high) -> bool:
        return self.update(guild_id, path, (low, high))

    def is_feature_enabled(self, guild_id, feature: str) -> bool:
        if guild_id is None:
            return True
        return getattr(self.get(guild_id).features, feature, True) is not False
