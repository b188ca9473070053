"""Pydantic models for Toadle domain records.

Every collection in the entity store holds instances of these models. Ids
are Discord snowflakes rendered as strings so they round-trip through JSON
object keys unchanged.
"""
from __future__ import annotations
from typing import Optional, Dict, List, Any, Tuple
import time
import uuid
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _now() -> float:
    return time.time()


class UserAccount(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    user_id: str
    balance: int = Field(0, ge=0)
    bank_balance: int = Field(0, ge=0)
    total_earned: int = Field(0, ge=0)
    inventory: Dict[str, int] = Field(default_factory=dict)
    referrals: int = 0
    # home guild: interest sweeps and nukes are scoped by it
    guild_id: Optional[str] = None
    last_daily: Optional[float] = None
    last_weekly: Optional[float] = None
    last_earn: Optional[float] = None
    last_bank_activity: Optional[float] = None
    joined_at: float = Field(default_factory=_now)
    bio: str = ""
    links: Dict[str, str] = Field(default_factory=dict)
    badges: List[str] = Field(default_factory=list)


class CatalogItem(BaseModel):
    key: str
    name: str
    price: int = Field(0, ge=0)
    description: str = ""
    emoji: str = ""
    # None for items every guild shares
    guild_id: Optional[str] = None


class Listing(BaseModel):
    listing_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    seller_id: str
    guild_id: str
    item_key: str
    quantity: int = Field(..., gt=0)
    price: int = Field(..., gt=0)
    created_at: float = Field(default_factory=_now)


class InviteRegistration(BaseModel):
    code: str
    inviter_id: str
    registered_at: float = Field(default_factory=_now)
    uses: int = 0


def _check_range(value: tuple, floor: float) -> tuple:
    lo, hi = value
    if lo < floor or hi < lo:
        raise ValueError(f"range must satisfy {floor} <= min <= max")
    return value


class _Settings(BaseModel):
    # settings are edited in place by configset, so every assignment is checked
    model_config = ConfigDict(validate_assignment=True, allow_inf_nan=False)


class CrimeSettings(_Settings):
    success_chance: float = Field(0.85, ge=0, le=1)
    reward_range: Tuple[int, int] = (10, 109)
    fine_range: Tuple[int, int] = (10, 59)

    @field_validator("reward_range", "fine_range")
    @classmethod
    def _positive_range(cls, value):
        return _check_range(value, 1)


class InvestSettings(_Settings):
    fail_chance: float = Field(0.25, ge=0, le=1)
    multiplier_range: Tuple[float, float] = (1.5, 3.0)

    @field_validator("multiplier_range")
    @classmethod
    def _positive_multiplier(cls, value):
        if value[0] <= 0:
            raise ValueError("multiplier must be positive")
        return _check_range(value, 0)


class EconomySettings(_Settings):
    earn_range: Tuple[int, int] = (1, 50)
    crime: CrimeSettings = Field(default_factory=CrimeSettings)
    invest: InvestSettings = Field(default_factory=InvestSettings)
    daily_bonus: Tuple[int, int] = (50, 100)
    bank_interest_rate: float = Field(0.02, ge=0, le=1)

    @field_validator("earn_range", "daily_bonus")
    @classmethod
    def _positive_range(cls, value):
        return _check_range(value, 1)


class ChannelSettings(BaseModel):
    welcome: Optional[str] = None
    leave: Optional[str] = None
    logs: Optional[str] = None
    interest_notification: Optional[str] = None
    intday_reminder: Optional[str] = None


class RoleSettings(BaseModel):
    admin_role: str = "Admin"
    moderator_role: str = "Moderator"


class FeatureSettings(BaseModel):
    welcome_messages: bool = True
    leave_messages: bool = True
    economy_enabled: bool = True
    gambling_enabled: bool = True


class GuildConfig(BaseModel):
    guild_id: str
    prefix: str = "!"
    economy: EconomySettings = Field(default_factory=EconomySettings)
    channels: ChannelSettings = Field(default_factory=ChannelSettings)
    roles: RoleSettings = Field(default_factory=RoleSettings)
    features: FeatureSettings = Field(default_factory=FeatureSettings)


class Giveaway(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    giveaway_id: str
    guild_id: str
    channel_id: str
    message_id: Optional[str] = None
    host_id: str
    prize: str = ""
    currency_amount: int = Field(0, ge=0)
    winner_count: int = Field(1, ge=1)
    ends_at: float
    ended: bool = False
    entrants: List[str] = Field(default_factory=list)
    winners: List[str] = Field(default_factory=list)


class WarningRecord(BaseModel):
    warning_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    guild_id: str
    user_id: str
    moderator_id: str
    moderator_name: str = ""
    reason: str = "No reason provided"
    timestamp: float = Field(default_factory=_now)


class ModLogEntry(BaseModel):
    log_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    guild_id: str
    action: str
    target_id: str
    target_name: str = ""
    moderator_id: str
    moderator_name: str = ""
    reason: str = "No reason provided"
    timestamp: float = Field(default_factory=_now)
    warning_id: Optional[str] = None


def jsonb_serialize(obj: BaseModel) -> Dict[str, Any]:
    """Serialize a pydantic model to a JSON-ready dict."""
    return obj.model_dump(mode="json")


def jsonb_deserialize(model_cls, data: Dict[str, Any]):
    """Deserialize data (dict) into a pydantic model instance."""
    return model_cls.model_validate(data)
