"""Small helpers and embed templates shared by the cogs."""
from typing import Dict, Optional
import math
import re
import discord

EMOJI: Dict[str, str] = {
    "coins": "🪙",
    "bank": "🏦",
    "ok": "✅",
    "error": "❌",
}

COLOUR_OK = 0x2ECC71
COLOUR_INFO = 0x3498DB
COLOUR_WARN = 0xF1C40F
COLOUR_BAD = 0xE74C3C

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")
_CHANNEL_RE = re.compile(r"^<#(\d+)>$")
_DURATION_RE = re.compile(r"(?:(?P<days>\d+)d)?(?:(?P<hours>\d+)h)?(?:(?P<minutes>\d+)m)?(?:(?P<seconds>\d+)s)?$")


def make_embed(title: str, description: str, colour: Optional[int] = None) -> discord.Embed:
    """Create a small embed used by many commands.

    Args:
        title: embed title
        description: embed body
        colour: optional integer colour
    """
    e = discord.Embed(title=title, description=description)
    if colour is not None:
        e.colour = colour
    return e


def format_coins(amount: int) -> str:
    """Format a coin amount with emoji and thousands separators."""
    return f"{EMOJI['coins']} {amount:,}"


def parse_int(text: Optional[str]) -> Optional[int]:
    """Parse an integer argument, allowing `1,000` style separators."""
    if text is None:
        return None
    try:
        return int(text.replace(",", "").replace("_", ""))
    except ValueError:
        return None


def parse_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_mention(text: Optional[str]) -> Optional[int]:
    """Return the user id from `<@123>` / `<@!123>` or a bare id."""
    if not text:
        return None
    m = _MENTION_RE.match(text)
    if m:
        return int(m.group(1))
    return int(text) if text.isdigit() else None


def parse_channel(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    m = _CHANNEL_RE.match(text)
    if m:
        return int(m.group(1))
    return int(text) if text.isdigit() else None


def parse_duration(text: str) -> int:
    """Parse duration strings like '1d2h30m', '45m' or '30s' into seconds.

    Raises ValueError for anything else, including a zero duration.
    """
    m = _DURATION_RE.match((text or "").lower())
    if not m:
        raise ValueError("Invalid duration format. Use e.g. 1d2h30m, 45m, 30s")
    days = int(m.group("days") or 0)
    hours = int(m.group("hours") or 0)
    minutes = int(m.group("minutes") or 0)
    seconds = int(m.group("seconds") or 0)
    total = days * 86400 + hours * 3600 + minutes * 60 + seconds
    if total <= 0:
        raise ValueError("Duration must be greater than zero")
    return total


def format_duration(seconds: float) -> str:
    """Render a remaining duration as e.g. `2d 4h`, `3h 12m` or `45s`."""
    seconds = max(0, int(seconds))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
