"""Configuration loader for Toadle.

Process-wide settings are read from environment variables (and a .env file
via python-dotenv). Per-guild settings such as the command prefix live in
`toadle_bot.utils.guild_config` instead.
"""
from typing import Optional, List
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Environment-backed settings holder."""

    TOKEN: Optional[str] = os.getenv("TOKEN")
    DEV_GUILD_ID: Optional[int] = int(os.getenv("DEV_GUILD_ID")) if os.getenv("DEV_GUILD_ID") else None
    OWNER_ID: Optional[int] = int(os.getenv("OWNER_ID")) if os.getenv("OWNER_ID") else None
    DEV_MODE: bool = _flag("DEV_MODE", "false")

    # Storage
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(Path.cwd() / "data")))
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))
    AUTOSAVE_INTERVAL_SECONDS: int = int(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "300"))

    # Economy
    DEFAULT_PREFIX: str = os.getenv("DEFAULT_PREFIX", "!")
    REFERRAL_BONUS: int = int(os.getenv("REFERRAL_BONUS", "50"))
    NUKE_CONFIRM_SECONDS: int = int(os.getenv("NUKE_CONFIRM_SECONDS", "120"))
    MAX_LOGS_PER_GUILD: int = int(os.getenv("MAX_LOGS_PER_GUILD", "1000"))

    # Logging retention settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_PRUNE_ENABLED: bool = _flag("LOG_PRUNE_ENABLED", "true")
    LOG_RETENTION_DAYS: int = int(os.getenv("LOG_RETENTION_DAYS", "30"))
    LOG_PRUNE_INTERVAL_HOURS: int = int(os.getenv("LOG_PRUNE_INTERVAL_HOURS", "24"))

    def validate(self, required: Optional[List[str]] = None) -> List[str]:
        """Validate required environment variables.

        Args:
            required: list of attribute names to check (e.g. ["TOKEN"]). If
                omitted, defaults to checking at least `TOKEN`.

        Returns:
            A list of missing attribute names (empty if all present).
        """
        if required is None:
            required = ["TOKEN"]

        missing: List[str] = []
        for name in required:
            val = getattr(self, name, None)
            if val is None or (isinstance(val, str) and not val.strip()):
                missing.append(name)

        return missing
