"""Main entry point for the Toadle bot."""
import sys

from toadle_bot.config import Settings
from toadle_bot.bot import create_bot
from toadle_bot.utils import logger as toadle_logger


def main() -> int:
    settings = Settings()
    toadle_logger.configure(settings.DATA_DIR, settings.LOG_LEVEL)
    log = toadle_logger.get_logger("toadle")

    missing = settings.validate()
    if missing:
        log.error("Missing required settings: %s. Set them in the environment or .env (see .env.example)", ", ".join(missing))
        return 1

    bot = create_bot(settings)
    log.info("Starting Toadle (data dir %s, %s storage)", settings.DATA_DIR, "postgres" if settings.DATABASE_URL else "json")
    bot.run(settings.TOKEN)
    return 0


if __name__ == "__main__":
    sys.exit(main())
