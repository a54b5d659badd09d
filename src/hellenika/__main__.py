"""Main entry point for the bot."""
import logging
import sys

from hellenika.app import HellenikaBot
from hellenika.config import ensure_directories, settings
from hellenika.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Validate settings and run the bot."""
    ensure_directories()
    setup_logging("Starting Hellenika ...")

    try:
        settings.validate()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    HellenikaBot().run()


if __name__ == "__main__":
    main()
