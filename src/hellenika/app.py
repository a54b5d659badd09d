"""Main application entry point."""
import asyncio
import logging
import signal
from typing import Optional

from telegram.ext import Application

from hellenika.bot import register_handlers
from hellenika.config import ensure_directories, settings
from hellenika.models.base import SessionLocal, init_db
from hellenika.monitoring import start_monitoring
from hellenika.services.catalog_service import CatalogService


class HellenikaBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def prepare_database(self) -> int:
        """Create the tables and seed the catalog. Returns the number of words added."""
        init_db()
        db = SessionLocal()
        try:
            added = CatalogService(db).seed_catalog()
        finally:
            db.close()
        self.logger.info(f"Database initialized ({added} words seeded)")
        return added

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            ensure_directories()
            self.prepare_database()

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics served on port {settings.monitoring.port}")

            self.application = Application.builder().token(settings.bot.token).build()
            register_handlers(self.application)
            self.logger.info("Handlers added")

            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error(f"Failed to start application: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.application:
            self.running = False
            return

        try:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")
        finally:
            self.application = None
            self.running = False

    def run(self) -> None:
        """Run the application until interrupted."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, loop.stop)

        try:
            loop.run_until_complete(self.start())
            loop.run_forever()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            loop.run_until_complete(self.stop())
            loop.close()
