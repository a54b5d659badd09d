"""Tests for the main application."""
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hellenika.app import HellenikaBot
from hellenika.models.base import SessionLocal, drop_db
from hellenika.models.models import Word


@pytest.fixture
def bot() -> Generator[HellenikaBot, None, None]:
    """Create a bot instance with a mocked Telegram application."""
    mock_app = AsyncMock()
    mock_app.add_handler = MagicMock()
    mock_app.add_error_handler = MagicMock()
    mock_app.bot = MagicMock()

    mock_builder = MagicMock()
    mock_builder.token.return_value.build.return_value = mock_app

    with patch("telegram.ext.Application.builder", return_value=mock_builder):
        yield HellenikaBot()

    drop_db()


def test_prepare_database_seeds_once(bot: HellenikaBot) -> None:
    assert bot.prepare_database() == 20
    assert bot.prepare_database() == 0

    db = SessionLocal()
    try:
        assert db.query(Word).count() == 20
    finally:
        db.close()


@pytest.mark.asyncio
async def test_start(bot: HellenikaBot) -> None:
    await bot.start()

    assert bot.running
    assert bot.application is not None
    bot.application.updater.start_polling.assert_awaited_once()
    assert bot.application.add_handler.call_count == 4
    bot.application.add_error_handler.assert_called_once()

    await bot.stop()


@pytest.mark.asyncio
async def test_stop(bot: HellenikaBot) -> None:
    await bot.start()
    application = bot.application

    await bot.stop()

    application.shutdown.assert_awaited_once()
    assert not bot.running
    assert bot.application is None


@pytest.mark.asyncio
async def test_start_when_already_running(bot: HellenikaBot) -> None:
    await bot.start()
    application = bot.application

    await bot.start()

    assert bot.application is application
    application.initialize.assert_awaited_once()
    await bot.stop()


@pytest.mark.asyncio
async def test_stop_when_not_running(bot: HellenikaBot) -> None:
    await bot.stop()

    assert not bot.running


@pytest.mark.asyncio
async def test_failed_start_cleans_up(bot: HellenikaBot) -> None:
    with patch.object(HellenikaBot, "prepare_database", side_effect=RuntimeError("disk full")):
        with pytest.raises(RuntimeError, match="disk full"):
            await bot.start()

    assert not bot.running
    assert bot.application is None


@pytest.mark.asyncio
async def test_stop_errors_propagate(bot: HellenikaBot) -> None:
    await bot.start()
    bot.application.shutdown.side_effect = Exception("Test error")

    with pytest.raises(Exception, match="Test error"):
        await bot.stop()

    assert not bot.running
    assert bot.application is None
