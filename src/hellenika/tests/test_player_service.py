"""Tests for the activity player and its auto-advance timer."""
import asyncio
import logging
import random
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.orm import Session

from hellenika.models.activity_models import RunState
from hellenika.models.models import StudySession, WordProgress
from hellenika.services.activity_service import ActivityEngine
from hellenika.services.auth_service import AuthContext
from hellenika.services.catalog_service import CatalogService
from hellenika.services.player_service import ActivityPlayer

DELAY = 0.01


def make_player(db: Session, auth: AuthContext, activity_id="flashcard", group_id="homer", **kwargs) -> ActivityPlayer:
    run = ActivityEngine(CatalogService(db), rng=random.Random(3)).start(activity_id, group_id)
    return ActivityPlayer(run, auth, advance_delay=DELAY, **kwargs)


@pytest.mark.asyncio
async def test_start_opens_session(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth)

    session_id = await player.start()

    session = db.query(StudySession).filter(StudySession.id == session_id).first()
    assert session.activity_type == "flashcard"
    assert session.group_name == "Homeric Greek"
    assert session.completed_at is None


@pytest.mark.asyncio
async def test_answer_advances_after_delay(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth)
    await player.start()

    result = await player.answer(True)

    assert result.is_correct
    assert player.run.state == RunState.ANSWERED
    assert player.has_pending_advance

    await asyncio.sleep(DELAY * 5)

    assert player.run.state == RunState.PRESENTING
    assert player.run.index == 1
    assert not player.has_pending_advance


@pytest.mark.asyncio
async def test_next_cancels_timer(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth)
    await player.start()
    await player.answer(False)

    assert await player.next() == RunState.PRESENTING
    assert not player.has_pending_advance

    await asyncio.sleep(DELAY * 5)
    assert player.run.index == 1
    assert player.run.state == RunState.PRESENTING


@pytest.mark.asyncio
async def test_restart_discards_pending_advance(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth)
    first_session = await player.start()
    await player.answer(True)

    second_session = await player.restart()
    await asyncio.sleep(DELAY * 5)

    assert second_session != first_session
    assert player.run.index == 0
    assert player.run.state == RunState.PRESENTING
    assert (player.run.correct, player.run.wrong) == (0, 0)


@pytest.mark.asyncio
async def test_close_stops_timer(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth)
    await player.start()
    await player.answer(True)

    player.close()
    await asyncio.sleep(DELAY * 5)

    assert player.run.state == RunState.ANSWERED
    assert player.run.index == 0


@pytest.mark.asyncio
async def test_full_run_completes_session(db: Session, user_auth: AuthContext) -> None:
    on_advance = AsyncMock()
    player = make_player(db, user_auth, on_advance=on_advance)
    session_id = await player.start()

    answers = [True, False, True, True]
    for value in answers:
        await player.answer(value)
        await player.next()

    assert player.run.is_complete
    assert on_advance.await_count == len(answers)

    db.expire_all()
    session = db.query(StudySession).filter(StudySession.id == session_id).first()
    assert session.completed_at is not None
    assert (session.correct_count, session.wrong_count) == (3, 1)
    assert session.correct_count + session.wrong_count == len(player.run.words)

    rows = db.query(WordProgress).filter(WordProgress.user_id == user_auth.user.id).all()
    assert len(rows) == 4
    assert sum(row.correct_count for row in rows) == 3


@pytest.mark.asyncio
async def test_on_advance_errors_are_logged(db: Session, user_auth: AuthContext) -> None:
    on_advance = AsyncMock(side_effect=RuntimeError("message gone"))
    player = make_player(db, user_auth, on_advance=on_advance)
    await player.start()
    await player.answer(True)

    assert await player.next() == RunState.PRESENTING
    on_advance.assert_awaited_once_with(player)


@pytest.mark.asyncio
async def test_auto_advance_failure_is_logged(db: Session, user_auth: AuthContext, caplog) -> None:
    player = make_player(db, user_auth)
    await player.start()
    await player.answer(True)

    with patch.object(player.run, "advance", side_effect=RuntimeError("run broke")):
        with caplog.at_level(logging.ERROR, logger="hellenika.services.player_service"):
            await asyncio.sleep(DELAY * 5)

    assert "Auto-advance failed" in caplog.text
    assert "run broke" in caplog.text
    assert player.run.state == RunState.ANSWERED


@pytest.mark.asyncio
async def test_typed_answer(db: Session, user_auth: AuthContext) -> None:
    player = make_player(db, user_auth, activity_id="typing")
    await player.start()
    word = player.run.current_word

    result = await player.answer(word.transliteration.upper())

    assert result.is_correct
    player.close()


@pytest.mark.asyncio
async def test_anonymous_answers_are_still_scored(db: Session, auth: AuthContext) -> None:
    player = make_player(db, auth)

    assert await player.start() is None

    await player.answer(True)
    await player.next()

    assert player.run.correct == 1
    assert db.query(WordProgress).count() == 0
    assert db.query(StudySession).count() == 0
    player.close()
