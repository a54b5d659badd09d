"""Tests for Telegram bot handlers."""
import asyncio
from typing import Generator
from unittest.mock import AsyncMock, Mock

import pytest
from faker import Faker
from sqlalchemy.orm import Session
from telegram import Update
from telegram.ext import CallbackContext

from hellenika.bot import (
    MSG_INVALID_ANSWER,
    MSG_NOT_FOUND,
    get_auth,
    handle_callback,
    handle_command,
    handle_error,
    handle_message,
    handle_start,
)
from hellenika.errors import NotFoundError, UnexpectedError
from hellenika.models.activity_models import RunState
from hellenika.models.base import SessionLocal
from hellenika.services.progress_service import ProgressTracker

fake = Faker()


def make_update(chat_id: int, text: str = None, data: str = None) -> Mock:
    """Message update when ``text`` is given, button press when ``data`` is."""
    update = Mock(spec=Update)
    update.effective_chat = Mock(id=chat_id)
    update.effective_user = Mock(id=chat_id, username=f"test_user_{chat_id}")
    update.message = AsyncMock()
    update.message.text = text
    if data is None:
        update.callback_query = None
    else:
        update.callback_query = AsyncMock()
        update.callback_query.data = data
        update.callback_query.message = AsyncMock(chat_id=chat_id, message_id=fake.random_int())
    return update


def sent_text(update: Mock) -> str:
    """Text of the last message the handler sent or edited."""
    if update.callback_query:
        return update.callback_query.edit_message_text.call_args[0][0]
    return update.message.reply_text.call_args[0][0]


@pytest.fixture
def chat_id() -> int:
    return fake.random_int(min=100000, max=999999)


@pytest.fixture
def context(db: Session) -> Generator[Mock, None, None]:
    """Mock CallbackContext with a real per-chat store."""
    context = Mock(spec=CallbackContext)
    context.user_data = {}
    context.args = []
    context.bot = AsyncMock()
    yield context

    player = context.user_data.get("player")
    if player:
        player.close()
    auth = context.user_data.get("auth")
    if auth:
        auth.close()


async def sign_up(context: Mock, chat_id: int) -> str:
    username = f"learner_{fake.random_int(min=1000, max=9999)}"
    auth = get_auth(context, chat_id)
    await auth.sign_up(username, "secret123")
    await asyncio.sleep(0)
    return username


@pytest.mark.asyncio
async def test_start_shows_sign_in(context: Mock, chat_id: int) -> None:
    update = make_update(chat_id, text="/start")

    await handle_start(update, context)

    assert "Sign in to continue" in sent_text(update)
    assert context.user_data["next_path"] == "/dashboard"


@pytest.mark.asyncio
async def test_sign_up_flow_reaches_dashboard(context: Mock, chat_id: int) -> None:
    await handle_start(make_update(chat_id, text="/start"), context)

    update = make_update(chat_id, data="auth:signup")
    await handle_callback(update, context)
    update.callback_query.answer.assert_awaited_once()
    assert context.user_data["auth_form"]["mode"] == "signup"
    assert "Choose a name" in sent_text(update)

    username = f"learner_{fake.random_int(min=1000, max=9999)}"
    update = make_update(chat_id, text=username)
    await handle_message(update, context)
    assert "Password for" in sent_text(update)

    update = make_update(chat_id, text="secret123")
    await handle_message(update, context)

    update.message.delete.assert_awaited_once()
    assert "auth_form" not in context.user_data
    assert "καλημέρα" in sent_text(update)
    assert "⭐ Your mastered words: 0" in sent_text(update)
    assert get_auth(context, chat_id).is_authenticated


@pytest.mark.asyncio
async def test_sign_up_with_short_password(context: Mock, chat_id: int) -> None:
    await handle_callback(make_update(chat_id, data="auth:signup"), context)
    await handle_message(make_update(chat_id, text="learner_short"), context)

    update = make_update(chat_id, text="123")
    await handle_message(update, context)

    assert "Password must be at least 6 characters" in sent_text(update)
    assert context.user_data["auth_form"]["step"] == "password"
    assert not get_auth(context, chat_id).is_authenticated


@pytest.mark.asyncio
async def test_dashboard_shows_own_mastery(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)
    db = SessionLocal()
    try:
        tracker = ProgressTracker(db, get_auth(context, chat_id))
        for _ in range(10):
            tracker.record_answer("19", True)
    finally:
        db.close()

    update = make_update(chat_id, data="nav:/dashboard")
    await handle_callback(update, context)

    assert "⭐ Your mastered words: 1" in sent_text(update)


@pytest.mark.asyncio
async def test_unknown_path(context: Mock, chat_id: int) -> None:
    update = make_update(chat_id, text="/groups")
    context.args = ["a", "b", "c"]

    await handle_command(update, context)

    assert sent_text(update) == MSG_NOT_FOUND


@pytest.mark.asyncio
async def test_quiz_answer_by_button(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)

    update = make_update(chat_id, data="nav:/activities/quiz/homer")
    await handle_callback(update, context)

    player = context.user_data["player"]
    assert player.session_id is not None
    assert "What does this word mean?" in sent_text(update)
    assert context.user_data["player_chat_id"] == chat_id

    question = player.run.question
    index = question.options.index(question.word.english)
    update = make_update(chat_id, data=f"play:opt:{index}")
    await handle_callback(update, context)

    assert player.run.state == RunState.ANSWERED
    assert player.run.correct == 1
    assert "✅ Correct!" in sent_text(update)


@pytest.mark.asyncio
async def test_flashcard_flip_and_reveal(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)
    await handle_callback(make_update(chat_id, data="nav:/activities/flashcard"), context)
    player = context.user_data["player"]
    word = player.run.current_word

    update = make_update(chat_id, data="play:flip")
    await handle_callback(update, context)
    assert word.english in sent_text(update)

    await handle_callback(make_update(chat_id, data="play:reveal:0"), context)
    assert player.run.wrong == 1

    await handle_callback(make_update(chat_id, data="play:next"), context)
    assert player.run.index == 1
    assert context.user_data["flipped"] is False


@pytest.mark.asyncio
async def test_typed_answer(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)
    await handle_callback(make_update(chat_id, data="nav:/activities/typing"), context)
    player = context.user_data["player"]

    update = make_update(chat_id, text="<script>")
    await handle_message(update, context)
    assert sent_text(update) == MSG_INVALID_ANSWER
    assert player.run.state == RunState.PRESENTING

    update = make_update(chat_id, text=player.run.current_word.greek)
    await handle_message(update, context)
    assert player.run.correct == 1
    assert "✅ Correct!" in sent_text(update)


@pytest.mark.asyncio
async def test_leaving_activity_closes_player(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)
    await handle_callback(make_update(chat_id, data="nav:/activities/flashcard"), context)

    await handle_callback(make_update(chat_id, data="nav:/dashboard"), context)

    assert "player" not in context.user_data


@pytest.mark.asyncio
async def test_unknown_activity(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)

    update = make_update(chat_id, data="nav:/activities/dance")
    await handle_callback(update, context)

    assert sent_text(update) == "Activity not found."
    assert "player" not in context.user_data


@pytest.mark.asyncio
async def test_word_list_paging_and_sorting(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)

    update = make_update(chat_id, data="nav:/words")
    await handle_callback(update, context)
    assert "<b>Words</b> (20)" in sent_text(update)

    update = make_update(chat_id, data="browse:page:2")
    await handle_callback(update, context)
    assert context.user_data["browse"]["page"] == 2
    assert "11. " in sent_text(update)

    update = make_update(chat_id, data="browse:sort:english")
    await handle_callback(update, context)
    assert context.user_data["browse"]["page"] == 1
    assert "1. <b>καλός</b>" in sent_text(update)

    update = make_update(chat_id, data="browse:sort:english")
    await handle_callback(update, context)
    assert context.user_data["browse"]["direction"] == "desc"
    assert "1. <b>μῆνις</b>" in sent_text(update)


@pytest.mark.asyncio
async def test_word_search(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)
    await handle_callback(make_update(chat_id, data="nav:/words"), context)

    update = make_update(chat_id, data="browse:search")
    await handle_callback(update, context)
    update.callback_query.message.reply_text.assert_awaited_once()
    assert context.user_data["awaiting_search"]

    update = make_update(chat_id, text="logos")
    await handle_message(update, context)

    assert "<b>Words</b> (1)" in sent_text(update)
    assert "awaiting_search" not in context.user_data


@pytest.mark.asyncio
async def test_sign_out(context: Mock, chat_id: int) -> None:
    await sign_up(context, chat_id)

    update = make_update(chat_id, data="settings:signout")
    await handle_callback(update, context)

    assert not get_auth(context, chat_id).is_authenticated
    assert "Sign in to continue" in sent_text(update)


@pytest.mark.asyncio
async def test_handle_error_offers_retry(context: Mock, chat_id: int) -> None:
    context.error = RuntimeError("boom")

    await handle_error(make_update(chat_id), context)

    context.bot.send_message.assert_awaited_once()
    kwargs = context.bot.send_message.call_args.kwargs
    assert kwargs["chat_id"] == chat_id
    assert kwargs["text"] == UnexpectedError().message
    assert kwargs["reply_markup"].inline_keyboard[0][0].callback_data == "retry"


@pytest.mark.asyncio
async def test_handle_error_keeps_known_message(context: Mock, chat_id: int) -> None:
    context.error = NotFoundError("Group not found.")

    await handle_error(make_update(chat_id), context)

    assert context.bot.send_message.call_args.kwargs["text"] == "Group not found."


@pytest.mark.asyncio
async def test_handle_error_without_chat(context: Mock) -> None:
    context.error = RuntimeError("boom")

    await handle_error(None, context)

    context.bot.send_message.assert_not_called()
