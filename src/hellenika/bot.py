"""Telegram front end for Hellenika."""
import asyncio
import html
import logging
from typing import Any, Dict, List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    Application,
    CallbackContext,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from hellenika import monitoring
from hellenika.config import settings
from hellenika.errors import (
    CredentialError,
    HellenikaError,
    NotFoundError,
    RateLimitError,
    UnexpectedError,
    ValidationError,
)
from hellenika.models.activity_models import Modality, RunState
from hellenika.models.base import SessionLocal
from hellenika.navigation import AUTH_PATH, HOME_PATH, RouteMatch, Router, command_to_path
from hellenika.security import validate_greek_input
from hellenika.services.activity_service import ActivityEngine
from hellenika.services.auth_service import AuthContext, RememberMeStore
from hellenika.services.browse_service import (
    SESSION_FIELDS,
    WORD_FIELDS,
    filter_and_sort,
    filter_items,
    paginate,
)
from hellenika.services.catalog_service import CatalogService
from hellenika.services.dashboard_service import DashboardService
from hellenika.services.identity_service import IdentityClient
from hellenika.services.player_service import ActivityPlayer
from hellenika.services.progress_service import ProgressTracker
from hellenika.services.session_service import SORT_FIELDS as SESSION_SORT_FIELDS
from hellenika.services.session_service import SessionLedger, sort_sessions

logger = logging.getLogger(__name__)

router = Router()

# Commands that open a view; arguments become path segments
ROUTE_COMMANDS = ["dashboard", "activities", "words", "groups", "sessions", "settings", "auth"]

# Button texts
DASHBOARD = "🏛 Dashboard"
ACTIVITIES = "📚 Activities"
WORDS = "📖 Words"
GROUPS = "🗂 Groups"
SESSIONS = "🕰 Sessions"
SETTINGS = "⚙️ Settings"
SIGN_IN = "🔑 Sign in"
SIGN_UP = "✍️ Sign up"
SIGN_OUT = "🚪 Sign out"
RETRY = "🔄 Retry"
TRY_AGAIN = "🔄 Try Again"
NEXT = "➡️ Next"
SHOW_ANSWER = "👁 Show answer"
KNEW_IT = "✓ I knew it"
STILL_LEARNING = "✗ Still learning"
SEARCH = "🔍 Search"
CLEAR_SEARCH = "✖️ Clear search"
RESET_PROGRESS = "🗑 Reset progress"

PATH_LABELS = {
    "/dashboard": DASHBOARD,
    "/activities": ACTIVITIES,
    "/words": WORDS,
    "/groups": GROUPS,
    "/sessions": SESSIONS,
    "/settings": SETTINGS,
    AUTH_PATH: SIGN_IN,
}

SORT_LABELS = {
    "greek": "Greek",
    "english": "English",
    "part_of_speech": "Type",
    "correct_count": "✓",
    "wrong_count": "✗",
    "date": "Date",
    "activity_name": "Activity",
    "duration": "Duration",
}

MSG_NOT_FOUND = "Page not found."
MSG_SESSION_ENDED = "This study session has ended."
MSG_INVALID_ANSWER = "Please use Greek or Latin letters, numbers and basic punctuation only."


def msg_back_to(text: str) -> str: return f"🔙 {text}"


def escape(value: Any) -> str:
    """Escape text for HTML parse mode."""
    return html.escape(str(value), quote=False)


def nav_button(path: str, text: Optional[str] = None) -> InlineKeyboardButton:
    return InlineKeyboardButton(text or PATH_LABELS.get(path, path), callback_data=f"nav:{path}")


MENU_ROWS = [
    [nav_button("/activities"), nav_button("/words")],
    [nav_button("/groups"), nav_button("/sessions")],
    [nav_button("/settings")],
]


async def log_received(update: Update, context_type: str) -> None:
    """Log an incoming update without its text for messages, which may hold passwords."""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    else:
        txt = ""
    user = update.effective_user
    logger.info(f"Received @{context_type:8} from user {user.username if user else None} ({user.id if user else None}){txt}")


async def reply(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None):
    """Edit the message behind a button press, or answer a message."""
    reply_markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        try:
            return await update.callback_query.edit_message_text(
                text, reply_markup=reply_markup, parse_mode="HTML"
            )
        except BadRequest as e:
            logger.warning(f"Error editing message: {e}")
            return None
    return await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")


def get_auth(context: CallbackContext, chat_id: int) -> AuthContext:
    """Auth context of the chat, created on first use."""
    auth = context.user_data.get("auth")
    if auth is None:
        remember_store = RememberMeStore(settings.paths.remember_dir / f"{chat_id}.json")
        auth = AuthContext(IdentityClient(), remember_store)
        auth.initialize()
        context.user_data["auth"] = auth
    return auth


def close_player(context: CallbackContext) -> None:
    player = context.user_data.pop("player", None)
    if player:
        player.close()


# Entry points

async def handle_start(update: Update, context: CallbackContext) -> None:
    """Open the home view."""
    await log_received(update, "start")
    with monitoring.request_duration.labels(handler="start").time():
        await show_path(update, context, "/")


async def handle_command(update: Update, context: CallbackContext) -> None:
    """Open the view a command points at, e.g. ``/activities quiz homer``."""
    await log_received(update, "command")
    command = update.message.text.split()[0]
    with monitoring.request_duration.labels(handler="command").time():
        await show_path(update, context, command_to_path(command, context.args or []))


async def handle_callback(update: Update, context: CallbackContext) -> None:
    """Handle callback queries from inline keyboards."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    data = query.data or ""
    with monitoring.request_duration.labels(handler="callback").time():
        if data.startswith("nav:"):
            await show_path(update, context, data[len("nav:"):])
        elif data.startswith("play:"):
            await handle_player_callback(update, context)
        elif data.startswith("browse:"):
            await handle_browse_callback(update, context)
        elif data.startswith("auth:"):
            await handle_auth_callback(update, context)
        elif data.startswith("settings:"):
            await handle_settings_callback(update, context)
        elif data == "retry":
            await show_path(update, context, context.user_data.get("last_path", "/"))
        else:
            logger.debug(f"Ignoring unknown callback {data}")


async def handle_message(update: Update, context: CallbackContext) -> None:
    """Route free text to the open form, the search prompt or the typed answer."""
    await log_received(update, "message")

    with monitoring.request_duration.labels(handler="message").time():
        if context.user_data.get("auth_form"):
            await handle_auth_form_input(update, context)
            return

        if context.user_data.get("awaiting_search"):
            await handle_search_input(update, context)
            return

        player: Optional[ActivityPlayer] = context.user_data.get("player")
        if (
            player
            and player.run.state == RunState.PRESENTING
            and player.run.question
            and player.run.question.expects_text
        ):
            await handle_typed_answer(update, context, player)
            return

        await update.message.reply_text(
            "Use the buttons below or /start to open the dashboard.",
            reply_markup=InlineKeyboardMarkup(MENU_ROWS),
        )


async def handle_error(update: object, context: CallbackContext) -> None:
    """Log unexpected errors and offer a retry."""
    error = context.error
    logger.error(f"Unhandled error: {error}", exc_info=error)
    monitoring.error_count.labels(error_type=type(error).__name__).inc()

    if not isinstance(update, Update) or not update.effective_chat:
        return
    report = error if isinstance(error, HellenikaError) else UnexpectedError()
    try:
        await context.bot.send_message(
            chat_id=update.effective_chat.id,
            text=report.message,
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton(RETRY, callback_data="retry"), nav_button(HOME_PATH)],
            ]),
        )
    except TelegramError as e:
        logger.warning(f"Could not report error to chat {update.effective_chat.id}: {e}")


# Navigation

async def show_path(update: Update, context: CallbackContext, path: str) -> None:
    """Resolve a path, apply the auth guards and render the view."""
    auth = get_auth(context, update.effective_chat.id)
    match = router.guard(path, auth.is_authenticated, context.user_data.get("next_path"))
    if match is None:
        await reply(update, MSG_NOT_FOUND, [[nav_button(HOME_PATH, msg_back_to(DASHBOARD))]])
        return

    if match.route.name != "activity":
        close_player(context)
    if match.route.name != "auth":
        context.user_data.pop("auth_form", None)
    context.user_data.pop("awaiting_search", None)
    context.user_data["last_path"] = match.path

    await VIEWS[match.route.name](update, context, match)


async def show_dashboard(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    db = SessionLocal()
    try:
        summary = DashboardService(db, auth).summary()
        last = summary.last_session
        message = (
            f"<b>καλημέρα, {escape(auth.username or 'learner')}!</b>\n"
            "Continue your journey through Ancient Greek.\n\n"
            f"📚 Total words: {summary.total_words}\n"
            f"🎯 Mastered: {summary.mastered_words}\n"
            f"📈 Accuracy: {summary.catalog_accuracy}%\n"
            f"🗓 Your sessions: {summary.user_stats.total_sessions} "
            f"({summary.user_stats.accuracy}% accuracy)\n"
            f"⭐ Your mastered words: {summary.user_mastered_words}\n"
        )
        if last:
            message += (
                f"\n🕰 Last session: <b>{escape(last.activity_name)}</b>"
                + (f" · {escape(last.group_name)}" if last.group_name else "")
                + f"\n✓ {last.correct_count}  ✗ {last.wrong_count}"
            )
    finally:
        db.close()

    await reply(update, message, MENU_ROWS)


async def show_activities(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    db = SessionLocal()
    try:
        activities = CatalogService(db).list_activities()
    finally:
        db.close()

    lines = ["<b>Study Activities</b>\n"]
    keyboard = []
    for activity in activities:
        lines.append(f"<b>{escape(activity.name)}</b>\n{escape(activity.description)}\n")
        keyboard.append([nav_button(f"/activities/{activity.id}", f"▶️ {activity.name}")])
    keyboard.append([nav_button(HOME_PATH, msg_back_to(DASHBOARD))])
    await reply(update, "\n".join(lines), keyboard)


async def show_auth(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    context.user_data["next_path"] = match.next_path
    context.user_data.pop("auth_form", None)

    message = "<b>Ἑλληνικά</b>\nSign in to continue your studies of Ancient Greek."
    remembered = auth.remember_store.remembered_username()
    if remembered:
        message += f"\n\nWelcome back, <b>{escape(remembered)}</b>."
    await reply(update, message, [[
        InlineKeyboardButton(SIGN_IN, callback_data="auth:signin"),
        InlineKeyboardButton(SIGN_UP, callback_data="auth:signup"),
    ]])


async def show_settings(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    remembered = auth.remember_store.remembered_username() is not None
    message = (
        "<b>Settings</b>\n\n"
        f"Signed in as <b>{escape(auth.username or '')}</b>\n"
        f"Remember me: {'On' if remembered else 'Off'}"
    )
    await reply(update, message, [
        [InlineKeyboardButton(
            "🔕 Forget me on this chat" if remembered else "🔔 Remember me on this chat",
            callback_data="settings:remember",
        )],
        [InlineKeyboardButton(RESET_PROGRESS, callback_data="settings:reset")],
        [InlineKeyboardButton(SIGN_OUT, callback_data="settings:signout")],
        [nav_button(HOME_PATH, msg_back_to(DASHBOARD))],
    ])


# Activity player

async def start_activity(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    db = SessionLocal()
    try:
        run = ActivityEngine(CatalogService(db)).start(
            match.params["activityId"], match.params.get("groupId")
        )
    except NotFoundError as e:
        recovery = e.recovery_path or HOME_PATH
        await reply(update, escape(e.message), [[nav_button(recovery, msg_back_to(PATH_LABELS.get(recovery, DASHBOARD)))]])
        return
    finally:
        db.close()

    close_player(context)
    player = ActivityPlayer(run, auth, on_advance=make_advance_callback(context))
    context.user_data["player"] = player
    context.user_data["flipped"] = False
    await player.start()
    await send_player_view(update, context, player)


def make_advance_callback(context: CallbackContext):
    """Render the next question into whichever message the player last used."""
    async def on_advance(player: ActivityPlayer) -> None:
        if context.user_data.get("player") is not player:
            return
        context.user_data["flipped"] = False
        chat_id = context.user_data.get("player_chat_id")
        message_id = context.user_data.get("player_message_id")
        if chat_id is None or message_id is None:
            return
        text, keyboard = render_player(player, flipped=False)
        try:
            await context.bot.edit_message_text(
                text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=InlineKeyboardMarkup(keyboard),
                parse_mode="HTML",
            )
        except BadRequest as e:
            logger.warning(f"Error showing next question: {e}")

    return on_advance


def render_player(player: ActivityPlayer, flipped: bool = False):
    """Text and keyboard for the current state of a run."""
    run = player.run
    title = f"<b>{escape(run.activity.name)}</b>"
    if run.group_name:
        title += f" · {escape(run.group_name)}"

    if run.is_complete:
        text = (
            f"{title}\n\n"
            "<b>εὖγε! Well done!</b>\n"
            "You've completed this session.\n\n"
            f"✓ Correct: {run.correct}\n"
            f"✗ Wrong: {run.wrong}\n"
            f"🎯 Accuracy: {run.accuracy}%"
        )
        keyboard = [[
            InlineKeyboardButton(TRY_AGAIN, callback_data="play:restart"),
            nav_button("/activities", msg_back_to(ACTIVITIES)),
        ]]
        return text, keyboard

    question = run.question
    word = question.word
    text = (
        f"{title}\n"
        f"{run.index + 1} of {len(run.words)}   ✓ {run.correct}  ✗ {run.wrong}\n\n"
    )
    keyboard: List[List[InlineKeyboardButton]] = []

    if run.state == RunState.ANSWERED:
        result = run.last_result
        if question.modality == Modality.REVEAL:
            text += f"<b>{escape(word.greek)}</b>\n<i>{escape(word.transliteration)}</i>\n{escape(word.english)}\n\n"
        else:
            text += f"<b>{escape(question.prompt)}</b>\n\n"
        if result.is_correct:
            text += "✅ Correct!"
        else:
            text += f"❌ The answer was: <b>{escape(result.correct_answer)}</b>"
        keyboard.append([InlineKeyboardButton(NEXT, callback_data="play:next")])
    elif question.modality == Modality.REVEAL:
        text += f"<b>{escape(word.greek)}</b>"
        if flipped:
            text += f"\n<i>{escape(word.transliteration)}</i>\n{escape(word.english)}"
            keyboard.append([
                InlineKeyboardButton(KNEW_IT, callback_data="play:reveal:1"),
                InlineKeyboardButton(STILL_LEARNING, callback_data="play:reveal:0"),
            ])
        else:
            keyboard.append([InlineKeyboardButton(SHOW_ANSWER, callback_data="play:flip")])
    elif question.modality == Modality.CHOICE:
        text += f"<b>{escape(word.greek)}</b>\nWhat does this word mean?"
        for index, option in enumerate(question.options):
            keyboard.append([InlineKeyboardButton(option, callback_data=f"play:opt:{index}")])
    else:
        text += f"<b>{escape(word.english)}</b>\nType the Greek word or its transliteration."

    keyboard.append([nav_button("/activities", msg_back_to(ACTIVITIES))])
    return text, keyboard


async def send_player_view(update: Update, context: CallbackContext, player: ActivityPlayer) -> None:
    text, keyboard = render_player(player, context.user_data.get("flipped", False))
    message = await reply(update, text, keyboard)
    if update.callback_query:
        message = update.callback_query.message
    if message is not None:
        context.user_data["player_chat_id"] = message.chat_id
        context.user_data["player_message_id"] = message.message_id


async def handle_player_callback(update: Update, context: CallbackContext) -> None:
    player: Optional[ActivityPlayer] = context.user_data.get("player")
    if not player:
        await reply(update, MSG_SESSION_ENDED, [[nav_button("/activities", msg_back_to(ACTIVITIES))]])
        return

    parts = update.callback_query.data.split(":")
    action = parts[1] if len(parts) > 1 else ""
    run = player.run

    if action == "restart":
        await player.restart()
        context.user_data["flipped"] = False
    elif action == "next":
        # The advance callback renders the next question
        await player.next()
        return
    elif run.state != RunState.PRESENTING:
        logger.debug(f"Ignoring {action} while {run.state.value}")
        return
    elif action == "flip":
        context.user_data["flipped"] = True
    elif action == "reveal" and len(parts) == 3:
        await player.answer(parts[2] == "1")
    elif action == "opt" and len(parts) == 3 and parts[2].isdigit():
        options = run.question.options
        index = int(parts[2])
        if index >= len(options):
            return
        await player.answer(options[index])
    else:
        return

    await send_player_view(update, context, player)


async def handle_typed_answer(update: Update, context: CallbackContext, player: ActivityPlayer) -> None:
    text = update.message.text or ""
    if not text.strip():
        return
    if not validate_greek_input(text):
        await update.message.reply_text(MSG_INVALID_ANSWER)
        return

    await player.answer(text)
    await send_player_view(update, context, player)


# Word and session lists

WORD_SORTS = ("greek", "english", "part_of_speech", "correct_count", "wrong_count")
GROUP_WORD_SORTS = ("greek", "english", "correct_count", "wrong_count")


def browse_state(context: CallbackContext, path: str, default_sort: str, default_direction: str) -> Dict[str, Any]:
    """Search/sort/page state of a list view, reset when another list is opened."""
    state = context.user_data.get("browse")
    if not state or state.get("path") != path:
        state = {
            "path": path,
            "query": "",
            "sort": default_sort,
            "direction": default_direction,
            "page": 1,
        }
        context.user_data["browse"] = state
    return state


def list_keyboard(state: Dict[str, Any], page, sort_fields) -> List[List[InlineKeyboardButton]]:
    keyboard = []
    nav_row = []
    if page.has_previous:
        nav_row.append(InlineKeyboardButton("◀️", callback_data=f"browse:page:{page.page - 1}"))
    nav_row.append(InlineKeyboardButton(f"{page.page}/{max(page.total_pages, 1)}", callback_data="browse:noop"))
    if page.has_next:
        nav_row.append(InlineKeyboardButton("▶️", callback_data=f"browse:page:{page.page + 1}"))
    keyboard.append(nav_row)

    sort_row = []
    for field in sort_fields:
        label = SORT_LABELS.get(field, field)
        if state["sort"] == field:
            label += " ▲" if state["direction"] == "asc" else " ▼"
        sort_row.append(InlineKeyboardButton(label, callback_data=f"browse:sort:{field}"))
    keyboard.append(sort_row)

    search_row = [InlineKeyboardButton(SEARCH, callback_data="browse:search")]
    if state["query"]:
        search_row.append(InlineKeyboardButton(CLEAR_SEARCH, callback_data="browse:clear"))
    keyboard.append(search_row)
    return keyboard


def take_page(items, state: Dict[str, Any]):
    try:
        return paginate(items, state["page"])
    except ValueError:
        state["page"] = 1
        return paginate(items, 1)


def word_lines(words, first_index: int) -> List[str]:
    return [
        f"{first_index + offset}. <b>{escape(w.greek)}</b> ({escape(w.transliteration)}): "
        f"{escape(w.english)} · {escape(w.part_of_speech)} · ✓{w.correct_count} ✗{w.wrong_count}"
        for offset, w in enumerate(words)
    ]


def search_line(state: Dict[str, Any]) -> str:
    return f"🔍 “{escape(state['query'])}”\n" if state["query"] else ""


async def show_words(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    state = browse_state(context, match.path, "greek", "asc")
    db = SessionLocal()
    try:
        words = filter_and_sort(
            CatalogService(db).list_words(), state["query"], state["sort"], state["direction"], WORD_FIELDS
        )
        page = take_page(words, state)
        lines = word_lines(page.items, page.first_index)
    finally:
        db.close()

    message = f"<b>Words</b> ({page.total})\n{search_line(state)}\n"
    message += "\n".join(lines) if lines else "No words found."
    keyboard = list_keyboard(state, page, WORD_SORTS)
    keyboard.append([nav_button(HOME_PATH, msg_back_to(DASHBOARD))])
    await reply(update, message, keyboard)


async def show_groups(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    db = SessionLocal()
    try:
        summaries = DashboardService(db, auth).group_summaries()
        lines = ["<b>Word Groups</b>\n"]
        keyboard = []
        for summary in summaries:
            group = summary.group
            lines.append(
                f"<b>{escape(group.name)}</b>\n{escape(group.description)}\n"
                f"{summary.word_count} words · Accuracy: {summary.accuracy}%\n"
            )
            keyboard.append([nav_button(f"/groups/{group.id}", f"🗂 {group.name}")])
    finally:
        db.close()

    keyboard.append([nav_button(HOME_PATH, msg_back_to(DASHBOARD))])
    await reply(update, "\n".join(lines), keyboard)


async def show_group(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    group_id = match.params["groupId"]
    state = browse_state(context, match.path, "greek", "asc")
    db = SessionLocal()
    try:
        catalog = CatalogService(db)
        group = catalog.get_group(group_id)
        if not group:
            await reply(update, "Group not found.", [[nav_button("/groups", msg_back_to(GROUPS))]])
            return
        words = filter_and_sort(
            catalog.list_words(group_id), state["query"], state["sort"], state["direction"], WORD_FIELDS
        )
        page = take_page(words, state)
        lines = word_lines(page.items, page.first_index)
        activities = catalog.list_activities()
        header = (
            f"<b>{escape(group.name)}</b>\n{escape(group.description)}\n"
            f"{group.word_count} words\n{search_line(state)}\n"
        )
    finally:
        db.close()

    message = header + ("\n".join(lines) if lines else "No words found.")
    keyboard = list_keyboard(state, page, GROUP_WORD_SORTS)
    keyboard.append([
        nav_button(f"/activities/{activity.id}/{group_id}", f"▶️ {activity.name}")
        for activity in activities
    ])
    keyboard.append([nav_button("/groups", msg_back_to(GROUPS))])
    await reply(update, message, keyboard)


def format_duration(session) -> str:
    duration = session.duration
    if duration is None:
        return "in progress"
    minutes, seconds = divmod(int(duration.total_seconds()), 60)
    return f"{minutes}m {seconds:02d}s"


async def show_sessions(update: Update, context: CallbackContext, match: RouteMatch) -> None:
    auth = get_auth(context, update.effective_chat.id)
    state = browse_state(context, match.path, "date", "desc")
    db = SessionLocal()
    try:
        sessions = filter_items(SessionLedger(db, auth).list_sessions(), state["query"], SESSION_FIELDS)
        sessions = sort_sessions(sessions, state["sort"], state["direction"])
        page = take_page(sessions, state)
        lines = [
            f"{page.first_index + offset}. <b>{escape(s.activity_name)}</b>"
            + (f" · {escape(s.group_name)}" if s.group_name else "")
            + f"\n    {s.started_at:%Y-%m-%d %H:%M} · ✓{s.correct_count} ✗{s.wrong_count} · {format_duration(s)}"
            for offset, s in enumerate(page.items)
        ]
    finally:
        db.close()

    message = f"<b>Study Sessions</b> ({page.total})\n{search_line(state)}\n"
    message += "\n".join(lines) if lines else "No sessions yet. Start an activity to see it here."
    keyboard = list_keyboard(state, page, SESSION_SORT_FIELDS)
    keyboard.append([nav_button(HOME_PATH, msg_back_to(DASHBOARD))])
    await reply(update, message, keyboard)


def sort_fields_for(path: str) -> tuple:
    if path == "/sessions":
        return SESSION_SORT_FIELDS
    if path.startswith("/groups/"):
        return GROUP_WORD_SORTS
    return WORD_SORTS


async def handle_browse_callback(update: Update, context: CallbackContext) -> None:
    state = context.user_data.get("browse")
    if not state:
        await show_path(update, context, context.user_data.get("last_path", "/"))
        return

    parts = update.callback_query.data.split(":")
    action = parts[1] if len(parts) > 1 else ""

    if action == "noop":
        return
    if action == "page" and len(parts) == 3 and parts[2].isdigit():
        state["page"] = int(parts[2])
    elif action == "sort" and len(parts) == 3 and parts[2] in sort_fields_for(state["path"]):
        field = parts[2]
        if state["sort"] == field:
            state["direction"] = "desc" if state["direction"] == "asc" else "asc"
        else:
            state["sort"] = field
            state["direction"] = "asc"
        state["page"] = 1
    elif action == "clear":
        state["query"] = ""
        state["page"] = 1
    elif action == "search":
        context.user_data["awaiting_search"] = True
        await update.callback_query.message.reply_text("Send the text to search for.")
        return
    else:
        return

    await show_path(update, context, state["path"])


async def handle_search_input(update: Update, context: CallbackContext) -> None:
    context.user_data.pop("awaiting_search", None)
    state = context.user_data.get("browse")
    if not state:
        return
    state["query"] = (update.message.text or "").strip()
    state["page"] = 1
    await show_path(update, context, state["path"])


# Sign-in and sign-up

def auth_form_keyboard(form: Dict[str, Any]) -> List[List[InlineKeyboardButton]]:
    keyboard = [[InlineKeyboardButton(
        ("☑️" if form["remember_me"] else "⬜️") + " Remember me",
        callback_data="auth:remember",
    )]]
    if form["mode"] == "signin" and form["step"] == "password":
        keyboard.append([InlineKeyboardButton("👤 Use another name", callback_data="auth:other")])
    keyboard.append([InlineKeyboardButton(msg_back_to("Back"), callback_data="auth:cancel")])
    return keyboard


def auth_form_prompt(form: Dict[str, Any], error: str = "") -> str:
    title = SIGN_IN if form["mode"] == "signin" else SIGN_UP
    message = f"<b>{title}</b>\n\n"
    if error:
        message += f"⚠️ {escape(error)}\n\n"
    if form["step"] == "username":
        if form["mode"] == "signup":
            message += (
                f"Choose a name ({settings.auth.username_min_length}-{settings.auth.username_max_length} "
                "letters, numbers or underscores):"
            )
        else:
            message += "Enter your name:"
    else:
        message += f"Password for <b>{escape(form['username'])}</b>:"
    return message


async def handle_auth_callback(update: Update, context: CallbackContext) -> None:
    auth = get_auth(context, update.effective_chat.id)
    action = update.callback_query.data.split(":", 1)[1]
    form = context.user_data.get("auth_form")

    if action in ("signin", "signup"):
        remembered = auth.remember_store.remembered_username()
        form = {"mode": action, "step": "username", "username": "", "remember_me": bool(remembered)}
        if action == "signin" and remembered:
            form["username"] = remembered
            form["step"] = "password"
        context.user_data["auth_form"] = form
    elif action == "cancel" or not form:
        await show_path(update, context, AUTH_PATH)
        return
    elif action == "remember":
        form["remember_me"] = not form["remember_me"]
    elif action == "other":
        form["username"] = ""
        form["step"] = "username"
    else:
        return

    await reply(update, auth_form_prompt(form), auth_form_keyboard(form))


async def handle_auth_form_input(update: Update, context: CallbackContext) -> None:
    form = context.user_data["auth_form"]
    text = update.message.text or ""

    if form["step"] == "username":
        form["username"] = text.strip()
        form["step"] = "password"
        await update.message.reply_text(
            auth_form_prompt(form),
            reply_markup=InlineKeyboardMarkup(auth_form_keyboard(form)),
            parse_mode="HTML",
        )
        return

    # Keep passwords out of the chat history
    try:
        await update.message.delete()
    except TelegramError as e:
        logger.warning(f"Could not delete password message: {e}")

    auth = get_auth(context, update.effective_chat.id)
    try:
        if form["mode"] == "signup":
            await auth.sign_up(form["username"], text, form["remember_me"])
        else:
            await auth.sign_in(form["username"], text, form["remember_me"])
    except ValidationError as e:
        form["step"] = "username" if "username" in e.errors else "password"
        await send_auth_error(update, form, "\n".join(e.errors.values()))
        return
    except (CredentialError, RateLimitError) as e:
        form["step"] = "password" if form["mode"] == "signin" else "username"
        await send_auth_error(update, form, e.message)
        return

    context.user_data.pop("auth_form", None)
    # Let the deferred profile lookup finish before rendering
    await asyncio.sleep(0)
    target = router.after_sign_in(context.user_data.pop("next_path", None))
    await update.message.reply_text(f"Welcome, <b>{escape(auth.username or form['username'])}</b>!", parse_mode="HTML")
    await show_path(update, context, target.path)


async def send_auth_error(update: Update, form: Dict[str, Any], error: str) -> None:
    await update.message.reply_text(
        auth_form_prompt(form, error),
        reply_markup=InlineKeyboardMarkup(auth_form_keyboard(form)),
        parse_mode="HTML",
    )


# Settings

async def handle_settings_callback(update: Update, context: CallbackContext) -> None:
    auth = get_auth(context, update.effective_chat.id)
    if not auth.is_authenticated:
        await show_path(update, context, AUTH_PATH)
        return

    action = update.callback_query.data.split(":", 1)[1]

    if action == "remember":
        if auth.remember_store.remembered_username() is not None:
            auth.remember_store.forget()
        elif auth.username:
            auth.remember_store.remember(auth.username)
        await show_path(update, context, "/settings")

    elif action == "reset":
        await reply(update, "Reset all your word progress? This cannot be undone.", [[
            InlineKeyboardButton("✅ Yes, reset", callback_data="settings:reset_confirm"),
            nav_button("/settings", "❌ Cancel"),
        ]])

    elif action == "reset_confirm":
        db = SessionLocal()
        try:
            removed = ProgressTracker(db, auth).reset_progress()
        finally:
            db.close()
        await reply(update, f"Progress reset. {removed} word records removed.", [
            [nav_button("/settings", msg_back_to(SETTINGS))],
        ])

    elif action == "signout":
        close_player(context)
        await auth.sign_out()
        context.user_data.pop("browse", None)
        await show_path(update, context, AUTH_PATH)


VIEWS = {
    "dashboard": show_dashboard,
    "activities": show_activities,
    "activity": start_activity,
    "words": show_words,
    "groups": show_groups,
    "group": show_group,
    "sessions": show_sessions,
    "settings": show_settings,
    "auth": show_auth,
}


def register_handlers(application: Application) -> None:
    """Attach all handlers to the application."""
    application.add_handler(CommandHandler("start", handle_start))
    application.add_handler(CommandHandler(ROUTE_COMMANDS, handle_command))
    application.add_handler(CallbackQueryHandler(handle_callback))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    application.add_error_handler(handle_error)
