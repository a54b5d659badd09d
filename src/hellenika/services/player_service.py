"""Activity player: drives a run for one chat and reports its results."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.orm import sessionmaker

from hellenika import monitoring
from hellenika.config import settings
from hellenika.models.activity_models import AnswerResult, RunState
from hellenika.models.base import SessionLocal
from hellenika.services.activity_service import ActivityRun
from hellenika.services.auth_service import AuthContext
from hellenika.services.progress_service import ProgressTracker
from hellenika.services.session_service import SessionLedger

logger = logging.getLogger(__name__)

AdvanceCallback = Callable[["ActivityPlayer"], Awaitable[None]]


class ActivityPlayer:
    """Couples an activity run with progress tracking and the session ledger.

    After each answer the player moves on by itself once ``advance_delay``
    has passed. A timer that fires after the run was advanced by hand,
    restarted or closed does nothing.
    """

    def __init__(
        self,
        run: ActivityRun,
        auth: AuthContext,
        session_factory: sessionmaker = SessionLocal,
        advance_delay: Optional[float] = None,
        on_advance: Optional[AdvanceCallback] = None,
    ):
        self.run = run
        self.auth = auth
        self.session_factory = session_factory
        self.advance_delay = (
            settings.study.auto_advance_seconds if advance_delay is None else advance_delay
        )
        self.on_advance = on_advance
        self.session_id: Optional[str] = None
        self._completed = False
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._advance_task: Optional[asyncio.Task] = None

    @property
    def has_pending_advance(self) -> bool:
        return self._timer is not None

    async def start(self) -> Optional[str]:
        """Open the ledger session for this run."""
        db = self.session_factory()
        try:
            ledger = SessionLedger(db, self.auth)
            self.session_id = ledger.create_session(
                activity_type=self.run.activity.type.value,
                activity_name=self.run.activity.name,
                group_id=self.run.group_id,
                group_name=self.run.group_name,
            )
        finally:
            db.close()

        if not self.session_id:
            logger.warning(f"No session recorded for {self.run.activity.id}, continuing without one")
        return self.session_id

    async def answer(self, value: Any) -> AnswerResult:
        """Score the answer, record it and schedule the next question."""
        result = self.run.answer(value)
        monitoring.answers_recorded.labels(
            modality=self.run.modality.type.value,
            result="correct" if result.is_correct else "wrong",
        ).inc()

        db = self.session_factory()
        try:
            if not ProgressTracker(db, self.auth).record_answer(result.word.id, result.is_correct):
                logger.debug(f"Progress for word {result.word.id} not recorded")
        finally:
            db.close()

        self._schedule_advance()
        return result

    def _schedule_advance(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.advance_delay, self._on_timer, self._generation)

    def _on_timer(self, generation: int) -> None:
        self._timer = None
        if generation != self._generation:
            return
        self._advance_task = asyncio.get_running_loop().create_task(self._advance())
        self._advance_task.add_done_callback(self._log_advance_failure)

    def _log_advance_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Auto-advance failed for {self.run.activity.id}: {error}", exc_info=error)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def next(self) -> RunState:
        """Advance now instead of waiting for the timer."""
        self._cancel_timer()
        await self._advance()
        return self.run.state

    async def _advance(self) -> None:
        if self.run.state != RunState.ANSWERED:
            return
        self._generation += 1
        if self.run.advance() == RunState.COMPLETE:
            self._complete()

        if self.on_advance:
            try:
                await self.on_advance(self)
            except Exception as e:
                logger.error(f"Error showing the next question: {e}")

    def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        logger.info(
            f"Finished {self.run.activity.id}: {self.run.correct} correct, {self.run.wrong} wrong"
        )
        if not self.session_id:
            return

        db = self.session_factory()
        try:
            SessionLedger(db, self.auth).complete_session(
                self.session_id, self.run.correct, self.run.wrong
            )
        finally:
            db.close()

    async def restart(self) -> Optional[str]:
        """Reshuffle the run and open a fresh ledger session."""
        self._cancel_timer()
        self._generation += 1
        self.run.restart()
        self._completed = False
        self.session_id = None
        return await self.start()

    def close(self) -> None:
        """Stop any pending advance."""
        self._cancel_timer()
        self._generation += 1
