"""Session ledger: start and completion records of study sessions."""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hellenika import monitoring
from hellenika.models.base import utcnow
from hellenika.models.models import StudySession
from hellenika.services.auth_service import AuthContext
from hellenika.services.browse_service import collation_key
from hellenika.services.progress_service import accuracy

logger = logging.getLogger(__name__)

SORT_FIELDS = ("date", "activity_name", "correct_count", "wrong_count", "duration")


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_SORT_KEYS: Dict[str, Callable[[StudySession], object]] = {
    "date": lambda s: _as_aware(s.started_at),
    "activity_name": lambda s: collation_key(s.activity_name),
    "correct_count": lambda s: s.correct_count,
    "wrong_count": lambda s: s.wrong_count,
    "duration": lambda s: s.duration,
}


def sort_sessions(
    sessions: List[StudySession], field: str = "date", direction: str = "desc"
) -> List[StudySession]:
    """Return the sessions sorted by ``field``.

    The sort is stable. Sessions still in progress have no duration and
    are placed last when sorting by duration, in either direction.
    """
    if field not in _SORT_KEYS:
        raise ValueError(f"Unknown sort field: {field}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction: {direction}")

    key = _SORT_KEYS[field]
    reverse = direction == "desc"
    if field != "duration":
        return sorted(sessions, key=key, reverse=reverse)

    finished = [s for s in sessions if s.duration is not None]
    in_progress = [s for s in sessions if s.duration is None]
    return sorted(finished, key=key, reverse=reverse) + in_progress


class SessionLedger:
    """Creates, completes and lists the signed-in user's study sessions."""

    def __init__(self, db: Session, auth: AuthContext):
        self.db = db
        self.auth = auth

    def create_session(
        self,
        activity_type: str,
        activity_name: str,
        group_id: Optional[str] = None,
        group_name: Optional[str] = None,
    ) -> Optional[str]:
        """Open a session record.

        Returns the new session id, or None when nobody is signed in or the
        write fails.
        """
        user = self.auth.current_user()
        if not user:
            return None

        session = StudySession(
            user_id=user.id,
            activity_type=activity_type,
            activity_name=activity_name,
            group_id=group_id,
            group_name=group_name,
            correct_count=0,
            wrong_count=0,
            started_at=utcnow(),
        )
        try:
            self.db.add(session)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {activity_type} session for {user.id}: {e}")
            monitoring.db_errors.labels(operation_type="create_session").inc()
            return None

        monitoring.sessions_started.labels(activity_type=activity_type).inc()
        logger.info(f"Started {activity_type} session {session.id} for {user.id}")
        return session.id

    def complete_session(self, session_id: str, correct: int, wrong: int) -> bool:
        """Store the final tallies and the completion time. Last write wins.

        Only the signed-in owner of the session can complete it.
        """
        user = self.auth.current_user()
        if not user:
            return False
        try:
            session = (
                self.db.query(StudySession)
                .filter(StudySession.id == session_id, StudySession.user_id == user.id)
                .first()
            )
            if not session:
                logger.warning(f"Session {session_id} not found for {user.id}")
                return False
            activity_type = session.activity_type
            session.correct_count = correct
            session.wrong_count = wrong
            session.completed_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error completing session {session_id}: {e}")
            monitoring.db_errors.labels(operation_type="complete_session").inc()
            return False

        monitoring.sessions_completed.labels(activity_type=activity_type).inc()
        monitoring.session_accuracy.observe(accuracy(correct, wrong))
        logger.info(f"Completed session {session_id}: {correct} correct, {wrong} wrong")
        return True

    def list_sessions(self) -> List[StudySession]:
        """The user's sessions, newest first."""
        user = self.auth.current_user()
        if not user:
            return []
        try:
            return (
                self.db.query(StudySession)
                .filter(StudySession.user_id == user.id)
                .order_by(StudySession.started_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching sessions for {user.id}: {e}")
            monitoring.db_errors.labels(operation_type="list_sessions").inc()
            return []

    def last_session(self) -> Optional[StudySession]:
        sessions = self.list_sessions()
        return sessions[0] if sessions else None
