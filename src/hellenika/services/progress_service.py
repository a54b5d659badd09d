"""Progress tracking: per-word answer counters, accuracy and mastery."""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hellenika import monitoring
from hellenika.config import MASTERY_MAX_WRONG, MASTERY_MIN_CORRECT
from hellenika.models.base import utcnow
from hellenika.models.models import StudySession, Word, WordProgress
from hellenika.services.auth_service import AuthContext

logger = logging.getLogger(__name__)


def accuracy(correct: int, wrong: int) -> int:
    """Percentage of correct answers rounded half up, 0 when nothing was answered."""
    total = correct + wrong
    if total <= 0:
        return 0
    return (correct * 200 + total) // (total * 2)


def is_mastered(correct: int, wrong: int) -> bool:
    """A word is mastered once it has enough correct and few enough wrong answers."""
    return correct >= MASTERY_MIN_CORRECT and wrong <= MASTERY_MAX_WRONG


def count_mastered(rows: Iterable) -> int:
    """Count rows with ``correct_count`` / ``wrong_count`` that are mastered."""
    return sum(1 for row in rows if is_mastered(row.correct_count, row.wrong_count))


@dataclass
class UserStats:
    total_sessions: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    accuracy: int = 0


class ProgressTracker:
    """Records answers for the signed-in user and aggregates their results."""

    def __init__(self, db: Session, auth: AuthContext):
        """Initialize the service with a database session and the auth context."""
        self.db = db
        self.auth = auth

    def _user_id(self) -> Optional[str]:
        user = self.auth.current_user()
        return user.id if user else None

    def record_answer(self, word_id: str, is_correct: bool) -> bool:
        """Add one answer to the user's progress row and the word's counters.

        Every call counts; replaying an answer counts it twice. Write
        failures are logged and reported as False.
        """
        user_id = self._user_id()
        if not user_id:
            return False

        try:
            progress = (
                self.db.query(WordProgress)
                .filter(WordProgress.user_id == user_id, WordProgress.word_id == word_id)
                .first()
            )
            if not progress:
                progress = WordProgress(
                    user_id=user_id,
                    word_id=word_id,
                    correct_count=0,
                    wrong_count=0,
                )
                self.db.add(progress)

            word = self.db.query(Word).filter(Word.id == word_id).first()
            if is_correct:
                progress.correct_count += 1
                if word:
                    word.correct_count += 1
            else:
                progress.wrong_count += 1
                if word:
                    word.wrong_count += 1
            progress.last_reviewed_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating progress of word {word_id} for {user_id}: {e}")
            monitoring.db_errors.labels(operation_type="record_answer").inc()
            return False

        return True

    def list_progress(self) -> List[WordProgress]:
        """All progress rows of the user."""
        user_id = self._user_id()
        if not user_id:
            return []
        try:
            return self.db.query(WordProgress).filter(WordProgress.user_id == user_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching word progress: {e}")
            monitoring.db_errors.labels(operation_type="list_progress").inc()
            return []

    def mastered_word_ids(self) -> List[str]:
        return [
            row.word_id
            for row in self.list_progress()
            if is_mastered(row.correct_count, row.wrong_count)
        ]

    def compute_stats(self) -> UserStats:
        """Totals over the user's sessions."""
        user_id = self._user_id()
        if not user_id:
            return UserStats()
        try:
            sessions = self.db.query(StudySession).filter(StudySession.user_id == user_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching sessions for stats: {e}")
            monitoring.db_errors.labels(operation_type="compute_stats").inc()
            return UserStats()

        total_correct = sum(s.correct_count for s in sessions)
        total_wrong = sum(s.wrong_count for s in sessions)
        return UserStats(
            total_sessions=sum(1 for s in sessions if s.is_completed),
            total_correct=total_correct,
            total_wrong=total_wrong,
            accuracy=accuracy(total_correct, total_wrong),
        )

    def reset_progress(self) -> int:
        """Delete the user's progress rows. Returns the number removed."""
        user_id = self._user_id()
        if not user_id:
            return 0
        try:
            removed = (
                self.db.query(WordProgress)
                .filter(WordProgress.user_id == user_id)
                .delete()
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error resetting progress for {user_id}: {e}")
            monitoring.db_errors.labels(operation_type="reset_progress").inc()
            return 0
        logger.info(f"Reset {removed} progress rows for {user_id}")
        return removed
