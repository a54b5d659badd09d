"""Read-only summaries for the dashboard and the group list."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from hellenika.models.models import StudySession, WordGroup
from hellenika.services.auth_service import AuthContext
from hellenika.services.catalog_service import CatalogService
from hellenika.services.progress_service import (
    ProgressTracker,
    UserStats,
    accuracy,
    count_mastered,
)
from hellenika.services.session_service import SessionLedger

logger = logging.getLogger(__name__)


@dataclass
class GroupSummary:
    group: WordGroup
    word_count: int
    accuracy: int


@dataclass
class DashboardSummary:
    total_words: int = 0
    mastered_words: int = 0
    catalog_accuracy: int = 0
    user_stats: UserStats = field(default_factory=UserStats)
    user_mastered_words: int = 0
    last_session: Optional[StudySession] = None


class DashboardService:
    """Builds dashboard views from the catalog, progress and ledger."""

    def __init__(self, db: Session, auth: AuthContext):
        self.db = db
        self.auth = auth
        self.catalog = CatalogService(db)
        self.progress = ProgressTracker(db, auth)
        self.ledger = SessionLedger(db, auth)

    def summary(self) -> DashboardSummary:
        words = self.catalog.list_words()
        total_correct = sum(w.correct_count for w in words)
        total_wrong = sum(w.wrong_count for w in words)
        return DashboardSummary(
            total_words=len(words),
            mastered_words=count_mastered(words),
            catalog_accuracy=accuracy(total_correct, total_wrong),
            user_stats=self.progress.compute_stats(),
            user_mastered_words=len(self.progress.mastered_word_ids()),
            last_session=self.ledger.last_session(),
        )

    def group_summaries(self) -> List[GroupSummary]:
        """Word count and catalog accuracy of every group."""
        summaries = []
        for group in self.catalog.list_groups():
            words = self.catalog.list_words(group.id)
            summaries.append(
                GroupSummary(
                    group=group,
                    word_count=group.word_count,
                    accuracy=accuracy(
                        sum(w.correct_count for w in words),
                        sum(w.wrong_count for w in words),
                    ),
                )
            )
        return summaries
