"""Activity engine: word selection and the per-run question state machine."""
import logging
import random
from typing import Any, List, Optional, Sequence

from hellenika.config import settings
from hellenika.errors import NotFoundError
from hellenika.models.activity_models import (
    ActivityWord,
    AnswerResult,
    Question,
    RunState,
    StudyActivity,
)
from hellenika.models.models import WordGroup
from hellenika.services.catalog_service import CatalogService
from hellenika.services.modalities import BaseModality, modality_for

logger = logging.getLogger(__name__)


class ActivityRun:
    """One pass of an activity over a fixed list of words.

    ``Presenting(word, index) -> Answered(result) -> Presenting(next) | Complete``
    """

    def __init__(
        self,
        activity: StudyActivity,
        modality: BaseModality,
        words: List[ActivityWord],
        catalog: Sequence[ActivityWord],
        group: Optional[WordGroup] = None,
        rng: Optional[random.Random] = None,
    ):
        self.activity = activity
        self.modality = modality
        self.words = words
        self.catalog = list(catalog)
        self.group_id = group.id if group else None
        self.group_name = group.name if group else None
        self.rng = rng or random.Random()
        self._reset()

    def _reset(self) -> None:
        self.index = 0
        self.correct = 0
        self.wrong = 0
        self.last_result: Optional[AnswerResult] = None
        self.state = RunState.PRESENTING
        self.question: Optional[Question] = self._present()

    def _present(self) -> Optional[Question]:
        if not self.words:
            self.state = RunState.COMPLETE
            return None
        return self.modality.create_question(self.words[self.index], self.catalog)

    @property
    def current_word(self) -> Optional[ActivityWord]:
        if self.state == RunState.COMPLETE:
            return None
        return self.words[self.index]

    @property
    def is_complete(self) -> bool:
        return self.state == RunState.COMPLETE

    @property
    def answered_count(self) -> int:
        return self.correct + self.wrong

    @property
    def progress_percent(self) -> float:
        if not self.words:
            return 0.0
        done = self.index + (1 if self.state != RunState.PRESENTING else 0)
        return done / len(self.words) * 100

    @property
    def accuracy(self) -> int:
        """Share of the words answered correctly, rounded half up."""
        if not self.words:
            return 0
        return int(self.correct * 100 / len(self.words) + 0.5)

    def answer(self, value: Any) -> AnswerResult:
        """Score an answer to the current question."""
        if self.state != RunState.PRESENTING:
            raise RuntimeError(f"Cannot answer while {self.state.value}")

        result = self.modality.check_answer(self.question, value)
        if result.is_correct:
            self.correct += 1
        else:
            self.wrong += 1
        self.last_result = result
        self.state = RunState.ANSWERED
        logger.debug(
            f"Answer for word {result.word.id}: {'correct' if result.is_correct else 'wrong'} "
            f"({self.correct}/{self.wrong})"
        )
        return result

    def advance(self) -> RunState:
        """Move past an answered question."""
        if self.state != RunState.ANSWERED:
            return self.state
        if self.index < len(self.words) - 1:
            self.index += 1
            self.state = RunState.PRESENTING
            self.question = self._present()
        else:
            self.state = RunState.COMPLETE
            self.question = None
        return self.state

    def restart(self) -> None:
        """Reshuffle the same words and start over."""
        self.rng.shuffle(self.words)
        self._reset()


class ActivityEngine:
    """Selects words for an activity and creates runs."""

    def __init__(
        self,
        catalog_service: CatalogService,
        rng: Optional[random.Random] = None,
        session_size: Optional[int] = None,
    ):
        self.catalog_service = catalog_service
        self.rng = rng or random.Random()
        self.session_size = session_size or settings.study.words_per_session

    def eligible_pool(self, group_id: Optional[str] = None) -> List[ActivityWord]:
        """Words the run may draw from."""
        return [ActivityWord.from_word(w) for w in self.catalog_service.list_words(group_id)]

    def select_words(self, pool: Sequence[ActivityWord]) -> List[ActivityWord]:
        """Shuffled subset of the pool, at most ``session_size`` long."""
        return self.rng.sample(list(pool), min(len(pool), self.session_size))

    def start(self, activity_id: str, group_id: Optional[str] = None) -> ActivityRun:
        """Create a run for an activity, optionally limited to a group."""
        activity = self.catalog_service.get_activity(activity_id)
        if not activity:
            raise NotFoundError("Activity not found.", recovery_path="/activities")

        group = None
        if group_id is not None:
            group = self.catalog_service.get_group(group_id)
            if not group:
                raise NotFoundError("Group not found.", recovery_path="/groups")

        modality_class = modality_for(activity.type)
        if not modality_class:
            raise NotFoundError(
                f"{activity.name} is not available yet.", recovery_path="/activities"
            )

        pool = self.eligible_pool(group_id)
        if not pool:
            raise NotFoundError("No words to study in this group.", recovery_path="/groups")

        words = self.select_words(pool)
        catalog = self.eligible_pool()
        logger.info(
            f"Starting {activity.id} with {len(words)} of {len(pool)} words"
            + (f" from group {group_id}" if group_id else "")
        )
        return ActivityRun(
            activity=activity,
            modality=modality_class(self.rng),
            words=words,
            catalog=catalog,
            group=group,
            rng=self.rng,
        )
