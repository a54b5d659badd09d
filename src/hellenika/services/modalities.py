"""Question modalities for study activities."""
import logging
import random
import unicodedata
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Type, final

from hellenika.config import settings
from hellenika.models.activity_models import ActivityWord, AnswerResult, Modality, Question
from hellenika.models.models import ActivityType

logger = logging.getLogger(__name__)


def get_all_subclasses(cls):
    """Get all subclasses of a class."""
    all_subclasses = []
    for subclass in cls.__subclasses__():
        all_subclasses.append(subclass)
        all_subclasses.extend(get_all_subclasses(subclass))
    return all_subclasses


def normalize_answer(text: str) -> str:
    """Trim, NFC-normalize and lowercase a typed answer."""
    return unicodedata.normalize("NFC", text.strip()).lower()


class BaseModality(ABC):
    """Base class for all modalities."""

    """Fields and methods that must be implemented by subclasses."""
    type: Modality
    activity_types: tuple = ()

    @abstractmethod
    def _create_question(self, word: ActivityWord, catalog: Sequence[ActivityWord]) -> Question:
        """Build the question for a word. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def _is_correct(self, question: Question, answer: Any) -> bool:
        """Score an answer. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement this method")

    def _correct_answer(self, question: Question) -> str:
        return question.word.english

    @classmethod
    def should_be_used_for(cls, activity_type: ActivityType) -> bool:
        """Determine if this modality administers the given activity type."""
        return activity_type in cls.activity_types

    """Fields and methods that must not be overridden by subclasses."""

    @final
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @final
    def create_question(self, word: ActivityWord, catalog: Sequence[ActivityWord]) -> Question:
        """Create a question for this modality."""
        logger.debug(f"{type(self).__name__}: creating question for word {word.id}")
        return self._create_question(word, catalog)

    @final
    def check_answer(self, question: Question, answer: Any) -> AnswerResult:
        """Score an answer to a question produced by this modality."""
        is_correct = self._is_correct(question, answer)
        return AnswerResult(
            word=question.word,
            is_correct=is_correct,
            answer=None if isinstance(answer, bool) else answer,
            correct_answer=self._correct_answer(question),
        )


class RevealModality(BaseModality):
    """Show the card; the learner reports whether they knew it."""
    type: Modality = Modality.REVEAL
    activity_types = (ActivityType.FLASHCARD,)

    def _create_question(self, word: ActivityWord, catalog: Sequence[ActivityWord]) -> Question:
        return Question(modality=self.type, word=word, prompt=word.greek)

    def _is_correct(self, question: Question, answer: Any) -> bool:
        return bool(answer)


class ChoiceModality(BaseModality):
    """Pick the English gloss among the correct one and random distractors."""
    type: Modality = Modality.CHOICE
    activity_types = (ActivityType.QUIZ,)

    def _create_question(self, word: ActivityWord, catalog: Sequence[ActivityWord]) -> Question:
        # Distractors are excluded by id, so two words sharing a gloss can
        # still show the same text twice.
        others = [candidate for candidate in catalog if candidate.id != word.id]
        count = min(settings.study.choice_option_count - 1, len(others))
        options = [candidate.english for candidate in self.rng.sample(others, count)]
        options.append(word.english)
        self.rng.shuffle(options)
        return Question(modality=self.type, word=word, prompt=word.greek, options=options)

    def _is_correct(self, question: Question, answer: Any) -> bool:
        return answer == question.word.english


class TypedModality(BaseModality):
    """Type the Greek word or its transliteration from the English gloss."""
    type: Modality = Modality.TYPED
    activity_types = (ActivityType.TYPING, ActivityType.SPELLING)

    def _create_question(self, word: ActivityWord, catalog: Sequence[ActivityWord]) -> Question:
        return Question(modality=self.type, word=word, prompt=word.english, expects_text=True)

    def _is_correct(self, question: Question, answer: Any) -> bool:
        if not isinstance(answer, str):
            return False
        typed = normalize_answer(answer)
        return typed in (
            normalize_answer(question.word.greek),
            normalize_answer(question.word.transliteration),
        )

    def _correct_answer(self, question: Question) -> str:
        return f"{question.word.greek} ({question.word.transliteration})"


def modality_for(activity_type: ActivityType) -> Optional[Type[BaseModality]]:
    """Find the modality class that administers an activity type."""
    for modality_class in get_all_subclasses(BaseModality):
        if modality_class.should_be_used_for(activity_type):
            return modality_class
    return None
