"""Models for study activities and the questions they produce."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from hellenika.models.models import ActivityType, Word


class Modality(Enum):
    """Question presentation styles."""
    REVEAL = "reveal"  # Show the card, learner self-reports
    CHOICE = "choice"  # Pick the gloss among options
    TYPED = "typed"  # Type the Greek word or its transliteration


class RunState(Enum):
    """States of an activity run."""
    PRESENTING = "presenting"
    ANSWERED = "answered"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StudyActivity:
    """Entry of the static activity catalog."""
    id: str
    name: str
    description: str
    type: ActivityType


@dataclass(frozen=True)
class ActivityWord:
    """Detached snapshot of a word used during a run."""
    id: str
    greek: str
    transliteration: str
    english: str

    @classmethod
    def from_word(cls, word: Word) -> "ActivityWord":
        return cls(
            id=word.id,
            greek=word.greek,
            transliteration=word.transliteration,
            english=word.english,
        )


@dataclass
class Question:
    """A word presented in a given modality."""
    modality: Modality
    word: ActivityWord
    prompt: str
    options: List[str] = field(default_factory=list)
    expects_text: bool = False


@dataclass
class AnswerResult:
    """Outcome of one answer."""
    word: ActivityWord
    is_correct: bool
    answer: Optional[str] = None
    correct_answer: Optional[str] = None
