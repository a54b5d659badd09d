"""Database models for Hellenika."""
import uuid
from datetime import timedelta
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hellenika.models.base import Base, TimestampMixin, utcnow


def new_id() -> str:
    """Generate a random string identifier."""
    return str(uuid.uuid4())


class PartOfSpeech(Enum):
    """Part-of-speech tags used by the catalog."""
    NOUN = "noun"
    VERB = "verb"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PREPOSITION = "preposition"
    CONJUNCTION = "conjunction"
    PARTICLE = "particle"


class ActivityType(Enum):
    """Study activity types."""
    FLASHCARD = "flashcard"
    QUIZ = "quiz"
    TYPING = "typing"
    MATCHING = "matching"
    LISTENING = "listening"
    SPELLING = "spelling"


class Word(Base, TimestampMixin):
    """Vocabulary entry."""

    __tablename__ = "words"

    id = Column(String, primary_key=True)
    greek = Column(String, nullable=False)
    transliteration = Column(String, nullable=False)
    english = Column(String, nullable=False)
    part_of_speech = Column(String, nullable=False)
    correct_count = Column(Integer, default=0, nullable=False)
    wrong_count = Column(Integer, default=0, nullable=False)

    # Relationships
    memberships = relationship(
        "WordGroupMembership",
        back_populates="word",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def group_ids(self) -> List[str]:
        """Identifiers of the groups this word belongs to."""
        return [membership.group_id for membership in self.memberships]

    def __repr__(self) -> str:
        return f"<Word {self.id} {self.transliteration}>"


class WordGroupMembership(Base):
    """Word-group association.

    ``group_id`` is not a foreign key: a word may reference a group that
    does not exist.
    """

    __tablename__ = "word_group_memberships"

    word_id = Column(String, ForeignKey("words.id"), primary_key=True)
    group_id = Column(String, primary_key=True)

    # Relationships
    word = relationship("Word", back_populates="memberships")


class WordGroup(Base, TimestampMixin):
    """Named group of words."""

    __tablename__ = "word_groups"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    word_count = Column(Integer, default=0, nullable=False)


class User(Base, TimestampMixin):
    """Identity record keyed by a synthetic e-mail address."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False)
    tokens = relationship("AuthToken", back_populates="user", cascade="all, delete-orphan")


class AuthToken(Base):
    """Issued session token."""

    __tablename__ = "auth_tokens"

    token = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="tokens")


class Profile(Base):
    """Public profile holding the display name."""

    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    username = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="profile")


class StudySession(Base):
    """One run of a study activity."""

    __tablename__ = "study_sessions"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    activity_type = Column(String, nullable=False)
    activity_name = Column(String, nullable=False)
    group_id = Column(String, nullable=True)
    group_name = Column(String, nullable=True)
    correct_count = Column(Integer, default=0, nullable=False)
    wrong_count = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def duration(self) -> Optional[timedelta]:
        """Time between start and completion, None while in progress."""
        if self.completed_at is None or self.started_at is None:
            return None
        started, completed = self.started_at, self.completed_at
        # SQLite hands back naive datetimes
        if (started.tzinfo is None) != (completed.tzinfo is None):
            started = started.replace(tzinfo=None)
            completed = completed.replace(tzinfo=None)
        return completed - started


class WordProgress(Base):
    """Per-user answer counters for a word."""

    __tablename__ = "word_progress"
    __table_args__ = (UniqueConstraint("user_id", "word_id", name="uq_word_progress_user_word"),)

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    word_id = Column(String, ForeignKey("words.id"), nullable=False)
    correct_count = Column(Integer, default=0, nullable=False)
    wrong_count = Column(Integer, default=0, nullable=False)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)
