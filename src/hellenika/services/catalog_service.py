"""Service for the word catalog, word groups and study activities."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from hellenika.catalog_data import STUDY_ACTIVITIES, WORD_GROUPS, WORDS
from hellenika.models.activity_models import StudyActivity
from hellenika.models.models import PartOfSpeech, Word, WordGroup, WordGroupMembership

logger = logging.getLogger(__name__)


class CatalogService:
    """Read access to the seeded catalog."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def seed_catalog(self) -> int:
        """Insert the seed words and groups if the catalog is empty.

        Returns the number of words inserted.
        """
        if self.db.query(Word).count():
            logger.debug("Catalog already seeded")
            return 0

        for group_id, name, description in WORD_GROUPS:
            self.db.add(WordGroup(id=group_id, name=name, description=description))

        for word_id, greek, translit, english, pos, correct, wrong, group_ids in WORDS:
            word = Word(
                id=word_id,
                greek=greek,
                transliteration=translit,
                english=english,
                part_of_speech=PartOfSpeech(pos).value,
                correct_count=correct,
                wrong_count=wrong,
            )
            word.memberships = [WordGroupMembership(group_id=group_id) for group_id in group_ids]
            self.db.add(word)

        self.db.commit()
        self.refresh_group_counts()
        logger.info(f"Seeded catalog with {len(WORDS)} words and {len(WORD_GROUPS)} groups")
        return len(WORDS)

    def refresh_group_counts(self) -> None:
        """Recompute the cached word count of every group."""
        for group in self.db.query(WordGroup).all():
            group.word_count = (
                self.db.query(WordGroupMembership)
                .filter(WordGroupMembership.group_id == group.id)
                .count()
            )
        self.db.commit()

    def list_words(self, group_id: Optional[str] = None) -> List[Word]:
        """All words, or the words belonging to a group, in catalog order."""
        query = self.db.query(Word)
        if group_id is not None:
            query = query.join(WordGroupMembership).filter(WordGroupMembership.group_id == group_id)
        return sorted(query.all(), key=_catalog_order)

    def get_word(self, word_id: str) -> Optional[Word]:
        """Get a word by its ID."""
        return self.db.query(Word).filter(Word.id == word_id).first()

    def list_groups(self) -> List[WordGroup]:
        """All word groups in seed order."""
        order = {group_id: index for index, (group_id, _, _) in enumerate(WORD_GROUPS)}
        return sorted(self.db.query(WordGroup).all(), key=lambda g: (order.get(g.id, len(order)), g.id))

    def get_group(self, group_id: str) -> Optional[WordGroup]:
        """Get a group by its ID."""
        return self.db.query(WordGroup).filter(WordGroup.id == group_id).first()

    def list_activities(self) -> List[StudyActivity]:
        return list(STUDY_ACTIVITIES)

    def get_activity(self, activity_id: str) -> Optional[StudyActivity]:
        return next((a for a in STUDY_ACTIVITIES if a.id == activity_id), None)


def _catalog_order(word: Word):
    # Seed ids are numeric strings
    return (0, int(word.id), "") if word.id.isdigit() else (1, 0, word.id)
