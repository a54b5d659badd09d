"""Tests for the catalog service."""
import pytest
from sqlalchemy.orm import Session

from hellenika.models.models import ActivityType, WordGroup
from hellenika.services.catalog_service import CatalogService


@pytest.fixture
def catalog(db: Session) -> CatalogService:
    return CatalogService(db)


def test_seed_is_idempotent(catalog: CatalogService) -> None:
    assert catalog.seed_catalog() == 0
    assert len(catalog.list_words()) == 20


def test_list_words_in_catalog_order(catalog: CatalogService) -> None:
    ids = [word.id for word in catalog.list_words()]
    assert ids == [str(i) for i in range(1, 21)]


def test_list_words_by_group(catalog: CatalogService) -> None:
    words = catalog.list_words("homer")

    assert [word.transliteration for word in words] == ["megas", "mēnis", "theos", "basileus"]
    assert all("homer" in word.group_ids for word in words)


def test_group_word_counts(catalog: CatalogService) -> None:
    counts = {group.id: group.word_count for group in catalog.list_groups()}

    assert counts == {"philosophy": 10, "common": 15, "verbs": 5, "homer": 4}


def test_refresh_group_counts(db: Session, catalog: CatalogService) -> None:
    db.add(WordGroup(id="empty", name="Empty", description="", word_count=99))
    db.commit()

    catalog.refresh_group_counts()

    assert catalog.get_group("empty").word_count == 0


def test_list_groups_in_seed_order(catalog: CatalogService) -> None:
    assert [group.id for group in catalog.list_groups()] == ["philosophy", "common", "verbs", "homer"]


def test_get_word_and_group(catalog: CatalogService) -> None:
    assert catalog.get_word("4").english == "wisdom"
    assert catalog.get_word("404") is None
    assert catalog.get_group("verbs").name == "Essential Verbs"
    assert catalog.get_group("nope") is None


def test_activities(catalog: CatalogService) -> None:
    activities = catalog.list_activities()

    assert [a.id for a in activities] == ["flashcard", "quiz", "typing"]
    assert catalog.get_activity("quiz").type == ActivityType.QUIZ
    assert catalog.get_activity("matching") is None
