"""Filtering, sorting and pagination of word and session lists."""
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from hellenika.config import settings
from hellenika.security import sanitize_input

T = TypeVar("T")


def collation_key(text: Optional[str]) -> Tuple[str, str, str]:
    """Sort key that ignores accents and case first, then case, then nothing."""
    text = text or ""
    decomposed = unicodedata.normalize("NFD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), text.casefold(), text)


@dataclass(frozen=True)
class BrowseFields:
    """Searchable and sortable attributes of one kind of list item."""

    search: Tuple[str, ...]
    text_sorts: Tuple[str, ...]
    numeric_sorts: Tuple[str, ...] = ()

    @property
    def sort_fields(self) -> Tuple[str, ...]:
        return self.text_sorts + self.numeric_sorts


WORD_FIELDS = BrowseFields(
    search=("greek", "transliteration", "english"),
    text_sorts=("greek", "english", "part_of_speech"),
    numeric_sorts=("correct_count", "wrong_count"),
)

SESSION_FIELDS = BrowseFields(
    search=("activity_name", "group_name"),
    text_sorts=("activity_name", "group_name"),
    numeric_sorts=("correct_count", "wrong_count"),
)


def _matches(item: Any, attributes: Sequence[str], needle: str) -> bool:
    for attribute in attributes:
        value = getattr(item, attribute, None)
        if value and needle in str(value).lower():
            return True
    return False


def filter_items(items: Sequence[T], query: Optional[str], fields: BrowseFields) -> List[T]:
    """Case-insensitive substring search over the item's text attributes.

    The query is HTML-escaped before matching, so markup only ever matches
    itself literally.
    """
    needle = sanitize_input((query or "").strip().lower())
    if not needle:
        return list(items)
    return [item for item in items if _matches(item, fields.search, needle)]


def sort_items(
    items: Sequence[T],
    sort_field: str,
    direction: str,
    fields: BrowseFields,
) -> List[T]:
    """Stable sort by a text attribute (collated) or a count (numeric)."""
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction: {direction}")

    key: Callable[[T], Any]
    if sort_field in fields.text_sorts:
        key = lambda item: collation_key(getattr(item, sort_field))  # noqa: E731
    elif sort_field in fields.numeric_sorts:
        key = lambda item: getattr(item, sort_field) or 0  # noqa: E731
    else:
        raise ValueError(f"Unknown sort field: {sort_field}")

    return sorted(items, key=key, reverse=direction == "desc")


def filter_and_sort(
    items: Sequence[T],
    query: Optional[str],
    sort_field: str,
    direction: str,
    fields: BrowseFields = WORD_FIELDS,
) -> List[T]:
    return sort_items(filter_items(items, query, fields), sort_field, direction, fields)


@dataclass
class Page(Generic[T]):
    """One page of a list."""

    items: List[T] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total: int = 0
    page_size: int = 10

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def first_index(self) -> int:
        """1-based position of the first item on this page, 0 when empty."""
        if not self.items:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def last_index(self) -> int:
        if not self.items:
            return 0
        return self.first_index + len(self.items) - 1


def paginate(items: Sequence[T], page: int = 1, page_size: Optional[int] = None) -> Page[T]:
    """Slice one page out of ``items``.

    Pages are 1-indexed. Page 1 of an empty list is valid; any other page
    outside ``1..total_pages`` raises ValueError.
    """
    page_size = page_size or settings.study.page_size
    if page_size < 1:
        raise ValueError(f"Page size must be positive, got {page_size}")

    total = len(items)
    total_pages = math.ceil(total / page_size)
    if page < 1 or (page > total_pages and not (page == 1 and total == 0)):
        raise ValueError(f"Page {page} is out of range (1..{max(total_pages, 1)})")

    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        total_pages=total_pages,
        total=total,
        page_size=page_size,
    )
