"""
Dedup and merge engine for Braindump.

Reconciles freshly classified items against the owner's open items. The
content string (normalised) is the identity key: an unseen key becomes a new
row, a seen key missing date or time is enriched in place, anything else is
a duplicate and skipped.

Identity is string equality after trim, whitespace collapse and casefold.
Reworded duplicates ("Buy milk" vs "Get milk") are NOT matched; plug a
different ``key_func`` in to experiment with fuzzy matching.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable

from braindump.models import Category, CategoryItem, OrganizedItem

logger = logging.getLogger(__name__)


def identity_key(content: str) -> str:
    """Normalised content used to decide whether two items are the same."""
    return " ".join(content.split()).casefold()


def generate_item_id() -> str:
    """Generate a unique organized item ID."""
    return uuid.uuid4().hex


@dataclass
class MergeResult:
    """Outcome of one merge pass."""

    inserted: list[OrganizedItem] = field(default_factory=list)
    enriched: list[OrganizedItem] = field(default_factory=list)
    skipped: list[CategoryItem] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.enriched)


class MergeEngine:
    """
    Identity map of one owner's open items.

    Categories are independent but share the map, so ``merge`` holds a lock:
    concurrent callers are serialised behind a single writer.
    """

    def __init__(
        self,
        owner_id: str,
        open_items: Iterable[OrganizedItem] = (),
        source_fragment_id: str | None = None,
        key_func: Callable[[str], str] = identity_key,
    ):
        self.owner_id = owner_id
        self.source_fragment_id = source_fragment_id
        self.key_func = key_func
        self._lock = threading.Lock()
        self._items: dict[str, OrganizedItem] = {}
        self._pending: set[str] = set()  # ids created during this pass
        self.result = MergeResult()

        for item in open_items:
            self._items.setdefault(self.key_func(item.content), item.model_copy())

    def get(self, content: str) -> OrganizedItem | None:
        return self._items.get(self.key_func(content))

    def merge(self, category: Category, items: Iterable[CategoryItem]) -> MergeResult:
        """Merge one category's items. Returns the cumulative result."""
        with self._lock:
            for item in items:
                self._merge_one(category, item)
        return self.result

    def merge_all(self, parsed: dict[Category, list[CategoryItem]]) -> MergeResult:
        """Merge every category in taxonomy order."""
        for category in Category:
            self.merge(category, parsed.get(category, []))
        return self.result

    def _merge_one(self, category: Category, item: CategoryItem) -> None:
        key = self.key_func(item.item)
        existing = self._items.get(key)

        if existing is None:
            created = OrganizedItem(
                id=generate_item_id(),
                owner_id=self.owner_id,
                source_fragment_id=self.source_fragment_id,
                category=category,
                content=item.item,
                identity_key=key,
                recurrence=item.recurrence,
                date=item.date,
                time=item.time,
                completed=False,
            )
            self._items[key] = created
            self._pending.add(created.id)
            self.result.inserted.append(created)
            return

        if existing.is_complete:
            logger.warning(f"Duplicate detected, skipping: {item.item!r}")
            self.result.skipped.append(item)
            return

        if not self._enrich(existing, item):
            logger.warning(f"Duplicate detected, nothing to add: {item.item!r}")
            self.result.skipped.append(item)
            return

        logger.info(f"Enriched existing entry: {existing.content!r}")
        # Rows created this pass are already queued for insert
        if existing.id not in self._pending and all(e.id != existing.id for e in self.result.enriched):
            self.result.enriched.append(existing)

    @staticmethod
    def _enrich(existing: OrganizedItem, item: CategoryItem) -> bool:
        """
        existing.date = item.date ?? existing.date, same for time.

        Never writes None over a value. Recurrence is only filled when missing.
        Returns True when anything changed.
        """
        before = (existing.date, existing.time, existing.recurrence)
        existing.date = item.date or existing.date
        existing.time = item.time or existing.time
        existing.recurrence = existing.recurrence or item.recurrence
        return (existing.date, existing.time, existing.recurrence) != before
