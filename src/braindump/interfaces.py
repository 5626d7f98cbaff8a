"""
Collaborator interfaces for Braindump.

The pipeline talks to three stores and one oracle through these; the SQLite
Database implements all three stores, tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from braindump.models import ClassificationRequest, OrganizedItem, RawFragment


class Store(ABC):
    """Explicit lifecycle shared by every store."""

    def open(self) -> None:
        """Acquire resources. Default: nothing to do."""

    def close(self) -> None:
        """Release resources. Default: nothing to do."""

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FragmentStore(Store):
    @abstractmethod
    def fetch_pending_fragments(self, owner_id: str) -> list[RawFragment]:
        raise NotImplementedError

    @abstractmethod
    def purge_fragments(self, owner_id: str, fragment_ids: Iterable[str] | None = None) -> int:
        """Delete consumed fragments; all of the owner's when ids are None."""
        raise NotImplementedError


class OrganizedStore(Store):
    @abstractmethod
    def fetch_open_items(self, owner_id: str) -> list[OrganizedItem]:
        """Items with completed = false."""
        raise NotImplementedError

    @abstractmethod
    def insert_organized(self, items: list[OrganizedItem]) -> int:
        raise NotImplementedError

    @abstractmethod
    def update_organized(self, items: list[OrganizedItem]) -> int:
        """Write enriched date/time/recurrence back to existing rows."""
        raise NotImplementedError

    @abstractmethod
    def save(self, inserted: list[OrganizedItem], enriched: list[OrganizedItem]) -> tuple[int, int]:
        """
        Insert and enrich in one transaction: both land or neither does.

        Returns (rows inserted, rows updated).
        """
        raise NotImplementedError


class ArchiveStore(Store):
    @abstractmethod
    def archive(self, items: list[OrganizedItem]) -> int:
        """Append copies. Archived rows are never mutated or deleted."""
        raise NotImplementedError


class Oracle(ABC):
    """Anything that turns a classification request into a reply string."""

    name = "oracle"

    @abstractmethod
    def classify(self, request: ClassificationRequest) -> str:
        raise NotImplementedError
