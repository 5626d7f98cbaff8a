import json
import time
from datetime import date

import pytest

from braindump.db import Database
from braindump.interfaces import ArchiveStore, FragmentStore, Oracle, OrganizedStore
from braindump.merge import identity_key
from braindump.models import ClassificationRequest, OrganizedItem, RawFragment

ANCHOR = date(2025, 1, 13)  # a Monday
OWNER = "owner-1"


class MemoryStore(FragmentStore, OrganizedStore, ArchiveStore):
    """In-memory stand-in for all three stores, with failure switches."""

    def __init__(self):
        self.fragments: list[RawFragment] = []
        self.items: list[OrganizedItem] = []
        self.archived: list[OrganizedItem] = []
        self.calls: list[str] = []
        self.fail_insert = False
        self.fail_update = False
        self.fail_archive = False
        self.fail_purge = False
        self.opened = False

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.opened = False

    def add_fragment(self, owner_id: str, content: str) -> str:
        fragment_id = f"f{len(self.fragments) + 1}"
        self.fragments.append(RawFragment(id=fragment_id, owner_id=owner_id, content=content))
        return fragment_id

    def add_item(self, content: str, owner_id: str = OWNER, **fields) -> OrganizedItem:
        item = OrganizedItem(
            id=f"i{len(self.items) + 1}",
            owner_id=owner_id,
            category=fields.pop("category", "do"),
            content=content,
            identity_key=identity_key(content),
            **fields,
        )
        self.items.append(item)
        return item

    def fetch_pending_fragments(self, owner_id):
        return [f.model_copy() for f in self.fragments if f.owner_id == owner_id]

    def purge_fragments(self, owner_id, fragment_ids=None):
        self.calls.append("purge")
        if self.fail_purge:
            raise RuntimeError("purge exploded")
        before = len(self.fragments)
        self.fragments = [
            f for f in self.fragments
            if f.owner_id != owner_id or (fragment_ids is not None and f.id not in fragment_ids)
        ]
        return before - len(self.fragments)

    def fetch_open_items(self, owner_id):
        return [i.model_copy() for i in self.items if i.owner_id == owner_id and not i.completed]

    def insert_organized(self, items):
        self.calls.append("insert")
        if self.fail_insert:
            raise RuntimeError("insert exploded")
        open_keys = {(i.owner_id, i.identity_key) for i in self.items if not i.completed}
        inserted = 0
        for item in items:
            if (item.owner_id, item.identity_key) in open_keys:
                continue
            self.items.append(item.model_copy())
            inserted += 1
        return inserted

    def update_organized(self, items):
        self.calls.append("update")
        if self.fail_update:
            raise RuntimeError("update exploded")
        by_id = {i.id: i for i in self.items}
        for item in items:
            stored = by_id[item.id]
            stored.date, stored.time, stored.recurrence = item.date, item.time, item.recurrence
        return len(items)

    def save(self, inserted, enriched):
        snapshot = [item.model_copy() for item in self.items]
        try:
            counts = (
                self.insert_organized(inserted) if inserted else 0,
                self.update_organized(enriched) if enriched else 0,
            )
        except Exception:
            self.items = snapshot
            raise
        return counts

    def archive(self, items):
        self.calls.append("archive")
        if self.fail_archive:
            raise RuntimeError("archive exploded")
        self.archived.extend(item.model_copy() for item in items)
        return len(items)

    def open_items(self, owner_id: str = OWNER) -> list[OrganizedItem]:
        return [i for i in self.items if i.owner_id == owner_id and not i.completed]


class ScriptedOracle(Oracle):
    """Returns a canned reply and remembers the requests it saw."""

    name = "scripted"

    def __init__(self, reply):
        self.reply = reply if isinstance(reply, str) else json.dumps(reply)
        self.requests: list[ClassificationRequest] = []

    def classify(self, request):
        self.requests.append(request)
        return self.reply


class SlowOracle(Oracle):
    name = "slow"

    def __init__(self, delay: float):
        self.delay = delay

    def classify(self, request):
        time.sleep(self.delay)
        return '{"Do": []}'


class FailingOracle(Oracle):
    name = "failing"

    def __init__(self, error: Exception):
        self.error = error

    def classify(self, request):
        raise self.error


def category_item(item, date=None, time=None, recurrence=None):
    return {"item": item, "recurrence": recurrence, "date": date, "time": time, "completed": False}


@pytest.fixture
def anchor():
    return ANCHOR


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "braindump.db")
    database.open()
    yield database
    database.close()
