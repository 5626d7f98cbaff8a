"""
Organize pipeline for Braindump.

One synchronous pass per owner:

    assemble context -> build contract -> oracle -> validate -> merge -> commit

The anchor date is fixed once at the start of the pass and threaded through
every step. Nothing is written until a validated merge result exists.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from braindump.context import assemble_context
from braindump.contract import build_contract
from braindump.errors import OracleTimeoutError
from braindump.interfaces import ArchiveStore, FragmentStore, Oracle, OrganizedStore
from braindump.merge import MergeEngine
from braindump.models import Category, CategoryItem, ClassificationRequest, OrganizedItem
from braindump.persistence import CommitReport, PersistenceCoordinator
from braindump.validator import parse_response

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"
DEFAULT_TIMEOUT_SECONDS = 60.0


def resolve_anchor_date(timezone: str = DEFAULT_TIMEZONE, anchor_date: date | None = None) -> date:
    """The pass's single "today": explicit, or the current date in ``timezone``."""
    if anchor_date is not None:
        return anchor_date
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {timezone}") from e
    return datetime.now(zone).date()


@dataclass
class OrganizeResult:
    owner_id: str
    anchor_date: date
    items_by_category: dict[Category, list[CategoryItem]] = field(default_factory=dict)
    inserted: list[OrganizedItem] = field(default_factory=list)
    enriched: list[OrganizedItem] = field(default_factory=list)
    skipped: list[CategoryItem] = field(default_factory=list)
    report: CommitReport | None = None

    def as_dict(self) -> dict[str, Any]:
        """Category label -> list of item dicts, as the oracle reported them."""
        return {
            category.label: [item.model_dump(mode="json") for item in items]
            for category, items in self.items_by_category.items()
        }


class Organizer:
    """Runs organize passes against injected stores and oracle."""

    def __init__(
        self,
        oracle: Oracle,
        fragments: FragmentStore,
        organized: OrganizedStore,
        archive: ArchiveStore,
        timezone: str = DEFAULT_TIMEZONE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.oracle = oracle
        self.fragments = fragments
        self.organized = organized
        self.archive = archive
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.coordinator = PersistenceCoordinator(organized, archive, fragments)

    def organize(
        self,
        owner_id: str,
        timezone: str | None = None,
        anchor_date: date | None = None,
    ) -> OrganizeResult:
        """
        Organize all pending fragments for ``owner_id``.

        The caller must not run two passes for the same owner at once.
        """
        timezone = timezone or self.timezone
        anchor = resolve_anchor_date(timezone, anchor_date)
        logger.info(f"Organizing for {owner_id!r}, anchor {anchor.isoformat()} ({timezone})")

        context = assemble_context(owner_id, self.fragments, self.organized)

        request = ClassificationRequest(
            new_input_text=context.new_input_text,
            previous_items_text=context.previous_items_text,
            timezone=timezone,
            anchor_date=anchor,
            fragments=[fragment.content for fragment in context.fragments],
        )
        request.contract = build_contract(request)

        reply = self._call_oracle(request)
        parsed = parse_response(reply, anchor)

        engine = MergeEngine(
            owner_id,
            context.open_items,
            source_fragment_id=context.fragments[0].id,
        )
        merged = engine.merge_all(parsed)

        result = OrganizeResult(
            owner_id=owner_id,
            anchor_date=anchor,
            items_by_category=parsed,
            inserted=merged.inserted,
            enriched=merged.enriched,
            skipped=merged.skipped,
        )
        result.report = self.coordinator.commit(owner_id, merged, context.consumed_ids)
        return result

    def _call_oracle(self, request: ClassificationRequest) -> str:
        """
        Run the oracle on a daemon thread, bounded by the timeout.

        A stuck oracle is abandoned: its late answer is discarded and the
        thread cannot keep the process alive.
        """
        outcome: dict[str, Any] = {}

        def run() -> None:
            try:
                outcome["reply"] = self.oracle.classify(request)
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=run, name=f"oracle-{self.oracle.name}", daemon=True)
        worker.start()
        worker.join(self.timeout_seconds)

        if worker.is_alive():
            raise OracleTimeoutError(
                f"{self.oracle.name} gave no answer within {self.timeout_seconds}s"
            )
        if "error" in outcome:
            raise outcome["error"]
        return outcome["reply"]
