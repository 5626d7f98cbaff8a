"""
Persistence coordinator for Braindump.

Commits a validated merge result in a fixed order: insert and enrich (one
transaction), archive, purge. Only the first step may abort cleanly; a purge failure
arrives after rows are committed and is surfaced for reconciliation.
"""

import logging
from dataclasses import dataclass

from braindump.errors import ArchivalWriteError, PersistenceWriteError, PurgeError
from braindump.interfaces import ArchiveStore, FragmentStore, OrganizedStore
from braindump.merge import MergeResult

logger = logging.getLogger(__name__)


@dataclass
class CommitReport:
    inserted: int = 0
    enriched: int = 0
    archived: int = 0
    purged: int = 0
    archive_error: str | None = None


class PersistenceCoordinator:
    """Writes one pass's outcome to the three stores."""

    def __init__(
        self,
        organized: OrganizedStore,
        archive: ArchiveStore,
        fragments: FragmentStore,
    ):
        self.organized = organized
        self.archive_store = archive
        self.fragments = fragments

    def commit(
        self,
        owner_id: str,
        result: MergeResult,
        fragment_ids: list[str] | None = None,
    ) -> CommitReport:
        """
        insert -> archive -> purge.

        Raises PersistenceWriteError (nothing written or purged) or PurgeError
        (rows committed, fragments left behind). Archive failures are logged
        only.
        """
        report = CommitReport()

        try:
            if result.changed:
                report.inserted, report.enriched = self.organized.save(result.inserted, result.enriched)
        except Exception as e:
            logger.error(f"Failed to save organized items for {owner_id!r}: {e}")
            raise PersistenceWriteError(f"Failed to save organized items: {e}") from e

        try:
            report.archived = self._archive(result)
        except ArchivalWriteError as e:
            logger.error(f"Failed to archive organized items for {owner_id!r}: {e}")
            report.archive_error = str(e)

        try:
            report.purged = self.fragments.purge_fragments(owner_id, fragment_ids)
        except Exception as e:
            logger.error(f"Failed to purge fragments for {owner_id!r} after commit: {e}")
            raise PurgeError(
                f"Organized items saved but fragments not purged: {e}",
                committed=result.inserted + result.enriched,
            ) from e

        logger.info(
            f"Committed {report.inserted} new, {report.enriched} enriched, "
            f"purged {report.purged} fragments for {owner_id!r}"
        )
        return report

    def _archive(self, result: MergeResult) -> int:
        if not result.inserted:
            return 0
        try:
            return self.archive_store.archive(result.inserted)
        except Exception as e:
            raise ArchivalWriteError(str(e)) from e
