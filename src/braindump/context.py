"""
Context assembly for an organize pass.

Gathers the owner's pending fragments and still-open items and flattens
them into the two text blocks the contract builder needs.
"""

import logging
from dataclasses import dataclass, field

from braindump.errors import InputEmptyError
from braindump.interfaces import FragmentStore, OrganizedStore
from braindump.models import OrganizedItem, RawFragment

logger = logging.getLogger(__name__)


@dataclass
class OrganizeContext:
    owner_id: str
    fragments: list[RawFragment] = field(default_factory=list)
    open_items: list[OrganizedItem] = field(default_factory=list)
    consumed_ids: list[str] = field(default_factory=list)  # purged after commit

    @property
    def new_input_text(self) -> str:
        return " ".join(fragment.content for fragment in self.fragments)

    @property
    def previous_items_text(self) -> str:
        return ", ".join(item.content for item in self.open_items)


def assemble_context(
    owner_id: str,
    fragments: FragmentStore,
    organized: OrganizedStore,
) -> OrganizeContext:
    """Read both stores once. Raises InputEmptyError with nothing to do."""
    pending = fragments.fetch_pending_fragments(owner_id)
    usable = [fragment for fragment in pending if fragment.content.strip()]
    if not usable:
        raise InputEmptyError(f"No pending fragments for owner {owner_id!r}")

    open_items = [item for item in organized.fetch_open_items(owner_id) if not item.completed]
    logger.info(f"Assembled {len(usable)} fragments and {len(open_items)} open items for {owner_id!r}")

    # Blank fragments are consumed too so they do not linger
    return OrganizeContext(
        owner_id=owner_id,
        fragments=usable,
        open_items=open_items,
        consumed_ids=[fragment.id for fragment in pending],
    )
