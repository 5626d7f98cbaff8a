"""
Surfacing module for Braindump.

Terminal formatting for organized items and pass summaries.
"""

import os

from braindump.models import CATEGORY_LABELS, Category, OrganizedItem


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Bright foreground colors
    BRIGHT_BLACK = "\033[90m"  # Gray
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"

    @classmethod
    def enabled(cls) -> bool:
        """Check if colors should be enabled."""
        # Disable if NO_COLOR is set
        if os.environ.get("NO_COLOR"):
            return False
        return True


def c(text: str, *codes: str) -> str:
    """Apply color codes to text if colors are enabled."""
    if not Colors.enabled():
        return text
    return "".join(codes) + text + Colors.RESET


CATEGORY_COLORS = {
    Category.DO: Colors.BRIGHT_YELLOW,
    Category.PLAN: Colors.BRIGHT_BLUE,
    Category.THINK: Colors.BRIGHT_CYAN,
    Category.SHOPPING_LIST: Colors.BRIGHT_GREEN,
    Category.IMPORTANT_DATES_EVENTS: Colors.BRIGHT_MAGENTA,
}


def format_id(item_id: str) -> str:
    """Short form of an ID for display: its first 8 characters."""
    return item_id.replace("-", "")[:8]


def format_when(item: OrganizedItem) -> str:
    """'Tue 2025-01-14 15:00 (weekly)' style schedule suffix."""
    parts = []
    if item.date:
        parts.append(f"{item.day_of_week[:3]} {item.date.isoformat()}")
    if item.time:
        parts.append(item.time)
    if item.recurrence:
        parts.append(f"({item.recurrence})")
    return " ".join(parts)


def format_item(item: OrganizedItem) -> str:
    box = "[x]" if item.completed else "[ ]"
    when = format_when(item)
    line = f"  {box} {c(format_id(item.id), Colors.DIM)} {item.content}"
    if when:
        line += "  " + c(when, Colors.BRIGHT_BLACK)
    return line


def format_items_by_category(items: list[OrganizedItem]) -> str:
    """Group items under category headings, taxonomy order, dated first."""
    if not items:
        return "Nothing organized yet."

    lines = []
    for category, label in CATEGORY_LABELS.items():
        group = [item for item in items if item.category == category]
        if not group:
            continue
        group.sort(key=lambda item: (item.date is None, item.date or item.created_at or "", item.time or ""))
        lines.append(c(f"## {label} ({len(group)})", Colors.BOLD, CATEGORY_COLORS[category]))
        lines.extend(format_item(item) for item in group)
        lines.append("")
    return "\n".join(lines).rstrip()
