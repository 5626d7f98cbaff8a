"""
Ingress module for Braindump.

Capture is the hot path: store the raw text and return. No classification
happens here; the organize pass picks fragments up later.
"""

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from braindump.db import Database


_last_id = 0


def generate_id() -> str:
    """Generate a unique fragment ID (Unix timestamp in microseconds)."""
    global _last_id
    # Strictly increasing, even for captures within the same microsecond
    _last_id = max(time.time_ns() // 1000, _last_id + 1)
    return str(_last_id)


def capture(text: str, db: "Database", owner_id: str) -> str:
    """
    Store one raw fragment for ``owner_id``.

    Raises ValueError for empty text. Returns the fragment ID.
    """
    text = text.strip()
    if not text:
        raise ValueError("Empty thought")
    return db.add_fragment(owner_id, text)
