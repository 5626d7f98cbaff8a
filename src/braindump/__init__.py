"""
Braindump: turn freeform notes into organized action items.

A local-first pipeline that provides:
- Zero-friction capture of raw fragments
- Oracle-driven categorization with explicit date rules
- Deduplicated, monotonically enriched item storage
"""

__version__ = "0.1.0"
