"""
Exception hierarchy for Braindump.

Structural failures abort an organize pass. Field-level validation problems
never raise; they degrade the field to null in the validator.
"""

from typing import Any


class BrainDumpError(Exception):
    """Base class for all pipeline errors."""


class InputEmptyError(BrainDumpError):
    """No pending fragments to organize. Nothing is written."""


class OracleError(BrainDumpError):
    """Transport-level failure calling the classifier."""


class OracleTimeoutError(OracleError):
    """The classifier did not answer within the caller's timeout."""


class OracleUnavailableError(OracleError):
    """The classifier could not be reached or refused the request."""


class ResponseParseError(BrainDumpError):
    """The classifier reply is not recognizable as the output schema."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class PersistenceWriteError(BrainDumpError):
    """Writing organized items failed. Fragments stay pending."""


class ArchivalWriteError(BrainDumpError):
    """Archiving failed. Logged by the coordinator, never fatal."""


class PurgeError(BrainDumpError):
    """
    Purging fragments failed after organized items were committed.

    The committed rows are kept on the exception so the caller can reconcile;
    the fragments remain and will be offered again on the next pass.
    """

    reconciliation_required = True

    def __init__(self, message: str, committed: list[Any] | None = None):
        super().__init__(message)
        self.committed = committed or []


class ItemConflictError(BrainDumpError):
    """A change would leave two open items with the same identity."""
