"""Error taxonomy for family resolution and metrics.

Malformed voter data is a normal input, not an error: it is counted in the
run summary and never raised.  Only the store-facing failures below are
exceptions.

Error categories
----------------
INPUT_DEFECT         : missing or empty address fragments; counted, never raised
PERSISTENCE_FAILURE  : one record's family-id write failed; the run continues
IDENTIFIER_COLLISION : a generated id is already in use; skipped, next number tried
STORE_UNAVAILABLE    : the store cannot be reached; fatal for the run
RUN_IN_PROGRESS      : another resolution run holds the writer lock
UNKNOWN              : anything else
"""
from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    INPUT_DEFECT = "input_defect"
    PERSISTENCE_FAILURE = "persistence_failure"
    IDENTIFIER_COLLISION = "identifier_collision"
    STORE_UNAVAILABLE = "store_unavailable"
    RUN_IN_PROGRESS = "run_in_progress"
    UNKNOWN = "unknown"


class HouseholdError(Exception):
    """Base class for errors raised by this package."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class PersistenceError(HouseholdError):
    """A single voter record could not be written."""

    category = ErrorCategory.PERSISTENCE_FAILURE

    def __init__(self, voter_id: str, reason: str) -> None:
        super().__init__(f"family id write failed for voter {voter_id}: {reason}")
        self.voter_id = voter_id
        self.reason = reason


class StoreUnavailableError(HouseholdError):
    """The voter or survey store cannot be reached at all."""

    category = ErrorCategory.STORE_UNAVAILABLE


class ResolutionInProgressError(HouseholdError):
    """Another family resolution run currently holds the writer lock."""

    category = ErrorCategory.RUN_IN_PROGRESS


def categorize(error: BaseException) -> ErrorCategory:
    """Map an exception to its ``ErrorCategory``."""
    if isinstance(error, HouseholdError):
        return error.category
    return ErrorCategory.UNKNOWN
