from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data or configuration is invalid."""


class InvalidTransition(DomainError):
    """The requested action is not legal for the entry's current status."""

    def __init__(self, message: str, *, status=None, action=None):
        super().__init__(message)
        self.status = status
        self.action = action


class NoActiveSession(InvalidTransition):
    """Clock-out or end-break requested with nothing open."""


class AlreadyOnBreak(InvalidTransition):
    """A break was requested while another break is still open."""


class LunchAlreadyTaken(InvalidTransition):
    """Lunch may be taken only once per day."""


class ConcurrentModification(DomainError):
    """The stored entry changed since it was read (optimistic check failed)."""

    def __init__(self, message: str, *, expected_revision: Optional[int] = None, actual_revision: Optional[int] = None):
        super().__init__(message)
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class ReportUnavailable(DomainError):
    """Storage failed while a report was being aggregated."""


class StaleEntryCloseFailure(DomainError):
    """The maintenance sweep could not persist a forced close."""

    def __init__(self, message: str, *, user_id=None, work_date=None):
        super().__init__(message)
        self.user_id = user_id
        self.work_date = work_date


class StoreUnavailable(Exception):
    """The record store cannot be reached at all.

    Not a DomainError, so handlers of domain failures never catch it and it
    is never read as "no entry today".
    """
