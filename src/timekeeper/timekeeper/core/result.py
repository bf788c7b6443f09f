from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .exceptions import DomainError

if TYPE_CHECKING:
    from ..entries.model import TimeEntry


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an engine operation: the updated entry or a typed failure."""

    ok: bool
    entry: Optional["TimeEntry"] = None
    error: Optional[DomainError] = None

    @classmethod
    def success(cls, entry: "TimeEntry") -> "OperationResult":
        return cls(ok=True, entry=entry)

    @classmethod
    def failure(cls, error: DomainError, entry: Optional["TimeEntry"] = None) -> "OperationResult":
        return cls(ok=False, entry=entry, error=error)

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""

    def unwrap(self) -> "TimeEntry":
        if not self.ok:
            raise self.error
        return self.entry
