from dataclasses import dataclass
from typing import Optional


class LedgerDataError(Exception):
    """Base class for record level problems found while building an analysis."""

    def __init__(self, message: str, record_id: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.record_id = record_id
        self.field = field

    def __str__(self) -> str:
        location = ", ".join(part for part in (self.record_id, self.field) if part)
        return f"{self.message} ({location})" if location else self.message


class InvalidInput(LedgerDataError):
    """A single field is malformed or out of range."""


class InconsistentData(LedgerDataError):
    """Two or more fields of a record contradict each other."""


class InsufficientData(LedgerDataError):
    """Not enough records to compute a derived metric."""


@dataclass(frozen=True)
class RecordRejection:
    record_id: Optional[str]
    field: Optional[str]
    error: str
    message: str

    @classmethod
    def from_error(cls, exc: LedgerDataError) -> "RecordRejection":
        return cls(record_id=exc.record_id, field=exc.field, error=type(exc).__name__, message=exc.message)
