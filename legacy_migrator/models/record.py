"""Record models for migration data."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..exceptions import WriteError

# Target attribute name -> scalar value, in mapper order.
AttributeMap = Dict[str, Any]

SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime, type(None))


class OutcomeStatus(str, Enum):
    """Outcome of processing one source record."""
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RawRecord:
    """A read-only row from the legacy store."""
    id: str
    data: Mapping[str, Any] = field(default_factory=dict)
    source_name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def get(self, path: str, default: Any = None) -> Any:
        """Get a field value by name or dot-notation path (e.g., 'address.city')."""
        if path in self.data:
            value = self.data[path]
            return default if value is None else value

        value: Any = self.data
        for part in path.split("."):
            if isinstance(value, Mapping):
                value = value.get(part)
            elif isinstance(value, list) and part.isdigit():
                idx = int(part)
                value = value[idx] if idx < len(value) else None
            else:
                return default
            if value is None:
                return default
        return value

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def __contains__(self, name: object) -> bool:
        return name in self.data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "source_name": self.source_name,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class RecordFailure:
    """A record that failed to map or write."""
    record_id: str
    error_type: str  # mapping, write
    message: str
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of processing a single source record."""
    status: OutcomeStatus
    record_id: str
    target_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def created(cls, record_id: str, target_id: Optional[str] = None) -> "MigrationOutcome":
        return cls(OutcomeStatus.CREATED, record_id, target_id=target_id)

    @classmethod
    def skipped(cls, record_id: str, reason: str) -> "MigrationOutcome":
        return cls(OutcomeStatus.SKIPPED, record_id, reason=reason)

    @classmethod
    def failed(cls, record_id: str, error: BaseException) -> "MigrationOutcome":
        return cls(OutcomeStatus.FAILED, record_id, error=error)

    def to_failure(self) -> RecordFailure:
        """Build the failure detail recorded in the report."""
        error_type = "write" if isinstance(self.error, WriteError) else "mapping"
        return RecordFailure(
            record_id=self.record_id,
            error_type=error_type,
            message=str(self.error),
            error=self.error,
        )
