"""Data models for the migration engine."""

from .migration import (
    MigrationOptions,
    MigrationReport,
    MigrationStatus,
)
from .record import (
    AttributeMap,
    MigrationOutcome,
    OutcomeStatus,
    RawRecord,
    RecordFailure,
)

__all__ = [
    "MigrationOptions",
    "MigrationReport",
    "MigrationStatus",
    "AttributeMap",
    "MigrationOutcome",
    "OutcomeStatus",
    "RawRecord",
    "RecordFailure",
]
