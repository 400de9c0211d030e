"""Migration execution models."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..exceptions import ConfigurationError
from .record import MigrationOutcome, OutcomeStatus, RecordFailure


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class MigrationOptions:
    """Options for a single migration run. Immutable once created."""
    offset: int = 0
    limit: Optional[int] = None
    label: Optional[str] = None
    dedupe_keys: Tuple[str, ...] = ()

    def __post_init__(self):
        keys = self.dedupe_keys
        if keys is None:
            keys = ()
        elif isinstance(keys, str):
            keys = (keys,)
        # Keep first occurrence order, drop repeats
        object.__setattr__(self, "dedupe_keys", tuple(dict.fromkeys(keys)))
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if any option is out of range."""
        if not _is_int(self.offset) or self.offset < 0:
            raise ConfigurationError(f"offset must be a non-negative integer, got {self.offset!r}")

        if self.limit is not None and (not _is_int(self.limit) or self.limit < 0):
            raise ConfigurationError(f"limit must be a non-negative integer or None, got {self.limit!r}")

        if self.label is not None and not isinstance(self.label, str):
            raise ConfigurationError(f"label must be a string, got {self.label!r}")

        for key in self.dedupe_keys:
            if not isinstance(key, str) or not key:
                raise ConfigurationError(f"dedupe keys must be non-empty strings, got {key!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationOptions":
        """Create from dictionary representation."""
        return cls(
            offset=data.get("offset", 0),
            limit=data.get("limit"),
            label=data.get("label"),
            dedupe_keys=tuple(data.get("dedupe_keys") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset": self.offset,
            "limit": self.limit,
            "label": self.label,
            "dedupe_keys": list(self.dedupe_keys),
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MigrationReport:
    """
    Aggregate result of one migration run.

    Counts are updated through add_outcome() while the run is in progress.
    Once finalize() is called the report is read-only.
    """
    label: str
    dry_run: bool = False
    status: MigrationStatus = MigrationStatus.RUNNING
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    _created: int = field(default=0, init=False)
    _skipped: int = field(default=0, init=False)
    _failed: int = field(default=0, init=False)
    _failures: List[RecordFailure] = field(default_factory=list, init=False, repr=False)
    _skip_reasons: Counter = field(default_factory=Counter, init=False, repr=False)
    _finalized: bool = field(default=False, init=False)

    @property
    def created(self) -> int:
        return self._created

    @property
    def skipped(self) -> int:
        return self._skipped

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def total_visited(self) -> int:
        return self._created + self._skipped + self._failed

    @property
    def failures(self) -> Tuple[RecordFailure, ...]:
        return tuple(self._failures)

    @property
    def skip_reasons(self) -> Dict[str, int]:
        return dict(self._skip_reasons)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def cancelled(self) -> bool:
        return self.status == MigrationStatus.CANCELLED

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def add_outcome(self, outcome: MigrationOutcome) -> None:
        """Count one record outcome."""
        self._check_mutable()

        if outcome.status == OutcomeStatus.CREATED:
            self._created += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self._skipped += 1
            self._skip_reasons[outcome.reason or "unspecified"] += 1
        else:
            self._failed += 1
            self._failures.append(outcome.to_failure())

    def extend(self, outcomes: Iterable[MigrationOutcome]) -> None:
        for outcome in outcomes:
            self.add_outcome(outcome)

    def finalize(self, status: MigrationStatus = MigrationStatus.COMPLETED) -> "MigrationReport":
        """Mark the report complete. Further mutation raises RuntimeError."""
        self._check_mutable()
        self.status = status
        self.completed_at = _utcnow()
        self._finalized = True
        return self

    def _check_mutable(self) -> None:
        if self._finalized:
            raise RuntimeError(f"Migration report for {self.label!r} is already finalized")

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_finalized", False):
            raise RuntimeError(f"Migration report for {self.label!r} is already finalized")
        super().__setattr__(name, value)

    def summary(self) -> str:
        """Human-readable one-line summary, e.g. 'Migrated 100 of 250 posts, 3 failed'."""
        text = f"Migrated {self.created} of {self.total_visited} {self.label}"
        if self.skipped:
            text += f", {self.skipped} skipped"
        text += f", {self.failed} failed"
        if self.cancelled:
            text += " (cancelled)"
        return text

    def __str__(self) -> str:
        return self.summary()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "label": self.label,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "total_visited": self.total_visited,
            "skip_reasons": self.skip_reasons,
            "failures": [f.to_dict() for f in self._failures],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "summary": self.summary(),
        }
