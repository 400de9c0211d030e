"""Error taxonomy for migration runs.

Only SourceError and ConfigurationError escape a run. MappingError and
WriteError are captured per record into the MigrationReport.
"""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base class for all migration errors."""

    # Set on fatal errors raised out of a run: the report as it stood when
    # the run stopped.
    report = None


class ConfigurationError(MigrationError):
    """Invalid options or configuration, detected before or during a run."""


class SourceError(MigrationError):
    """Reading from the legacy store failed."""


class MappingError(MigrationError):
    """A source record could not be transformed into an attribute map."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class WriteError(MigrationError):
    """Persisting an attribute map to the target store failed."""

    def __init__(
        self,
        message: str,
        attributes: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.attributes = dict(attributes or {})
        self.cause = cause
