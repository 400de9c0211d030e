"""
Legacy Migrator

A record-level ETL engine for moving data out of a legacy relational
database into a new one.

Supports:
- Paged reads from legacy tables and CSV/JSON exports (offset/limit windows)
- Per-record transformation via plain callables or declarative field maps
- Idempotent re-runs through dedupe keys
- Per-record failure isolation with a final migration report
- Full-run overrides for migrations the standard loop cannot express
"""

__version__ = "0.1.0"

from .exceptions import (
    ConfigurationError,
    MappingError,
    MigrationError,
    SourceError,
    WriteError,
)
from .models import MigrationOptions, MigrationReport, RawRecord
from .orchestrator import CancellationToken, MigrationRunner, run_migration
from .registry import MigrationRegistry
from .services import DuplicateGuard, FieldMapper

__all__ = [
    "ConfigurationError",
    "MappingError",
    "MigrationError",
    "SourceError",
    "WriteError",
    "MigrationOptions",
    "MigrationReport",
    "RawRecord",
    "CancellationToken",
    "MigrationRunner",
    "run_migration",
    "MigrationRegistry",
    "DuplicateGuard",
    "FieldMapper",
]
