"""Migration runner - pages through a legacy source and writes mapped records."""

import logging
import threading
from typing import Any, Callable, Mapping, Optional, Union

from .exceptions import ConfigurationError, MappingError, SourceError, WriteError
from .extractors.base import BaseExtractor
from .loaders.base import BaseLoader
from .models.migration import MigrationOptions, MigrationReport, MigrationStatus
from .models.record import MigrationOutcome, RawRecord
from .services.dedupe import DuplicateGuard
from .services.mapper import FieldMapper, MapFunction, as_field_mapper

logger = logging.getLogger(__name__)

# Records fetched per source read. Bounds peak memory; not user-configurable.
PAGE_SIZE = 500

HelperOverride = Callable[["MigrationRunner", MigrationOptions], MigrationReport]
MapperLike = Union[FieldMapper, MapFunction, Mapping[str, Any]]


class CancellationToken:
    """
    Cooperative stop signal for a running migration.

    The runner checks it once per page, so a cancelled run finishes the
    page in progress and returns a partial report.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class MigrationRunner:
    """
    Runs one migration: source -> mapper -> duplicate guard -> writer.

    Processing is sequential and follows source order. Mapping and write
    failures are recorded per record and the run continues; source and
    configuration errors abort the run.
    """

    def __init__(
        self,
        source: BaseExtractor,
        mapper: Optional[MapperLike],
        writer: BaseLoader,
        guard: Optional[DuplicateGuard] = None,
        kind: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        """
        Initialize the runner.

        Args:
            source: Record source for the legacy store
            mapper: Per-record transformation (FieldMapper, callable or field dict)
            writer: Target writer
            guard: Duplicate guard (defaults to one backed by the writer)
            kind: Record kind, used as the default report label
            cancel_token: Default cancellation token for run()
        """
        self.source = source
        self.mapper = as_field_mapper(mapper) if mapper is not None else None
        self.writer = writer
        self.guard = guard or DuplicateGuard(writer)
        self.kind = kind or source.name
        self.cancel_token = cancel_token

    def run(
        self,
        options: Optional[MigrationOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MigrationReport:
        """
        Run the migration over the options' offset/limit window.

        Args:
            options: Run options (defaults to the whole source, no dedupe)
            cancel_token: Checked before each page fetch

        Returns:
            The finalized MigrationReport

        Raises:
            ConfigurationError: On invalid options, a missing mapper or an
                ambiguous dedupe match
            SourceError: If the legacy store cannot be read
        """
        options = options or MigrationOptions()
        options.validate()
        if self.mapper is None:
            raise ConfigurationError(f"No field mapper configured for {self.kind}")

        token = cancel_token or self.cancel_token
        report = MigrationReport(label=options.label or self.kind, dry_run=self.writer.dry_run)

        offset = options.offset
        remaining = options.limit
        status = MigrationStatus.COMPLETED

        logger.info(
            f"Starting {report.label} migration from {self.source.name} "
            f"(offset={offset}, limit={remaining}, dedupe_keys={list(options.dedupe_keys)})"
        )

        try:
            while True:
                if token is not None and token.cancelled:
                    logger.warning(f"{report.label} migration cancelled at offset {offset}")
                    status = MigrationStatus.CANCELLED
                    break

                to_fetch = PAGE_SIZE if remaining is None else min(PAGE_SIZE, remaining)
                if to_fetch == 0:
                    break

                page = self.source.fetch_page(offset, to_fetch)
                if not page.records:
                    break

                for record in page.records:
                    report.add_outcome(self.process_record(record, options.dedupe_keys))

                offset += len(page.records)
                if remaining is not None:
                    remaining -= len(page.records)

                logger.info(
                    f"{report.label}: visited {report.total_visited} "
                    f"(created {report.created}, skipped {report.skipped}, failed {report.failed})"
                )

                if not page.has_more:
                    break

        except (SourceError, ConfigurationError) as e:
            logger.error(f"{report.label} migration aborted at offset {offset}: {e}")
            e.report = report.finalize(MigrationStatus.FAILED)
            raise

        report.finalize(status)
        logger.info(report.summary())
        return report

    def process_record(self, record: RawRecord, dedupe_keys=()) -> MigrationOutcome:
        """Map, dedupe and write one record, returning exactly one outcome."""
        try:
            attributes = self.mapper.map(record)
        except MappingError as e:
            logger.warning(f"Mapping failed for {self.kind} record {record.id}: {e}")
            return MigrationOutcome.failed(record.id, e)

        try:
            if self.guard.exists(attributes, dedupe_keys):
                logger.debug(f"Skipping {self.kind} record {record.id}: already migrated")
                return MigrationOutcome.skipped(record.id, "duplicate")
        except (MappingError, WriteError) as e:
            logger.warning(f"Duplicate check failed for {self.kind} record {record.id}: {e}")
            return MigrationOutcome.failed(record.id, e)

        try:
            target_id = self.writer.write(attributes)
        except WriteError as e:
            logger.warning(f"Write failed for {self.kind} record {record.id}: {e}")
            return MigrationOutcome.failed(record.id, e)

        return MigrationOutcome.created(record.id, target_id)


def run_migration(
    kind: str,
    options: Optional[MigrationOptions],
    mapper: Optional[MapperLike],
    helper_override: Optional[HelperOverride] = None,
    *,
    source: BaseExtractor,
    writer: BaseLoader,
    guard: Optional[DuplicateGuard] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> MigrationReport:
    """
    Run the migration for one record kind.

    When helper_override is given the whole run is delegated to it: it is
    called as helper_override(runner, options) and its report is returned
    as is. This covers migrations the standard loop cannot express, such
    as synthesizing join-table rows.

    Args:
        kind: Record kind identifier, the default report label
        options: Run options
        mapper: Per-record transformation
        helper_override: Optional full replacement for the standard loop
        source: Record source
        writer: Target writer
        guard: Optional duplicate guard
        cancel_token: Optional cancellation token

    Returns:
        MigrationReport for the run
    """
    options = options or MigrationOptions()
    if mapper is None and helper_override is None:
        raise ConfigurationError(f"Migration {kind!r} needs a mapper or a helper override")

    runner = MigrationRunner(
        source,
        mapper,
        writer,
        guard=guard,
        kind=kind,
        cancel_token=cancel_token,
    )

    if helper_override is not None:
        name = getattr(helper_override, "__name__", repr(helper_override))
        logger.info(f"Delegating {kind} migration to {name}")
        return helper_override(runner, options)

    return runner.run(options)
