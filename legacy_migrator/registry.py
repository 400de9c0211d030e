"""Registry of record kinds that drivers (CLI, HTTP) can run by name."""

import dataclasses
import importlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from .config import MigrationConfig, MigrationDefinitionConfig
from .exceptions import ConfigurationError
from .extractors.base import BaseExtractor
from .extractors.csv_extractor import CSVExtractor
from .extractors.sql_extractor import SQLExtractor
from .loaders.base import BaseLoader
from .loaders.sql_loader import SQLLoader
from .models.migration import MigrationOptions, MigrationReport
from .orchestrator import CancellationToken, HelperOverride, MapperLike, run_migration
from .services.mapper import FieldMapper

logger = logging.getLogger(__name__)


@dataclass
class MigrationDefinition:
    """A record kind with its source, target and transformation."""
    kind: str
    source: BaseExtractor
    writer: BaseLoader
    mapper: Optional[MapperLike] = None
    helper_override: Optional[HelperOverride] = None
    label: Optional[str] = None
    dedupe_keys: Sequence[str] = ()

    def resolve_options(self, options: Optional[MigrationOptions]) -> MigrationOptions:
        """Fill in the definition's label and dedupe keys where options leave them unset."""
        if options is None:
            return MigrationOptions(label=self.label, dedupe_keys=tuple(self.dedupe_keys))

        changes: Dict[str, Any] = {}
        if options.label is None and self.label:
            changes["label"] = self.label
        if not options.dedupe_keys and self.dedupe_keys:
            changes["dedupe_keys"] = tuple(self.dedupe_keys)
        return dataclasses.replace(options, **changes) if changes else options


class MigrationRegistry:
    """
    Named migrations, run one kind at a time.

    Kinds keep registration order, which is the order drivers run them in.
    """

    def __init__(self):
        self._definitions: Dict[str, MigrationDefinition] = {}
        self._engines: List[Engine] = []

    def register(
        self,
        kind: str,
        source: BaseExtractor,
        writer: BaseLoader,
        mapper: Optional[MapperLike] = None,
        helper_override: Optional[HelperOverride] = None,
        label: Optional[str] = None,
        dedupe_keys: Sequence[str] = (),
    ) -> MigrationDefinition:
        """Register a record kind. Re-registering a kind replaces it."""
        if not kind:
            raise ConfigurationError("Migration kind must be a non-empty string")
        if mapper is None and helper_override is None:
            raise ConfigurationError(f"Migration {kind!r} needs a mapper or a helper override")

        definition = MigrationDefinition(
            kind=kind,
            source=source,
            writer=writer,
            mapper=mapper,
            helper_override=helper_override,
            label=label,
            dedupe_keys=tuple(dedupe_keys),
        )
        self._definitions[kind] = definition
        return definition

    def get(self, kind: str) -> MigrationDefinition:
        try:
            return self._definitions[kind]
        except KeyError:
            raise ConfigurationError(
                f"Unknown migration kind {kind!r}; known kinds: {', '.join(self.kinds) or 'none'}"
            ) from None

    @property
    def kinds(self) -> List[str]:
        return list(self._definitions)

    def __contains__(self, kind: object) -> bool:
        return kind in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def run(
        self,
        kind: str,
        options: Optional[MigrationOptions] = None,
        mapper: Optional[MapperLike] = None,
        helper_override: Optional[HelperOverride] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MigrationReport:
        """
        Run a registered kind.

        A mapper or helper_override passed here replaces the registered one
        for this run only.
        """
        definition = self.get(kind)
        return run_migration(
            kind,
            definition.resolve_options(options),
            mapper if mapper is not None else definition.mapper,
            helper_override if helper_override is not None else definition.helper_override,
            source=definition.source,
            writer=definition.writer,
            cancel_token=cancel_token,
        )

    def dispose(self) -> None:
        """Release engines created by from_config()."""
        for engine in self._engines:
            engine.dispose()
        self._engines = []

    @classmethod
    def from_config(cls, config: MigrationConfig, dry_run: Optional[bool] = None) -> "MigrationRegistry":
        """
        Build a registry with SQL/file sources and SQL writers from a config.

        Args:
            config: Validated migration config
            dry_run: Overrides config.dry_run when given
        """
        registry = cls()
        dry_run = config.dry_run if dry_run is None else dry_run
        engines: Dict[str, Engine] = {}

        def engine_for(url: str) -> Engine:
            if url not in engines:
                try:
                    engines[url] = create_engine(url)
                except (ArgumentError, ImportError) as e:
                    raise ConfigurationError(f"Invalid database URL {url!r}: {e}") from e
                registry._engines.append(engines[url])
            return engines[url]

        try:
            for kind, migration in config.migrations.items():
                source_engine = engine_for(config.source_url) if migration.source_table else None
                source = _build_source(migration, source_engine)
                writer = SQLLoader(
                    engine_for(config.target_url),
                    migration.target_table,
                    schema=migration.target_schema,
                    dry_run=dry_run,
                )
                registry.register(
                    kind,
                    source,
                    writer,
                    mapper=_build_mapper(migration),
                    helper_override=import_string(migration.helper) if migration.helper else None,
                    label=migration.label,
                    dedupe_keys=migration.dedupe_keys,
                )
                logger.debug(f"Registered migration {kind}: {source.name} -> {writer.target_name}")
        except Exception:
            registry.dispose()
            raise

        return registry


def _build_source(migration: MigrationDefinitionConfig, engine: Optional[Engine]) -> BaseExtractor:
    if migration.source_file:
        return CSVExtractor(migration.source_file, id_column=migration.id_column or "id")
    return SQLExtractor(
        engine,
        migration.source_table,
        order_by=migration.order_by or None,
        id_column=migration.id_column,
        schema=migration.source_schema,
    )


def _build_mapper(migration: MigrationDefinitionConfig) -> Optional[FieldMapper]:
    if migration.mapper:
        func = import_string(migration.mapper)
        return FieldMapper(func, name=migration.mapper)
    if migration.fields:
        return FieldMapper.from_fields(migration.fields, name=f"{migration.kind}_fields")
    return None


def import_string(path: str) -> Any:
    """
    Import an object from "package.module:attribute" or "package.module.attribute".

    Raises:
        ConfigurationError: If the module or attribute cannot be found
    """
    if ":" in path:
        module_name, _, attribute = path.partition(":")
    else:
        module_name, _, attribute = path.rpartition(".")

    if not module_name or not attribute:
        raise ConfigurationError(f"Invalid import path {path!r}; expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module {module_name!r}: {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise ConfigurationError(f"{module_name!r} has no attribute {attribute!r}") from None
    return target
