"""Migration configuration files."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError

SOURCE_URL_ENV = "LEGACY_DATABASE_URL"
TARGET_URL_ENV = "TARGET_DATABASE_URL"


@dataclass
class MigrationDefinitionConfig:
    """Configuration for migrating one record kind."""
    kind: str
    target_table: str
    source_table: Optional[str] = None
    source_file: Optional[str] = None  # CSV/JSON export instead of a table
    source_schema: Optional[str] = None
    target_schema: Optional[str] = None
    order_by: List[str] = field(default_factory=list)
    id_column: Optional[str] = None
    label: Optional[str] = None
    dedupe_keys: List[str] = field(default_factory=list)
    mapper: Optional[str] = None  # "package.module:callable"
    fields: Dict[str, Any] = field(default_factory=dict)
    helper: Optional[str] = None  # "package.module:callable"

    def validate(self) -> List[str]:
        """Return a list of configuration problems."""
        errors = []

        if not self.target_table:
            errors.append(f"{self.kind}: target_table is required")
        if bool(self.source_table) == bool(self.source_file):
            errors.append(f"{self.kind}: exactly one of source_table or source_file is required")
        if not self.mapper and not self.fields and not self.helper:
            errors.append(f"{self.kind}: one of mapper, fields or helper is required")
        if self.mapper and self.fields:
            errors.append(f"{self.kind}: mapper and fields are mutually exclusive")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_table": self.target_table,
            "source_table": self.source_table,
            "source_file": self.source_file,
            "source_schema": self.source_schema,
            "target_schema": self.target_schema,
            "order_by": self.order_by,
            "id_column": self.id_column,
            "label": self.label,
            "dedupe_keys": self.dedupe_keys,
            "mapper": self.mapper,
            "fields": self.fields,
            "helper": self.helper,
        }

    @classmethod
    def from_dict(cls, kind: str, data: Dict[str, Any]) -> "MigrationDefinitionConfig":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Migration {kind!r} must be an object")

        order_by = data.get("order_by") or []
        if isinstance(order_by, str):
            order_by = [order_by]
        dedupe_keys = data.get("dedupe_keys") or []
        if isinstance(dedupe_keys, str):
            dedupe_keys = [dedupe_keys]

        return cls(
            kind=kind,
            target_table=data.get("target_table", ""),
            source_table=data.get("source_table"),
            source_file=data.get("source_file"),
            source_schema=data.get("source_schema"),
            target_schema=data.get("target_schema"),
            order_by=list(order_by),
            id_column=data.get("id_column"),
            label=data.get("label"),
            dedupe_keys=list(dedupe_keys),
            mapper=data.get("mapper"),
            fields=dict(data.get("fields") or {}),
            helper=data.get("helper"),
        )


@dataclass
class MigrationConfig:
    """Configuration for a set of migrations between two databases."""
    name: str = ""
    source_url: str = ""
    target_url: str = ""
    dry_run: bool = False
    migrations: Dict[str, MigrationDefinitionConfig] = field(default_factory=dict)

    def validate(self) -> None:
        """
        Raise ConfigurationError listing every problem found.
        """
        errors = []

        if not self.target_url:
            errors.append(f"target_url is required (or set {TARGET_URL_ENV})")
        needs_source_db = any(m.source_table for m in self.migrations.values())
        if needs_source_db and not self.source_url:
            errors.append(f"source_url is required (or set {SOURCE_URL_ENV})")
        if not self.migrations:
            errors.append("at least one migration is required")

        for migration in self.migrations.values():
            errors.extend(migration.validate())

        if errors:
            raise ConfigurationError("Invalid migration config: " + "; ".join(errors))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "source_url": self.source_url,
            "target_url": self.target_url,
            "dry_run": self.dry_run,
            "migrations": {kind: m.to_dict() for kind, m in self.migrations.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> "MigrationConfig":
        """
        Create from dictionary representation.

        LEGACY_DATABASE_URL and TARGET_DATABASE_URL in the environment take
        precedence over the URLs in the file.
        """
        environ = os.environ if environ is None else environ

        if not isinstance(data, dict):
            raise ConfigurationError("Migration config must be a JSON object")

        migrations = data.get("migrations") or {}
        if not isinstance(migrations, dict):
            raise ConfigurationError("'migrations' must be an object keyed by record kind")

        config = cls(
            name=data.get("name", ""),
            source_url=environ.get(SOURCE_URL_ENV) or data.get("source_url", ""),
            target_url=environ.get(TARGET_URL_ENV) or data.get("target_url", ""),
            dry_run=bool(data.get("dry_run", False)),
            migrations={
                kind: MigrationDefinitionConfig.from_dict(kind, entry)
                for kind, entry in migrations.items()
            },
        )
        config.validate()
        return config

    @classmethod
    def from_json_file(cls, path: Union[str, Path], environ: Optional[Dict[str, str]] = None) -> "MigrationConfig":
        """Load and validate a JSON config file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}") from None
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        return cls.from_dict(data, environ=environ)
