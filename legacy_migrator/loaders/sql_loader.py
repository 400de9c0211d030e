"""Relational (SQLAlchemy) target writer."""

import logging
from typing import Any, List, Mapping, Optional, Set

from sqlalchemy import MetaData, Table, and_, delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseLoader
from ..exceptions import WriteError
from ..models.record import AttributeMap

logger = logging.getLogger(__name__)


class SQLLoader(BaseLoader):
    """
    Writes records into a target table.

    The table is reflected on first use; its columns are the attribute set
    that write() accepts. Each write runs in its own transaction.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str,
        schema: Optional[str] = None,
        dry_run: bool = False,
    ):
        """
        Initialize the SQL loader.

        Args:
            engine: SQLAlchemy engine connected to the target database
            table_name: Target table
            schema: Optional database schema
            dry_run: If True, validate attribute maps without inserting
        """
        super().__init__(table_name if not schema else f"{schema}.{table_name}", dry_run=dry_run)
        self.engine = engine
        self.table_name = table_name
        self.schema = schema
        self._table: Optional[Table] = None

    @property
    def table(self) -> Table:
        if self._table is None:
            try:
                self._table = Table(
                    self.table_name,
                    MetaData(),
                    schema=self.schema,
                    autoload_with=self.engine,
                )
            except SQLAlchemyError as e:
                raise WriteError(f"Cannot reflect target table {self.target_name}: {e}", cause=e) from e
        return self._table

    @property
    def primary_key(self) -> List[str]:
        return [col.name for col in self.table.primary_key.columns]

    def attribute_names(self) -> Optional[Set[str]]:
        return set(self.table.columns.keys())

    def _insert(self, attributes: AttributeMap) -> str:
        with self.engine.begin() as conn:
            result = conn.execute(insert(self.table).values(**attributes))
            key = result.inserted_primary_key

        if key is None or all(part is None for part in key):
            return ""
        if len(key) == 1:
            return str(key[0])
        return ":".join(str(part) for part in key)

    def _where(self, criteria: Mapping[str, Any]):
        table = self.table
        clauses = []
        for name, value in criteria.items():
            if name not in table.columns:
                raise WriteError(f"Unknown attribute {name!r} for {self.target_name}")
            column = table.columns[name]
            clauses.append(column.is_(None) if value is None else column == value)
        return and_(*clauses)

    def find_ids(self, criteria: Mapping[str, Any], limit: int = 2) -> List[str]:
        primary_key = self.primary_key
        if not primary_key:
            raise WriteError(f"Target table {self.target_name} has no primary key")

        query = (
            select(*[self.table.columns[name] for name in primary_key])
            .where(self._where(criteria))
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).all()
        return [":".join(str(part) for part in row) for row in rows]

    def delete_record(self, record_id: str) -> bool:
        primary_key = self.primary_key
        parts = record_id.split(":") if len(primary_key) > 1 else [record_id]
        if len(parts) != len(primary_key):
            return False

        criteria = {}
        for name, part in zip(primary_key, parts):
            column = self.table.columns[name]
            python_type = _python_type(column)
            criteria[name] = python_type(part) if python_type else part

        with self.engine.begin() as conn:
            result = conn.execute(delete(self.table).where(self._where(criteria)))
        return result.rowcount > 0

    def validate_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Target connection validation failed: {e}")
            return False


def _python_type(column) -> Any:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None
