"""Relational (SQLAlchemy) record source for the legacy database."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseExtractor
from ..exceptions import ConfigurationError, SourceError
from ..models.record import RawRecord

logger = logging.getLogger(__name__)


class SQLExtractor(BaseExtractor):
    """
    Reads rows from a legacy table in a stable order.

    Rows are ordered by `order_by` when given, otherwise by the table's
    primary key. A table without a primary key needs an explicit order_by,
    since offset paging is only reproducible under a total order.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str,
        order_by: Optional[Sequence[str]] = None,
        id_column: Optional[str] = None,
        schema: Optional[str] = None,
        columns: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the SQL extractor.

        Args:
            engine: SQLAlchemy engine connected to the legacy database
            table_name: Table to read from
            order_by: Columns defining the read order (defaults to primary key)
            id_column: Column used as the record identifier (defaults to the
                first ordering column)
            schema: Optional database schema
            columns: Optional subset of columns to select
        """
        super().__init__(table_name if not schema else f"{schema}.{table_name}")
        self.engine = engine
        self.table_name = table_name
        self.schema = schema
        self._order_by = [order_by] if isinstance(order_by, str) else list(order_by or [])
        self._id_column = id_column
        self._columns = list(columns or [])
        self._table: Optional[Table] = None

    @property
    def table(self) -> Table:
        """The reflected legacy table."""
        if self._table is None:
            try:
                self._table = Table(
                    self.table_name,
                    MetaData(),
                    schema=self.schema,
                    autoload_with=self.engine,
                )
            except SQLAlchemyError as e:
                raise SourceError(f"Cannot reflect legacy table {self.name}: {e}") from e
            logger.debug(f"Reflected {self.name} with columns {list(self._table.columns.keys())}")
        return self._table

    @property
    def order_columns(self) -> List[str]:
        if self._order_by:
            return self._order_by

        primary_key = [col.name for col in self.table.primary_key.columns]
        if not primary_key:
            raise ConfigurationError(
                f"Table {self.name} has no primary key; order_by is required for stable paging"
            )
        return primary_key

    @property
    def id_column(self) -> str:
        return self._id_column or self.order_columns[0]

    def extract_batch(self, offset: int = 0, limit: int = 100) -> List[RawRecord]:
        table = self.table
        order_columns = self.order_columns
        id_column = self.id_column

        for name in list(order_columns) + [id_column] + self._columns:
            if name not in table.columns:
                raise ConfigurationError(f"Column {name!r} does not exist in {self.name}")

        if self._columns:
            selected = [table.columns[name] for name in self._columns]
            if id_column not in self._columns:
                selected.append(table.columns[id_column])
            query = select(*selected)
        else:
            query = select(table)

        query = (
            query.order_by(*[table.columns[name] for name in order_columns])
            .offset(offset)
            .limit(limit)
        )

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as e:
            raise SourceError(f"Query on {self.name} failed at offset {offset}: {e}") from e

        return [self.create_record(row[id_column], dict(row)) for row in rows]

    def count(self) -> int:
        """Total number of rows in the legacy table."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(select(func.count()).select_from(self.table)).scalar_one()
        except SQLAlchemyError as e:
            raise SourceError(f"Count on {self.name} failed: {e}") from e

    def validate_source(self) -> List[str]:
        errors = super().validate_source()
        if not self.table_name:
            errors.append("Source table name is required")
        return errors
