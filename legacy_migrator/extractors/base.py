"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
import logging

from ..exceptions import ConfigurationError, SourceError
from ..models.record import RawRecord

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """An ordered batch of records fetched in one read."""
    records: List[RawRecord] = field(default_factory=list)
    has_more: bool = False

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[RawRecord]:
        return iter(self.records)


class BaseExtractor(ABC):
    """
    Base class for all record sources.

    Extractors pull rows from the legacy store in a stable, deterministic
    order and convert them to RawRecord objects. Subclasses implement
    extract_batch(); fetch_page() adds argument checks, the has_more flag
    and error wrapping.
    """

    def __init__(self, name: str):
        """
        Initialize the extractor.

        Args:
            name: Name of the source (table, file, collection)
        """
        self.name = name

    @abstractmethod
    def extract_batch(self, offset: int = 0, limit: int = 100) -> List[RawRecord]:
        """
        Extract a batch of records.

        Args:
            offset: Number of records to skip, in source order
            limit: Maximum records to extract

        Returns:
            List of RawRecord objects, at most `limit` long
        """
        pass

    def fetch_page(self, offset: int, page_size: int) -> Page:
        """
        Fetch one ordered page of records.

        Args:
            offset: Starting offset (>= 0)
            page_size: Maximum records in the page (>= 1)

        Returns:
            Page with up to page_size records and whether more remain

        Raises:
            SourceError: If the underlying store cannot be read
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        try:
            # One extra row tells us whether another page exists
            records = self.extract_batch(offset=offset, limit=page_size + 1)
        except (SourceError, ConfigurationError):
            raise
        except Exception as e:
            raise SourceError(f"Failed to read {self.name} at offset {offset}: {e}") from e

        has_more = len(records) > page_size
        return Page(records=list(records[:page_size]), has_more=has_more)

    def stream(self, batch_size: int = 500, offset: int = 0) -> Iterator[List[RawRecord]]:
        """
        Stream records in batches.

        Args:
            batch_size: Size of each batch
            offset: Where to start

        Yields:
            Batches of RawRecord objects
        """
        while True:
            page = self.fetch_page(offset, batch_size)
            if not page.records:
                break

            yield page.records
            offset += len(page.records)

            if not page.has_more:
                break

    def create_record(
        self,
        id: Any,
        data: Dict[str, Any],
    ) -> RawRecord:
        """Create a RawRecord from extracted data."""
        return RawRecord(id=str(id), data=data, source_name=self.name)

    def validate_source(self) -> List[str]:
        """
        Validate the source configuration.

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.name:
            errors.append("Source name is required")

        return errors


class MemoryExtractor(BaseExtractor):
    """Record source over an in-memory list of dicts, in list order."""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        name: str = "memory",
        id_field: str = "id",
    ):
        super().__init__(name)
        self.rows = list(rows)
        self.id_field = id_field

    def extract_batch(self, offset: int = 0, limit: int = 100) -> List[RawRecord]:
        return [
            self.create_record(self._record_id(row, offset + idx), row)
            for idx, row in enumerate(self.rows[offset:offset + limit])
        ]

    def _record_id(self, row: Dict[str, Any], position: int) -> Optional[str]:
        value = row.get(self.id_field)
        return str(value) if value is not None else str(position)
