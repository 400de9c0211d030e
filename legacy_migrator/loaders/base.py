"""Base loader interface for target stores."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Set
import logging

from ..exceptions import WriteError
from ..models.record import AttributeMap

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Base class for target writers.

    A loader persists one attribute map per write() call, atomically: either
    the whole record is stored or nothing is. It also answers existence
    queries for the duplicate guard and remembers what it created so a run
    can be rolled back.
    """

    def __init__(self, target_name: str, dry_run: bool = False):
        """
        Initialize the loader.

        Args:
            target_name: Name of the target table/collection/endpoint
            dry_run: If True, validate attribute maps without persisting them
        """
        self.target_name = target_name
        self.dry_run = dry_run
        self._created_ids: List[str] = []
        self._dry_run_count = 0

    @abstractmethod
    def _insert(self, attributes: AttributeMap) -> str:
        """
        Persist one record.

        Args:
            attributes: Resolved attribute map

        Returns:
            Identifier of the created record
        """
        pass

    @abstractmethod
    def find_ids(self, criteria: Mapping[str, Any], limit: int = 2) -> List[str]:
        """
        Find records whose attributes equal every value in criteria.

        Args:
            criteria: Attribute name -> required value (None matches null)
            limit: Maximum number of ids to return

        Returns:
            Identifiers of matching records
        """
        pass

    @abstractmethod
    def delete_record(self, record_id: str) -> bool:
        """
        Delete a record from the target store.

        Args:
            record_id: ID of the record to delete

        Returns:
            True if deleted successfully
        """
        pass

    def attribute_names(self) -> Optional[Set[str]]:
        """Attribute names the target accepts, or None if it is schemaless."""
        return None

    def resolve_attributes(self, attributes: Mapping[str, Any]) -> AttributeMap:
        """
        Check an attribute map against the target's attribute set.

        Raises:
            WriteError: If the map names attributes the target does not have
        """
        resolved = dict(attributes)
        allowed = self.attribute_names()
        if allowed is not None:
            unknown = [name for name in resolved if name not in allowed]
            if unknown:
                raise WriteError(
                    f"Unknown attributes for {self.target_name}: {', '.join(sorted(unknown))}",
                    attributes=resolved,
                )
        return resolved

    def write(self, attributes: Mapping[str, Any]) -> str:
        """
        Create one target record.

        Args:
            attributes: Attribute map produced by the field mapper

        Returns:
            Identifier of the written record

        Raises:
            WriteError: If the record could not be persisted
        """
        resolved = self.resolve_attributes(attributes)

        if self.dry_run:
            self._dry_run_count += 1
            return f"dry-run-{self._dry_run_count}"

        try:
            target_id = self._insert(resolved)
        except WriteError:
            raise
        except Exception as e:
            raise WriteError(
                f"Failed to write to {self.target_name}: {e}",
                attributes=resolved,
                cause=e,
            ) from e

        self._created_ids.append(target_id)
        return target_id

    @property
    def created_ids(self) -> List[str]:
        """IDs created by this loader, in write order."""
        return list(self._created_ids)

    def rollback(self) -> int:
        """
        Delete every record this loader created.

        Returns:
            Number of records deleted
        """
        count = 0
        remaining = []

        for record_id in reversed(self._created_ids):
            try:
                if self.delete_record(record_id):
                    count += 1
                    continue
            except Exception as e:
                logger.error(f"Failed to delete {self.target_name} {record_id}: {e}")
            remaining.append(record_id)

        self._created_ids = list(reversed(remaining))
        logger.info(f"Rolled back {count} {self.target_name} records")
        return count

    def validate_connection(self) -> bool:
        """Validate the connection to the target store."""
        return True


class MemoryLoader(BaseLoader):
    """Target writer backed by an in-memory list of dicts."""

    def __init__(
        self,
        target_name: str = "memory",
        attributes: Optional[Set[str]] = None,
        rows: Optional[List[Dict[str, Any]]] = None,
        dry_run: bool = False,
    ):
        super().__init__(target_name, dry_run=dry_run)
        self._attributes = set(attributes) if attributes is not None else None
        self.rows: Dict[str, Dict[str, Any]] = {}
        self._next_id = 1
        for row in rows or []:
            self._store(dict(row))

    def attribute_names(self) -> Optional[Set[str]]:
        return self._attributes

    def _store(self, attributes: AttributeMap) -> str:
        target_id = str(self._next_id)
        self._next_id += 1
        self.rows[target_id] = attributes
        return target_id

    def _insert(self, attributes: AttributeMap) -> str:
        return self._store(dict(attributes))

    def find_ids(self, criteria: Mapping[str, Any], limit: int = 2) -> List[str]:
        matches = []
        for target_id, row in self.rows.items():
            if all(key in row and row[key] == value for key, value in criteria.items()):
                matches.append(target_id)
                if len(matches) >= limit:
                    break
        return matches

    def delete_record(self, record_id: str) -> bool:
        return self.rows.pop(record_id, None) is not None
