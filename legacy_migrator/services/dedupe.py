"""Duplicate guard: skips records the target already holds."""

import logging
from typing import Any, Mapping, Sequence

from ..exceptions import ConfigurationError, MappingError, WriteError
from ..loaders.base import BaseLoader

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """
    Checks the target store for an existing record with the same natural key.

    Matching is by value on every dedupe key. With no dedupe keys the guard
    never reports a duplicate, so every mapped record is written.
    """

    def __init__(self, writer: BaseLoader):
        self.writer = writer

    def exists(self, attributes: Mapping[str, Any], dedupe_keys: Sequence[str]) -> bool:
        """
        Whether an equivalent target record already exists.

        Raises:
            MappingError: If the attribute map lacks a dedupe key
            WriteError: If the target store lookup fails
            ConfigurationError: If more than one target record matches, which
                means the dedupe keys are not a natural key for the target
        """
        if not dedupe_keys:
            return False

        missing = [key for key in dedupe_keys if key not in attributes]
        if missing:
            raise MappingError(f"Attribute map lacks dedupe key(s): {', '.join(missing)}")

        criteria = {key: attributes[key] for key in dedupe_keys}

        try:
            matches = self.writer.find_ids(criteria, limit=2)
        except (WriteError, ConfigurationError):
            raise
        except Exception as e:
            raise WriteError(
                f"Duplicate lookup on {self.writer.target_name} failed: {e}",
                attributes=dict(attributes),
                cause=e,
            ) from e

        if len(matches) > 1:
            raise ConfigurationError(
                f"Dedupe keys {list(dedupe_keys)} match several records in "
                f"{self.writer.target_name} for {criteria!r}; they are not a unique key"
            )

        if matches:
            logger.debug(f"Found existing {self.writer.target_name} record {matches[0]} for {criteria!r}")
        return bool(matches)
