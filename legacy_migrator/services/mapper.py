"""Field mapper: turns one legacy record into a target attribute map."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from ..exceptions import ConfigurationError, MappingError
from ..models.record import SCALAR_TYPES, AttributeMap, RawRecord
from .transforms import Transform, get_transform

logger = logging.getLogger(__name__)

MapFunction = Callable[[RawRecord], Mapping[str, Any]]

_MISSING = object()


class FieldMapper:
    """
    Wraps the caller's per-record transformation.

    The wrapped callable receives a RawRecord and returns a mapping of
    target attribute name to scalar value. Anything it raises is reported
    as a MappingError for that record only.
    """

    def __init__(self, func: MapFunction, name: Optional[str] = None):
        if not callable(func):
            raise ConfigurationError(f"Field mapper must be callable, got {func!r}")
        self.func = func
        self.name = name or getattr(func, "__name__", type(func).__name__)

    def map(self, record: RawRecord) -> AttributeMap:
        """
        Map one record.

        Raises:
            MappingError: If the callable fails or returns something other
                than a mapping of scalar values
        """
        try:
            result = self.func(record)
        except MappingError as e:
            if e.record_id is None:
                e.record_id = record.id
            raise
        except Exception as e:
            raise MappingError(
                f"{self.name} failed for record {record.id}: {type(e).__name__}: {e}",
                record_id=record.id,
            ) from e

        if not isinstance(result, Mapping):
            raise MappingError(
                f"{self.name} returned {type(result).__name__} for record {record.id}, expected a mapping",
                record_id=record.id,
            )

        attributes: AttributeMap = {}
        for name, value in result.items():
            if not isinstance(name, str) or not name:
                raise MappingError(f"Invalid attribute name {name!r} for record {record.id}", record_id=record.id)
            if not isinstance(value, SCALAR_TYPES):
                raise MappingError(
                    f"Attribute {name!r} of record {record.id} has non-scalar value {type(value).__name__}",
                    record_id=record.id,
                )
            attributes[name] = value
        return attributes

    __call__ = map

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any], name: str = "field_map") -> "FieldMapper":
        """
        Build a declarative mapper.

        Each entry maps a target attribute to either a source field path
        ("post_title", "author.name") or a dict with keys:
            source: source field path (defaults to the target name)
            transform: built-in transform name (see services.transforms)
            default: value used when the source field is missing or null
            required: if true, a missing/null value fails the record
            max_length: option for the truncate transform

        A callable entry receives the RawRecord and returns the value.

        Raises:
            ConfigurationError: On unknown transforms or malformed entries
        """
        rules = [FieldRule.build(target, entry) for target, entry in fields.items()]

        def _map(record: RawRecord) -> AttributeMap:
            return {rule.target: rule.apply(record) for rule in rules}

        return cls(_map, name=name)


@dataclass
class FieldRule:
    """How one target attribute is computed from a source record."""
    target: str
    source: Optional[str] = None
    transform: Optional[Transform] = None
    default: Any = None
    required: bool = False
    compute: Optional[Callable[[RawRecord], Any]] = None

    @classmethod
    def build(cls, target: str, entry: Union[str, Mapping[str, Any], Callable]) -> "FieldRule":
        if callable(entry):
            return cls(target=target, compute=entry)
        if isinstance(entry, str):
            return cls(target=target, source=entry)
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"Invalid field mapping for {target!r}: {entry!r}")

        transform = None
        transform_name = entry.get("transform")
        if transform_name:
            options = {k: v for k, v in entry.items() if k == "max_length"}
            try:
                transform = get_transform(transform_name, **options)
            except KeyError:
                raise ConfigurationError(f"Unknown transform {transform_name!r} for {target!r}") from None

        return cls(
            target=target,
            source=entry.get("source", target),
            transform=transform,
            default=entry.get("default"),
            required=bool(entry.get("required", False)),
        )

    def apply(self, record: RawRecord) -> Any:
        if self.compute is not None:
            return self.compute(record)

        value = record.get(self.source, _MISSING)
        if value is _MISSING:
            if self.required:
                raise MappingError(f"Required field {self.source!r} is missing", record_id=record.id)
            value = None

        if self.transform is not None:
            value = self.transform(value)

        if value is None:
            value = self.default
        return value


def as_field_mapper(mapper: Union[FieldMapper, MapFunction, Mapping[str, Any]]) -> FieldMapper:
    """Accept a FieldMapper, a plain callable or a declarative field dict."""
    if isinstance(mapper, FieldMapper):
        return mapper
    if isinstance(mapper, Mapping):
        return FieldMapper.from_fields(mapper)
    return FieldMapper(mapper)

