"""Service layer for the migration engine."""

from .dedupe import DuplicateGuard
from .mapper import FieldMapper, FieldRule, as_field_mapper
from .transforms import BUILTIN_TRANSFORMS, get_transform

__all__ = [
    "DuplicateGuard",
    "FieldMapper",
    "FieldRule",
    "as_field_mapper",
    "BUILTIN_TRANSFORMS",
    "get_transform",
]
