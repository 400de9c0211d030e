"""Record sources for legacy stores."""

from .base import BaseExtractor, MemoryExtractor, Page
from .csv_extractor import CSVExtractor
from .sql_extractor import SQLExtractor

__all__ = [
    "BaseExtractor",
    "MemoryExtractor",
    "Page",
    "CSVExtractor",
    "SQLExtractor",
]
