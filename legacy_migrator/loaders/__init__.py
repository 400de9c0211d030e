"""Target writers."""

from .base import BaseLoader, MemoryLoader
from .api_loader import APILoader
from .sql_loader import SQLLoader

__all__ = [
    "BaseLoader",
    "MemoryLoader",
    "APILoader",
    "SQLLoader",
]
