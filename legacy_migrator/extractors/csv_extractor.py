"""CSV/JSON file-based record source."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .base import BaseExtractor
from ..exceptions import SourceError
from ..models.record import RawRecord

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".json", ".jsonl")

# Keys under which exports commonly wrap their record list
JSON_LIST_KEYS = ("data", "records", "items", "results")

NULL_STRINGS = {"null", "none"}

SNIFF_BYTES = 8192


class CSVExtractor(BaseExtractor):
    """
    Record source for legacy CSV and JSON exports.

    Supports:
    - CSV files (delimiter sniffed, falls back to the configured one)
    - JSON files holding a list, or a dict with a data/records/items/results list
    - JSON Lines files
    - Column renaming
    - Basic type inference for CSV cells

    Records are served in file order. The file is read once and cached, so
    repeated pages see the same snapshot.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        column_mapping: Optional[Dict[str, str]] = None,
        id_column: str = "id",
        encoding: str = "utf-8",
        delimiter: str = ",",
        infer_types: bool = True,
    ):
        """
        Initialize the CSV extractor.

        Args:
            file_path: Path to the export file
            column_mapping: Optional mapping of file columns to field names
            id_column: Field to use as record ID (falls back to row number)
            encoding: File encoding
            delimiter: CSV delimiter used when sniffing fails
            infer_types: Convert CSV cells to int/float/bool where they parse
        """
        self.file_path = Path(file_path)
        super().__init__(self.file_path.name)
        self.column_mapping = column_mapping or {}
        self.id_column = id_column
        self.encoding = encoding
        self.delimiter = delimiter
        self.infer_types = infer_types
        self._records: Optional[List[RawRecord]] = None

    def extract_batch(self, offset: int = 0, limit: int = 100) -> List[RawRecord]:
        records = self._load()
        return records[offset:offset + limit]

    def reset(self) -> None:
        """Drop the cached file contents so the next read re-opens the file."""
        self._records = None

    def _load(self) -> List[RawRecord]:
        if self._records is not None:
            return self._records

        if not self.file_path.exists():
            raise SourceError(f"File not found: {self.file_path}")

        readers = {".jsonl": self._read_jsonl, ".json": self._read_json}
        read = readers.get(self.file_path.suffix.lower(), self._read_csv)

        try:
            records = [self._to_record(position, data) for position, data in read()]
        except (OSError, UnicodeDecodeError, csv.Error, json.JSONDecodeError) as e:
            raise SourceError(f"Failed to read {self.file_path}: {e}") from e

        logger.info(f"Loaded {len(records)} records from {self.file_path}")
        self._records = records
        return records

    def _read_csv(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        with open(self.file_path, "r", encoding=self.encoding, newline="") as f:
            delimiter = self._sniff_delimiter(f.read(SNIFF_BYTES))
            f.seek(0)

            for row_num, row in enumerate(csv.DictReader(f, delimiter=delimiter), start=1):
                # Cells beyond the header land under a None key
                data = {name: self._clean_cell(value) for name, value in row.items() if name is not None}
                if any(value is not None for value in data.values()):
                    yield row_num, data

    def _read_json(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        with open(self.file_path, "r", encoding=self.encoding) as f:
            document = json.load(f)

        for position, item in enumerate(self._unwrap(document), start=1):
            yield position, self._require_object(item, position)

    def _read_jsonl(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        with open(self.file_path, "r", encoding=self.encoding) as f:
            for line_num, line in enumerate(f, start=1):
                if line.strip():
                    yield line_num, self._require_object(json.loads(line), line_num)

    def _sniff_delimiter(self, sample: str) -> str:
        try:
            return csv.Sniffer().sniff(sample).delimiter
        except csv.Error:
            return self.delimiter

    def _unwrap(self, document: Any) -> List[Any]:
        """Find the record list in a JSON export."""
        if isinstance(document, list):
            return document
        if not isinstance(document, dict):
            raise SourceError(f"Unexpected JSON structure in {self.file_path}")

        wrapped = [document[key] for key in JSON_LIST_KEYS if isinstance(document.get(key), list)]
        return wrapped[0] if wrapped else [document]

    def _require_object(self, item: Any, position: int) -> Dict[str, Any]:
        if not isinstance(item, dict):
            raise SourceError(f"Item {position} in {self.file_path} is not an object")
        return item

    def _clean_cell(self, value: Optional[str]) -> Any:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        return infer_type(value) if self.infer_types else value

    def _to_record(self, position: int, data: Dict[str, Any]) -> RawRecord:
        if self.column_mapping:
            data = {self.column_mapping.get(name, name): value for name, value in data.items()}

        record_id = data.get(self.id_column)
        return self.create_record(position if record_id is None else record_id, data)

    def validate_source(self) -> List[str]:
        """Validate the file source configuration."""
        errors = super().validate_source()

        if not self.file_path.exists():
            errors.append(f"File not found: {self.file_path}")
        elif self.file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            errors.append(f"Unsupported file format: {self.file_path.suffix}")

        return errors


def infer_type(value: str) -> Union[str, int, float, bool, None]:
    """Convert a non-empty CSV cell to bool, None, int or float where it parses."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in NULL_STRINGS:
        return None

    digits = value[1:] if value.startswith("-") else value
    if digits.isdigit():
        # Zero-padded codes ("007") stay strings
        if digits == "0" or not digits.startswith("0"):
            return int(value)
        return value

    if "." in value:
        try:
            return float(value)
        except ValueError:
            return value
    return value
