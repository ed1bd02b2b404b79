"""Row readers and field extraction for spreadsheet exports."""

from .field_extractor import (
    ExtractionStrategy,
    FieldExtractor,
    extract_uid,
    extract_name,
    extract_date,
)
from .spreadsheet_reader import SpreadsheetReader, build_uploaded_file, read_uploaded_file

__all__ = [
    'ExtractionStrategy',
    'FieldExtractor',
    'extract_uid',
    'extract_name',
    'extract_date',
    'SpreadsheetReader',
    'build_uploaded_file',
    'read_uploaded_file',
]
