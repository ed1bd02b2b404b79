"""
Spreadsheet reader for social-platform exports.

Turns an .xlsx/.xls/.csv export into ordered row dictionaries and wraps
them in an UploadedFile, classifying the rows unless a kind is given.
"""

import logging
from datetime import date, datetime
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from zipfile import BadZipFile

import numpy as np
import pandas as pd

from uid_aggregator.classifiers.record_classifier import RecordClassifier
from uid_aggregator.models.uploaded_file import UploadedFile
from uid_aggregator.utils.constants import SOURCE_UID_PROFILE


logger = logging.getLogger(__name__)

Source = Union[str, Path, StringIO, BytesIO, bytes]


class SpreadsheetReader:
    """
    Read spreadsheet exports into row dictionaries.

    Only the first sheet of a workbook is read. Blank cells are left out
    of a row, the remaining cells keep column order, and cell values are
    converted to JSON-compatible Python types.

    Example usage:
        reader = SpreadsheetReader()
        rows = reader.read("friends_list.xlsx")
    """

    def __init__(self) -> None:
        """Initialize reader with empty warning list."""
        self.warnings: List[str] = []

    def read(self, source: Source, file_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Read a spreadsheet into rows.

        Args:
            source: File path, raw bytes, or an in-memory buffer
            file_name: Name used to pick the format for in-memory sources

        Returns:
            List of row dictionaries, in sheet order

        Raises:
            FileNotFoundError: If a file path doesn't exist
            ValueError: If the format is unsupported or the file is unreadable
        """
        self.warnings = []
        df = self._read_frame(source, file_name)
        return self._frame_to_rows(df)

    def _read_frame(self, source: Source, file_name: Optional[str]) -> pd.DataFrame:
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Spreadsheet not found: {path}")
            file_name = file_name or path.name
            handle: Any = path
        elif isinstance(source, bytes):
            handle = BytesIO(source)
        else:
            source.seek(0)
            handle = source

        suffix = Path((file_name or "").lower()).suffix
        if isinstance(handle, StringIO):
            suffix = ".csv"

        try:
            if suffix == ".csv":
                # Keep ids as text so leading zeros survive
                return pd.read_csv(handle, encoding='utf-8-sig', dtype=object)
            if suffix == ".xlsx":
                return pd.read_excel(handle, sheet_name=0, engine='openpyxl')
            if suffix == ".xls":
                return pd.read_excel(handle, sheet_name=0)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, BadZipFile) as e:
            raise ValueError(f"Could not read '{file_name}': {e}") from e

        raise ValueError(f"Unsupported spreadsheet format: '{file_name}'")

    def _frame_to_rows(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        rows = []
        columns = [str(column) for column in df.columns]

        for values in df.itertuples(index=False, name=None):
            row = {}
            for column, value in zip(columns, values):
                cell = self._clean_cell(value)
                if cell is not None:
                    row[column] = cell
            if row:
                rows.append(row)

        skipped = len(df) - len(rows)
        if skipped:
            warning = f"Skipped {skipped} blank rows"
            self.warnings.append(warning)
            logger.debug(warning)

        return rows

    @staticmethod
    def _clean_cell(value: Any) -> Any:
        """
        Convert a DataFrame cell into a JSON-compatible value.

        Returns None for blanks so the caller can drop the cell.
        """
        try:
            if pd.isna(value):
                return None
        except (TypeError, ValueError):
            return value

        if isinstance(value, (pd.Timestamp, datetime)):
            return value.isoformat()

        if isinstance(value, date):
            return value.isoformat()

        if isinstance(value, np.generic):
            value = value.item()

        if isinstance(value, str):
            return value if value.strip() else None

        return value


def build_uploaded_file(
    name: str,
    rows: List[Dict[str, Any]],
    uploader_id: str = "",
    uploader_name: Optional[str] = None,
    kind: Optional[str] = None,
    source_type: str = SOURCE_UID_PROFILE,
    source_uid: Optional[str] = None,
    classifier: Optional[RecordClassifier] = None,
) -> UploadedFile:
    """
    Wrap parsed rows in an UploadedFile.

    If kind is given it is recorded as a manual override and the classifier
    is not consulted; otherwise the kind is inferred from name and rows.
    """
    if kind is None:
        classifier = classifier or RecordClassifier()
        kind = classifier.classify(name, rows)
        manual = False
    else:
        manual = True

    return UploadedFile(
        name=name,
        type=kind,
        data=rows,
        processed=True,
        manual_type=manual,
        source_type=source_type,
        source_uid=source_uid,
        uploader_id=uploader_id,
        uploader_name=uploader_name,
    )


def read_uploaded_file(
    source: Source,
    file_name: Optional[str] = None,
    **metadata: Any,
) -> UploadedFile:
    """Read a spreadsheet and wrap it in an UploadedFile in one step."""
    reader = SpreadsheetReader()
    if file_name is None and isinstance(source, (str, Path)):
        file_name = Path(source).name
    rows = reader.read(source, file_name)
    return build_uploaded_file(file_name or "", rows, **metadata)
