"""
Field extractor for heterogeneous export rows.

Pulls a UID, a display name and an activity date out of one row using
ordered lists of named strategies. Strategies are tried in order and the
first one that yields a value wins, so the fallback order is explicit and
testable instead of depending on how a row happens to be laid out.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from uid_aggregator.utils.constants import (
    DATE_FIELDS,
    ID_KEY_MARKER,
    NAME_FIELDS,
    NAME_FIELDS_BY_KIND,
    UID_FIELDS,
    UID_FIELDS_BY_KIND,
)
from uid_aggregator.utils.date_parser import parse_date_value


logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass(frozen=True)
class ExtractionStrategy:
    """A named rule that reads one value from a row, or returns None."""

    name: str
    extract: Callable[[Row, str], Optional[str]]

    def __call__(self, row: Row, kind: str) -> Optional[str]:
        return self.extract(row, kind)


class ExtractedFields(NamedTuple):
    uid: Optional[str]
    name: Optional[str]
    date: Optional[datetime]


# =============================================================================
# Value helpers
# =============================================================================

def is_present(value: Any) -> bool:
    """
    Check whether a cell holds a usable value.

    None, empty or whitespace-only strings, and NaN (pandas blanks) count
    as absent. Numeric zero is present.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, float) and math.isnan(value):
        return False
    return True


def stringify(value: Any) -> str:
    """Render a cell as a string; integral floats lose their '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _first_present(row: Row, field_names: Tuple[str, ...]) -> Optional[str]:
    for field_name in field_names:
        value = row.get(field_name)
        if is_present(value):
            return stringify(value)
    return None


# =============================================================================
# Strategies
# =============================================================================

def _generic_uid(row: Row, kind: str) -> Optional[str]:
    return _first_present(row, UID_FIELDS)


def _kind_uid(row: Row, kind: str) -> Optional[str]:
    return _first_present(row, UID_FIELDS_BY_KIND.get(kind, ()))


def _id_like_key(row: Row, kind: str) -> Optional[str]:
    # Rows keep column order, so the scan is deterministic
    for key, value in row.items():
        if ID_KEY_MARKER not in str(key).lower():
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        if is_present(value):
            return stringify(value)
    return None


def _generic_name(row: Row, kind: str) -> Optional[str]:
    return _first_present(row, NAME_FIELDS)


def _kind_name(row: Row, kind: str) -> Optional[str]:
    return _first_present(row, NAME_FIELDS_BY_KIND.get(kind, ()))


UID_STRATEGIES: List[ExtractionStrategy] = [
    ExtractionStrategy("generic_uid_fields", _generic_uid),
    ExtractionStrategy("kind_uid_fields", _kind_uid),
    ExtractionStrategy("id_like_key_scan", _id_like_key),
]

NAME_STRATEGIES: List[ExtractionStrategy] = [
    ExtractionStrategy("generic_name_fields", _generic_name),
    ExtractionStrategy("kind_name_fields", _kind_name),
]


class FieldExtractor:
    """
    Extract UID, name and activity date from export rows.

    Example usage:
        extractor = FieldExtractor()
        uid = extractor.extract_uid({"friend_id": "42"}, "friends")
        # Returns: "42"
    """

    def __init__(
        self,
        uid_strategies: Optional[List[ExtractionStrategy]] = None,
        name_strategies: Optional[List[ExtractionStrategy]] = None,
        date_fields: Optional[Tuple[str, ...]] = None,
    ) -> None:
        self.uid_strategies = uid_strategies or UID_STRATEGIES
        self.name_strategies = name_strategies or NAME_STRATEGIES
        self.date_fields = date_fields or DATE_FIELDS

    def extract_uid(self, row: Row, kind: str) -> Optional[str]:
        """
        Find the UID a row belongs to.

        Tries generic id columns (uid, user_id, id, facebook_id, fb_id),
        then kind-specific columns (friend_id, commenter_id, poster_id,
        author_id), then the first column whose name contains "id" and
        holds a string or number.

        Returns:
            UID string, or None if the row has no usable id
        """
        return self._run(self.uid_strategies, row, kind)

    def extract_name(self, row: Row, kind: str) -> Optional[str]:
        """
        Find a display name for the row's UID.

        Returns:
            Name string, or None
        """
        return self._run(self.name_strategies, row, kind)

    def extract_date(self, row: Row) -> Optional[datetime]:
        """
        Find the row's activity date.

        Date columns are tried in priority order; a value that does not
        parse is skipped and the next column is tried.

        Returns:
            Parsed datetime, or None
        """
        for field_name in self.date_fields:
            value = row.get(field_name)
            if not is_present(value):
                continue
            parsed = parse_date_value(value)
            if parsed is not None:
                return parsed
            logger.debug("Unparseable %s value %r, trying next field", field_name, value)
        return None

    def extract(self, row: Row, kind: str) -> ExtractedFields:
        """Run all three extractions on one row."""
        return ExtractedFields(
            uid=self.extract_uid(row, kind),
            name=self.extract_name(row, kind),
            date=self.extract_date(row),
        )

    def matching_strategy(self, row: Row, kind: str) -> Optional[str]:
        """Name of the UID strategy that succeeds for a row, for debugging."""
        for strategy in self.uid_strategies:
            if strategy(row, kind) is not None:
                return strategy.name
        return None

    @staticmethod
    def _run(strategies: List[ExtractionStrategy], row: Row, kind: str) -> Optional[str]:
        for strategy in strategies:
            value = strategy(row, kind)
            if value is not None:
                return value
        return None


# Module-level convenience functions
_default_extractor = FieldExtractor()


def extract_uid(row: Row, kind: str) -> Optional[str]:
    return _default_extractor.extract_uid(row, kind)


def extract_name(row: Row, kind: str) -> Optional[str]:
    return _default_extractor.extract_name(row, kind)


def extract_date(row: Row) -> Optional[datetime]:
    return _default_extractor.extract_date(row)
