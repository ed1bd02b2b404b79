"""
Record classifier using keyword matching.

Infers which data kind an uploaded spreadsheet holds (friends, groups,
posts, ...) from its file name and, failing that, from its column headers.
"""

import logging
import unicodedata
from typing import Any, Dict, List, Optional, Sequence, Tuple

from uid_aggregator.models.uploaded_file import UploadedFile
from uid_aggregator.utils.constants import (
    FILE_NAME_RULES,
    HEADER_RULES,
    KIND_UNKNOWN,
)


logger = logging.getLogger(__name__)

STEP_FILE_NAME = "file_name"
STEP_HEADERS = "headers"

KeywordRules = List[Tuple[str, Tuple[str, ...]]]


class RecordClassifier:
    """
    Keyword-based classifier for uploaded row sets.

    Two steps, each a fixed priority list where the first match wins:
    1. File name (friend, group, post, comment, page, check/location,
       profile, message, photo, video, event, reaction)
    2. Column headers of the first row (friend, group, post, comment,
       page, check-in)

    English and Vietnamese keywords are both recognised. Only the file
    name and the first row's keys are read, so the result never depends
    on uploader or timestamp.

    Example usage:
        classifier = RecordClassifier()
        kind = classifier.classify("friends_list.xlsx", rows)
        # Returns: "friends"
    """

    def __init__(
        self,
        file_name_rules: Optional[KeywordRules] = None,
        header_rules: Optional[KeywordRules] = None,
    ) -> None:
        self._file_name_rules = file_name_rules or FILE_NAME_RULES
        self._header_rules = header_rules or HEADER_RULES

    def classify(self, file_name: str, rows: Sequence[Dict[str, Any]]) -> str:
        """
        Classify a parsed file into a data kind.

        Args:
            file_name: Original file name
            rows: Parsed rows, in file order

        Returns:
            Data kind identifier, or "unknown"

        Examples:
            >>> classifier = RecordClassifier()
            >>> classifier.classify("friends_list.xlsx", [{"uid": "1"}])
            'friends'
            >>> classifier.classify("export1.xlsx", [{"friend_name": "A", "friend_id": "1"}])
            'friends'
        """
        match = self.get_keyword_match(file_name, rows)
        if match is None:
            logger.debug("No keyword match for '%s', classified as unknown", file_name)
            return KIND_UNKNOWN
        return match[0]

    def get_keyword_match(
        self,
        file_name: str,
        rows: Sequence[Dict[str, Any]],
    ) -> Optional[Tuple[str, str, str]]:
        """
        Find the rule that decides a file's kind, for debugging.

        Returns:
            (kind, step, keyword) for the winning rule, or None
        """
        if not rows:
            return None

        name = _normalize(file_name or "")
        for kind, keywords in self._file_name_rules:
            for keyword in keywords:
                if keyword in name:
                    return kind, STEP_FILE_NAME, keyword

        headers = [_normalize(str(key)) for key in rows[0].keys()]
        for kind, keywords in self._header_rules:
            for keyword in keywords:
                if any(keyword in header for header in headers):
                    return kind, STEP_HEADERS, keyword

        return None

    def classify_file(self, uploaded: UploadedFile) -> UploadedFile:
        """
        Return a copy of the file with its kind inferred.

        Files whose kind was set by hand are returned unchanged.
        """
        if uploaded.manual_type:
            return uploaded

        kind = self.classify(uploaded.name, uploaded.data)
        return uploaded.model_copy(update={"type": kind})

    def classify_files(self, files: List[UploadedFile]) -> List[UploadedFile]:
        """Classify a list of files, leaving manual overrides alone."""
        return [self.classify_file(uploaded) for uploaded in files]


def _normalize(text: str) -> str:
    # Vietnamese file names can arrive decomposed (NFD) from some file systems
    return unicodedata.normalize("NFC", text).lower()


# Module-level convenience function
_default_classifier = None


def classify_records(file_name: str, rows: Sequence[Dict[str, Any]]) -> str:
    """
    Classify rows using the default classifier.

    Convenience function for one-off classification without
    instantiating a classifier.
    """
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = RecordClassifier()
    return _default_classifier.classify(file_name, rows)
