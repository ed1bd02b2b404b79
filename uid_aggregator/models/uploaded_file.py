"""
UploadedFile model - One user-submitted spreadsheet after raw parsing.

Uses Pydantic v2 for validation so that serialized snapshots (with ISO date
strings) re-hydrate straight back into typed models.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from uid_aggregator.utils.constants import (
    KIND_UNKNOWN,
    SOURCE_UID_PROFILE,
    VALID_KINDS,
    VALID_SOURCE_TYPES,
)


class UploadedFile(BaseModel):
    """
    A parsed spreadsheet plus the metadata the aggregator needs.
    Why: classification, manual correction and provenance all hang off it.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    type: str = KIND_UNKNOWN
    data: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = Field(default=-1)
    processed: bool = False
    manual_type: bool = False

    # Subject of the file, independent of the UIDs inside its rows
    source_type: str = SOURCE_UID_PROFILE
    source_uid: Optional[str] = None

    # Provenance
    upload_date: datetime = Field(default_factory=datetime.now)
    uploader_id: str = ""
    uploader_name: Optional[str] = None

    model_config = {"frozen": False}

    @field_validator("type")
    @classmethod
    def _check_kind(cls, value: str) -> str:
        if value not in VALID_KINDS:
            raise ValueError(f"Unknown data kind '{value}'")
        return value

    @field_validator("source_type")
    @classmethod
    def _check_source_type(cls, value: str) -> str:
        if value not in VALID_SOURCE_TYPES:
            raise ValueError(
                f"Unknown source type '{value}'. "
                f"Must be one of: {sorted(VALID_SOURCE_TYPES)}"
            )
        return value

    @model_validator(mode="after")
    def _check_row_count(self) -> "UploadedFile":
        if self.row_count == -1:
            self.row_count = len(self.data)
        elif self.row_count != len(self.data):
            raise ValueError(
                f"row_count ({self.row_count}) does not match "
                f"number of rows ({len(self.data)})"
            )
        return self

    def with_manual_type(self, kind: str) -> "UploadedFile":
        """
        Return a copy carrying a human-chosen data kind.

        Raises:
            ValueError: If kind is not a known data kind
        """
        if kind not in VALID_KINDS:
            raise ValueError(f"Unknown data kind '{kind}'")
        return self.model_copy(update={"type": kind, "manual_type": True})

    def with_source(self, source_type: str, source_uid: Optional[str] = None) -> "UploadedFile":
        """
        Return a copy with corrected subject metadata.

        Raises:
            ValueError: If source_type is not a known source type
        """
        if source_type not in VALID_SOURCE_TYPES:
            raise ValueError(f"Unknown source type '{source_type}'")
        return self.model_copy(update={"source_type": source_type, "source_uid": source_uid})

    def summary(self) -> Dict[str, Any]:
        """Metadata without the row payload, for listings."""
        return self.model_dump(mode="json", exclude={"data"})
