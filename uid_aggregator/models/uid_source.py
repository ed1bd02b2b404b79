"""
UIDSource model - Provenance record linking a profile to an uploaded file.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

from uid_aggregator.utils.constants import VALID_KINDS, VALID_SOURCE_TYPES


@dataclass
class UIDSource:
    """
    Records that one uploaded file contributed data about a UID.

    Attributes:
        file_name: Original name of the contributing file
        file_type: Data kind of the contributing file
        timestamp: Upload time of the contributing file
        source_type: What the file describes (uid_profile, page, group)
        source_uid: UID of the page/group/profile the file is about
    """

    file_name: str
    file_type: str
    timestamp: datetime
    source_type: Optional[str] = None
    source_uid: Optional[str] = None

    def __post_init__(self) -> None:
        """
        Validate identifiers after initialization.

        Raises:
            ValueError: If file_type or source_type is not a known identifier
        """
        if self.file_type not in VALID_KINDS:
            raise ValueError(f"Invalid file type '{self.file_type}'")

        if self.source_type is not None and self.source_type not in VALID_SOURCE_TYPES:
            raise ValueError(
                f"Invalid source type '{self.source_type}'. "
                f"Must be one of: {sorted(VALID_SOURCE_TYPES)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary (ISO timestamp)."""
        return {
            'file_name': self.file_name,
            'file_type': self.file_type,
            'timestamp': self.timestamp.isoformat(),
            'source_type': self.source_type,
            'source_uid': self.source_uid,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UIDSource':
        """Create UIDSource from a dictionary, re-hydrating the timestamp."""
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            file_name=data['file_name'],
            file_type=data['file_type'],
            timestamp=timestamp,
            source_type=data.get('source_type'),
            source_uid=data.get('source_uid'),
        )
