"""
AggregatedUserData model - Unified per-UID profile built from many uploads.

Each profile owns one bucket of raw rows per data kind. Counters are
derived from bucket lengths, so a counter can never disagree with its
bucket.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from uid_aggregator.models.uid_source import UIDSource
from uid_aggregator.utils.constants import (
    ALL_BUCKETS,
    CORE_BUCKETS,
    bucket_for_kind,
)


Row = Dict[str, Any]


@dataclass
class ProfileData:
    """Raw rows assigned to one UID, grouped by data kind."""

    friends: List[Row] = field(default_factory=list)
    groups: List[Row] = field(default_factory=list)
    posts: List[Row] = field(default_factory=list)
    comments: List[Row] = field(default_factory=list)
    pages_liked: List[Row] = field(default_factory=list)
    check_ins: List[Row] = field(default_factory=list)
    events: List[Row] = field(default_factory=list)
    interactions: List[Row] = field(default_factory=list)

    def bucket(self, name: str) -> List[Row]:
        """Return the bucket list by name."""
        if name not in ALL_BUCKETS:
            raise KeyError(f"Unknown bucket '{name}'")
        return getattr(self, name)

    def to_dict(self) -> Dict[str, List[Row]]:
        return {f.name: list(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, List[Row]]) -> 'ProfileData':
        return cls(**{name: list(data.get(name, [])) for name in ALL_BUCKETS})


@dataclass
class AggregatedUserData:
    """
    Canonical unified profile for one UID.

    Attributes:
        uid: Aggregation key (non-empty string)
        name: First non-empty name seen when the profile was created
        last_active: Latest activity date seen across contributing rows
        sources: Provenance entries, in discovery order
        data: Raw rows per bucket

    Properties:
        friends_count ... interactions_count: Length of each bucket
        total_activity: Sum of the six core counters
        source_types: Distinct source types among the provenance entries
    """

    uid: str
    name: Optional[str] = None
    last_active: Optional[datetime] = None
    sources: List[UIDSource] = field(default_factory=list)
    data: ProfileData = field(default_factory=ProfileData)

    def __post_init__(self) -> None:
        """
        Validate the UID.

        Raises:
            ValueError: If uid is empty
        """
        if not isinstance(self.uid, str) or not self.uid.strip():
            raise ValueError(f"UID must be a non-empty string, got: {self.uid!r}")

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    @property
    def friends_count(self) -> int:
        return len(self.data.friends)

    @property
    def groups_count(self) -> int:
        return len(self.data.groups)

    @property
    def posts_count(self) -> int:
        return len(self.data.posts)

    @property
    def comments_count(self) -> int:
        return len(self.data.comments)

    @property
    def pages_liked_count(self) -> int:
        return len(self.data.pages_liked)

    @property
    def check_ins_count(self) -> int:
        return len(self.data.check_ins)

    @property
    def events_count(self) -> int:
        return len(self.data.events)

    @property
    def interactions_count(self) -> int:
        return len(self.data.interactions)

    def count(self, bucket: str) -> int:
        """Return the counter for a bucket by name."""
        return len(self.data.bucket(bucket))

    @property
    def total_activity(self) -> int:
        """Sum of friends, groups, posts, comments, pages liked and check-ins."""
        return sum(self.count(bucket) for bucket in CORE_BUCKETS)

    @property
    def source_types(self) -> List[str]:
        """Distinct source types of contributing files, first-seen order."""
        seen: List[str] = []
        for source in self.sources:
            if source.source_type and source.source_type not in seen:
                seen.append(source.source_type)
        return seen

    # -------------------------------------------------------------------------
    # Mutation (used by the aggregator only)
    # -------------------------------------------------------------------------

    def add_record(self, kind: str, row: Row) -> bool:
        """
        Append a row to the bucket mapped for its kind.

        Returns:
            True if the row was bucketed, False if the kind has no bucket
        """
        bucket = bucket_for_kind(kind)
        if bucket is None:
            return False
        self.data.bucket(bucket).append(row)
        return True

    def touch(self, activity_date: Optional[datetime]) -> None:
        """Move last_active forward if activity_date is strictly later."""
        if activity_date is None:
            return
        if self.last_active is None or activity_date > self.last_active:
            self.last_active = activity_date

    def add_source(self, source: UIDSource) -> None:
        self.sources.append(source)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize profile to dictionary for JSON output.

        Counters are included for consumers; datetimes become ISO strings.
        """
        result: Dict[str, Any] = {
            'uid': self.uid,
            'name': self.name,
            'last_active': self.last_active.isoformat() if self.last_active else None,
        }
        for bucket in ALL_BUCKETS:
            result[f'{bucket}_count'] = self.count(bucket)
        result['sources'] = [source.to_dict() for source in self.sources]
        result['data'] = self.data.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AggregatedUserData':
        """
        Re-hydrate a profile from its serialized form.

        Stored counters are ignored; they are always recomputed from buckets.
        """
        last_active = data.get('last_active')
        if isinstance(last_active, str):
            last_active = datetime.fromisoformat(last_active)

        return cls(
            uid=data['uid'],
            name=data.get('name'),
            last_active=last_active,
            sources=[UIDSource.from_dict(s) for s in data.get('sources', [])],
            data=ProfileData.from_dict(data.get('data', {})),
        )
