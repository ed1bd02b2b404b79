"""
Dashboard statistics over aggregated profiles.

Totals, top-user ranking, search, pagination and grouping used by the
table and chart views.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.utils.constants import CORE_BUCKETS, TOP_USERS_LIMIT


T = TypeVar('T')

# Profile attributes matched by search_profiles when no fields are given
DEFAULT_SEARCH_FIELDS = ('uid', 'name')


@dataclass
class DatasetStatistics:
    """Totals across every profile in a dataset."""

    total_users: int = 0
    total_friends: int = 0
    total_groups: int = 0
    total_posts: int = 0
    total_comments: int = 0
    total_pages_liked: int = 0
    total_check_ins: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def get_statistics(profiles: Sequence[AggregatedUserData]) -> DatasetStatistics:
    """Sum each core counter across all profiles."""
    stats = DatasetStatistics(total_users=len(profiles))
    for profile in profiles:
        for bucket in CORE_BUCKETS:
            attribute = f'total_{bucket}'
            setattr(stats, attribute, getattr(stats, attribute) + profile.count(bucket))
    return stats


def top_users(
    profiles: Sequence[AggregatedUserData],
    limit: int = TOP_USERS_LIMIT,
) -> List[AggregatedUserData]:
    """Profiles with the highest total activity, ties in input order."""
    return sorted(profiles, key=lambda p: p.total_activity, reverse=True)[:limit]


def display_name(profile: AggregatedUserData) -> str:
    """Name for charts: the profile name, or the first 8 UID characters."""
    return profile.name or profile.uid[:8]


def search_profiles(
    profiles: Sequence[AggregatedUserData],
    query: Optional[str],
    fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
) -> List[AggregatedUserData]:
    """
    Case-insensitive substring search over profile attributes.

    An empty query returns every profile.
    """
    if not query:
        return list(profiles)

    needle = query.lower()
    matches = []
    for profile in profiles:
        for field_name in fields:
            value = getattr(profile, field_name, None)
            if value is not None and needle in str(value).lower():
                matches.append(profile)
                break
    return matches


def search_rows(
    rows: Sequence[Dict[str, Any]],
    query: Optional[str],
    fields: Sequence[str],
) -> List[Dict[str, Any]]:
    """Case-insensitive substring search over the given row columns."""
    if not query:
        return list(rows)

    needle = query.lower()
    return [
        row for row in rows
        if any(row.get(f) is not None and needle in str(row.get(f)).lower() for f in fields)
    ]


def paginate(items: Sequence[T], page: int, per_page: int) -> List[T]:
    """
    Return one 1-based page of items.

    Raises:
        ValueError: If page or per_page is less than 1
    """
    if page < 1 or per_page < 1:
        raise ValueError(f"page and per_page must be >= 1, got: {page}, {per_page}")
    start = (page - 1) * per_page
    return list(items[start:start + per_page])


def group_by(rows: Sequence[Dict[str, Any]], field_name: str) -> Dict[str, List[Dict[str, Any]]]:
    """Group rows by the string value of one column, in first-seen order."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(str(row.get(field_name)), []).append(row)
    return groups
