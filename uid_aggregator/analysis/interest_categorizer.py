"""
Interest categorizer for aggregated profiles.

Buckets liked pages and joined groups into coarse interest categories and
ranks the categories by frequency.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.utils.constants import (
    INTEREST_CATEGORIES,
    OTHER_CATEGORY,
    TOP_INTERESTS_LIMIT,
)


@dataclass
class InterestProfile:
    """
    Category counts for one profile.

    Attributes:
        categories: Count per category, in first-encountered order
        top_interests: Up to five category names, most frequent first
    """

    categories: Dict[str, int] = field(default_factory=dict)
    top_interests: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'categories': dict(self.categories),
            'top_interests': list(self.top_interests),
        }


class InterestCategorizer:
    """
    Keyword-heuristic interest categorizer.

    Liked pages count under their own "category" column (or "Khác").
    Groups are matched by name against a fixed keyword table, first match
    wins; unmatched named groups count as "Khác" and unnamed groups are
    ignored.

    Example usage:
        categorizer = InterestCategorizer()
        interests = categorizer.categorize(profile)
        interests.top_interests
        # ['Du lịch', 'Công nghệ']
    """

    def __init__(
        self,
        categories: Optional[List[Tuple[str, Tuple[str, ...]]]] = None,
        limit: int = TOP_INTERESTS_LIMIT,
    ) -> None:
        self.categories = categories or INTEREST_CATEGORIES
        self.limit = limit

    def categorize(self, user: AggregatedUserData) -> InterestProfile:
        counts: Dict[str, int] = {}

        for page in user.data.pages_liked:
            category = page.get('category') or OTHER_CATEGORY
            category = str(category)
            counts[category] = counts.get(category, 0) + 1

        for group in user.data.groups:
            name = group.get('name')
            if not name:
                continue
            category = self.match_category(str(name)) or OTHER_CATEGORY
            counts[category] = counts.get(category, 0) + 1

        # sorted() is stable, so ties keep first-encountered order
        ranked = sorted(counts, key=lambda category: counts[category], reverse=True)

        return InterestProfile(categories=counts, top_interests=ranked[:self.limit])

    def match_category(self, text: str) -> Optional[str]:
        """Return the first category whose keywords occur in text."""
        lowered = text.lower()
        for category, keywords in self.categories:
            if any(keyword.lower() in lowered for keyword in keywords):
                return category
        return None


def categorize_interests(user: AggregatedUserData) -> InterestProfile:
    """Categorize a profile with the default keyword table."""
    return InterestCategorizer().categorize(user)
