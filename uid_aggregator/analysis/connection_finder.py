"""
Connection finder for scoring relationships between profiles.

Scores every unordered pair of profiles on direct friendship and shared
group membership.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.utils.chunking import ProgressCallback, iterate_in_chunks
from uid_aggregator.utils.constants import (
    DEFAULT_CHUNK_SIZE,
    FRIEND_CONNECTION_WEIGHT,
    GROUP_ID_FIELDS,
    SHARED_GROUP_WEIGHT,
)


logger = logging.getLogger(__name__)

CONNECTION_TYPE_FRIEND = "friend"

INSIGHTS_FOUND = "Phân tích mạng lưới: Tìm thấy {count} kết nối giữa các người dùng."
INSIGHTS_NONE = "Không tìm thấy kết nối giữa các người dùng."
INSIGHTS_FAILED = "Không thể phân tích mạng lưới. Xảy ra lỗi trong quá trình xử lý."


@dataclass
class Connection:
    """A scored relationship from source profile to target profile."""

    source: str
    target: str
    strength: int
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConnectionReport:
    """Connections found across a profile list, plus a summary sentence."""

    connections: List[Connection]
    insights: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'connections': [c.to_dict() for c in self.connections],
            'insights': self.insights,
        }


class ConnectionFinder:
    """
    Pairwise connection scorer.

    For each pair (u1, u2) with u1 before u2 in the input:
    - +10 if a row in u1's friends bucket has uid equal to u2's UID
      (only u1's list is checked)
    - +2 per group of u2 whose group_id (or id) also appears in u1's groups

    Pairs scoring above zero become connections, in nested-loop order.

    Example usage:
        finder = ConnectionFinder()
        report = finder.find_connections(profiles)
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    def score_pair(
        self,
        first: AggregatedUserData,
        second: AggregatedUserData,
    ) -> Optional[Connection]:
        """
        Score one ordered pair.

        Returns:
            Connection if the pair scores above zero, None otherwise
        """
        strength = 0
        types: List[str] = []

        if self._is_direct_friend(first, second):
            strength += FRIEND_CONNECTION_WEIGHT
            types.append(CONNECTION_TYPE_FRIEND)

        shared = self._count_shared_groups(first, second)
        if shared > 0:
            strength += shared * SHARED_GROUP_WEIGHT
            types.append(f"{shared} shared groups")

        if strength <= 0:
            return None

        return Connection(
            source=first.uid,
            target=second.uid,
            strength=strength,
            type=", ".join(types),
        )

    def find_connections(self, users: Sequence[AggregatedUserData]) -> ConnectionReport:
        """
        Score every pair of profiles.

        Failures are logged and reported through the insights sentence
        instead of being raised.
        """
        try:
            connections = []
            for first, second in _iter_pairs(users):
                connection = self.score_pair(first, second)
                if connection is not None:
                    connections.append(connection)
        except Exception:
            logger.exception("Connection analysis failed")
            return ConnectionReport(connections=[], insights=INSIGHTS_FAILED)

        return self._report(connections)

    async def find_connections_async(
        self,
        users: Sequence[AggregatedUserData],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ConnectionReport:
        """
        Score every pair like find_connections(), yielding between chunks of pairs.
        """
        total = len(users) * (len(users) - 1) // 2

        try:
            connections = []
            async for first, second in iterate_in_chunks(
                _iter_pairs(users), self.chunk_size, total, on_progress
            ):
                connection = self.score_pair(first, second)
                if connection is not None:
                    connections.append(connection)
        except Exception:
            logger.exception("Connection analysis failed")
            return ConnectionReport(connections=[], insights=INSIGHTS_FAILED)

        return self._report(connections)

    @staticmethod
    def _report(connections: List[Connection]) -> ConnectionReport:
        if connections:
            insights = INSIGHTS_FOUND.format(count=len(connections))
        else:
            insights = INSIGHTS_NONE
        return ConnectionReport(connections=connections, insights=insights)

    @staticmethod
    def _is_direct_friend(first: AggregatedUserData, second: AggregatedUserData) -> bool:
        for friend in first.data.friends:
            friend_uid = friend.get('uid')
            if isinstance(friend_uid, str) and friend_uid == second.uid:
                return True
        return False

    @staticmethod
    def _count_shared_groups(first: AggregatedUserData, second: AggregatedUserData) -> int:
        first_groups = {_group_key(group) for group in first.data.groups}
        first_groups.discard(None)
        return sum(1 for group in second.data.groups if _group_key(group) in first_groups)


def _group_key(group: Dict[str, Any]) -> Optional[Any]:
    for field_name in GROUP_ID_FIELDS:
        value = group.get(field_name)
        if value:
            return value
    return None


def _iter_pairs(users: Sequence[AggregatedUserData]) -> Iterator[Tuple[AggregatedUserData, AggregatedUserData]]:
    for index, first in enumerate(users):
        for second in users[index + 1:]:
            yield first, second


def find_connections(users: Sequence[AggregatedUserData]) -> ConnectionReport:
    """Score all pairs with a default ConnectionFinder."""
    return ConnectionFinder().find_connections(users)
