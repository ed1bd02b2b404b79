"""
Analysis composer for single-profile reports.

Builds a markdown-like text report from a profile's counters, provenance
and interest categories. Lines starting with "# " and "## " are headings,
blank lines separate paragraphs.
"""

import logging
from typing import List, Optional

from uid_aggregator.analysis.interest_categorizer import InterestCategorizer
from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.utils.date_parser import format_display_date


logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Không xác định"

BASIC_INSIGHTS_FAILED = "Không thể phân tích dữ liệu. Xảy ra lỗi trong quá trình xử lý."
REPORT_FAILED = "Không thể tạo phân tích. Xảy ra lỗi trong quá trình xử lý."

HEADING_REPORT = "# Phân tích UID: {uid}"
HEADING_BASIC = "## Thông tin cơ bản"
HEADING_INTERESTS = "## Sở thích chính"
HEADING_ACTIVITY = "## Mẫu hoạt động"
HEADING_MISSING = "## Dữ liệu còn thiếu"

# (counter, label) pairs for the missing-data notice, in report order
MISSING_DATA_LABELS = [
    ('friends_count', 'bạn bè'),
    ('groups_count', 'nhóm'),
    ('posts_count', 'bài đăng'),
    ('comments_count', 'bình luận'),
]


class AnalysisComposer:
    """
    Rule-based report writer for one aggregated profile.

    Sections, in order, each only when its condition holds:
    1. Title with the UID
    2. Basic info (always)
    3. Top interests (if any category was found)
    4. Activity pattern (if the profile has posts or comments)
    5. Missing data (if friends, groups, posts or comments is zero)

    Composition never raises; any failure is logged and a fixed
    failure message is returned instead.

    Example usage:
        composer = AnalysisComposer()
        report = composer.compose(profile)
    """

    def __init__(self, categorizer: Optional[InterestCategorizer] = None) -> None:
        self.categorizer = categorizer or InterestCategorizer()

    def basic_insights(self, user: AggregatedUserData) -> str:
        """Plain fact lines about a profile, one per line."""
        try:
            return "\n".join(self._basic_lines(user))
        except Exception:
            logger.exception("Basic insights failed for UID %s", getattr(user, 'uid', None))
            return BASIC_INSIGHTS_FAILED

    def compose(self, user: AggregatedUserData) -> str:
        """
        Compose the full report for a profile.

        Returns:
            Report text, or REPORT_FAILED if anything goes wrong
        """
        try:
            return self._compose(user)
        except Exception:
            logger.exception("Analysis failed for UID %s", getattr(user, 'uid', None))
            return REPORT_FAILED

    def _compose(self, user: AggregatedUserData) -> str:
        basic = "\n".join(self._basic_lines(user))
        interests = self.categorizer.categorize(user)

        report = HEADING_REPORT.format(uid=user.uid) + "\n\n"
        report += f"{HEADING_BASIC}\n{basic}\n\n"

        if interests.top_interests:
            report += f"{HEADING_INTERESTS}\n{', '.join(interests.top_interests)}\n\n"

        if user.posts_count > 0 or user.comments_count > 0:
            report += f"{HEADING_ACTIVITY}\n"
            report += f"Tổng số hoạt động: {user.posts_count + user.comments_count}\n"

        missing = [label for counter, label in MISSING_DATA_LABELS
                   if getattr(user, counter) == 0]
        if missing:
            report += f"\n{HEADING_MISSING}\nCần bổ sung thêm dữ liệu về: {', '.join(missing)}\n"

        return report

    @staticmethod
    def _basic_lines(user: AggregatedUserData) -> List[str]:
        lines = [
            f"UID: {user.uid}",
            f"Tên: {user.name or UNKNOWN_NAME}",
        ]

        if user.last_active:
            lines.append(f"Hoạt động cuối: {format_display_date(user.last_active)}")

        lines.append(f"Số lượng nguồn dữ liệu: {len(user.sources)}")
        file_types = list(dict.fromkeys(source.file_type for source in user.sources))
        lines.append(f"Loại dữ liệu: {', '.join(file_types)}")

        if user.friends_count > 0:
            lines.append(f"Có {user.friends_count} bạn bè")
        if user.groups_count > 0:
            lines.append(f"Tham gia {user.groups_count} nhóm")
        if user.posts_count > 0:
            lines.append(f"Đã đăng {user.posts_count} bài viết")
        if user.comments_count > 0:
            lines.append(f"Đã bình luận {user.comments_count} lần")
        if user.check_ins_count > 0:
            lines.append(f"Đã check-in tại {user.check_ins_count} địa điểm")
        if user.pages_liked_count > 0:
            lines.append(f"Đã thích {user.pages_liked_count} trang")

        return lines


def generate_analysis(user: AggregatedUserData) -> str:
    """Compose a report with a default AnalysisComposer."""
    return AnalysisComposer().compose(user)
