"""
End-to-end integration tests.

Tests the complete pipeline from spreadsheet exports to profiles,
connections and analysis reports.
"""

import asyncio
from datetime import datetime
from pathlib import Path

import pytest

from uid_aggregator.aggregation.aggregator import Aggregator
from uid_aggregator.analysis.analysis_composer import AnalysisComposer
from uid_aggregator.analysis.connection_finder import ConnectionFinder
from uid_aggregator.analysis.interest_categorizer import InterestCategorizer
from uid_aggregator.analysis.statistics import get_statistics, top_users
from uid_aggregator.classifiers.record_classifier import RecordClassifier
from uid_aggregator.parsers.spreadsheet_reader import read_uploaded_file
from uid_aggregator.storage.snapshot_store import MemorySnapshotStore, WorkspaceSnapshot


FIXTURE_NAMES = ["friends_list.csv", "groups_joined.csv", "posts.csv", "pages_liked.csv"]


class TestEndToEnd:
    """End-to-end tests for the complete pipeline."""

    @pytest.fixture
    def fixtures_path(self):
        """Get path to test fixtures."""
        return Path(__file__).parent.parent / "fixtures"

    @pytest.fixture
    def uploaded_files(self, fixtures_path):
        """Read and classify every sample export."""
        return [read_uploaded_file(fixtures_path / name) for name in FIXTURE_NAMES]

    @pytest.fixture
    def profiles(self, uploaded_files):
        return Aggregator().aggregate(uploaded_files)

    def test_files_classified(self, uploaded_files):
        """Test each export is classified from its name."""
        assert [f.type for f in uploaded_files] == ["friends", "groups", "posts", "pages_liked"]
        assert [f.row_count for f in uploaded_files] == [3, 5, 4, 3]

    def test_profiles(self, profiles):
        """Test the merged per-UID profiles."""
        assert [p.uid for p in profiles] == ["1001", "1002", "1003", "1004"]
        an, binh, cuong, unnamed = profiles

        assert an.name == "Nguyễn Văn An"
        assert (an.friends_count, an.groups_count, an.posts_count, an.pages_liked_count) == (1, 2, 2, 2)
        assert an.last_active == datetime(2023, 7, 15)
        assert len(an.sources) == 4
        assert an.total_activity == 7

        assert binh.name == "Trần Thị Bình"
        assert binh.total_activity == 4
        assert binh.last_active == datetime(2023, 9, 9)
        assert [s.file_type for s in binh.sources] == ["friends", "groups", "pages_liked"]

        assert cuong.last_active == datetime(2023, 5, 20)
        assert len(cuong.sources) == 3

        assert unnamed.name is None
        assert unnamed.posts_count == 1
        assert unnamed.last_active == datetime(2023, 8, 1)

    def test_statistics(self, profiles):
        """Test dashboard totals and ranking."""
        stats = get_statistics(profiles)
        assert stats.total_users == 4
        assert stats.total_friends == 3
        assert stats.total_groups == 5
        assert stats.total_posts == 4
        assert stats.total_pages_liked == 3
        assert [p.uid for p in top_users(profiles, limit=2)] == ["1001", "1002"]

    def test_connections(self, profiles):
        """Test shared groups connect the first profile to two others."""
        report = ConnectionFinder().find_connections(profiles)

        assert [(c.source, c.target, c.strength, c.type) for c in report.connections] == [
            ("1001", "1002", 2, "1 shared groups"),
            ("1001", "1003", 2, "1 shared groups"),
        ]
        assert report.insights == "Phân tích mạng lưới: Tìm thấy 2 kết nối giữa các người dùng."

    def test_interests(self, profiles):
        """Test interest ranking from pages and groups."""
        categorizer = InterestCategorizer()
        assert categorizer.categorize(profiles[0]).top_interests == [
            "Tin tức", "Ẩm thực", "Du lịch", "Công nghệ",
        ]
        assert categorizer.categorize(profiles[1]).top_interests == [
            "Công nghệ", "Du lịch", "Ẩm thực",
        ]

    def test_analysis_report(self, profiles):
        """Test the report for the most active profile."""
        report = AnalysisComposer().compose(profiles[0])

        assert report.startswith("# Phân tích UID: 1001\n\n## Thông tin cơ bản\n")
        assert "Hoạt động cuối: 15/07/2023" in report
        assert "Loại dữ liệu: friends, groups, posts, pages_liked" in report
        assert "## Sở thích chính\nTin tức, Ẩm thực, Du lịch, Công nghệ\n" in report
        assert "Tổng số hoạt động: 2\n" in report
        assert report.endswith("Cần bổ sung thêm dữ liệu về: bình luận\n")

    def test_async_pipeline_matches_sync(self, uploaded_files, profiles):
        """Test the cooperative pipeline gives identical output."""
        async def run():
            result = await Aggregator(chunk_size=2).aggregate_async(uploaded_files)
            report = await ConnectionFinder(chunk_size=2).find_connections_async(result)
            return result, report

        async_profiles, report = asyncio.run(run())

        assert [p.to_dict() for p in async_profiles] == [p.to_dict() for p in profiles]
        assert report.to_dict() == ConnectionFinder().find_connections(profiles).to_dict()

    def test_snapshot_round_trip(self, uploaded_files, profiles):
        """Test a stored workspace reloads to the same profiles."""
        store = MemorySnapshotStore()
        store.save(WorkspaceSnapshot(files=uploaded_files, profiles=profiles))

        loaded = store.load()

        assert [p.to_dict() for p in Aggregator().aggregate(loaded.files)] == \
            [p.to_dict() for p in profiles]
        assert loaded.profiles == profiles


class TestHeaderClassification:
    """Files with no keyword in their name."""

    def test_export_classified_by_header(self):
        """Test header keywords classify an anonymous export."""
        rows = [{"friend_name": "Phạm Thu Hà", "friend_id": "2001"}]
        assert RecordClassifier().classify("export1.xlsx", rows) == "friends"

    def test_export_aggregated_by_friend_id(self):
        """Test friend_id becomes the UID for a header-classified file."""
        path = Path(__file__).parent.parent / "fixtures" / "export1.csv"
        uploaded = read_uploaded_file(path)

        profiles = Aggregator().aggregate([uploaded])

        assert uploaded.type == "friends"
        assert [(p.uid, p.name) for p in profiles] == [
            ("2001", "Phạm Thu Hà"),
            ("2002", "Hoàng Gia Khang"),
        ]
