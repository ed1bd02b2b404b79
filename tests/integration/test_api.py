"""
API integration tests.

Exercises the FastAPI service with an in-memory snapshot store.
"""

import asyncio
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from app import app, get_store
from uid_aggregator.aggregation.aggregator import Aggregator
from uid_aggregator.parsers.spreadsheet_reader import SpreadsheetReader, build_uploaded_file
from uid_aggregator.storage.snapshot_store import MemorySnapshotStore, WorkspaceSnapshot


FIXTURES = Path(__file__).parent.parent / "fixtures"
FIXTURE_NAMES = ["friends_list.csv", "groups_joined.csv", "posts.csv", "pages_liked.csv"]


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def use_store(store):
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def client(use_store):
    return TestClient(app)


def upload(client, name, content=None, **form):
    if content is None:
        content = (FIXTURES / name).read_bytes()
    return client.post("/files", files={"file": (name, content, "text/csv")}, data=form)


@pytest.fixture
def loaded_client(client):
    """Client with every sample export uploaded and aggregated."""
    for name in FIXTURE_NAMES:
        assert upload(client, name, uploader_id="u-1").status_code == 200
    assert client.get("/profiles").status_code == 200
    return client


class TestHealth:
    """Health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "uid-aggregator", "version": "1.0.0"}

    def test_health_alias(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestFiles:
    """Upload, list, correct and delete files."""

    def test_upload_classifies(self, client, store):
        """Test an upload is parsed, classified and stored."""
        response = upload(client, "friends_list.csv", uploader_id="u-1", uploader_name="Lan")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "friends"
        assert body["row_count"] == 3
        assert body["manual_type"] is False
        assert body["uploader_name"] == "Lan"
        assert body["warnings"] is None
        assert "data" not in body
        assert len(store.load().files) == 1

    def test_upload_reports_blank_rows(self, client):
        """Test reader warnings are returned."""
        body = upload(client, "export1.csv").json()
        assert body["type"] == "friends"
        assert body["warnings"] == ["Skipped 1 blank rows"]

    def test_upload_with_manual_kind(self, client):
        """Test a given kind skips classification."""
        body = upload(client, "posts.csv", kind="comments").json()
        assert body["type"] == "comments"
        assert body["manual_type"] is True

    def test_upload_with_source(self, client):
        """Test source metadata is stored."""
        body = upload(client, "friends_list.csv", source_type="group", source_uid="g-7").json()
        assert body["source_type"] == "group"
        assert body["source_uid"] == "g-7"

    def test_upload_rejects_extension(self, client):
        """Test unsupported file types are rejected."""
        response = upload(client, "notes.txt", b"uid\n1\n")
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_upload_rejects_oversize(self, client):
        """Test uploads over 10MB are rejected."""
        response = upload(client, "big.csv", b"x" * (10 * 1024 * 1024 + 1))
        assert response.status_code == 400
        assert "exceeds 10MB" in response.json()["detail"]

    def test_upload_rejects_unknown_kind(self, client):
        """Test invalid manual kinds are rejected."""
        assert upload(client, "posts.csv", kind="tweets").status_code == 400

    def test_upload_rejects_empty_file(self, client):
        """Test unreadable files are rejected."""
        assert upload(client, "empty.csv", b"").status_code == 400

    def test_list_files(self, loaded_client):
        """Test listing returns metadata in upload order."""
        names = [f["name"] for f in loaded_client.get("/files").json()]
        assert names == FIXTURE_NAMES

    def test_correct_file_type(self, client):
        """Test manual kind correction."""
        file_id = upload(client, "posts.csv").json()["id"]

        response = client.patch(f"/files/{file_id}", json={"type": "comments"})

        assert response.status_code == 200
        assert response.json()["type"] == "comments"
        assert response.json()["manual_type"] is True

    def test_correct_file_source(self, client):
        """Test source correction."""
        file_id = upload(client, "posts.csv").json()["id"]
        body = client.patch(f"/files/{file_id}", json={"source_type": "page", "source_uid": "p1"}).json()
        assert (body["source_type"], body["source_uid"]) == ("page", "p1")

    def test_correct_source_uid_only(self, client):
        """Test a source_uid alone keeps the current source type."""
        file_id = upload(client, "posts.csv", source_type="page", source_uid="p1").json()["id"]

        response = client.patch(f"/files/{file_id}", json={"source_uid": "p2"})

        assert response.status_code == 200
        body = response.json()
        assert (body["source_type"], body["source_uid"]) == ("page", "p2")
        assert client.get("/files").json()[0]["source_uid"] == "p2"

    def test_correct_file_invalid(self, client):
        """Test invalid corrections are rejected."""
        file_id = upload(client, "posts.csv").json()["id"]
        assert client.patch(f"/files/{file_id}", json={"type": "tweets"}).status_code == 400

    def test_correct_missing_file(self, client):
        """Test unknown file ids give 404."""
        assert client.patch("/files/nope", json={"type": "posts"}).status_code == 404

    def test_delete_file(self, client, store):
        """Test deleting a file."""
        file_id = upload(client, "posts.csv").json()["id"]

        assert client.delete(f"/files/{file_id}").json() == {"deleted": file_id}
        assert store.load().files == []
        assert client.delete(f"/files/{file_id}").status_code == 404


class TestProfiles:
    """Aggregation and analysis endpoints."""

    def test_list_profiles(self, loaded_client):
        """Test profiles are aggregated from every file."""
        body = loaded_client.get("/profiles").json()

        assert body["total"] == 4
        assert body["page"] == 1
        first = body["profiles"][0]
        assert first["uid"] == "1001"
        assert first["friends_count"] == 1
        assert first["groups_count"] == 2
        assert first["posts_count"] == 2
        assert first["pages_liked_count"] == 2
        assert first["last_active"] == "2023-07-15T00:00:00"

    def test_profiles_replaced_not_merged(self, loaded_client):
        """Test repeated aggregation does not double counts."""
        loaded_client.get("/profiles")
        first = loaded_client.get("/profiles").json()["profiles"][0]
        assert first["friends_count"] == 1

    def test_search_and_paginate(self, loaded_client):
        """Test search query and paging."""
        body = loaded_client.get("/profiles", params={"q": "bình"}).json()
        assert [p["uid"] for p in body["profiles"]] == ["1002"]

        page = loaded_client.get("/profiles", params={"page": 2, "per_page": 3}).json()
        assert page["total"] == 4
        assert [p["uid"] for p in page["profiles"]] == ["1004"]

    def test_bad_page(self, loaded_client):
        """Test invalid paging gives 400."""
        assert loaded_client.get("/profiles", params={"page": 0}).status_code == 400

    def test_deleted_file_removed_from_profiles(self, loaded_client):
        """Test re-aggregation reflects deletions."""
        posts_id = next(f["id"] for f in loaded_client.get("/files").json() if f["name"] == "posts.csv")
        loaded_client.delete(f"/files/{posts_id}")

        uids = [p["uid"] for p in loaded_client.get("/profiles").json()["profiles"]]

        assert uids == ["1001", "1002", "1003"]

    def test_get_profile(self, loaded_client):
        """Test single profile lookup."""
        body = loaded_client.get("/profiles/1004").json()
        assert body["name"] is None
        assert body["posts_count"] == 1
        assert loaded_client.get("/profiles/9999").status_code == 404

    def test_profile_rows_search(self, loaded_client):
        """Test row search across every column of one bucket."""
        body = loaded_client.get("/profiles/1001/rows/groups", params={"q": "tech"}).json()

        assert body["uid"] == "1001"
        assert body["bucket"] == "groups"
        assert body["total"] == 1
        assert [row["name"] for row in body["rows"]] == ["Tech Vietnam"]

    def test_profile_rows_unfiltered(self, loaded_client):
        """Test no query returns the whole bucket."""
        body = loaded_client.get("/profiles/1001/rows/posts").json()
        assert body["total"] == 2

    def test_profile_rows_grouped(self, loaded_client):
        """Test rows grouped by a column in first-seen order."""
        body = loaded_client.get("/profiles/1001/rows/pages_liked", params={"group": "category"}).json()

        assert body["total"] == 2
        assert list(body["groups"]) == ["Tin tức", "Ẩm thực"]
        assert body["groups"]["Ẩm thực"][0]["page_name"] == "Foody"
        assert "rows" not in body

    def test_profile_rows_not_found(self, loaded_client):
        """Test unknown buckets and profiles give 404."""
        assert loaded_client.get("/profiles/1001/rows/tweets").status_code == 404
        assert loaded_client.get("/profiles/9999/rows/groups").status_code == 404

    def test_analysis(self, loaded_client):
        """Test analysis report and interests."""
        body = loaded_client.get("/profiles/1002/analysis").json()

        assert body["uid"] == "1002"
        assert body["interests"]["top_interests"] == ["Công nghệ", "Du lịch", "Ẩm thực"]
        assert body["analysis"].startswith("# Phân tích UID: 1002")
        assert loaded_client.get("/profiles/9999/analysis").status_code == 404

    def test_connections(self, loaded_client):
        """Test connection endpoint."""
        body = loaded_client.get("/connections").json()
        assert [(c["source"], c["target"]) for c in body["connections"]] == [
            ("1001", "1002"),
            ("1001", "1003"),
        ]
        assert "2 kết nối" in body["insights"]

    def test_statistics(self, loaded_client):
        """Test totals and top users."""
        body = loaded_client.get("/statistics").json()
        assert body["totals"]["total_users"] == 4
        assert body["totals"]["total_posts"] == 4
        assert body["top_users"][0] == {"uid": "1001", "name": "Nguyễn Văn An", "total_activity": 7}
        assert body["top_users"][-1]["name"] == "1004"

    def test_empty_workspace(self, client):
        """Test endpoints on an empty workspace."""
        assert client.get("/profiles").json() == {"total": 0, "page": 1, "profiles": []}
        assert client.get("/connections").json()["connections"] == []
        assert client.get("/statistics").json()["top_users"] == []


# =============================================================================
# Concurrency
# =============================================================================

class RecordingStore(MemorySnapshotStore):
    """Memory store that notes whether each call ran on an event loop thread."""

    def __init__(self):
        super().__init__()
        self.calls_on_loop = []

    def _record(self):
        try:
            asyncio.get_running_loop()
            self.calls_on_loop.append(True)
        except RuntimeError:
            self.calls_on_loop.append(False)

    def load(self):
        self._record()
        return super().load()

    def save(self, snapshot):
        self._record()
        super().save(snapshot)


class TestConcurrency:
    """Snapshot updates from overlapping requests."""

    def test_upload_during_refresh_is_kept(self, client, store, monkeypatch):
        """Test a file stored while profiles are derived survives the refresh."""
        upload(client, "friends_list.csv")
        posts_rows = SpreadsheetReader().read((FIXTURES / "posts.csv").read_bytes(), "posts.csv")
        calls = []

        class UploadWhileAggregating(Aggregator):
            async def aggregate_async(self, files):
                calls.append([f.name for f in files])
                if len(calls) == 1:
                    snapshot = store.load()
                    snapshot.files.append(build_uploaded_file("posts.csv", posts_rows))
                    store.save(snapshot)
                return await super().aggregate_async(files)

        monkeypatch.setattr("app.Aggregator", UploadWhileAggregating)

        body = client.get("/profiles").json()

        assert calls == [["friends_list.csv"], ["friends_list.csv", "posts.csv"]]
        assert [f["name"] for f in client.get("/files").json()] == ["friends_list.csv", "posts.csv"]
        assert [p["uid"] for p in body["profiles"]] == ["1001", "1002", "1003", "1004"]
        assert [p.uid for p in store.load().profiles] == ["1001", "1002", "1003", "1004"]

    def test_concurrent_refresh_and_upload(self, use_store):
        """Test overlapping GET /profiles and POST /files both take effect."""
        rows = [{"uid": str(i), "name": f"User {i}"} for i in range(5000)]
        use_store.save(WorkspaceSnapshot(files=[build_uploaded_file("friends.csv", rows)]))
        posts = (FIXTURES / "posts.csv").read_bytes()

        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
                refresh = asyncio.create_task(ac.get("/profiles"))
                await asyncio.sleep(0)
                uploaded = await ac.post("/files", files={"file": ("posts.csv", posts, "text/csv")})
                refreshed = await refresh
                files = (await ac.get("/files")).json()
            return uploaded, refreshed, files

        uploaded, refreshed, files = asyncio.run(scenario())

        assert uploaded.status_code == 200
        assert refreshed.status_code == 200
        assert [f["name"] for f in files] == ["friends.csv", "posts.csv"]

    def test_store_calls_leave_event_loop(self):
        """Test every load and save runs in a worker thread."""
        store = RecordingStore()
        app.dependency_overrides[get_store] = lambda: store
        try:
            client = TestClient(app)
            file_id = upload(client, "friends_list.csv").json()["id"]
            client.patch(f"/files/{file_id}", json={"type": "friends"})
            client.get("/files")
            client.get("/profiles")
            client.get("/profiles/1001")
            client.get("/profiles/1001/rows/friends")
            client.get("/profiles/1001/analysis")
            client.get("/connections")
            client.get("/statistics")
            client.delete(f"/files/{file_id}")
        finally:
            app.dependency_overrides.clear()

        assert store.calls_on_loop
        assert not any(store.calls_on_loop)
