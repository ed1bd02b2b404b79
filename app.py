"""
UID Aggregator API

FastAPI wrapper around the classification, aggregation and analysis
pipeline. Uploaded files and derived profiles live in a snapshot store
(PostgreSQL when DATABASE_URL is set, in-process memory otherwise).
Store calls run in the threadpool so database round trips never block
the event loop.
"""

import logging
import os
from threading import Lock
from typing import Any, Callable, List, Optional, Tuple

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from uid_aggregator.aggregation.aggregator import Aggregator
from uid_aggregator.analysis.analysis_composer import AnalysisComposer
from uid_aggregator.analysis.connection_finder import ConnectionFinder
from uid_aggregator.analysis.interest_categorizer import InterestCategorizer
from uid_aggregator.analysis.statistics import (
    display_name,
    get_statistics,
    group_by,
    paginate,
    search_profiles,
    search_rows,
    top_users,
)
from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.parsers.spreadsheet_reader import SpreadsheetReader, build_uploaded_file
from uid_aggregator.storage.snapshot_store import (
    MemorySnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
    WorkspaceSnapshot,
)
from uid_aggregator.utils.constants import SOURCE_UID_PROFILE
from uid_aggregator.utils.upload_validator import UploadValidator


logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO').upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="UID Aggregator",
    description="Classify social-platform spreadsheet exports and aggregate them into per-UID profiles",
    version="1.0.0",
)


def _create_store() -> SnapshotStore:
    if os.getenv('DATABASE_URL'):
        store = PostgresSnapshotStore()
        store.init_schema()
        return store
    return MemorySnapshotStore()


_store: Optional[SnapshotStore] = None

# Held for every load-modify-save cycle on the workspace snapshot
_snapshot_lock = Lock()


def get_store() -> SnapshotStore:
    """Snapshot store dependency (overridable in tests)."""
    global _store
    if _store is None:
        _store = _create_store()
    return _store


class FileCorrection(BaseModel):
    """Manual corrections to an uploaded file's metadata."""
    type: Optional[str] = None
    source_type: Optional[str] = None
    source_uid: Optional[str] = None


def _update_snapshot(store: SnapshotStore, mutate: Callable[[WorkspaceSnapshot], Any]) -> Any:
    """Load, mutate and save the snapshot atomically. Returns mutate's result."""
    with _snapshot_lock:
        snapshot = store.load()
        result = mutate(snapshot)
        store.save(snapshot)
        return result


def _file_versions(snapshot: WorkspaceSnapshot) -> List[Tuple[str, str, str, Optional[str]]]:
    return [(f.id, f.type, f.source_type, f.source_uid) for f in snapshot.files]


def _commit_profiles(
    store: SnapshotStore,
    aggregated_from: List[Tuple[str, str, str, Optional[str]]],
    profiles: List[AggregatedUserData],
) -> Optional[WorkspaceSnapshot]:
    """Save profiles unless the file list changed since they were derived."""
    with _snapshot_lock:
        snapshot = store.load()
        if _file_versions(snapshot) != aggregated_from:
            return None
        snapshot.profiles = profiles
        store.save(snapshot)
        return snapshot


async def _refresh_profiles(store: SnapshotStore) -> WorkspaceSnapshot:
    """Re-derive all profiles from the full file list and save them."""
    while True:
        snapshot = await run_in_threadpool(store.load)
        profiles = await Aggregator().aggregate_async(snapshot.files)
        committed = await run_in_threadpool(
            _commit_profiles, store, _file_versions(snapshot), profiles
        )
        if committed is not None:
            return committed
        logger.debug("Files changed during aggregation, aggregating again")


async def _load_profile(store: SnapshotStore, uid: str) -> AggregatedUserData:
    profile = (await run_in_threadpool(store.load)).find_profile(uid)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Profile not found: {uid}")
    return profile


@app.get("/")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "uid-aggregator",
        "version": "1.0.0",
    }


@app.get("/health")
async def health():
    """Alias for health check."""
    return await health_check()


@app.post("/files")
async def upload_file(
    file: UploadFile = File(...),
    uploader_id: str = Form(""),
    uploader_name: Optional[str] = Form(None),
    kind: Optional[str] = Form(None),
    source_type: str = Form(SOURCE_UID_PROFILE),
    source_uid: Optional[str] = Form(None),
    store: SnapshotStore = Depends(get_store),
):
    """
    Upload a spreadsheet export.

    The file is parsed, classified (unless kind is given) and added to
    the workspace. Returns the file metadata without its rows.
    """
    content = await file.read()
    filename = file.filename or ""

    validator = UploadValidator()
    try:
        validator.validate(filename, content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    reader = SpreadsheetReader()
    try:
        rows = reader.read(content, filename)
        uploaded = build_uploaded_file(
            filename,
            rows,
            uploader_id=uploader_id,
            uploader_name=uploader_name,
            kind=kind,
            source_type=source_type,
            source_uid=source_uid,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await run_in_threadpool(_update_snapshot, store, lambda s: s.files.append(uploaded))

    logger.info("Stored '%s' as %s (%d rows)", uploaded.name, uploaded.type, uploaded.row_count)

    response = uploaded.summary()
    response["warnings"] = reader.warnings if reader.warnings else None
    return JSONResponse(content=response)


@app.get("/files")
async def list_files(store: SnapshotStore = Depends(get_store)):
    """List uploaded files without their rows."""
    snapshot = await run_in_threadpool(store.load)
    return [uploaded.summary() for uploaded in snapshot.files]


@app.patch("/files/{file_id}")
async def correct_file(
    file_id: str,
    correction: FileCorrection,
    store: SnapshotStore = Depends(get_store),
):
    """
    Apply a manual kind and/or source correction to one file.

    A source_uid sent without source_type keeps the file's current
    source type.
    """
    def apply(snapshot: WorkspaceSnapshot):
        uploaded = snapshot.find_file(file_id)
        if uploaded is None:
            raise HTTPException(status_code=404, detail=f"File not found: {file_id}")

        try:
            if correction.type is not None:
                uploaded = uploaded.with_manual_type(correction.type)
            if correction.source_type is not None or correction.source_uid is not None:
                new_source_type = correction.source_type or uploaded.source_type
                uploaded = uploaded.with_source(new_source_type, correction.source_uid)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        snapshot.files = [uploaded if f.id == file_id else f for f in snapshot.files]
        return uploaded

    uploaded = await run_in_threadpool(_update_snapshot, store, apply)
    return uploaded.summary()


@app.delete("/files/{file_id}")
async def delete_file(file_id: str, store: SnapshotStore = Depends(get_store)):
    """Remove a file from the workspace."""
    def remove(snapshot: WorkspaceSnapshot) -> None:
        if snapshot.find_file(file_id) is None:
            raise HTTPException(status_code=404, detail=f"File not found: {file_id}")
        snapshot.files = [f for f in snapshot.files if f.id != file_id]

    await run_in_threadpool(_update_snapshot, store, remove)
    return {"deleted": file_id}


@app.get("/profiles")
async def list_profiles(
    q: Optional[str] = None,
    page: int = 1,
    per_page: int = 50,
    store: SnapshotStore = Depends(get_store),
):
    """Aggregate all uploaded files and return one page of profiles."""
    snapshot = await _refresh_profiles(store)
    matches = search_profiles(snapshot.profiles, q)

    try:
        page_items = paginate(matches, page, per_page)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "total": len(matches),
        "page": page,
        "profiles": [profile.to_dict() for profile in page_items],
    }


@app.get("/profiles/{uid}")
async def get_profile(uid: str, store: SnapshotStore = Depends(get_store)):
    """Return one profile from the last aggregation."""
    profile = await _load_profile(store, uid)
    return profile.to_dict()


@app.get("/profiles/{uid}/rows/{bucket}")
async def profile_rows(
    uid: str,
    bucket: str,
    q: Optional[str] = None,
    group: Optional[str] = None,
    store: SnapshotStore = Depends(get_store),
):
    """
    Rows of one profile bucket, filtered by q across every column.

    When group names a column, matching rows are returned grouped by its
    value instead of as a flat list.
    """
    profile = await _load_profile(store, uid)
    try:
        rows = profile.data.bucket(bucket)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown bucket: {bucket}")

    columns = list(dict.fromkeys(column for row in rows for column in row))
    matches = search_rows(rows, q, columns)

    response = {"uid": uid, "bucket": bucket, "total": len(matches)}
    if group:
        response["groups"] = group_by(matches, group)
    else:
        response["rows"] = matches
    return response


@app.get("/profiles/{uid}/analysis")
async def analyze_profile(uid: str, store: SnapshotStore = Depends(get_store)):
    """Rule-based analysis report and interest categories for one profile."""
    profile = await _load_profile(store, uid)
    return {
        "uid": uid,
        "interests": InterestCategorizer().categorize(profile).to_dict(),
        "analysis": AnalysisComposer().compose(profile),
    }


@app.get("/connections")
async def connections(store: SnapshotStore = Depends(get_store)):
    """Pairwise connections across all profiles of the last aggregation."""
    snapshot = await run_in_threadpool(store.load)
    report = await ConnectionFinder().find_connections_async(snapshot.profiles)
    return report.to_dict()


@app.get("/statistics")
async def statistics(store: SnapshotStore = Depends(get_store)):
    """Dataset totals and the most active profiles."""
    profiles = (await run_in_threadpool(store.load)).profiles
    return {
        "totals": get_statistics(profiles).to_dict(),
        "top_users": [
            {
                "uid": profile.uid,
                "name": display_name(profile),
                "total_activity": profile.total_activity,
            }
            for profile in top_users(profiles)
        ],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv('PORT', '8000')))
