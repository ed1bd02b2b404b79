"""
Snapshot stores - persistence port for uploaded files and profiles.

The core never touches storage directly; callers inject a SnapshotStore
and call load()/save() around pipeline runs. Every store round-trips
through JSON-compatible dicts, so datetimes are always re-hydrated.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg2 import pool

from uid_aggregator.models.aggregated_user import AggregatedUserData
from uid_aggregator.models.uploaded_file import UploadedFile
from uid_aggregator.utils.constants import DEFAULT_WORKSPACE_KEY


@dataclass
class WorkspaceSnapshot:
    """Uploaded files and the profiles last derived from them."""

    files: List[UploadedFile] = field(default_factory=list)
    profiles: List[AggregatedUserData] = field(default_factory=list)

    def find_file(self, file_id: str) -> Optional[UploadedFile]:
        for uploaded in self.files:
            if uploaded.id == file_id:
                return uploaded
        return None

    def find_profile(self, uid: str) -> Optional[AggregatedUserData]:
        for profile in self.profiles:
            if profile.uid == uid:
                return profile
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'files': [uploaded.model_dump(mode='json') for uploaded in self.files],
            'profiles': [profile.to_dict() for profile in self.profiles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkspaceSnapshot':
        return cls(
            files=[UploadedFile.model_validate(f) for f in data.get('files', [])],
            profiles=[AggregatedUserData.from_dict(p) for p in data.get('profiles', [])],
        )


class SnapshotStore(ABC):
    """Read/write port for workspace snapshots."""

    @abstractmethod
    def load(self) -> WorkspaceSnapshot:
        """Return the stored snapshot, or an empty one."""

    @abstractmethod
    def save(self, snapshot: WorkspaceSnapshot) -> None:
        """Replace the stored snapshot."""


class MemorySnapshotStore(SnapshotStore):
    """
    In-process store holding the serialized JSON text.
    Why: same serialize/re-hydrate path as durable stores, no database.
    """

    def __init__(self) -> None:
        self._payload: Optional[str] = None

    def load(self) -> WorkspaceSnapshot:
        if self._payload is None:
            return WorkspaceSnapshot()
        return WorkspaceSnapshot.from_dict(json.loads(self._payload))

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        self._payload = json.dumps(snapshot.to_dict(), ensure_ascii=False, default=str)


class PostgresSnapshotStore(SnapshotStore):
    """
    PostgreSQL storage for workspace snapshots.
    Why: keep uploads and profiles across restarts and processes.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        workspace_key: Optional[str] = None,
    ):
        """
        Initialize store with database connection.

        Args:
            connection_string: PostgreSQL connection string.
                             Defaults to DATABASE_URL env var.
            workspace_key: Row key for this workspace.
                         Defaults to WORKSPACE_KEY env var, then "default".
        """
        self.connection_string = connection_string or os.getenv('DATABASE_URL')
        self.workspace_key = workspace_key or os.getenv('WORKSPACE_KEY', DEFAULT_WORKSPACE_KEY)
        self._pool: Optional[pool.SimpleConnectionPool] = None

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self._pool:
            self._pool = pool.SimpleConnectionPool(
                1, 10,  # min 1, max 10 connections
                self.connection_string
            )
        return self._pool.getconn()

    def _release_connection(self, conn):
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn)

    def init_schema(self) -> None:
        """Create the workspace_snapshots table if it doesn't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS workspace_snapshots (
                        workspace_key TEXT PRIMARY KEY,
                        updated_at TIMESTAMP NOT NULL,
                        files JSONB NOT NULL,
                        profiles JSONB NOT NULL
                    );
                """)
                conn.commit()
        finally:
            self._release_connection(conn)

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        """Insert or replace this workspace's snapshot."""
        payload = snapshot.to_dict()
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO workspace_snapshots (
                        workspace_key, updated_at, files, profiles
                    ) VALUES (%s, %s, %s, %s)
                    ON CONFLICT (workspace_key) DO UPDATE SET
                        updated_at = EXCLUDED.updated_at,
                        files = EXCLUDED.files,
                        profiles = EXCLUDED.profiles
                """, (
                    self.workspace_key,
                    datetime.now(),
                    json.dumps(payload['files'], ensure_ascii=False, default=str),
                    json.dumps(payload['profiles'], ensure_ascii=False, default=str),
                ))
                conn.commit()
        finally:
            self._release_connection(conn)

    def load(self) -> WorkspaceSnapshot:
        """Load this workspace's snapshot, or an empty one if none is stored."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT files, profiles
                    FROM workspace_snapshots
                    WHERE workspace_key = %s
                """, (self.workspace_key,))

                row = cur.fetchone()
                if not row:
                    return WorkspaceSnapshot()

                return WorkspaceSnapshot.from_dict({'files': row[0], 'profiles': row[1]})
        finally:
            self._release_connection(conn)

    def delete(self) -> bool:
        """
        Delete this workspace's snapshot.

        Returns:
            True if deleted, False if not found
        """
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM workspace_snapshots WHERE workspace_key = %s",
                    (self.workspace_key,)
                )
                conn.commit()
                return cur.rowcount > 0
        finally:
            self._release_connection(conn)

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
