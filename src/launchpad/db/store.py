"""Async SQLite persistence for project snapshots and events."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from launchpad.db.migrations import apply_migrations
from launchpad.models.events import EventType, ProjectEvent
from launchpad.models.project import ProjectDTO


class SQLiteStore:
    """Data access layer for project snapshots and lifecycle events."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await apply_migrations(conn)
            yield conn
        finally:
            await conn.close()

    async def upsert_project(self, snapshot: ProjectDTO) -> None:
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO projects(id, name, status, snapshot, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    status=excluded.status,
                    snapshot=excluded.snapshot,
                    updated_at=excluded.updated_at
                """,
                (
                    snapshot.id,
                    snapshot.name,
                    snapshot.status.value,
                    snapshot.model_dump_json(by_alias=True),
                    snapshot.created_at.isoformat(),
                    datetime.now(UTC).isoformat(),
                ),
            )
            await conn.commit()

    async def list_projects(self) -> list[ProjectDTO]:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT snapshot FROM projects ORDER BY created_at ASC")
            rows = await cursor.fetchall()
        return [ProjectDTO.model_validate_json(str(row["snapshot"])) for row in rows]

    async def get_project(self, project_id: str) -> ProjectDTO | None:
        async with self.connection() as conn:
            cursor = await conn.execute(
                "SELECT snapshot FROM projects WHERE id = ?", (project_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return ProjectDTO.model_validate_json(str(row["snapshot"]))

    async def delete_project(self, project_id: str) -> None:
        async with self.connection() as conn:
            await conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            await conn.commit()

    async def append_event(self, event: ProjectEvent) -> None:
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO project_events(id, project_id, event_type, payload, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.project_id,
                    event.event_type.value,
                    json.dumps(event.payload),
                    event.timestamp.isoformat(),
                ),
            )
            await conn.commit()

    async def list_events(
        self,
        *,
        project_id: str | None = None,
        event_type: EventType | None = None,
    ) -> list[ProjectEvent]:
        query = "SELECT * FROM project_events WHERE 1 = 1"
        params: list[str] = []

        if project_id:
            query += " AND project_id = ?"
            params.append(project_id)

        if event_type:
            query += " AND event_type = ?"
            params.append(event_type.value)

        query += " ORDER BY timestamp ASC"

        async with self.connection() as conn:
            cursor = await conn.execute(query, tuple(params))
            rows = await cursor.fetchall()

        return [self._event_from_row(row) for row in rows]

    @staticmethod
    def _event_from_row(row: aiosqlite.Row) -> ProjectEvent:
        return ProjectEvent(
            id=str(row["id"]),
            project_id=str(row["project_id"]),
            event_type=EventType(str(row["event_type"])),
            payload=json.loads(str(row["payload"])),
            timestamp=datetime.fromisoformat(str(row["timestamp"])),
        )
