"""SQLite persistence layer."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

SCHEMA_VERSION = 1


class Database:
    """Small SQLite wrapper with explicit schema management."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS turns_by_conversation ON turns(conversation_id, id);

            CREATE TABLE IF NOT EXISTS tool_executions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                tool_name TEXT NOT NULL,
                input_json TEXT NOT NULL,
                output_text TEXT NOT NULL,
                succeeded INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )

    def add_turn(self, conversation_id: str, role: str, payload_json: str) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO turns(conversation_id, role, payload_json, created_at) VALUES (?, ?, ?, ?)",
                (conversation_id, role, payload_json, _utc_now_iso()),
            )
            return int(cur.lastrowid)

    def get_turns(self, conversation_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, role, payload_json FROM turns WHERE conversation_id = ? ORDER BY id ASC",
                (conversation_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def trim_turns(self, conversation_id: str, limit: int) -> None:
        """Keep only the newest ``limit`` turns, then drop leading tool turns."""

        with self._connect() as conn:
            conn.execute(
                """
                DELETE FROM turns
                WHERE conversation_id = ? AND id NOT IN (
                    SELECT id FROM turns WHERE conversation_id = ? ORDER BY id DESC LIMIT ?
                )
                """,
                (conversation_id, conversation_id, limit),
            )
            while True:
                row = conn.execute(
                    "SELECT id, role FROM turns WHERE conversation_id = ? ORDER BY id ASC LIMIT 1",
                    (conversation_id,),
                ).fetchone()
                if row is None or row["role"] != "tool":
                    break
                conn.execute("DELETE FROM turns WHERE id = ?", (row["id"],))

    def clear_turns(self, conversation_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM turns WHERE conversation_id = ?", (conversation_id,))

    def log_tool_execution(
        self,
        conversation_id: str,
        tool_name: str,
        tool_input: dict[str, Any],
        tool_output: str,
        succeeded: bool,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tool_executions(conversation_id, tool_name, input_json, output_text, succeeded, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation_id,
                    tool_name,
                    json.dumps(tool_input, default=str),
                    tool_output,
                    int(succeeded),
                    _utc_now_iso(),
                ),
            )

    def list_tool_executions(self, conversation_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT tool_name, input_json, output_text, succeeded
                FROM tool_executions WHERE conversation_id = ? ORDER BY id ASC
                """,
                (conversation_id,),
            ).fetchall()
        return [dict(row) for row in rows]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
