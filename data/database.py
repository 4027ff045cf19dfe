"""Async SQLite session store using aiosqlite.

Keeps the most recent debate sessions as JSON documents, newest first,
capped at a fixed number of rows.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiosqlite

from data.models import DebateSession

logger = logging.getLogger(__name__)

MAX_SESSIONS = 25
MAX_DETAIL_CHARS = 1000

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS sessions (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id  TEXT    NOT NULL,
    scenario    TEXT    NOT NULL,
    created_at  TEXT    NOT NULL,
    final_plan  TEXT    NOT NULL,
    payload     TEXT    NOT NULL
);
"""


def _truncate(value: str, limit: int = MAX_DETAIL_CHARS) -> str:
    return f"{value[:limit]}..." if len(value) > limit else value


def trim_session(session: DebateSession) -> DebateSession:
    """Shorten free-text warnings and evidence details before storage."""
    return session.model_copy(
        update={
            "generation_warnings": [_truncate(w) for w in session.generation_warnings],
            "evidence_ledger": [
                entry.model_copy(update={"details": _truncate(entry.details)})
                for entry in session.evidence_ledger
            ],
        }
    )


class SessionStore:
    """Append-only, most-recent-first list of persisted sessions."""

    def __init__(
        self,
        db_path: str | Path = "data/sessions.db",
        max_sessions: int = MAX_SESSIONS,
    ) -> None:
        self.db_path = Path(db_path)
        self.max_sessions = max_sessions
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open connection and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        self._conn.row_factory = aiosqlite.Row
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        logger.info("Session store connected: %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Session store not connected. Call connect() first.")
        return self._conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_session(self, session: DebateSession) -> None:
        """Insert *session* at the head of the list and drop the overflow."""
        stored = trim_session(session)
        async with self._write_lock:
            await self.conn.execute(
                "INSERT INTO sessions (session_id, scenario, created_at, final_plan, payload) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    stored.id,
                    stored.scenario,
                    stored.created_at.isoformat(),
                    stored.final_plan_id,
                    stored.model_dump_json(),
                ),
            )
            cur = await self.conn.execute(
                "DELETE FROM sessions WHERE seq NOT IN "
                "(SELECT seq FROM sessions ORDER BY seq DESC LIMIT ?)",
                (self.max_sessions,),
            )
            await self.conn.commit()
        if cur.rowcount and cur.rowcount > 0:
            logger.debug("Pruned %d old session(s)", cur.rowcount)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def latest_session(self) -> DebateSession | None:
        cur = await self.conn.execute(
            "SELECT payload FROM sessions ORDER BY seq DESC LIMIT 1"
        )
        row = await cur.fetchone()
        if row is None:
            return None
        return DebateSession.model_validate_json(row["payload"])

    async def get_session(self, session_id: str) -> DebateSession | None:
        cur = await self.conn.execute(
            "SELECT payload FROM sessions WHERE session_id = ? ORDER BY seq DESC LIMIT 1",
            (session_id,),
        )
        row = await cur.fetchone()
        if row is None:
            return None
        return DebateSession.model_validate_json(row["payload"])

    async def list_sessions(self, limit: int = MAX_SESSIONS) -> list[DebateSession]:
        cur = await self.conn.execute(
            "SELECT payload FROM sessions ORDER BY seq DESC LIMIT ?", (limit,)
        )
        rows = await cur.fetchall()
        return [DebateSession.model_validate_json(r["payload"]) for r in rows]

    async def count(self) -> int:
        cur = await self.conn.execute("SELECT COUNT(*) AS cnt FROM sessions")
        row = await cur.fetchone()
        return row["cnt"] if row else 0
