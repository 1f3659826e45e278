"""SQLite storage for agent memory, created events and error logs."""

import json
import sqlite3
from datetime import datetime

from rss_agent.models import Event

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS agent_state (
    name TEXT PRIMARY KEY,
    memory TEXT NOT NULL DEFAULT '{}',
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_name TEXT NOT NULL,
    entry_id TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS error_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_name TEXT NOT NULL,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_events_agent_created ON events(agent_name, created_at);
CREATE INDEX IF NOT EXISTS idx_error_logs_agent_created ON error_logs(agent_name, created_at);
"""


class Database:
    """SQLite database manager for agent state and output."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # --- Memory ---

    def load_memory(self, agent_name: str) -> dict:
        """Return the stored memory blob for an agent, or an empty dict."""
        row = self.conn.execute(
            "SELECT memory FROM agent_state WHERE name = ?", (agent_name,)
        ).fetchone()
        if not row:
            return {}
        memory = json.loads(row["memory"])
        return memory if isinstance(memory, dict) else {}

    def save_memory(self, agent_name: str, memory: dict, timestamp: datetime | None = None) -> None:
        """Replace an agent's memory blob in a single statement."""
        with self.conn:
            self._upsert_memory(agent_name, memory, timestamp or datetime.utcnow())

    # --- Events ---

    def add_events(
        self, agent_name: str, events: list[Event], timestamp: datetime | None = None
    ) -> int:
        """Store created events. Returns count of inserted rows."""
        with self.conn:
            self._insert_events(agent_name, events, timestamp or datetime.utcnow())
        return len(events)

    def get_recent_events(self, agent_name: str, limit: int = 20) -> list[dict]:
        """Return the newest stored event payloads for an agent."""
        rows = self.conn.execute(
            """SELECT payload FROM events WHERE agent_name = ?
               ORDER BY created_at DESC, id DESC LIMIT ?""",
            (agent_name, limit),
        ).fetchall()
        return [json.loads(r["payload"]) for r in rows]

    def last_event_at(self, agent_name: str) -> datetime | None:
        """Timestamp of the agent's most recent event, if any."""
        row = self.conn.execute(
            "SELECT MAX(created_at) AS last FROM events WHERE agent_name = ?",
            (agent_name,),
        ).fetchone()
        return _str_to_dt(row["last"]) if row else None

    # --- Error logs ---

    def log_error(self, agent_name: str, message: str, timestamp: datetime | None = None) -> None:
        """Record an error against an agent."""
        with self.conn:
            self._insert_errors(agent_name, [message], timestamp or datetime.utcnow())

    def recent_error_count(self, agent_name: str, since: datetime | None = None) -> int:
        """Count errors logged for an agent, optionally only at or after ``since``."""
        query = "SELECT COUNT(*) as cnt FROM error_logs WHERE agent_name = ?"
        params: list = [agent_name]
        if since is not None:
            query += " AND created_at >= ?"
            params.append(_dt_to_str(since))
        row = self.conn.execute(query, params).fetchone()
        return row["cnt"] if row else 0

    # --- Runs ---

    def commit_run(
        self,
        agent_name: str,
        events: list[Event],
        errors: list[str],
        memory: dict,
        timestamp: datetime | None = None,
    ) -> None:
        """Store a run's events, error messages and memory in one transaction.

        Either all three are written or none is, so events are never stored
        without the memory that marks them as seen.
        """
        timestamp = timestamp or datetime.utcnow()
        with self.conn:
            self._insert_events(agent_name, events, timestamp)
            self._insert_errors(agent_name, errors, timestamp)
            self._upsert_memory(agent_name, memory, timestamp)

    def _insert_events(self, agent_name: str, events: list[Event], timestamp: datetime) -> None:
        created_at = _dt_to_str(timestamp)
        self.conn.executemany(
            """INSERT INTO events (agent_name, entry_id, payload, created_at)
               VALUES (?, ?, ?, ?)""",
            [
                (agent_name, event.id, json.dumps(event.payload), created_at)
                for event in events
            ],
        )

    def _insert_errors(self, agent_name: str, messages: list[str], timestamp: datetime) -> None:
        created_at = _dt_to_str(timestamp)
        self.conn.executemany(
            "INSERT INTO error_logs (agent_name, message, created_at) VALUES (?, ?, ?)",
            [(agent_name, message, created_at) for message in messages],
        )

    def _upsert_memory(self, agent_name: str, memory: dict, timestamp: datetime) -> None:
        self.conn.execute(
            """INSERT INTO agent_state (name, memory, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   memory = excluded.memory,
                   updated_at = excluded.updated_at""",
            (agent_name, json.dumps(memory), _dt_to_str(timestamp)),
        )


# --- Helper functions ---


def _dt_to_str(dt: datetime | None) -> str | None:
    """Convert datetime to ISO string for storage."""
    return dt.isoformat() if dt else None


def _str_to_dt(s: str | None) -> datetime | None:
    """Convert stored ISO string back to datetime."""
    if not s:
        return None
    return datetime.fromisoformat(s)
