"""Session storage for completed analyses.

Two interchangeable stores are provided:

    - InMemorySessionStore: capacity-bounded LRU map, oldest session evicted
      first, all mutations under a single lock.
    - SQLiteSessionStore: durable store with no eviction. Channels and
      ideas are kept as a JSON column next to the session fields.

Both satisfy the SessionStore protocol, so the analyzer does not care
which one it was given.

Database Schema:
    sessions table:
        - session_id (TEXT, PK): Analysis session identifier
        - title, description, url (TEXT): Page metadata
        - headings (TEXT): JSON array of headings
        - original_content (TEXT): Content sent to the model
        - summary (TEXT): Summary returned by the model
        - created_at (TEXT): ISO-8601 creation timestamp
        - channels (TEXT): JSON array of channel records with their ideas
"""

import json
import logging
import sqlite3
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from src.engines.channels import Channel
from src.engines.models import AnalysisSession, ChannelIdeas, Idea


logger = logging.getLogger(__name__)


RECENT_ACTIVITY_WINDOW = timedelta(hours=1)


class SessionStoreError(Exception):
    """Raised when a session cannot be read from or written to storage.

    Attributes:
        operation: What the store was doing ("store", "get", "list", ...)
        session_id: Session involved, if any
    """

    def __init__(self, operation: str, message: str, session_id: str | None = None) -> None:
        self.operation = operation
        self.session_id = session_id
        target = f" for session {session_id}" if session_id else ""
        super().__init__(f"Session store {operation} failed{target}: {message}")


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for session stores."""

    def store_session(self, session: AnalysisSession) -> None:
        """Persist a session, replacing any session with the same id."""
        ...

    def get_session(self, session_id: str) -> AnalysisSession | None:
        """Return the session with the given id, or None."""
        ...

    def list_sessions(self) -> list[AnalysisSession]:
        """Return all stored sessions."""
        ...

    def stats(self) -> dict[str, Any]:
        """Return storage statistics."""
        ...

    def close(self) -> None:
        """Release any resources held by the store."""
        ...


def _collect_stats(
    sessions: list[AnalysisSession],
    implementation: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Summarize a snapshot of sessions."""
    now = now or datetime.now()
    cutoff = now - RECENT_ACTIVITY_WINDOW
    return {
        "implementation": implementation,
        "totalSessions": len(sessions),
        "totalChannels": sum(len(s.channels) for s in sessions),
        "totalIdeas": sum(s.total_ideas for s in sessions),
        "recentlyActiveSessions": sum(1 for s in sessions if s.created_at > cutoff),
    }


# =============================================================================
# In-memory store
# =============================================================================


class InMemorySessionStore:
    """LRU session store with a fixed capacity.

    Reading a session marks it as recently used. Storing a session with an
    id that is already present replaces it and marks it as most recent.
    When the store is full the least recently used session is evicted.

    Example:
        >>> store = InMemorySessionStore(max_sessions=2)
        >>> store.store_session(session)
        >>> store.get_session(session.session_id) is session
        True
    """

    IMPLEMENTATION = "In-Memory LRU Cache"

    def __init__(self, max_sessions: int = 50) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, AnalysisSession] = OrderedDict()
        self._lock = threading.Lock()

    def store_session(self, session: AnalysisSession) -> None:
        evicted: list[str] = []
        with self._lock:
            self._sessions[session.session_id] = session
            self._sessions.move_to_end(session.session_id)
            while len(self._sessions) > self.max_sessions:
                oldest_id, _ = self._sessions.popitem(last=False)
                evicted.append(oldest_id)
            size = len(self._sessions)

        for session_id in evicted:
            logger.info(f"Evicted session {session_id} (capacity {self.max_sessions})")
        logger.info(f"Stored session {session.session_id} ({size}/{self.max_sessions} sessions)")

    def get_session(self, session_id: str) -> AnalysisSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def list_sessions(self) -> list[AnalysisSession]:
        """Return a snapshot, least recently used first."""
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def stats(self) -> dict[str, Any]:
        stats = _collect_stats(self.list_sessions(), self.IMPLEMENTATION)
        stats["maxSessions"] = self.max_sessions
        return stats

    def close(self) -> None:
        pass


# =============================================================================
# Serialization
# =============================================================================


def _idea_to_dict(idea: Idea) -> dict[str, Any]:
    return {
        "id": idea.idea_id,
        "idea": idea.description,
        "rationale": idea.rationale,
        "pros": list(idea.pros),
        "cons": list(idea.cons),
        "createdAt": idea.created_at.isoformat(),
    }


def _idea_from_dict(data: dict[str, Any]) -> Idea:
    return Idea(
        description=data["idea"],
        rationale=data["rationale"],
        pros=list(data.get("pros") or []),
        cons=list(data.get("cons") or []),
        idea_id=data["id"],
        created_at=datetime.fromisoformat(data["createdAt"]),
    )


def channels_to_json(channels: list[ChannelIdeas]) -> str:
    """Serialize channel records and their ideas to a JSON array."""
    return json.dumps(
        [
            {
                "id": record.channel_id,
                "channel": record.channel.key,
                "createdAt": record.created_at.isoformat(),
                "ideas": [_idea_to_dict(idea) for idea in record.ideas],
            }
            for record in channels
        ],
        ensure_ascii=False,
    )


def channels_from_json(text: str) -> list[ChannelIdeas]:
    """Rebuild channel records from ``channels_to_json`` output.

    Raises:
        ValueError: If the text is not valid JSON or names an unknown channel.
    """
    records = []
    for data in json.loads(text):
        channel = Channel.from_name(data["channel"])
        if channel is None:
            raise ValueError(f"Unknown channel in stored session: {data['channel']}")
        records.append(
            ChannelIdeas(
                channel=channel,
                ideas=[_idea_from_dict(idea) for idea in data.get("ideas", [])],
                channel_id=data["id"],
                created_at=datetime.fromisoformat(data["createdAt"]),
            )
        )
    return records


# =============================================================================
# SQLite store
# =============================================================================


class SQLiteSessionStore:
    """SQLite-backed session store without eviction.

    One connection is shared between threads and every access goes through
    a lock. WAL mode lets other processes read while a write is in flight.

    Example:
        >>> with SQLiteSessionStore("sessions.db") as store:
        ...     store.store_session(session)
        ...     sessions = store.list_sessions()
    """

    IMPLEMENTATION = "SQLite"

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS sessions (
        session_id TEXT PRIMARY KEY,
        title TEXT,
        description TEXT,
        url TEXT,
        headings TEXT NOT NULL DEFAULT '[]',
        original_content TEXT NOT NULL,
        summary TEXT,
        created_at TEXT NOT NULL,
        channels TEXT NOT NULL DEFAULT '[]'
    );

    CREATE INDEX IF NOT EXISTS idx_sessions_created ON sessions(created_at);
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str) -> None:
        """Open (and if needed create) the database.

        Args:
            path: Path to the SQLite file, or ":memory:"

        Raises:
            SessionStoreError: If the database cannot be opened.
        """
        self.path = Path(path)
        self._lock = threading.Lock()
        try:
            self.conn = sqlite3.connect(str(path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript(self.SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise SessionStoreError("open", str(e)) from e
        logger.debug(f"Session database initialized at {self.path}")

    def store_session(self, session: AnalysisSession) -> None:
        try:
            with self._lock:
                self.conn.execute(
                    """
                    INSERT OR REPLACE INTO sessions
                    (session_id, title, description, url, headings,
                     original_content, summary, created_at, channels)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session.session_id,
                        session.title,
                        session.description,
                        session.url,
                        json.dumps(session.headings, ensure_ascii=False),
                        session.original_content,
                        session.summary,
                        session.created_at.isoformat(),
                        channels_to_json(session.channels),
                    ),
                )
                self.conn.commit()
        except sqlite3.Error as e:
            raise SessionStoreError("store", str(e), session.session_id) from e
        logger.info(f"Stored session {session.session_id} in {self.path}")

    def get_session(self, session_id: str) -> AnalysisSession | None:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT * FROM sessions WHERE session_id = ?", (session_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise SessionStoreError("get", str(e), session_id) from e
        return self._row_to_session(row) if row else None

    def list_sessions(self) -> list[AnalysisSession]:
        """Return every stored session, newest first."""
        try:
            with self._lock:
                rows = self.conn.execute(
                    "SELECT * FROM sessions ORDER BY created_at DESC"
                ).fetchall()
        except sqlite3.Error as e:
            raise SessionStoreError("list", str(e)) from e
        return [self._row_to_session(row) for row in rows]

    def stats(self) -> dict[str, Any]:
        return _collect_stats(self.list_sessions(), self.IMPLEMENTATION)

    def _row_to_session(self, row: sqlite3.Row) -> AnalysisSession:
        try:
            return AnalysisSession(
                session_id=row["session_id"],
                original_content=row["original_content"],
                title=row["title"],
                description=row["description"],
                url=row["url"],
                headings=json.loads(row["headings"]),
                summary=row["summary"],
                created_at=datetime.fromisoformat(row["created_at"]),
                channels=channels_from_json(row["channels"]),
            )
        except (KeyError, ValueError) as e:
            raise SessionStoreError("decode", str(e), row["session_id"]) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()

    def __enter__(self) -> "SQLiteSessionStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_session_store(settings: Any) -> SessionStore:
    """Build the store selected by ``settings.session_store``.

    Raises:
        ValueError: If the store type is not recognized.
    """
    if settings.session_store == "memory":
        return InMemorySessionStore(max_sessions=settings.max_sessions)
    if settings.session_store == "sqlite":
        return SQLiteSessionStore(settings.database_path)
    raise ValueError(f"Unknown session store type: {settings.session_store}")
