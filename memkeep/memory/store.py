"""
Local record table backed by SQLite.

The local table is the source of truth for fast reads and works without
the remote mirror. Storage errors (disk full, corruption) propagate as
sqlite3.Error; there is no fallback for this store.
"""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Set

from memkeep.persist.clock import parse_iso, to_iso, utcnow
from .schemas import (
    DateRange,
    GLOBAL_SCOPE,
    MemoryRecord,
    MemorySource,
    MemoryStats,
)

DEFAULT_AGENT = "assistant"


class RecordStore:
    """
    Persistent storage for memory records.

    Table "memories" with columns id, content, scope, tags (JSON array),
    source_agent, source_action, created_at, updated_at (ISO-8601),
    indexed on scope and created_at.

    Features:
    - Append and delete by id (no update path)
    - Substring search, conjunctive list filters, date-range queries
    - Aggregate stats for health checks
    """

    def __init__(self, db_path: Path, clock: Callable[[], datetime] = utcnow):
        """
        Initialize record store.

        Args:
            db_path: Path to SQLite database file
            clock: Time source for created_at (tests pin it)
        """
        self.db_path = Path(db_path)
        self.clock = clock
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,  # API handlers run on worker threads
            timeout=10.0,
        )
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        self._init_tables()

    def _init_tables(self) -> None:
        """Create the record table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                scope TEXT NOT NULL DEFAULT 'global',
                tags TEXT NOT NULL DEFAULT '[]',
                source_agent TEXT NOT NULL DEFAULT 'assistant',
                source_action TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_scope ON memories(scope)")
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_created ON memories(created_at)")
        self._conn.commit()

    def add(
        self,
        content: str,
        scope: str = GLOBAL_SCOPE,
        tags: Optional[List[str]] = None,
        source: Optional[MemorySource] = None,
    ) -> MemoryRecord:
        """
        Create and persist a new memory record.

        Args:
            content: Memory text
            scope: "global" or "project:<name>"
            tags: Optional ordered tags
            source: Provenance (defaults to agent "assistant")

        Returns:
            The stored MemoryRecord

        Raises:
            ValueError: If scope is empty
        """
        if not scope or not scope.strip():
            raise ValueError("scope must be non-empty")

        source = source or MemorySource(agent=DEFAULT_AGENT)
        now = self.clock()
        record = MemoryRecord(
            id=str(uuid.uuid4()),
            content=content,
            scope=scope,
            tags=list(tags or []),
            source=source,
            created_at=now,
            updated_at=now,
        )

        self._conn.execute(
            """
            INSERT INTO memories
                (id, content, scope, tags, source_agent, source_action, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.content,
                record.scope,
                json.dumps(record.tags),
                source.agent,
                source.action,
                to_iso(now),
                to_iso(now),
            ),
        )
        self._conn.commit()

        # Round-trip through the row format so callers see stored precision
        return self.get(record.id)

    def get(self, record_id: str) -> Optional[MemoryRecord]:
        """Retrieve a record by id."""
        row = self._conn.execute(
            "SELECT * FROM memories WHERE id = ?", (record_id,)
        ).fetchone()
        return self._to_record(row) if row else None

    def search(
        self,
        query: str,
        scope: Optional[str] = None,
        limit: int = 10,
    ) -> List[MemoryRecord]:
        """
        Case-sensitive substring search over content, newest first.

        Args:
            query: Substring to find
            scope: Optional exact scope filter
            limit: Maximum results

        Returns:
            Matching records ordered by created_at descending
        """
        sql = "SELECT * FROM memories WHERE instr(content, ?) > 0"
        params: list = [query]

        if scope:
            sql += " AND scope = ?"
            params.append(scope)

        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        rows = self._conn.execute(sql, params).fetchall()
        return [self._to_record(r) for r in rows]

    def list(
        self,
        scope: Optional[str] = None,
        tags: Optional[List[str]] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[MemoryRecord]:
        """
        List records matching every given criterion, newest first.

        Args:
            scope: Exact scope
            tags: Each tag must be present (AND logic)
            since: created_at >= since
            limit: Maximum results

        Returns:
            List of MemoryRecord objects
        """
        sql = "SELECT * FROM memories WHERE 1=1"
        params: list = []

        if scope:
            sql += " AND scope = ?"
            params.append(scope)

        for tag in tags or []:
            sql += " AND EXISTS (SELECT 1 FROM json_each(memories.tags) WHERE json_each.value = ?)"
            params.append(tag)

        if since is not None:
            sql += " AND created_at >= ?"
            params.append(to_iso(since))

        sql += " ORDER BY created_at DESC, rowid DESC"

        if limit:
            sql += " LIMIT ?"
            params.append(limit)

        rows = self._conn.execute(sql, params).fetchall()
        return [self._to_record(r) for r in rows]

    def delete(self, record_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record existed and was removed, False otherwise
        """
        cursor = self._conn.execute("DELETE FROM memories WHERE id = ?", (record_id,))
        self._conn.commit()
        return cursor.rowcount > 0

    def get_by_date_range(
        self,
        scope: str,
        start: datetime,
        end: datetime,
    ) -> List[MemoryRecord]:
        """Records in a scope with start <= created_at <= end, newest first."""
        rows = self._conn.execute(
            """
            SELECT * FROM memories
            WHERE scope = ?
              AND created_at >= ?
              AND created_at <= ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (scope, to_iso(start), to_iso(end)),
        ).fetchall()
        return [self._to_record(r) for r in rows]

    def count_since(self, scope: str, since: datetime) -> int:
        """Count records added to a scope since a given time."""
        row = self._conn.execute(
            "SELECT COUNT(*) FROM memories WHERE scope = ? AND created_at >= ?",
            (scope, to_iso(since)),
        ).fetchone()
        return row[0]

    def get_active_scopes(self) -> Set[str]:
        """All scopes that hold at least one record."""
        rows = self._conn.execute("SELECT DISTINCT scope FROM memories").fetchall()
        return {r["scope"] for r in rows}

    def get_stats(self) -> MemoryStats:
        """
        Get statistics for health checks.

        Returns:
            MemoryStats with total, by_scope, by_tag and date range (days)
        """
        total = self._conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]

        by_scope = {
            r["scope"]: r["n"]
            for r in self._conn.execute(
                "SELECT scope, COUNT(*) AS n FROM memories GROUP BY scope"
            )
        }

        by_tag: dict = {}
        for r in self._conn.execute("SELECT tags FROM memories"):
            try:
                tags = json.loads(r["tags"])
            except json.JSONDecodeError:
                continue
            for tag in tags:
                by_tag[tag] = by_tag.get(tag, 0) + 1

        bounds = self._conn.execute(
            "SELECT MIN(created_at), MAX(created_at) FROM memories"
        ).fetchone()
        oldest, newest = bounds[0], bounds[1]

        return MemoryStats(
            total=total,
            by_scope=by_scope,
            by_tag=by_tag,
            date_range=DateRange(
                oldest=oldest.split("T")[0] if oldest else None,
                newest=newest.split("T")[0] if newest else None,
            ),
        )

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def _to_record(row: sqlite3.Row) -> MemoryRecord:
        return MemoryRecord(
            id=row["id"],
            content=row["content"],
            scope=row["scope"],
            tags=json.loads(row["tags"]),
            source=MemorySource(agent=row["source_agent"], action=row["source_action"]),
            created_at=parse_iso(row["created_at"]),
            updated_at=parse_iso(row["updated_at"]),
        )
