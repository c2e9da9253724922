"""SQLite storage for categories and tasks."""

import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from db import wal_connect

from .models import TASK_TYPES, Category, MultilingualText, Task

logger = structlog.get_logger().bind(source="content_storage")

# Tables that carry a deleted_at column and may be purged
PURGEABLE_TABLES = ("tasks", "categories")


def _to_db(dt: Optional[datetime]) -> Optional[str]:
    """Normalize to a UTC ISO string so lexical order matches time order."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw) if raw else None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_table(table: str) -> str:
    if table not in PURGEABLE_TABLES:
        raise ValueError(f"Unknown table: {table}. Must be one of {PURGEABLE_TABLES}")
    return table


class ContentStorage:
    """SQLite storage for truth/dare content.

    Rows are soft-deleted by setting ``deleted_at``; the cleanup job purges them
    for good once they age past the retention window.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self, row_factory: bool = True) -> sqlite3.Connection:
        return wal_connect(self.db_path, row_factory=row_factory)

    def _init_db(self):
        """Initialize database schema."""
        with closing(self._connect()) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    emoji TEXT DEFAULT '📝',
                    age_group TEXT NOT NULL DEFAULT 'adults',
                    label TEXT NOT NULL,
                    requires_consent INTEGER DEFAULT 0,
                    is_active INTEGER DEFAULT 1,
                    sort_order INTEGER DEFAULT 0,
                    created_at TIMESTAMP,
                    updated_at TIMESTAMP,
                    deleted_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    category_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    text TEXT NOT NULL,
                    hint TEXT,
                    min_age INTEGER DEFAULT 0,
                    requires_consent INTEGER DEFAULT 0,
                    is_active INTEGER DEFAULT 1,
                    created_at TIMESTAMP,
                    updated_at TIMESTAMP,
                    deleted_at TIMESTAMP
                )
            """)
            for ddl in (
                "CREATE INDEX IF NOT EXISTS idx_categories_deleted ON categories(deleted_at)",
                "CREATE INDEX IF NOT EXISTS idx_categories_active ON categories(is_active)",
                "CREATE INDEX IF NOT EXISTS idx_task_category ON tasks(category_id)",
                "CREATE INDEX IF NOT EXISTS idx_task_deleted ON tasks(deleted_at)",
            ):
                conn.execute(ddl)

    # --- categories ---

    def create_category(
        self,
        label: dict,
        emoji: str = "📝",
        age_group: str = "adults",
        requires_consent: bool = False,
        is_active: bool = True,
        sort_order: int = 0,
        category_id: Optional[str] = None,
    ) -> Category:
        now = _now()
        category = Category(
            id=category_id or str(uuid.uuid4()),
            label=MultilingualText(label),
            emoji=emoji,
            age_group=age_group,
            requires_consent=requires_consent,
            is_active=is_active,
            sort_order=sort_order,
            created_at=now,
            updated_at=now,
        )
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO categories (id, emoji, age_group, label, requires_consent,
                    is_active, sort_order, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    category.id,
                    category.emoji,
                    category.age_group,
                    category.label.to_json(),
                    int(category.requires_consent),
                    int(category.is_active),
                    category.sort_order,
                    _to_db(now),
                    _to_db(now),
                ),
            )
        return category

    def get_category(self, category_id: str, include_deleted: bool = False) -> Optional[Category]:
        query = "SELECT * FROM categories WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        with closing(self._connect()) as conn:
            row = conn.execute(query, (category_id,)).fetchone()
        return self._row_to_category(row) if row else None

    def list_categories(self, active_only: bool = False) -> list[Category]:
        """List non-deleted categories, ordered the way the game shows them."""
        query = "SELECT * FROM categories WHERE deleted_at IS NULL"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY sort_order ASC, created_at DESC"
        with closing(self._connect()) as conn:
            rows = conn.execute(query).fetchall()
        return [self._row_to_category(r) for r in rows]

    def soft_delete_category(self, category_id: str, at: Optional[datetime] = None) -> bool:
        return self._soft_delete("categories", category_id, at)

    # --- tasks ---

    def create_task(
        self,
        category_id: str,
        task_type: str,
        text: dict,
        min_age: int = 0,
        requires_consent: bool = False,
        is_active: bool = True,
        hint: Optional[dict] = None,
    ) -> Task:
        if task_type not in TASK_TYPES:
            raise ValueError(f"Invalid task type: {task_type}. Must be one of {TASK_TYPES}")

        now = _now()
        task = Task(
            id=str(uuid.uuid4()),
            category_id=category_id,
            type=task_type,
            text=MultilingualText(text),
            hint=MultilingualText(hint or {}),
            min_age=min_age,
            requires_consent=requires_consent,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO tasks (id, category_id, type, text, hint, min_age,
                    requires_consent, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.category_id,
                    task.type,
                    task.text.to_json(),
                    task.hint.to_json() if task.hint else None,
                    task.min_age,
                    int(task.requires_consent),
                    int(task.is_active),
                    _to_db(now),
                    _to_db(now),
                ),
            )
        return task

    def list_tasks(self, category_id: Optional[str] = None) -> list[Task]:
        query = "SELECT * FROM tasks WHERE deleted_at IS NULL"
        params: tuple = ()
        if category_id:
            query += " AND category_id = ?"
            params = (category_id,)
        query += " ORDER BY created_at ASC"
        with closing(self._connect()) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(r) for r in rows]

    def count_tasks(self, category_id: Optional[str] = None, include_deleted: bool = False) -> int:
        clauses = []
        params: list = []
        if not include_deleted:
            clauses.append("deleted_at IS NULL")
        if category_id:
            clauses.append("category_id = ?")
            params.append(category_id)
        query = "SELECT COUNT(*) FROM tasks"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        with closing(self._connect()) as conn:
            return conn.execute(query, params).fetchone()[0]

    def soft_delete_task(self, task_id: str, at: Optional[datetime] = None) -> bool:
        return self._soft_delete("tasks", task_id, at)

    # --- retention ---

    def count_purgeable(self, table: str, cutoff: datetime) -> int:
        """Count soft-deleted rows older than cutoff."""
        table = _check_table(table)
        with closing(self._connect()) as conn:
            return conn.execute(
                f"SELECT COUNT(*) FROM {table} WHERE deleted_at IS NOT NULL AND deleted_at < ?",
                (_to_db(cutoff),),
            ).fetchone()[0]

    def purge_deleted(self, table: str, cutoff: datetime) -> int:
        """Permanently delete soft-deleted rows older than cutoff. Returns rows removed."""
        table = _check_table(table)
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE deleted_at IS NOT NULL AND deleted_at < ?",
                (_to_db(cutoff),),
            )
            deleted = cursor.rowcount
        logger.debug("purge_deleted", table=table, deleted=deleted)
        return deleted

    def database_size(self) -> int:
        """Database size in bytes as SQLite sees it (page_count * page_size)."""
        with closing(self._connect(row_factory=False)) as conn:
            row = conn.execute(
                "SELECT page_count * page_size FROM pragma_page_count(), pragma_page_size()"
            ).fetchone()
        return row[0] if row else 0

    def vacuum(self) -> None:
        """Rebuild the database file to reclaim space from purged rows."""
        with closing(self._connect(row_factory=False)) as conn:
            # VACUUM cannot run inside a transaction
            conn.isolation_level = None
            conn.execute("VACUUM")

    # --- helpers ---

    def _soft_delete(self, table: str, row_id: str, at: Optional[datetime]) -> bool:
        when = _to_db(at or _now())
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                f"UPDATE {table} SET deleted_at = ?, updated_at = ? "
                "WHERE id = ? AND deleted_at IS NULL",
                (when, _to_db(_now()), row_id),
            )
            return cursor.rowcount > 0

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(
            id=row["id"],
            label=MultilingualText.from_json(row["label"]),
            emoji=row["emoji"],
            age_group=row["age_group"] or "",
            requires_consent=bool(row["requires_consent"]),
            is_active=bool(row["is_active"]),
            sort_order=row["sort_order"],
            created_at=_from_db(row["created_at"]),
            updated_at=_from_db(row["updated_at"]),
            deleted_at=_from_db(row["deleted_at"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            category_id=row["category_id"],
            type=row["type"],
            text=MultilingualText.from_json(row["text"]),
            hint=MultilingualText.from_json(row["hint"]),
            min_age=row["min_age"],
            requires_consent=bool(row["requires_consent"]),
            is_active=bool(row["is_active"]),
            created_at=_from_db(row["created_at"]),
            updated_at=_from_db(row["updated_at"]),
            deleted_at=_from_db(row["deleted_at"]),
        )
