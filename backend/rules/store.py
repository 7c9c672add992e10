"""SQLite-backed rule storage.

Rules are persisted with their conditions and actions as JSON text. Every
mutation is recorded in ``rule_audit_log`` so the admin UI can show who
changed what, and when.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator, Mapping
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import config

from .exceptions import RuleNotFoundError, RuleStoreError
from .models import RuleRecord, RuleType
from .priorities import suggest_priority

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"

UPDATABLE_FIELDS = (
    "coverage_type_id",
    "question_id",
    "rule_type",
    "name",
    "description",
    "conditions",
    "actions",
    "priority",
    "is_active",
    "error_message",
)

RULE_COLUMNS = (
    "id, coverage_type_id, question_id, rule_type, name, description, conditions, "
    "actions, priority, is_active, error_message, created_at, updated_at"
)


class RuleRepository(Protocol):
    """Anything able to hand the engine the active rules of a coverage type."""

    def list_active_rules(self, coverage_type_id: str) -> list[RuleRecord]: ...


class RuleAuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    DELETED = "deleted"
    DUPLICATED = "duplicated"
    REPRIORITIZED = "reprioritized"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_json(value: Any) -> str:
    if value is None:
        return "[]"
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _decode_json(text: str | None) -> Any:
    """Decode a JSON column; undecodable text is returned as-is for the parser."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text


def _row_to_record(row: sqlite3.Row) -> RuleRecord:
    return RuleRecord(
        id=row["id"],
        coverage_type_id=row["coverage_type_id"],
        question_id=row["question_id"],
        rule_type=row["rule_type"],
        name=row["name"],
        description=row["description"],
        conditions=_decode_json(row["conditions"]),
        actions=_decode_json(row["actions"]),
        priority=row["priority"],
        is_active=bool(row["is_active"]),
        error_message=row["error_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class RuleStore:
    """Rule CRUD over a SQLite database file."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self.init_schema()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                conn.row_factory = sqlite3.Row
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error(f"Rule store operation failed: {e}", exc_info=True)
            raise RuleStoreError(f"Rule store operation failed: {e}") from e

    def init_schema(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rules (
                    id TEXT PRIMARY KEY,
                    coverage_type_id TEXT NOT NULL,
                    question_id TEXT,
                    rule_type TEXT NOT NULL DEFAULT 'conditional',
                    name TEXT NOT NULL,
                    description TEXT,
                    conditions TEXT NOT NULL DEFAULT '[]',
                    actions TEXT NOT NULL DEFAULT '[]',
                    priority INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    error_message TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rule_audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    rule_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    changes TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_rules_scope "
                "ON rules(coverage_type_id, is_active, priority DESC)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_rule_audit_rule_id "
                "ON rule_audit_log(rule_id, created_at DESC)"
            )

    def _audit(
        self,
        conn: sqlite3.Connection,
        rule_id: str,
        action: RuleAuditAction,
        changes: dict[str, Any] | None = None,
    ) -> None:
        conn.execute(
            "INSERT INTO rule_audit_log (rule_id, action, changes, created_at) "
            "VALUES (?, ?, ?, ?)",
            (rule_id, action.value, json.dumps(changes, default=str) if changes else None, _now()),
        )

    def _fetch(self, conn: sqlite3.Connection, rule_id: str) -> RuleRecord:
        row = conn.execute(
            f"SELECT {RULE_COLUMNS} FROM rules WHERE id = ?", (rule_id,)
        ).fetchone()
        if row is None:
            raise RuleNotFoundError(rule_id)
        return _row_to_record(row)

    # Engine interface

    def list_active_rules(self, coverage_type_id: str) -> list[RuleRecord]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT {RULE_COLUMNS} FROM rules "
                "WHERE coverage_type_id = ? AND is_active = 1 "
                "ORDER BY priority DESC, created_at ASC",
                (coverage_type_id,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    # CRUD

    def create_rule(self, data: Mapping[str, Any]) -> RuleRecord:
        rule_type = data.get("rule_type") or RuleType.CONDITIONAL.value
        priority = data.get("priority")
        if priority is None:
            priority = suggest_priority(rule_type)
        now = _now()
        rule_id = data.get("id") or str(uuid.uuid4())
        values = (
            rule_id,
            data["coverage_type_id"],
            data.get("question_id"),
            rule_type,
            data["name"],
            data.get("description"),
            _encode_json(data.get("conditions")),
            _encode_json(data.get("actions")),
            int(priority),
            1 if data.get("is_active", True) else 0,
            data.get("error_message"),
            now,
            now,
        )
        with self._connection() as conn:
            conn.execute(
                f"INSERT INTO rules ({RULE_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                values,
            )
            self._audit(conn, rule_id, RuleAuditAction.CREATED, {"name": data["name"]})
            record = self._fetch(conn, rule_id)
        logger.info(f"Created rule {rule_id} for coverage type {record.coverage_type_id}")
        return record

    def get_rule(self, rule_id: str) -> RuleRecord:
        with self._connection() as conn:
            return self._fetch(conn, rule_id)

    def update_rule(self, rule_id: str, changes: Mapping[str, Any]) -> RuleRecord:
        """Apply a partial update; unknown keys are ignored."""
        updates = {key: changes[key] for key in UPDATABLE_FIELDS if key in changes}
        with self._connection() as conn:
            self._fetch(conn, rule_id)
            if not updates:
                return self._fetch(conn, rule_id)

            columns = []
            params: list[Any] = []
            for key, value in updates.items():
                if key in ("conditions", "actions"):
                    value = _encode_json(value)
                elif key == "is_active":
                    value = 1 if value else 0
                columns.append(f"{key} = ?")
                params.append(value)
            columns.append("updated_at = ?")
            params.extend([_now(), rule_id])

            conn.execute(f"UPDATE rules SET {', '.join(columns)} WHERE id = ?", params)
            self._audit(conn, rule_id, RuleAuditAction.UPDATED, {"fields": sorted(updates)})
            return self._fetch(conn, rule_id)

    def delete_rule(self, rule_id: str) -> None:
        with self._connection() as conn:
            record = self._fetch(conn, rule_id)
            conn.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
            self._audit(conn, rule_id, RuleAuditAction.DELETED, {"name": record.name})
        logger.info(f"Deleted rule {rule_id}")

    def set_active(self, rule_id: str, is_active: bool | None = None) -> RuleRecord:
        """Activate or deactivate a rule; ``None`` toggles the current state."""
        with self._connection() as conn:
            record = self._fetch(conn, rule_id)
            target = (not record.is_active) if is_active is None else bool(is_active)
            conn.execute(
                "UPDATE rules SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if target else 0, _now(), rule_id),
            )
            action = RuleAuditAction.ACTIVATED if target else RuleAuditAction.DEACTIVATED
            self._audit(conn, rule_id, action)
            return self._fetch(conn, rule_id)

    def duplicate_rule(self, rule_id: str) -> RuleRecord:
        """Copy a rule under a new id; the copy starts inactive."""
        with self._connection() as conn:
            source = self._fetch(conn, rule_id)
            new_id = str(uuid.uuid4())
            now = _now()
            conn.execute(
                f"INSERT INTO rules ({RULE_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?)",
                (
                    new_id,
                    source.coverage_type_id,
                    source.question_id,
                    source.rule_type,
                    f"{source.name}{COPY_SUFFIX}",
                    source.description,
                    _encode_json(source.conditions),
                    _encode_json(source.actions),
                    source.priority,
                    source.error_message,
                    now,
                    now,
                ),
            )
            self._audit(conn, new_id, RuleAuditAction.DUPLICATED, {"source_rule_id": rule_id})
            return self._fetch(conn, new_id)

    # Queries

    def list_rules(
        self,
        coverage_type_id: str | None = None,
        rule_type: str | None = None,
        active_only: bool = False,
    ) -> list[RuleRecord]:
        clauses = []
        params: list[Any] = []
        if coverage_type_id:
            clauses.append("coverage_type_id = ?")
            params.append(coverage_type_id)
        if rule_type:
            clauses.append("rule_type = ?")
            params.append(rule_type)
        if active_only:
            clauses.append("is_active = 1")
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT {RULE_COLUMNS} FROM rules {where}"
                "ORDER BY priority DESC, created_at ASC",
                params,
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def search_rules(
        self, query: str, coverage_type_id: str | None = None, limit: int = 50
    ) -> list[RuleRecord]:
        """Case-insensitive search over rule names and descriptions."""
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        sql = (
            f"SELECT {RULE_COLUMNS} FROM rules "
            "WHERE (name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')"
        )
        params: list[Any] = [pattern, pattern]
        if coverage_type_id:
            sql += " AND coverage_type_id = ?"
            params.append(coverage_type_id)
        sql += " ORDER BY priority DESC, name ASC LIMIT ?"
        params.append(limit)
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def bulk_update_priorities(self, updates: Iterable[tuple[str, int]]) -> int:
        """Set several priorities in one transaction.

        Raises:
            RuleNotFoundError: if any id is unknown; no priority is changed.
        """
        count = 0
        with self._connection() as conn:
            for rule_id, priority in updates:
                record = self._fetch(conn, rule_id)
                conn.execute(
                    "UPDATE rules SET priority = ?, updated_at = ? WHERE id = ?",
                    (int(priority), _now(), rule_id),
                )
                self._audit(
                    conn,
                    rule_id,
                    RuleAuditAction.REPRIORITIZED,
                    {"from": record.priority, "to": int(priority)},
                )
                count += 1
        logger.info(f"Updated priorities of {count} rules")
        return count

    def get_stats(self, coverage_type_id: str | None = None) -> dict[str, Any]:
        where = "WHERE coverage_type_id = ?" if coverage_type_id else ""
        params = (coverage_type_id,) if coverage_type_id else ()
        with self._connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(is_active), 0) AS active, "
                f"MAX(priority) AS highest, MIN(priority) AS lowest FROM rules {where}",
                params,
            ).fetchone()
            by_type = {
                type_row["rule_type"]: type_row["count"]
                for type_row in conn.execute(
                    f"SELECT rule_type, COUNT(*) AS count FROM rules {where} "
                    "GROUP BY rule_type ORDER BY rule_type",
                    params,
                )
            }
        total = row["total"] if row else 0
        active = row["active"] if row else 0
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "by_type": by_type,
            "highest_priority": row["highest"] if row else None,
            "lowest_priority": row["lowest"] if row else None,
        }

    def get_history(self, rule_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """Audit entries for a rule, newest first. Deleted rules keep their history."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, rule_id, action, changes, created_at FROM rule_audit_log "
                "WHERE rule_id = ? ORDER BY id DESC LIMIT ?",
                (rule_id, limit),
            ).fetchall()
        return [
            {
                "id": row["id"],
                "rule_id": row["rule_id"],
                "action": row["action"],
                "changes": _decode_json(row["changes"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]


@lru_cache(maxsize=4)
def _store_for(db_path: str) -> RuleStore:
    return RuleStore(db_path)


def get_default_store() -> RuleStore:
    """The store at the configured ``DB_PATH``."""
    return _store_for(config.DB_PATH)
