"""Audit trail for serial, submission, payment and profile events."""

from __future__ import annotations

import json
from typing import Any

from agency_portal.repositories.db_pool import ThreadLocalConnection

_ENTRY_COLUMNS = "id, action, entity, entity_id, detail, created_at"


class AuditRepository:
    """Append-only business event log with a retention sweep."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def record(
        self,
        action: str,
        entity: str,
        entity_id: int | None,
        detail: dict[str, Any],
    ) -> int:
        """Store one event; ``detail`` is kept as JSON."""
        cursor = self._pool.execute(
            "INSERT INTO audit_logs (action, entity, entity_id, detail) VALUES (?, ?, ?, ?)",
            (action, entity, entity_id, json.dumps(detail, ensure_ascii=False, default=str)),
        )
        return int(cursor.lastrowid)

    def cleanup_old_logs(self, retention_days: int) -> int:
        """Delete events older than the retention window; returns the number removed."""
        cursor = self._pool.execute(
            "DELETE FROM audit_logs WHERE created_at < datetime('now', ?)",
            (f"-{retention_days} days",),
        )
        return cursor.rowcount

    def list_logs(
        self,
        action: str | None = None,
        entity: str | None = None,
        entity_id: int | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Newest events first, with ``detail`` decoded."""
        filters = {"action": action, "entity": entity, "entity_id": entity_id}
        clauses = [f"{column} = ?" for column, value in filters.items() if value is not None]
        params = [value for value in filters.values() if value is not None]
        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        rows = self._pool.fetchall(
            f"SELECT {_ENTRY_COLUMNS} FROM audit_logs {where_sql} ORDER BY id DESC LIMIT ?",
            (*params, limit),
        )
        entries = []
        for row in rows:
            entry = dict(row)
            entry["detail"] = json.loads(entry["detail"]) if entry["detail"] else {}
            entries.append(entry)
        return entries
