"""Payment history repository (append-only)."""

from __future__ import annotations

from typing import Any

from agency_portal.repositories.db_pool import ThreadLocalConnection


class PaymentRepository:
    """Appends and reads payment history entries."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def add_entry(self, submission_id: int, amount: str, period_covered: str | None, payment_date: str) -> int:
        cursor = self._pool.execute(
            """
            INSERT INTO payment_history (sub_id, amount, period_covered, payment_date)
            VALUES (?, ?, ?, ?)
            """,
            (submission_id, amount, period_covered, payment_date),
        )
        return int(cursor.lastrowid)

    def list_entries(self, submission_id: int) -> list[dict[str, Any]]:
        rows = self._pool.fetchall(
            """
            SELECT id, sub_id, amount, period_covered, payment_date
            FROM payment_history
            WHERE sub_id = ?
            ORDER BY id
            """,
            (submission_id,),
        )
        return [dict(row) for row in rows]
