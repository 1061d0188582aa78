"""Serial number repository."""

from __future__ import annotations

import sqlite3
from typing import Any

from agency_portal.repositories.db_pool import ThreadLocalConnection

_COLUMNS = "serial_id, serial_number, serial_type, is_issued, date"


class SerialRepository:
    """Handles serial number persistence."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def get_by_value(self, serial_number: str) -> dict[str, Any] | None:
        """Fetch one serial by its exact value."""
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM serial_numbers WHERE serial_number = ? LIMIT 1",
            (serial_number,),
        )
        return dict(row) if row else None

    def get_by_id(self, serial_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM serial_numbers WHERE serial_id = ?",
            (serial_id,),
        )
        return dict(row) if row else None

    def list_unissued_ids(self, serial_type: str, limit: int) -> list[int]:
        """Return candidate unissued serial ids of one type, oldest first."""
        rows = self._pool.fetchall(
            """
            SELECT serial_id
            FROM serial_numbers
            WHERE serial_type = ? AND is_issued = 0
            ORDER BY serial_id
            LIMIT ?
            """,
            (serial_type, limit),
        )
        return [int(row["serial_id"]) for row in rows]

    def claim(self, serial_id: int) -> bool:
        """Mark a serial issued only if it is still unissued; True when this call won."""
        cursor = self._pool.execute(
            """
            UPDATE serial_numbers
            SET is_issued = 1
            WHERE serial_id = ? AND is_issued = 0
            """,
            (serial_id,),
        )
        return cursor.rowcount == 1

    def mark_issued(self, serial_id: int) -> None:
        self._pool.execute(
            "UPDATE serial_numbers SET is_issued = 1 WHERE serial_id = ?",
            (serial_id,),
        )

    def create_serial(self, serial_number: str, serial_type: str, is_issued: bool, date: str) -> int | None:
        """Insert a serial and return its id, or None when the value already exists."""
        try:
            cursor = self._pool.execute(
                """
                INSERT INTO serial_numbers (serial_number, serial_type, is_issued, date)
                VALUES (?, ?, ?, ?)
                """,
                (serial_number, serial_type, int(is_issued), date),
            )
        except sqlite3.IntegrityError:
            return None
        return int(cursor.lastrowid)

    def rename(self, serial_id: int, old_value: str, new_value: str) -> int:
        """Overwrite a serial value in place, guarded on the value being replaced."""
        cursor = self._pool.execute(
            """
            UPDATE serial_numbers
            SET serial_number = ?
            WHERE serial_id = ? AND serial_number = ?
            """,
            (new_value, serial_id, old_value),
        )
        return cursor.rowcount

    def existing_values(self) -> set[str]:
        rows = self._pool.fetchall("SELECT serial_number FROM serial_numbers")
        return {row["serial_number"] for row in rows}

    def list_serials(self, serial_type: str | None = None) -> list[dict[str, Any]]:
        if serial_type:
            rows = self._pool.fetchall(
                f"SELECT {_COLUMNS} FROM serial_numbers WHERE serial_type = ? ORDER BY date DESC, serial_id DESC",
                (serial_type,),
            )
        else:
            rows = self._pool.fetchall(
                f"SELECT {_COLUMNS} FROM serial_numbers ORDER BY date DESC, serial_id DESC"
            )
        return [dict(row) for row in rows]

    def counts(self) -> dict[str, int]:
        row = self._pool.fetchone(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(CASE WHEN is_issued = 0 AND serial_type = 'Default' THEN 1 ELSE 0 END), 0)
                    AS unused_default,
                COALESCE(SUM(CASE WHEN is_issued = 0 AND serial_type = 'Allianz Well' THEN 1 ELSE 0 END), 0)
                    AS unused_allianz,
                COALESCE(SUM(CASE WHEN is_issued = 1 THEN 1 ELSE 0 END), 0) AS used_serials
            FROM serial_numbers
            """
        )
        return dict(row) if row else {"total": 0, "unused_default": 0, "unused_allianz": 0, "used_serials": 0}
