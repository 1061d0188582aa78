"""Profile and reporting hierarchy repository."""

from __future__ import annotations

from typing import Any

from agency_portal.models.profile import ProfileCreate
from agency_portal.repositories.db_pool import ThreadLocalConnection

_COLUMNS = "id, first_name, last_name, email, role_code, created_at, last_submission_at"


class ProfileRepository:
    """Handles profiles and the AP→AL→MP reporting links."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def create_profile(self, payload: ProfileCreate) -> int:
        if payload.created_at is not None:
            cursor = self._pool.execute(
                """
                INSERT INTO profiles (first_name, last_name, email, role_code, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    payload.first_name,
                    payload.last_name,
                    payload.email,
                    payload.role_code,
                    payload.created_at.isoformat(timespec="seconds"),
                ),
            )
        else:
            cursor = self._pool.execute(
                """
                INSERT INTO profiles (first_name, last_name, email, role_code)
                VALUES (?, ?, ?, ?)
                """,
                (payload.first_name, payload.last_name, payload.email, payload.role_code),
            )
        return int(cursor.lastrowid)

    def get_profile(self, profile_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(f"SELECT {_COLUMNS} FROM profiles WHERE id = ?", (profile_id,))
        return dict(row) if row else None

    def find_by_email(self, email: str) -> dict[str, Any] | None:
        """Case-insensitive e-mail lookup."""
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM profiles WHERE email = ? COLLATE NOCASE LIMIT 1",
            (email.strip(),),
        )
        return dict(row) if row else None

    def list_profiles(self, role_code: str | None = None) -> list[dict[str, Any]]:
        if role_code:
            rows = self._pool.fetchall(
                f"SELECT {_COLUMNS} FROM profiles WHERE role_code = ? ORDER BY id",
                (role_code,),
            )
        else:
            rows = self._pool.fetchall(f"SELECT {_COLUMNS} FROM profiles ORDER BY id")
        return [dict(row) for row in rows]

    def touch_last_submission(self, profile_id: int, timestamp: str) -> int:
        cursor = self._pool.execute(
            "UPDATE profiles SET last_submission_at = ? WHERE id = ?",
            (timestamp, profile_id),
        )
        return cursor.rowcount

    def deactivate_links(self, user_id: int) -> None:
        self._pool.execute(
            "UPDATE user_hierarchy SET is_active = 0 WHERE user_id = ? AND is_active = 1",
            (user_id,),
        )

    def add_link(self, user_id: int, report_to_id: int, assigned_at: str) -> int:
        cursor = self._pool.execute(
            """
            INSERT INTO user_hierarchy (user_id, report_to_id, is_active, assigned_at)
            VALUES (?, ?, 1, ?)
            """,
            (user_id, report_to_id, assigned_at),
        )
        return int(cursor.lastrowid)

    def subordinate_ids(self, report_to_id: int) -> list[int]:
        rows = self._pool.fetchall(
            """
            SELECT user_id
            FROM user_hierarchy
            WHERE report_to_id = ? AND is_active = 1
            ORDER BY user_id
            """,
            (report_to_id,),
        )
        return [int(row["user_id"]) for row in rows]

    def supervisor_of(self, user_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(
            """
            SELECT p.id, p.first_name, p.last_name
            FROM user_hierarchy h
            JOIN profiles p ON p.id = h.report_to_id
            WHERE h.user_id = ? AND h.is_active = 1
            ORDER BY h.id DESC
            LIMIT 1
            """,
            (user_id,),
        )
        return dict(row) if row else None
