"""Submission repository with encrypted client e-mail."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from agency_portal.core.crypto import CryptoService, hash_email
from agency_portal.core.errors import ConflictRaceError
from agency_portal.repositories.db_pool import ThreadLocalConnection

_SELECT = """
    SELECT
        s.sub_id,
        s.profile_id,
        s.policy_id,
        s.serial_id,
        s.client_name,
        s.client_email_encrypted,
        s.client_email_hash,
        s.premium_paid,
        s.anp,
        s.mode_of_payment,
        s.submission_type,
        s.status,
        s.issued_at,
        s.date_issued,
        s.policy_date,
        s.next_payment_date,
        s.form_type,
        s.attachments,
        sn.serial_number,
        p.policy_type,
        p.policy_name,
        p.requirements,
        pr.first_name AS agent_first_name,
        pr.last_name AS agent_last_name,
        pr.last_submission_at AS agent_last_submission_at
    FROM submissions s
    JOIN policies p ON p.policy_id = s.policy_id
    LEFT JOIN serial_numbers sn ON sn.serial_id = s.serial_id
    LEFT JOIN profiles pr ON pr.id = s.profile_id
"""


class SubmissionRepository:
    """Handles submission persistence and retrieval."""

    def __init__(self, pool: ThreadLocalConnection, crypto_service: CryptoService):
        self._pool = pool
        self._crypto = crypto_service

    def _to_dict(self, row: sqlite3.Row) -> dict[str, Any]:
        data = dict(row)
        data["client_email"] = self._crypto.decrypt_field("client_email", data.pop("client_email_encrypted"))
        data["attachments"] = json.loads(data.get("attachments") or "[]")
        data["requirements"] = json.loads(data.get("requirements") or "[]")
        return data

    def create_submission(
        self,
        profile_id: int | None,
        policy_id: int,
        serial_id: int | None,
        client_name: str,
        client_email: str,
        premium_paid: str,
        anp: str,
        mode_of_payment: str,
        submission_type: str,
        issued_at: str,
        policy_date: str | None,
        next_payment_date: str | None,
    ) -> int:
        """Insert a Pending submission and return its id."""
        try:
            cursor = self._pool.execute(
                """
                INSERT INTO submissions (
                    profile_id,
                    policy_id,
                    serial_id,
                    client_name,
                    client_email_encrypted,
                    client_email_hash,
                    premium_paid,
                    anp,
                    mode_of_payment,
                    submission_type,
                    status,
                    issued_at,
                    policy_date,
                    next_payment_date,
                    attachments
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'Pending', ?, ?, ?, '[]')
                """,
                (
                    profile_id,
                    policy_id,
                    serial_id,
                    client_name,
                    self._crypto.encrypt_field("client_email", client_email),
                    hash_email(client_email) if client_email else None,
                    premium_paid,
                    anp,
                    mode_of_payment,
                    submission_type,
                    issued_at,
                    policy_date,
                    next_payment_date,
                ),
            )
        except sqlite3.IntegrityError as error:
            if "submissions.serial_id" not in str(error):
                raise
            raise ConflictRaceError("Serial number is already attached to a submission.") from error
        return int(cursor.lastrowid)

    def transaction(self):
        """Group the following writes into one commit."""
        return self._pool.transaction()

    def get_submission(self, submission_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(f"{_SELECT} WHERE s.sub_id = ?", (submission_id,))
        return self._to_dict(row) if row else None

    def get_by_serial_id(self, serial_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(f"{_SELECT} WHERE s.serial_id = ? LIMIT 1", (serial_id,))
        return self._to_dict(row) if row else None

    def exists_for_serial(self, serial_id: int) -> bool:
        row = self._pool.fetchone("SELECT 1 FROM submissions WHERE serial_id = ? LIMIT 1", (serial_id,))
        return row is not None

    def list_submissions(
        self,
        profile_ids: list[int] | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        """List submissions newest first, optionally limited to some agents or a status."""
        where_clauses: list[str] = []
        params: list[Any] = []
        if profile_ids is not None:
            if not profile_ids:
                return []
            placeholders = ", ".join("?" for _ in profile_ids)
            where_clauses.append(f"s.profile_id IN ({placeholders})")
            params.extend(profile_ids)
        if status:
            where_clauses.append("s.status = ?")
            params.append(status)

        where_sql = ""
        if where_clauses:
            where_sql = "WHERE " + " AND ".join(where_clauses)

        rows = self._pool.fetchall(
            f"{_SELECT} {where_sql} ORDER BY s.issued_at DESC, s.sub_id DESC",
            tuple(params),
        )
        return [self._to_dict(row) for row in rows]

    def update_status(
        self,
        submission_id: int,
        status: str,
        date_issued: str | None,
        next_payment_date: str | None,
    ) -> int:
        """Set status; date_issued and next_payment_date are only filled when empty."""
        cursor = self._pool.execute(
            """
            UPDATE submissions
            SET status = ?,
                date_issued = COALESCE(date_issued, ?),
                next_payment_date = COALESCE(next_payment_date, ?)
            WHERE sub_id = ?
            """,
            (status, date_issued, next_payment_date, submission_id),
        )
        return cursor.rowcount

    def update_documents(
        self,
        submission_id: int,
        form_type: str | None,
        mode_of_payment: str | None,
        attachments: list[dict[str, Any]],
    ) -> int:
        cursor = self._pool.execute(
            """
            UPDATE submissions
            SET form_type = COALESCE(?, form_type),
                mode_of_payment = COALESCE(?, mode_of_payment),
                attachments = ?
            WHERE sub_id = ?
            """,
            (
                form_type,
                mode_of_payment,
                json.dumps(attachments, ensure_ascii=False),
                submission_id,
            ),
        )
        return cursor.rowcount

    def advance_payment_cycle(
        self,
        submission_id: int,
        paid_due_date: str | None,
        next_payment_date: str | None,
        date_issued: str | None,
    ) -> int:
        """Move the due date on only if it is still the one being paid; returns rows changed."""
        cursor = self._pool.execute(
            """
            UPDATE submissions
            SET next_payment_date = ?,
                date_issued = COALESCE(date_issued, ?)
            WHERE sub_id = ? AND next_payment_date IS ?
            """,
            (next_payment_date, date_issued, submission_id, paid_due_date),
        )
        return cursor.rowcount

    def reschedule(self, submission_id: int, next_payment_date: str | None) -> int:
        cursor = self._pool.execute(
            "UPDATE submissions SET next_payment_date = ? WHERE sub_id = ?",
            (next_payment_date, submission_id),
        )
        return cursor.rowcount
