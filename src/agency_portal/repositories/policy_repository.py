"""Policy definition repository."""

from __future__ import annotations

import json
from typing import Any

from agency_portal.models.policy import PolicyCreate
from agency_portal.repositories.db_pool import ThreadLocalConnection

_COLUMNS = "policy_id, policy_name, policy_type, form_type, request_type, agency, requirements, active_status"


def _to_dict(row: Any) -> dict[str, Any]:
    data = dict(row)
    data["requirements"] = json.loads(data.get("requirements") or "[]")
    data["active_status"] = bool(data["active_status"])
    return data


class PolicyRepository:
    """Handles policy persistence."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def create_policy(self, payload: PolicyCreate) -> int:
        cursor = self._pool.execute(
            """
            INSERT INTO policies (
                policy_name,
                policy_type,
                form_type,
                request_type,
                agency,
                requirements,
                active_status
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                payload.policy_name,
                payload.policy_name,
                payload.form_type,
                payload.request_type,
                payload.agency,
                json.dumps(payload.requirements, ensure_ascii=False),
                int(payload.active_status),
            ),
        )
        return int(cursor.lastrowid)

    def get_policy(self, policy_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(f"SELECT {_COLUMNS} FROM policies WHERE policy_id = ?", (policy_id,))
        return _to_dict(row) if row else None

    def get_by_type(self, policy_type: str) -> dict[str, Any] | None:
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM policies WHERE policy_type = ? LIMIT 1",
            (policy_type,),
        )
        return _to_dict(row) if row else None

    def list_policies(self) -> list[dict[str, Any]]:
        rows = self._pool.fetchall(f"SELECT {_COLUMNS} FROM policies ORDER BY policy_name")
        return [_to_dict(row) for row in rows]

    def list_active(self) -> list[dict[str, Any]]:
        rows = self._pool.fetchall(
            f"SELECT {_COLUMNS} FROM policies WHERE active_status = 1 ORDER BY policy_name"
        )
        return [_to_dict(row) for row in rows]

    def set_active(self, policy_id: int, active: bool) -> int:
        cursor = self._pool.execute(
            "UPDATE policies SET active_status = ? WHERE policy_id = ?",
            (int(active), policy_id),
        )
        return cursor.rowcount
