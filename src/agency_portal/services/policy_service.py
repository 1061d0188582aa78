"""Policy definition service."""

from __future__ import annotations

import sqlite3

from agency_portal.core.errors import NotFoundError, ValidationFailure
from agency_portal.core.validation import validate_required_text
from agency_portal.models.policy import Policy, PolicyCreate
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.policy_repository import PolicyRepository


def _to_policy(row: dict) -> Policy:
    return Policy(
        policy_id=int(row["policy_id"]),
        policy_name=row["policy_name"],
        policy_type=row["policy_type"],
        form_type=row["form_type"] or "",
        request_type=row["request_type"] or "",
        agency=row["agency"],
        requirements=row["requirements"],
        active_status=row["active_status"],
    )


class PolicyService:
    """Coordinates policy use cases."""

    def __init__(self, policy_repo: PolicyRepository, audit_repo: AuditRepository):
        self._policy_repo = policy_repo
        self._audit_repo = audit_repo

    def create_policy(self, payload: PolicyCreate) -> Policy:
        """Create a policy; its type is its name."""
        normalized = PolicyCreate(
            policy_name=validate_required_text(payload.policy_name, "Policy name"),
            form_type=(payload.form_type or "").strip(),
            request_type=(payload.request_type or "").strip(),
            agency=(payload.agency or "").strip() or None,
            requirements=list(payload.requirements or []),
            active_status=bool(payload.active_status),
        )
        try:
            policy_id = self._policy_repo.create_policy(normalized)
        except sqlite3.IntegrityError as error:
            raise ValidationFailure(f"Policy '{normalized.policy_name}' already exists.") from error
        self._audit_repo.record(
            "CREATE",
            "policy",
            policy_id,
            {"event": "policy created", "policy_name": normalized.policy_name},
        )
        return self.get_policy(policy_id)

    def get_policy(self, policy_id: int) -> Policy:
        row = self._policy_repo.get_policy(policy_id)
        if not row:
            raise NotFoundError("Policy not found.")
        return _to_policy(row)

    def find_by_type(self, policy_type: str) -> Policy:
        """Exact type match first, then a trimmed case-insensitive match."""
        requested = validate_required_text(policy_type, "Policy type")
        row = self._policy_repo.get_by_type(policy_type)
        if row:
            return _to_policy(row)
        wanted = requested.lower()
        for candidate in self._policy_repo.list_policies():
            if (candidate["policy_type"] or "").strip().lower() == wanted:
                return _to_policy(candidate)
        raise NotFoundError(f"Policy type '{requested}' not found.")

    def list_active(self) -> list[Policy]:
        return [_to_policy(row) for row in self._policy_repo.list_active()]

    def list_policies(self) -> list[Policy]:
        return [_to_policy(row) for row in self._policy_repo.list_policies()]

    def toggle_active(self, policy_id: int) -> Policy:
        """Flip a policy's active flag."""
        policy = self.get_policy(policy_id)
        self._policy_repo.set_active(policy_id, not policy.active_status)
        self._audit_repo.record(
            "UPDATE",
            "policy",
            policy_id,
            {"event": "policy toggled", "active_status": not policy.active_status},
        )
        return self.get_policy(policy_id)
