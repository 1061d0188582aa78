"""Profile and reporting hierarchy service."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from datetime import datetime

from agency_portal.core.errors import NotFoundError, ValidationFailure
from agency_portal.core.schedule import parse_timestamp
from agency_portal.core.validation import validate_optional_email, validate_required_text
from agency_portal.models.profile import ROLE_CODES, Profile, ProfileCreate
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.profile_repository import ProfileRepository


def to_profile(row: dict) -> Profile:
    return Profile(
        id=int(row["id"]),
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        email=row["email"],
        role_code=row["role_code"],
        created_at=parse_timestamp(row["created_at"]) or datetime.min,
        last_submission_at=parse_timestamp(row["last_submission_at"]),
    )


class ProfileService:
    """Coordinates profile and hierarchy use cases."""

    def __init__(
        self,
        profile_repo: ProfileRepository,
        audit_repo: AuditRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._profile_repo = profile_repo
        self._audit_repo = audit_repo
        self._clock = clock

    @staticmethod
    def _validate(payload: ProfileCreate) -> ProfileCreate:
        email = validate_optional_email(payload.email)
        if not email:
            raise ValidationFailure("Email is required.")
        role_code = (payload.role_code or "").strip().upper()
        if role_code not in ROLE_CODES:
            raise ValidationFailure(f"Role must be one of {', '.join(ROLE_CODES)}.")
        return ProfileCreate(
            first_name=validate_required_text(payload.first_name, "First name"),
            last_name=validate_required_text(payload.last_name, "Last name"),
            email=email,
            role_code=role_code,
            created_at=payload.created_at,
        )

    def create_profile(self, payload: ProfileCreate) -> Profile:
        """Validate, persist, and audit profile creation."""
        normalized = self._validate(payload)
        try:
            profile_id = self._profile_repo.create_profile(normalized)
        except sqlite3.IntegrityError as error:
            raise ValidationFailure(f"A profile with e-mail {normalized.email} already exists.") from error
        self._audit_repo.record(
            "CREATE",
            "profile",
            profile_id,
            {"event": "profile created", "role_code": normalized.role_code},
        )
        return self.get_profile(profile_id)

    def get_profile(self, profile_id: int) -> Profile:
        row = self._profile_repo.get_profile(profile_id)
        if not row:
            raise NotFoundError("Profile not found.")
        return to_profile(row)

    def find_by_email(self, email: str) -> Profile | None:
        if not email or not email.strip():
            return None
        row = self._profile_repo.find_by_email(email)
        return to_profile(row) if row else None

    def list_profiles(self, role_code: str | None = None) -> list[Profile]:
        return [to_profile(row) for row in self._profile_repo.list_profiles(role_code)]

    def assign_supervisor(self, user_id: int, report_to_id: int) -> None:
        """Replace a profile's active reporting link."""
        if user_id == report_to_id:
            raise ValidationFailure("A profile cannot report to itself.")
        self.get_profile(user_id)
        self.get_profile(report_to_id)

        self._profile_repo.deactivate_links(user_id)
        link_id = self._profile_repo.add_link(
            user_id,
            report_to_id,
            self._clock().isoformat(timespec="seconds"),
        )
        self._audit_repo.record(
            "UPDATE",
            "user_hierarchy",
            link_id,
            {"event": "supervisor assigned", "user_id": user_id, "report_to_id": report_to_id},
        )

    def team_member_ids(self, leader_id: int) -> list[int]:
        """Active direct reports of a leader."""
        return self._profile_repo.subordinate_ids(leader_id)

    def supervisor_of(self, user_id: int) -> dict | None:
        return self._profile_repo.supervisor_of(user_id)

    def touch_last_submission(self, profile_id: int, moment: datetime) -> None:
        self._profile_repo.touch_last_submission(profile_id, moment.isoformat(timespec="seconds"))
