"""Agent profile and hierarchy models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_AGENT_PARTNER = "AP"
ROLE_AGENT_LEADER = "AL"
ROLE_MANAGING_PARTNER = "MP"
ROLE_CODES = (ROLE_AGENT_PARTNER, ROLE_AGENT_LEADER, ROLE_MANAGING_PARTNER)


@dataclass
class ProfileCreate:
    first_name: str
    last_name: str
    email: str
    role_code: str
    created_at: datetime | None = None


@dataclass
class Profile:
    id: int
    first_name: str
    last_name: str
    email: str
    role_code: str
    created_at: datetime
    last_submission_at: datetime | None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
