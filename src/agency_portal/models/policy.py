"""Policy definition models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PolicyCreate:
    policy_name: str
    form_type: str = ""
    request_type: str = ""
    agency: str | None = None
    requirements: list[Any] = field(default_factory=list)
    active_status: bool = True


@dataclass
class Policy:
    policy_id: int
    policy_name: str
    policy_type: str
    form_type: str
    request_type: str
    agency: str | None
    requirements: list[Any]
    active_status: bool
