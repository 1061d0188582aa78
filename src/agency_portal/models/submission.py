"""Submission domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass
class SubmissionCreate:
    """Input model for a monitoring entry."""

    policy_type: str
    serial_number: str
    premium_paid: Any
    mode_of_payment: str
    policy_date: str
    client_first_name: str
    client_last_name: str
    client_email: str = ""
    profile_id: int | None = None
    intermediary_email: str = ""
    submission_type: str = ""


@dataclass
class SubmissionView:
    """Output model for submission retrieval."""

    id: int
    profile_id: int | None
    policy_id: int
    serial_id: int | None
    serial_number: str | None
    policy_type: str | None
    policy_name: str | None
    client_name: str
    client_email: str
    premium_paid: Decimal
    anp: Decimal
    mode_of_payment: str
    status: str
    submission_type: str
    issued_at: str
    date_issued: str | None
    next_payment_date: str | None
    policy_date: str | None
    form_type: str | None
    intermediary_name: str
    attachments: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SubmissionDetails:
    """Client-facing summary looked up by serial."""

    client_first_name: str
    client_last_name: str
    client_email: str
    policy_type: str | None
    mode_of_payment: str
    policy_date: str | None
    requirements: list[Any]


@dataclass
class DocumentUpload:
    file_name: str
    content_type: str
    content: bytes


@dataclass
class DocumentSubmissionResult:
    submission: SubmissionView
    generated_summary_url: str
    serial_migrated: bool


@dataclass
class CustomerView:
    """Submissions grouped by client e-mail."""

    id: int
    first_name: str
    last_name: str
    email: str
    submissions: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SubmissionRecord:
    """Flattened row consumed by the aggregation engine."""

    id: int
    profile_id: int | None
    agent_name: str | None
    legacy_label: str | None
    policy_name: str | None
    premium_paid: Decimal
    mode_of_payment: str
    status: str
    issued_at: datetime | None
    last_submission_at: datetime | None = None
