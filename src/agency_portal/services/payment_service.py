"""Payment recording and cycle rollover."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog

from agency_portal.core.errors import ConflictRaceError, NotFoundError
from agency_portal.core.premium import coerce_amount, installment_amount, round_money
from agency_portal.core.schedule import next_due_date
from agency_portal.models.payment import PaymentHistoryEntry, PaymentResult
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.payment_repository import PaymentRepository
from agency_portal.repositories.submission_repository import SubmissionRepository

logger = structlog.get_logger()


def to_history_entry(row: dict) -> PaymentHistoryEntry:
    return PaymentHistoryEntry(
        id=int(row["id"]),
        submission_id=int(row["sub_id"]),
        amount=coerce_amount(row["amount"]),
        period_covered=row["period_covered"],
        payment_date=row["payment_date"],
    )


class PaymentService:
    """Records installments and advances the payment cycle."""

    def __init__(
        self,
        submission_repo: SubmissionRepository,
        payment_repo: PaymentRepository,
        audit_repo: AuditRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._submission_repo = submission_repo
        self._payment_repo = payment_repo
        self._audit_repo = audit_repo
        self._clock = clock

    def record_payment(self, submission_id: int) -> PaymentResult:
        """
        Record one installment and roll the due date forward by one period.

        The new due date is computed from the date being paid, never from the
        wall clock, so a late payment neither skips nor compresses a period.
        A submission without a due date is treated as paying the first one
        after its policy date.
        Concurrent payments for the same due date record one entry; the others
        raise ConflictRaceError and leave no history behind.
        """
        with self._submission_repo.transaction():
            submission = self._submission_repo.get_submission(submission_id)
            if not submission:
                raise NotFoundError("Policy not found")

            mode = submission["mode_of_payment"]
            paid_due_date = submission["next_payment_date"]
            due_date = next_due_date(paid_due_date, mode)
            period_covered = paid_due_date
            if period_covered is None:
                first_due = next_due_date(submission["policy_date"], mode)
                period_covered = first_due.isoformat() if first_due else None
                due_date = next_due_date(first_due, mode)

            amount = round_money(installment_amount(submission["premium_paid"], mode))
            now = self._clock()
            next_date = due_date.isoformat() if due_date else None
            date_issued = None
            if submission["status"] == "Issued" and not submission["date_issued"]:
                date_issued = now.isoformat(timespec="seconds")

            advanced = self._submission_repo.advance_payment_cycle(
                submission_id, paid_due_date, next_date, date_issued
            )
            if not advanced:
                raise ConflictRaceError("This period was already paid by another request. Reload and retry.")
            entry_id = self._payment_repo.add_entry(
                submission_id,
                str(amount),
                period_covered,
                now.isoformat(timespec="seconds"),
            )

        self._audit_repo.record(
            "PAYMENT",
            "submission",
            submission_id,
            {
                "event": "payment recorded",
                "amount": str(amount),
                "period_covered": period_covered,
                "next_payment_date": next_date,
            },
        )
        logger.info(
            "payment_recorded",
            submission_id=submission_id,
            amount=str(amount),
            next_payment_date=next_date,
        )
        return PaymentResult(
            next_date=next_date,
            entry=PaymentHistoryEntry(
                id=entry_id,
                submission_id=submission_id,
                amount=amount,
                period_covered=period_covered,
                payment_date=now.isoformat(timespec="seconds"),
            ),
        )

    def list_history(self, submission_id: int) -> list[PaymentHistoryEntry]:
        return [to_history_entry(row) for row in self._payment_repo.list_entries(submission_id)]
