"""Tests for payment recording and cycle rollover."""

from __future__ import annotations

import os
import threading
from datetime import datetime
from decimal import Decimal

import pytest

from agency_portal.core.crypto import CryptoService
from agency_portal.core.errors import ConflictRaceError, NotFoundError
from agency_portal.models.policy import PolicyCreate
from agency_portal.models.submission import SubmissionCreate
from agency_portal.repositories.payment_repository import PaymentRepository
from agency_portal.repositories.submission_repository import SubmissionRepository
from agency_portal.services.payment_service import PaymentService


def submit(container, mode: str = "Monthly", policy_date: str = "2025-01-31"):
    container.policy_service.create_policy(PolicyCreate(policy_name="Eazy Health"))
    return container.submission_service.submit_monitoring(
        SubmissionCreate(
            policy_type="Eazy Health",
            serial_number="50001234",
            premium_paid="120000",
            mode_of_payment=mode,
            policy_date=policy_date,
            client_first_name="Juan",
            client_last_name="Dela Cruz",
            client_email="juan@example.com",
        )
    )


def test_submission_seeds_first_due_date(container) -> None:
    submission = submit(container)

    assert submission.anp == Decimal("120000")
    assert submission.next_payment_date == "2025-02-28"


def test_payment_advances_exactly_one_period(container, clock) -> None:
    submission = submit(container)

    result = container.payment_service.record_payment(submission.id)

    assert result.entry.amount == Decimal("10000.00")
    assert result.entry.period_covered == "2025-02-28"
    assert result.next_date == "2025-03-28"
    assert container.submission_service.get_submission(submission.id).next_payment_date == "2025-03-28"

    # paying months late still covers only the next period
    clock.moment = datetime(2025, 12, 1, 9, 0)
    late = container.payment_service.record_payment(submission.id)

    assert late.entry.period_covered == "2025-03-28"
    assert late.next_date == "2025-04-28"
    assert late.entry.payment_date == "2025-12-01T09:00:00"

    history = container.payment_service.list_history(submission.id)
    assert [entry.period_covered for entry in history] == ["2025-02-28", "2025-03-28"]
    assert len(container.audit_repo.list_logs(action="PAYMENT")) == 2


def test_quarterly_installment_amount(container) -> None:
    submission = submit(container, mode="Quarterly", policy_date="2025-01-15")

    result = container.payment_service.record_payment(submission.id)

    assert result.entry.amount == Decimal("30000.00")
    assert result.next_date == "2025-07-15"


def test_payment_without_any_dates(container) -> None:
    submission = submit(container, policy_date="")
    assert submission.next_payment_date is None

    result = container.payment_service.record_payment(submission.id)

    assert result.next_date is None
    assert result.entry.period_covered is None
    assert len(container.payment_service.list_history(submission.id)) == 1


def test_payment_for_unknown_submission(container) -> None:
    with pytest.raises(NotFoundError):
        container.payment_service.record_payment(999)


class LockstepSubmissionRepository(SubmissionRepository):
    """Holds every read until both payers have seen the same due date."""

    def __init__(self, pool, crypto, barrier: threading.Barrier):
        super().__init__(pool, crypto)
        self._barrier = barrier

    def get_submission(self, submission_id: int):
        row = super().get_submission(submission_id)
        self._barrier.wait()
        return row


def test_concurrent_payments_cover_one_period(container, clock) -> None:
    submission = submit(container)
    crypto = CryptoService.from_base64_key(os.environ["PORTAL_ENCRYPTION_KEY"])
    service = PaymentService(
        LockstepSubmissionRepository(container.pool, crypto, threading.Barrier(2, timeout=10)),
        PaymentRepository(container.pool),
        container.audit_repo,
        clock=clock,
    )
    results, conflicts = [], []

    def pay() -> None:
        try:
            results.append(service.record_payment(submission.id))
        except ConflictRaceError as error:
            conflicts.append(error)

    payers = [threading.Thread(target=pay) for _ in range(2)]
    for payer in payers:
        payer.start()
    for payer in payers:
        payer.join(timeout=30)

    assert len(results) == 1
    assert len(conflicts) == 1
    history = container.payment_service.list_history(submission.id)
    assert [entry.period_covered for entry in history] == ["2025-02-28"]
    assert container.submission_service.get_submission(submission.id).next_payment_date == "2025-03-28"


def test_stale_due_date_is_rejected_without_history(container) -> None:
    submission = submit(container)
    container.payment_service.record_payment(submission.id)

    class StaleSubmissionRepository(SubmissionRepository):
        def get_submission(self, submission_id: int):
            row = super().get_submission(submission_id)
            return dict(row, next_payment_date="2025-02-28")

    crypto = CryptoService.from_base64_key(os.environ["PORTAL_ENCRYPTION_KEY"])
    service = PaymentService(
        StaleSubmissionRepository(container.pool, crypto),
        PaymentRepository(container.pool),
        container.audit_repo,
    )

    with pytest.raises(ConflictRaceError):
        service.record_payment(submission.id)

    assert len(container.payment_service.list_history(submission.id)) == 1
    assert container.submission_service.get_submission(submission.id).next_payment_date == "2025-03-28"
