"""Submission service: monitoring entries, status, documents and attestation."""

from __future__ import annotations

import html
from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

import structlog

from agency_portal.core.config import MailConfig, PortalConfig
from agency_portal.core.crypto import mask_email
from agency_portal.core.errors import ConflictRaceError, ExternalServiceFailure, NotFoundError, ValidationFailure
from agency_portal.core.mailer import MailAttachment, Mailer, OutgoingMail
from agency_portal.core.premium import coerce_amount, normalize
from agency_portal.core.schedule import next_due_date, parse_reference_date
from agency_portal.core.storage import FileStorage
from agency_portal.core.summary import SummaryRenderer
from agency_portal.core.validation import (
    validate_optional_email,
    validate_required_text,
    validate_serial_number,
    validate_status,
    validate_upload,
)
from agency_portal.models.submission import (
    CustomerView,
    DocumentSubmissionResult,
    DocumentUpload,
    SubmissionCreate,
    SubmissionDetails,
    SubmissionView,
)
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.payment_repository import PaymentRepository
from agency_portal.repositories.submission_repository import SubmissionRepository
from agency_portal.services.payment_service import to_history_entry
from agency_portal.services.policy_service import PolicyService
from agency_portal.services.profile_service import ProfileService
from agency_portal.services.serial_service import SerialService

logger = structlog.get_logger()

ATTESTATION_RESPONSES = ("yes", "no")


def split_client_name(client_name: str | None) -> tuple[str, str]:
    parts = (client_name or "").split(" ")
    return parts[0], " ".join(parts[1:])


class SubmissionService:
    """Coordinates submission use cases."""

    def __init__(
        self,
        submission_repo: SubmissionRepository,
        payment_repo: PaymentRepository,
        audit_repo: AuditRepository,
        serial_service: SerialService,
        policy_service: PolicyService,
        profile_service: ProfileService,
        storage: FileStorage,
        mailer: Mailer,
        renderer: SummaryRenderer,
        mail_config: MailConfig,
        portal_config: PortalConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._submission_repo = submission_repo
        self._payment_repo = payment_repo
        self._audit_repo = audit_repo
        self._serial_service = serial_service
        self._policy_service = policy_service
        self._profile_service = profile_service
        self._storage = storage
        self._mailer = mailer
        self._renderer = renderer
        self._mail_config = mail_config
        self._portal = portal_config
        self._clock = clock

    @staticmethod
    def _to_view(row: dict[str, Any], mask: bool = False) -> SubmissionView:
        agent_name = f"{row.get('agent_first_name') or ''} {row.get('agent_last_name') or ''}".strip()
        client_email = row["client_email"] or ""
        return SubmissionView(
            id=int(row["sub_id"]),
            profile_id=row["profile_id"],
            policy_id=int(row["policy_id"]),
            serial_id=row["serial_id"],
            serial_number=row["serial_number"],
            policy_type=row["policy_type"],
            policy_name=row["policy_name"],
            client_name=row["client_name"],
            client_email=mask_email(client_email) if mask and client_email else client_email,
            premium_paid=coerce_amount(row["premium_paid"]),
            anp=coerce_amount(row["anp"]),
            mode_of_payment=row["mode_of_payment"] or "",
            status=row["status"],
            submission_type=row["submission_type"] or "",
            issued_at=row["issued_at"],
            date_issued=row["date_issued"],
            next_payment_date=row["next_payment_date"],
            policy_date=row["policy_date"],
            form_type=row["form_type"],
            intermediary_name=agent_name if row["profile_id"] is not None and agent_name else "Unknown",
            attachments=row["attachments"],
        )

    def _get_row(self, submission_id: int) -> dict[str, Any]:
        row = self._submission_repo.get_submission(submission_id)
        if not row:
            raise NotFoundError("Submission not found.")
        return row

    def get_submission(self, submission_id: int) -> SubmissionView:
        return self._to_view(self._get_row(submission_id))

    def _resolve_profile_id(self, payload: SubmissionCreate) -> int | None:
        if payload.profile_id is not None:
            return self._profile_service.get_profile(payload.profile_id).id
        if payload.intermediary_email and payload.intermediary_email.strip():
            profile = self._profile_service.find_by_email(payload.intermediary_email)
            if profile:
                return profile.id
            logger.warning("agent_profile_not_found", email=payload.intermediary_email.strip())
        return None

    def submit_monitoring(self, payload: SubmissionCreate) -> SubmissionView:
        """
        Record a new Pending monitoring entry.

        Manual-category policies register their serial on first use. System
        serials must already exist and must not back another submission.
        """
        policy_type = validate_required_text(payload.policy_type, "Policy type")
        serial_value = validate_serial_number(payload.serial_number)
        first_name = validate_required_text(payload.client_first_name, "Client first name")
        last_name = (payload.client_last_name or "").strip()
        client_email = validate_optional_email(payload.client_email)
        mode = (payload.mode_of_payment or "").strip()

        policy = self._policy_service.find_by_type(policy_type)
        profile_id = self._resolve_profile_id(payload)

        now = self._clock()
        manual = self._serial_service.is_manual_policy(policy.policy_type)
        if manual:
            serial = self._serial_service.provision(policy.policy_type, serial_value)
        else:
            serial = self._serial_service.get_existing(serial_value)
            if self._submission_repo.exists_for_serial(serial.serial_id):
                raise ConflictRaceError(f"Serial Number '{serial_value}' is already used by another submission.")

        premium = coerce_amount(payload.premium_paid)
        breakdown = normalize(premium, mode)
        policy_date = parse_reference_date(payload.policy_date)
        first_due = next_due_date(policy_date, mode)

        with self._submission_repo.transaction():
            if profile_id is not None:
                self._profile_service.touch_last_submission(profile_id, now)
            submission_id = self._submission_repo.create_submission(
                profile_id=profile_id,
                policy_id=policy.policy_id,
                serial_id=serial.serial_id,
                client_name=f"{first_name} {last_name}".strip(),
                client_email=client_email,
                premium_paid=str(premium),
                anp=str(breakdown.annualized_premium),
                mode_of_payment=mode,
                submission_type=(payload.submission_type or "").strip(),
                issued_at=now.isoformat(timespec="seconds"),
                policy_date=policy_date.isoformat() if policy_date else None,
                next_payment_date=first_due.isoformat() if first_due else None,
            )
            if not manual:
                self._serial_service.mark_issued(serial)

        self._audit_repo.record(
            "CREATE",
            "submission",
            submission_id,
            {
                "event": "monitoring submitted",
                "policy_type": policy.policy_type,
                "serial_number": serial.serial_number,
                "profile_id": profile_id,
            },
        )
        logger.info(
            "submission_created",
            submission_id=submission_id,
            policy_type=policy.policy_type,
            serial_number=serial.serial_number,
        )
        return self.get_submission(submission_id)

    def update_status(self, submission_id: int, status: str) -> SubmissionView:
        """Change status; the first move to Issued stamps date_issued and seeds a due date."""
        new_status = validate_status(status)
        row = self._get_row(submission_id)
        now = self._clock()

        date_issued = None
        seeded_due = None
        if new_status == "Issued":
            date_issued = now.isoformat(timespec="seconds")
            if not row["next_payment_date"] and row["mode_of_payment"]:
                reference = row["policy_date"] or now.date()
                due = next_due_date(reference, row["mode_of_payment"])
                seeded_due = due.isoformat() if due else None

        self._submission_repo.update_status(submission_id, new_status, date_issued, seeded_due)
        self._audit_repo.record(
            "UPDATE",
            "submission",
            submission_id,
            {"event": "status changed", "from": row["status"], "to": new_status},
        )
        return self.get_submission(submission_id)

    def _find_by_serial(self, serial_input: str):
        resolution = self._serial_service.resolve(serial_input)
        row = self._submission_repo.get_by_serial_id(resolution.record.serial_id)
        return resolution, row

    def get_details(self, serial_input: str) -> SubmissionDetails:
        """Client-facing lookup; a 9-digit serial may match its 8-digit parent."""
        _resolution, row = self._find_by_serial(serial_input)
        if not row:
            raise NotFoundError("Submission not found")
        first_name, last_name = split_client_name(row["client_name"])
        return SubmissionDetails(
            client_first_name=first_name,
            client_last_name=last_name,
            client_email=row["client_email"],
            policy_type=row["policy_type"],
            mode_of_payment=row["mode_of_payment"] or "",
            policy_date=row["policy_date"] or row["issued_at"],
            requirements=row["requirements"],
        )

    @property
    def summary_content_type(self) -> str:
        return self._renderer.content_type

    def preview_summary(self, form_data: dict[str, Any], serial_number: str) -> bytes:
        return self._renderer.render(form_data, serial_number)

    def submit_documents(
        self,
        serial_input: str,
        form_data: dict[str, Any],
        files: list[DocumentUpload],
    ) -> DocumentSubmissionResult:
        """
        Attach documents and an application summary to a submission.

        A migrated 8-digit serial is renamed to the submitted 9-digit value.
        Individual upload failures are logged and skipped; the head office
        e-mail is best effort.
        """
        serial_value = validate_serial_number(serial_input)
        for upload in files:
            validate_upload(upload.file_name, upload.content_type, len(upload.content))

        resolution, row = self._find_by_serial(serial_value)
        if not row:
            raise NotFoundError("Submission not found")
        self._serial_service.promote(resolution, serial_value)

        submission_id = int(row["sub_id"])
        folder = str(submission_id)
        new_files: list[dict[str, Any]] = []
        mail_attachments: list[MailAttachment] = []

        for upload in files:
            try:
                stored = self._storage.upload(folder, upload.file_name, upload.content, upload.content_type)
            except ExternalServiceFailure as error:
                logger.warning(
                    "attachment_upload_failed",
                    submission_id=submission_id,
                    file_name=upload.file_name,
                    error=str(error),
                )
                continue
            new_files.append(stored.to_dict())
            mail_attachments.append(MailAttachment(file_name=upload.file_name, content=upload.content))

        summary = self._renderer.render(form_data, serial_value)
        summary_name = f"Application_{serial_value}.{self._renderer.extension}"
        summary_file = self._storage.upload(folder, summary_name, summary, self._renderer.content_type)
        new_files.append(summary_file.to_dict())
        mail_attachments.append(MailAttachment(file_name=summary_name, content=summary))

        new_mode = (form_data.get("modeOfPayment") or "").strip() or None
        mode_changed = new_mode is not None and new_mode.lower() != (row["mode_of_payment"] or "").strip().lower()
        with self._submission_repo.transaction():
            self._submission_repo.update_documents(
                submission_id,
                (form_data.get("formType") or None),
                new_mode,
                list(row["attachments"]) + new_files,
            )
            if mode_changed:
                # the due date must follow the new period length
                first_due = next_due_date(row["policy_date"] or row["date_issued"], new_mode)
                self._submission_repo.reschedule(submission_id, first_due.isoformat() if first_due else None)
                logger.info(
                    "payment_mode_changed",
                    submission_id=submission_id,
                    previous_mode=row["mode_of_payment"],
                    mode=new_mode,
                )

        self._audit_repo.record(
            "UPDATE",
            "submission",
            submission_id,
            {
                "event": "documents submitted",
                "files": [item["file_name"] for item in new_files],
                "serial_migrated": resolution.migrated,
            },
        )

        self._notify_head_office(serial_value, row["client_name"], mail_attachments)
        return DocumentSubmissionResult(
            submission=self.get_submission(submission_id),
            generated_summary_url=summary_file.file_url,
            serial_migrated=resolution.migrated,
        )

    def _notify_head_office(
        self,
        serial_value: str,
        client_name: str,
        attachments: list[MailAttachment],
    ) -> None:
        recipient = self._mail_config.head_office_email
        if not recipient:
            logger.info("head_office_mail_skipped", serial_number=serial_value)
            return
        mail = OutgoingMail(
            to=recipient,
            subject=f"Submission: {serial_value} - {client_name}",
            text=(
                "New Application Received.\n\n"
                f"Serial: {serial_value}\nClient: {client_name}\n\nDocuments attached."
            ),
            attachments=attachments,
        )
        try:
            self._mailer.send(mail)
        except ExternalServiceFailure as error:
            logger.error("head_office_mail_failed", serial_number=serial_value, error=str(error))

    def list_submissions(self, profile_id: int | None = None, status: str | None = None) -> list[SubmissionView]:
        """List submissions newest first with masked client e-mails."""
        profile_ids = [profile_id] if profile_id is not None else None
        rows = self._submission_repo.list_submissions(profile_ids=profile_ids, status=status)
        return [self._to_view(row, mask=True) for row in rows]

    def list_monitoring(self, profile_id: int | None = None) -> list[SubmissionView]:
        return self.list_submissions(profile_id)

    def list_customers(self, profile_id: int | None = None) -> list[CustomerView]:
        """Group submissions by client e-mail, each with its payment history."""
        profile_ids = [profile_id] if profile_id is not None else None
        customers: dict[str, CustomerView] = {}
        for row in self._submission_repo.list_submissions(profile_ids=profile_ids):
            email_hash = row["client_email_hash"]
            if not email_hash:
                continue
            customer = customers.get(email_hash)
            if customer is None:
                first_name, last_name = split_client_name(row["client_name"])
                customer = CustomerView(
                    id=int(row["sub_id"]),
                    first_name=first_name,
                    last_name=last_name,
                    email=mask_email(row["client_email"]),
                )
                customers[email_hash] = customer
            submission = asdict(self._to_view(row, mask=True))
            submission["payment_history"] = [
                asdict(to_history_entry(entry)) for entry in self._payment_repo.list_entries(int(row["sub_id"]))
            ]
            customer.submissions.append(submission)
        return list(customers.values())

    def send_attestation(self, serial_input: str) -> str:
        """E-mail the client yes/no attestation links, copying the agent."""
        serial_value = validate_serial_number(serial_input)
        try:
            _resolution, row = self._find_by_serial(serial_value)
        except NotFoundError as error:
            raise NotFoundError(
                f"Serial Number '{serial_value}' not found. Please submit Monitoring Data first."
            ) from error
        if not row:
            raise NotFoundError("Submission not found. Please submit Monitoring Data first.")

        client_email = row["client_email"]
        if not client_email:
            raise ValidationFailure("Client email missing.")

        client_name = row["client_name"]
        agent_email = None
        agent_name = "Agent"
        if row["profile_id"] is not None:
            agent = self._profile_service.get_profile(int(row["profile_id"]))
            agent_email = agent.email
            agent_name = agent.display_name or agent_name

        base_url = self._portal.base_url.rstrip("/")
        links = {
            answer: f"{base_url}/vsp/verify-attestation?"
            + urlencode({"serial": serial_value, "response": answer, "client": client_name})
            for answer in ATTESTATION_RESPONSES
        }
        statement = (
            f'"I, {client_name}, attest to this transaction with {agent_name} '
            '(Financial Advisor) that this transaction is true and valid."'
        )
        mail = OutgoingMail(
            to=client_email,
            cc=agent_email,
            subject=f"Action Required: Attestation for Transaction {serial_value}",
            text=(
                f"VSP Transaction Attestation\nRef: {serial_value}\n\n{statement}\n\n"
                f"Do you agree?\nYES, I ATTEST: {links['yes']}\nNO: {links['no']}\n"
            ),
            html=(
                "<h2>VSP Transaction Attestation</h2>"
                f"<p><strong>Ref:</strong> {html.escape(serial_value)}</p>"
                f"<p><em>{html.escape(statement)}</em></p>"
                "<p>Do you agree?</p>"
                f'<p><a href="{html.escape(links["yes"])}">YES, I ATTEST</a> '
                f'<a href="{html.escape(links["no"])}">NO</a></p>'
            ),
        )
        self._mailer.send(mail)
        self._audit_repo.record(
            "ATTESTATION_SENT",
            "submission",
            int(row["sub_id"]),
            {"event": "attestation sent", "serial_number": serial_value},
        )
        return f"Attestation email sent to {client_email}"

    def record_attestation(self, serial_input: str, response: str, client: str = "") -> dict[str, Any]:
        """Store the client's yes/no answer from an attestation link."""
        serial_value = validate_serial_number(serial_input)
        answer = (response or "").strip().lower()
        if answer not in ATTESTATION_RESPONSES:
            raise ValidationFailure("Response must be yes or no.")
        _resolution, row = self._find_by_serial(serial_value)
        if not row:
            raise NotFoundError("Submission not found")

        recorded_at = self._clock().isoformat(timespec="seconds")
        self._audit_repo.record(
            "ATTESTATION",
            "submission",
            int(row["sub_id"]),
            {"event": "attestation answered", "response": answer, "client": client},
        )
        return {
            "serial": serial_value,
            "response": answer,
            "attested": answer == "yes",
            "client": client,
            "recorded_at": recorded_at,
        }
