"""Serial number resolution, migration, provisioning and bulk import."""

from __future__ import annotations

import csv
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from agency_portal.core.config import PortalConfig
from agency_portal.core.errors import ConflictRaceError, NotFoundError, ValidationFailure
from agency_portal.core.validation import SERIAL_PATTERN, validate_serial_number
from agency_portal.models.serial import (
    SERIAL_TYPE_ALLIANZ_WELL,
    SERIAL_TYPE_DEFAULT,
    SERIAL_TYPE_MANUAL,
    SERIAL_TYPES,
    SerialCounts,
    SerialNumber,
    SerialResolution,
)
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.serial_repository import SerialRepository

logger = structlog.get_logger()

LEGACY_SERIAL_LENGTH = 8
MIGRATED_SERIAL_LENGTH = 9


@dataclass
class CsvImportResult:
    """Result summary for CSV imports."""

    created_count: int
    failed_count: int
    error_messages: list[str]


def _to_serial(row: dict) -> SerialNumber:
    return SerialNumber(
        serial_id=int(row["serial_id"]),
        serial_number=str(row["serial_number"]),
        serial_type=row["serial_type"],
        is_issued=bool(row["is_issued"]),
        date=row["date"],
    )


class SerialService:
    """Coordinates serial number use cases."""

    def __init__(
        self,
        serial_repo: SerialRepository,
        audit_repo: AuditRepository,
        portal_config: PortalConfig,
        clock: Callable[[], datetime] = datetime.now,
        max_claim_attempts: int = 5,
    ):
        self._serial_repo = serial_repo
        self._audit_repo = audit_repo
        self._portal = portal_config
        self._clock = clock
        self._max_claim_attempts = max_claim_attempts

    def is_manual_policy(self, policy_type: str) -> bool:
        return policy_type.strip() in self._portal.manual_policy_types

    def system_serial_type(self, policy_type: str) -> str:
        """Allianz Well policies draw from their own pool; every other system policy uses Default."""
        if policy_type.strip() == self._portal.allianz_well_policy_type:
            return SERIAL_TYPE_ALLIANZ_WELL
        return SERIAL_TYPE_DEFAULT

    def resolve(self, serial_input: str) -> SerialResolution:
        """
        Find the stored serial for a client-facing value.

        An exact match wins. A 9-digit value with no exact match falls back to
        its first 8 digits, which marks the result as ``migrated``; nothing is
        written here, see ``promote``.
        """
        value = validate_serial_number(serial_input)
        row = self._serial_repo.get_by_value(value)
        if row:
            return SerialResolution(record=_to_serial(row), migrated=False)

        if len(value) == MIGRATED_SERIAL_LENGTH:
            row = self._serial_repo.get_by_value(value[:LEGACY_SERIAL_LENGTH])
            if row:
                return SerialResolution(record=_to_serial(row), migrated=True)

        raise NotFoundError(f"Serial Number '{value}' not found.")

    def promote(self, resolution: SerialResolution, serial_input: str) -> SerialNumber:
        """Rename a migrated 8-digit record to its full 9-digit value in place."""
        if not resolution.migrated:
            return resolution.record

        record = resolution.record
        new_value = validate_serial_number(serial_input)
        updated = self._serial_repo.rename(record.serial_id, record.serial_number, new_value)
        if updated:
            self._audit_repo.record(
                "UPDATE",
                "serial_number",
                record.serial_id,
                {"event": "serial promoted", "from": record.serial_number, "to": new_value},
            )
            logger.info(
                "serial_promoted",
                serial_id=record.serial_id,
                old_value=record.serial_number,
                new_value=new_value,
            )
        row = self._serial_repo.get_by_id(record.serial_id)
        if not row:
            raise NotFoundError(f"Serial Number '{new_value}' not found.")
        return _to_serial(row)

    def provision(self, policy_type: str, manual_serial: str | None = None) -> SerialNumber:
        """Reserve a serial for a policy: claim a pooled one, or register a manual one."""
        if self.is_manual_policy(policy_type):
            return self._provision_manual(manual_serial)
        return self._claim_from_pool(policy_type)

    def _claim_from_pool(self, policy_type: str) -> SerialNumber:
        serial_type = self.system_serial_type(policy_type)
        saw_candidates = False
        for _attempt in range(self._max_claim_attempts):
            candidates = self._serial_repo.list_unissued_ids(serial_type, limit=self._max_claim_attempts)
            if not candidates:
                break
            saw_candidates = True
            for serial_id in candidates:
                if self._serial_repo.claim(serial_id):
                    row = self._serial_repo.get_by_id(serial_id)
                    self._audit_repo.record(
                        "ISSUE",
                        "serial_number",
                        serial_id,
                        {"event": "serial provisioned", "policy_type": policy_type},
                    )
                    logger.info("serial_provisioned", serial_id=serial_id, serial_type=serial_type)
                    return _to_serial(row)
                logger.debug("serial_claim_lost", serial_id=serial_id)

        if saw_candidates:
            raise ConflictRaceError(
                f"Serial numbers for {policy_type} were taken by concurrent requests. Please retry."
            )
        raise NotFoundError(f"No available serial numbers for {policy_type}.")

    def _provision_manual(self, manual_serial: str | None) -> SerialNumber:
        value = validate_serial_number(manual_serial)
        row = self._serial_repo.get_by_value(value)
        if row:
            self._serial_repo.mark_issued(int(row["serial_id"]))
            row = self._serial_repo.get_by_id(int(row["serial_id"]))
            return _to_serial(row)

        serial_id = self._serial_repo.create_serial(
            value,
            SERIAL_TYPE_MANUAL,
            True,
            self._clock().date().isoformat(),
        )
        if serial_id is None:
            # inserted concurrently
            row = self._serial_repo.get_by_value(value)
            if not row:
                raise NotFoundError(f"Serial Number '{value}' not found.")
            self._serial_repo.mark_issued(int(row["serial_id"]))
            return _to_serial(self._serial_repo.get_by_id(int(row["serial_id"])))

        self._audit_repo.record(
            "CREATE",
            "serial_number",
            serial_id,
            {"event": "manual serial registered", "serial_number": value},
        )
        return _to_serial(self._serial_repo.get_by_id(serial_id))

    def get_existing(self, serial_value: str) -> SerialNumber:
        """Exact lookup used when a system serial is consumed by a submission."""
        value = validate_serial_number(serial_value)
        row = self._serial_repo.get_by_value(value)
        if not row:
            raise NotFoundError(f"Serial Number '{value}' not found.")
        return _to_serial(row)

    def mark_issued(self, serial: SerialNumber) -> None:
        self._serial_repo.mark_issued(serial.serial_id)

    def list_serials(self, serial_type: str | None = None) -> tuple[list[SerialNumber], SerialCounts]:
        """List serials with the admin counters."""
        rows = self._serial_repo.list_serials(serial_type)
        counts = self._serial_repo.counts()
        return (
            [_to_serial(row) for row in rows],
            SerialCounts(
                total=int(counts["total"]),
                unused_default=int(counts["unused_default"]),
                unused_allianz=int(counts["unused_allianz"]),
                used_serials=int(counts["used_serials"]),
            ),
        )

    def import_serials(
        self,
        lines: Iterable[str],
        serial_type: str = SERIAL_TYPE_DEFAULT,
    ) -> CsvImportResult:
        """
        Import serials from CSV text, reading the first column after the header.

        Non-numeric values and values already stored or repeated in the file
        are skipped and reported.
        """
        if serial_type not in SERIAL_TYPES:
            raise ValidationFailure(f"Serial type must be one of {', '.join(SERIAL_TYPES)}.")
        created_count = 0
        failed_count = 0
        errors: list[str] = []
        existing = self._serial_repo.existing_values()
        stamp = self._clock().date().isoformat()

        reader = csv.reader(lines)
        next(reader, None)
        for row_index, row in enumerate(reader, start=2):
            if not row or not row[0].strip():
                continue
            value = row[0].strip()
            if not SERIAL_PATTERN.match(value):
                failed_count += 1
                if len(errors) < 10:
                    errors.append(f"Row {row_index}: '{value}' is not a numeric serial.")
                continue
            if value in existing:
                failed_count += 1
                if len(errors) < 10:
                    errors.append(f"Row {row_index}: '{value}' already exists.")
                continue
            serial_id = self._serial_repo.create_serial(value, serial_type, False, stamp)
            if serial_id is None:
                failed_count += 1
                if len(errors) < 10:
                    errors.append(f"Row {row_index}: '{value}' already exists.")
                continue
            existing.add(value)
            created_count += 1

        self._audit_repo.record(
            "IMPORT",
            "serial_number",
            None,
            {
                "event": "serial import",
                "serial_type": serial_type,
                "created": created_count,
                "skipped": failed_count,
            },
        )
        logger.info("serials_imported", created=created_count, skipped=failed_count)
        return CsvImportResult(
            created_count=created_count,
            failed_count=failed_count,
            error_messages=errors,
        )

    def import_serials_csv(self, file_path: str, serial_type: str = SERIAL_TYPE_DEFAULT) -> CsvImportResult:
        """Import a serial CSV file from disk."""
        with open(file_path, "r", encoding="utf-8-sig", newline="") as csv_file:
            return self.import_serials(csv_file, serial_type)
