"""Tests for serial resolution, migration, provisioning and import."""

from __future__ import annotations

import pytest

from agency_portal.core.config import PortalConfig
from agency_portal.core.errors import ConflictRaceError, NotFoundError, ValidationFailure
from agency_portal.repositories.serial_repository import SerialRepository
from agency_portal.services.serial_service import SerialService


class LosingSerialRepository(SerialRepository):
    """Every claim loses, as if another request always got there first."""

    def claim(self, serial_id: int) -> bool:
        return False


def test_import_skips_invalid_and_duplicate_rows(container) -> None:
    service = container.serial_service

    result = service.import_serials(["serial", "12345678", "abc", "12345678", "", "22223333", "\u00b2"])

    assert result.created_count == 2
    assert result.failed_count == 3
    assert result.error_messages == [
        "Row 3: 'abc' is not a numeric serial.",
        "Row 4: '12345678' already exists.",
        "Row 7: '\u00b2' is not a numeric serial.",
    ]
    items, counts = service.list_serials()
    assert {item.serial_number for item in items} == {"12345678", "22223333"}
    assert counts.total == 2
    assert counts.unused_default == 2
    assert counts.used_serials == 0
    assert container.audit_repo.list_logs(action="IMPORT")


def test_import_csv_file_with_bom(container, tmp_path) -> None:
    csv_path = tmp_path / "serials.csv"
    csv_path.write_text("serial_number,note\n11112222,first\n11113333,second\n", encoding="utf-8-sig")

    result = container.serial_service.import_serials_csv(str(csv_path), "Allianz Well")

    assert result.created_count == 2
    items, counts = container.serial_service.list_serials("Allianz Well")
    assert len(items) == 2
    assert counts.unused_allianz == 2


def test_import_rejects_unknown_serial_type(container) -> None:
    with pytest.raises(ValidationFailure):
        container.serial_service.import_serials(["serial", "12345678"], "Premium")


def test_resolve_exact_match(container) -> None:
    container.serial_service.import_serials(["serial", "12345678"])

    resolution = container.serial_service.resolve("12345678")

    assert resolution.migrated is False
    assert resolution.record.serial_number == "12345678"


def test_nine_digit_serial_resolves_to_parent_and_promotes(container) -> None:
    service = container.serial_service
    service.import_serials(["serial", "12345678"])

    resolution = service.resolve("123456789")
    assert resolution.migrated is True
    assert resolution.record.serial_number == "12345678"

    promoted = service.promote(resolution, "123456789")

    assert promoted.serial_id == resolution.record.serial_id
    assert promoted.serial_number == "123456789"
    assert service.resolve("123456789").migrated is False
    with pytest.raises(NotFoundError):
        service.resolve("12345678")
    assert container.audit_repo.list_logs(action="UPDATE", entity="serial_number")


def test_resolve_unknown_or_malformed(container) -> None:
    with pytest.raises(NotFoundError):
        container.serial_service.resolve("987654321")
    with pytest.raises(ValidationFailure):
        container.serial_service.resolve("12a45678")


def test_provision_claims_oldest_pooled_serial(container) -> None:
    service = container.serial_service
    service.import_serials(["serial", "30000001", "30000002"])

    first = service.provision("Allianz Secure Shield")
    second = service.provision("Allianz Secure Shield")

    assert first.serial_number == "30000001"
    assert second.serial_number == "30000002"
    assert first.is_issued is True
    with pytest.raises(NotFoundError):
        service.provision("Allianz Secure Shield")


def test_allianz_well_draws_only_from_its_own_pool(container) -> None:
    service = container.serial_service
    service.import_serials(["serial", "30000001"])

    with pytest.raises(NotFoundError):
        service.provision("Allianz Well")

    service.import_serials(["serial", "40000001"], "Allianz Well")
    serial = service.provision("Allianz Well")

    assert serial.serial_number == "40000001"
    assert serial.serial_type == "Allianz Well"


def test_manual_policy_registers_serial_on_first_use(container) -> None:
    serial = container.serial_service.provision("Eazy Health", "55554444")

    assert serial.serial_type == "Manual"
    assert serial.is_issued is True
    assert serial.date == "2025-03-15"

    again = container.serial_service.provision("Eazy Health", "55554444")
    assert again.serial_id == serial.serial_id


def test_manual_policy_requires_a_serial(container) -> None:
    with pytest.raises(ValidationFailure):
        container.serial_service.provision("Eazy Health")


def test_lost_claims_surface_as_conflict(container, clock) -> None:
    container.serial_service.import_serials(["serial", "30000001", "30000002"])
    service = SerialService(
        LosingSerialRepository(container.pool),
        container.audit_repo,
        PortalConfig(),
        clock=clock,
        max_claim_attempts=2,
    )

    with pytest.raises(ConflictRaceError):
        service.provision("Allianz Secure Shield")
