"""Serial number domain models."""

from __future__ import annotations

from dataclasses import dataclass

SERIAL_TYPE_DEFAULT = "Default"
SERIAL_TYPE_ALLIANZ_WELL = "Allianz Well"
SERIAL_TYPE_MANUAL = "Manual"
SERIAL_TYPES = (SERIAL_TYPE_DEFAULT, SERIAL_TYPE_ALLIANZ_WELL, SERIAL_TYPE_MANUAL)


@dataclass
class SerialNumber:
    """Output model for a stored serial."""

    serial_id: int
    serial_number: str
    serial_type: str
    is_issued: bool
    date: str


@dataclass
class SerialResolution:
    """A resolved serial; ``migrated`` when found via its 8-digit parent."""

    record: SerialNumber
    migrated: bool


@dataclass
class SerialCounts:
    total: int
    unused_default: int
    unused_allianz: int
    used_serials: int
