"""Shared fixtures: an isolated SQLite database, a frozen clock and a recording mailer."""

from __future__ import annotations

from datetime import datetime

import pytest

from agency_portal.core.config import (
    AppConfig,
    DatabaseConfig,
    EncryptionConfig,
    LoggingConfig,
    MailConfig,
    PortalConfig,
    StorageConfig,
)
from agency_portal.core.container import build_container
from agency_portal.core.crypto import CryptoService
from agency_portal.core.errors import ExternalServiceFailure


class FrozenClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


class RecordingMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, mail) -> None:
        if self.fail:
            raise ExternalServiceFailure("Mail delivery failed: relay unavailable")
        self.sent.append(mail)


def build_config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(
            path=str(tmp_path / "test.db"),
            key_env="PORTAL_DB_KEY",
            allow_sqlite_fallback=True,
        ),
        encryption=EncryptionConfig(key_env="PORTAL_ENCRYPTION_KEY"),
        logging=LoggingConfig(retention_days=1095),
        storage=StorageConfig(root=str(tmp_path / "files"), public_base_url="/files"),
        mail=MailConfig(sender="portal@example.com", head_office_email="headoffice@example.com"),
        portal=PortalConfig(base_url="http://portal.test/api"),
    )


@pytest.fixture
def runtime_keys(monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_DB_KEY", "test-db-key")
    monkeypatch.setenv("PORTAL_ENCRYPTION_KEY", CryptoService.generate_base64_key())


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 3, 15, 10, 0, 0))


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def container(tmp_path, runtime_keys, clock, mailer):
    services = build_container(build_config(tmp_path), mailer=mailer, clock=clock)
    yield services
    services.pool.close_all()
