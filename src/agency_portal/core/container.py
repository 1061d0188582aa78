"""Application dependency container."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import structlog

from agency_portal.core.config import (
    AppConfig,
    ensure_runtime_keys,
    get_optional_env,
    get_required_env,
    load_config,
)
from agency_portal.core.crypto import CryptoService
from agency_portal.core.mailer import LogMailer, Mailer, SmtpMailer
from agency_portal.core.storage import FileStorage, LocalFileStorage
from agency_portal.core.summary import SummaryRenderer, TextSummaryRenderer
from agency_portal.repositories.audit_repository import AuditRepository
from agency_portal.repositories.db_pool import ThreadLocalConnection
from agency_portal.repositories.payment_repository import PaymentRepository
from agency_portal.repositories.policy_repository import PolicyRepository
from agency_portal.repositories.profile_repository import ProfileRepository
from agency_portal.repositories.schema import initialize_schema
from agency_portal.repositories.serial_repository import SerialRepository
from agency_portal.repositories.submission_repository import SubmissionRepository
from agency_portal.services.payment_service import PaymentService
from agency_portal.services.performance_service import PerformanceService
from agency_portal.services.policy_service import PolicyService
from agency_portal.services.profile_service import ProfileService
from agency_portal.services.serial_service import SerialService
from agency_portal.services.submission_service import SubmissionService

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    """Wires repositories and services."""

    config: AppConfig
    pool: ThreadLocalConnection
    serial_service: SerialService
    submission_service: SubmissionService
    payment_service: PaymentService
    performance_service: PerformanceService
    policy_service: PolicyService
    profile_service: ProfileService
    audit_repo: AuditRepository


def _build_mailer(config: AppConfig) -> Mailer:
    if not config.mail.enabled:
        return LogMailer()
    return SmtpMailer(config.mail, get_optional_env(config.mail.password_env))


def build_container(
    config: AppConfig | None = None,
    mailer: Mailer | None = None,
    storage: FileStorage | None = None,
    renderer: SummaryRenderer | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> ServiceContainer:
    """Build dependencies and initialize schema."""
    config = config or load_config()
    ensure_runtime_keys(config.database.path)
    encryption_key = get_required_env(config.encryption.key_env)
    crypto = CryptoService.from_base64_key(encryption_key)

    pool = ThreadLocalConnection(config)
    initialize_schema(pool)

    audit_repo = AuditRepository(pool)
    removed = audit_repo.cleanup_old_logs(config.logging.retention_days)
    if removed:
        logger.info("audit_logs_purged", removed=removed, retention_days=config.logging.retention_days)

    serial_repo = SerialRepository(pool)
    submission_repo = SubmissionRepository(pool, crypto)
    payment_repo = PaymentRepository(pool)
    policy_repo = PolicyRepository(pool)
    profile_repo = ProfileRepository(pool)

    serial_service = SerialService(serial_repo, audit_repo, config.portal, clock=clock)
    policy_service = PolicyService(policy_repo, audit_repo)
    profile_service = ProfileService(profile_repo, audit_repo, clock=clock)
    submission_service = SubmissionService(
        submission_repo,
        payment_repo,
        audit_repo,
        serial_service,
        policy_service,
        profile_service,
        storage=storage
        or LocalFileStorage(config.storage.root, config.storage.public_base_url, config.storage.bucket),
        mailer=mailer or _build_mailer(config),
        renderer=renderer or TextSummaryRenderer(),
        mail_config=config.mail,
        portal_config=config.portal,
        clock=clock,
    )

    return ServiceContainer(
        config=config,
        pool=pool,
        serial_service=serial_service,
        submission_service=submission_service,
        payment_service=PaymentService(submission_repo, payment_repo, audit_repo, clock=clock),
        performance_service=PerformanceService(submission_repo, profile_service, config.portal, clock=clock),
        policy_service=policy_service,
        profile_service=profile_service,
        audit_repo=audit_repo,
    )
