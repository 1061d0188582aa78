"""Configuration loader for database, storage, mail and portal settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from agency_portal.core import runtime_env


@dataclass(frozen=True)
class DatabaseConfig:
    path: str
    key_env: str
    allow_sqlite_fallback: bool


@dataclass(frozen=True)
class EncryptionConfig:
    key_env: str


@dataclass(frozen=True)
class LoggingConfig:
    retention_days: int
    level: str = "INFO"
    json_output: bool = False


@dataclass(frozen=True)
class StorageConfig:
    root: str
    public_base_url: str
    bucket: str = "policy-documents"


@dataclass(frozen=True)
class MailConfig:
    enabled: bool = False
    host: str = "localhost"
    port: int = 587
    use_tls: bool = True
    username: str = ""
    password_env: str = "PORTAL_MAIL_PASSWORD"
    sender: str = ""
    head_office_email: str = ""


DEFAULT_MANUAL_POLICY_TYPES = (
    "Eazy Health",
    "Allianz Fundamental Cover",
    "Allianz Secure Pro",
)


@dataclass(frozen=True)
class PortalConfig:
    manual_policy_types: tuple[str, ...] = DEFAULT_MANUAL_POLICY_TYPES
    allianz_well_policy_type: str = "Allianz Well"
    base_url: str = "http://localhost:8000/api"
    active_window_minutes: int = 60
    currency_prefix: str = "₱ "


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    encryption: EncryptionConfig
    logging: LoggingConfig
    storage: StorageConfig
    mail: MailConfig = field(default_factory=MailConfig)
    portal: PortalConfig = field(default_factory=PortalConfig)


DEFAULT_CONFIG_REL_PATH = Path("config/portal.yaml")
DEFAULT_DB_KEY_ENV = runtime_env.DB_KEY_ENV
DEFAULT_ENCRYPTION_KEY_ENV = runtime_env.ENCRYPTION_KEY_ENV


def ensure_runtime_keys(config_db_path: str | None = None) -> None:
    """Load local key files, or bootstrap keys for a fresh database."""
    runtime_env.load_env_files()
    runtime_env.bootstrap_keys(config_db_path)


def resolve_default_config_path() -> Path:
    """Resolve configuration path for source and installed execution."""
    env_path = os.getenv("PORTAL_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    candidates = [
        Path.cwd() / DEFAULT_CONFIG_REL_PATH,
        runtime_env.app_root() / DEFAULT_CONFIG_REL_PATH,
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the app configuration from YAML."""
    path = config_path or resolve_default_config_path()
    with path.open("r", encoding="utf-8") as file:
        raw = yaml.safe_load(file) or {}

    mail_raw = raw.get("mail") or {}
    portal_raw = raw.get("portal") or {}
    logging_raw = raw.get("logging") or {}

    return AppConfig(
        database=DatabaseConfig(
            path=str(raw["db"]["path"]),
            key_env=str(raw["db"].get("key_env", DEFAULT_DB_KEY_ENV)),
            allow_sqlite_fallback=bool(raw["db"].get("allow_sqlite_fallback", False)),
        ),
        encryption=EncryptionConfig(
            key_env=str(raw.get("encryption", {}).get("key_env", DEFAULT_ENCRYPTION_KEY_ENV)),
        ),
        logging=LoggingConfig(
            retention_days=int(logging_raw.get("retention_days", 1095)),
            level=str(logging_raw.get("level", "INFO")),
            json_output=bool(logging_raw.get("json", False)),
        ),
        storage=StorageConfig(
            root=str(raw["storage"]["root"]),
            public_base_url=str(raw["storage"].get("public_base_url", "/files")),
            bucket=str(raw["storage"].get("bucket", "policy-documents")),
        ),
        mail=MailConfig(
            enabled=bool(mail_raw.get("enabled", False)),
            host=str(mail_raw.get("host", "localhost")),
            port=int(mail_raw.get("port", 587)),
            use_tls=bool(mail_raw.get("use_tls", True)),
            username=str(mail_raw.get("username", "")),
            password_env=str(mail_raw.get("password_env", "PORTAL_MAIL_PASSWORD")),
            sender=str(mail_raw.get("sender", "")),
            head_office_email=str(mail_raw.get("head_office_email", "")),
        ),
        portal=PortalConfig(
            manual_policy_types=tuple(
                portal_raw.get("manual_policy_types", DEFAULT_MANUAL_POLICY_TYPES)
            ),
            allianz_well_policy_type=str(
                portal_raw.get("allianz_well_policy_type", "Allianz Well")
            ),
            base_url=str(portal_raw.get("base_url", "http://localhost:8000/api")),
            active_window_minutes=int(portal_raw.get("active_window_minutes", 60)),
            currency_prefix=str(portal_raw.get("currency_prefix", "₱ ")),
        ),
    )


def get_required_env(name: str) -> str:
    """Return a required environment variable or raise a clear error."""
    runtime_env.load_env_files()
    if name in {DEFAULT_DB_KEY_ENV, DEFAULT_ENCRYPTION_KEY_ENV}:
        runtime_env.bootstrap_keys()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Required environment variable is missing: {name}")
    return value


def get_optional_env(name: str) -> str:
    runtime_env.load_env_files()
    return os.getenv(name, "")
