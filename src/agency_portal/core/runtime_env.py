"""Runtime key discovery: local env files first, freshly generated keys otherwise."""

from __future__ import annotations

import os
import secrets
import sys
from pathlib import Path

import structlog

from agency_portal.core.crypto import CryptoService

logger = structlog.get_logger()

DB_KEY_ENV = "PORTAL_DB_KEY"
ENCRYPTION_KEY_ENV = "PORTAL_ENCRYPTION_KEY"
RUNTIME_ENV_REL_PATH = Path("config/runtime.env")
ENV_FILE_NAMES = (Path(".env.local"), RUNTIME_ENV_REL_PATH)
ASSIGNMENT_PREFIXES = ("$env:", "export ")
DEFAULT_DB_FILE = "agency_portal.db"

_loaded = False


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
    """Parse ``KEY=value``, ``export KEY='value'`` or ``$env:KEY="value"``."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    for prefix in ASSIGNMENT_PREFIXES:
        if line.startswith(prefix):
            line = line[len(prefix) :]
            break

    key, separator, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if not separator or not key:
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key, value


def app_root() -> Path:
    """Directory holding ``config/``: the executable's folder when frozen, else the checkout."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[3]


def env_file_candidates() -> list[Path]:
    paths = (root / name for root in (Path.cwd(), app_root()) for name in ENV_FILE_NAMES)
    return list(dict.fromkeys(path.resolve() for path in paths))


def load_env_files() -> None:
    """Copy variables from local env files into the process environment, once."""
    global _loaded
    if _loaded:
        return
    for path in env_file_candidates():
        if not path.is_file():
            continue
        for line in path.read_text(encoding="utf-8").splitlines():
            parsed = parse_env_line(line)
            if parsed:
                os.environ.setdefault(*parsed)
    _loaded = True


def _database_candidates(db_path: str | None) -> list[Path]:
    candidates = [app_root() / DEFAULT_DB_FILE, Path.cwd() / DEFAULT_DB_FILE]
    if db_path:
        candidates.append(Path(db_path) if Path(db_path).is_absolute() else Path.cwd() / db_path)
    return list(dict.fromkeys(path.resolve() for path in candidates))


def bootstrap_keys(db_path: str | None = None) -> None:
    """
    Generate and persist missing keys for a fresh install.

    Refuses when a database already exists without its key file, since new
    keys could not open it.
    """
    if os.getenv(DB_KEY_ENV) and os.getenv(ENCRYPTION_KEY_ENV):
        return

    key_file = app_root() / RUNTIME_ENV_REL_PATH
    if not key_file.exists() and any(path.exists() for path in _database_candidates(db_path)):
        raise RuntimeError(
            "Runtime key file is missing while database file exists. "
            f"Restore {RUNTIME_ENV_REL_PATH} or set {DB_KEY_ENV}/{ENCRYPTION_KEY_ENV}."
        )

    db_key = os.environ.setdefault(DB_KEY_ENV, secrets.token_urlsafe(48))
    encryption_key = os.environ.setdefault(ENCRYPTION_KEY_ENV, CryptoService.generate_base64_key())
    key_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.write_text(
        f"{DB_KEY_ENV}='{db_key}'\n{ENCRYPTION_KEY_ENV}='{encryption_key}'\n",
        encoding="utf-8",
    )
    logger.warning("runtime_keys_generated", path=str(key_file))
