from __future__ import annotations

from pathlib import Path

import pytest

from agency_portal.core import config as app_config
from agency_portal.core import runtime_env


@pytest.fixture
def isolated_env(monkeypatch, tmp_path: Path) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PORTAL_DB_KEY", raising=False)
    monkeypatch.delenv("PORTAL_ENCRYPTION_KEY", raising=False)
    monkeypatch.setattr(runtime_env, "_loaded", False)
    monkeypatch.setattr(runtime_env, "app_root", lambda: tmp_path)
    monkeypatch.setattr(runtime_env, "env_file_candidates", lambda: [])
    return tmp_path


def test_parse_env_line_formats() -> None:
    assert runtime_env.parse_env_line("PORTAL_DB_KEY='abc'") == ("PORTAL_DB_KEY", "abc")
    assert runtime_env.parse_env_line('export PORTAL_DB_KEY="a=b"') == ("PORTAL_DB_KEY", "a=b")
    assert runtime_env.parse_env_line("$env:PORTAL_DB_KEY='abc'") == ("PORTAL_DB_KEY", "abc")
    assert runtime_env.parse_env_line("# comment") is None
    assert runtime_env.parse_env_line("no assignment") is None


def test_get_required_env_loads_from_local_env_file(monkeypatch, isolated_env: Path) -> None:
    env_file = isolated_env / ".env.local"
    env_file.write_text(
        "export PORTAL_DB_KEY='db-from-file'\n$env:PORTAL_ENCRYPTION_KEY='enc-from-file'\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(runtime_env, "env_file_candidates", lambda: [env_file])

    assert app_config.get_required_env("PORTAL_DB_KEY") == "db-from-file"
    assert app_config.get_required_env("PORTAL_ENCRYPTION_KEY") == "enc-from-file"


def test_get_required_env_bootstraps_runtime_keys(isolated_env: Path) -> None:
    db_key = app_config.get_required_env("PORTAL_DB_KEY")
    enc_key = app_config.get_required_env("PORTAL_ENCRYPTION_KEY")

    content = (isolated_env / "config" / "runtime.env").read_text(encoding="utf-8")
    assert f"PORTAL_DB_KEY='{db_key}'" in content
    assert f"PORTAL_ENCRYPTION_KEY='{enc_key}'" in content


def test_existing_database_without_key_file_is_refused(isolated_env: Path) -> None:
    (isolated_env / "portal.db").write_bytes(b"")

    with pytest.raises(RuntimeError):
        app_config.ensure_runtime_keys(str(isolated_env / "portal.db"))


def test_missing_optional_env_is_empty(monkeypatch, isolated_env: Path) -> None:
    monkeypatch.delenv("PORTAL_MAIL_PASSWORD", raising=False)

    assert app_config.get_optional_env("PORTAL_MAIL_PASSWORD") == ""


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "portal.yaml"
    config_path.write_text(
        "\n".join(
            [
                "db:",
                "  path: data/portal.db",
                "  allow_sqlite_fallback: true",
                "storage:",
                "  root: data/uploads",
                "mail:",
                "  head_office_email: office@example.com",
                "portal:",
                "  manual_policy_types: [Eazy Health]",
                "  active_window_minutes: 30",
            ]
        ),
        encoding="utf-8",
    )

    config = app_config.load_config(config_path)

    assert config.database.path == "data/portal.db"
    assert config.database.key_env == "PORTAL_DB_KEY"
    assert config.database.allow_sqlite_fallback is True
    assert config.storage.bucket == "policy-documents"
    assert config.mail.enabled is False
    assert config.mail.head_office_email == "office@example.com"
    assert config.portal.manual_policy_types == ("Eazy Health",)
    assert config.portal.allianz_well_policy_type == "Allianz Well"
    assert config.portal.active_window_minutes == 30
    assert config.logging.retention_days == 1095


def test_bundled_sample_config_loads() -> None:
    config = app_config.load_config(Path(__file__).resolve().parents[1] / "config" / "portal.yaml")

    assert config.database.allow_sqlite_fallback is True
    assert config.portal.manual_policy_types == (
        "Eazy Health",
        "Allianz Fundamental Cover",
        "Allianz Secure Pro",
    )
