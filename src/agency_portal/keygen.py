"""Generate runtime key lines for the portal database and client field encryption."""

from __future__ import annotations

import argparse
import secrets
from pathlib import Path

from agency_portal.core.crypto import CryptoService
from agency_portal.core.runtime_env import DB_KEY_ENV, ENCRYPTION_KEY_ENV, parse_env_line

ENV_FORMATS = ("shell", "shell-export", "powershell")


def render_line(name: str, value: str, env_format: str = "shell") -> str:
    if env_format == "powershell":
        return f"$env:{name}='{value}'"
    if env_format == "shell-export":
        return f"export {name}='{value}'"
    return f"{name}='{value}'"


def generate_keys() -> dict[str, str]:
    return {
        DB_KEY_ENV: secrets.token_urlsafe(48),
        ENCRYPTION_KEY_ENV: CryptoService.generate_base64_key(),
    }


def write_env_file(path: Path, keys: dict[str, str], env_format: str = "shell") -> None:
    """
    Write key lines to an env file.

    Lines for other variables already in the file (mail password, host, port)
    are carried over untouched; only the generated keys are replaced.
    """
    kept: list[str] = []
    if path.exists():
        for line in path.read_text(encoding="utf-8").splitlines():
            parsed = parse_env_line(line)
            if parsed and parsed[0] in keys:
                continue
            kept.append(line)
    lines = kept + [render_line(name, value, env_format) for name, value in keys.items()]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate agency portal runtime keys.")
    parser.add_argument("--write-env", default=None, help="Env file to write. Omit to skip file output.")
    parser.add_argument("--format", choices=ENV_FORMATS, default="shell")
    parser.add_argument("--stdout", action="store_true", help="Also print generated lines.")
    parser.add_argument("--force", action="store_true", help="Replace keys already present in the env file.")
    args = parser.parse_args(argv)

    keys = generate_keys()
    if args.write_env:
        target = Path(args.write_env)
        existing = target.read_text(encoding="utf-8") if target.exists() else ""
        if ENCRYPTION_KEY_ENV in existing and not args.force:
            # rotating the encryption key orphans every stored client e-mail
            print(f"[INFO] keys already present in {target}; pass --force to replace them")
            return 1
        write_env_file(target, keys, args.format)
        print(f"[INFO] key file written: {target}")

    if args.stdout:
        for name, value in keys.items():
            print(render_line(name, value, args.format))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
