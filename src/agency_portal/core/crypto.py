"""Field-level AES-256-GCM encryption and e-mail helpers for client contact data."""

from __future__ import annotations

import base64
import hashlib
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12
KEY_SIZE = 32


@dataclass(frozen=True)
class CryptoService:
    """
    Encrypts column values with AES-256-GCM.

    The column name is bound as associated data, so a value sealed for one
    column will not decrypt when copied into another.
    """

    key: bytes

    @classmethod
    def from_base64_key(cls, key_b64: str) -> "CryptoService":
        key = base64.urlsafe_b64decode(key_b64.encode("utf-8"))
        if len(key) != KEY_SIZE:
            raise RuntimeError("Encryption key must decode to 32 bytes for AES-256.")
        return cls(key=key)

    @staticmethod
    def generate_base64_key() -> str:
        return base64.urlsafe_b64encode(os.urandom(KEY_SIZE)).decode("utf-8")

    def encrypt_field(self, field: str, value: str | None) -> bytes | None:
        """Return nonce+ciphertext, or None for an empty value."""
        if not value:
            return None
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(self.key).encrypt(nonce, value.encode("utf-8"), field.encode("utf-8"))

    def decrypt_field(self, field: str, blob: bytes | None) -> str:
        if not blob:
            return ""
        try:
            plain = AESGCM(self.key).decrypt(blob[:NONCE_SIZE], blob[NONCE_SIZE:], field.encode("utf-8"))
        except InvalidTag as error:
            raise RuntimeError(f"Stored {field} cannot be decrypted with the configured key.") from error
        return plain.decode("utf-8")


def hash_email(email: str) -> str:
    """Stable lookup hash for a client e-mail (case and whitespace insensitive)."""
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()


def mask_email(email: str) -> str:
    """juan.cruz@example.com => j********@example.com"""
    if "@" not in email:
        return "*" * len(email)
    local, domain = email.split("@", 1)
    if len(local) <= 1:
        return f"*@{domain}"
    return f"{local[0]}{'*' * (len(local) - 1)}@{domain}"
