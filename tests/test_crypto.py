"""Tests for encryption helpers."""

import pytest

from agency_portal.core.crypto import CryptoService, hash_email, mask_email


def test_encrypt_decrypt_round_trip() -> None:
    crypto = CryptoService.from_base64_key(CryptoService.generate_base64_key())

    cipher = crypto.encrypt_field("client_email", "juan.cruz@example.com")

    assert b"juan" not in cipher
    assert crypto.decrypt_field("client_email", cipher) == "juan.cruz@example.com"


def test_empty_values_are_not_encrypted() -> None:
    crypto = CryptoService.from_base64_key(CryptoService.generate_base64_key())

    assert crypto.encrypt_field("client_email", "") is None
    assert crypto.decrypt_field("client_email", None) == ""


def test_ciphertext_is_bound_to_its_column() -> None:
    crypto = CryptoService.from_base64_key(CryptoService.generate_base64_key())
    cipher = crypto.encrypt_field("client_email", "juan@example.com")

    with pytest.raises(RuntimeError):
        crypto.decrypt_field("agent_email", cipher)


def test_short_keys_are_rejected() -> None:
    with pytest.raises(RuntimeError):
        CryptoService.from_base64_key("c2hvcnQ=")


def test_hash_email_ignores_case_and_whitespace() -> None:
    assert hash_email(" Juan@Example.com ") == hash_email("juan@example.com")
    assert hash_email("juan@example.com") != hash_email("maria@example.com")


def test_mask_email() -> None:
    assert mask_email("juan.cruz@example.com") == "j********@example.com"
    assert mask_email("j@example.com") == "*@example.com"
    assert mask_email("noatsign") == "********"
