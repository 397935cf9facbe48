"""Tests for credential encryption."""

from __future__ import annotations

import warnings

import pytest

from casvizer import crypto
from casvizer.crypto import DEFAULT_PASSPHRASE, PASSPHRASE_ENV, CredentialCipher, resolve_passphrase
from casvizer.errors import DecryptionFailure


@pytest.fixture(autouse=True)
def reset_fallback_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(crypto, "_fallback_warned", False)


def test_encrypt_then_decrypt_returns_plaintext() -> None:
    cipher = CredentialCipher("correct horse")

    token = cipher.encrypt("s3cret")

    assert token != "s3cret"
    assert cipher.decrypt(token) == "s3cret"


def test_encrypting_twice_uses_fresh_salt() -> None:
    cipher = CredentialCipher("correct horse")

    assert cipher.encrypt("s3cret") != cipher.encrypt("s3cret")


@pytest.mark.parametrize("value", ["", None])
def test_empty_values_pass_through(value) -> None:  # type: ignore[no-untyped-def]
    cipher = CredentialCipher("correct horse")

    assert cipher.encrypt(value) == value
    assert cipher.decrypt(value) == value


def test_wrong_passphrase_raises_decryption_failure() -> None:
    token = CredentialCipher("one").encrypt("s3cret")

    with pytest.raises(DecryptionFailure):
        CredentialCipher("two").decrypt(token)


@pytest.mark.parametrize("garbage", ["not base64 !!", "c2hvcnQ="])
def test_malformed_ciphertext_raises_decryption_failure(garbage: str) -> None:
    with pytest.raises(DecryptionFailure):
        CredentialCipher("one").decrypt(garbage)


def test_resolve_passphrase_prefers_environment() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert resolve_passphrase({PASSPHRASE_ENV: "from-env"}) == "from-env"
    assert crypto._fallback_warned is False


def test_resolve_passphrase_warns_once_on_fallback() -> None:
    with pytest.warns(UserWarning, match=PASSPHRASE_ENV):
        assert resolve_passphrase({}) == DEFAULT_PASSPHRASE
    assert crypto._fallback_warned is True
    assert resolve_passphrase({}, fallback="configured") == "configured"


def test_from_environment_uses_fallback_when_unset() -> None:
    with pytest.warns(UserWarning):
        cipher = CredentialCipher.from_environment({}, fallback="configured")

    token = cipher.encrypt("value")
    assert CredentialCipher("configured").decrypt(token) == "value"


def test_empty_passphrase_is_rejected() -> None:
    with pytest.raises(ValueError):
        CredentialCipher("")
