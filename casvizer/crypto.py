"""Credential encryption for secrets stored in the profile file."""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
import warnings
from typing import Mapping

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionFailure

LOG = logging.getLogger(__name__)

PASSPHRASE_ENV = "CASVIZER_MASTER_PASSWORD"
DEFAULT_PASSPHRASE = "casvizer-secret-key-change-me"

_SALT_BYTES = 16
_KDF_ITERATIONS = 100_000

_fallback_warned = False


def resolve_passphrase(
    environ: Mapping[str, str] | None = None,
    *,
    fallback: str | None = None,
) -> str:
    """Return the master passphrase, warning once when the fallback is used."""

    global _fallback_warned
    env = os.environ if environ is None else environ
    passphrase = env.get(PASSPHRASE_ENV)
    if passphrase:
        return passphrase
    if not _fallback_warned:
        _fallback_warned = True
        message = (
            f"{PASSPHRASE_ENV} is not set; stored credentials are encrypted with a "
            f"fallback passphrase. Set {PASSPHRASE_ENV} for better security."
        )
        LOG.warning(message)
        warnings.warn(message, UserWarning, stacklevel=2)
    return fallback or DEFAULT_PASSPHRASE


class CredentialCipher:
    """Encrypts and decrypts profile secrets with a passphrase-derived key.

    Each ciphertext carries its own random salt, so encrypting the same value
    twice yields different output. Empty values pass through untouched.
    """

    def __init__(self, passphrase: str) -> None:
        if not passphrase:
            raise ValueError("Passphrase must not be empty")
        self._passphrase = passphrase.encode("utf-8")

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        fallback: str | None = None,
    ) -> "CredentialCipher":
        return cls(resolve_passphrase(environ, fallback=fallback))

    def encrypt(self, plaintext: str | None) -> str | None:
        if not plaintext:
            return plaintext
        salt = secrets.token_bytes(_SALT_BYTES)
        token = self._fernet(salt).encrypt(plaintext.encode("utf-8"))
        return base64.urlsafe_b64encode(salt + token).decode("ascii")

    def decrypt(self, ciphertext: str | None) -> str | None:
        if not ciphertext:
            return ciphertext
        try:
            payload = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise DecryptionFailure("Stored secret is not valid ciphertext.") from exc
        if len(payload) <= _SALT_BYTES:
            raise DecryptionFailure("Stored secret is truncated.")
        salt, token = payload[:_SALT_BYTES], payload[_SALT_BYTES:]
        try:
            return self._fernet(salt).decrypt(token).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError) as exc:
            raise DecryptionFailure(
                f"Failed to decrypt secret. Verify {PASSPHRASE_ENV} and stored data integrity."
            ) from exc

    def _fernet(self, salt: bytes) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=_KDF_ITERATIONS,
        )
        return Fernet(base64.urlsafe_b64encode(kdf.derive(self._passphrase)))


__all__ = [
    "CredentialCipher",
    "DEFAULT_PASSPHRASE",
    "PASSPHRASE_ENV",
    "resolve_passphrase",
]
