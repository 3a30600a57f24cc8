"""
Passphrase-based authenticated encryption for exported secrets.

Built on scrypt for key derivation and Fernet (AES-128-CBC +
HMAC-SHA256) for the ciphertext, both from ``cryptography``.

Ciphertext layout:
    MAGIC (6 bytes) | log2(n) (1 byte) | salt (16 bytes) | Fernet token

A wrong passphrase and a tampered ciphertext both surface as
DecryptError; authenticated encryption cannot tell them apart.
"""

from __future__ import annotations

import base64
import logging
import os

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import DecryptError, EncryptError

logger = logging.getLogger("sksecrets.crypto")

MAGIC = b"SKSEC1"
SALT_SIZE = 16
SCRYPT_LOG_N = 15
SCRYPT_R = 8
SCRYPT_P = 1

# Bounds accepted from a ciphertext header. A corrupted cost byte must
# not make scrypt allocate unbounded memory.
MIN_LOG_N = 10
MAX_LOG_N = 20

_HEADER_SIZE = len(MAGIC) + 1 + SALT_SIZE


def _derive_fernet_key(passphrase: str, salt: bytes, log_n: int) -> bytes:
    """Derive a Fernet key from a passphrase with scrypt.

    Args:
        passphrase: User passphrase.
        salt: Random per-file salt.
        log_n: Base-2 logarithm of the scrypt cost parameter.

    Returns:
        URL-safe base64 encoded 32-byte key, as Fernet expects.
    """
    kdf = Scrypt(salt=salt, length=32, n=2**log_n, r=SCRYPT_R, p=SCRYPT_P)
    raw = kdf.derive(passphrase.encode("utf-8"))
    return base64.urlsafe_b64encode(raw)


def encrypt(plaintext: bytes, passphrase: str) -> bytes:
    """Encrypt bytes with a passphrase.

    Args:
        plaintext: Content to encrypt.
        passphrase: Passphrase used to derive the key.

    Returns:
        Ciphertext bytes in the SKSEC1 layout.

    Raises:
        EncryptError: If key derivation or encryption fails.
    """
    log_n = SCRYPT_LOG_N
    salt = os.urandom(SALT_SIZE)
    try:
        key = _derive_fernet_key(passphrase, salt, log_n)
        token = Fernet(key).encrypt(bytes(plaintext))
    except (ValueError, TypeError, MemoryError, UnsupportedAlgorithm) as exc:
        raise EncryptError(f"encryption failed: {exc}") from exc

    return MAGIC + bytes([log_n]) + salt + token


def decrypt(ciphertext: bytes, passphrase: str) -> bytes:
    """Decrypt bytes produced by :func:`encrypt`.

    Args:
        ciphertext: Content in the SKSEC1 layout.
        passphrase: Passphrase used at encryption time.

    Returns:
        The original plaintext.

    Raises:
        DecryptError: On a wrong passphrase or corrupted input.
    """
    if len(ciphertext) <= _HEADER_SIZE or not ciphertext.startswith(MAGIC):
        raise DecryptError("not an SKSecrets ciphertext (bad header)")

    log_n = ciphertext[len(MAGIC)]
    if not MIN_LOG_N <= log_n <= MAX_LOG_N:
        raise DecryptError(f"unsupported scrypt cost parameter 2**{log_n}")

    salt = ciphertext[len(MAGIC) + 1:_HEADER_SIZE]
    token = ciphertext[_HEADER_SIZE:]

    try:
        key = _derive_fernet_key(passphrase, salt, log_n)
        return Fernet(key).decrypt(token)
    except InvalidToken as exc:
        raise DecryptError(
            "decryption failed: wrong passphrase or corrupted content"
        ) from exc
    except (ValueError, MemoryError, UnsupportedAlgorithm) as exc:
        raise DecryptError(f"decryption failed: {exc}") from exc
