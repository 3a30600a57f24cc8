"""Tests for passphrase-based encryption."""

from __future__ import annotations

import pytest

from sksecrets import crypto
from sksecrets.errors import CryptoError, DecryptError


class TestRoundTrip:
    """encrypt/decrypt round trips."""

    @pytest.mark.parametrize("plaintext", [b"", b"k1", bytes(range(256)) * 40])
    def test_roundtrip(self, plaintext: bytes) -> None:
        """Decrypting with the same passphrase restores the plaintext."""
        ciphertext = crypto.encrypt(plaintext, "pw")
        assert crypto.decrypt(ciphertext, "pw") == plaintext

    def test_ciphertext_is_salted(self) -> None:
        """Two encryptions of the same content differ."""
        assert crypto.encrypt(b"same", "pw") != crypto.encrypt(b"same", "pw")

    def test_header(self) -> None:
        """Ciphertext starts with the magic and the scrypt cost."""
        ciphertext = crypto.encrypt(b"x", "pw")
        assert ciphertext.startswith(crypto.MAGIC)
        assert ciphertext[len(crypto.MAGIC)] == 10

    def test_unicode_passphrase(self) -> None:
        ciphertext = crypto.encrypt(b"data", "pässwörd ✓")
        assert crypto.decrypt(ciphertext, "pässwörd ✓") == b"data"


class TestDecryptFailures:
    """Authentication failures surface as DecryptError."""

    def test_wrong_passphrase(self) -> None:
        ciphertext = crypto.encrypt(b"secret", "right")
        with pytest.raises(DecryptError):
            crypto.decrypt(ciphertext, "wrong")

    @pytest.mark.parametrize("offset", [0, 6, 10, 40, -5])
    def test_flipped_byte(self, offset: int) -> None:
        """Flipping any byte is detected, never silently decrypted."""
        ciphertext = bytearray(crypto.encrypt(b"secret", "pw"))
        ciphertext[offset] ^= 0x01
        with pytest.raises(DecryptError):
            crypto.decrypt(bytes(ciphertext), "pw")

    def test_truncated(self) -> None:
        ciphertext = crypto.encrypt(b"secret", "pw")
        with pytest.raises(DecryptError):
            crypto.decrypt(ciphertext[: len(ciphertext) // 2], "pw")

    def test_not_a_ciphertext(self) -> None:
        with pytest.raises(DecryptError, match="bad header"):
            crypto.decrypt(b"plain text file", "pw")

    def test_cost_out_of_range(self) -> None:
        """A corrupted cost byte is rejected before running scrypt."""
        ciphertext = bytearray(crypto.encrypt(b"secret", "pw"))
        ciphertext[len(crypto.MAGIC)] = 60
        with pytest.raises(DecryptError, match="cost"):
            crypto.decrypt(bytes(ciphertext), "pw")

    def test_is_crypto_error(self) -> None:
        assert issubclass(DecryptError, CryptoError)
