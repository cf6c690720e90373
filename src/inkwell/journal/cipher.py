"""Record cipher: AES-128 in ECB mode with PKCS#7 padding, base64 text on disk.

The scheme is deterministic and unauthenticated: identical plaintext under
the same key yields identical ciphertext, and tampering is not detected.
It keeps entries unreadable to casual inspection and stays byte-compatible
with existing diaries. Replacing it (e.g. with Fernet) changes the on-disk
format and needs a migration.
"""

from __future__ import annotations

import base64
import binascii
import re

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from inkwell.core.config import DEFAULT_PASSPHRASE
from inkwell.core.exceptions import ConfigurationError, DecryptionError, NotEncryptedError

KEY_SIZE = 16
_BLOCK_BITS = algorithms.AES.block_size
_CIPHERTEXT_RE = re.compile(r"[A-Za-z0-9+/=]+")


def derive_key(passphrase: str) -> bytes:
    """Space-pad or truncate *passphrase* to 16 characters and encode it as UTF-8."""
    key = passphrase.ljust(KEY_SIZE)[:KEY_SIZE].encode("utf-8")
    if len(key) != KEY_SIZE:
        raise ConfigurationError(f"Cipher passphrase must encode to {KEY_SIZE} bytes, got {len(key)}")
    return key


def looks_encrypted(text: str) -> bool:
    """Whether *text* consists solely of base64 alphabet characters."""
    return bool(text) and _CIPHERTEXT_RE.fullmatch(text) is not None


class CipherCodec:
    """Stateless encrypt/decrypt of entry payloads under one fixed key."""

    def __init__(self, passphrase: str = DEFAULT_PASSPHRASE):
        self._key = derive_key(passphrase)

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.ECB())

    def encrypt(self, plaintext: bytes) -> str:
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher().encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(encrypted).decode("ascii")

    def decrypt(self, text: str) -> bytes:
        """Decrypt base64 ciphertext back to plaintext bytes.

        Raises:
            NotEncryptedError: If *text* contains characters outside the
                base64 alphabet (or is empty).
            DecryptionError: If the payload is not valid ciphertext under
                this key (bad base64, block length, or padding).
        """
        if not looks_encrypted(text):
            raise NotEncryptedError("Not encrypted")
        try:
            raw = base64.b64decode(text, validate=True)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Payload is not valid ciphertext: {e}") from e

    def encrypt_text(self, text: str) -> str:
        return self.encrypt(text.encode("utf-8"))

    def decrypt_text(self, text: str) -> str:
        try:
            return self.decrypt(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Decrypted payload is not UTF-8: {e}") from e


# Module-level default codec
_default_codec: CipherCodec | None = None


def get_codec() -> CipherCodec:
    """Get or create the process-wide codec keyed by the built-in passphrase."""
    global _default_codec
    if _default_codec is None:
        _default_codec = CipherCodec()
    return _default_codec


def encrypt(plaintext: bytes) -> str:
    return get_codec().encrypt(plaintext)


def decrypt(text: str) -> bytes:
    return get_codec().decrypt(text)
