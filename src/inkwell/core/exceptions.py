"""
Inkwell exception hierarchy.

All inkwell exceptions inherit from InkwellError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""


class InkwellError(Exception):
    """Base exception class for all inkwell errors."""


class ConfigurationError(InkwellError):
    """Raised for configuration errors (missing keys, invalid values)."""


class InitError(InkwellError):
    """Raised when the entries directory cannot be created."""


class EntryIOError(InkwellError):
    """Raised for entry read, write, delete and listing failures."""


class EntryNotFoundError(InkwellError, KeyError):
    """Raised when an entry id is not present in the index."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class DecryptionError(InkwellError):
    """Raised when a payload cannot be decrypted."""


class NotEncryptedError(DecryptionError):
    """Raised when a payload is not in the ciphertext alphabet at all."""
