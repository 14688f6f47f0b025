"""Error taxonomy for the secret exchange core."""

from __future__ import annotations


class SnappassError(Exception):
    """Base class for all secret exchange failures."""
    pass


class MalformedInputError(SnappassError):
    """Token, key material or ciphertext is not well-formed."""
    pass


class AuthenticationError(SnappassError):
    """AEAD tag did not verify: tampered ciphertext or wrong key material."""
    pass


class DuplicateHandleError(SnappassError):
    """A record with the same storage handle already exists."""
    pass


class CorruptStateError(SnappassError):
    """A persisted record cannot be read back (e.g. unparseable timestamp)."""
    pass
