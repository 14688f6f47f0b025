"""
Secret exchange facade.

Ties the cipher, the token codec and a store together:

    set_secret:  encrypt -> store.put -> encode_token
    get_secret:  decode_token -> store.retrieve -> decrypt
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional, Union

from snappass.errors import AuthenticationError, MalformedInputError
from snappass.models import TimeToLive
from snappass.settings import Settings

from .clock import Clock
from .crypto import decrypt, encrypt
from .sqlite_store import SqliteStore, build_engine
from .store import MemoryStore, SecretStore
from .token import decode_token, encode_token

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz!@#$§%-_<>&*()ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MAX_PASSWORD_LENGTH = 1024


class SecretService:
    def __init__(self, store: SecretStore):
        self.store = store

    def set_secret(self, plaintext: str, ttl: Union[str, int, TimeToLive] = TimeToLive.HOUR) -> str:
        """Encrypt and park a secret; return the token that opens it once."""
        ttl = TimeToLive.parse(ttl)
        ciphertext, key_material = encrypt(plaintext)
        handle = self.store.put(ciphertext, ttl)
        logger.info(f"Stored secret [{handle}] for {ttl.value}")
        return encode_token(handle, key_material)

    def get_secret(self, token: str) -> Optional[str]:
        """
        Open a secret. The stored record is consumed whether or not the key
        material turns out to be valid.

        Returns:
            The plaintext, or None if the secret is unknown, already read or
            expired.

        Raises:
            MalformedInputError: token carries no usable key material
            AuthenticationError: key material does not open the ciphertext
        """
        handle, key_material = decode_token(token)
        ciphertext = self.store.retrieve(handle)
        if ciphertext is None:
            return None
        try:
            return decrypt(ciphertext, key_material)
        except MalformedInputError as e:
            logger.warning(f"Rejected malformed token for key [{handle}]: {e}")
            raise
        except AuthenticationError:
            logger.warning(f"Secret for key [{handle}] failed authentication")
            raise

    def has_secret(self, token: str) -> bool:
        """Check whether a token still points at a stored secret, without consuming it."""
        handle, _ = decode_token(token)
        if not handle:
            return False
        return self.store.has(handle)


def build_store(settings: Settings, clock: Optional[Clock] = None) -> SecretStore:
    """Select the store backend named in configuration."""
    if settings.STORE == "sqlite":
        store = SqliteStore(build_engine(settings.DATABASE_URL), clock=clock)
        if settings.CREATE_SCHEMA:
            store.create_schema()
        logger.info(f"Using durable secret store at {settings.DATABASE_URL}")
        return store
    logger.info("Using volatile in-memory secret store")
    return MemoryStore(clock=clock)


def generate_password(length: int = 24) -> str:
    if not 1 <= length <= MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be between 1 and {MAX_PASSWORD_LENGTH}")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
