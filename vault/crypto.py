from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from snappass.errors import AuthenticationError, MalformedInputError

KEY_SIZE = 32    # AES-256
NONCE_SIZE = 12  # 96-bit GCM nonce
TAG_SIZE = 16    # 128-bit GCM tag
KEY_MATERIAL_SIZE = KEY_SIZE + NONCE_SIZE + TAG_SIZE


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("utf-8")

def b64d(s: str) -> bytes:
    try:
        return base64.b64decode(s.encode("utf-8"), validate=True)
    except binascii.Error as e:
        raise MalformedInputError(f"Invalid base64 input: {e}") from e


@dataclass(frozen=True)
class KeyMaterial:
    """
    Everything needed to open one secret: key || nonce || tag.

    Lives only inside the token; the store never sees it.
    """
    key: bytes
    nonce: bytes
    tag: bytes

    def to_b64(self) -> str:
        return b64e(self.key + self.nonce + self.tag)

    @classmethod
    def from_b64(cls, s: str) -> KeyMaterial:
        raw = b64d(s)
        if len(raw) != KEY_MATERIAL_SIZE:
            raise MalformedInputError(
                f"Key material must be {KEY_MATERIAL_SIZE} bytes, got {len(raw)}"
            )
        return cls(
            key=raw[:KEY_SIZE],
            nonce=raw[KEY_SIZE:KEY_SIZE + NONCE_SIZE],
            tag=raw[KEY_SIZE + NONCE_SIZE:],
        )


def encrypt(plaintext: str) -> Tuple[str, str]:
    """
    Encrypt a secret with AES-256-GCM under a fresh random key and nonce.

    The GCM tag is split off the sealed output so the stored ciphertext has
    exactly the plaintext's byte length; the tag is bundled into the key
    material instead.

    Returns:
        (ciphertext_b64, key_material_b64)
    """
    key = os.urandom(KEY_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return b64e(ciphertext), KeyMaterial(key, nonce, tag).to_b64()

def decrypt(ciphertext_b64: str, key_material_b64: str) -> str:
    """
    Verify and decrypt a secret.

    Raises:
        MalformedInputError: ciphertext or key material is not valid base64,
            or the key material has the wrong length
        AuthenticationError: the GCM tag does not verify
    """
    material = KeyMaterial.from_b64(key_material_b64)
    ciphertext = b64d(ciphertext_b64)
    try:
        plaintext = AESGCM(material.key).decrypt(material.nonce, ciphertext + material.tag, None)
    except InvalidTag as e:
        raise AuthenticationError("Secret failed authentication") from e
    return plaintext.decode("utf-8")
