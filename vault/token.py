"""
Token codec.

A token is ``handle ~ urlencode(key_material)`` where ``+`` in the base64
key material is swapped for ``-`` first, so the token survives copy/paste
and URL path segments. Base64 never produces ``-``, which makes the swap
exactly reversible.
"""

from __future__ import annotations

from typing import Tuple
from urllib.parse import quote_plus, unquote_plus

from snappass import TOKEN_SEPARATOR
from snappass.errors import MalformedInputError


def encode_token(handle: str, key_material: str) -> str:
    if TOKEN_SEPARATOR in handle:
        raise MalformedInputError(f"Handle must not contain {TOKEN_SEPARATOR!r}")
    encoded = quote_plus(key_material.replace("+", "-"), safe="")
    return f"{handle}{TOKEN_SEPARATOR}{encoded}"

def decode_token(token: str) -> Tuple[str, str]:
    """
    Split a token into (handle, key_material).

    Only the first separator counts. A token without one yields empty key
    material, which decryption rejects as malformed.
    """
    handle, sep, rest = token.partition(TOKEN_SEPARATOR)
    if not sep:
        return handle, ""
    return handle, unquote_plus(rest).replace("-", "+")
