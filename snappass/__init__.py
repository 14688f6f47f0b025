"""
Snappass - Self-destructing secret exchange.

A secret is encrypted with a fresh key, the ciphertext is parked in a
store, and the key travels only inside the token handed back to the
caller. The token opens the secret once; afterwards, or once the TTL
elapses, the secret is gone.
"""

__version__ = "1.0.0"

# Separates the storage handle from the key material inside a token.
TOKEN_SEPARATOR = "~"
