"""Encryption, token and storage core of the secret exchange."""
