"""Asymmetric signing of outgoing request bodies."""

from __future__ import annotations

import base64
from functools import lru_cache

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from bunq_bridge.core.errors import ConfigurationError


@lru_cache(maxsize=32)
def load_private_key(private_key_pem: str) -> rsa.RSAPrivateKey:
    """Parse a PEM encoded RSA private key."""
    if not private_key_pem:
        raise ConfigurationError("A private key is required to sign requests.")
    try:
        key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ConfigurationError("Private key is not a valid unencrypted PEM key.") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigurationError("Bunq request signing requires an RSA private key.")
    return key


def sign_payload(payload: bytes | str, private_key_pem: str) -> str:
    """Sign ``payload`` with RSA-SHA256 (PKCS#1 v1.5) and return base64."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    key = load_private_key(private_key_pem)
    signature = key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def verify_key_pair(private_key_pem: str, public_key_pem: str) -> None:
    """Raise ``ConfigurationError`` unless both PEM blocks belong to one RSA key."""
    private_key = load_private_key(private_key_pem)
    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ConfigurationError("Public key is not a valid PEM key.") from exc
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ConfigurationError("The installation step requires an RSA public key.")
    if public_key.public_numbers() != private_key.public_key().public_numbers():
        raise ConfigurationError("Public key does not match the configured private key.")


class RequestSigner:
    """Sign request bodies with a fixed private key."""

    def __init__(self, *, private_key: str) -> None:
        # Parse eagerly so a bad key fails at construction time.
        load_private_key(private_key)
        self._private_key = private_key

    def sign(self, payload: bytes | str) -> str:
        """Return the base64 signature for ``payload``."""
        return sign_payload(payload, self._private_key)


__all__ = ["RequestSigner", "load_private_key", "sign_payload", "verify_key_pair"]
