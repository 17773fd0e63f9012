"""
Symmetric encryption of family data before it reaches storage.

AES-256-CBC with PKCS7 padding; every call draws a fresh IV which is
prepended to the ciphertext before base64 encoding. Results are cached by
content hash so repeated payloads skip the cipher work.
"""

import base64
import binascii
import hashlib
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ...core.caching import DecisionCache
from ...core.exceptions import CryptoError
from ...core.logging import get_logger

logger = get_logger(__name__)

ENCRYPT_CACHE_PREFIX = "encrypt:"
DECRYPT_CACHE_PREFIX = "decrypt:"

KEY_SIZE_BYTES = 32
IV_SIZE_BYTES = 16
BLOCK_SIZE_BITS = 128


def derive_key(secret: str) -> bytes:
    """Derive a 256-bit key from a configured secret."""
    return hashlib.sha256(secret.encode("utf-8")).digest()


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


class CryptoGateway:
    """Encrypts and decrypts opaque string payloads with one process-lifetime key."""

    def __init__(
        self,
        cache: DecisionCache,
        secret: Optional[str] = None,
        cache_ttl_seconds: float = 600.0,
    ):
        if secret:
            self._key = derive_key(secret)
        else:
            # TODO: source the key from the platform secret store once deployments have one
            self._key = os.urandom(KEY_SIZE_BYTES)
            logger.warning(
                "No encryption secret configured; using an ephemeral key",
                component="CryptoGateway",
            )
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def _encrypt_raw(self, plaintext: str) -> str:
        try:
            data = plaintext.encode("utf-8", "surrogatepass")
        except (AttributeError, UnicodeEncodeError) as e:
            raise CryptoError("encrypt", str(e), component="CryptoGateway") from e

        iv = os.urandom(IV_SIZE_BYTES)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(data) + padder.finalize()

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def _decrypt_raw(self, encoded: str) -> str:
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise CryptoError("decrypt", f"invalid base64: {e}") from e

        body_length = len(raw) - IV_SIZE_BYTES
        if body_length <= 0 or body_length % (BLOCK_SIZE_BITS // 8):
            raise CryptoError("decrypt", f"invalid ciphertext length {len(raw)}")

        iv, ciphertext = raw[:IV_SIZE_BYTES], raw[IV_SIZE_BYTES:]
        decryptor = self._cipher(iv).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8", "surrogatepass")
        except ValueError as e:
            # Bad padding or bad UTF-8 almost always means a different key
            raise CryptoError("decrypt", str(e)) from e

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext``; identical payloads within the TTL share a ciphertext.

        Raises:
            CryptoError: if ``plaintext`` cannot be encoded
        """
        if not isinstance(plaintext, str):
            raise CryptoError(
                "encrypt",
                f"expected str, got {type(plaintext).__name__}",
                component="CryptoGateway",
            )

        cache_key = f"{ENCRYPT_CACHE_PREFIX}{content_hash(plaintext)}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        result = self._encrypt_raw(plaintext)
        self.cache.put(cache_key, result, self.cache_ttl_seconds)
        return result

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt ``ciphertext``; unreadable input is returned unchanged."""
        if not isinstance(ciphertext, str):
            logger.error(
                "Failed to decrypt family data",
                reason=f"expected str, got {type(ciphertext).__name__}",
            )
            return ciphertext

        cache_key = f"{DECRYPT_CACHE_PREFIX}{content_hash(ciphertext)}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        try:
            result = self._decrypt_raw(ciphertext)
        except CryptoError as e:
            logger.error("Failed to decrypt family data", error=str(e))
            return ciphertext

        self.cache.put(cache_key, result, self.cache_ttl_seconds)
        return result
