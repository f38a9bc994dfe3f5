"""Encryption of signed documents at rest.

Documents are sealed with AES-256-GCM. Each document carries its own
metadata (algorithm, IV, key version) so documents written under an older
key stay readable after the current key version moves on; rotation means
adding a new version to ``DOCUMENT_ENCRYPTION_KEYS`` and pointing
``DOCUMENT_ENCRYPTION_KEY_VERSION`` at it.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from exceptions import DecryptionFailure, StorageFailure

logger = logging.getLogger(__name__)

ALGORITHM = "AES-256-GCM"
IV_SIZE = 12
KEY_SIZE = 32


@dataclass(frozen=True)
class EncryptionMetadata:
    algorithm: str
    iv: str
    key_version: int


class DocumentCipher:
    def __init__(self, keys: Dict[int, bytes], current_version: int):
        if current_version not in keys:
            raise ValueError(f"Encryption key version {current_version} is not configured")
        for version, key in keys.items():
            if len(key) != KEY_SIZE:
                raise ValueError(f"Encryption key version {version} must be {KEY_SIZE} bytes")
        self._keys = dict(keys)
        self.current_version = current_version

    def encrypt(self, plaintext: bytes) -> tuple[bytes, EncryptionMetadata]:
        iv = os.urandom(IV_SIZE)
        try:
            ciphertext = AESGCM(self._keys[self.current_version]).encrypt(iv, plaintext, None)
        except Exception as e:
            raise StorageFailure(f"Failed to encrypt document: {e}") from e
        metadata = EncryptionMetadata(
            algorithm=ALGORITHM,
            iv=base64.b64encode(iv).decode("ascii"),
            key_version=self.current_version,
        )
        return ciphertext, metadata

    def decrypt(self, ciphertext: bytes, metadata: EncryptionMetadata) -> bytes:
        if metadata.algorithm != ALGORITHM:
            raise DecryptionFailure(f"Unsupported encryption algorithm: {metadata.algorithm}")
        key = self._keys.get(metadata.key_version)
        if key is None:
            raise DecryptionFailure(f"Encryption key version {metadata.key_version} is not available")
        try:
            iv = base64.b64decode(metadata.iv)
            return AESGCM(key).decrypt(iv, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionFailure("Document ciphertext failed authentication") from e
        except (ValueError, TypeError) as e:
            raise DecryptionFailure(f"Failed to decrypt document: {e}") from e


def generate_encryption_key() -> str:
    """Returns a new base64 key suitable for ``DOCUMENT_ENCRYPTION_KEYS``."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")


def parse_keyring(raw: str) -> Dict[int, bytes]:
    """Parses ``"1:<base64>,2:<base64>"`` into ``{1: key, 2: key}``."""
    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        version, sep, encoded = entry.partition(":")
        if not sep:
            raise ValueError("Encryption keys must be written as <version>:<base64 key>")
        keys[int(version)] = base64.b64decode(encoded.strip())
    return keys


def build_cipher(settings) -> DocumentCipher:
    raw: Optional[str] = settings.DOCUMENT_ENCRYPTION_KEYS
    if not raw:
        if settings.is_production:
            raise RuntimeError("DOCUMENT_ENCRYPTION_KEYS must be set in production")
        logger.warning(
            "DOCUMENT_ENCRYPTION_KEYS not configured. Using an ephemeral key; "
            "documents signed in this run cannot be decrypted after a restart."
        )
        return DocumentCipher({1: AESGCM.generate_key(bit_length=256)}, 1)

    keys = parse_keyring(raw)
    if not keys:
        raise ValueError("DOCUMENT_ENCRYPTION_KEYS is empty")
    version = settings.DOCUMENT_ENCRYPTION_KEY_VERSION or max(keys)
    return DocumentCipher(keys, version)
