"""
AES-256-GCM helpers for secrets stored in the database
(gateway credentials, SMTP password).

Packed format: base64(iv[12] | tag[16] | ciphertext)
"""
import base64
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from kamleen.core.config import settings
from kamleen.core.exceptions import ConfigurationError

ENCRYPTED_PREFIX = "enc:"
# shown in admin responses in place of a stored secret
MASKED = "********"
IV_LENGTH = 12
TAG_LENGTH = 16


def _key() -> bytes:
    secret = settings.ENCRYPTION_KEY
    if not secret:
        raise ConfigurationError("ENCRYPTION_KEY is not set")
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt_string(plain: str) -> str:
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_key()).encrypt(iv, plain.encode("utf-8"), None)
    # cryptography appends the tag; store it ahead of the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt_string(packed: str) -> str:
    try:
        raw = base64.b64decode(packed)
    except ValueError as e:
        raise ConfigurationError("Encrypted value is not valid base64") from e
    if len(raw) < IV_LENGTH + TAG_LENGTH:
        raise ConfigurationError("Encrypted value is truncated")
    iv = raw[:IV_LENGTH]
    tag = raw[IV_LENGTH:IV_LENGTH + TAG_LENGTH]
    ciphertext = raw[IV_LENGTH + TAG_LENGTH:]
    try:
        plain = AESGCM(_key()).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise ConfigurationError("Encrypted value failed authentication") from e
    return plain.decode("utf-8")


def seal(value: str) -> str:
    """Encrypt and tag a value for storage; already sealed values pass through."""
    if value.startswith(ENCRYPTED_PREFIX):
        return value
    return ENCRYPTED_PREFIX + encrypt_string(value)


def unseal(value: str) -> str:
    if value.startswith(ENCRYPTED_PREFIX):
        return decrypt_string(value[len(ENCRYPTED_PREFIX):])
    return value
