"""
Encryption utilities

Symmetric encryption for secrets kept at rest, such as calendar refresh
tokens. Uses Fernet (AES in CBC mode with an HMAC) from ``cryptography``.
"""

import base64
import hashlib

from cryptography.fernet import Fernet
from django.conf import settings


def get_encryption_key() -> bytes:
    """
    Get encryption key from settings

    Any string is accepted and stretched to a valid Fernet key with SHA-256,
    so a plain passphrase in the environment works as well as a generated key.
    """
    key = getattr(settings, 'ENCRYPTION_KEY', None)

    if not key:
        raise ValueError(
            "ENCRYPTION_KEY not configured in settings. "
            "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )

    if isinstance(key, str):
        key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())

    return key


def get_fernet() -> Fernet:
    return Fernet(get_encryption_key())


def encrypt_string(plaintext: str) -> str:
    """Encrypt a string into a URL-safe token"""
    if not plaintext:
        return ''
    return get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    """
    Decrypt a token produced by ``encrypt_string``

    Raises ``cryptography.fernet.InvalidToken`` when the key does not match.
    """
    if not encrypted:
        return ''
    return get_fernet().decrypt(encrypted.encode()).decode()
