"""
Encryption utilities

Symmetric encryption (Fernet) for secrets kept in the database,
such as the payout account tokens hosts connect for card payments.
"""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet
from django.conf import settings


def get_encryption_key() -> bytes:
    """
    Derive the Fernet key from settings.ENCRYPTION_KEY

    Any string is accepted: it is hashed down to the 32 bytes
    Fernet expects.
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


@lru_cache(maxsize=4)
def _fernet(key: bytes) -> Fernet:
    return Fernet(key)


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ''
    return _fernet(get_encryption_key()).encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    if not encrypted:
        return ''
    return _fernet(get_encryption_key()).decrypt(encrypted.encode()).decode()
