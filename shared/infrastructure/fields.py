"""
Custom Django model fields for sensitive data.

EncryptedCharField stores values encrypted and hands plaintext
back to Python code. Used for host payout tokens.
"""

import logging

from cryptography.fernet import InvalidToken
from django.db import models

from .encryption import encrypt_string, decrypt_string

logger = logging.getLogger(__name__)


class EncryptedCharField(models.TextField):
    """
    Text field that encrypts on save and decrypts on load.

    Ciphertext is longer than the plaintext, so storage is a TextField;
    max_length is only kept for form validation.
    """

    description = "Encrypted text field"

    def __init__(self, *args, **kwargs):
        self.max_length_validation = kwargs.pop('max_length', None)
        super().__init__(*args, **kwargs)

    def from_db_value(self, value, expression, connection):
        if value is None:
            return value
        try:
            return decrypt_string(value)
        except InvalidToken:
            # Rotated ENCRYPTION_KEY: treat the secret as unset
            logger.warning(f"Could not decrypt value of {self.model.__name__}.{self.name}")
            return ''

    def get_prep_value(self, value):
        if value is None or value == '':
            return ''
        return encrypt_string(str(value))

    def to_python(self, value):
        if value is None:
            return value
        return str(value)
