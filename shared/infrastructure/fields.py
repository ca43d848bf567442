"""
Custom Django model fields for sensitive data.
"""

import logging

from cryptography.fernet import InvalidToken
from django.db import models

from .encryption import encrypt_string, decrypt_string

logger = logging.getLogger(__name__)


class EncryptedTextField(models.TextField):
    """
    TextField that encrypts on save and decrypts on load.

    A value that can no longer be decrypted (rotated ENCRYPTION_KEY) loads as
    an empty string, which callers treat the same as a missing secret.
    """

    description = "Encrypted text field"

    def from_db_value(self, value, expression, connection):
        if value is None or value == '':
            return value
        try:
            return decrypt_string(value)
        except InvalidToken:
            logger.warning(f"Could not decrypt {self.model.__name__}.{self.name}; treating it as empty")
            return ''

    def get_prep_value(self, value):
        if value is None or value == '':
            return ''
        return encrypt_string(str(value))

    def to_python(self, value):
        if value is None:
            return value
        return str(value)
