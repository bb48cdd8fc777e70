"""
This module defines the enumerations and fixed values shared by the OTP
authentication flow.

By using Django's `models.TextChoices` for the identifier kind, we ensure:
- Readable values in the database (`email` / `phone`).
- Enforced consistency (only predefined kinds can be stored).
- Easy integration with serializers and the admin panel.
"""

from django.db import models

#: Number of digits in every issued code.
OTP_CODE_LENGTH = 6

#: Number of random bytes used for each per-code salt.
OTP_SALT_BYTES = 16


class IdentifierKind(models.TextChoices):
    """
    Enumeration of the identifier kinds a credential record can be keyed by.

    Attributes:
        EMAIL (str): The record is keyed by an email address; codes are
            delivered by email.
        PHONE (str): The record is keyed by a phone number; codes are
            delivered by SMS.
    """

    EMAIL = "email", "Email"
    PHONE = "phone", "Phone"
