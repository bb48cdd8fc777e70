"""
Custom user manager for handling user creation with email or phone number.

This module provides a custom `BaseUserManager` implementation (`CustomManager`)
that supports accounts keyed by either an email address or a phone number,
plus the identifier lookups the credential store is built on.

Features:
    - Users can be created with either email, phone number, or both.
    - Emails are normalized using Django’s built-in utilities.
    - Accounts created without a password get an unusable one (OTP-only).
    - Automatically generates a UUID-based username if none is provided.
    - Idempotent `get_or_create_by_identifier` that survives creation races.

Example:
    >>> user, created = CustomUser.objects.get_or_create_by_identifier(
    ...     "email", "test@example.com"
    ... )
    >>> created
    True
    >>> CustomUser.objects.find_by_identifier("email", "test@example.com") == user
    True
"""

import uuid

from django.contrib.auth.models import BaseUserManager
from django.db import IntegrityError, transaction
from django.utils.translation import gettext_lazy as _

from .constants import IdentifierKind


class CustomManager(BaseUserManager):
    """
    Custom manager for users identified by email or phone number.

    Methods:
        identifier_lookup(kind, value):
            Build the ORM filter matching an identifier.

        find_by_identifier(kind, value):
            Return the user for an identifier, or None.

        get_or_create_by_identifier(kind, value):
            Return ``(user, created)`` for an identifier.

        create_user(password=None, **extra_fields):
            Creates and saves a regular user.

        create_superuser(password, **extra_fields):
            Creates and saves a superuser.
    """

    # Serialized into migrations as the model's `objects` manager
    use_in_migrations = True

    @staticmethod
    def identifier_lookup(kind, value):
        """
        Map an identifier onto the field that stores it.

        Raises:
            ValueError: If ``kind`` is not a known identifier kind.
        """

        if kind == IdentifierKind.EMAIL:
            return {"email": value}
        if kind == IdentifierKind.PHONE:
            return {"phone_number": value}
        raise ValueError(f"Unknown identifier kind: {kind}")

    def find_by_identifier(self, kind, value):
        return self.filter(**self.identifier_lookup(kind, value)).first()

    def get_or_create_by_identifier(self, kind, value):
        """
        Return the user for an identifier, creating it if needed.

        Two concurrent calls for the same new identifier both succeed: the
        loser of the insert race hits the unique constraint and re-reads the
        winner's row.

        Returns:
            tuple: ``(user, created)``.
        """

        lookup = self.identifier_lookup(kind, value)

        user = self.filter(**lookup).first()
        if user is not None:
            return user, False

        try:
            with transaction.atomic():
                return self.create_user(**lookup), True
        except IntegrityError:
            return self.get(**lookup), False

    def create_user(self, password=None, **extra_fields):
        """
        Create and return a new user with the given credentials.

        Args:
            password (str, optional): The raw password for the user. If
                None, the user gets an unusable password and can only
                sign in with a one-time code.
            **extra_fields: Additional fields for the user model, which may include:
                - email (str, optional): The user’s email address.
                - phone_number (str, optional): The user’s phone number.
                - username (str, optional): Defaults to a UUID.

        Raises:
            ValueError: If neither `email` nor `phone_number` is provided.

        Returns:
            CustomUser: The created user instance.
        """

        if not extra_fields.get("email") and not extra_fields.get("phone_number"):
            raise ValueError(_("Either Email or Phone number must be set"))

        if email := extra_fields.get("email"):
            extra_fields["email"] = self.normalize_email(email).strip().lower()

        if "username" not in extra_fields:
            extra_fields["username"] = str(uuid.uuid4())

        user = self.model(**extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, password, **extra_fields):
        """
        Create and return a new superuser with the given credentials.

        Raises:
            ValueError:
                - If `is_staff` is not True.
                - If `is_superuser` is not True.
                - If neither `email` nor `phone_number` is provided.
        """

        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError(_("Superuser must have is_staff=True."))
        if extra_fields.get("is_superuser") is not True:
            raise ValueError(_("Superuser must have is_superuser=True."))

        # A superuser must have a primary identifier to log into the admin panel
        if not extra_fields.get("email") and not extra_fields.get("phone_number"):
            raise ValueError(_("Superuser must have an email or phone number."))

        return self.create_user(password, **extra_fields)
