"""
Custom user model that doubles as the OTP credential record.

This module defines a Django `AbstractUser` subclass (`CustomUser`) keyed by
either an email address or a phone number. Besides the identity, every row
carries the state of the OTP lifecycle for that identifier:

Features:
    - Unique UUID-based username (non-editable, hidden from the user).
    - Identity: `identifier_kind` plus a unique `email` or `phone_number`.
    - Outstanding code: `otp_hash`, `otp_salt`, `otp_expires_at`, set and
      cleared together (enforced by a database check constraint).
    - Anti-abuse counters: `otp_attempt_count`, `blocked_until`,
      `last_otp_sent_at`.
    - Email/phone verification flags.
    - Conversion to and from the immutable `CredentialState` used by the
      policy engine.

Example:
    >>> user = CustomUser.objects.create_user(email="Test@Example.com")
    >>> user.email
    'test@example.com'
    >>> user.to_state().otp is None
    True
"""

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from .constants import IdentifierKind
from .managers import CustomManager
from .policy import CredentialState, OTPSecret
from .utils import Identifier

#: Fields written by every persist of a policy decision.
OTP_STATE_FIELDS = [
    "otp_hash",
    "otp_salt",
    "otp_expires_at",
    "otp_attempt_count",
    "blocked_until",
    "last_otp_sent_at",
    "is_email_verified",
    "is_phone_verified",
]


class CustomUser(AbstractUser):
    """
    User keyed by an email address or a phone number.

    Attributes:
        username (str): Auto-generated UUID-based identifier.
        identifier_kind (str): ``email`` or ``phone``; fixed at creation.
        email (str): Unique, lower-cased email address.
        phone_number (str): Unique phone number without whitespace.
        otp_hash (str): HMAC digest of the outstanding code.
        otp_salt (str): Salt of the outstanding code.
        otp_expires_at (datetime): Expiry of the outstanding code.
        otp_attempt_count (int): Consecutive failed verifications.
        blocked_until (datetime): Verification and issuance are refused
            until this instant.
        last_otp_sent_at (datetime): Time of the last issuance (cooldown).
        is_email_verified (bool): Whether the email address has been verified.
        is_phone_verified (bool): Whether the phone number has been verified.
    """

    username = models.CharField(
        max_length=150,
        unique=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name=_("username"),
    )

    identifier_kind = models.CharField(
        max_length=5,
        choices=IdentifierKind.choices,
        editable=False,
        verbose_name=_("identifier kind"),
    )
    email = models.EmailField(
        max_length=254, unique=True, blank=True, null=True, verbose_name=_("email")
    )
    phone_number = models.CharField(
        max_length=32,
        unique=True,
        blank=True,
        null=True,
        verbose_name=_("phone_number"),
    )

    otp_hash = models.CharField(max_length=64, blank=True, null=True, editable=False)
    otp_salt = models.CharField(max_length=64, blank=True, null=True, editable=False)
    otp_expires_at = models.DateTimeField(blank=True, null=True, editable=False)
    otp_attempt_count = models.PositiveIntegerField(default=0)
    blocked_until = models.DateTimeField(blank=True, null=True)
    last_otp_sent_at = models.DateTimeField(blank=True, null=True)

    is_email_verified = models.BooleanField(default=False)
    is_phone_verified = models.BooleanField(default=False)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = CustomManager()

    def save(self, *args, **kwargs):
        """
        Normalize identifiers and derive the identifier kind, then save.

        The kind is only derived for new rows; an existing record keeps
        the identity it was created with.
        """

        if self.email:
            self.email = self.email.strip().lower()
        if self.phone_number:
            self.phone_number = "".join(self.phone_number.split())
        if not self.identifier_kind:
            self.identifier_kind = (
                IdentifierKind.EMAIL if self.email else IdentifierKind.PHONE
            )

        super().save(*args, **kwargs)

    def __str__(self):
        return self.email or self.phone_number or str(self.id)

    @property
    def identifier(self) -> Identifier:
        """The identifier this record is keyed by."""

        if self.identifier_kind == IdentifierKind.PHONE:
            return Identifier(IdentifierKind.PHONE.value, self.phone_number)
        return Identifier(IdentifierKind.EMAIL.value, self.email)

    def identifiers(self):
        """Every identifier this record can be reached by."""

        identifiers = []
        if self.email:
            identifiers.append(Identifier(IdentifierKind.EMAIL.value, self.email))
        if self.phone_number:
            identifiers.append(Identifier(IdentifierKind.PHONE.value, self.phone_number))
        return identifiers

    def to_state(self, identifier=None) -> CredentialState:
        """
        Snapshot the OTP-related fields for the policy engine.

        Args:
            identifier (Identifier, optional): The identifier the record was
                looked up by. Its kind decides which verified flag a
                successful verification sets. Defaults to `identifier`.

        Raises:
            ValueError: If ``identifier`` does not belong to this record.
        """

        if identifier is None:
            identifier = self.identifier
        elif tuple(identifier) not in self.identifiers():
            raise ValueError("Identifier does not belong to this record.")

        otp = None
        if self.otp_hash and self.otp_salt and self.otp_expires_at:
            otp = OTPSecret(
                hash=self.otp_hash, salt=self.otp_salt, expires_at=self.otp_expires_at
            )

        kind, value = identifier
        return CredentialState(
            kind=kind,
            value=value,
            otp=otp,
            attempt_count=self.otp_attempt_count,
            blocked_until=self.blocked_until,
            last_sent_at=self.last_otp_sent_at,
            email_verified=self.is_email_verified,
            phone_verified=self.is_phone_verified,
        )

    def apply_state(self, state: CredentialState):
        """
        Copy a policy decision's state onto this instance (without saving).

        Raises:
            ValueError: If ``state`` belongs to another identifier.
        """

        if (state.kind, state.value) not in self.identifiers():
            raise ValueError("Credential state does not belong to this record.")

        if state.otp is None:
            self.otp_hash = self.otp_salt = self.otp_expires_at = None
        else:
            self.otp_hash = state.otp.hash
            self.otp_salt = state.otp.salt
            self.otp_expires_at = state.otp.expires_at

        self.otp_attempt_count = state.attempt_count
        self.blocked_until = state.blocked_until
        self.last_otp_sent_at = state.last_sent_at
        self.is_email_verified = state.email_verified
        self.is_phone_verified = state.phone_verified

    class Meta:
        verbose_name = _("user")
        verbose_name_plural = _("users")
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        otp_hash__isnull=True,
                        otp_salt__isnull=True,
                        otp_expires_at__isnull=True,
                    )
                    | Q(
                        otp_hash__isnull=False,
                        otp_salt__isnull=False,
                        otp_expires_at__isnull=False,
                    )
                ),
                name="otp_secret_all_or_none",
            ),
        ]
