"""
OTP (One-Time Password) authentication service.

This module wires the OTP flow together:

    request:  normalize → lock/create record → policy → persist → dispatch
    verify:   normalize → lock record → policy → persist → issue token

The policy decision and the write it produces happen inside one database
transaction holding the record's row lock, so two concurrent requests for
the same identifier cannot both act on a stale record. The current time is
read exactly once per request.

Delivery happens after the transaction commits. If it fails the new code
stays stored but unreceived; cooldown and expiry bound the impact and no
rollback is attempted.

Example:
    >>> service = OTPService.from_settings()
    >>> result = service.request_otp("User@Example.com")
    >>> result.identifier
    Identifier(kind='email', value='user@example.com')
    >>> service.verify_otp("user@example.com", result.code).token
    'eyJ0eXAiOiJKV1QiLCJhbGci...'
"""

import logging
from typing import NamedTuple

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import (
    AccountLocked,
    IdentifierNotFound,
    InvalidOTP,
    OTPCooldown,
    OTPExpiredOrAbsent,
    StoreFailure,
)
from .notifications import NotificationDispatcher
from .policy import (
    Cooldown,
    ExpiredOrAbsent,
    InvalidOtp,
    Issued,
    Locked,
    NotFound,
    OTPPolicy,
    OTPPolicyEngine,
    Success,
)
from .store import CredentialStore
from .tokens import TokenIssuer
from .utils import Identifier, mask_identifier, normalize_identifier

logger = logging.getLogger(__name__)


class IssuanceResult(NamedTuple):
    identifier: Identifier
    code: str


class VerificationResult(NamedTuple):
    user: object
    token: str


class OTPService:
    """
    Service for issuing and verifying one-time passcodes.

    Args:
        engine (OTPPolicyEngine): Decides what each request may do.
        store (CredentialStore): Reads and writes credential records.
        dispatcher (NotificationDispatcher): Delivers issued codes.
        token_issuer (TokenIssuer): Signs session tokens.

    Methods:
        request_otp(raw_identifier):
            Issue a code for an identifier and deliver it.

        verify_otp(raw_identifier, code):
            Check a submitted code and issue a session token.
    """

    def __init__(self, engine, store, dispatcher, token_issuer):
        self.engine = engine
        self.store = store
        self.dispatcher = dispatcher
        self.token_issuer = token_issuer

    @classmethod
    def from_settings(cls):
        """Build the service and its collaborators from Django settings."""

        return cls(
            engine=OTPPolicyEngine(OTPPolicy.from_settings()),
            store=CredentialStore(),
            dispatcher=NotificationDispatcher.from_settings(),
            token_issuer=TokenIssuer(),
        )

    def request_otp(self, raw_identifier) -> IssuanceResult:
        """
        Issue a new code for ``raw_identifier`` and send it.

        Unknown identifiers get a fresh record.

        Raises:
            MalformedInput: If the identifier is empty.
            AccountLocked: If the record is locked out.
            OTPCooldown: If a code was sent too recently.
            StoreFailure: If the record cannot be read or written.
            DeliveryFailure: If the code was stored but could not be sent.

        Returns:
            IssuanceResult: The normalized identifier and the plain-text code.
        """

        identifier = normalize_identifier(raw_identifier)
        now = timezone.now()

        try:
            with transaction.atomic():
                user = self.store.find_or_create(identifier)
                decision = self.engine.evaluate_issuance(user.to_state(identifier), now)
                if isinstance(decision, Issued):
                    self.store.persist(user, decision.state)
        except DatabaseError as exc:
            logger.exception("Credential store failed issuing OTP for %s", mask_identifier(identifier.value))
            raise StoreFailure() from exc

        if isinstance(decision, Locked):
            logger.info("OTP request for locked %s refused", mask_identifier(identifier.value))
            raise AccountLocked(decision.remaining_seconds)

        if isinstance(decision, Cooldown):
            logger.info("OTP request for %s refused by cooldown", mask_identifier(identifier.value))
            raise OTPCooldown(decision.remaining_seconds)

        logger.info("OTP issued for %s", mask_identifier(identifier.value))
        self.dispatcher.send(identifier, decision.code)

        return IssuanceResult(identifier=identifier, code=decision.code)

    def verify_otp(self, raw_identifier, code) -> VerificationResult:
        """
        Verify ``code`` for ``raw_identifier``.

        A wrong code still updates the record (attempt counter, possibly a
        lockout) before the error is raised.

        Raises:
            MalformedInput: If the identifier is empty.
            IdentifierNotFound: If no record exists for the identifier.
            AccountLocked: If the record is locked out.
            OTPExpiredOrAbsent: If no unexpired code is outstanding.
            InvalidOTP: If the code does not match.
            StoreFailure: If the record cannot be read or written.

        Returns:
            VerificationResult: The verified user and a signed token.
        """

        identifier = normalize_identifier(raw_identifier)
        now = timezone.now()

        try:
            with transaction.atomic():
                user = self.store.find(identifier)
                state = user.to_state(identifier) if user is not None else None
                decision = self.engine.evaluate_verification(state, code, now)
                if isinstance(decision, (Success, InvalidOtp)):
                    self.store.persist(user, decision.state)
        except DatabaseError as exc:
            logger.exception("Credential store failed verifying OTP for %s", mask_identifier(identifier.value))
            raise StoreFailure() from exc

        if isinstance(decision, NotFound):
            raise IdentifierNotFound()

        if isinstance(decision, Locked):
            raise AccountLocked(decision.remaining_seconds)

        if isinstance(decision, ExpiredOrAbsent):
            raise OTPExpiredOrAbsent()

        if isinstance(decision, InvalidOtp):
            raise InvalidOTP()

        logger.info("OTP verified for %s", mask_identifier(identifier.value))
        return VerificationResult(user=user, token=self.token_issuer.issue(user))
