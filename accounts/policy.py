"""
OTP lifecycle state machine and anti-abuse policy.

The engine is a pure function of (credential state, current time, policy):
it never touches the database, the clock or the network. Each evaluation
returns a decision object; decisions that change the record carry the
complete new `CredentialState` to persist.

Per record there are three logical states:

    Idle    no outstanding code, not locked
    Issued  a code is outstanding and unexpired
    Locked  ``now < blocked_until``

    Idle   --issue-->               Issued
    Issued --verify ok-->           Idle
    Issued --expire, issue-->       Issued (new code)
    Issued --max failures-->        Locked
    Locked --time passes, issue-->  Issued

Example:
    >>> engine = OTPPolicyEngine(OTPPolicy())
    >>> decision = engine.evaluate_issuance(CredentialState.empty("email", "a@b.co"), now)
    >>> isinstance(decision, Issued)
    True
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Union

from django.conf import settings

from .codec import OTPCodec
from .constants import IdentifierKind
from .utils import mask_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OTPPolicy:
    """
    Tunable limits of the OTP policy.

    Attributes:
        resend_cooldown (timedelta): Minimum interval between two issuances.
        validity (timedelta): Lifetime of an issued code.
        max_attempts (int): Consecutive failures that trigger a lockout.
        lockout_duration (timedelta): How long a lockout lasts.
    """

    resend_cooldown: timedelta = timedelta(seconds=30)
    validity: timedelta = timedelta(minutes=5)
    max_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=10)

    @classmethod
    def from_settings(cls):
        """Build the policy from the ``OTP_*`` Django settings."""

        return cls(
            resend_cooldown=timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SEC),
            validity=timedelta(minutes=settings.OTP_EXP_MINUTES),
            max_attempts=settings.MAX_OTP_ATTEMPTS,
            lockout_duration=timedelta(minutes=settings.OTP_LOCKOUT_MINUTES),
        )


@dataclass(frozen=True)
class OTPSecret:
    """
    The outstanding code of a record.

    Hash, salt and expiry live together so a record can only ever hold all
    of them or none of them.
    """

    hash: str
    salt: str
    expires_at: datetime


@dataclass(frozen=True)
class CredentialState:
    """Immutable snapshot of a credential record, as seen by the engine."""

    kind: str
    value: str
    otp: Optional[OTPSecret] = None
    attempt_count: int = 0
    blocked_until: Optional[datetime] = None
    last_sent_at: Optional[datetime] = None
    email_verified: bool = False
    phone_verified: bool = False

    @classmethod
    def empty(cls, kind, value):
        return cls(kind=kind, value=value)

    def is_locked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now


def _remaining_seconds(delta: timedelta) -> int:
    return max(0, math.ceil(delta.total_seconds()))


@dataclass(frozen=True)
class Issued:
    """A new code was generated; ``code`` goes to the dispatcher only."""

    code: str
    state: CredentialState


@dataclass(frozen=True)
class Cooldown:
    remaining: timedelta

    @property
    def remaining_seconds(self) -> int:
        return _remaining_seconds(self.remaining)


@dataclass(frozen=True)
class Locked:
    remaining: timedelta

    @property
    def remaining_seconds(self) -> int:
        return _remaining_seconds(self.remaining)


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class ExpiredOrAbsent:
    pass


@dataclass(frozen=True)
class InvalidOtp:
    """
    Wrong code. ``state`` must still be persisted.

    ``locked`` is for internal use (logging, tests); callers report both
    cases identically.
    """

    state: CredentialState
    locked: bool = False


@dataclass(frozen=True)
class Success:
    state: CredentialState


IssuanceDecision = Union[Issued, Cooldown, Locked]
VerificationDecision = Union[Success, InvalidOtp, ExpiredOrAbsent, Locked, NotFound]


class OTPPolicyEngine:
    """
    Decide whether an issuance or a verification is permitted.

    Args:
        policy (OTPPolicy): The limits to enforce.
        codec: Code generator and verifier, `OTPCodec` by default.
    """

    def __init__(self, policy: OTPPolicy, codec=OTPCodec):
        self.policy = policy
        self.codec = codec

    def evaluate_issuance(
        self, state: CredentialState, now: datetime
    ) -> IssuanceDecision:
        """
        Evaluate an OTP request.

        Rules, in order:
            1. An active lockout rejects with `Locked`. Lockout wins over
               cooldown.
            2. A code sent less than ``resend_cooldown`` ago rejects with
               `Cooldown`.
            3. Otherwise a new code is generated, any previous code is
               replaced and the attempt counter is reset.

        Returns:
            Issued | Cooldown | Locked
        """

        if state.is_locked(now):
            return Locked(remaining=state.blocked_until - now)

        if state.last_sent_at is not None:
            elapsed = now - state.last_sent_at
            if elapsed < self.policy.resend_cooldown:
                return Cooldown(remaining=self.policy.resend_cooldown - elapsed)

        code = self.codec.generate_code()
        salt = self.codec.new_salt()
        secret = OTPSecret(
            hash=self.codec.hash_code(code, salt),
            salt=salt,
            expires_at=now + self.policy.validity,
        )

        return Issued(
            code=code,
            state=replace(state, otp=secret, attempt_count=0, last_sent_at=now),
        )

    def evaluate_verification(
        self, state: Optional[CredentialState], candidate: str, now: datetime
    ) -> VerificationDecision:
        """
        Evaluate a code submitted for verification.

        Rules, in order:
            1. Unknown record → `NotFound`.
            2. Active lockout → `Locked`, even for the correct code.
            3. No code outstanding, or ``now`` at/after its expiry →
               `ExpiredOrAbsent`.
            4. Matching code → `Success`; the code, attempt counter and
               any lockout are cleared and the verified flag for the
               kind of identifier used is set.
            5. Wrong code → `InvalidOtp`; the attempt counter grows and on
               reaching ``max_attempts`` the record is locked, the code is
               discarded and the counter resets.

        Returns:
            Success | InvalidOtp | ExpiredOrAbsent | Locked | NotFound
        """

        if state is None:
            return NotFound()

        if state.is_locked(now):
            return Locked(remaining=state.blocked_until - now)

        if state.otp is None or now >= state.otp.expires_at:
            return ExpiredOrAbsent()

        if self.codec.verify_code(candidate, state.otp.salt, state.otp.hash):
            verified = {
                "email_verified": state.email_verified
                or state.kind == IdentifierKind.EMAIL,
                "phone_verified": state.phone_verified
                or state.kind == IdentifierKind.PHONE,
            }
            return Success(
                state=replace(
                    state, otp=None, attempt_count=0, blocked_until=None, **verified
                )
            )

        attempts = state.attempt_count + 1

        if attempts >= self.policy.max_attempts:
            logger.warning(
                "Locking %s for %s after %d failed attempts",
                mask_identifier(state.value),
                self.policy.lockout_duration,
                attempts,
            )
            return InvalidOtp(
                state=replace(
                    state,
                    otp=None,
                    attempt_count=0,
                    blocked_until=now + self.policy.lockout_duration,
                ),
                locked=True,
            )

        logger.info(
            "Invalid OTP for %s, %d attempt(s) left",
            mask_identifier(state.value),
            self.policy.max_attempts - attempts,
        )
        return InvalidOtp(state=replace(state, attempt_count=attempts))
