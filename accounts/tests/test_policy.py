"""
Unit tests for the OTP policy engine in `accounts.policy`.

The engine is pure, so these tests need neither a database nor a clock:
every evaluation receives an explicit `CredentialState` and ``now``.

The tests cover:
    - Issuance: fresh record, cooldown, lockout priority, re-issue after
      expiry and after lockout.
    - Verification: unknown record, lockout, expiry boundary, success
      clearing, attempt counting and lockout trigger.
    - The full brute-force scenario (5 failures, then the correct code is
      refused while locked).
    - The all-or-none invariant on the outstanding code.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from accounts.codec import OTPCodec
from accounts.policy import (
    Cooldown,
    CredentialState,
    ExpiredOrAbsent,
    InvalidOtp,
    Issued,
    Locked,
    NotFound,
    OTPPolicy,
    OTPPolicyEngine,
    OTPSecret,
    Success,
)

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def policy():
    return OTPPolicy()


@pytest.fixture
def engine(policy):
    return OTPPolicyEngine(policy)


@pytest.fixture
def email_state():
    return CredentialState.empty("email", "user@example.com")


@pytest.fixture
def issued(engine, email_state):
    """A record with a code issued at T0, plus that code."""

    decision = engine.evaluate_issuance(email_state, T0)
    return decision.state, decision.code


def wrong(code):
    return "000000" if code != "000000" else "111111"


class TestOTPPolicy:
    def test_defaults(self, policy):
        assert policy.resend_cooldown == timedelta(seconds=30)
        assert policy.validity == timedelta(minutes=5)
        assert policy.max_attempts == 5
        assert policy.lockout_duration == timedelta(minutes=10)

    def test_from_settings(self, settings):
        settings.OTP_RESEND_COOLDOWN_SEC = 60
        settings.OTP_EXP_MINUTES = 2
        settings.MAX_OTP_ATTEMPTS = 3
        settings.OTP_LOCKOUT_MINUTES = 15

        assert OTPPolicy.from_settings() == OTPPolicy(
            resend_cooldown=timedelta(seconds=60),
            validity=timedelta(minutes=2),
            max_attempts=3,
            lockout_duration=timedelta(minutes=15),
        )


class TestEvaluateIssuance:
    def test_fresh_record_is_issued(self, engine, email_state):
        """
        A never-used record gets a code: secret and expiry set together,
        attempts reset, send time recorded.
        """

        decision = engine.evaluate_issuance(email_state, T0)

        assert isinstance(decision, Issued)
        state = decision.state
        assert state.otp is not None
        assert state.otp.expires_at == T0 + timedelta(minutes=5)
        assert state.attempt_count == 0
        assert state.last_sent_at == T0
        assert OTPCodec.verify_code(decision.code, state.otp.salt, state.otp.hash)

    def test_issuance_uses_injected_codec(self, policy, email_state, mocker):
        codec = mocker.Mock()
        codec.generate_code.return_value = "123456"
        codec.new_salt.return_value = "salt"
        codec.hash_code.return_value = "digest"

        decision = OTPPolicyEngine(policy, codec=codec).evaluate_issuance(email_state, T0)

        assert decision.code == "123456"
        assert decision.state.otp == OTPSecret("digest", "salt", T0 + policy.validity)
        codec.hash_code.assert_called_once_with("123456", "salt")

    def test_cooldown(self, engine, issued):
        state, _code = issued

        decision = engine.evaluate_issuance(state, at(10))

        assert isinstance(decision, Cooldown)
        assert decision.remaining == timedelta(seconds=20)
        assert decision.remaining_seconds == 20

    def test_cooldown_remaining_decreases(self, engine, issued):
        """Within the window the remaining wait shrinks as time advances."""

        state, _code = issued
        remaining = [
            engine.evaluate_issuance(state, at(s)).remaining for s in (0, 1, 7.5, 15, 29.9)
        ]

        assert remaining == sorted(remaining, reverse=True)
        assert len(set(remaining)) == len(remaining)

    def test_cooldown_rounds_remaining_seconds_up(self, engine, issued):
        state, _code = issued
        assert engine.evaluate_issuance(state, at(29.5)).remaining_seconds == 1

    def test_cooldown_boundary_allows_issue(self, engine, issued):
        """Exactly `resend_cooldown` after the last send, a new code is issued."""

        state, code = issued
        decision = engine.evaluate_issuance(state, at(30))

        assert isinstance(decision, Issued)
        assert decision.state.last_sent_at == at(30)

    def test_reissue_replaces_code_and_resets_attempts(self, engine, issued):
        state, code = issued
        state = engine.evaluate_verification(state, wrong(code), at(1)).state
        assert state.attempt_count == 1

        decision = engine.evaluate_issuance(state, at(40))

        assert isinstance(decision, Issued)
        assert decision.state.attempt_count == 0
        assert decision.state.otp != state.otp

    def test_lockout_wins_over_cooldown(self, engine, email_state):
        """A locked record reports Locked even inside the cooldown window."""

        state = replace(
            email_state, last_sent_at=at(-5), blocked_until=at(100)
        )

        decision = engine.evaluate_issuance(state, T0)

        assert isinstance(decision, Locked)
        assert decision.remaining == timedelta(seconds=100)
        assert decision.remaining_seconds == 100

    def test_expired_lockout_allows_issue(self, engine, email_state):
        """A `blocked_until` in the past is the same as not being locked."""

        state = replace(email_state, blocked_until=at(-1))

        decision = engine.evaluate_issuance(state, T0)

        assert isinstance(decision, Issued)
        assert decision.state.blocked_until == at(-1)

    def test_lockout_boundary(self, engine, email_state):
        state = replace(email_state, blocked_until=T0)
        assert isinstance(engine.evaluate_issuance(state, T0), Issued)

    def test_custom_policy(self, email_state):
        engine = OTPPolicyEngine(
            OTPPolicy(resend_cooldown=timedelta(seconds=5), validity=timedelta(minutes=1))
        )
        state = engine.evaluate_issuance(email_state, T0).state

        assert state.otp.expires_at == at(60)
        assert isinstance(engine.evaluate_issuance(state, at(4)), Cooldown)
        assert isinstance(engine.evaluate_issuance(state, at(5)), Issued)


class TestEvaluateVerification:
    def test_unknown_record(self, engine):
        assert isinstance(engine.evaluate_verification(None, "123456", T0), NotFound)

    def test_no_code_outstanding(self, engine, email_state):
        decision = engine.evaluate_verification(email_state, "123456", T0)
        assert isinstance(decision, ExpiredOrAbsent)

    def test_success_clears_state_and_sets_email_flag(self, engine, issued):
        state, code = issued
        state = replace(state, attempt_count=3, blocked_until=at(-60))

        decision = engine.evaluate_verification(state, code, at(10))

        assert isinstance(decision, Success)
        new = decision.state
        assert new.otp is None
        assert new.attempt_count == 0
        assert new.blocked_until is None
        assert new.email_verified is True
        assert new.phone_verified is False
        assert new.last_sent_at == T0  # cooldown bookkeeping is untouched

    def test_success_sets_phone_flag(self, engine):
        state = CredentialState.empty("phone", "+919876543210")
        issued = engine.evaluate_issuance(state, T0)

        decision = engine.evaluate_verification(issued.state, issued.code, at(1))

        assert isinstance(decision, Success)
        assert decision.state.phone_verified is True
        assert decision.state.email_verified is False

    def test_success_keeps_existing_flags(self, engine):
        state = replace(CredentialState.empty("phone", "+15550100"), email_verified=True)
        issued = engine.evaluate_issuance(state, T0)

        new = engine.evaluate_verification(issued.state, issued.code, at(1)).state

        assert new.email_verified is True
        assert new.phone_verified is True

    def test_code_is_single_use(self, engine, issued):
        state, code = issued
        state = engine.evaluate_verification(state, code, at(1)).state

        assert isinstance(engine.evaluate_verification(state, code, at(2)), ExpiredOrAbsent)

    def test_expired_code_even_if_correct(self, engine, issued):
        """At or after expiry the result is ExpiredOrAbsent, never InvalidOtp."""

        state, code = issued

        for seconds in (300, 301, 3600):
            assert isinstance(
                engine.evaluate_verification(state, code, at(seconds)), ExpiredOrAbsent
            )
            assert isinstance(
                engine.evaluate_verification(state, wrong(code), at(seconds)),
                ExpiredOrAbsent,
            )

    def test_just_before_expiry_succeeds(self, engine, issued):
        state, code = issued
        assert isinstance(engine.evaluate_verification(state, code, at(299.999)), Success)

    def test_wrong_code_increments_attempts(self, engine, issued):
        state, code = issued

        decision = engine.evaluate_verification(state, wrong(code), at(1))

        assert isinstance(decision, InvalidOtp)
        assert decision.locked is False
        assert decision.state.attempt_count == 1
        assert decision.state.otp == state.otp
        assert decision.state.blocked_until is None

    def test_max_attempts_locks_and_discards_code(self, engine, issued):
        state, code = issued
        state = replace(state, attempt_count=4)

        decision = engine.evaluate_verification(state, wrong(code), at(5))

        assert isinstance(decision, InvalidOtp)
        assert decision.locked is True
        assert decision.state.blocked_until == at(5) + timedelta(minutes=10)
        assert decision.state.otp is None
        assert decision.state.attempt_count == 0

    def test_locked_rejects_correct_code(self, engine, issued):
        state, code = issued
        state = replace(state, blocked_until=at(600))

        decision = engine.evaluate_verification(state, code, at(1))

        assert isinstance(decision, Locked)
        assert decision.remaining_seconds == 599

    def test_brute_force_scenario(self, engine, issued):
        """
        Issue at t=0, five wrong codes at t=1..5, then the original code at
        t=6 is refused because the record is locked until t=5+600.
        """

        state, code = issued
        assert state.otp.expires_at == at(300)

        for t in range(1, 6):
            decision = engine.evaluate_verification(state, wrong(code), at(t))
            assert isinstance(decision, InvalidOtp)
            state = decision.state

        assert state.blocked_until == at(605)

        decision = engine.evaluate_verification(state, code, at(6))
        assert isinstance(decision, Locked)
        assert decision.remaining == timedelta(seconds=599)

        # Issuance is refused too, until the lockout ends
        assert isinstance(engine.evaluate_issuance(state, at(6)), Locked)

        reissued = engine.evaluate_issuance(state, at(605))
        assert isinstance(reissued, Issued)
        assert isinstance(
            engine.evaluate_verification(reissued.state, reissued.code, at(606)),
            Success,
        )

    def test_custom_max_attempts(self, issued):
        state, code = issued
        engine = OTPPolicyEngine(OTPPolicy(max_attempts=2))

        first = engine.evaluate_verification(state, wrong(code), at(1))
        second = engine.evaluate_verification(first.state, wrong(code), at(2))

        assert first.locked is False
        assert second.locked is True

    def test_malformed_candidate_counts_as_wrong(self, engine, issued):
        state, _code = issued
        decision = engine.evaluate_verification(state, "12ab56", at(1))
        assert isinstance(decision, InvalidOtp)

    def test_secret_fields_all_or_none(self, engine, issued):
        """Across a whole lifecycle the code, salt and expiry move together."""

        state, code = issued
        states = [state]
        states.append(engine.evaluate_verification(state, wrong(code), at(1)).state)
        states.append(engine.evaluate_verification(state, code, at(2)).state)
        states.append(
            engine.evaluate_verification(replace(state, attempt_count=4), wrong(code), at(3)).state
        )

        for s in states:
            if s.otp is not None:
                assert s.otp.hash and s.otp.salt and s.otp.expires_at

    def test_engine_does_not_mutate_input(self, engine, issued):
        state, code = issued
        before = replace(state)

        engine.evaluate_verification(state, wrong(code), at(1))
        engine.evaluate_verification(state, code, at(1))

        assert state == before
