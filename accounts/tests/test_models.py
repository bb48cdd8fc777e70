"""
Unit tests for the `CustomUser` model.

These tests cover:
    - Identifier normalization and kind derivation on save.
    - The `identifier` property.
    - Round-tripping OTP state through `to_state` / `apply_state`.
    - The database constraint keeping the code hash, salt and expiry
      all set or all cleared.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from django.db import IntegrityError

from accounts.factories import PhoneUserFactory, UserFactory
from accounts.policy import CredentialState, OTPSecret
from accounts.utils import Identifier

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.django_db
class TestCustomUserModel:
    def test_str(self):
        assert str(UserFactory(email="s@example.com")) == "s@example.com"
        assert str(PhoneUserFactory(phone_number="+15550100")) == "+15550100"

    def test_save_normalizes_identifiers(self):
        user = UserFactory(email=" Upper@Example.COM")
        phone = PhoneUserFactory(phone_number="+1 555 0100")

        user.refresh_from_db()
        phone.refresh_from_db()
        assert user.email == "upper@example.com"
        assert phone.phone_number == "+15550100"

    def test_kind_is_fixed_at_creation(self):
        """Adding an email to a phone-keyed record does not change its kind."""

        user = PhoneUserFactory()
        user.email = "later@example.com"
        user.save()

        user.refresh_from_db()
        assert user.identifier_kind == "phone"
        assert user.identifier == ("phone", user.phone_number)

    def test_identifier_property(self):
        user = UserFactory(email="id@example.com")
        assert user.identifier == ("email", "id@example.com")
        assert user.identifier.kind == "email"

    def test_new_record_has_empty_state(self):
        user = UserFactory(email="fresh@example.com")
        assert user.to_state() == CredentialState.empty("email", "fresh@example.com")

    def test_state_round_trip(self):
        """State written with `apply_state` reads back unchanged after a save."""

        user = PhoneUserFactory()
        state = CredentialState(
            kind="phone",
            value=user.phone_number,
            otp=OTPSecret(hash="a" * 64, salt="b" * 32, expires_at=T0 + timedelta(minutes=5)),
            attempt_count=2,
            blocked_until=None,
            last_sent_at=T0,
            email_verified=False,
            phone_verified=True,
        )

        user.apply_state(state)
        user.save()
        user.refresh_from_db()

        assert user.to_state() == state

    def test_apply_state_clears_secret_together(self):
        user = UserFactory()
        user.apply_state(
            CredentialState(
                kind="email",
                value=user.email,
                otp=OTPSecret("a" * 64, "b" * 32, T0),
            )
        )
        user.save()

        user.apply_state(CredentialState.empty("email", user.email))
        user.save()
        user.refresh_from_db()

        assert user.otp_hash is None
        assert user.otp_salt is None
        assert user.otp_expires_at is None

    def test_apply_state_rejects_foreign_state(self):
        user = UserFactory(email="mine@example.com")
        with pytest.raises(ValueError):
            user.apply_state(CredentialState.empty("email", "theirs@example.com"))

    def test_partial_secret_rejected_by_database(self):
        """A hash without salt and expiry violates `otp_secret_all_or_none`."""

        user = UserFactory()
        user.otp_hash = "a" * 64

        with pytest.raises(IntegrityError):
            user.save()

    def test_identifiers_lists_both_kinds(self):
        user = UserFactory(email="two@example.com", phone_number="+15550100")

        assert user.identifiers() == [
            Identifier("email", "two@example.com"),
            Identifier("phone", "+15550100"),
        ]

    def test_to_state_uses_lookup_identifier(self):
        """The state takes the kind of the identifier the record was found by."""

        user = UserFactory(email="two@example.com", phone_number="+15550100")

        state = user.to_state(Identifier("phone", "+15550100"))

        assert (state.kind, state.value) == ("phone", "+15550100")
        assert user.to_state().kind == "email"

    def test_to_state_rejects_foreign_identifier(self):
        user = UserFactory(email="two@example.com")

        with pytest.raises(ValueError):
            user.to_state(Identifier("phone", "+15550100"))

    def test_apply_state_accepts_secondary_identifier(self):
        user = UserFactory(email="two@example.com", phone_number="+15550100")
        state = replace(
            user.to_state(Identifier("phone", "+15550100")), phone_verified=True
        )

        user.apply_state(state)
        user.save()
        user.refresh_from_db()

        assert user.is_phone_verified is True
        assert user.is_email_verified is False
