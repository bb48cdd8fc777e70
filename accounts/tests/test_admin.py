"""
Smoke tests for the user admin.
"""

from datetime import datetime, timezone

import pytest
from django.contrib import admin
from django.urls import reverse

from accounts.factories import PhoneUserFactory, UserFactory
from accounts.models import CustomUser


@pytest.mark.django_db
class TestCustomUserAdmin:
    def test_changelist(self, admin_client):
        UserFactory(email="listed@example.com")
        PhoneUserFactory(phone_number="+15550100")

        response = admin_client.get(reverse("admin:accounts_customuser_changelist"))

        assert response.status_code == 200
        assert b"listed@example.com" in response.content
        assert b"+15550100" in response.content

    def test_change_view_hides_secret(self, admin_client):
        user = UserFactory(
            otp_hash="a" * 64,
            otp_salt="b" * 32,
            otp_expires_at=datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc),
        )

        response = admin_client.get(reverse("admin:accounts_customuser_change", args=[user.pk]))

        assert response.status_code == 200
        assert b"a" * 64 not in response.content
        assert b"b" * 32 not in response.content

    def test_identity_is_read_only_on_change(self, rf):
        model_admin = admin.site._registry[CustomUser]
        user = UserFactory()

        assert "email" in model_admin.get_readonly_fields(rf.get("/"), user)
        assert "email" not in model_admin.get_readonly_fields(rf.get("/"))
