"""
Shared fixtures for the accounts test-suite.

Fixtures:
    - `api_client`: DRF API client.
    - `clock`: Freezes the time seen by the OTP service; call ``clock.advance()``
      to move it forward.
    - `otp_service`: The process-wide OTP service built by the app config.
"""

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Provides a DRF API client for making requests in tests."""
    return APIClient()


class Clock:
    def __init__(self, mock, start):
        self._mock = mock
        self.now = start
        self._mock.return_value = start

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        self._mock.return_value = self.now
        return self.now


@pytest.fixture
def clock(mocker):
    """Pin `timezone.now()` as read by the OTP service to a controllable value."""
    return Clock(mocker.patch("accounts.services.timezone.now"), T0)


@pytest.fixture
def otp_service():
    return apps.get_app_config("accounts").otp_service
