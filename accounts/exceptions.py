"""
Error taxonomy for OTP authentication and the API error handler.

Every failure the OTP flow can report to a client is an `APIException`
subclass carrying its own HTTP status code, so views can simply let them
propagate. `otp_exception_handler` then flattens DRF's error payloads to
the single ``{"error": "..."}`` shape used by the auth endpoints.

Status mapping:
    - MalformedInput        → 400
    - OTPExpiredOrAbsent    → 400
    - InvalidOTP            → 400
    - IdentifierNotFound    → 404
    - AccountLocked         → 423
    - OTPCooldown           → 429
    - DeliveryFailure       → 500
    - StoreFailure          → 500
"""

import logging

from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

HTTP_423_LOCKED = 423


class MalformedInput(APIException):
    """The request body has the wrong shape (missing identifier, bad code)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Invalid identifier")
    default_code = "malformed"


class IdentifierNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = _("User not found. Request OTP first.")
    default_code = "not_found"


class OTPExpiredOrAbsent(APIException):
    """
    No usable code is outstanding.

    Deliberately covers both "never requested" and "expired" so that a
    caller cannot tell the two apart.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("OTP expired or not requested. Please request a new OTP.")
    default_code = "otp_expired"


class InvalidOTP(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Invalid OTP")
    default_code = "invalid_otp"


class _RetryAfterException(APIException):
    """Policy rejection that carries the number of seconds left to wait."""

    message = ""

    def __init__(self, remaining_seconds, detail=None, code=None):
        self.remaining_seconds = remaining_seconds
        if detail is None:
            detail = self.message.format(seconds=remaining_seconds)
        super().__init__(detail=detail, code=code)


class AccountLocked(_RetryAfterException):
    status_code = HTTP_423_LOCKED
    default_detail = _("Too many attempts. Try again later.")
    default_code = "locked"
    message = "Too many attempts. Try again in {seconds}s."


class OTPCooldown(_RetryAfterException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = _("Please wait before requesting a new OTP.")
    default_code = "cooldown"
    message = "Please wait {seconds}s before requesting a new OTP."


class DeliveryFailure(APIException):
    """The email or SMS provider failed to accept the code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = _("Something went wrong")
    default_code = "delivery_failure"


class StoreFailure(APIException):
    """The credential store failed while reading or persisting a record."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = _("Something went wrong")
    default_code = "store_failure"


def _first_message(detail):
    # DRF details nest lists and dicts arbitrarily deep
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def otp_exception_handler(exc, context):
    """
    Render every API error as ``{"error": "<message>"}``.

    Validation errors keep only their first message, matching how the
    endpoints report a single problem at a time. Retry-after rejections
    also expose the wait through the ``Retry-After`` header.
    """

    response = exception_handler(exc, context)

    if response is None:
        return response

    detail = getattr(exc, "detail", response.data)
    response.data = {"error": _first_message(detail)}

    if isinstance(exc, _RetryAfterException):
        response["Retry-After"] = str(exc.remaining_seconds)

    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed with %s: %s", exc.__class__.__name__, exc)

    return response
