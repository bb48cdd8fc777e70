"""
Serializers for OTP authentication and the user profile.

This module provides the Django REST Framework serializers that validate
the shape of the auth request bodies before the OTP service sees them:
    - OTP request (`OTPRequestSerializer`)
    - OTP verification (`OTPVerifySerializer`)
    - Profile representation (`UserSerializer`)

Identifier normalization and every policy decision stay in the service
layer; serializers only reject malformed input.

Example:
    >>> serializer = OTPVerifySerializer(data={"identifier": "a@b.co", "otp": "123456"})
    >>> serializer.is_valid()
    True
"""

from django.contrib.auth import get_user_model
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from .constants import OTP_CODE_LENGTH

# Fetch the custom User model .
User = get_user_model()

otp_validator = RegexValidator(
    regex=rf"^[0-9]{{{OTP_CODE_LENGTH}}}$",
    message=_("otp must be 6 digits"),
)


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for reading user profile information.

    Exposes identity and verification status only; none of the OTP state
    (hash, salt, counters, lockout) ever leaves the server.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "phone_number",
            "is_email_verified",
            "is_phone_verified",
            "date_joined",
        ]
        read_only_fields = fields


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "OTP Request (Email)",
            value={"identifier": "new.user@example.com"},
        ),
        OpenApiExample(
            "OTP Request (Phone)",
            value={"identifier": "+919876543210"},
            description="Whitespace inside phone numbers is ignored.",
        ),
    ],
)
class OTPRequestSerializer(serializers.Serializer):
    """
    Serializer for requesting an OTP code.

    **Input Format**:
    - JSON: `{"identifier": "email@domain.com"}` or `{"identifier": "+919876543210"}`
    """

    identifier = serializers.CharField(
        trim_whitespace=False,
        error_messages={
            "required": _("identifier is required"),
            "blank": _("identifier is required"),
            "null": _("identifier is required"),
            "invalid": _("identifier is required"),
        },
    )


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "OTP Verification",
            value={"identifier": "new.user@example.com", "otp": "123456"},
            description="6-digit code received by email or SMS.",
        ),
    ],
)
class OTPVerifySerializer(serializers.Serializer):
    """
    Serializer for verifying an OTP code.

    **Input Format**:
    - JSON: `{"identifier": "email@domain.com", "otp": "123456"}`

    **Security Notes**:
    - Expired and never-requested codes return the same error.
    - Wrong codes count towards the lockout threshold.
    """

    identifier = serializers.CharField(
        trim_whitespace=False,
        error_messages={
            "required": _("identifier is required"),
            "blank": _("identifier is required"),
            "null": _("identifier is required"),
            "invalid": _("identifier is required"),
        },
    )
    otp = serializers.CharField(
        validators=[otp_validator],
        error_messages={
            "required": _("otp must be 6 digits"),
            "blank": _("otp must be 6 digits"),
            "null": _("otp must be 6 digits"),
            "invalid": _("otp must be 6 digits"),
        },
    )
