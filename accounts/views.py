"""
Authentication ViewSet.

This module exposes the OTP sign-in flow over HTTP using Django REST
Framework and SimpleJWT. Views only validate request shape and translate
results into responses; every decision is taken by `OTPService`, and every
failure is an `APIException` rendered by `otp_exception_handler`.

Core Workflow:
    1.  POST /auth/request-otp -> client sends an email or phone number and
        receives a 6-digit code by email or SMS.
    2.  POST /auth/verify-otp -> client echoes the code back and receives a
        signed bearer token.
    3.  GET /auth/me -> client reads its profile with that token.
"""

from django.apps import apps
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.viewsets import ViewSet

from .serializers import OTPRequestSerializer, OTPVerifySerializer, UserSerializer


class OTPThrottle(AnonRateThrottle):
    """
    Per-IP rate throttle for the OTP endpoints.

    Sits in front of the per-identifier cooldown and lockout policy.
    """

    # DRF will look for this key in the settings to apply limits (e.g., "otp": "10/minute")
    scope = "otp"


def _error(description, message):
    return OpenApiResponse(
        description=description,
        examples=[OpenApiExample(description, value={"error": message})],
    )


class AuthViewSet(ViewSet):
    """
    A ViewSet that handles OTP authentication.

    Endpoints:
        - request_otp → Issue a one-time code for an email or phone number.
        - verify_otp → Exchange a valid code for a bearer token.
        - me → Return the authenticated user's profile.
    """

    parser_classes = [JSONParser, FormParser]

    @property
    def otp_service(self):
        return apps.get_app_config("accounts").otp_service

    @extend_schema(
        tags=["Authentication"],
        summary="1. Request One-Time Password (OTP)",
        description="""
        **Endpoint**: POST /auth/request-otp

        Issues a 6-digit code for the identifier and sends it by email (for
        identifiers containing `@`) or SMS (anything else). Unknown
        identifiers are registered on the fly.

        **Policy**:
        - A new code can be requested once per cooldown window.
        - Codes expire after `OTP_EXP_MINUTES` minutes.
        - A locked identifier cannot request codes until the lockout ends.

        **Development**: when `OTP_EXPOSE_DEV_CODE` is enabled outside
        production, the code is echoed back as `devOtp`.
        """,
        request=OTPRequestSerializer,
        responses={
            status.HTTP_200_OK: OpenApiResponse(
                description="OTP issued and sent.",
                examples=[
                    OpenApiExample(
                        "OTP Sent",
                        value={
                            "message": "OTP sent to your email. It will expire in 5 minutes."
                        },
                    )
                ],
            ),
            status.HTTP_400_BAD_REQUEST: _error("Malformed identifier", "identifier is required"),
            423: _error("Locked", "Too many attempts. Try again in 412s."),
            status.HTTP_429_TOO_MANY_REQUESTS: _error(
                "Cooldown", "Please wait 21s before requesting a new OTP."
            ),
            status.HTTP_500_INTERNAL_SERVER_ERROR: _error("Failure", "Something went wrong"),
        },
    )
    @action(
        detail=False,
        methods=["post"],
        url_path="request-otp",
        permission_classes=[AllowAny],
        throttle_classes=[OTPThrottle],
    )
    def request_otp(self, request):
        """
        Handle an OTP request.

        Request body:
            - identifier (str): Email address or phone number.

        Returns:
            - 200 OK with a confirmation message (and `devOtp` in development).
            - 400 / 423 / 429 / 500 as raised by the OTP service.
        """

        serializer = OTPRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.otp_service.request_otp(serializer.validated_data["identifier"])

        data = {
            "message": _(
                "OTP sent to your %(kind)s. It will expire in %(minutes)s minutes."
            )
            % {"kind": result.identifier.kind, "minutes": settings.OTP_EXP_MINUTES}
        }

        if settings.OTP_EXPOSE_DEV_CODE:
            data["devOtp"] = result.code

        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Authentication"],
        summary="2. Verify OTP and Authenticate",
        description="""
        **Endpoint**: POST /auth/verify-otp

        Verifies the code and returns a signed bearer token.

        **Policy**:
        - Expired and never-requested codes get the same error.
        - After `MAX_OTP_ATTEMPTS` wrong codes the identifier is locked and
          the outstanding code is discarded.

        **Next Steps**:
        - Use the token in `Authorization: Bearer <token>`.
        """,
        request=OTPVerifySerializer,
        responses={
            status.HTTP_200_OK: OpenApiResponse(
                description="Authentication successful.",
                examples=[
                    OpenApiExample(
                        "Token Issued",
                        value={"token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."},
                    )
                ],
            ),
            status.HTTP_400_BAD_REQUEST: _error("Invalid OTP", "Invalid OTP"),
            status.HTTP_404_NOT_FOUND: _error("Unknown identifier", "User not found. Request OTP first."),
            423: _error("Locked", "Too many attempts. Try again in 412s."),
            status.HTTP_500_INTERNAL_SERVER_ERROR: _error("Failure", "Something went wrong"),
        },
    )
    @action(
        detail=False,
        methods=["post"],
        url_path="verify-otp",
        permission_classes=[AllowAny],
        throttle_classes=[OTPThrottle],
    )
    def verify_otp(self, request):
        """
        Verify an OTP.

        Request body:
            - identifier (str): Email address or phone number.
            - otp (str): The 6-digit code.

        Returns:
            - 200 OK with a bearer token.
            - 400 / 404 / 423 / 500 as raised by the OTP service.
        """

        serializer = OTPVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.otp_service.verify_otp(
            serializer.validated_data["identifier"], serializer.validated_data["otp"]
        )

        return Response({"token": result.token}, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Authentication"],
        summary="Current User",
        description="""
        **Endpoint**: GET /auth/me

        Returns the profile of the user owning the bearer token.
        """,
        responses={
            status.HTTP_200_OK: UserSerializer,
            status.HTTP_401_UNAUTHORIZED: OpenApiResponse(description="No or invalid token."),
        },
    )
    @action(detail=False, methods=["get"], permission_classes=[IsAuthenticated])
    def me(self, request):
        return Response(UserSerializer(instance=request.user).data)
