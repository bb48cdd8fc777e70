"""
URL routing configuration for the authentication API.

This module registers the OTP endpoints using Django REST Framework's
`DefaultRouter`.

Registered routes:
    - /auth/request-otp  → AuthViewSet.request_otp
    - /auth/verify-otp   → AuthViewSet.verify_otp
    - /auth/me           → AuthViewSet.me
"""

from rest_framework.routers import DefaultRouter

from .views import AuthViewSet

# Routes are served without a trailing slash (/auth/request-otp).
router = DefaultRouter(trailing_slash=False)

# `basename="auth"` ensures that reverse lookups work properly
# (e.g. reverse("auth-request-otp")) even though the ViewSet has no queryset.
router.register("auth", AuthViewSet, basename="auth")

urlpatterns = router.urls
