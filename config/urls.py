"""
Root URL configuration.

    - /                 → liveness message
    - /auth/...         → OTP authentication (see `accounts.urls`)
    - /api/schema/      → OpenAPI schema
    - /api/docs/        → Swagger UI
    - /admin/           → Django admin
"""

from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView


def health(request):
    return HttpResponse("OTP Login API is running", content_type="text/plain")


urlpatterns = [
    path("", health, name="health"),
    path("admin/", admin.site.urls),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("", include("accounts.urls")),
]
