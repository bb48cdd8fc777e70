"""
Admin configurations for the accounts application.

This module registers the `CustomUser` model with the Django admin site.
Besides the usual user management, the change view shows the OTP state
of each record so support staff can see why a user is locked out.

The configuration extends Django's built-in `UserAdmin` to:
    - Display identity and lockout information in the list view.
    - Keep the identity (kind, email, phone) read-only once created.
    - Never show the code hash or salt.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.utils.translation import gettext_lazy as _

from .forms import CustomUserChangeForm, CustomUserCreationForm
from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    """
    Custom admin configuration for the `CustomUser` model.

    Key customizations:
        - `list_display`: Identity, verification and lockout columns.
        - `fieldsets`: Adds "Verification" and "One-time passcode" sections.
        - `get_readonly_fields`: Freezes the identity on existing records.
    """

    add_form = CustomUserCreationForm
    form = CustomUserChangeForm

    list_display = (
        "id",
        "email",
        "phone_number",
        "identifier_kind",
        "is_email_verified",
        "is_phone_verified",
        "blocked_until",
        "is_staff",
        "date_joined",
    )
    list_display_links = ("id", "email", "phone_number")
    search_fields = ("email", "phone_number", "first_name", "last_name")
    list_filter = ("identifier_kind", "is_email_verified", "is_phone_verified", "is_staff")

    fieldsets = (
        (None, {"fields": ("email", "phone_number", "password")}),
        (_("Personal info"), {"fields": ("first_name", "last_name")}),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        (_("Verification"), {"fields": ("is_email_verified", "is_phone_verified")}),
        (
            _("One-time passcode"),
            {
                "fields": (
                    "otp_expires_at",
                    "otp_attempt_count",
                    "blocked_until",
                    "last_otp_sent_at",
                )
            },
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "phone_number", "password1", "password2"),
            },
        ),
    )
    readonly_fields = (
        "last_login",
        "date_joined",
        "otp_expires_at",
        "otp_attempt_count",
        "last_otp_sent_at",
    )
    ordering = ("-date_joined",)

    def get_readonly_fields(self, request, obj=None):
        """
        On update, also freeze the identity: a record keeps the identifier
        it was created with.
        """

        readonly_fields = super().get_readonly_fields(request, obj)
        if obj:
            return readonly_fields + ("email", "phone_number")
        return readonly_fields
