from django.apps import AppConfig


class AccountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"

    def ready(self):
        # Built once per process; views read it through the app config.
        from .services import OTPService

        self.otp_service = OTPService.from_settings()
