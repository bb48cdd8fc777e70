"""
Delivery of one-time codes over email and SMS.

Senders are plain service objects created once at process start and
handed to `NotificationDispatcher` explicitly; there is no module-level
client. Provider errors are logged and re-raised as `DeliveryFailure`.

Providers:
    - Email: Django's mail framework (`send_mail`), so any configured
      ``EMAIL_BACKEND`` works (SMTP in production, console or locmem in
      development and tests).
    - SMS: Twilio's REST client. Without credentials the SMS sender is
      disabled and sends are skipped with a warning.
"""

import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from .constants import IdentifierKind
from .exceptions import DeliveryFailure
from .utils import mask_identifier

logger = logging.getLogger(__name__)

SMS_TEMPLATE = "Your OTP is {code}. It expires in {minutes} minutes."

EMAIL_SUBJECT = "Your OTP Code"

EMAIL_TEXT_TEMPLATE = "Your OTP is {code}. It expires in {minutes} minutes."

EMAIL_HTML_TEMPLATE = """
<div style="font-family:system-ui,Segoe UI,Arial,sans-serif;max-width:520px">
  <h2 style="margin:0 0 12px">OTP Verification</h2>
  <p style="margin:0 0 16px">Use the code below to continue. It will expire in <b>{minutes} minutes</b>.</p>
  <div style="font-size:28px;letter-spacing:4px;font-weight:700;padding:12px 16px;border:1px solid #ddd;border-radius:10px;display:inline-block;">
    {code}
  </div>
  <p style="margin:16px 0 0;color:#666;font-size:12px">If you didn't request this, you can ignore this email.</p>
</div>
"""


class EmailSender:
    """
    Send codes by email.

    Args:
        from_email (str): Sender address.
        validity_minutes (int): Code lifetime, quoted in the message.
    """

    def __init__(self, from_email, validity_minutes):
        self.from_email = from_email
        self.validity_minutes = validity_minutes

    @classmethod
    def from_settings(cls):
        return cls(settings.DEFAULT_FROM_EMAIL, settings.OTP_EXP_MINUTES)

    def send(self, to, code):
        text = EMAIL_TEXT_TEMPLATE.format(code=code, minutes=self.validity_minutes)
        html = EMAIL_HTML_TEMPLATE.format(code=code, minutes=self.validity_minutes)
        send_mail(
            EMAIL_SUBJECT,
            text,
            self.from_email,
            [to],
            html_message=html,
            fail_silently=False,
        )


class SmsSender:
    """
    Send codes by SMS through Twilio.

    Args:
        client (twilio.rest.Client | None): Twilio client; None disables SMS.
        from_number (str | None): Twilio sender number.
        validity_minutes (int): Code lifetime, quoted in the message.
    """

    def __init__(self, client, from_number, validity_minutes):
        self.client = client
        self.from_number = from_number
        self.validity_minutes = validity_minutes

    @classmethod
    def from_settings(cls):
        client = None
        if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        else:
            logger.warning("Twilio not configured; SMS will be skipped.")
        return cls(client, settings.TWILIO_FROM, settings.OTP_EXP_MINUTES)

    @property
    def enabled(self):
        return self.client is not None and bool(self.from_number)

    def send(self, to, code):
        if not self.enabled:
            logger.warning("Skipping SMS send to %s (no Twilio configured).", mask_identifier(to))
            return

        self.client.messages.create(
            body=SMS_TEMPLATE.format(code=code, minutes=self.validity_minutes),
            from_=self.from_number,
            to=to,
        )


class NotificationDispatcher:
    """
    Route a code to the sender matching the identifier kind.

    Args:
        email_sender (EmailSender): Used for email identifiers.
        sms_sender (SmsSender): Used for phone identifiers.
    """

    def __init__(self, email_sender, sms_sender):
        self.email_sender = email_sender
        self.sms_sender = sms_sender

    @classmethod
    def from_settings(cls):
        return cls(EmailSender.from_settings(), SmsSender.from_settings())

    def send(self, identifier, code):
        """
        Deliver ``code`` to ``identifier``.

        Raises:
            DeliveryFailure: If the provider rejects or cannot be reached.
        """

        kind, value = identifier
        sender = self.email_sender if kind == IdentifierKind.EMAIL else self.sms_sender

        try:
            sender.send(value, code)
        except (smtplib.SMTPException, TwilioException, OSError, ValueError) as exc:
            # ValueError covers BadHeaderError from malformed recipient addresses
            logger.exception("OTP delivery by %s to %s failed", kind, mask_identifier(value))
            raise DeliveryFailure() from exc

        logger.info("OTP delivered by %s to %s", kind, mask_identifier(value))
