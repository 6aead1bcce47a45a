# donors/channels.py
"""
Outbound contact channels used to alert donors.

A sender exposes ``send(target, content, subject=None) -> SendResult``.
Senders report delivery problems through the result; the dispatcher also
treats any exception raised by a sender as a failed attempt.
"""
import logging
from collections import namedtuple

from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)

SendResult = namedtuple('SendResult', ['success', 'provider_ref', 'error'], defaults=('', ''))

# Shortest phone number we will hand to the SMS provider
MIN_PHONE_DIGITS = 10


class EmailSender:
    """Email through Django's configured EMAIL_BACKEND"""

    def send(self, target, content, subject=None):
        try:
            sent = send_mail(
                subject=subject or "Blood donation request",
                message=content,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[target],
                fail_silently=False,
            )
        except Exception as e:
            logger.warning(f"Email to {target} failed: {e}")
            return SendResult(False, error=str(e))

        if not sent:
            return SendResult(False, error="Mail backend accepted no message")
        logger.info(f"Email sent to {target}")
        return SendResult(True)


class TwilioSmsSender:
    """SMS through the Twilio REST API"""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        return self._client

    def send(self, target, content, subject=None):
        digits = [c for c in target or '' if c.isdigit()]
        if len(digits) < MIN_PHONE_DIGITS:
            return SendResult(False, error="Invalid phone number for SMS")

        try:
            message = self.client.messages.create(
                body=content,
                from_=settings.TWILIO_FROM_NUMBER,
                to=target,
            )
        except TwilioException as e:
            logger.warning(f"SMS to {target} failed: {e}")
            return SendResult(False, error=str(e))

        logger.info(f"SMS sent to {target}. SID: {message.sid}")
        return SendResult(True, provider_ref=message.sid or '')


def get_sender(channel):
    """Instantiate the sender configured for a channel in NOTIFICATION_SENDERS"""
    return import_string(settings.NOTIFICATION_SENDERS[channel])()
