# pizzeria/core/sms_client.py
from __future__ import annotations

from twilio.rest import Client

from pizzeria.schemas.settings import NotificationSettings


class TwilioSmsClient:
    """
    Thin wrapper around the Twilio REST client.

    Construction does not touch the network; `verify()` does.
    """

    def __init__(self, account_sid: str, auth_token: str, from_number: str | None = None):
        self.account_sid = account_sid
        self.from_number = from_number
        self.client = Client(account_sid, auth_token)

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> TwilioSmsClient:
        """
        Raises
        ------
        RuntimeError:
            If the account SID or auth token is missing.
        """
        if not (settings.twilio_account_sid and settings.twilio_auth_token):
            raise RuntimeError("Twilio is not configured: account SID and auth token are required.")
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
        )

    def send_sms(self, to_number: str, body: str) -> str:
        """Send one SMS and return the Twilio message SID."""
        if not self.from_number:
            raise RuntimeError("Twilio sender number is not configured.")
        message = self.client.messages.create(
            body=body,
            from_=self.from_number,
            to=to_number,
        )
        return message.sid

    def verify(self) -> None:
        """Fetch the account record; raises if the credentials are rejected."""
        self.client.api.v2010.accounts(self.account_sid).fetch()
