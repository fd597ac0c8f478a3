# pizzeria/core/email_client.py
from __future__ import annotations

"""
SMTP email client.

Responsibilities:
  - Open an SMTP connection from the admin-configured settings.
  - Check connectivity + credentials (verify).
  - Send one plain-text email with an optional HTML alternative.

Typical settings (Gmail example with App Password):

    smtp_host=smtp.gmail.com
    smtp_port=465
    smtp_secure=true      (SSL from the first byte)
    smtp_user=orders@bellapizza.fr
    smtp_password=<app password>

With smtp_secure=false (usually port 587) the connection is upgraded
with STARTTLS whenever the server offers it.
"""

import smtplib
from email.message import EmailMessage

from pizzeria.schemas.settings import NotificationSettings


class SmtpEmailClient:
    def __init__(
        self,
        host: str,
        port: int,
        secure: bool,
        username: str,
        password: str,
        from_address: str | None = None,
        from_name: str | None = None,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.secure = secure
        self.username = username
        self.password = password
        # Fallback: if from_address is not set, default to username
        self.from_address = from_address or username
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> SmtpEmailClient:
        """
        Raises
        ------
        RuntimeError:
            If host, user or password is missing.
        """
        if not (settings.smtp_host and settings.smtp_user and settings.smtp_password):
            raise RuntimeError(
                "SMTP is not configured correctly: host, user and password are required."
            )
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )

    def _connect(self) -> smtplib.SMTP:
        """
        Open an authenticated SMTP connection.

          - secure=True  -> smtplib.SMTP_SSL (commonly port 465)
          - secure=False -> smtplib.SMTP + STARTTLS when offered (port 587)
        """
        if self.secure:
            server: smtplib.SMTP = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()

        try:
            server.login(self.username, self.password)
        except Exception:
            server.close()
            raise
        return server

    @staticmethod
    def _quit(server: smtplib.SMTP) -> None:
        try:
            server.quit()
        except smtplib.SMTPException:
            # Connection is being torn down anyway.
            server.close()

    def verify(self) -> None:
        """
        Connect and authenticate, then disconnect.

        Raises
        ------
        smtplib.SMTPException / OSError:
            If the server is unreachable or rejects the credentials.
        """
        self._quit(self._connect())

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        """
        Send an email to a single recipient.

        Parameters
        ----------
        to_email:
            Recipient email address.
        subject:
            Email subject line.
        text_body:
            Plain-text body (always sent).
        html_body:
            Optional HTML body, sent as an alternative part.

        Raises
        ------
        smtplib.SMTPException / OSError:
            If the underlying SMTP connection or send fails.
        """
        msg = EmailMessage()

        msg["From"] = (
            f"{self.from_name} <{self.from_address}>"
            if self.from_name
            else self.from_address
        )
        msg["To"] = to_email
        msg["Subject"] = subject

        msg.set_content(text_body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")

        server = self._connect()
        try:
            server.send_message(msg)
        finally:
            self._quit(server)
