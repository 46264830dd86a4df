"""
Transports d'email : SMTP (smtplib), API SendGrid v3 (httpx), console (dev/tests).

Chaque transport expose `send(to, subject, html)` et lève NotificationError en cas d'échec.
"""

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional

import httpx

from onair.core.errors import NotificationError

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    html: str
    from_email: str
    from_name: str


class SmtpTransport:
    name = "smtp"

    def __init__(self, *, host: str, port: int, user: Optional[str], password: Optional[str], timeout: float = 20.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def send(self, email: OutgoingEmail) -> None:
        msg = EmailMessage()
        msg["From"] = formataddr((email.from_name, email.from_email))
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(email.html, subtype="html")

        try:
            if self.port == 465:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout,
                                      context=ssl.create_default_context()) as server:
                    self._login_and_send(server, msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls(context=ssl.create_default_context())
                        server.ehlo()
                    self._login_and_send(server, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP send to {email.to} failed: {exc}") from exc

    def _login_and_send(self, server: smtplib.SMTP, msg: EmailMessage) -> None:
        if self.user and self.password:
            server.login(self.user, self.password)
        server.send_message(msg)


class SendGridTransport:
    """API HTTP SendGrid : utilisable là où les ports SMTP sont bloqués."""

    name = "sendgrid"

    def __init__(self, *, api_key: str, client: Optional[httpx.Client] = None, timeout: float = 20.0):
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout)

    def send(self, email: OutgoingEmail) -> None:
        payload = {
            "personalizations": [{"to": [{"email": email.to}]}],
            "from": {"email": email.from_email, "name": email.from_name},
            "subject": email.subject,
            "content": [{"type": "text/html", "value": email.html}],
        }
        try:
            resp = self.client.post(
                SENDGRID_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"SendGrid request for {email.to} failed: {exc}") from exc
        if resp.status_code >= 300:
            raise NotificationError(f"SendGrid rejected email to {email.to}: {resp.status_code} {resp.text[:200]}")


@dataclass
class ConsoleTransport:
    """Ne fait que journaliser ; garde les messages en mémoire pour les tests."""

    name: str = "console"
    outbox: List[OutgoingEmail] = field(default_factory=list)

    def send(self, email: OutgoingEmail) -> None:
        self.outbox.append(email)
        logger.info("Email to %s: %s", email.to, email.subject)
