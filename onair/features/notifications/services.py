"""
➡️ But : Envoyer les emails transactionnels (vérification, reset, décisions sur les shows).

NotificationSender est construit une seule fois au démarrage (build_notification_sender)
et stocké sur app.state. Les erreurs remontent en NotificationError : c'est à l'appelant
de décider si l'échec est bloquant (forgot-password) ou simplement journalisé.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape

from onair.core.config import Settings
from onair.features.notifications.transports import (
    ConsoleTransport,
    OutgoingEmail,
    SendGridTransport,
    SmtpTransport,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class EmailTransport(Protocol):
    name: str

    def send(self, email: OutgoingEmail) -> None: ...


class NotificationSender:
    def __init__(
        self,
        *,
        transport: EmailTransport,
        from_email: str,
        from_name: str,
        frontend_url: str,
        admin_email: Optional[str] = None,
        verification_hours: int = 24,
        reset_minutes: int = 60,
    ):
        self.transport = transport
        self.from_email = from_email
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")
        self.admin_email = admin_email
        self.verification_hours = verification_hours
        self.reset_minutes = reset_minutes
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    # -------- rendu / envoi --------

    def _send(self, to: str, subject: str, template: str, **context) -> None:
        context.setdefault("station_name", self.from_name)
        context.setdefault("year", datetime.now(timezone.utc).year)
        html = self.env.get_template(template).render(**context)
        self.transport.send(
            OutgoingEmail(to=to, subject=subject, html=html, from_email=self.from_email, from_name=self.from_name)
        )
        logger.info("Email '%s' sent to %s via %s", template, to, self.transport.name)

    # -------- comptes --------

    def send_verification(self, email: str, name: str, token: str) -> None:
        self._send(
            email,
            f"Confirm your account - {self.from_name}",
            "verification.html",
            name=name,
            verification_url=f"{self.frontend_url}/verify-email?token={quote(token)}",
            valid_hours=self.verification_hours,
        )

    def send_welcome(self, email: str, name: str) -> None:
        self._send(
            email,
            f"Welcome to {self.from_name}!",
            "welcome.html",
            name=name,
            login_url=f"{self.frontend_url}/login",
        )

    def send_password_reset(self, email: str, name: str, token: str) -> None:
        self._send(
            email,
            f"Reset your password - {self.from_name}",
            "password_reset.html",
            name=name,
            reset_url=f"{self.frontend_url}/reset-password?token={quote(token)}",
            valid_minutes=self.reset_minutes,
        )

    def send_password_changed(self, email: str, name: str) -> None:
        self._send(email, f"Your password was changed - {self.from_name}", "password_changed.html", name=name)

    # -------- shows --------

    def send_show_approved(
        self, email: str, artist_name: str, show_title: str, show_slug: str, admin_notes: Optional[str] = None
    ) -> None:
        self._send(
            email,
            f'Your show "{show_title}" has been approved!',
            "show_approved.html",
            header_color="#16a34a",
            artist_name=artist_name,
            show_title=show_title,
            admin_notes=admin_notes,
            show_url=f"{self.frontend_url}/artist/my-episodes?show={quote(show_slug)}",
        )

    def send_show_rejected(self, email: str, artist_name: str, show_title: str, admin_notes: str) -> None:
        self._send(
            email,
            f'Update on your show request "{show_title}"',
            "show_rejected.html",
            header_color="#dc2626",
            artist_name=artist_name,
            show_title=show_title,
            admin_notes=admin_notes,
            dashboard_url=f"{self.frontend_url}/artist/dashboard",
        )

    def send_new_show_request(
        self, *, artist_name: str, artist_email: str, show_title: str, show_description: str
    ) -> bool:
        """Prévient l'adresse admin ; renvoie False si aucune adresse n'est configurée."""
        if not self.admin_email:
            logger.info("No ADMIN_NOTIFICATION_EMAIL configured, skipping new show request email")
            return False
        self._send(
            self.admin_email,
            f"New show request: {show_title}",
            "new_show_request.html",
            artist_name=artist_name,
            artist_email=artist_email,
            show_title=show_title,
            show_description=show_description,
            review_url=f"{self.frontend_url}/admin/show-requests",
        )
        return True


def build_notification_sender(settings: Settings) -> NotificationSender:
    backend = settings.EMAIL_BACKEND.lower()
    if backend == "sendgrid":
        if not settings.SENDGRID_API_KEY:
            raise ValueError("EMAIL_BACKEND=sendgrid requires SENDGRID_API_KEY")
        transport: EmailTransport = SendGridTransport(api_key=settings.SENDGRID_API_KEY)
    elif backend == "smtp":
        transport = SmtpTransport(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
        )
    elif backend == "console":
        transport = ConsoleTransport()
    else:
        raise ValueError(f"Unknown EMAIL_BACKEND: {settings.EMAIL_BACKEND!r}")

    logger.info("Email transport: %s", transport.name)
    return NotificationSender(
        transport=transport,
        from_email=settings.EMAIL_FROM,
        from_name=settings.EMAIL_FROM_NAME,
        frontend_url=settings.FRONTEND_URL,
        admin_email=settings.ADMIN_NOTIFICATION_EMAIL,
        verification_hours=settings.VERIFICATION_TOKEN_HOURS,
        reset_minutes=settings.RESET_TOKEN_MINUTES,
    )
