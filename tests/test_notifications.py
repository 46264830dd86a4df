import json

import httpx
import pytest

from onair.core.config import Settings
from onair.core.errors import NotificationError
from onair.features.notifications.services import build_notification_sender
from onair.features.notifications.transports import (
    ConsoleTransport,
    OutgoingEmail,
    SendGridTransport,
    SmtpTransport,
)


def test_verification_email_links_to_frontend(notifier, outbox):
    notifier.send_verification("lou@onair.test", "Lou", "abc123")

    email = outbox.outbox[0]
    assert email.to == "lou@onair.test"
    assert email.from_email == "noreply@onair.test"
    assert "http://front.test/verify-email?token=abc123" in email.html
    assert "24 hours" in email.html


def test_templates_escape_user_content(notifier, outbox):
    notifier.send_show_rejected("nina@onair.test", "DJ <b>Nina</b>", "Show", "Too <script>loud</script>")
    html = outbox.outbox[0].html
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_approved_email_notes_are_optional(notifier, outbox):
    notifier.send_show_approved("nina@onair.test", "DJ Nina", "Nuits Electro", "nuits-electro")
    notifier.send_show_approved("nina@onair.test", "DJ Nina", "Nuits Electro", "nuits-electro", admin_notes="Bravo")

    without, with_notes = outbox.outbox
    assert "Admin notes" not in without.html
    assert "Bravo" in with_notes.html
    assert "/artist/my-episodes?show=nuits-electro" in with_notes.html


def test_new_show_request_needs_admin_address(notifier, outbox):
    notifier.admin_email = None
    assert notifier.send_new_show_request(
        artist_name="DJ Nina", artist_email="nina@onair.test", show_title="X", show_description="Y"
    ) is False
    assert outbox.outbox == []


# -----------------------------
# Transports
# -----------------------------
def _email():
    return OutgoingEmail(to="a@onair.test", subject="Hi", html="<p>Hi</p>", from_email="n@onair.test", from_name="OnAir")


def test_sendgrid_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202)

    transport = SendGridTransport(api_key="SG.key", client=httpx.Client(transport=httpx.MockTransport(handler)))
    transport.send(_email())

    request = seen[0]
    assert request.headers["authorization"] == "Bearer SG.key"
    payload = json.loads(request.content)
    assert payload["personalizations"] == [{"to": [{"email": "a@onair.test"}]}]
    assert payload["from"] == {"email": "n@onair.test", "name": "OnAir"}
    assert payload["content"][0] == {"type": "text/html", "value": "<p>Hi</p>"}


def test_sendgrid_rejection_raises():
    transport = SendGridTransport(
        api_key="bad",
        client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401, text="unauthorized"))),
    )
    with pytest.raises(NotificationError, match="401"):
        transport.send(_email())


def test_smtp_connection_failure_raises():
    transport = SmtpTransport(host="127.0.0.1", port=1, user=None, password=None, timeout=1)
    with pytest.raises(NotificationError):
        transport.send(_email())


# -----------------------------
# Construction depuis les settings
# -----------------------------
def test_build_sender_picks_backend():
    assert isinstance(build_notification_sender(Settings(EMAIL_BACKEND="console")).transport, ConsoleTransport)
    assert isinstance(build_notification_sender(Settings(EMAIL_BACKEND="smtp")).transport, SmtpTransport)
    sender = build_notification_sender(Settings(EMAIL_BACKEND="smtp", SENDGRID_API_KEY="SG.key"))
    assert isinstance(sender.transport, SendGridTransport)


def test_build_sender_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_notification_sender(Settings(EMAIL_BACKEND="pigeon"))
    with pytest.raises(ValueError):
        build_notification_sender(Settings(EMAIL_BACKEND="sendgrid"))
