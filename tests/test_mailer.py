import base64
import json

import httpx
import pytest

from movienight.errors import NotificationFailure
from movienight.mailer import (
    DisabledNotifier, ResendMailer, new_notifier, render_ticket_email
)
from movienight.model.registration import AttendeeRecord
from movienight.ticket import Ticket, encode_payload

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _ticket(first="Jane"):
    attendees = [AttendeeRecord(first, "Doe", vip=True)]
    return Ticket(
        serial="MN-2026-0A1B2C3D",
        email="a@b.com",
        payload=encode_payload("MN-2026-0A1B2C3D", attendees),
        attendees=attendees,
    )


def _mailer(handler, **kw):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return http, ResendMailer(
        http=http,
        api_key="re_test",
        api_url="https://mail.test/emails",
        sender_name="Movie Night",
        sender_address="tickets@mail.test",
        **kw,
    )


async def test_sends_ticket_with_inline_qr():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "email_123"})

    http, mailer = _mailer(handler, reply_to="help@mail.test")
    async with http:
        message_id = await mailer.send_ticket(_ticket())

    assert message_id == "email_123"
    request = seen[0]
    assert request.headers["authorization"] == "Bearer re_test"
    body = json.loads(request.content)
    assert body["to"] == ["a@b.com"]
    assert body["from"] == "Movie Night <tickets@mail.test>"
    assert body["reply_to"] == "help@mail.test"
    assert body["subject"] == "Your Movie Night Ticket - MN-2026-0A1B2C3D"
    assert "MN-2026-0A1B2C3D" in body["html"]
    assert "Jane Doe" in body["html"]

    attachment = body["attachments"][0]
    assert attachment["content_id"] == "qrcode"
    assert base64.b64decode(attachment["content"]).startswith(PNG_MAGIC)


async def test_provider_error_becomes_notification_failure():
    def handler(request):
        return httpx.Response(422, json={"message": "invalid to"})

    http, mailer = _mailer(handler)
    async with http:
        with pytest.raises(NotificationFailure):
            await mailer.send_ticket(_ticket())


async def test_unreachable_provider_becomes_notification_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    http, mailer = _mailer(handler)
    async with http:
        with pytest.raises(NotificationFailure):
            await mailer.send_ticket(_ticket())


async def test_unexpected_provider_body_becomes_notification_failure():
    def handler(request):
        return httpx.Response(200, json=["queued"])

    http, mailer = _mailer(handler)
    async with http:
        with pytest.raises(NotificationFailure):
            await mailer.send_ticket(_ticket())


def test_email_body_escapes_names():
    html = render_ticket_email(_ticket(first="<b>Jane</b>"), "Movie Night")
    assert "<b>Jane</b>" not in html
    assert "&lt;b&gt;Jane&lt;/b&gt;" in html
    assert "VIP Ticket" in html


async def test_no_api_key_disables_delivery():
    async with httpx.AsyncClient() as http:
        notifier = new_notifier(http, api_key="")
    assert isinstance(notifier, DisabledNotifier)
    assert not notifier.enabled
    with pytest.raises(NotificationFailure):
        await notifier.send_ticket(_ticket())
