import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from jinja2 import Environment, PackageLoader, select_autoescape
from qrcode.exceptions import DataOverflowError

from . import config
from .errors import NotificationFailure
from .qr import render_base64_png
from .ticket import Ticket

logger = logging.getLogger(__name__)

_templates = Environment(
    loader=PackageLoader("movienight", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_ticket_email(ticket: Ticket, sender_name: str) -> str:
    return _templates.get_template("ticket_email.html").render(
        serial=ticket.serial,
        names=ticket.names,
        has_vip=ticket.has_vip,
        sender_name=sender_name,
    )


# ----------------------------
# Notifier Interface
# ----------------------------
class Notifier(ABC):
    enabled = True

    # returns the provider's message id
    @abstractmethod
    async def send_ticket(self, ticket: Ticket) -> str: ...


class DisabledNotifier(Notifier):
    enabled = False

    async def send_ticket(self, ticket: Ticket) -> str:
        raise NotificationFailure("email delivery is not configured")


# ----------------------------
# Resend implementation
# ----------------------------
class ResendMailer(Notifier):

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        api_url: str = config.RESEND_API_URL,
        sender_name: str = config.SENDER_NAME,
        sender_address: str = config.SENDER_ADDRESS,
        reply_to: str = config.REPLY_TO,
        timeout: float = config.MAIL_TIMEOUT,
    ) -> None:
        self.http = http
        self.api_key = api_key
        self.api_url = api_url
        self.sender_name = sender_name
        self.sender_address = sender_address
        self.reply_to = reply_to
        self.timeout = timeout

    def build_message(self, ticket: Ticket) -> dict:
        try:
            qr_png = render_base64_png(ticket.payload)
        except DataOverflowError as e:
            raise NotificationFailure("ticket payload too large for QR") from e

        message = {
            "from": f"{self.sender_name} <{self.sender_address}>",
            "to": [ticket.email],
            "subject": f"Your Movie Night Ticket - {ticket.serial}",
            "html": render_ticket_email(ticket, self.sender_name),
            "attachments": [{
                "filename": "qrcode.png",
                "content": qr_png,
                "content_id": "qrcode",
            }],
        }
        if self.reply_to:
            message["reply_to"] = self.reply_to
        return message

    async def send_ticket(self, ticket: Ticket) -> str:
        message = self.build_message(ticket)
        try:
            r = await self.http.post(
                self.api_url,
                json=message,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPStatusError as e:
            raise NotificationFailure(
                f"mail provider answered {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise NotificationFailure(f"mail provider unreachable: {e}") from e

        if not isinstance(body, dict):
            raise NotificationFailure(
                f"mail provider sent an unexpected body: {body!r}"
            )
        message_id = str(body.get("id", ""))
        logger.info("ticket %s emailed (id %s)", ticket.serial, message_id)
        return message_id


# Factory keeps server.py simple:
def new_notifier(
    http: Optional[httpx.AsyncClient], api_key: str = config.RESEND_API_KEY
) -> Notifier:
    if not api_key or http is None:
        logger.warning("RESEND_API_KEY not set, emails will not be sent")
        return DisabledNotifier()
    return ResendMailer(http=http, api_key=api_key)
