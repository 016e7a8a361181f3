"""
Ticket payload: the text embedded in the QR image.

    {"serial":"MN-2026-1F0A9C3E","names":["Jane Doe"],"vips":[true]}

Payloads issued before VIP flags existed carry no ``vips`` key; they decode
with every attendee marked non-VIP.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol

from .errors import MalformedPayload


class _Named(Protocol):
    first_name: str
    last_name: str
    vip: bool


@dataclass(frozen=True)
class TicketPayload:
    serial: str
    names: List[str] = field(default_factory=list)
    vips: List[bool] = field(default_factory=list)


@dataclass
class Ticket:
    serial: str
    email: str
    payload: str
    attendees: list
    email_sent: bool = False

    @property
    def names(self) -> List[str]:
        return [display_name(a) for a in self.attendees]

    @property
    def has_vip(self) -> bool:
        return any(a.vip for a in self.attendees)


def display_name(attendee: _Named) -> str:
    return f"{attendee.first_name} {attendee.last_name}"


def encode_payload(serial: str, attendees: Iterable[_Named]) -> str:
    attendees = list(attendees)
    return json.dumps(
        {
            "serial": serial,
            "names": [display_name(a) for a in attendees],
            "vips": [bool(a.vip) for a in attendees],
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )


def decode_payload(raw: str) -> TicketPayload:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedPayload("QR code is not a ticket") from e

    if not isinstance(data, dict):
        raise MalformedPayload("QR code is not a ticket")

    serial = data.get("serial")
    if not isinstance(serial, str) or not serial.strip():
        raise MalformedPayload("QR code carries no serial")

    names = data.get("names", [])
    if not isinstance(names, list) or not all(
        isinstance(n, str) for n in names
    ):
        raise MalformedPayload("QR code has invalid attendee names")

    vips = data.get("vips")
    if vips is None:
        vips = [False] * len(names)
    elif not isinstance(vips, list) or len(vips) != len(names) or not all(
        isinstance(v, bool) for v in vips
    ):
        raise MalformedPayload("QR code has invalid VIP flags")

    return TicketPayload(serial=serial, names=names, vips=vips)
