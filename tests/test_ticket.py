import json

import pytest

from movienight.errors import MalformedPayload, ValidationError
from movienight.model.registration import AttendeeRecord
from movienight.ticket import Ticket, decode_payload, encode_payload


def test_roundtrip_with_vip_mix():
    attendees = [
        AttendeeRecord("Jane", "Doe", vip=True),
        AttendeeRecord("John", "Roe"),
        AttendeeRecord("Zoë", "Ångström", vip=True),
    ]
    decoded = decode_payload(encode_payload("MN-2026-0A1B2C3D", attendees))
    assert decoded.serial == "MN-2026-0A1B2C3D"
    assert decoded.names == ["Jane Doe", "John Roe", "Zoë Ångström"]
    assert decoded.vips == [True, False, True]


def test_encoding_is_deterministic_json():
    attendees = [AttendeeRecord("Jane", "Doe")]
    raw = encode_payload("MN-2026-0A1B2C3D", attendees)
    assert raw == encode_payload("MN-2026-0A1B2C3D", attendees)
    assert json.loads(raw) == {
        "serial": "MN-2026-0A1B2C3D",
        "names": ["Jane Doe"],
        "vips": [False],
    }


def test_payload_without_vips_decodes_as_standard_tickets():
    raw = '{"serial":"MN-2025-00000001","names":["A B","C D"]}'
    decoded = decode_payload(raw)
    assert decoded.vips == [False, False]


@pytest.mark.parametrize("raw", [
    "",
    "not json",
    "MN-2026-0A1B2C3D",
    "[1, 2]",
    '{"names": ["Jane Doe"]}',
    '{"serial": ""}',
    '{"serial": 42}',
    '{"serial": "MN-2026-0A1B2C3D", "names": "Jane Doe"}',
    '{"serial": "MN-2026-0A1B2C3D", "names": ["A B"], "vips": [true, false]}',
    '{"serial": "MN-2026-0A1B2C3D", "names": ["A B"], "vips": ["yes"]}',
])
def test_malformed_payloads(raw):
    with pytest.raises(MalformedPayload):
        decode_payload(raw)


def test_malformed_payload_is_a_validation_error():
    assert issubclass(MalformedPayload, ValidationError)


def test_ticket_summaries():
    ticket = Ticket(
        serial="MN-2026-0A1B2C3D",
        email="a@b.com",
        payload="{}",
        attendees=[AttendeeRecord("Jane", "Doe"), AttendeeRecord("X", "Y", True)],
    )
    assert ticket.names == ["Jane Doe", "X Y"]
    assert ticket.has_vip
