"""Tests for APT message encoding and decoding."""

import struct

import pytest

from apt_constants import Endpoint
from apt_errors import InvalidDataLength, TransportTimeout
from apt_messages import APTProtocol, DataMessage, HeaderMessage

from fakes import FakeTransport, data_reply


def test_build_header_layout():
    msg = HeaderMessage(0x0223, 0x01, 0x00, Endpoint.GENERIC_UNIT, Endpoint.HOST)
    assert APTProtocol.build_header(msg) == bytes([0x23, 0x02, 0x01, 0x00, 0x50, 0x01])


def test_build_header_is_six_bytes():
    assert len(APTProtocol.build_header(HeaderMessage(0x0005))) == 6


def test_build_data_layout():
    msg = DataMessage(0x0453, b'\x01\x00\xce\x45\x05\x00')
    raw = APTProtocol.build_data(msg)
    assert raw[:6] == bytes([0x53, 0x04, 0x06, 0x00, 0xD0, 0x01])
    assert raw[6:] == b'\x01\x00\xce\x45\x05\x00'


def test_data_length_defaults_to_payload_size():
    assert DataMessage(0x0413, bytes(14)).data_length == 14


def test_header_round_trip():
    msg = HeaderMessage(0x0465, 0x01, 0x02, Endpoint.GENERIC_UNIT, Endpoint.HOST)
    t = FakeTransport()
    t.queue(APTProtocol.build_header(msg))
    assert APTProtocol.read_header(t) == msg


def test_parse_header_little_endian_id():
    parsed = APTProtocol.parse_header(bytes([0x12, 0x02, 0x01, 0x02, 0x01, 0x50]))
    assert parsed.msg_id == 0x0212
    assert parsed.param1 == 0x01
    assert parsed.param2 == 0x02
    assert parsed.destination == Endpoint.HOST
    assert parsed.source == Endpoint.GENERIC_UNIT


def test_data_round_trip_masks_destination():
    payload = bytes(range(10))
    raw = APTProtocol.build_data(DataMessage(0x0416, payload, Endpoint.RACK, Endpoint.HOST))
    assert raw[4] == 0x82

    t = FakeTransport()
    t.queue(raw)
    msg = APTProtocol.read_data(t)
    assert msg.msg_id == 0x0416
    assert msg.destination == Endpoint.RACK
    assert msg.source == Endpoint.HOST
    assert msg.data == payload
    assert msg.data_length == 10
    assert t.events == [('read', 6), ('read', 10)]


def test_parse_data_from_memory():
    raw = data_reply(0x0491, b'\x01\x00' + bytes(12))
    msg = APTProtocol.parse_data(raw)
    assert msg.msg_id == 0x0491
    assert msg.destination == Endpoint.HOST
    assert msg.data_length == 14
    assert APTProtocol.is_data_message(raw)
    assert not APTProtocol.is_data_message(bytes(6))


def test_zero_length_data_fails_before_second_read():
    t = FakeTransport()
    t.queue(struct.pack('<HHBB', 0x0415, 0, 0x81, 0x50))
    with pytest.raises(InvalidDataLength):
        APTProtocol.read_data(t)
    assert t.events == [('read', 6)]


def test_short_payload_propagates_transport_error():
    t = FakeTransport()
    t.queue(struct.pack('<HHBB', 0x0415, 14, 0x81, 0x50) + bytes(3))
    with pytest.raises(TransportTimeout):
        APTProtocol.read_data(t)


def test_channel_payload():
    assert APTProtocol.channel_mask(1) == 0x01
    assert APTProtocol.channel_payload(1, 'l', -1) == b'\x01\x00\xff\xff\xff\xff'
    assert APTProtocol.channel_payload(1) == b'\x01\x00'
