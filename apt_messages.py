'''
    ThorLABS APT Protocol Message Codec
    Oct 2026 | Version 2

    Two message shapes go over the wire:
      header only - 6 bytes: id(2) param1 param2 dest src
      data        - 6 byte header: id(2) len(2) dest|0x80 src, then len bytes
    Everything multi-byte is little-endian.
'''
import struct
from dataclasses import dataclass, field
from typing import Optional

from apt_constants import Endpoint
from apt_errors import InvalidDataLength

HEADER_SIZE = 6
DATA_FLAG = 0x80


@dataclass(frozen=True)
class HeaderMessage:
    """A 6-byte header-only APT message."""
    msg_id: int
    param1: int = 0x00
    param2: int = 0x00
    destination: int = Endpoint.GENERIC_UNIT
    source: int = Endpoint.HOST


@dataclass(frozen=True)
class DataMessage:
    """An APT message with a data payload."""
    msg_id: int
    data: bytes = b''
    destination: int = Endpoint.GENERIC_UNIT
    source: int = Endpoint.HOST
    data_length: Optional[int] = field(default=None)

    def __post_init__(self):
        if self.data_length is None:
            object.__setattr__(self, 'data_length', len(self.data))


class APTProtocol():

    @classmethod
    def channel_mask(cls, channel: int) -> int:
        return 1 << (channel - 1)

    @classmethod
    def channel_payload(cls, channel: int, fmt: str = '', *values) -> bytes:
        '''
            channel_payload(channel, fmt, *values) - builds the common data
            payload prefix (channel mask byte + reserved zero byte) followed
            by the struct-packed fields in fmt.
        '''
        return struct.pack('<BB' + fmt, cls.channel_mask(channel), 0x00,
                           *values)

    @classmethod
    def build_header(cls, msg: HeaderMessage) -> bytes:
        return struct.pack('<HBBBB', msg.msg_id & 0xFFFF,
                           msg.param1, msg.param2,
                           msg.destination, msg.source)

    @classmethod
    def build_data(cls, msg: DataMessage) -> bytes:
        header = struct.pack('<HHBB', msg.msg_id & 0xFFFF,
                             msg.data_length & 0xFFFF,
                             msg.destination | DATA_FLAG,
                             msg.source)
        return header + bytes(msg.data)

    @classmethod
    def parse_header(cls, bdata: bytes) -> HeaderMessage:
        if len(bdata) < HEADER_SIZE:
            raise ValueError(f"Need {HEADER_SIZE} header bytes, "
                             f"got {len(bdata)}")
        msg_id, p1, p2, dest, src = struct.unpack('<HBBBB',
                                                  bdata[:HEADER_SIZE])
        return HeaderMessage(msg_id, p1, p2, dest, src)

    @classmethod
    def read_header(cls, transport) -> HeaderMessage:
        '''
            read_header(transport) - reads exactly one header-only reply.
        '''
        return cls.parse_header(transport.read(HEADER_SIZE))

    @classmethod
    def read_data(cls, transport) -> DataMessage:
        '''
            read_data(transport) - reads a data reply. The payload length is
            only known once the header is in, so this takes two reads:
            the 6-byte header, then exactly `len` payload bytes.
        '''
        header = transport.read(HEADER_SIZE)
        if len(header) < HEADER_SIZE:
            raise ValueError(f"Need {HEADER_SIZE} header bytes, "
                             f"got {len(header)}")
        msg_id, data_len, dest, src = struct.unpack('<HHBB',
                                                    header[:HEADER_SIZE])
        if data_len < 1:
            raise InvalidDataLength(data_len)

        payload = transport.read(data_len)
        return DataMessage(msg_id, bytes(payload), dest & ~DATA_FLAG & 0xFF,
                           src, data_len)

    @classmethod
    def parse_data(cls, bdata: bytes) -> DataMessage:
        '''
            parse_data(bdata) - decodes a complete data message held in
            memory (header + payload).
        '''
        if len(bdata) < HEADER_SIZE:
            raise ValueError(f"Need {HEADER_SIZE} header bytes, "
                             f"got {len(bdata)}")
        msg_id, data_len, dest, src = struct.unpack('<HHBB',
                                                    bdata[:HEADER_SIZE])
        if data_len < 1:
            raise InvalidDataLength(data_len)
        return DataMessage(msg_id, bytes(bdata[HEADER_SIZE:HEADER_SIZE + data_len]),
                           dest & ~DATA_FLAG & 0xFF, src, data_len)

    @classmethod
    def is_data_message(cls, bdata: bytes) -> bool:
        return len(bdata) >= 5 and bool(bdata[4] & DATA_FLAG)
