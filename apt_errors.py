'''
    ThorLABS APT Driver Errors
    Oct 2026 | Version 1
'''


class APTError(Exception):
    """Base class for everything raised by the KDC101 driver."""


class ChannelNotSupported(APTError, ValueError):
    """The KDC101 only has channel 1."""

    def __init__(self, channel):
        super().__init__(f"KDC101 just supports channel 1, got {channel!r}")
        self.channel = channel


class InvalidDataLength(APTError):
    """A data message header declared an empty payload."""

    def __init__(self, length):
        super().__init__(f"Invalid data length: {length}")
        self.length = length


class ResponseTooShort(APTError):
    """Reply payload is shorter than the fixed layout of its message."""

    def __init__(self, what, expected, got):
        super().__init__(f"Invalid {what} response: expected at least "
                         f"{expected} bytes, got {got}")
        self.expected = expected
        self.got = got


class UnsupportedStageOrMotor(APTError, KeyError):
    def __init__(self, stage_type, motor_type):
        super().__init__(f"Unsupported stage/motor combination: "
                         f"{stage_type!r} / {motor_type!r}")
        self.stage_type = stage_type
        self.motor_type = motor_type

    def __str__(self):
        # KeyError would repr() the message
        return self.args[0]


class TransportError(APTError, IOError):
    """Transport not connected, or a write/read did not complete."""


class TransportTimeout(TransportError, TimeoutError):
    """Fewer bytes than requested arrived before the read timeout."""
