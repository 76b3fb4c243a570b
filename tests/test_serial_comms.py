"""Tests for the pyserial and pyftdi transports."""

from unittest import mock

import pytest

import serial_comms
from apt_errors import TransportError, TransportTimeout
from apt_messages import APTProtocol, HeaderMessage
from kdc101 import KDC101
from serial_comms import FtdiTransport, SerialTransport


# ── SerialTransport (pyserial loop://) ───────────────────────

@pytest.fixture
def loop():
    t = SerialTransport('loop://', timeout=0.1, write_timeout=0.1)
    t.connect()
    yield t
    t.disconnect()


def test_serial_defaults():
    t = SerialTransport()
    assert t.serial_port == '/dev/ttyUSB0'
    assert t.serial_speed == 115200
    assert t.rtscts is True
    assert not t.is_connected()


def test_serial_loopback_read_exact(loop):
    raw = APTProtocol.build_header(HeaderMessage(0x0223, 0x01))
    loop.write(raw)
    assert loop.read(6) == raw


def test_serial_short_read_times_out(loop):
    loop.write(b'\x01\x02')
    with pytest.raises(TransportTimeout):
        loop.read(6)


def test_serial_disconnect(loop):
    assert loop.is_connected()
    loop.disconnect()
    assert not loop.is_connected()
    with pytest.raises(TransportError):
        loop.write(b'\x00')
    with pytest.raises(TransportError):
        loop.read(1)


def test_serial_connect_failure_closes_port(monkeypatch):
    """A port that fails setup is closed and never kept, even via KDC101."""
    port = mock.MagicMock()
    port.reset_input_buffer.side_effect = OSError("device reset")
    monkeypatch.setattr(serial_comms.serial, 'serial_for_url',
                        mock.MagicMock(return_value=port))
    t = SerialTransport('loop://')
    with pytest.raises(OSError):
        with KDC101(transport=t):
            pass
    port.close.assert_called_once_with()
    assert t.serial_connection is None
    assert not t.is_connected()


# ── FtdiTransport (mocked pyftdi) ────────────────────────────

@pytest.fixture
def ftdi_cls(monkeypatch):
    cls = mock.MagicMock()
    monkeypatch.setattr(serial_comms, 'Ftdi', cls)
    monkeypatch.setattr(FtdiTransport, '_ftdi_registered', False)
    return cls


def test_ftdi_registers_product_once(ftdi_cls):
    FtdiTransport()
    FtdiTransport()
    ftdi_cls.add_custom_product.assert_called_once_with(0x0403, 0xfaf0,
                                                        'Thorlabs')


def test_ftdi_connect_configures_port(ftdi_cls):
    t = FtdiTransport(url='ftdi://0x0403:0xfaf0/1')
    t.connect()
    dev = ftdi_cls.return_value
    dev.open_from_url.assert_called_once_with('ftdi://0x0403:0xfaf0/1')
    dev.set_baudrate.assert_called_once_with(115200)
    dev.set_line_property.assert_called_once_with(8, 1, 'N')
    dev.set_flowctrl.assert_called_once_with('hw')
    dev.set_rts.assert_called_once_with(True)
    dev.purge_buffers.assert_called_once_with()
    assert t.is_connected()
    t.disconnect()
    dev.close.assert_called_once_with()
    assert not t.is_connected()


def test_ftdi_connect_failure_closes_device(ftdi_cls):
    dev = ftdi_cls.return_value
    dev.set_baudrate.side_effect = OSError("usb gone")
    t = FtdiTransport()
    with pytest.raises(OSError):
        t.connect()
    dev.close.assert_called_once_with()
    assert not t.is_connected()


def test_ftdi_read_accumulates_chunks(ftdi_cls):
    dev = ftdi_cls.return_value
    dev.read_data.side_effect = [b'\x91\x04', b'', b'\x0e\x00\x81\x50']
    t = FtdiTransport(poll_interval=0)
    t.connect()
    assert t.read(6) == b'\x91\x04\x0e\x00\x81\x50'


def test_ftdi_read_timeout(ftdi_cls):
    dev = ftdi_cls.return_value
    dev.read_data.return_value = b''
    t = FtdiTransport(timeout=0, poll_interval=0)
    t.connect()
    with pytest.raises(TransportTimeout):
        t.read(6)


def test_ftdi_short_write(ftdi_cls):
    dev = ftdi_cls.return_value
    dev.write_data.return_value = 3
    t = FtdiTransport()
    t.connect()
    with pytest.raises(TransportError):
        t.write(bytes(6))


def test_ftdi_requires_connection(ftdi_cls):
    t = FtdiTransport()
    with pytest.raises(TransportError):
        t.write(bytes(6))
