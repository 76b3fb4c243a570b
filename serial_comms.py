'''
    KDC101 Serial Communication Tools
    Oct 2026 | Version 2

    Byte-stream transports for the APT protocol. The protocol layer only
    needs connect/disconnect/write and a blocking read of exactly n bytes;
    anything that provides those can stand in for the hardware.
'''
import logging
import time
from abc import ABC, abstractmethod

import serial
from pyftdi.ftdi import Ftdi

from apt_errors import TransportError, TransportTimeout

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Blocking byte-stream capability consumed by the protocol layer."""

    @abstractmethod
    def connect(self) -> None:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    def read(self, n: int) -> bytes:
        """Block until exactly n bytes have arrived, or raise."""
        ...


class SerialTransport(Transport):
    '''
        SerialTransport - the KDC101 virtual COM port via pyserial.
        `port` may be a device path (/dev/ttyUSB0, COM6) or any pyserial
        URL (loop://, socket://host:port, ...).
    '''
    serial_port = '/dev/ttyUSB0'
    serial_speed = 115200

    def __init__(self, port=None, baudrate=None, timeout=5.0,
                 write_timeout=5.0, rtscts=True):
        self.serial_port = port if port is not None else self.serial_port
        self.serial_speed = (baudrate if baudrate is not None
                             else self.serial_speed)
        self.timeout = timeout
        self.write_timeout = write_timeout
        self.rtscts = rtscts
        self.serial_connection = None

    def connect(self):
        if self.is_connected():
            return
        conn = serial.serial_for_url(
            self.serial_port,
            baudrate=self.serial_speed,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            rtscts=self.rtscts,
            timeout=self.timeout,
            write_timeout=self.write_timeout)
        try:
            # Drop anything left over from a previous session
            conn.reset_input_buffer()
            conn.reset_output_buffer()
        except Exception:
            conn.close()
            raise
        self.serial_connection = conn
        logger.info("Opened %s @ %d baud", self.serial_port, self.serial_speed)

    def disconnect(self):
        if self.serial_connection is not None:
            if self.serial_connection.is_open:
                self.serial_connection.close()
                logger.info("Closed %s", self.serial_port)
            self.serial_connection = None

    def is_connected(self):
        return (self.serial_connection is not None and
                self.serial_connection.is_open)

    def write(self, data):
        if not self.is_connected():
            raise TransportError("Not connected to controller")
        written = self.serial_connection.write(data)
        if written is not None and written != len(data):
            raise TransportError(f"Short write: {written} of {len(data)} bytes")
        self.serial_connection.flush()

    def read(self, n):
        if not self.is_connected():
            raise TransportError("Not connected to controller")
        data = self.serial_connection.read(n)
        if len(data) != n:
            raise TransportTimeout(f"Timeout reading {n} bytes from "
                                   f"{self.serial_port}, got {len(data)}")
        return bytes(data)


class FtdiTransport(Transport):
    '''
        FtdiTransport - talks to the KDC101's FTDI chip directly via pyftdi,
        bypassing the OS serial driver.
    '''
    VENDOR_ID = 0x0403
    PRODUCT_ID = 0xfaf0

    # Class variable to track if FTDI product is registered
    _ftdi_registered = False

    def __init__(self, url: str = 'ftdi://0x0403:0xfaf0/1',
                 baudrate: int = 115200, timeout: float = 5.0,
                 poll_interval: float = 0.001):
        # Only register the custom product once globally
        if not FtdiTransport._ftdi_registered:
            try:
                Ftdi.add_custom_product(self.VENDOR_ID, self.PRODUCT_ID,
                                        'Thorlabs')
            except ValueError:
                # Already registered
                pass
            FtdiTransport._ftdi_registered = True

        self.ftdi = Ftdi()
        self.url = url
        self.baudrate = baudrate
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._connected = False

    def connect(self) -> None:
        if self._connected:
            return
        self.ftdi.open_from_url(self.url)
        try:
            self.ftdi.set_baudrate(self.baudrate)
            self.ftdi.set_line_property(8, 1, 'N')
            self.ftdi.set_flowctrl('hw')
            self.ftdi.set_rts(True)
            self.ftdi.purge_buffers()
        except Exception:
            self.ftdi.close()
            raise
        self._connected = True
        logger.info("Opened %s @ %d baud", self.url, self.baudrate)

    def disconnect(self) -> None:
        if self._connected:
            self.ftdi.close()
            self._connected = False
            logger.info("Closed %s", self.url)

    def is_connected(self) -> bool:
        return self._connected

    def write(self, data: bytes) -> None:
        if not self._connected:
            raise TransportError("Not connected to controller")
        written = self.ftdi.write_data(data)
        if written != len(data):
            raise TransportError(f"Short write: {written} of {len(data)} bytes")

    def read(self, n: int) -> bytes:
        if not self._connected:
            raise TransportError("Not connected to controller")
        buffer = b''
        deadline = time.monotonic() + self.timeout
        while len(buffer) < n:
            chunk = self.ftdi.read_data(n - len(buffer))
            if chunk:
                buffer += chunk
                continue
            if time.monotonic() >= deadline:
                raise TransportTimeout(f"Timeout reading {n} bytes from "
                                       f"{self.url}, got {len(buffer)}")
            time.sleep(self.poll_interval)
        return buffer
