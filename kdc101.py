'''
	KDC101 Thorlabs DC Servo Controller Driver
	Rev 0 | Oct 2026

	Single channel K-Cube. Every call is synchronous: write, settle,
	read. Not thread safe, serialize access yourself if you share one.
'''

import argparse
import logging
import struct
from dataclasses import dataclass
from typing import Optional

from apt_constants import (ChannelEnableState, Direction, Endpoint, MsgId,
                           StopMode)
from apt_errors import ChannelNotSupported, ResponseTooShort
from apt_messages import APTProtocol, DataMessage, HeaderMessage
from apt_status import (DCStatusBits, get_status_description,
                        parse_dc_status_bits)
from apt_transaction import TransactionEngine
from calibration import Calibration, MotorType, StageType, UnitConverter
from serial_comms import SerialTransport, Transport

logger = logging.getLogger(__name__)

SUPPORTED_CHANNEL = 1


@dataclass
class HwInformation:
    """Parsed HW_GET_INFO reply."""
    serial_number: int
    model: str
    hw_type: int
    firmware_version: bytes
    hardware_version: int
    mod_state: int
    num_channels: int

    @property
    def firmware_version_str(self) -> str:
        """Firmware version as major.interim.minor."""
        fw = self.firmware_version
        return f"{fw[2]}.{fw[1]}.{fw[0]}"


@dataclass
class VelocityProfile:
    """Trapezoidal velocity profile, mm/s and mm/s2."""
    min_velocity: float
    max_velocity: float
    acceleration: float


@dataclass
class JogParameters:
    mode: int
    step_size: float
    min_velocity: float
    acceleration: float
    max_velocity: float
    stop_mode: int


@dataclass
class DCStatusUpdate:
    """Raw MOT_GET_DCSTATUSUPDATE payload, in encoder counts."""
    channel: int
    position: int
    velocity: int
    current: int
    status_bits: int


@dataclass
class DCStatusUpdateSI:
    channel: int
    position: float
    velocity: float
    current: int
    status_bits: DCStatusBits


class KDC101:
    """Controller class for the Thorlabs KDC101 over the APT protocol."""

    HW_INFO_LENGTH = 84
    DISTANCE_LENGTH = 6
    VELPARAMS_LENGTH = 14
    JOGPARAMS_LENGTH = 22
    DCSTATUS_LENGTH = 14

    def __init__(self, stage_type=StageType.MTS25_Z8,
                 motor_type=MotorType.BRUSHED,
                 transport: Optional[Transport] = None,
                 header_delay: Optional[float] = None,
                 data_delay: Optional[float] = None):
        # Fails fast on an unknown stage/motor
        self.calibration = Calibration.lookup(stage_type, motor_type)
        self.units = UnitConverter(self.calibration)
        self.transport = transport if transport is not None else SerialTransport()
        self.engine = TransactionEngine(self.transport, header_delay,
                                        data_delay)

    # ── Connection management ────────────────────────────────────

    def connect(self) -> None:
        """Open the transport."""
        self.transport.connect()
        logger.info("KDC101 connected (%s / %s)",
                    self.calibration.stage_type, self.calibration.motor_type)

    def disconnect(self) -> None:
        """Close the transport."""
        self.transport.disconnect()
        logger.info("KDC101 disconnected")

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _check_channel(channel: int) -> None:
        if (isinstance(channel, bool) or not isinstance(channel, int) or
                channel != SUPPORTED_CHANNEL):
            raise ChannelNotSupported(channel)

    @staticmethod
    def _header(msg_id: int, channel: Optional[int] = None,
                param2: int = 0x00) -> HeaderMessage:
        param1 = APTProtocol.channel_mask(channel) if channel is not None else 0x00
        return HeaderMessage(msg_id, param1, int(param2),
                             Endpoint.GENERIC_UNIT, Endpoint.HOST)

    def _send_data(self, msg_id: int, data: bytes) -> None:
        self.engine.write_data(DataMessage(msg_id, data,
                                           Endpoint.GENERIC_UNIT,
                                           Endpoint.HOST))

    def _request(self, msg_id: int, channel: Optional[int], min_length: int,
                 what: str) -> bytes:
        response = self.engine.request_data(self._header(msg_id, channel))
        data = response.data
        if len(data) < min_length:
            raise ResponseTooShort(what, min_length, len(data))
        return data

    def _send_position(self, msg_id: int, channel: int,
                       position: float) -> None:
        counts = self.units.position_to_counts(position)
        self._send_data(msg_id, APTProtocol.channel_payload(channel, 'l',
                                                            counts))

    def _get_position(self, msg_id: int, channel: int, what: str) -> float:
        data = self._request(msg_id, channel, self.DISTANCE_LENGTH, what)
        counts = struct.unpack('<l', data[2:6])[0]
        return self.units.counts_to_position(counts)

    # ── Module / hardware ────────────────────────────────────────

    def identify(self, channel: int = 1) -> None:
        """Flash the front panel LED."""
        self._check_channel(channel)
        self.engine.write_header_only(self._header(MsgId.MOD_IDENTIFY,
                                                   channel))

    def get_hw_info(self) -> HwInformation:
        """
        Request hardware information from the controller.

        Returns:
            HwInformation parsed from the HW_GET_INFO reply

        Raises:
            ResponseTooShort: If the reply carries fewer than 84 bytes
        """
        data = self._request(MsgId.HW_REQ_INFO, None, self.HW_INFO_LENGTH,
                             'HW_GET_INFO')
        serial_number, model, hw_type = struct.unpack('<l8sH', data[0:14])
        hw_version, mod_state, num_channels = struct.unpack('<HHH',
                                                            data[78:84])
        return HwInformation(
            serial_number=serial_number,
            model=model.decode('ascii', errors='replace').rstrip('\x00'),
            hw_type=hw_type,
            firmware_version=bytes(data[14:18]),
            hardware_version=hw_version,
            mod_state=mod_state,
            num_channels=num_channels,
        )

    def enable(self, channel: int = 1, enable: bool = True) -> None:
        """
        Enable or disable the drive channel.

        Args:
            channel: Channel number (must be 1)
            enable: True to enable, False to disable
        """
        self._check_channel(channel)
        state = (ChannelEnableState.ENABLED if enable
                 else ChannelEnableState.DISABLED)
        self.engine.write_header_only(
            self._header(MsgId.MOD_SET_CHANENABLESTATE, channel, state))

    def disable(self, channel: int = 1) -> None:
        self.enable(channel, False)

    def is_enabled(self, channel: int = 1) -> bool:
        """Query the channel enable state."""
        self._check_channel(channel)
        response = self.engine.request_header_only(
            self._header(MsgId.MOD_REQ_CHANENABLESTATE, channel))
        return response.param2 == ChannelEnableState.ENABLED

    # ── Moves ────────────────────────────────────────────────────

    def start_home_move(self, channel: int = 1) -> None:
        """Start homing. Poll get_dc_status_update_si() for is_homed."""
        self._check_channel(channel)
        self.engine.write_header_only(self._header(MsgId.MOT_MOVE_HOME,
                                                   channel))

    def start_relative_move(self, channel: int = 1) -> None:
        """Relative move by the distance set with set_relative_move_distance."""
        self._check_channel(channel)
        self.engine.write_header_only(self._header(MsgId.MOT_MOVE_RELATIVE,
                                                   channel))

    def move_relative_distance(self, channel: int, distance: float) -> None:
        """Start a relative move of `distance` mm."""
        self._check_channel(channel)
        self._send_position(MsgId.MOT_MOVE_RELATIVE, channel, distance)

    def set_relative_move_distance(self, channel: int,
                                   distance: float) -> None:
        """Set the distance (mm) used by the next start_relative_move."""
        self._check_channel(channel)
        self._send_position(MsgId.MOT_SET_MOVERELPARAMS, channel, distance)

    def get_relative_move_distance(self, channel: int = 1) -> float:
        self._check_channel(channel)
        return self._get_position(MsgId.MOT_REQ_MOVERELPARAMS, channel,
                                  'MOT_GET_MOVERELPARAMS')

    def start_absolute_move(self, channel: int = 1) -> None:
        """Absolute move to the position set with set_absolute_move_position."""
        self._check_channel(channel)
        self.engine.write_header_only(self._header(MsgId.MOT_MOVE_ABSOLUTE,
                                                   channel))

    def move_absolute_position(self, channel: int, position: float) -> None:
        """Start an absolute move to `position` mm."""
        self._check_channel(channel)
        self._send_position(MsgId.MOT_MOVE_ABSOLUTE, channel, position)

    def set_absolute_move_position(self, channel: int,
                                   position: float) -> None:
        self._check_channel(channel)
        self._send_position(MsgId.MOT_SET_MOVEABSPARAMS, channel, position)

    def get_absolute_move_position(self, channel: int = 1) -> float:
        self._check_channel(channel)
        return self._get_position(MsgId.MOT_REQ_MOVEABSPARAMS, channel,
                                  'MOT_GET_MOVEABSPARAMS')

    def start_jog_move(self, channel: int = 1,
                       direction: int = Direction.FORWARD) -> None:
        """Jog using the current jog parameters."""
        self._check_channel(channel)
        self.engine.write_header_only(
            self._header(MsgId.MOT_MOVE_JOG, channel, direction))

    def move_continuous(self, channel: int = 1,
                        direction: int = Direction.FORWARD) -> None:
        '''
            move_continuous(channel, direction): runs at the current
            velocity parameters until stop() or a limit.
        '''
        self._check_channel(channel)
        self.engine.write_header_only(
            self._header(MsgId.MOT_MOVE_VELOCITY, channel, direction))

    def stop(self, channel: int = 1, mode: int = StopMode.SOFT) -> None:
        self._check_channel(channel)
        self.engine.write_header_only(
            self._header(MsgId.MOT_MOVE_STOP, channel, mode))

    # ── Velocity / jog parameters ────────────────────────────────

    def set_trapezoidal_velocity(self, channel: int,
                                 profile: VelocityProfile) -> None:
        """
        Set the trapezoidal velocity profile.

        Args:
            channel: Channel number (must be 1)
            profile: Min/max velocity in mm/s, acceleration in mm/s2
        """
        self._check_channel(channel)
        u = self.units
        data = APTProtocol.channel_payload(
            channel, 'LLL',
            u.velocity_to_counts(profile.min_velocity),
            u.acceleration_to_counts(profile.acceleration),
            u.velocity_to_counts(profile.max_velocity))
        self._send_data(MsgId.MOT_SET_VELPARAMS, data)

    def get_trapezoidal_velocity(self, channel: int = 1) -> VelocityProfile:
        self._check_channel(channel)
        data = self._request(MsgId.MOT_REQ_VELPARAMS, channel,
                             self.VELPARAMS_LENGTH, 'MOT_GET_VELPARAMS')
        min_vel, accel, max_vel = struct.unpack('<LlL', data[2:14])
        return VelocityProfile(
            min_velocity=self.units.counts_to_velocity(min_vel),
            max_velocity=self.units.counts_to_velocity(max_vel),
            acceleration=self.units.counts_to_acceleration(accel),
        )

    def set_jog_parameters(self, channel: int,
                           params: JogParameters) -> None:
        """
        Set jog parameters.

        Args:
            channel: Channel number (must be 1)
            params: mode (JogMode), step size in mm, velocities in mm/s,
                acceleration in mm/s2, stop mode (StopMode)
        """
        self._check_channel(channel)
        u = self.units
        data = APTProtocol.channel_payload(
            channel, 'HlLLLH',
            int(params.mode),
            u.position_to_counts(params.step_size),
            u.velocity_to_counts(params.min_velocity),
            u.acceleration_to_counts(params.acceleration),
            u.velocity_to_counts(params.max_velocity),
            int(params.stop_mode))
        self._send_data(MsgId.MOT_SET_JOGPARAMS, data)

    def get_jog_parameters(self, channel: int = 1) -> JogParameters:
        self._check_channel(channel)
        data = self._request(MsgId.MOT_REQ_JOGPARAMS, channel,
                             self.JOGPARAMS_LENGTH, 'MOT_GET_JOGPARAMS')
        mode, step, min_vel, accel, max_vel, stop_mode = struct.unpack(
            '<HlLlLH', data[2:22])
        return JogParameters(
            mode=mode,
            step_size=self.units.counts_to_position(step),
            min_velocity=self.units.counts_to_velocity(min_vel),
            acceleration=self.units.counts_to_acceleration(accel),
            max_velocity=self.units.counts_to_velocity(max_vel),
            stop_mode=stop_mode,
        )

    # ── Status ───────────────────────────────────────────────────

    def get_dc_status_update(self, channel: int = 1) -> DCStatusUpdate:
        """Request a status update, raw encoder counts."""
        self._check_channel(channel)
        data = self._request(MsgId.MOT_REQ_DCSTATUSUPDATE, channel,
                             self.DCSTATUS_LENGTH, 'MOT_GET_DCSTATUSUPDATE')
        chan, position, velocity, current, status_bits = struct.unpack(
            '<HlHhL', data[0:14])
        return DCStatusUpdate(chan, position, velocity, current, status_bits)

    def dc_status_update_to_si(self, update: DCStatusUpdate) -> DCStatusUpdateSI:
        """Rescale a raw status update to mm, mm/s and named flags."""
        return DCStatusUpdateSI(
            channel=update.channel,
            position=self.units.counts_to_position(update.position),
            velocity=self.units.counts_to_velocity(update.velocity),
            current=update.current,
            status_bits=parse_dc_status_bits(update.status_bits),
        )

    def get_dc_status_update_si(self, channel: int = 1) -> DCStatusUpdateSI:
        return self.dc_status_update_to_si(self.get_dc_status_update(channel))

    @staticmethod
    def parse_dc_status_bits(status_bits: int) -> DCStatusBits:
        return parse_dc_status_bits(status_bits)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='KDC101 quick check')
    parser.add_argument('--port', default=SerialTransport.serial_port,
                        help='serial port or pyserial URL')
    parser.add_argument('--stage', default=StageType.MTS25_Z8.value,
                        choices=[s.value for s in StageType])
    parser.add_argument('--motor', default=MotorType.BRUSHED.value,
                        choices=[m.value for m in MotorType])
    parser.add_argument('--move', type=float, default=None,
                        help='absolute position to move to (mm)')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    with KDC101(args.stage, args.motor,
                transport=SerialTransport(args.port)) as kdc:
        info = kdc.get_hw_info()
        print("Hardware Info:")
        print(f"  Serial Number: {info.serial_number}")
        print(f"  Model: {info.model}")
        print(f"  Firmware: {info.firmware_version_str}")
        print(f"  Channels: {info.num_channels}")

        raw = kdc.get_dc_status_update(1)
        status = kdc.dc_status_update_to_si(raw)
        print(f"  Position: {status.position:.4f}")
        print(get_status_description(raw.status_bits))

        if args.move is not None:
            kdc.enable(1, True)
            kdc.move_absolute_position(1, args.move)
            print(f"Moving to {args.move} ...")
