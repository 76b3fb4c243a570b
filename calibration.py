'''
    KDC101 Stage Calibration & Unit Conversion
    Oct 2026 | Version 1

    Position, velocity and acceleration scaling for the KDC101 DC servo
    controller. Scaling follows the APT protocol manual: velocities and
    accelerations are sent in encoder counts scaled by the controller's
    sampling interval T (2048 / 6e6 s) and a 2^16 fixed point factor.
'''
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from apt_errors import UnsupportedStageOrMotor


class StageType(str, Enum):
    MTS25_Z8 = 'MTS25-Z8'
    MTS50_Z8 = 'MTS50-Z8'
    Z8XX = 'Z8xx'
    Z6XX = 'Z6xx'
    PRM1_Z8 = 'PRM1-Z8'
    PRMTZ8 = 'PRMTZ8'
    CR1_Z7 = 'CR1-Z7'
    KVS30 = 'KVS30'


class MotorType(str, Enum):
    BRUSHED = 'Brushed'
    BRUSHLESS = 'Brushless'


# Encoder counts per mm (linear) or per degree (rotation)
STAGE_SCALING_FACTOR = MappingProxyType({
    'MTS25-Z8': 34554.96,
    'MTS50-Z8': 34554.96,
    'Z8xx': 34554.96,
    'Z6xx': 24600.0,
    'PRM1-Z8': 1919.6418578623391,
    'PRMTZ8': 1919.6418578623391,
    'CR1-Z7': 12288.0,
    'KVS30': 20000.0,
})

# Seconds per controller sample
MOTOR_T_FACTOR = MappingProxyType({
    'Brushed': 2048.0 / (6.0 * 1e6),
    'Brushless': 2048.0 / (6.0 * 1e6),
})

VELOCITY_FIXED_POINT = 65536


def _key(value):
    return value.value if isinstance(value, Enum) else value


def to_int32(value: int) -> int:
    """Wrap an integer to a signed 32-bit value (two's complement)."""
    return ((value + 0x80000000) & 0xFFFFFFFF) - 0x80000000


def to_uint32(value: int) -> int:
    """Wrap an integer to an unsigned 32-bit value."""
    return value & 0xFFFFFFFF


@dataclass(frozen=True)
class Calibration:
    """Scaling constants for one stage/motor pairing."""
    stage_type: str
    motor_type: str
    stage_scale: float
    motor_t_factor: float

    @classmethod
    def lookup(cls, stage_type, motor_type) -> 'Calibration':
        stage = _key(stage_type)
        motor = _key(motor_type)
        try:
            scale = STAGE_SCALING_FACTOR[stage]
            t_factor = MOTOR_T_FACTOR[motor]
        except (KeyError, TypeError):
            raise UnsupportedStageOrMotor(stage, motor) from None
        return cls(stage, motor, scale, t_factor)


class UnitConverter:
    """Converts between physical units and encoder counts."""

    def __init__(self, calibration: Calibration):
        self.calibration = calibration

    @property
    def _scale(self):
        return self.calibration.stage_scale

    @property
    def _t(self):
        return self.calibration.motor_t_factor

    def position_to_counts(self, position: float) -> int:
        """Position in mm (or deg) to signed 32-bit encoder counts."""
        return to_int32(int(round(position * self._scale)))

    def counts_to_position(self, counts: int) -> float:
        return counts / self._scale

    def velocity_to_counts(self, velocity: float) -> int:
        """Velocity in mm/s to unsigned 32-bit APT velocity counts."""
        T = self._t
        return to_uint32(int(round(
            velocity * T * VELOCITY_FIXED_POINT * self._scale)))

    def counts_to_velocity(self, counts: int) -> float:
        T = self._t
        return counts / (T * VELOCITY_FIXED_POINT * self._scale)

    def acceleration_to_counts(self, acceleration: float) -> int:
        '''
            acceleration_to_counts(acceleration): mm/s2 to unsigned 32-bit
            APT acceleration counts. The T^2 scaling is what the firmware
            expects, keep it.
        '''
        T = self._t
        return to_uint32(int(round(
            acceleration * (T * T) * VELOCITY_FIXED_POINT * self._scale)))

    def counts_to_acceleration(self, counts: int) -> float:
        T = self._t
        return counts / (T * T * VELOCITY_FIXED_POINT * self._scale)
