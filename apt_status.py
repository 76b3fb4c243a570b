'''
    KDC101 Status Bit Decoding
    Oct 2026 | Version 1
'''
from dataclasses import dataclass, fields

from apt_constants import StatusBits


@dataclass(frozen=True)
class DCStatusBits:
    """Named view of the 32-bit DC servo status word."""
    cw_hard_limit: bool = False
    ccw_hard_limit: bool = False
    cw_soft_limit: bool = False
    ccw_soft_limit: bool = False
    in_motion_cw: bool = False
    in_motion_ccw: bool = False
    jogging_cw: bool = False
    jogging_ccw: bool = False
    is_connected: bool = False
    is_homing: bool = False
    is_homed: bool = False
    is_initializing: bool = False
    is_tracking: bool = False
    is_settled: bool = False
    position_error: bool = False
    instruction_error: bool = False
    interlock: bool = False
    over_temperature: bool = False
    bus_voltage_fault: bool = False
    commutation_error: bool = False
    overload: bool = False
    encoder_fault: bool = False
    over_current: bool = False
    bus_current_fault: bool = False
    power_ok: bool = False
    is_active: bool = False
    error: bool = False
    is_enabled: bool = False

    def active(self) -> list:
        """Names of the flags that are set."""
        return [f.name for f in fields(self) if getattr(self, f.name)]


# Field name -> mask. Bits 20-23 are reserved and deliberately absent.
STATUS_FLAG_MASKS = {
    'cw_hard_limit': StatusBits.CWHARDLIMIT,
    'ccw_hard_limit': StatusBits.CCWHARDLIMIT,
    'cw_soft_limit': StatusBits.CWSOFTLIMIT,
    'ccw_soft_limit': StatusBits.CCWSOFTLIMIT,
    'in_motion_cw': StatusBits.INMOTIONCW,
    'in_motion_ccw': StatusBits.INMOTIONCCW,
    'jogging_cw': StatusBits.JOGGINGCW,
    'jogging_ccw': StatusBits.JOGGINGCCW,
    'is_connected': StatusBits.CONNECTED,
    'is_homing': StatusBits.HOMING,
    'is_homed': StatusBits.HOMED,
    'is_initializing': StatusBits.INITIALIZING,
    'is_tracking': StatusBits.TRACKING,
    'is_settled': StatusBits.SETTLED,
    'position_error': StatusBits.POSITIONERROR,
    'instruction_error': StatusBits.INSTRERROR,
    'interlock': StatusBits.INTERLOCK,
    'over_temperature': StatusBits.OVERTEMP,
    'bus_voltage_fault': StatusBits.BUSVOLTFAULT,
    'commutation_error': StatusBits.COMMUTATIONERROR,
    'overload': StatusBits.OVERLOAD,
    'encoder_fault': StatusBits.ENCODERFAULT,
    'over_current': StatusBits.OVERCURRENT,
    'bus_current_fault': StatusBits.BUSCURRENTFAULT,
    'power_ok': StatusBits.POWEROK,
    'is_active': StatusBits.ACTIVE,
    'error': StatusBits.ERROR,
    'is_enabled': StatusBits.ENABLED,
}

ERROR_FLAGS = (
    StatusBits.INSTRERROR |
    StatusBits.OVERTEMP |
    StatusBits.BUSVOLTFAULT |
    StatusBits.COMMUTATIONERROR |
    StatusBits.OVERLOAD |
    StatusBits.ENCODERFAULT |
    StatusBits.OVERCURRENT |
    StatusBits.BUSCURRENTFAULT |
    StatusBits.ERROR
)

MOTION_FLAGS = (
    StatusBits.INMOTIONCW |
    StatusBits.INMOTIONCCW |
    StatusBits.JOGGINGCW |
    StatusBits.JOGGINGCCW |
    StatusBits.HOMING
)


def parse_dc_status_bits(status_bits: int) -> DCStatusBits:
    """Expand a raw 32-bit status word into named flags. Never fails."""
    status_bits &= 0xFFFFFFFF
    return DCStatusBits(**{name: (status_bits & mask) != 0
                           for name, mask in STATUS_FLAG_MASKS.items()})


def has_errors(status_bits: int) -> bool:
    """True if any fault bit is set."""
    return bool(status_bits & ERROR_FLAGS)


def is_in_motion(status_bits: int) -> bool:
    return bool(status_bits & MOTION_FLAGS)


def is_settled(status_bits: int) -> bool:
    return bool(status_bits & StatusBits.SETTLED)


# Flag name -> text, grouped by how the line is labelled. Groups are
# reported in this order.
FAULT_TEXT = {
    'commutation_error': 'commutation error, power cycle required',
    'over_temperature': 'over temperature',
    'bus_voltage_fault': 'bus voltage fault',
    'bus_current_fault': 'bus current fault',
    'overload': 'overload',
    'encoder_fault': 'encoder fault',
    'over_current': 'continuous current limit exceeded',
    'instruction_error': 'instruction error',
    'error': 'unspecified error',
}

LIMIT_TEXT = {
    'cw_hard_limit': 'CW hard limit',
    'ccw_hard_limit': 'CCW hard limit',
    'cw_soft_limit': 'CW soft limit',
    'ccw_soft_limit': 'CCW soft limit',
    'position_error': 'outside tracking window',
    'interlock': 'interlock open',
}

# First match wins, a stage is only doing one of these at a time
MOTION_TEXT = {
    'is_homing': 'homing',
    'jogging_cw': 'jogging CW',
    'jogging_ccw': 'jogging CCW',
    'in_motion_cw': 'moving CW',
    'in_motion_ccw': 'moving CCW',
    'is_active': 'executing move',
    'is_settled': 'settled',
}

STATE_TEXT = {
    'is_initializing': 'initializing',
    'is_homed': 'homed',
    'is_tracking': 'tracking',
    'is_connected': 'motor connected',
    'is_enabled': 'output enabled',
    'power_ok': 'power ok',
}


def get_status_description(status_bits: int) -> str:
    '''
        get_status_description(status_bits) - one line per reported
        condition, faults first, e.g.

            fault: over temperature
            limit: CW hard limit
            motion: settled
            state: homed, output enabled
    '''
    active = set(parse_dc_status_bits(status_bits).active())
    lines = [f"fault: {text}" for name, text in FAULT_TEXT.items()
             if name in active]
    lines += [f"limit: {text}" for name, text in LIMIT_TEXT.items()
              if name in active]

    motion = next((text for name, text in MOTION_TEXT.items()
                   if name in active), None)
    if motion:
        lines.append(f"motion: {motion}")

    state = [text for name, text in STATE_TEXT.items() if name in active]
    if state:
        lines.append(f"state: {', '.join(state)}")

    return "\n".join(lines) if lines else "idle, no status bits set"
