'''
    ThorLABS APT Protocol Constants (KDC101)
    Oct 2026 | Version 1
'''
from enum import IntEnum, IntFlag


class MsgId(IntEnum):
    """APT message IDs used by the KDC101."""
    HW_REQ_INFO = 0x0005
    HW_GET_INFO = 0x0006
    MOD_REQ_CHANENABLESTATE = 0x0211
    MOD_GET_CHANENABLESTATE = 0x0212
    MOD_IDENTIFY = 0x0223
    MOD_SET_CHANENABLESTATE = 0x0224  # KDC101 uses 0x0224, not 0x0210
    MOT_SET_VELPARAMS = 0x0413
    MOT_REQ_VELPARAMS = 0x0414
    MOT_GET_VELPARAMS = 0x0415
    MOT_SET_JOGPARAMS = 0x0416
    MOT_REQ_JOGPARAMS = 0x0417
    MOT_GET_JOGPARAMS = 0x0418
    MOT_MOVE_HOME = 0x0443
    MOT_SET_MOVERELPARAMS = 0x0445
    MOT_REQ_MOVERELPARAMS = 0x0446
    MOT_GET_MOVERELPARAMS = 0x0447
    MOT_MOVE_RELATIVE = 0x0448
    MOT_SET_MOVEABSPARAMS = 0x0450
    MOT_REQ_MOVEABSPARAMS = 0x0451
    MOT_GET_MOVEABSPARAMS = 0x0452
    MOT_MOVE_ABSOLUTE = 0x0453
    MOT_MOVE_VELOCITY = 0x0457
    MOT_MOVE_STOP = 0x0465
    MOT_MOVE_JOG = 0x046A
    MOT_REQ_DCSTATUSUPDATE = 0x0490
    MOT_GET_DCSTATUSUPDATE = 0x0491


# REQ -> GET pairs for the request/response exchanges
REPLY_IDS = {
    MsgId.HW_REQ_INFO: MsgId.HW_GET_INFO,
    MsgId.MOD_REQ_CHANENABLESTATE: MsgId.MOD_GET_CHANENABLESTATE,
    MsgId.MOT_REQ_VELPARAMS: MsgId.MOT_GET_VELPARAMS,
    MsgId.MOT_REQ_JOGPARAMS: MsgId.MOT_GET_JOGPARAMS,
    MsgId.MOT_REQ_MOVERELPARAMS: MsgId.MOT_GET_MOVERELPARAMS,
    MsgId.MOT_REQ_MOVEABSPARAMS: MsgId.MOT_GET_MOVEABSPARAMS,
    MsgId.MOT_REQ_DCSTATUSUPDATE: MsgId.MOT_GET_DCSTATUSUPDATE,
}


class Endpoint(IntEnum):
    """Source/destination address bytes."""
    HOST = 0x01
    RACK = 0x02
    GENERIC_UNIT = 0x50


class Direction(IntEnum):
    """Jog / continuous move direction."""
    FORWARD = 0x01
    REVERSE = 0x02


class StopMode(IntEnum):
    """Stop mode values."""
    ABRUPT = 0x01
    SOFT = 0x02


class ChannelEnableState(IntEnum):
    """Channel enable state values."""
    ENABLED = 0x01
    DISABLED = 0x02


class JogMode(IntEnum):
    """Jog mode values."""
    CONTINUOUS = 0x01
    SINGLE_STEP = 0x02


class StatusBits(IntFlag):
    """DC servo status bit flags (MOT_GET_DCSTATUSUPDATE)."""
    CWHARDLIMIT = 0x00000001        # Clockwise hard limit triggered
    CCWHARDLIMIT = 0x00000002       # Counter-clockwise hard limit triggered
    CWSOFTLIMIT = 0x00000004        # Clockwise software limit triggered
    CCWSOFTLIMIT = 0x00000008       # Counter-clockwise software limit triggered
    INMOTIONCW = 0x00000010         # Moving clockwise
    INMOTIONCCW = 0x00000020        # Moving counter-clockwise
    JOGGINGCW = 0x00000040          # Jogging clockwise
    JOGGINGCCW = 0x00000080         # Jogging counter-clockwise
    CONNECTED = 0x00000100          # Motor recognized by controller
    HOMING = 0x00000200             # Motor is homing
    HOMED = 0x00000400              # Homing complete, position valid
    INITIALIZING = 0x00000800       # Phase initialization in progress
    TRACKING = 0x00001000           # Position within tracking window
    SETTLED = 0x00002000            # Not moving, settled at target
    POSITIONERROR = 0x00004000      # Position outside tracking window
    INSTRERROR = 0x00008000         # Instruction could not be executed
    INTERLOCK = 0x00010000          # Interlock open
    OVERTEMP = 0x00020000           # Overtemperature
    BUSVOLTFAULT = 0x00040000       # Supply voltage too low
    COMMUTATIONERROR = 0x00080000   # Commutation error (power cycle required)
    # 0x00100000 - 0x00800000 reserved on this device class
    OVERLOAD = 0x01000000           # Motor overload
    ENCODERFAULT = 0x02000000       # Encoder error
    OVERCURRENT = 0x04000000        # Continuous current limit exceeded
    BUSCURRENTFAULT = 0x08000000    # Bus current fault
    POWEROK = 0x10000000            # Power supply OK
    ACTIVE = 0x20000000             # Executing a motion command
    ERROR = 0x40000000              # Other errors
    ENABLED = 0x80000000            # Motor output enabled


RESERVED_STATUS_MASK = 0x00F00000
