"""
Well-known keys and codes of the device-state representation.
"""

from enum import Enum, IntEnum

# Key under which a snapshot is embedded in an event-info map
STATE_INFORMATION_KEY = "cs"

APPLICATION_MEMORY = "amu"
BATTERY_LEVEL = "bl"
DATA_CONNECTION = "dct"
DEVICE_ORIENTATION = "dor"
GPS_STATE = "gps"
STATUS_BAR_ORIENTATION = "sbo"
TIME_SINCE_START = "tss"

# Breakdown labels, flattened into the representation
CPU_USER = "cpu_user"
CPU_SYSTEM = "cpu_sys"
CPU_LOAD = "cpu_load"
DISK_TOTAL = "tds"
DISK_FREE = "fds"
SYSTEM_MEMORY_TOTAL = "tsm"
SYSTEM_MEMORY_AVAILABLE = "sma"
SYSTEM_MEMORY_LOW = "sml"


class Orientation(IntEnum):
    UNKNOWN = 0
    PORTRAIT = 1
    PORTRAIT_UPSIDE_DOWN = 2
    LANDSCAPE_LEFT = 3
    LANDSCAPE_RIGHT = 4
    FACE_UP = 5
    FACE_DOWN = 6


class GpsState(IntEnum):
    DISABLED = 0
    ENABLED = 1
    DENIED = 2


class ConnectionStatus(str, Enum):
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    NONE = "none"

# Labels each breakdown may carry; anything else would shadow another key
CPU_LABELS = frozenset({CPU_USER, CPU_SYSTEM, CPU_LOAD})
DISK_LABELS = frozenset({DISK_TOTAL, DISK_FREE})
SYSTEM_MEMORY_LABELS = frozenset({SYSTEM_MEMORY_TOTAL, SYSTEM_MEMORY_AVAILABLE, SYSTEM_MEMORY_LOW})
