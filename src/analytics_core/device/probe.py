"""
Metric sources for device-state snapshots.

A probe answers one question per metric. ``None`` means the metric is not
available on this platform; the snapshot collector treats an exception the
same way. Platforms (a mobile host bridge, a test fake) subclass
``DeviceProbe`` and override what they can read.
"""

import logging
import os
import shutil
import sys
import time
from pathlib import Path
from typing import Any, Optional, Union

from analytics_core.device import constants as keys
from analytics_core.device.constants import ConnectionStatus

logger = logging.getLogger("analytics_core.device.probe")

# Fallback origin for time_since_start when the process start time is unreadable
_LOADED_AT = time.time()

LOW_MEMORY_RATIO = 0.1


class DeviceProbe:
    """Probe with every metric unsupported."""

    def application_memory(self) -> Optional[int]:
        return None

    def battery_level(self) -> Optional[float]:
        return None

    def cpu_usage_info(self) -> Optional[dict[str, float]]:
        return None

    def data_connection_status(self) -> Optional[str]:
        return None

    def device_orientation(self) -> Optional[int]:
        return None

    def disk_space_info(self) -> Optional[dict[str, int]]:
        return None

    def gps_state(self) -> Optional[int]:
        return None

    def status_bar_orientation(self) -> Optional[int]:
        return None

    def system_memory_info(self) -> Optional[dict[str, Any]]:
        return None

    def time_since_start(self) -> Optional[float]:
        return None


class HostProbe(DeviceProbe):
    """Reads what a desktop or server host can report.

    Linux is read through ``/proc`` and ``/sys``; other platforms get the
    portable subset (CPU times, disk usage, uptime since library load).
    Orientation and GPS have no meaning on a host and stay unsupported.
    """

    def __init__(
        self,
        proc_root: Union[str, Path] = "/proc",
        sys_root: Union[str, Path] = "/sys",
        disk_path: Optional[Union[str, Path]] = None,
    ):
        self._proc = Path(proc_root)
        self._sys = Path(sys_root)
        self._disk_path = Path(disk_path) if disk_path else Path.home()

    def application_memory(self) -> Optional[int]:
        try:
            fields = (self._proc / "self" / "statm").read_text().split()
        except OSError:
            return self._peak_rss()
        return int(fields[1]) * os.sysconf("SC_PAGE_SIZE")

    @staticmethod
    def _peak_rss() -> Optional[int]:
        try:
            import resource
        except ImportError:
            return None
        rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is bytes on macOS, kilobytes elsewhere
        return rss if sys.platform == "darwin" else rss * 1024

    def battery_level(self) -> Optional[float]:
        for supply in sorted((self._sys / "class" / "power_supply").glob("BAT*")):
            try:
                capacity = int((supply / "capacity").read_text().strip())
            except (OSError, ValueError):
                continue
            return min(max(capacity / 100.0, 0.0), 1.0)
        return None

    def cpu_usage_info(self) -> Optional[dict[str, float]]:
        times = os.times()
        info = {keys.CPU_USER: times.user, keys.CPU_SYSTEM: times.system}
        try:
            info[keys.CPU_LOAD] = os.getloadavg()[0]
        except (AttributeError, OSError):
            logger.debug("Load average unavailable")
        return info

    def data_connection_status(self) -> Optional[str]:
        net = self._sys / "class" / "net"
        if not net.is_dir():
            return None
        found: set[ConnectionStatus] = set()
        for iface in net.iterdir():
            if iface.name == "lo":
                continue
            try:
                state = (iface / "operstate").read_text().strip()
            except OSError:
                continue
            if state != "up":
                continue
            if (iface / "wireless").exists():
                found.add(ConnectionStatus.WIFI)
            elif iface.name.startswith(("wwan", "rmnet")):
                found.add(ConnectionStatus.CELLULAR)
            else:
                found.add(ConnectionStatus.ETHERNET)
        for status in (ConnectionStatus.WIFI, ConnectionStatus.ETHERNET, ConnectionStatus.CELLULAR):
            if status in found:
                return status.value
        return ConnectionStatus.NONE.value

    def disk_space_info(self) -> Optional[dict[str, int]]:
        usage = shutil.disk_usage(self._disk_path)
        return {keys.DISK_TOTAL: usage.total, keys.DISK_FREE: usage.free}

    def system_memory_info(self) -> Optional[dict[str, Any]]:
        try:
            lines = (self._proc / "meminfo").read_text().splitlines()
        except OSError:
            return None

        total_kb = None
        avail_kb = None
        for line in lines:
            parts = line.split()
            if len(parts) < 2:
                continue
            if parts[0] == "MemTotal:":
                total_kb = int(parts[1])
            elif parts[0] == "MemAvailable:":
                avail_kb = int(parts[1])
        if total_kb is None or avail_kb is None:
            return None

        return {
            keys.SYSTEM_MEMORY_TOTAL: total_kb * 1024,
            keys.SYSTEM_MEMORY_AVAILABLE: avail_kb * 1024,
            keys.SYSTEM_MEMORY_LOW: avail_kb < total_kb * LOW_MEMORY_RATIO,
        }

    def time_since_start(self) -> Optional[float]:
        try:
            stat = (self._proc / "self" / "stat").read_text()
            uptime = float((self._proc / "uptime").read_text().split()[0])
        except (OSError, ValueError, IndexError):
            return time.time() - _LOADED_AT
        # The command name may contain spaces; field 22 (starttime) is the
        # 20th field after the closing parenthesis.
        start_ticks = int(stat.rsplit(")", 1)[1].split()[19])
        return max(uptime - start_ticks / os.sysconf("SC_CLK_TCK"), 0.0)
