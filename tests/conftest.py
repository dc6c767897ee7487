import pytest

from analytics_core import DeviceProbe, EventMessage, Session, UploadStatus
from analytics_core.device import constants as keys


class FakeProbe(DeviceProbe):
    """Mobile-like probe that answers every metric."""

    def application_memory(self):
        return 52_428_800

    def battery_level(self):
        return 0.75

    def cpu_usage_info(self):
        return {keys.CPU_USER: 1.5, keys.CPU_SYSTEM: 0.25}

    def data_connection_status(self):
        return "wifi"

    def device_orientation(self):
        return 1

    def disk_space_info(self):
        return {keys.DISK_TOTAL: 64_000_000_000, keys.DISK_FREE: 12_000_000_000}

    def gps_state(self):
        return 1

    def status_bar_orientation(self):
        return 1

    def system_memory_info(self):
        return {keys.SYSTEM_MEMORY_TOTAL: 4_000_000_000, keys.SYSTEM_MEMORY_AVAILABLE: 1_000_000_000}

    def time_since_start(self):
        return 12.5


class NoGpsProbe(FakeProbe):
    def gps_state(self):
        return None


@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def session():
    return Session(session_id=42)


@pytest.fixture
def message():
    return EventMessage(
        session_id=42,
        message_id=1001,
        uuid="abc-123",
        message_type="custom_event",
        message_data=b'{"name":"purchase"}',
        timestamp=1700000000.5,
        upload_status=UploadStatus.NOT_UPLOADED,
    )


@pytest.fixture
def no_gps_probe():
    return NoGpsProbe()
