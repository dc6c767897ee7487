"""
analytics-core — event message records and device-state enrichment.

Records analytics events for batched upload and captures device telemetry
to enrich them.
"""

__version__ = "0.1.0"

from analytics_core.device.constants import STATE_INFORMATION_KEY, ConnectionStatus, GpsState, Orientation
from analytics_core.device.probe import DeviceProbe, HostProbe
from analytics_core.device.state import DeviceStateSnapshot, merge_state
from analytics_core.errors import AnalyticsError, InvalidStatusTransition, MessageDecodeError, StoreError
from analytics_core.models.message import EventMessage, MessageType, UploadStatus, dedupe
from analytics_core.models.session import Session
from analytics_core.store import MessageStore

__all__ = [
    "EventMessage",
    "MessageType",
    "UploadStatus",
    "dedupe",
    "Session",
    "DeviceStateSnapshot",
    "DeviceProbe",
    "HostProbe",
    "merge_state",
    "STATE_INFORMATION_KEY",
    "ConnectionStatus",
    "GpsState",
    "Orientation",
    "MessageStore",
    "AnalyticsError",
    "MessageDecodeError",
    "InvalidStatusTransition",
    "StoreError",
]
