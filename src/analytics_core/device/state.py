"""
Device-state snapshot — one read of device/environment metrics at an instant.

Each metric is collected independently; anything a probe cannot answer is
left out of the snapshot instead of failing the whole capture.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from analytics_core.device import constants as keys
from analytics_core.device.probe import DeviceProbe, HostProbe

logger = logging.getLogger("analytics_core.device.state")

_SCALAR_KEYS = {
    "application_memory": keys.APPLICATION_MEMORY,
    "battery_level": keys.BATTERY_LEVEL,
    "data_connection_status": keys.DATA_CONNECTION,
    "device_orientation": keys.DEVICE_ORIENTATION,
    "gps_state": keys.GPS_STATE,
    "status_bar_orientation": keys.STATUS_BAR_ORIENTATION,
    "time_since_start": keys.TIME_SINCE_START,
}

_BREAKDOWN_LABELS = {
    "cpu_usage_info": keys.CPU_LABELS,
    "disk_space_info": keys.DISK_LABELS,
    "system_memory_info": keys.SYSTEM_MEMORY_LABELS,
}

# pydantic routes model_validate through __init__; set while validating so
# rebuilding a snapshot from data never probes the host
_rebuilding: ContextVar[bool] = ContextVar("analytics_core_snapshot_rebuilding", default=False)


@contextmanager
def _without_probing() -> Iterator[None]:
    token = _rebuilding.set(True)
    try:
        yield
    finally:
        _rebuilding.reset(token)


class DeviceStateSnapshot(BaseModel):
    """Immutable capture of device state.

    ``DeviceStateSnapshot()`` probes the host; ``DeviceStateSnapshot(probe=p)``
    probes through ``p``. Passing metric values as keywords, ``from_values``
    and the ``model_validate*`` methods build a snapshot without probing.
    Breakdown labels outside the well-known set are dropped.
    """

    model_config = ConfigDict(frozen=True)

    application_memory: Optional[int] = Field(default=None, ge=0)
    battery_level: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    cpu_usage_info: Optional[dict[str, float]] = None
    data_connection_status: Optional[str] = None
    device_orientation: Optional[int] = None
    disk_space_info: Optional[dict[str, int]] = None
    gps_state: Optional[int] = None
    status_bar_orientation: Optional[int] = None
    system_memory_info: Optional[dict[str, Any]] = None
    time_since_start: Optional[float] = None

    def __init__(self, probe: Optional[DeviceProbe] = None, **values: Any):
        if values or _rebuilding.get():
            super().__init__(**values)
            return

        collected = _collect(probe or HostProbe())
        try:
            super().__init__(**collected)
        except ValidationError as e:
            rejected = {err["loc"][0] for err in e.errors()}
            logger.debug("Dropping out-of-range metrics: %s", sorted(rejected))
            super().__init__(**{k: v for k, v in collected.items() if k not in rejected})

    @field_validator(*_BREAKDOWN_LABELS, mode="before")
    @classmethod
    def drop_unknown_labels(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, Mapping):
            return value
        allowed = _BREAKDOWN_LABELS[info.field_name]
        unknown = set(value) - allowed
        if unknown:
            logger.debug("Dropping unknown %s labels: %s", info.field_name, sorted(map(str, unknown)))
        return {label: v for label, v in value.items() if label in allowed}

    @classmethod
    def model_validate(cls, obj: Any, **kwargs: Any) -> "DeviceStateSnapshot":
        with _without_probing():
            return super().model_validate(obj, **kwargs)

    @classmethod
    def model_validate_json(cls, json_data: Any, **kwargs: Any) -> "DeviceStateSnapshot":
        with _without_probing():
            return super().model_validate_json(json_data, **kwargs)

    @classmethod
    def from_values(cls, **values: Any) -> "DeviceStateSnapshot":
        """Build a snapshot from known metric values, without probing."""
        return cls.model_validate(values)

    @classmethod
    def metric_names(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)

    def dictionary_representation(self) -> dict[str, Any]:
        """Flat map of the captured metrics; absent metrics have no key."""
        representation: dict[str, Any] = {}
        for name, key in _SCALAR_KEYS.items():
            value = getattr(self, name)
            if value is not None:
                representation[key] = value
        for name in _BREAKDOWN_LABELS:
            breakdown = getattr(self, name)
            if breakdown:
                representation.update(breakdown)
        return representation


def _collect(probe: DeviceProbe) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in DeviceStateSnapshot.metric_names():
        try:
            value = getattr(probe, name)()
        except Exception:
            logger.debug("Metric %s unavailable", name, exc_info=True)
            continue
        if value is None:
            logger.debug("Metric %s not supported by %s", name, type(probe).__name__)
            continue
        values[name] = value
    return values


def merge_state(message_info: Mapping[str, Any], snapshot: DeviceStateSnapshot) -> dict[str, Any]:
    """Return a copy of ``message_info`` with the snapshot embedded under ``"cs"``.

    An empty snapshot adds nothing.
    """
    merged = dict(message_info)
    representation = snapshot.dictionary_representation()
    if representation:
        merged[keys.STATE_INFORMATION_KEY] = representation
    return merged
