"""Basic unit tests for analytics-core package."""

from analytics_core import (
    AnalyticsError,
    DeviceStateSnapshot,
    EventMessage,
    InvalidStatusTransition,
    MessageDecodeError,
    MessageStore,
    StoreError,
    STATE_INFORMATION_KEY,
    UploadStatus,
    __version__,
)
from analytics_core.models.message import MessageType


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert EventMessage is not None
    assert DeviceStateSnapshot is not None
    assert MessageStore is not None


def test_error_hierarchy():
    assert issubclass(MessageDecodeError, AnalyticsError)
    assert issubclass(InvalidStatusTransition, AnalyticsError)
    assert issubclass(StoreError, AnalyticsError)


def test_error_attributes():
    err = AnalyticsError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    transition = InvalidStatusTransition("uploaded", "uploading")
    assert transition.code == "invalid_transition"
    assert transition.details == {"from": "uploaded", "to": "uploading"}

    store_err = StoreError("missing", code="not_found", details={"message_id": 7})
    assert store_err.code == "not_found"
    assert store_err.details == {"message_id": 7}


def test_constants():
    assert UploadStatus.NOT_UPLOADED == "not_uploaded"
    assert MessageType.SESSION_START == "ss"
    assert STATE_INFORMATION_KEY == "cs"
