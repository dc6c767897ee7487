"""
Event message record and its upload-status lifecycle.

A message is immutable apart from ``upload_status``, which the store and
uploader move through ``UploadStatus`` transitions. Records persist through
``encode`` / ``decode``, which round-trip every field exactly.
"""

import base64
import time
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
from uuid import uuid4

import pydantic_core
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_serializer, field_validator

from analytics_core.device.state import DeviceStateSnapshot, merge_state
from analytics_core.errors import InvalidStatusTransition, MessageDecodeError
from analytics_core.models.session import SessionLike


class UploadStatus(str, Enum):
    NOT_UPLOADED = "not_uploaded"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    UPLOAD_FAILED = "upload_failed"

    def can_transition_to(self, target: "UploadStatus") -> bool:
        return UploadStatus(target) in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]


_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.NOT_UPLOADED: frozenset({UploadStatus.UPLOADING}),
    UploadStatus.UPLOADING: frozenset({
        UploadStatus.UPLOADED,
        UploadStatus.NOT_UPLOADED,
        UploadStatus.UPLOAD_FAILED,
    }),
    UploadStatus.UPLOADED: frozenset(),
    UploadStatus.UPLOAD_FAILED: frozenset(),
}


class MessageType(str, Enum):
    """Well-known message type tags. Any string is a valid ``message_type``."""

    SESSION_START = "ss"
    SESSION_END = "se"
    EVENT = "e"
    SCREEN_VIEW = "v"
    COMMERCE_EVENT = "cm"
    ERROR = "x"
    OPT_OUT = "o"
    FIRST_RUN = "fr"
    APP_STATE_TRANSITION = "ast"
    PUSH_REGISTRATION = "pr"
    PUSH_NOTIFICATION = "pm"
    BREADCRUMB = "bc"
    PROFILE = "pro"
    USER_ATTRIBUTE_CHANGE = "uac"
    USER_IDENTITY_CHANGE = "uic"


class EventMessage(BaseModel):
    """One tracked occurrence awaiting or having completed upload.

    Constructing with every field is the reconstruction path used when loading
    a persisted record; it applies type checks only. ``from_session`` is the
    creation path. ``message_id`` 0 means no store has assigned an id yet.
    """

    model_config = ConfigDict(validate_assignment=True, ser_json_inf_nan="constants")

    session_id: int = Field(frozen=True)
    message_id: int = Field(frozen=True)
    uuid: str = Field(frozen=True)
    message_type: str = Field(frozen=True)
    message_data: bytes = Field(frozen=True)
    timestamp: float = Field(frozen=True)
    upload_status: UploadStatus = UploadStatus.NOT_UPLOADED

    @field_serializer("message_data", when_used="json")
    def serialize_message_data(self, data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    @field_validator("message_data", mode="before")
    @classmethod
    def decode_message_data(cls, value: Any, info: ValidationInfo) -> Any:
        if info.mode == "json" and isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    @classmethod
    def from_session(
        cls,
        session: SessionLike,
        message_type: str,
        message_info: Mapping[str, Any],
        upload_status: UploadStatus,
        uuid: Optional[str] = None,
        timestamp: Optional[float] = None,
        state: Optional[DeviceStateSnapshot] = None,
        message_id: int = 0,
    ) -> "EventMessage":
        """Create a message for ``session`` from a structured event description.

        The session id is read once, here. ``message_info`` is serialized to
        JSON; when ``state`` is given its representation is embedded first.
        """
        info = merge_state(message_info, state) if state is not None else dict(message_info)
        if isinstance(message_type, Enum):
            message_type = message_type.value
        return cls(
            session_id=session.session_id,
            message_id=message_id,
            uuid=str(uuid4()) if uuid is None else uuid,
            message_type=message_type,
            message_data=pydantic_core.to_json(info),
            timestamp=time.time() if timestamp is None else timestamp,
            upload_status=upload_status,
        )

    @property
    def identity(self) -> tuple[int, str]:
        return (self.message_id, self.uuid)

    def same_record(self, other: "EventMessage") -> bool:
        """True if both are reconstructions of one logical record."""
        return self.identity == other.identity

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventMessage):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def __hash__(self) -> int:
        return hash(self.identity)

    def transition_to(self, status: UploadStatus) -> None:
        """Move to ``status`` if the lifecycle allows it."""
        status = UploadStatus(status)
        if not self.upload_status.can_transition_to(status):
            raise InvalidStatusTransition(self.upload_status.value, status.value)
        self.upload_status = status

    def with_message_id(self, message_id: int) -> "EventMessage":
        """Copy of this record carrying a store-assigned id."""
        return self.model_copy(update={"message_id": message_id}, deep=True)

    def message_info(self) -> dict[str, Any]:
        """Decode ``message_data`` back into the event-info map."""
        try:
            info = pydantic_core.from_json(self.message_data)
        except ValueError as e:
            raise MessageDecodeError(f"Message {self.message_id} payload is not JSON: {e}") from e
        if not isinstance(info, dict):
            raise MessageDecodeError(f"Message {self.message_id} payload is not a JSON object")
        return info

    def encode(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> "EventMessage":
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise MessageDecodeError(
                f"Malformed message record: {e.error_count()} error(s)",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e


def dedupe(messages: Iterable[EventMessage]) -> list[EventMessage]:
    """Keep the last record seen per ``(message_id, uuid)``, in first-seen order."""
    latest: dict[tuple[int, str], EventMessage] = {}
    for message in messages:
        latest[message.identity] = message
    return list(latest.values())
