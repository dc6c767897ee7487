"""
Local message store — persists event messages and tracks their upload status.

Records are kept one encoded message per line after a JSON header carrying the
next message id, so ids are never reused even after a purge. The store is not
thread-safe; callers serialize access.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from analytics_core.errors import InvalidStatusTransition, MessageDecodeError, StoreError
from analytics_core.models.message import EventMessage, UploadStatus

logger = logging.getLogger("analytics_core.store")

STORE_FORMAT_VERSION = 1


class MessageStore:
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None
        self._messages: dict[int, EventMessage] = {}
        self._next_id = 1
        if self._path is not None and self._path.exists():
            self.load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def add(self, message: EventMessage) -> EventMessage:
        """Store ``message``, assigning the next id when it has none.

        Returns the stored record, which is the instance later status updates
        act on.
        """
        if message.message_id == 0:
            message = message.with_message_id(self._next_id)
            logger.debug("Assigned message id %d to %s", message.message_id, message.uuid)
        elif message.message_id in self._messages:
            raise StoreError(
                f"Message {message.message_id} is already stored",
                code="duplicate_message",
                details={"message_id": message.message_id},
            )
        if any(m.uuid == message.uuid for m in self._messages.values()):
            raise StoreError(
                f"Message with uuid {message.uuid} is already stored",
                code="duplicate_message",
                details={"uuid": message.uuid},
            )

        self._next_id = max(self._next_id, message.message_id + 1)
        self._messages[message.message_id] = message
        self.save()
        return message

    def get(self, message_id: int) -> EventMessage:
        try:
            return self._messages[message_id]
        except KeyError:
            raise StoreError(f"No message with id {message_id}", code="not_found", details={"message_id": message_id})

    def messages(self, status: Optional[UploadStatus] = None, session_id: Optional[int] = None) -> list[EventMessage]:
        """Stored messages, oldest first, optionally filtered."""
        result = []
        for message_id in sorted(self._messages):
            message = self._messages[message_id]
            if status is not None and message.upload_status != status:
                continue
            if session_id is not None and message.session_id != session_id:
                continue
            result.append(message)
        return result

    def claim_batch(self, limit: int = 100) -> list[EventMessage]:
        """Move up to ``limit`` of the oldest not-uploaded messages to uploading."""
        if limit < 0:
            raise StoreError("Batch limit must be non-negative", code="invalid_limit", details={"limit": limit})
        batch = self.messages(status=UploadStatus.NOT_UPLOADED)[:limit]
        if not batch:
            return []
        for message in batch:
            message.transition_to(UploadStatus.UPLOADING)
        logger.info("Claimed %d message(s) for upload", len(batch))
        self.save()
        return batch

    def mark_uploaded(self, message_ids: Iterable[int]) -> list[EventMessage]:
        return self.transition(message_ids, UploadStatus.UPLOADED)

    def mark_failed(self, message_ids: Iterable[int], retryable: bool) -> list[EventMessage]:
        """Retryable failures go back to not-uploaded; the rest are marked failed."""
        target = UploadStatus.NOT_UPLOADED if retryable else UploadStatus.UPLOAD_FAILED
        return self.transition(message_ids, target)

    def transition(self, message_ids: Iterable[int], status: UploadStatus) -> list[EventMessage]:
        """Move every listed message to ``status``, or none of them."""
        status = UploadStatus(status)
        messages = [self.get(message_id) for message_id in dict.fromkeys(message_ids)]
        for message in messages:
            if not message.upload_status.can_transition_to(status):
                raise InvalidStatusTransition(message.upload_status.value, status.value)
        for message in messages:
            message.transition_to(status)
        if messages:
            logger.info("Marked %d message(s) %s", len(messages), status.value)
            self.save()
        return messages

    def purge(self, statuses: Iterable[UploadStatus] = (UploadStatus.UPLOADED,)) -> int:
        """Delete messages in any of ``statuses``. Returns how many were removed."""
        statuses = set(statuses)
        doomed = [mid for mid, m in self._messages.items() if m.upload_status in statuses]
        for message_id in doomed:
            del self._messages[message_id]
        if doomed:
            logger.info("Purged %d message(s)", len(doomed))
            self.save()
        return len(doomed)

    def load(self) -> None:
        if self._path is None:
            return
        try:
            lines = self._path.read_bytes().splitlines()
        except OSError as e:
            raise StoreError(f"Cannot read message store {self._path}: {e}")

        self._messages.clear()
        self._next_id = 1
        if not lines:
            return
        try:
            header = json.loads(lines[0])
            self._next_id = int(header["next_message_id"])
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Message store {self._path} has an invalid header: {e}")

        for lineno, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            try:
                message = EventMessage.decode(line)
            except MessageDecodeError as e:
                logger.warning("Skipping corrupt record on line %d of %s: %s", lineno, self._path, e)
                continue
            self._messages[message.message_id] = message
            self._next_id = max(self._next_id, message.message_id + 1)

    def save(self) -> None:
        if self._path is None:
            return
        header = json.dumps({"version": STORE_FORMAT_VERSION, "next_message_id": self._next_id})
        records = [self._messages[mid].encode() for mid in sorted(self._messages)]
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_bytes(b"\n".join([header.encode("utf-8"), *records]) + b"\n")
        tmp.replace(self._path)
