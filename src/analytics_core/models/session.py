"""
Session models — the grouping a message is tagged with.
"""

import time
from typing import Any, Optional, Protocol
from uuid import uuid4

from pydantic import BaseModel, Field


class SessionLike(Protocol):
    """Anything exposing a stable integer ``session_id``."""

    session_id: int


class Session(BaseModel):
    session_id: int
    uuid: str = Field(default_factory=lambda: str(uuid4()))
    start_time: float = Field(default_factory=time.time)
    end_time: Optional[float] = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.end_time is None
