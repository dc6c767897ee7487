"""
analytics-core error types.
"""

from typing import Any, Optional


class AnalyticsError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class MessageDecodeError(AnalyticsError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("decode_error", message, details)


class InvalidStatusTransition(AnalyticsError):
    def __init__(self, current: str, target: str):
        super().__init__(
            "invalid_transition",
            f"Cannot move upload status from {current} to {target}",
            {"from": current, "to": target},
        )


class StoreError(AnalyticsError):
    def __init__(self, message: str, code: str = "store_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)
